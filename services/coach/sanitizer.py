"""Clean model output and cut it into sentence-sized chat bubbles."""

from __future__ import annotations

import re
from typing import List

_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"\*([^*]+)\*")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_BULLET_PREFIX = re.compile(r"^\s*[-*•]\s+", re.MULTILINE)
_ORDINAL_PREFIX = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_NEWLINE_SPACE = re.compile(r"\s*\n\s*")

# Terminal punctuation, whitespace, then an uppercase letter or digit.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")

TERMINAL_PUNCTUATION = (".", "!", "?")


def _sanitize_once(text: str) -> str:
	cleaned = _BOLD.sub(r"\1", text)
	cleaned = _ITALIC.sub(r"\1", cleaned)
	cleaned = _INLINE_CODE.sub(r"\1", cleaned)
	cleaned = _BULLET_PREFIX.sub("", cleaned)
	cleaned = _ORDINAL_PREFIX.sub("", cleaned)
	cleaned = _HORIZONTAL_SPACE.sub(" ", cleaned)
	cleaned = _NEWLINE_SPACE.sub("\n", cleaned)
	return cleaned.strip()


def sanitize_text(text: str) -> str:
	"""Strip markdown emphasis, code ticks, list prefixes and extra whitespace.

	A single pass can expose new markup (``- - item``, ``***word***``), so the
	pass is repeated until the text stops changing. Every pass is
	non-lengthening, which bounds the loop and makes the result idempotent.
	"""
	current = text or ""
	while True:
		cleaned = _sanitize_once(current)
		if cleaned == current:
			return cleaned
		current = cleaned


def ensure_terminal_punctuation(sentence: str) -> str:
	"""Append a period when a sentence lacks closing punctuation."""
	stripped = sentence.strip()
	if not stripped:
		return stripped
	return stripped if stripped.endswith(TERMINAL_PUNCTUATION) else f"{stripped}."


def split_into_sentences(text: str) -> List[str]:
	"""Return sanitized, punctuated sentence units for ``text``.

	The boundary pattern is a heuristic: an abbreviation such as ``Dr.``
	followed by a capitalised word is treated as a sentence end.
	"""
	sanitized = sanitize_text(text)
	if not sanitized:
		return []
	parts = [ensure_terminal_punctuation(part) for part in SENTENCE_BOUNDARY.split(sanitized)]
	units = [part for part in parts if part]
	if not units:
		return [ensure_terminal_punctuation(sanitized)]
	return units
