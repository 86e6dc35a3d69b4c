"""Text completion client for the coach, built on the OpenAI Responses API."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from openai import AsyncOpenAI

from services.coach.config import GenerationConfig
from services.errors import MalformedResponseError, NotConfiguredError, UpstreamError


def extract_text(response: Any) -> Optional[str]:
	"""Return the first output_text entry, or None when the payload has none."""
	for item in getattr(response, "output", None) or []:
		if getattr(item, "type", None) != "message":
			continue
		for content in getattr(item, "content", None) or []:
			content_type = content.get("type") if isinstance(content, dict) else getattr(content, "type", None)
			if content_type != "output_text":
				continue
			text = content.get("text") if isinstance(content, dict) else getattr(content, "text", None)
			if isinstance(text, str):
				return text
	text = getattr(response, "output_text", None)
	return text if isinstance(text, str) else None


class CoachCompletionClient:
	"""Send one rendered prompt and return the raw completion text."""

	def __init__(
		self,
		client: Optional[AsyncOpenAI],
		*,
		model: str = "gpt-4o-mini",
		generation: Optional[GenerationConfig] = None,
	) -> None:
		self.client = client
		self.model = model
		self.generation = generation or GenerationConfig()

	@property
	def configured(self) -> bool:
		return self.client is not None

	async def complete(self, prompt: str) -> str:
		"""Return the completion text for ``prompt``.

		Raises:
			NotConfiguredError: No OpenAI client is available.
			UpstreamError: The request failed.
			MalformedResponseError: The response carried no text output.
		"""
		if self.client is None:
			raise NotConfiguredError("OpenAI client is not configured.")
		start = time.time()
		try:
			response = await self.client.responses.create(
				model=self.model,
				input=[{"type": "message", "role": "user", "content": [{"type": "input_text", "text": prompt}]}],
				**self.generation.request_options(),
			)
		except Exception as exc:
			logging.error("Coach completion request failed: %s", exc)
			raise UpstreamError(f"Completion request failed: {exc}") from exc

		text = extract_text(response)
		if text is None:
			logging.error("Completion response had no text output: %r", response)
			raise MalformedResponseError("No text output in completion response.")
		logging.info("Coach completion latency: %.3fs (%s chars)", time.time() - start, len(text))
		return text
