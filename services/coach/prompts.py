"""Prompt helpers for the hair coach chat."""

from __future__ import annotations

from typing import Iterable

from models.chat_message import Message

WELCOME_MESSAGE = (
	"What's up! I'm your personal hair coach. I can help you with styling tips, "
	"hair care advice, and finding the perfect look for you. Ask me anything!"
)

STARTER_QUESTIONS = (
	"What products should I use for my hair type?",
	"How often should I wash my hair?",
	"What styling tips do you have for my hair length?",
)


def coach_system_prompt() -> str:
	"""Return the hair coach persona and style rules."""
	return (
		"You are a professional hair coach. Keep the tone casual and conversational, like texting a friend. "
		"Avoid bullet points or numbered lists. Do NOT use markdown or bold like **this**. "
		"Write short, complete sentences that end with punctuation. "
		"Focus on practical, friendly advice with minimal fluff."
	)


def _context_block(messages: Iterable[Message]) -> str:
	return "\n".join(f"{msg.origin.label}: {msg.text}" for msg in messages)


def build_context_prompt(utterance: str, context: Iterable[Message]) -> str:
	"""Render the single prompt string sent to the completion model.

	Args:
		utterance: The new user message.
		context: Recent history, oldest first; normally ends with ``utterance`` itself.
	"""
	base = coach_system_prompt()
	context_text = _context_block(context)
	if not context_text:
		return f"{base}\n\nUser: {utterance}\nAssistant:"
	return f"{base}\n\nRecent conversation context:\n{context_text}\n\nUser: {utterance}\nAssistant:"
