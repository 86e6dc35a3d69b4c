"""Turn one model completion into a paced, cancellable stream of chat bubbles."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from models.chat_message import Message
from services.coach.history import ConversationHistory
from services.coach.sanitizer import split_into_sentences

LOGGER = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 1000


class StagedDelivery:
	"""Async iterator that reveals one assistant message per step.

	Each delivered message is appended to the history as it is yielded. The
	history is trimmed exactly once, when the delivery finishes: right after
	the final unit is appended, or as soon as the consumer cancels.
	"""

	def __init__(
		self,
		units: Sequence[str],
		history: ConversationHistory,
		*,
		delay_seconds: float = DEFAULT_DELAY_MS / 1000.0,
		capacity: Optional[int] = None,
	) -> None:
		self._units = list(units)
		self._history = history
		self._delay = max(0.0, delay_seconds)
		self._capacity = capacity
		self._position = 0
		self._delivered: List[Message] = []
		self._cancel_event = asyncio.Event()
		self._finished = False
		if not self._units:
			self._finish()

	def __aiter__(self) -> "StagedDelivery":
		return self

	async def __anext__(self) -> Message:
		if self._finished:
			raise StopAsyncIteration
		if self._position > 0 and self._delay > 0:
			await self._pause()
		if self._cancel_event.is_set():
			self._finish()
			raise StopAsyncIteration
		message = Message.assistant(self._units[self._position])
		self._history.append(message)
		self._delivered.append(message)
		self._position += 1
		if self._position >= len(self._units):
			self._finish()
		return message

	@property
	def total(self) -> int:
		return len(self._units)

	@property
	def delivered(self) -> List[Message]:
		return list(self._delivered)

	@property
	def finished(self) -> bool:
		return self._finished

	@property
	def cancelled(self) -> bool:
		return self._cancel_event.is_set()

	def cancel(self) -> None:
		"""Stop delivery now; messages already delivered stay in the history."""
		if self._finished:
			return
		self._cancel_event.set()
		LOGGER.info("Staged delivery cancelled after %s of %s units", self._position, len(self._units))
		self._finish()

	async def collect(self) -> List[Message]:
		"""Drain the remaining units and return everything delivered."""
		async for _ in self:
			pass
		return self.delivered

	def joined_text(self) -> str:
		return " \n".join(message.text for message in self._delivered)

	async def _pause(self) -> None:
		try:
			await asyncio.wait_for(self._cancel_event.wait(), timeout=self._delay)
		except asyncio.TimeoutError:
			pass

	def _finish(self) -> None:
		if self._finished:
			return
		self._finished = True
		evicted = self._history.trim(self._capacity)
		if evicted:
			LOGGER.debug("Trimmed %s messages from conversation history", evicted)


class ResponseStager:
	"""Sanitize, segment and pace completions into a conversation history."""

	def __init__(
		self,
		history: ConversationHistory,
		*,
		delay_ms: int = DEFAULT_DELAY_MS,
		capacity: Optional[int] = None,
	) -> None:
		if delay_ms < 0:
			raise ValueError("delay_ms must not be negative.")
		self.history = history
		self.delay_ms = delay_ms
		self.capacity = capacity if capacity is not None else history.capacity

	def segment(self, raw_text: str) -> List[str]:
		"""Return the units ``stage`` would deliver, without side effects."""
		return split_into_sentences(raw_text)

	def stage(self, raw_text: str) -> StagedDelivery:
		"""Start a delivery for one raw completion string."""
		units = self.segment(raw_text)
		LOGGER.debug("Staging %s units from %s raw chars", len(units), len(raw_text or ""))
		return StagedDelivery(
			units,
			self.history,
			delay_seconds=self.delay_ms / 1000.0,
			capacity=self.capacity,
		)
