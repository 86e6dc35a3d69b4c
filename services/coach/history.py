"""Bounded, ordered conversation history used to build prompt context."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from models.chat_message import Message

DEFAULT_CAPACITY = 10


class ConversationHistory:
	"""Append-only message log that is trimmed from the oldest end."""

	def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
		if capacity < 1:
			raise ValueError("History capacity must be at least 1.")
		self.capacity = capacity
		self._messages: List[Message] = []

	def __len__(self) -> int:
		return len(self._messages)

	def __iter__(self) -> Iterator[Message]:
		return iter(tuple(self._messages))

	@property
	def messages(self) -> Tuple[Message, ...]:
		"""Snapshot of the history, oldest first."""
		return tuple(self._messages)

	def last(self) -> Optional[Message]:
		return self._messages[-1] if self._messages else None

	def append(self, message: Message) -> None:
		"""Add a message to the tail. Never reorders or deduplicates."""
		self._messages.append(message)

	def context_window(self, max_messages: int) -> List[Message]:
		"""Return up to ``max_messages`` of the most recent entries, oldest first."""
		if max_messages <= 0:
			return []
		return list(self._messages[-max_messages:])

	def trim(self, max_capacity: Optional[int] = None) -> int:
		"""Evict the oldest entries until at most ``max_capacity`` remain.

		Returns the number of evicted messages.
		"""
		limit = self.capacity if max_capacity is None else max_capacity
		if limit < 0:
			raise ValueError("Trim capacity must not be negative.")
		overflow = len(self._messages) - limit
		if overflow <= 0:
			return 0
		del self._messages[:overflow]
		return overflow

	def clear(self) -> None:
		self._messages.clear()
