"""Chat message model shared by the coach history and the response stager."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict
from uuid import uuid4


class Origin(str, Enum):
	"""Who authored a chat message."""

	USER = "user"
	ASSISTANT = "assistant"

	@property
	def label(self) -> str:
		return "User" if self is Origin.USER else "Assistant"


@dataclass(frozen=True)
class Message:
	"""One immutable chat bubble."""

	text: str
	origin: Origin
	id: str = field(default_factory=lambda: uuid4().hex)
	created_at: float = field(default_factory=lambda: time.time())

	def __post_init__(self) -> None:
		if not self.text or not self.text.strip():
			raise ValueError("Message text must not be empty.")

	@classmethod
	def user(cls, text: str) -> "Message":
		return cls(text=text, origin=Origin.USER)

	@classmethod
	def assistant(cls, text: str) -> "Message":
		return cls(text=text, origin=Origin.ASSISTANT)

	@property
	def is_user(self) -> bool:
		return self.origin is Origin.USER

	def to_dict(self) -> Dict[str, Any]:
		"""Return a JSON-friendly view for API responses and websocket frames."""
		return {
			"id": self.id,
			"text": self.text,
			"origin": self.origin.value,
			"is_user": self.is_user,
			"created_at": self.created_at,
		}
