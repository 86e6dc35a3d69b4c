"""One hair coach conversation: history, prompt context and staged replies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from models.chat_message import Message
from services.coach.completion import CoachCompletionClient
from services.coach.config import CoachConfig, check_configuration
from services.coach.history import ConversationHistory
from services.coach.prompts import STARTER_QUESTIONS, WELCOME_MESSAGE, build_context_prompt
from services.coach.stager import ResponseStager, StagedDelivery
from services.errors import MalformedResponseError, NotConfiguredError, UpstreamError

LOGGER = logging.getLogger(__name__)

ERROR_NOTICE = "Sorry, I encountered an error. Please try again."


class ReplyStatus(str, Enum):
	OK = "ok"
	UNCONFIGURED = "unconfigured"
	UPSTREAM_ERROR = "upstream_error"
	MALFORMED_RESPONSE = "malformed_response"


@dataclass
class ChatReply:
	"""Outcome of one ``send_message`` call.

	On success ``delivery`` streams the assistant bubbles; otherwise
	``notice`` holds the single user-facing message and ``error`` the detail.
	"""

	status: ReplyStatus
	user_message: Optional[Message] = None
	delivery: Optional[StagedDelivery] = None
	notice: Optional[str] = None
	error: Optional[str] = None

	@property
	def ok(self) -> bool:
		return self.status is ReplyStatus.OK

	def to_dict(self) -> Dict[str, Any]:
		return {
			"status": self.status.value,
			"ok": self.ok,
			"user_message": self.user_message.to_dict() if self.user_message else None,
			"notice": self.notice,
			"error": self.error,
		}


class CoachSession:
	"""Explicitly constructed conversation context.

	Owns the history and configuration for one conversation; callers pass it
	around instead of sharing a module-level client.
	"""

	def __init__(
		self,
		config: CoachConfig,
		completion: CoachCompletionClient,
		*,
		session_id: Optional[str] = None,
	) -> None:
		self.session_id = session_id or uuid4().hex
		self.config = config
		self.completion = completion
		self.history = ConversationHistory(capacity=config.max_history)
		self.stager = ResponseStager(
			self.history,
			delay_ms=config.bubble_delay_ms,
			capacity=config.max_history,
		)

	@property
	def messages(self) -> List[Message]:
		return list(self.history.messages)

	def seed_welcome(self) -> Optional[Message]:
		"""Add the welcome bubble to an empty conversation."""
		if len(self.history):
			return None
		welcome = Message.assistant(WELCOME_MESSAGE)
		self.history.append(welcome)
		return welcome

	def starter_questions(self) -> List[str]:
		return list(STARTER_QUESTIONS)

	def clear(self) -> None:
		self.history.clear()

	async def send_message(self, text: str) -> ChatReply:
		"""Record the user's message and request a staged assistant reply.

		Only the user message is appended before the completion request; a
		failed request leaves no assistant message behind.
		"""
		status = check_configuration(self.config)
		if not status.configured or not self.completion.configured:
			return ChatReply(
				status=ReplyStatus.UNCONFIGURED,
				notice=status.notice or "Please configure OPENAI_API_KEY in the environment variables.",
				error="API key not configured",
			)

		utterance = (text or "").strip()
		if not utterance:
			raise ValueError("Message text is required.")

		user_message = Message.user(utterance)
		self.history.append(user_message)
		context = self.history.context_window(self.config.context_window)
		prompt = build_context_prompt(utterance, context)

		try:
			raw = await self.completion.complete(prompt)
		except MalformedResponseError as exc:
			LOGGER.error("Malformed completion for session %s: %s", self.session_id, exc)
			return ChatReply(ReplyStatus.MALFORMED_RESPONSE, user_message, notice=ERROR_NOTICE, error=str(exc))
		except NotConfiguredError as exc:
			return ChatReply(ReplyStatus.UNCONFIGURED, user_message, notice=ERROR_NOTICE, error=str(exc))
		except UpstreamError as exc:
			LOGGER.error("Completion failed for session %s: %s", self.session_id, exc)
			return ChatReply(ReplyStatus.UPSTREAM_ERROR, user_message, notice=ERROR_NOTICE, error=str(exc))

		return ChatReply(ReplyStatus.OK, user_message, delivery=self.stager.stage(raw))
