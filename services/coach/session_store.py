"""In-memory registry of coach conversations held on ``app.state``."""

from __future__ import annotations

from typing import Dict

from services.coach.chat_session import CoachSession
from services.coach.completion import CoachCompletionClient
from services.coach.config import CoachConfig


class CoachSessionStore:
	"""Create, look up and drop coach sessions by id."""

	def __init__(self, config: CoachConfig, completion: CoachCompletionClient) -> None:
		self.config = config
		self.completion = completion
		self._sessions: Dict[str, CoachSession] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	def create(self, seed_welcome: bool = True) -> CoachSession:
		"""Start a new conversation, optionally seeded with the welcome bubble."""
		session = CoachSession(self.config, self.completion)
		if seed_welcome:
			session.seed_welcome()
		self._sessions[session.session_id] = session
		return session

	def get(self, session_id: str) -> CoachSession:
		"""Return a session or raise KeyError if missing."""
		session = self._sessions.get(session_id)
		if session is None:
			raise KeyError(f"Session {session_id} not found")
		return session

	def delete(self, session_id: str) -> None:
		if self._sessions.pop(session_id, None) is None:
			raise KeyError(f"Session {session_id} not found")
