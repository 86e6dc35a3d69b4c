"""Coach conversation lifecycle helpers."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, Request

from services.coach.chat_session import CoachSession
from services.coach.prompts import STARTER_QUESTIONS
from services.coach.session_store import CoachSessionStore


def _store(request: Request) -> CoachSessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def _get_session(request: Request, session_id: str) -> CoachSession:
	try:
		return _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new coach conversation seeded with the welcome message."""
	session = _store(request).create(seed_welcome=True)
	return {
		"session_id": session.session_id,
		"messages": [msg.to_dict() for msg in session.messages],
		"starter_questions": session.starter_questions(),
	}


async def list_messages(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the current bounded history for a conversation."""
	session = _get_session(request, session_id)
	return {"session_id": session_id, "messages": [msg.to_dict() for msg in session.messages]}


async def clear_messages(request: Request, session_id: str) -> Dict[str, Any]:
	"""Empty a conversation's history."""
	session = _get_session(request, session_id)
	session.clear()
	return {"session_id": session_id, "message_count": 0}


async def end_session(request: Request, session_id: str) -> Dict[str, Any]:
	try:
		_store(request).delete(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return {"session_id": session_id, "deleted": True}


async def starter_questions() -> Dict[str, Any]:
	return {"starter_questions": list(STARTER_QUESTIONS)}
