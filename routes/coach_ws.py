"""WebSocket endpoint that streams staged coach replies."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.coach.session_store import CoachSessionStore
from services.coach.ws_session import CoachSocketHandler

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> CoachSessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws/coach/{session_id}")
async def coach_socket(websocket: WebSocket, session_id: str, store: CoachSessionStore = Depends(_require_session_store)):
	"""Accept chat.send / chat.cancel frames and stream chat.bubble frames back."""
	await websocket.accept()
	try:
		session = store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = CoachSocketHandler(session, websocket)
	while True:
		try:
			raw = await websocket.receive_text()
		except WebSocketDisconnect:
			break
		except Exception:
			await websocket.send_text(json.dumps({"type": "error", "detail": "Invalid websocket frame"}))
			continue
		try:
			payload = json.loads(raw)
		except Exception:
			await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
			continue
		if not isinstance(payload, dict):
			await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be a JSON object"}))
			continue
		await handler.handle(payload)
	await handler.close()
	try:
		await websocket.close()
	except Exception:
		pass
