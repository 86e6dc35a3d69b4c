"""FastAPI routes for coach conversations."""

from fastapi import APIRouter, HTTPException, Request

from controllers.coach_controller import clear_messages, end_session, list_messages, start_session, starter_questions

router = APIRouter(prefix="/coach")


@router.post("/sessions")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/sessions/{session_id}/messages")
async def list_messages_route(request: Request, session_id: str):
	try:
		return await list_messages(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/sessions/{session_id}/messages")
async def clear_messages_route(request: Request, session_id: str):
	try:
		return await clear_messages(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/sessions/{session_id}")
async def end_session_route(request: Request, session_id: str):
	try:
		return await end_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/starters")
async def starter_questions_route():
	return await starter_questions()
