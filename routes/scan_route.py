"""FastAPI routes for photo scans and hairstyle edits."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.scan_controller import clear_latest_scan, generate_styles, get_latest_scan, run_scan

router = APIRouter(prefix="/scans")


class StylePayload(BaseModel):
	prompt: str = ""


@router.post("")
async def run_scan_route(request: Request, file: UploadFile = File(...)):
	try:
		return await run_scan(request, file)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/latest")
async def get_latest_route(request: Request):
	try:
		return await get_latest_scan(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/latest")
async def clear_latest_route(request: Request):
	try:
		return await clear_latest_scan(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/latest/styles")
async def generate_styles_route(request: Request, payload: StylePayload):
	try:
		return await generate_styles(request, payload.prompt)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
