from fastapi import Request, UploadFile, HTTPException
from typing import Dict, Any
import base64

from dal.scan_session_dal import ScanSessionDAL
from models.scan_session import ScanSession, display_score
from services.errors import NotConfiguredError, UpstreamError
from services.image_store import delete_photo, read_photo, save_scan_photo
from services.scan.hair_analyzer import HairAnalyzer
from services.scan.hair_editor import HairStyleEditor
from utils.media_validation import read_image_bytes


def _session_payload(session: ScanSession) -> Dict[str, Any]:
    payload = session.to_dict()
    payload["display"] = {key: display_score(value) for key, value in session.metrics.to_dict().items()}
    payload["display_average"] = display_score(session.average)
    return payload


async def run_scan(request: Request, file: UploadFile) -> Dict[str, Any]:
    """Store the uploaded photo, score it, and persist the result on success.

    Args:
        request: FastAPI Request object (used to access app.state for shared clients).
        file: Uploaded photo (JPEG, PNG or WebP).

    Returns:
        The analysis outcome. Successful scans include `image_uri` and the
        saved `session`, replacing the previous session and its photo.
        Failures carry `reason` (no_face, api_error, malformed_response) and
        `message`; their photo is deleted and the previous session stays.
    """
    raw = await read_image_bytes(file)

    # Acquire shared resources from app.state
    openai_client = request.app.state.openai_client
    db_initializer = request.app.state.db_initializer
    config = request.app.state.coach_config

    try:
        image_uri = await save_scan_photo(db_initializer.photo_dir, raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    analyzer = HairAnalyzer(openai_client, model=config.vision_model)
    outcome = await analyzer.analyze(base64.b64encode(await read_photo(image_uri)))

    result = outcome.to_dict()
    if not outcome.ok:
        # Failed scans keep nothing on disk; the saved session is untouched.
        await delete_photo(image_uri)
        return result

    dal = ScanSessionDAL(db_initializer)
    previous = await dal.load()
    session = ScanSession.from_metrics(image_uri, outcome.metrics)
    await dal.save(session)
    if previous is not None and previous.image_uri != image_uri:
        await delete_photo(previous.image_uri)
    result["image_uri"] = image_uri
    result["session"] = _session_payload(session)
    return result


async def get_latest_scan(request: Request) -> Dict[str, Any]:
    """Return the last saved scan, or `session: None` when there is none."""
    session = await ScanSessionDAL(request.app.state.db_initializer).load()
    return {"session": _session_payload(session) if session else None}


async def clear_latest_scan(request: Request) -> Dict[str, Any]:
    """Forget the saved scan and delete its photo."""
    dal = ScanSessionDAL(request.app.state.db_initializer)
    previous = await dal.load()
    removed = await dal.clear()
    if previous is not None:
        await delete_photo(previous.image_uri)
    return {"cleared": removed}


async def generate_styles(request: Request, prompt: str) -> Dict[str, Any]:
    """Generate hairstyle edits of the last scanned photo.

    Raises:
        HTTPException(404) when no scan has been saved yet.
    """
    db_initializer = request.app.state.db_initializer
    config = request.app.state.coach_config
    session = await ScanSessionDAL(db_initializer).load()
    if session is None:
        raise HTTPException(status_code=404, detail="No saved scan to edit")

    editor = HairStyleEditor(request.app.state.openai_client, db_initializer.generated_dir, model=config.image_model)
    try:
        images = await editor.generate(prompt, session.image_uri)
    except NotConfiguredError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"images": images}
