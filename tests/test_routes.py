"""API tests for the coach and scan routes."""

import asyncio
import io
import threading

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import create_app
from services.coach.config import CoachConfig
from services.coach.prompts import STARTER_QUESTIONS, WELCOME_MESSAGE
from services.scan.analysis_schema import FUNCTION_NAME
from tests.helpers import function_call_response, text_response
from tests.test_hair_analyzer import GOOD_ARGS


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), (120, 80, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def client(coach_config, mock_openai_client):
    app = create_app(config=coach_config, openai_client=mock_openai_client)
    with TestClient(app) as test_client:
        yield test_client


def test_health_reports_configuration(client):
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["db_initialized"] is True
    assert body["openai_configured"] is True


def test_start_session_seeds_welcome(client):
    body = client.post("/coach/sessions").json()
    assert [m["text"] for m in body["messages"]] == [WELCOME_MESSAGE]
    assert body["starter_questions"] == list(STARTER_QUESTIONS)

    session_id = body["session_id"]
    assert len(client.get(f"/coach/sessions/{session_id}/messages").json()["messages"]) == 1
    client.delete(f"/coach/sessions/{session_id}/messages")
    assert client.get(f"/coach/sessions/{session_id}/messages").json()["messages"] == []


def test_unknown_session_is_404(client):
    assert client.get("/coach/sessions/nope/messages").status_code == 404


def test_websocket_streams_bubbles(client, mock_openai_client):
    mock_openai_client.responses.create.return_value = text_response(
        "Try a sulfate-free shampoo twice a week. It keeps your scalp balanced."
    )
    session_id = client.post("/coach/sessions").json()["session_id"]

    with client.websocket_connect(f"/ws/coach/{session_id}") as ws:
        ws.send_json({"type": "chat.send", "text": "What shampoo should I use?", "request_id": "r1"})
        frames = [ws.receive_json() for _ in range(4)]

    assert [f["type"] for f in frames] == ["chat.user", "chat.bubble", "chat.bubble", "chat.done"]
    assert frames[1]["message"]["text"] == "Try a sulfate-free shampoo twice a week."
    assert frames[3]["delivered"] == 2
    assert all(f["request_id"] == "r1" for f in frames)
    assert len(client.get(f"/coach/sessions/{session_id}/messages").json()["messages"]) == 4


def test_websocket_reports_upstream_failure_as_notice(client, mock_openai_client):
    mock_openai_client.responses.create.side_effect = RuntimeError("503")
    session_id = client.post("/coach/sessions").json()["session_id"]

    with client.websocket_connect(f"/ws/coach/{session_id}") as ws:
        ws.send_json({"type": "chat.send", "text": "Hello"})
        user_frame = ws.receive_json()
        notice = ws.receive_json()

    assert user_frame["type"] == "chat.user"
    assert notice["type"] == "chat.notice"
    assert notice["status"] == "upstream_error"
    assert len(client.get(f"/coach/sessions/{session_id}/messages").json()["messages"]) == 2


def test_websocket_rejects_unknown_frames(client):
    session_id = client.post("/coach/sessions").json()["session_id"]
    with client.websocket_connect(f"/ws/coach/{session_id}") as ws:
        ws.send_json({"type": "dance"})
        assert ws.receive_json()["type"] == "error"
        ws.send_text("not json")
        assert ws.receive_json()["detail"] == "Payload must be JSON"


def test_unconfigured_app_returns_notice(tmp_path):
    app = create_app(config=CoachConfig(api_key=None, bubble_delay_ms=0, database_dir=tmp_path / "db"))
    with TestClient(app) as client:
        assert client.get("/health").json()["openai_configured"] is False
        session_id = client.post("/coach/sessions").json()["session_id"]
        with client.websocket_connect(f"/ws/coach/{session_id}") as ws:
            ws.send_json({"type": "chat.send", "text": "Hi"})
            frame = ws.receive_json()
    assert frame["type"] == "chat.notice"
    assert frame["status"] == "unconfigured"


def test_scan_saves_latest_session(client, mock_openai_client):
    mock_openai_client.responses.create.return_value = function_call_response(FUNCTION_NAME, GOOD_ARGS)
    assert client.get("/scans/latest").json() == {"session": None}

    body = client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")}).json()

    assert body["ok"] is True
    assert body["session"]["average"] == 66
    latest = client.get("/scans/latest").json()["session"]
    assert latest["metrics"]["jawline"] == 75
    assert latest["image_uri"] == body["image_uri"]

    assert client.delete("/scans/latest").json() == {"cleared": True}
    assert client.get("/scans/latest").json() == {"session": None}


def test_failed_scan_keeps_previous_session(client, mock_openai_client):
    mock_openai_client.responses.create.return_value = function_call_response(FUNCTION_NAME, {**GOOD_ARGS, "face_detected": False})

    body = client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")}).json()

    assert body == {"ok": False, "reason": "no_face", "message": "No clear face/hair detected"}
    assert client.get("/scans/latest").json() == {"session": None}


def _stored_photos(client) -> list:
    return sorted(str(p) for p in client.app.state.db_initializer.photo_dir.iterdir())


def test_failed_scans_leave_no_photos(client, mock_openai_client):
    no_face = function_call_response(FUNCTION_NAME, {**GOOD_ARGS, "face_detected": False})
    mock_openai_client.responses.create.side_effect = [no_face, RuntimeError("503"), text_response("no tool call")]

    reasons = [
        client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")}).json()["reason"] for _ in range(3)
    ]

    assert reasons == ["no_face", "api_error", "malformed_response"]
    assert _stored_photos(client) == []


def test_only_saved_session_photo_is_kept(client, mock_openai_client):
    mock_openai_client.responses.create.return_value = function_call_response(FUNCTION_NAME, GOOD_ARGS)

    first = client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")}).json()
    assert _stored_photos(client) == [first["image_uri"]]

    second = client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")}).json()
    assert _stored_photos(client) == [second["image_uri"]]

    mock_openai_client.responses.create.return_value = function_call_response(FUNCTION_NAME, {**GOOD_ARGS, "face_detected": False})
    client.post("/scans", files={"file": ("me.png", _png_bytes(), "image/png")})
    assert _stored_photos(client) == [second["image_uri"]]

    client.delete("/scans/latest")
    assert _stored_photos(client) == []


def test_scan_rejects_unsupported_upload(client):
    response = client.post("/scans", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 415


def test_styles_require_saved_scan(client):
    assert client.post("/scans/latest/styles", json={"prompt": "buzz cut"}).status_code == 404


@pytest.fixture
def paced_client(tmp_path, mock_openai_client):
    """Client whose bubbles are spaced far enough apart to interrupt delivery."""
    config = CoachConfig(api_key="test-key", bubble_delay_ms=5000, database_dir=tmp_path / "db")
    app = create_app(config=config, openai_client=mock_openai_client)
    with TestClient(app) as test_client:
        yield test_client


def test_websocket_rejects_send_while_replying_and_cancels_mid_delivery(paced_client, mock_openai_client):
    mock_openai_client.responses.create.return_value = text_response("One. Two. Three. Four.")
    session_id = paced_client.post("/coach/sessions").json()["session_id"]

    with paced_client.websocket_connect(f"/ws/coach/{session_id}") as ws:
        ws.send_json({"type": "chat.send", "text": "Hi", "request_id": "r1"})
        assert ws.receive_json()["type"] == "chat.user"
        bubble = ws.receive_json()
        assert bubble["type"] == "chat.bubble"
        assert bubble["message"]["text"] == "One."

        ws.send_json({"type": "chat.send", "text": "Hello again", "request_id": "r2"})
        rejected = ws.receive_json()
        assert rejected["type"] == "error"
        assert rejected["request_id"] == "r2"
        assert rejected["detail"].startswith("Still replying")

        ws.send_json({"type": "chat.cancel", "request_id": "r3"})
        cancelled = ws.receive_json()

    assert cancelled == {"type": "chat.cancelled", "request_id": "r1", "delivered": 1, "total": 4}
    texts = [m["text"] for m in paced_client.get(f"/coach/sessions/{session_id}/messages").json()["messages"]]
    assert texts == [WELCOME_MESSAGE, "Hi", "One."]


def test_websocket_cancel_before_completion_returns(paced_client, mock_openai_client):
    requested = threading.Event()

    async def _never_answers(*args, **kwargs):
        requested.set()
        await asyncio.sleep(30)

    mock_openai_client.responses.create.side_effect = _never_answers
    session_id = paced_client.post("/coach/sessions").json()["session_id"]

    with paced_client.websocket_connect(f"/ws/coach/{session_id}") as ws:
        ws.send_json({"type": "chat.send", "text": "Hi", "request_id": "r1"})
        assert requested.wait(timeout=5)
        ws.send_json({"type": "chat.cancel", "request_id": "r2"})
        cancelled = ws.receive_json()

    assert cancelled == {"type": "chat.cancelled", "request_id": "r2", "delivered": 0, "total": 0}
    texts = [m["text"] for m in paced_client.get(f"/coach/sessions/{session_id}/messages").json()["messages"]]
    assert texts == [WELCOME_MESSAGE, "Hi"]
