"""Hair compatibility scoring using OpenAI vision through the Responses API."""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.scan_session import (
    FACE_SHAPE_LABELS,
    HAIR_TYPE_LABELS,
    HairMetrics,
    ScanFailure,
    ScanFailureReason,
    ScanOutcome,
    ScanSuccess,
)
from services.errors import MalformedResponseError
from services.scan.analysis_schema import FUNCTION_DEFINITION, FUNCTION_NAME, SYSTEM_PROMPT, USER_PROMPT


def to_image_data_url(image_b64: bytes) -> str:
    """Convert base64 JPEG bytes into a data URL suitable for vision input."""
    try:
        b64_str = image_b64.decode("utf-8")
    except Exception as exc:
        raise ValueError("Image bytes must be base64-encoded UTF-8.") from exc
    return f"data:image/jpeg;base64,{b64_str}"


def build_inputs(image_b64: bytes) -> List[Dict[str, Any]]:
    """Build the Responses API input array for one photo."""
    return [
        {"type": "message", "role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
        {"type": "message", "role": "user", "content": [{"type": "input_text", "text": USER_PROMPT}]},
        {"type": "message", "role": "user", "content": [{"type": "input_image", "image_url": to_image_data_url(image_b64)}]},
    ]


def parse_function_call(response: Any, *, tool_name: str) -> Dict[str, Any]:
    """Return the decoded arguments of the named function call."""
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            try:
                args = json.loads(getattr(item, "arguments", None) or "{}")
            except (TypeError, json.JSONDecodeError) as exc:
                raise MalformedResponseError(f"Invalid JSON from model: {exc}") from exc
            if not isinstance(args, dict):
                raise MalformedResponseError("Function call arguments must be a JSON object.")
            return args
    raise MalformedResponseError(f"No function_call output for '{tool_name}' found in Responses API output.")


def outcome_from_arguments(args: Dict[str, Any]) -> ScanOutcome:
    """Apply the visibility gate and clamp the scores from the tool arguments."""
    validation = args.get("validation") or {}
    if not isinstance(validation, dict):
        validation = {}
    head_visible = validation.get("head_fully_visible")
    if head_visible is None:
        head_visible = validation.get("face_fully_visible")
    head_visible = bool(head_visible)
    hair_visible = bool(validation.get("hair_clearly_visible"))
    if not bool(args.get("face_detected")) or not (head_visible and hair_visible):
        return ScanFailure(ScanFailureReason.NO_FACE, "No clear face/hair detected")

    scores = args.get("scores")
    metrics = HairMetrics.from_raw(scores if isinstance(scores, dict) else None)
    face_shape = str(args.get("face_shape_label") or "oval")
    hair_type = str(args.get("hair_type_label") or "straight")
    return ScanSuccess(
        metrics=metrics,
        average=metrics.average(),
        face_shape_label=face_shape if face_shape in FACE_SHAPE_LABELS else "oval",
        hair_type_label=hair_type if hair_type in HAIR_TYPE_LABELS else "straight",
    )


class HairAnalyzer:
    """Score how well a hairstyle suits the face in a photo."""

    def __init__(self, client: Optional[AsyncOpenAI], *, model: str = "gpt-4o") -> None:
        self.client = client
        self.model = model

    async def analyze(self, image_b64: bytes) -> ScanOutcome:
        """Return a ScanSuccess or a typed ScanFailure; never raises for upstream problems."""
        if self.client is None:
            return ScanFailure(ScanFailureReason.API_ERROR, "Missing API key")

        start_time = time.time()
        try:
            inputs = build_inputs(image_b64)
        except ValueError as exc:
            return ScanFailure(ScanFailureReason.API_ERROR, str(exc))

        try:
            response = await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
                temperature=0.2,
            )
        except Exception as exc:
            logging.error("Error during hair analysis request: %s", exc)
            return ScanFailure(ScanFailureReason.API_ERROR, str(exc))

        try:
            args = parse_function_call(response, tool_name=FUNCTION_NAME)
        except MalformedResponseError as exc:
            logging.error("Error parsing hair analysis response: %s", exc)
            logging.error("Full response object: %r", response)
            return ScanFailure(ScanFailureReason.MALFORMED_RESPONSE, str(exc))

        outcome = outcome_from_arguments(args)
        logging.info("Hair analysis latency: %.3fs ok=%s", time.time() - start_time, outcome.ok)
        return outcome
