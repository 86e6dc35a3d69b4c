"""Schema definitions for the hair analysis tool."""

from typing import Any, Dict

from models.scan_session import FACE_SHAPE_LABELS, HAIR_TYPE_LABELS, METRIC_KEYS

FUNCTION_NAME = "report_hair_analysis"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": (
        "Report whether a usable head shot was detected and score hairstyle-to-face compatibility."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "face_detected": {"type": "boolean"},
            "validation": {
                "type": "object",
                "properties": {
                    "head_fully_visible": {"type": "boolean"},
                    "hair_clearly_visible": {"type": "boolean"},
                    "lighting_ok": {"type": "boolean"},
                },
                "required": ["head_fully_visible", "hair_clearly_visible", "lighting_ok"],
                "additionalProperties": False,
            },
            "scores": {
                "type": "object",
                "description": "Integer compatibility scores from 0 to 100.",
                "properties": {key: {"type": "integer"} for key in METRIC_KEYS},
                "required": list(METRIC_KEYS),
                "additionalProperties": False,
            },
            "face_shape_label": {"type": "string", "enum": list(FACE_SHAPE_LABELS)},
            "hair_type_label": {"type": "string", "enum": list(HAIR_TYPE_LABELS)},
        },
        "required": ["face_detected", "validation", "scores", "face_shape_label", "hair_type_label"],
        "additionalProperties": False,
    },
    "strict": True,
}

SYSTEM_PROMPT = (
    "You are an expert barber and facial analysis assistant. Analyze the photo strictly. "
    "The person's full head (front or profile) including hair must be inside the frame, sharp, "
    "and reasonably well-lit, not heavily obstructed by hats or hoods and not cropped at the top or bottom. "
    "If these requirements are not met, set face_detected to false."
)

USER_PROMPT = (
    "If a face is detected, compute objective compatibility scores from 0-100 (integers) that make sense "
    "given visible features. Avoid rounding everything to multiples of 5; use natural variety."
)
