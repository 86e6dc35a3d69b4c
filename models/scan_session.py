"""Scan result models: clamped hair metrics and the persisted last-scan record."""

from __future__ import annotations

import json
import math
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

SCORE_MIN = 40
SCORE_MAX = 85
DEFAULT_SCORE = 62

METRIC_KEYS: Tuple[str, ...] = (
    "face_shape",
    "facial_ratio",
    "hair_type",
    "jawline",
    "hairline",
    "ear_shape",
)

FACE_SHAPE_LABELS = ("oval", "round", "square", "heart", "diamond", "oblong", "triangle")
HAIR_TYPE_LABELS = ("straight", "wavy", "curly", "coily")


def clamp_score(value: float, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    """Clamp a raw score into ``[low, high]`` and return it as an int."""
    return int(max(low, min(high, round_half_up(value))))


def round_half_up(value: float) -> int:
    """Round like ``Math.round`` on the client: halves go up, not to even."""
    return int(math.floor(value + 0.5))


def compute_average(values) -> int:
    """Return the clamped, rounded arithmetic mean of the metric values."""
    values = list(values)
    if not values:
        raise ValueError("At least one metric value is required.")
    return clamp_score(sum(values) / len(values))


def display_score(value: int) -> int:
    """Remap a stored score from [40, 85] onto [0, 100] for presentation."""
    bounded = max(SCORE_MIN, min(SCORE_MAX, value))
    return round_half_up((bounded - SCORE_MIN) * 100 / (SCORE_MAX - SCORE_MIN))


@dataclass(frozen=True)
class HairMetrics:
    """Six compatibility scores, each within [SCORE_MIN, SCORE_MAX]."""

    face_shape: int
    facial_ratio: int
    hair_type: int
    jawline: int
    hairline: int
    ear_shape: int

    def __post_init__(self) -> None:
        for key in METRIC_KEYS:
            value = getattr(self, key)
            if not SCORE_MIN <= value <= SCORE_MAX:
                raise ValueError(f"Metric {key}={value} outside [{SCORE_MIN}, {SCORE_MAX}]")

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "HairMetrics":
        """Build metrics from untrusted model output, defaulting and clamping each value."""
        raw = raw or {}
        values: Dict[str, int] = {}
        for key in METRIC_KEYS:
            candidate = raw.get(key)
            try:
                number = float(candidate) if candidate is not None else float(DEFAULT_SCORE)
            except (TypeError, ValueError):
                number = float(DEFAULT_SCORE)
            if not math.isfinite(number):
                number = float(DEFAULT_SCORE)
            values[key] = clamp_score(number)
        return cls(**values)

    def values(self) -> Tuple[int, ...]:
        return tuple(getattr(self, key) for key in METRIC_KEYS)

    def average(self) -> int:
        return compute_average(self.values())

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ScanSession:
    """The single persisted record of the most recent completed scan.

    Attributes:
        image_uri: Opaque locator of the scanned photo (not owned content).
        metrics: Clamped hair compatibility metrics.
        average: Rounded mean of ``metrics``, clamped to the same range.
        created_at: Unix timestamp in milliseconds.
    """

    image_uri: str
    metrics: HairMetrics
    average: int
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def from_metrics(cls, image_uri: str, metrics: HairMetrics) -> "ScanSession":
        return cls(image_uri=image_uri, metrics=metrics, average=metrics.average())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_uri": self.image_uri,
            "metrics": self.metrics.to_dict(),
            "average": self.average,
            "created_at": self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanSession":
        metrics = HairMetrics(**{key: int(data["metrics"][key]) for key in METRIC_KEYS})
        return cls(
            image_uri=str(data["image_uri"]),
            metrics=metrics,
            average=clamp_score(int(data["average"])),
            created_at=int(data["created_at"]),
        )

    @classmethod
    def from_json(cls, payload: str) -> "ScanSession":
        return cls.from_dict(json.loads(payload))


class ScanFailureReason(str, Enum):
    NO_FACE = "no_face"
    API_ERROR = "api_error"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True)
class ScanSuccess:
    """Successful vision scoring outcome."""

    metrics: HairMetrics
    average: int
    face_shape_label: str
    hair_type_label: str
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "metrics": self.metrics.to_dict(),
            "average": self.average,
            "face_shape_label": self.face_shape_label,
            "hair_type_label": self.hair_type_label,
        }


@dataclass(frozen=True)
class ScanFailure:
    """Typed vision scoring failure."""

    reason: ScanFailureReason
    message: str
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "reason": self.reason.value, "message": self.message}


ScanOutcome = Union[ScanSuccess, ScanFailure]
