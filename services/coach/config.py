"""Environment-driven configuration for the coach and scan services."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

LOGGER = logging.getLogger(__name__)

DEFAULT_DATABASE_DIR = Path(__file__).resolve().parent.parent.parent / "database"


def _env_int(name: str, default: int) -> int:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	try:
		return int(raw)
	except ValueError:
		LOGGER.warning("Ignoring %s=%r; expected an integer, using %s", name, raw, default)
		return default


def _env_float(name: str, default: float) -> float:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	try:
		return float(raw)
	except ValueError:
		LOGGER.warning("Ignoring %s=%r; expected a number, using %s", name, raw, default)
		return default


def _env_bool(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GenerationConfig:
	"""Sampling settings sent with every completion request."""

	max_output_tokens: int = 400
	temperature: float = 0.4
	top_p: float = 0.8
	top_k: int = 20
	forward_top_k: bool = False

	def request_options(self) -> Dict[str, Any]:
		"""Return keyword arguments for ``responses.create``."""
		options: Dict[str, Any] = {
			"max_output_tokens": self.max_output_tokens,
			"temperature": self.temperature,
			"top_p": self.top_p,
		}
		if self.forward_top_k:
			options["extra_body"] = {"top_k": self.top_k}
		return options


@dataclass(frozen=True)
class ConfigurationStatus:
	"""Result of checking whether the upstream credentials are present."""

	configured: bool
	missing: List[str] = field(default_factory=list)

	@property
	def notice(self) -> Optional[str]:
		if self.configured:
			return None
		return f"Please configure {', '.join(self.missing)} in the environment variables."


@dataclass(frozen=True)
class CoachConfig:
	"""All knobs for one running service instance."""

	api_key: Optional[str] = None
	model: str = "gpt-4o-mini"
	generation: GenerationConfig = field(default_factory=GenerationConfig)
	max_history: int = 10
	context_window: int = 6
	bubble_delay_ms: int = 1000
	vision_model: str = "gpt-4o"
	image_model: str = "gpt-image-1"
	database_dir: Path = DEFAULT_DATABASE_DIR

	def __post_init__(self) -> None:
		if self.max_history < 1:
			raise ValueError("max_history must be at least 1.")
		if self.context_window < 0:
			raise ValueError("context_window must not be negative.")
		if self.bubble_delay_ms < 0:
			raise ValueError("bubble_delay_ms must not be negative.")

	@property
	def bubble_delay_seconds(self) -> float:
		return self.bubble_delay_ms / 1000.0


def check_configuration(config: CoachConfig) -> ConfigurationStatus:
	"""Report missing credentials without raising."""
	missing = [] if config.api_key else ["OPENAI_API_KEY"]
	return ConfigurationStatus(configured=not missing, missing=missing)


def load_coach_config() -> CoachConfig:
	"""Build a ``CoachConfig`` from environment variables (and ``.env``)."""
	generation = GenerationConfig(
		max_output_tokens=_env_int("COACH_MAX_TOKENS", 400),
		temperature=_env_float("COACH_TEMPERATURE", 0.4),
		top_p=_env_float("COACH_TOP_P", 0.8),
		top_k=_env_int("COACH_TOP_K", 20),
		forward_top_k=_env_bool("COACH_FORWARD_TOP_K", False),
	)
	database_dir = os.getenv("DATABASE_DIR")
	config = CoachConfig(
		api_key=os.getenv("OPENAI_API_KEY") or None,
		model=os.getenv("COACH_MODEL", "gpt-4o-mini"),
		generation=generation,
		max_history=_env_int("COACH_MAX_HISTORY", 10),
		context_window=_env_int("COACH_CONTEXT_WINDOW", 6),
		bubble_delay_ms=_env_int("COACH_BUBBLE_DELAY_MS", 1000),
		vision_model=os.getenv("SCAN_VISION_MODEL", "gpt-4o"),
		image_model=os.getenv("SCAN_IMAGE_MODEL", "gpt-image-1"),
		database_dir=Path(database_dir).expanduser() if database_dir and database_dir.strip() else DEFAULT_DATABASE_DIR,
	)
	status = check_configuration(config)
	if not status.configured:
		LOGGER.warning("Missing %s; chat and scan requests will report an unconfigured state.", ", ".join(status.missing))
	return config
