"""Runtime settings read from the environment (optionally via a .env file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_AI_MODEL = "gpt-4o-mini"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_FRAME_BYTES = 16 * 1024 * 1024


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """All tunables in one place. Delays are UX pacing, not correctness."""

    openai_api_key: str | None = None
    ai_model: str = DEFAULT_AI_MODEL
    verify_delay: float = 2.5  # Minimum perceived duration of the identity check
    complete_delay: float = 1.5  # Pause on the "done" screen before handing back
    location_timeout: float = 10.0
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES  # Selfie upload cap
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES  # Raw RGBA scanner frame cap
    seed_path: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            ai_model=os.environ.get("BONDFLOW_AI_MODEL") or DEFAULT_AI_MODEL,
            verify_delay=_env_float("BONDFLOW_VERIFY_DELAY", 2.5),
            complete_delay=_env_float("BONDFLOW_COMPLETE_DELAY", 1.5),
            location_timeout=_env_float("BONDFLOW_LOCATION_TIMEOUT", 10.0),
            max_upload_bytes=_env_int("BONDFLOW_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            max_frame_bytes=_env_int("BONDFLOW_MAX_FRAME_BYTES", DEFAULT_MAX_FRAME_BYTES),
            seed_path=os.environ.get("BONDFLOW_SEED_PATH") or None,
        )
