"""
Identity verification for check-ins.

The matcher is a strategy.  The current product ships `AlwaysMatch`; a real
face-matching backend plugs in by subclassing `FaceMatcher` and nothing in
the check-in flow changes.

Two outcomes must never be confused:
  - `VerificationResult(verified=False, ...)` — the call worked, the faces differ.
  - `VerificationServiceError` — the call itself failed; the user may retry
    without recapturing anything.

`VerificationSimulator` pads every call to a minimum duration so the
"Verifying identity..." screen is actually seen.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod

from .exceptions import VerificationServiceError
from .models import CapturedPhoto, VerificationResult

logger = logging.getLogger(__name__)

FACE_MISMATCH_NOTE = "Face mismatch detected (Automated Check)"
DEFAULT_MIN_DURATION = 2.5


class FaceMatcher(ABC):
    """Compares a freshly captured photo against the client's file photo.

    Implementations for a real service should raise on transport or service
    failure and return `verified=False` only for a genuine non-match.
    """

    @abstractmethod
    async def match(self, reference_photo_url: str, photo: CapturedPhoto) -> VerificationResult:
        ...


class AlwaysMatch(FaceMatcher):
    """Placeholder matcher: every selfie matches."""

    async def match(self, reference_photo_url: str, photo: CapturedPhoto) -> VerificationResult:
        return VerificationResult(verified=True)


class FixedOutcomeMatcher(FaceMatcher):
    """Returns the same configured outcome every time (negative-path testing)."""

    def __init__(self, verified: bool, notes: str | None = None):
        if not verified and notes is None:
            notes = FACE_MISMATCH_NOTE
        self.result = VerificationResult(verified=verified, notes=notes)

    async def match(self, reference_photo_url: str, photo: CapturedPhoto) -> VerificationResult:
        return self.result


class VerificationSimulator:
    """Runs a FaceMatcher with a perceptible minimum duration."""

    def __init__(
        self,
        matcher: FaceMatcher | None = None,
        min_duration: float = DEFAULT_MIN_DURATION,
    ):
        self.matcher = matcher or AlwaysMatch()
        self.min_duration = max(0.0, min_duration)

    async def verify(self, reference_photo_url: str, photo: CapturedPhoto) -> VerificationResult:
        """Compare photos; raise VerificationServiceError only if the matcher fails."""
        started = time.monotonic()
        logger.info("Comparing biometric data with %s", type(self.matcher).__name__)

        try:
            raw = await self.matcher.match(reference_photo_url, photo)
        except VerificationServiceError:
            raise
        except Exception as exc:
            logger.error("Face matcher failed: %s", exc)
            raise VerificationServiceError(
                f"Identity verification service failed: {exc}",
                {"matcher": type(self.matcher).__name__},
            ) from exc

        remaining = self.min_duration - (time.monotonic() - started)
        if remaining > 0:
            await asyncio.sleep(remaining)

        # Notes only ever explain a negative match
        result = raw if not raw.verified else VerificationResult(verified=True)
        if result.verified:
            logger.info("Identity verified")
        else:
            logger.warning("Identity NOT verified: %s", result.notes)
        return result
