"""
Location acquisition for check-ins.

The device capability is abstracted behind `PositionSource` so the flow can
be driven by a browser bridge, a phone SDK, or a fixed test fixture alike.
One request per attempt, high accuracy, no cached fixes.  Retries are the
user's decision: there is no backoff here.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from .exceptions import LocationDenied, LocationTimeout, LocationUnavailable
from .models import LocationReading, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class PositionSource(ABC):
    """Anything that can report where the device is right now."""

    @abstractmethod
    async def get_current_position(
        self, *, high_accuracy: bool = True, maximum_age: float = 0.0
    ) -> LocationReading:
        """Return a fix, or raise PermissionError / OSError on failure."""


class StaticPositionSource(PositionSource):
    """Reports a fixed position (demo kiosk, tests)."""

    def __init__(self, latitude: float, longitude: float, accuracy_m: float = 5.0):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m

    async def get_current_position(
        self, *, high_accuracy: bool = True, maximum_age: float = 0.0
    ) -> LocationReading:
        return LocationReading(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy_m=self.accuracy_m,
            captured_at=utc_now(),
        )


class FailingPositionSource(PositionSource):
    """Always fails with the given exception (permission denied by default)."""

    def __init__(self, error: Exception | None = None):
        self.error = error or PermissionError("User denied Geolocation")

    async def get_current_position(
        self, *, high_accuracy: bool = True, maximum_age: float = 0.0
    ) -> LocationReading:
        raise self.error


class LocationAcquirer:
    """Requests the current position once per call, within a bounded wait."""

    def __init__(
        self,
        source: PositionSource | None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.source = source
        self.timeout = timeout

    async def acquire(self) -> LocationReading:
        """Get a fresh fix or raise a LocationError subclass."""
        if self.source is None:
            raise LocationUnavailable("Geolocation is not supported on this device")

        attempt_started: datetime = utc_now()
        try:
            reading = await asyncio.wait_for(
                self.source.get_current_position(high_accuracy=True, maximum_age=0.0),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Location request timed out after %.1fs", self.timeout)
            raise LocationTimeout(
                f"Could not access location within {self.timeout:g} seconds.",
                {"timeout_seconds": self.timeout},
            ) from exc
        except PermissionError as exc:
            logger.warning("Location permission denied: %s", exc)
            raise LocationDenied(
                f"Could not access location. ({exc})", {"reason": "permission"}
            ) from exc
        except OSError as exc:
            logger.warning("Location source error: %s", exc)
            raise LocationDenied(
                f"Could not access location. ({exc})", {"reason": "source_error"}
            ) from exc
        except Exception as exc:
            logger.warning("Location source failed: %r", exc)
            raise LocationDenied(
                "Could not access location. The device returned an unusable fix.",
                {"reason": "source_error"},
            ) from exc

        captured_at = reading.captured_at
        if captured_at.tzinfo is None:
            # Naive fixes are taken to be UTC
            captured_at = captured_at.replace(tzinfo=timezone.utc)
            reading = reading.model_copy(update={"captured_at": captured_at})

        # A fix older than this attempt is a cached position
        if captured_at < attempt_started:
            logger.warning(
                "Discarding stale fix from %s (attempt started %s)",
                reading.captured_at.isoformat(),
                attempt_started.isoformat(),
            )
            raise LocationTimeout(
                "Only a cached position was available. Please try again.",
                {"captured_at": reading.captured_at.isoformat()},
            )

        logger.info(
            "Location acquired (%.5f, %.5f) ±%.0fm",
            reading.latitude,
            reading.longitude,
            reading.accuracy_m,
        )
        return reading
