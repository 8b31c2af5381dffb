"""
Check-in flow — orchestrates one client check-in attempt.

Flow:
  ┌──────────┐     ┌──────────┐
  │ Location │     │  Selfie  │   ← Independent steps, either order, retryable
  └────┬─────┘     └────┬─────┘
       │                │
       └───────┬────────┘
               │  submit (only when both present)
        ┌──────▼───────┐
        │ Verification │   ← state: VERIFYING, submit disabled
        └──────┬───────┘
               │
        ┌──────▼───────┐
        │  Append log  │   ← one immutable record per attempt
        └──────┬───────┘
               │
        ┌──────▼───────┐
        │     DONE     │   ← negative match still lands here
        └──────────────┘

Design principles:
  - Nothing is stored until location, photo and verification are all in.
  - One submission per attempt; a second submit is rejected, never queued.
  - A negative match is a completed check-in with `verified=False`.
  - A verification *service* failure stores nothing and keeps the captured
    location and photo so the user can simply press submit again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Union

from .exceptions import IncompleteCheckIn, SubmissionInProgress, VerificationServiceError
from .location import LocationAcquirer
from .mock_db import MockDatabase
from .models import (
    CapturedPhoto,
    CheckInRecord,
    CheckInStatus,
    LocationReading,
    utc_now,
)
from .photo import PhotoCapturer
from .store import CheckInLogStore
from .verification import VerificationSimulator

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[CheckInRecord], Union[Awaitable[None], None]]

DEFAULT_COMPLETE_DELAY = 1.5


class CheckInFlow:
    """State machine for a single check-in attempt.

    Usage:
        flow = CheckInFlow("c1", db, acquirer, simulator)
        await flow.acquire_location()
        flow.capture_photo(selfie_bytes, "image/jpeg")
        record = await flow.submit()
    """

    def __init__(
        self,
        client_id: str,
        db: MockDatabase,
        acquirer: LocationAcquirer,
        simulator: VerificationSimulator,
        *,
        store: CheckInLogStore | None = None,
        complete_delay: float = DEFAULT_COMPLETE_DELAY,
        on_complete: CompletionCallback | None = None,
    ):
        self.client_id = client_id
        self.db = db
        self.store = store if store is not None else db.check_ins
        self.acquirer = acquirer
        self.simulator = simulator
        self.photos = PhotoCapturer()
        self.complete_delay = max(0.0, complete_delay)
        self.on_complete = on_complete

        self.status = CheckInStatus.IDLE
        self.location: LocationReading | None = None
        self.record: CheckInRecord | None = None
        self.error: str | None = None

    # ─── Steps ──────────────────────────────────────────────────────

    @property
    def photo(self) -> CapturedPhoto | None:
        return self.photos.current

    @property
    def can_submit(self) -> bool:
        return (
            self.status == CheckInStatus.IDLE
            and self.location is not None
            and self.photo is not None
        )

    async def acquire_location(self) -> LocationReading:
        """Step 1. On failure the error is kept for display and re-raised."""
        self._ensure_editable()
        self.error = None
        try:
            self.location = await self.acquirer.acquire()
        except Exception as exc:
            self.error = str(exc)
            raise
        return self.location

    def capture_photo(self, data: bytes | str | None, content_type: str | None = None) -> CapturedPhoto:
        """Step 2. Replaces any previously captured photo."""
        self._ensure_editable()
        return self.photos.capture(data, content_type)

    def discard_photo(self) -> None:
        self._ensure_editable()
        self.photos.discard()

    def abandon(self) -> None:
        """The user navigated away. An in-flight verification still resolves."""
        if self.status in (CheckInStatus.IDLE, CheckInStatus.VERIFYING):
            logger.info("Check-in for client %s abandoned while %s", self.client_id, self.status.value)
            self.status = CheckInStatus.ABANDONED

    # ─── Submit ─────────────────────────────────────────────────────

    async def submit(self) -> CheckInRecord:
        """Verify identity and append exactly one record to the log.

        Raises:
            IncompleteCheckIn: location, photo, or client missing. Nothing stored.
            SubmissionInProgress: already verifying, done, or abandoned.
            VerificationServiceError: matcher failed. Nothing stored; retry allowed.
        """
        if self.status != CheckInStatus.IDLE:
            raise SubmissionInProgress(
                f"Check-in cannot be submitted while {self.status.value}",
                {"status": self.status.value},
            )

        missing = self._check_required()
        if missing:
            raise IncompleteCheckIn(
                f"Cannot submit check-in, missing: {', '.join(missing)}",
                {"missing": missing},
            )

        client = self.db.find_client(self.client_id)
        if client is None:
            raise IncompleteCheckIn(
                f"Unknown client '{self.client_id}'", {"client_id": self.client_id}
            )

        # Type narrowing: _check_required verified these are non-None
        assert self.location is not None
        assert self.photo is not None
        location, photo = self.location, self.photo

        self.status = CheckInStatus.VERIFYING
        self.error = None
        try:
            result = await self.simulator.verify(client.photo_url, photo)
        except VerificationServiceError as exc:
            if self.status == CheckInStatus.VERIFYING:
                self.status = CheckInStatus.IDLE
            self.error = str(exc)
            raise

        record = CheckInRecord(
            client_id=self.client_id,
            timestamp=utc_now(),
            latitude=location.latitude,
            longitude=location.longitude,
            accuracy_m=location.accuracy_m,
            photo_data=photo.data_url,
            verified=result.verified,
            notes=result.notes,
        )
        self.store.append(record)
        self.record = record

        if self.status == CheckInStatus.ABANDONED:
            logger.info("Check-in %s stored after the user left; skipping completion", record.id)
            return record

        self.status = CheckInStatus.DONE
        if self.complete_delay:
            await asyncio.sleep(self.complete_delay)
        await self._notify(record)
        return record

    # ─── Helpers ────────────────────────────────────────────────────

    def _check_required(self) -> list[str]:
        missing: list[str] = []
        if self.location is None:
            missing.append("location")
        if self.photo is None:
            missing.append("photo")
        return missing

    def _ensure_editable(self) -> None:
        if self.status != CheckInStatus.IDLE:
            raise SubmissionInProgress(
                f"Check-in can no longer be edited ({self.status.value})",
                {"status": self.status.value},
            )

    async def _notify(self, record: CheckInRecord) -> None:
        if self.on_complete is None:
            return
        outcome = self.on_complete(record)
        if asyncio.iscoroutine(outcome):
            await outcome
