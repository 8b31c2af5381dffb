"""
Append-only check-in log.

This is a compliance audit trail: records go in at the head and never come
out or change.  There is deliberately no update or delete method.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .exceptions import IncompleteCheckIn
from .models import CheckInRecord

logger = logging.getLogger(__name__)


class CheckInLogStore:
    """Newest-first collection of immutable CheckInRecords.

    Usage:
        store = CheckInLogStore()
        store.append(record)
        store.list_by_client("c1")   # newest first
    """

    def __init__(self, records: Iterable[CheckInRecord] = ()):
        self._records: list[CheckInRecord] = sorted(
            records, key=lambda r: r.timestamp, reverse=True
        )

    def append(self, record: CheckInRecord) -> CheckInRecord:
        """Insert a record at the head of the log."""
        missing = _missing_fields(record)
        if missing:
            raise IncompleteCheckIn(
                f"Check-in record is missing required field(s): {', '.join(missing)}",
                {"missing": missing},
            )
        self._records.insert(0, record)
        logger.info(
            "Appended check-in %s for client %s (verified=%s)",
            record.id,
            record.client_id,
            record.verified,
        )
        return record

    def list_all(self) -> list[CheckInRecord]:
        return list(self._records)

    def list_by_client(self, client_id: str) -> list[CheckInRecord]:
        return [r for r in self._records if r.client_id == client_id]

    def latest_for_client(self, client_id: str) -> CheckInRecord | None:
        return next((r for r in self._records if r.client_id == client_id), None)

    def __len__(self) -> int:
        return len(self._records)


def _missing_fields(record: CheckInRecord) -> list[str]:
    missing: list[str] = []
    if not record.client_id:
        missing.append("client_id")
    if record.latitude is None or record.longitude is None:
        missing.append("coordinates")
    if not record.photo_data:
        missing.append("photo_data")
    if record.verified is None:
        missing.append("verified")
    return missing
