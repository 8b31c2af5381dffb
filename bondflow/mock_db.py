"""
In-memory data layer for the agency back office.

Seed data lives in `seed_data.json` next to this module.  Relative dates in
the seed ("court in 3 days", "checked in 24 hours ago") are resolved at load
time so the demo data always looks current.

Each MockDatabase instance owns its state, including its CheckInLogStore.
Tests build their own instance; nothing here is a module-level singleton.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .exceptions import CaseNotFound, ClientNotFound
from .models import (
    AgentStats,
    AuthorityContact,
    CaseDocument,
    CaseFile,
    CaseStatus,
    CheckInRecord,
    Client,
    CommunicationLogEntry,
    SkipTraceLogEntry,
    utc_now,
)
from .store import CheckInLogStore

logger = logging.getLogger(__name__)

DEFAULT_SEED_PATH = Path(__file__).parent / "seed_data.json"


# ─── Seed Loading ────────────────────────────────────────────────────


def load_seed_data(path: str | Path | None = None) -> dict[str, list[dict[str, Any]]]:
    """Load raw seed data from JSON.

    Args:
        path: Path to a seed file. Defaults to the bundled seed_data.json.
    """
    resolved = DEFAULT_SEED_PATH if path is None else Path(path)

    with resolved.open(encoding="utf-8") as f:
        result: dict[str, list[dict[str, Any]]] = json.load(f)
        return result


def _resolve_relative_dates(row: dict[str, Any], now: datetime) -> dict[str, Any]:
    row = dict(row)
    if "next_court_in_days" in row:
        row["next_court_date"] = now + timedelta(days=row.pop("next_court_in_days"))
    if "hours_ago" in row:
        row["timestamp"] = now - timedelta(hours=row.pop("hours_ago"))
    return row


# ─── Database ────────────────────────────────────────────────────────


class MockDatabase:
    """Clients, cases, authorities, skip-trace log and the check-in log."""

    def __init__(self, seed: dict[str, list[dict[str, Any]]] | None = None):
        seed = load_seed_data() if seed is None else seed
        now = utc_now()

        self.clients: list[Client] = [
            Client.model_validate(_resolve_relative_dates(row, now))
            for row in seed.get("clients", [])
        ]
        self.cases: list[CaseFile] = [
            CaseFile.model_validate(row) for row in seed.get("cases", [])
        ]
        self.authorities: list[AuthorityContact] = [
            AuthorityContact.model_validate(row) for row in seed.get("authorities", [])
        ]
        self.skip_trace_logs: list[SkipTraceLogEntry] = [
            SkipTraceLogEntry.model_validate(_resolve_relative_dates(row, now))
            for row in seed.get("skip_trace_logs", [])
        ]
        self.check_ins = CheckInLogStore(
            CheckInRecord.model_validate(_resolve_relative_dates(row, now))
            for row in seed.get("check_ins", [])
        )
        logger.info(
            "Loaded %d clients, %d cases, %d authorities, %d check-ins",
            len(self.clients),
            len(self.cases),
            len(self.authorities),
            len(self.check_ins),
        )

    @classmethod
    def from_path(cls, path: str | Path | None = None) -> MockDatabase:
        return cls(load_seed_data(path))

    # ── Clients ─────────────────────────────────────────────────────

    def get_clients(self) -> list[Client]:
        return list(self.clients)

    def get_client(self, client_id: str) -> Client:
        for client in self.clients:
            if client.id == client_id:
                return client
        raise ClientNotFound(client_id)

    def find_client(self, client_id: str) -> Client | None:
        return next((c for c in self.clients if c.id == client_id), None)

    def create_client(self, client: Client) -> Client:
        self.clients.insert(0, client)
        return client

    # ── Cases ───────────────────────────────────────────────────────

    def get_cases(self) -> list[CaseFile]:
        return list(self.cases)

    def get_case(self, case_id: str) -> CaseFile:
        for case in self.cases:
            if case.id == case_id:
                return case
        raise CaseNotFound(case_id)

    def get_cases_for_client(self, client_id: str) -> list[CaseFile]:
        return [c for c in self.cases if c.client_id == client_id]

    def create_case(self, case: CaseFile) -> CaseFile:
        self.cases.insert(0, case)
        return case

    def add_communication_log(self, case_id: str, entry: CommunicationLogEntry) -> CaseFile:
        case = self.get_case(case_id)
        case.communication_log.insert(0, entry)
        return case

    def add_document_to_case(self, case_id: str, document: CaseDocument) -> CaseFile:
        case = self.get_case(case_id)
        case.documents.insert(0, document)
        return case

    # ── Authorities ─────────────────────────────────────────────────

    def get_authorities(self) -> list[AuthorityContact]:
        return list(self.authorities)

    def get_authority(self, county: str) -> AuthorityContact | None:
        wanted = county.strip().lower().removesuffix(" county")
        return next((a for a in self.authorities if a.county.lower() == wanted), None)

    # ── Skip Trace ──────────────────────────────────────────────────

    def get_skip_trace_logs(self, client_id: str) -> list[SkipTraceLogEntry]:
        return [entry for entry in self.skip_trace_logs if entry.client_id == client_id]

    def add_skip_trace_log(self, entry: SkipTraceLogEntry) -> SkipTraceLogEntry:
        self.get_client(entry.client_id)
        self.skip_trace_logs.insert(0, entry)
        return entry

    # ── Dashboard ───────────────────────────────────────────────────

    def get_stats(self) -> AgentStats:
        """Headline numbers for the agent dashboard.

        "Check-ins due today" counts clients with at least one active bond
        who have not checked in since midnight UTC.
        """
        today = utc_now().date()
        active_clients = {c.client_id for c in self.cases if c.status == CaseStatus.ACTIVE}
        due = 0
        for client_id in active_clients:
            latest = self.check_ins.latest_for_client(client_id)
            if latest is None or latest.timestamp.date() < today:
                due += 1

        return AgentStats(
            active_bonds_count=sum(1 for c in self.cases if c.status == CaseStatus.ACTIVE),
            total_liability=sum(c.bond_amount for c in self.cases),
            fta_count=sum(1 for c in self.cases if c.status == CaseStatus.FTA),
            check_ins_due_today=due,
        )
