#!/usr/bin/env python3
"""
BondFlow — Entry Point
======================

Demonstrates the full check-in flow for a seeded client: location fix,
selfie capture, identity verification, and the append to the audit log.

Usage:
    python main.py                      # Client c1, identity matches
    python main.py --mismatch           # Exercise the negative-match path
    python main.py --client c2 --fast   # Another client, no UX delays
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from bondflow.checkin import CheckInFlow
from bondflow.config import Settings
from bondflow.exceptions import BondFlowError
from bondflow.location import LocationAcquirer, StaticPositionSource
from bondflow.mock_db import MockDatabase
from bondflow.models import CheckInRecord
from bondflow.verification import AlwaysMatch, FixedOutcomeMatcher, VerificationSimulator

# ─── Load .env if available (optional dependency) ────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Demo Inputs ─────────────────────────────────────────────────────

RALEIGH = (35.7796, -78.6382)
DEMO_SELFIE = "data:image/png;base64,AAAA"


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_record(record: CheckInRecord, client_name: str, history: list[CheckInRecord]) -> int:
    """Pretty-print the stored check-in and the client's log.

    Returns:
        0 always; a negative match is still a completed check-in.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  CHECK-IN RECORD{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Record:      {record.id}")
    print(f"  Client:      {client_name} {_DIM}({record.client_id}){_RESET}")
    print(f"  Timestamp:   {record.timestamp.isoformat()}")
    print(f"  Location:    {record.latitude:.4f}, {record.longitude:.4f} ±{record.accuracy_m or 0:.0f}m")
    print(f"  Photo:       {_DIM}{record.photo_data[:32]}...{_RESET}")
    print(f"{'─' * _WIDTH}")

    if record.verified:
        print(f"  {_GREEN}{_BOLD}LOCATION & IDENTITY CONFIRMED{_RESET}")
    else:
        print(f"  {_YELLOW}{_BOLD}FLAGGED FOR REVIEW{_RESET}")
        print(f"  {record.notes}")

    print(f"{'─' * _WIDTH}")
    print(f"  {_CYAN}LOG FOR {record.client_id} ({len(history)}){_RESET}")
    for entry in history:
        mark = f"{_GREEN}✓{_RESET}" if entry.verified else f"{_YELLOW}!{_RESET}"
        print(f"    {mark} {entry.timestamp:%Y-%m-%d %H:%M} UTC  {entry.id}")
    print(f"{'=' * _WIDTH}\n")
    return 0


# ─── Main ────────────────────────────────────────────────────────────


async def run(client_id: str, mismatch: bool, fast: bool) -> int:
    settings = Settings.from_env()
    db = MockDatabase.from_path(settings.seed_path)
    client = db.find_client(client_id)
    if client is None:
        print(f"  {_RED}Unknown client '{client_id}'{_RESET}")
        return 1

    matcher = FixedOutcomeMatcher(verified=False) if mismatch else AlwaysMatch()
    flow = CheckInFlow(
        client_id,
        db,
        LocationAcquirer(StaticPositionSource(*RALEIGH), timeout=settings.location_timeout),
        VerificationSimulator(matcher, min_duration=0.0 if fast else settings.verify_delay),
        complete_delay=0.0 if fast else settings.complete_delay,
    )

    try:
        print("  Step 1: Getting location...")
        await flow.acquire_location()
        print("  Step 2: Capturing selfie...")
        flow.capture_photo(DEMO_SELFIE)
        print("  Verifying identity... comparing biometric data...")
        record = await flow.submit()
    except BondFlowError as exc:
        print(f"  {_RED}[{exc.code}]{_RESET} {exc}")
        return 1

    return print_record(record, client.name, db.check_ins.list_by_client(client_id))


def main():
    """Run one demo check-in and print the resulting record."""
    parser = argparse.ArgumentParser(description="Run a demo BondFlow check-in.")
    parser.add_argument("--client", default="c1", help="client id (default: c1)")
    parser.add_argument("--mismatch", action="store_true", help="simulate a face mismatch")
    parser.add_argument("--fast", action="store_true", help="skip the UX pacing delays")
    parser.add_argument("-v", "--verbose", action="store_true", help="show log output")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n  Starting BondFlow weekly check-in...\n")
    sys.exit(asyncio.run(run(args.client, args.mismatch, args.fast)))


if __name__ == "__main__":
    main()
