"""
Pydantic models for agency data — strict typing at every boundary.

The check-in models are the audit trail: a CheckInRecord is frozen the
moment it is built. Everything else (clients, cases, authorities) mirrors
the agency's working records and stays mutable like any CRUD row.
"""

from __future__ import annotations

import secrets
import string
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_record_id(length: int = 9) -> str:
    """Short random base36 identifier, e.g. 'k3x9q0b2m'."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ─── Case Status ────────────────────────────────────────────────────


class CaseStatus(str, Enum):
    """Lifecycle status of a bond case."""

    ACTIVE = "Active"
    FTA = "FTA (Forfeiture)"  # Failure to Appear, bond in forfeiture
    CLOSED = "Closed"
    PENDING = "Pending"


class CheckInStatus(str, Enum):
    """Where a single check-in attempt currently stands."""

    IDLE = "idle"
    VERIFYING = "verifying"
    DONE = "done"
    ABANDONED = "abandoned"


# ─── Check-In Models ────────────────────────────────────────────────


class LocationReading(BaseModel):
    """A single position fix from the device."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy_m: float = Field(default=0.0, ge=0)  # Radius in meters
    captured_at: datetime = Field(default_factory=utc_now)


class CapturedPhoto(BaseModel):
    """A selfie encoded as a data URL, ready to embed in a record."""

    model_config = ConfigDict(frozen=True)

    data_url: str
    content_type: str
    size_bytes: int = 0


class VerificationResult(BaseModel):
    """Outcome of comparing a selfie to the client's file photo.

    `verified=False` is a successful call with a negative answer, not an error.
    """

    model_config = ConfigDict(frozen=True)

    verified: bool
    notes: Optional[str] = None


class CheckInRecord(BaseModel):
    """One immutable entry in the check-in audit log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    client_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    photo_data: str
    verified: bool
    notes: Optional[str] = None


# ─── Client Models ──────────────────────────────────────────────────


class Employer(BaseModel):
    name: str
    phone: str
    address: str


class VehicleInfo(BaseModel):
    make: str
    model: str
    plate: str
    year: str
    color: str


class Client(BaseModel):
    """A defendant the agency has bonded out."""

    id: str
    name: str
    phone: str
    email: str
    language: str = "en"  # "en" | "es"
    balance: float = 0.0
    next_court_date: Optional[datetime] = None
    court_location: str = ""
    case_number: str = ""
    photo_url: str = ""  # Reference photo used for identity checks

    # Extended intake fields
    dob: Optional[date] = None
    ssn: Optional[str] = None  # Stored masked
    dl_number: Optional[str] = None
    booking_number: Optional[str] = None
    secondary_phone: Optional[str] = None
    address: Optional[str] = None
    residency_duration: Optional[str] = None
    employer: Optional[Employer] = None
    vehicle_info: Optional[VehicleInfo] = None
    identifying_marks: Optional[str] = None


# ─── Case Models ────────────────────────────────────────────────────


class Indemnitor(BaseModel):
    """Third party financially responsible for the bond."""

    name: str
    relation: str
    phone: str
    email: str
    address: str
    dob: Optional[date] = None


class Collateral(BaseModel):
    type: str
    value: float
    description: str


class CommunicationLogEntry(BaseModel):
    """A contact with a court, clerk, or sheriff about a case."""

    id: str = Field(default_factory=new_record_id)
    timestamp: datetime = Field(default_factory=utc_now)
    recipient: str  # e.g. "Wake Clerk"
    type: str  # Phone | Email | Fax | In-Person | Filing
    purpose: str
    summary: str
    reference_id: Optional[str] = None  # eCourts tracking ID


class CaseDocument(BaseModel):
    id: str = Field(default_factory=new_record_id)
    type: str  # Arrest Report | Mugshot | Indemnification | Collateral | Court Notice | Other
    name: str
    url: str  # Data URL or remote URL
    timestamp: datetime = Field(default_factory=utc_now)


class CaseFile(BaseModel):
    """A single bond written for a client."""

    id: str
    client_id: str
    bond_amount: float
    premium: float
    balance_paid: float = 0.0
    status: CaseStatus = CaseStatus.PENDING
    county: str
    notes: str = ""
    indemnitors: list[Indemnitor] = Field(default_factory=list)
    poa_number: Optional[str] = None
    collateral: Optional[Collateral] = None
    charges: list[str] = Field(default_factory=list)
    communication_log: list[CommunicationLogEntry] = Field(default_factory=list)
    documents: list[CaseDocument] = Field(default_factory=list)


# ─── Skip Trace / Authorities ───────────────────────────────────────


class SkipTraceLogEntry(BaseModel):
    """One investigative action taken to locate a client."""

    id: str = Field(default_factory=new_record_id)
    client_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    action: str
    result: str


class ClerkContact(BaseModel):
    phone: str
    email: str
    address: str


class SheriffContact(BaseModel):
    phone: str
    address: str


class DistrictAttorneyContact(BaseModel):
    phone: str
    email: str


class AuthorityContact(BaseModel):
    """Court, sheriff, and DA contacts for one county."""

    county: str
    clerk: ClerkContact
    sheriff: SheriffContact
    da: DistrictAttorneyContact


# ─── Dashboard ──────────────────────────────────────────────────────


class AgentStats(BaseModel):
    active_bonds_count: int
    total_liability: float
    fta_count: int
    check_ins_due_today: int
