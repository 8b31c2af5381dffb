"""
BondFlow — FastAPI Server
=========================

HTTP surface for the agency back office and the client check-in flow.

Endpoints:
    POST /check-in                        Submit a geo + selfie check-in (multipart)
    GET  /check-ins                       Full check-in log, newest first
    GET  /clients                         Client list
    GET  /clients/{id}                    One client
    GET  /clients/{id}/cases              Cases for a client
    GET  /clients/{id}/check-ins          Check-in log for a client
    GET  /clients/{id}/skip-trace         Skip-trace log for a client
    POST /clients/{id}/skip-trace         Record a skip-trace action
    GET  /cases                           All cases
    POST /cases/{id}/communications       Log a court/clerk/sheriff contact
    GET  /authorities                     County authority contacts
    GET  /authorities/{county}            One county's contacts
    GET  /stats                           Dashboard numbers
    POST /ai/generate                     Free-form drafting
    POST /ai/translate                    Translate a message
    POST /ai/social-posts                 Draft posts for several platforms at once
    POST /scanner/enhance                 Contrast-boost a raw RGBA frame
    GET  /health                          Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel, Field

from bondflow import __version__
from bondflow.checkin import CheckInFlow
from bondflow.config import Settings
from bondflow.exceptions import (
    BondFlowError,
    EmptyResponse,
    GatewayError,
    IncompleteCheckIn,
    InvalidCredential,
    PhotoCaptureError,
    RecordNotFound,
    VerificationServiceError,
)
from bondflow.gateway import AIGateway
from bondflow.location import LocationAcquirer, StaticPositionSource
from bondflow.mock_db import MockDatabase
from bondflow.models import (
    AgentStats,
    AuthorityContact,
    CaseFile,
    CheckInRecord,
    Client,
    CommunicationLogEntry,
    SkipTraceLogEntry,
)
from bondflow.scanner import DEFAULT_CONTRAST, enhance_document
from bondflow.verification import VerificationSimulator

# ─── Load .env if available ──────────────────────────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Application Lifespan ────────────────────────────────────────────


@dataclass
class Services:
    """Everything the endpoints need, built once per process."""

    settings: Settings
    db: MockDatabase
    gateway: AIGateway
    simulator: VerificationSimulator

    @classmethod
    def from_settings(cls, settings: Settings) -> Services:
        return cls(
            settings=settings,
            db=MockDatabase.from_path(settings.seed_path),
            gateway=AIGateway(api_key=settings.openai_api_key, model=settings.ai_model),
            simulator=VerificationSimulator(min_duration=settings.verify_delay),
        )


_services: Services | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load seed data and wire services on startup."""
    global _services  # noqa: PLW0603
    _services = Services.from_settings(Settings.from_env())
    yield
    _services = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="BondFlow API",
    description=(
        "Bail-bond agency back office: geo + selfie check-ins with identity "
        "verification, case records, skip tracing, and AI drafting."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class CheckInResponse(BaseModel):
    """Acknowledgement for a created check-in."""

    success: bool
    message: str
    check_in_id: str = Field(serialization_alias="checkInId")
    verified: bool
    notes: Optional[str] = None


class GenerateRequest(BaseModel):
    task: str = Field(..., min_length=1, json_schema_extra={"example": "social post"})
    context: str = Field(default="", json_schema_extra={"example": "Bail bonds services open 24/7"})


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    target_lang: str = Field(default="es", json_schema_extra={"example": "es"})


class SocialPostsRequest(BaseModel):
    platforms: list[str] = Field(..., min_length=1, json_schema_extra={"example": ["X", "Facebook"]})
    topic: str = Field(..., min_length=1)


class TextResponse(BaseModel):
    text: str


class SkipTraceRequest(BaseModel):
    action: str = Field(..., min_length=1, json_schema_extra={"example": "Called employer"})
    result: str = Field(..., min_length=1, json_schema_extra={"example": "Confirmed shift Monday"})


class CommunicationRequest(BaseModel):
    recipient: str = Field(..., min_length=1)
    type: str = Field(..., json_schema_extra={"example": "Phone"})
    purpose: str
    summary: str
    reference_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    clients_loaded: int
    check_ins: int
    ai_available: bool


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_services() -> Services:
    if _services is None:
        raise HTTPException(status_code=503, detail="Services not initialised")
    return _services


def _http_error(exc: BondFlowError) -> HTTPException:
    """Map a domain error to the HTTP status the client should see."""
    if isinstance(exc, RecordNotFound):
        status = 404
    elif isinstance(exc, InvalidCredential):
        status = 401
    elif isinstance(exc, EmptyResponse):
        status = 502
    elif isinstance(exc, GatewayError):
        status = 503
    elif isinstance(exc, VerificationServiceError):
        status = 502
    elif isinstance(exc, (PhotoCaptureError, IncompleteCheckIn)):
        status = 400
    else:
        status = 422
    return HTTPException(status_code=status, detail={"code": exc.code, "message": str(exc)})


# ─── Check-In Endpoints ──────────────────────────────────────────────


@app.post(
    "/check-in",
    status_code=201,
    summary="Submit a geo + selfie check-in",
    tags=["Check-In"],
    responses={
        400: {"description": "Selfie missing or not an image"},
        404: {"description": "Unknown client"},
        413: {"description": "Selfie larger than the configured upload cap"},
        502: {"description": "Identity verification service failed"},
    },
)
async def create_check_in(
    clientId: str = Form(..., min_length=1),  # noqa: N803
    latitude: float = Form(..., ge=-90, le=90),
    longitude: float = Form(..., ge=-180, le=180),
    timestamp: datetime = Form(..., description="Device time of the check-in, ISO 8601"),
    accuracy: Optional[float] = Form(None, ge=0),
    selfie: Optional[UploadFile] = File(None),
) -> CheckInResponse:
    """Run the full check-in flow for coordinates the device already captured.

    A negative identity match is still a created check-in (`verified: false`);
    only a failed verification *service* is an error.
    """
    services = _get_services()
    try:
        services.db.get_client(clientId)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc

    if selfie is None:
        raise HTTPException(status_code=400, detail={"code": "NO_IMAGE_SELECTED", "message": "Selfie image is required."})

    max_bytes = services.settings.max_upload_bytes
    if selfie.size and selfie.size > max_bytes:
        raise HTTPException(status_code=413, detail=f"Selfie too large (max {max_bytes} bytes)")
    content = await selfie.read()
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Selfie too large (max {max_bytes} bytes)")

    flow = CheckInFlow(
        clientId,
        services.db,
        LocationAcquirer(
            StaticPositionSource(latitude, longitude, accuracy or 0.0),
            timeout=services.settings.location_timeout,
        ),
        services.simulator,
        complete_delay=0.0,
    )
    try:
        await flow.acquire_location()
        flow.capture_photo(content, selfie.content_type)
        record = await flow.submit()
    except BondFlowError as exc:
        raise _http_error(exc) from exc

    return CheckInResponse(
        success=True,
        message="Check-in received",
        check_in_id=record.id,
        verified=record.verified,
        notes=record.notes,
    )


@app.get("/check-ins", summary="Full check-in log", tags=["Check-In"])
def list_check_ins() -> list[CheckInRecord]:
    return _get_services().db.check_ins.list_all()


@app.get("/clients/{client_id}/check-ins", summary="Check-in log for one client", tags=["Check-In"])
def list_client_check_ins(client_id: str) -> list[CheckInRecord]:
    services = _get_services()
    try:
        services.db.get_client(client_id)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc
    return services.db.check_ins.list_by_client(client_id)


# ─── Client / Case Endpoints ─────────────────────────────────────────


@app.get("/clients", summary="All clients", tags=["Clients"])
def list_clients() -> list[Client]:
    return _get_services().db.get_clients()


@app.get("/clients/{client_id}", summary="One client", tags=["Clients"])
def get_client(client_id: str) -> Client:
    try:
        return _get_services().db.get_client(client_id)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc


@app.get("/clients/{client_id}/cases", summary="Cases for one client", tags=["Cases"])
def list_client_cases(client_id: str) -> list[CaseFile]:
    services = _get_services()
    try:
        services.db.get_client(client_id)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc
    return services.db.get_cases_for_client(client_id)


@app.get("/cases", summary="All cases", tags=["Cases"])
def list_cases() -> list[CaseFile]:
    return _get_services().db.get_cases()


@app.post("/cases/{case_id}/communications", status_code=201, summary="Log a contact", tags=["Cases"])
def add_communication(case_id: str, request: CommunicationRequest) -> CaseFile:
    entry = CommunicationLogEntry(**request.model_dump())
    try:
        return _get_services().db.add_communication_log(case_id, entry)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc


@app.get("/clients/{client_id}/skip-trace", summary="Skip-trace log", tags=["Skip Trace"])
def list_skip_trace(client_id: str) -> list[SkipTraceLogEntry]:
    services = _get_services()
    try:
        services.db.get_client(client_id)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc
    return services.db.get_skip_trace_logs(client_id)


@app.post(
    "/clients/{client_id}/skip-trace",
    status_code=201,
    summary="Record a skip-trace action",
    tags=["Skip Trace"],
)
def add_skip_trace(client_id: str, request: SkipTraceRequest) -> SkipTraceLogEntry:
    entry = SkipTraceLogEntry(client_id=client_id, action=request.action, result=request.result)
    try:
        return _get_services().db.add_skip_trace_log(entry)
    except RecordNotFound as exc:
        raise _http_error(exc) from exc


@app.get("/authorities", summary="County authority contacts", tags=["Authorities"])
def list_authorities() -> list[AuthorityContact]:
    return _get_services().db.get_authorities()


@app.get("/authorities/{county}", summary="One county's contacts", tags=["Authorities"])
def get_authority(county: str) -> AuthorityContact:
    authority = _get_services().db.get_authority(county)
    if authority is None:
        raise HTTPException(status_code=404, detail=f"No authority contacts for '{county}'")
    return authority


@app.get("/stats", summary="Dashboard numbers", tags=["Dashboard"])
def get_stats() -> AgentStats:
    return _get_services().db.get_stats()


# ─── AI Endpoints ────────────────────────────────────────────────────


@app.post(
    "/ai/generate",
    summary="Free-form drafting",
    tags=["AI"],
    responses={401: {"description": "API key rejected"}, 503: {"description": "AI service unavailable"}},
)
async def ai_generate(request: GenerateRequest) -> TextResponse:
    try:
        text = await _get_services().gateway.generate(request.task, request.context)
    except GatewayError as exc:
        raise _http_error(exc) from exc
    return TextResponse(text=text)


@app.post("/ai/translate", summary="Translate a message", tags=["AI"])
async def ai_translate(request: TranslateRequest) -> TextResponse:
    try:
        text = await _get_services().gateway.translate(request.text, request.target_lang)
    except GatewayError as exc:
        raise _http_error(exc) from exc
    return TextResponse(text=text)


@app.post("/ai/social-posts", summary="Draft posts for several platforms", tags=["AI"])
async def ai_social_posts(request: SocialPostsRequest) -> dict[str, str]:
    try:
        return await _get_services().gateway.generate_social_posts(request.platforms, request.topic)
    except GatewayError as exc:
        raise _http_error(exc) from exc


# ─── Scanner / System ────────────────────────────────────────────────


@app.post(
    "/scanner/enhance",
    summary="Contrast-boost a raw RGBA frame",
    tags=["Scanner"],
    response_class=Response,
    responses={
        413: {"description": "Frame larger than the configured cap"},
        422: {"description": "Body is not a whole number of RGBA pixels"},
    },
)
async def scanner_enhance(request: Request, contrast: float = DEFAULT_CONTRAST) -> Response:
    max_bytes = _get_services().settings.max_frame_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Frame too large (max {max_bytes} bytes)")
    body = await request.body()
    if len(body) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Frame too large (max {max_bytes} bytes)")
    try:
        enhanced = await asyncio.to_thread(enhance_document, body, contrast)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return Response(content=enhanced, media_type="application/octet-stream")


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Services not yet initialised"}},
)
def health_check() -> HealthResponse:
    services = _get_services()
    return HealthResponse(
        status="healthy",
        version=__version__,
        clients_loaded=len(services.db.clients),
        check_ins=len(services.db.check_ins),
        ai_available=services.gateway.available,
    )
