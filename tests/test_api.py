"""
FastAPI endpoint tests for the BondFlow API.

Uses httpx + FastAPI TestClient — no real server needed, no LLM calls.
"""

from __future__ import annotations

from io import BytesIO
from types import SimpleNamespace

import api
import pytest
from api import Services, app
from fastapi.testclient import TestClient
from PIL import Image

from bondflow.config import Settings
from bondflow.gateway import AIGateway
from bondflow.mock_db import MockDatabase
from bondflow.verification import FaceMatcher, FixedOutcomeMatcher, VerificationSimulator

client = TestClient(app)



def _png(size: tuple[int, int] = (8, 8)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, (90, 120, 160)).save(buf, format="PNG")
    return buf.getvalue()


PNG_BYTES = _png()

CHECK_IN_FORM = {
    "clientId": "c1",
    "latitude": "35.7796",
    "longitude": "-78.6382",
    "timestamp": "2024-05-01T14:30:00Z",
}


class _EchoCompletions:
    async def create(self, **kwargs):
        content = kwargs["messages"][0]["content"]
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class _DownMatcher(FaceMatcher):
    async def match(self, reference_photo_url, photo):
        raise TimeoutError("face service timeout")


def _make_services(
    gateway: AIGateway | None = None,
    matcher: FaceMatcher | None = None,
    **overrides: int,
) -> Services:
    settings = Settings(verify_delay=0.0, complete_delay=0.0, **overrides)
    return Services(
        settings=settings,
        db=MockDatabase(),
        gateway=gateway or AIGateway(api_key=None),
        simulator=VerificationSimulator(matcher, min_duration=0.0),
    )


@pytest.fixture(autouse=True)
def _fresh_services() -> None:
    """Fresh services per test so the check-in log starts from the seed."""
    api._services = _make_services()
    yield  # type: ignore[misc]
    api._services = None


def _selfie(data: bytes = PNG_BYTES, content_type: str = "image/png") -> dict:
    return {"selfie": ("selfie.png", data, content_type)}


class TestHealthEndpoint:
    def test_health_returns_200(self) -> None:
        assert client.get("/health").status_code == 200

    def test_health_response_shape(self) -> None:
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["clients_loaded"] == 2
        assert data["ai_available"] is False

    def test_not_initialised_returns_503(self) -> None:
        api._services = None
        assert client.get("/health").status_code == 503


class TestCheckInEndpoint:
    def test_creates_verified_check_in(self) -> None:
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie())
        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "Check-in received"
        assert data["verified"] is True
        assert data["notes"] is None
        assert len(data["checkInId"]) == 9

    def test_record_lands_at_head_of_client_log(self) -> None:
        check_in_id = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie()).json()["checkInId"]
        log = client.get("/clients/c1/check-ins").json()
        assert log[0]["id"] == check_in_id
        assert log[0]["latitude"] == 35.7796
        assert log[0]["photo_data"].startswith("data:image/png;base64,")
        assert len(log) == 2

    def test_negative_match_is_still_created(self) -> None:
        api._services = _make_services(matcher=FixedOutcomeMatcher(verified=False))
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie())
        assert resp.status_code == 201
        data = resp.json()
        assert data["verified"] is False
        assert data["notes"] == "Face mismatch detected (Automated Check)"

    def test_verification_service_down_returns_502(self) -> None:
        api._services = _make_services(matcher=_DownMatcher())
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie())
        assert resp.status_code == 502
        assert resp.json()["detail"]["code"] == "VERIFICATION_SERVICE_ERROR"
        assert len(client.get("/clients/c1/check-ins").json()) == 1

    def test_missing_selfie_returns_400(self) -> None:
        resp = client.post("/check-in", data=CHECK_IN_FORM)
        assert resp.status_code == 400
        assert len(client.get("/check-ins").json()) == 1

    def test_empty_selfie_returns_400(self) -> None:
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie(b""))
        assert resp.status_code == 400

    def test_non_image_returns_400(self) -> None:
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie(b"hello", "text/plain"))
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "UNSUPPORTED_IMAGE"

    def test_pdf_declared_as_png_returns_400(self) -> None:
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie(b"%PDF-1.7 not a selfie", "image/png"))
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "UNSUPPORTED_IMAGE"
        assert len(client.get("/check-ins").json()) == 1

    def test_oversized_selfie_returns_413(self) -> None:
        api._services = _make_services(max_upload_bytes=32)
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie())
        assert resp.status_code == 413
        assert len(client.get("/check-ins").json()) == 1

    def test_selfie_at_cap_is_accepted(self) -> None:
        api._services = _make_services(max_upload_bytes=len(PNG_BYTES))
        resp = client.post("/check-in", data=CHECK_IN_FORM, files=_selfie())
        assert resp.status_code == 201

    def test_unknown_client_returns_404(self) -> None:
        resp = client.post("/check-in", data={**CHECK_IN_FORM, "clientId": "ghost"}, files=_selfie())
        assert resp.status_code == 404

    def test_bad_latitude_returns_422(self) -> None:
        resp = client.post("/check-in", data={**CHECK_IN_FORM, "latitude": "123"}, files=_selfie())
        assert resp.status_code == 422

    def test_bad_timestamp_returns_422(self) -> None:
        resp = client.post("/check-in", data={**CHECK_IN_FORM, "timestamp": "yesterday"}, files=_selfie())
        assert resp.status_code == 422

    def test_unknown_client_log_returns_404(self) -> None:
        assert client.get("/clients/ghost/check-ins").status_code == 404


class TestRecordEndpoints:
    def test_clients(self) -> None:
        ids = [c["id"] for c in client.get("/clients").json()]
        assert ids == ["c1", "c2"]

    def test_client_detail(self) -> None:
        data = client.get("/clients/c1").json()
        assert data["name"] == "Marcus Johnson"
        assert data["vehicle_info"]["plate"] == "NC-ABC1234"

    def test_client_cases(self) -> None:
        cases = client.get("/clients/c1/cases").json()
        assert {c["id"] for c in cases} == {"case1", "case3"}

    def test_add_communication(self) -> None:
        resp = client.post(
            "/cases/case1/communications",
            json={"recipient": "Wake Clerk", "type": "Filing", "purpose": "Notice of Surrender", "summary": "Filed"},
        )
        assert resp.status_code == 201
        assert resp.json()["communication_log"][0]["recipient"] == "Wake Clerk"

    def test_add_communication_unknown_case(self) -> None:
        resp = client.post(
            "/cases/nope/communications",
            json={"recipient": "x", "type": "Phone", "purpose": "y", "summary": "z"},
        )
        assert resp.status_code == 404

    def test_skip_trace_round(self) -> None:
        resp = client.post("/clients/c1/skip-trace", json={"action": "Called employer", "result": "On shift"})
        assert resp.status_code == 201
        log = client.get("/clients/c1/skip-trace").json()
        assert [e["action"] for e in log] == ["Called employer"]

    def test_authorities(self) -> None:
        assert len(client.get("/authorities").json()) == 4
        assert client.get("/authorities/Wake").json()["clerk"]["phone"] == "(919) 792-4000"
        assert client.get("/authorities/Nowhere").status_code == 404

    def test_stats(self) -> None:
        data = client.get("/stats").json()
        assert data["fta_count"] == 1
        assert data["total_liability"] == 21000


class TestAIEndpoints:
    def test_no_key_returns_503(self) -> None:
        resp = client.post("/ai/generate", json={"task": "social post", "context": "open 24/7"})
        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "SERVICE_UNAVAILABLE"

    def test_generate(self) -> None:
        fake = SimpleNamespace(chat=SimpleNamespace(completions=_EchoCompletions()))
        api._services = _make_services(gateway=AIGateway(client=fake))
        resp = client.post("/ai/generate", json={"task": "social post", "context": "open 24/7"})
        assert resp.status_code == 200
        assert "open 24/7" in resp.json()["text"]

    def test_translate(self) -> None:
        fake = SimpleNamespace(chat=SimpleNamespace(completions=_EchoCompletions()))
        api._services = _make_services(gateway=AIGateway(client=fake))
        resp = client.post("/ai/translate", json={"text": "Court is Monday", "target_lang": "es"})
        assert "Spanish" in resp.json()["text"]

    def test_social_posts(self) -> None:
        fake = SimpleNamespace(chat=SimpleNamespace(completions=_EchoCompletions()))
        api._services = _make_services(gateway=AIGateway(client=fake))
        resp = client.post("/ai/social-posts", json={"platforms": ["X", "Facebook"], "topic": "Open late"})
        assert set(resp.json()) == {"X", "Facebook"}

    def test_empty_platforms_returns_422(self) -> None:
        resp = client.post("/ai/social-posts", json={"platforms": [], "topic": "Open late"})
        assert resp.status_code == 422


class TestScannerEndpoint:
    def test_enhance(self) -> None:
        resp = client.post("/scanner/enhance", content=bytes([150, 150, 150, 255]))
        assert resp.status_code == 200
        assert resp.content == bytes([161, 161, 161, 255])

    def test_partial_pixel_returns_422(self) -> None:
        resp = client.post("/scanner/enhance", content=b"\x00\x00")
        assert resp.status_code == 422

    def test_oversized_frame_returns_413(self) -> None:
        api._services = _make_services(max_frame_bytes=16)
        resp = client.post("/scanner/enhance", content=bytes(32))
        assert resp.status_code == 413

    def test_full_hd_frame(self) -> None:
        frame = bytes([150, 150, 150, 255]) * (1920 * 1080)
        resp = client.post("/scanner/enhance", content=frame)
        assert resp.status_code == 200
        assert len(resp.content) == len(frame)
        assert resp.content[:4] == bytes([161, 161, 161, 255])
