"""
Custom exception hierarchy for BondFlow.

Each exception type maps to a specific category of failure, so callers
(the check-in flow, the HTTP API, the terminal demo) can tell a denied
location apart from a failed verification service or an unreachable LLM.

Every error here is user-recoverable. Nothing retries automatically.
"""

from __future__ import annotations


class BondFlowError(Exception):
    """Base exception for all BondFlow failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


# ─── Location ───────────────────────────────────────────────────────


class LocationError(BondFlowError):
    """The current position could not be obtained."""


class LocationUnavailable(LocationError):
    """No geolocation capability is available on this device."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("LOCATION_UNAVAILABLE", message, details)


class LocationDenied(LocationError):
    """The position request errored out (permission denied or source failure)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("LOCATION_DENIED", message, details)


class LocationTimeout(LocationError):
    """No fresh position arrived within the bounded wait."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("LOCATION_TIMEOUT", message, details)


# ─── Photo ──────────────────────────────────────────────────────────


class PhotoCaptureError(BondFlowError):
    """A still image could not be captured."""


class NoImageSelected(PhotoCaptureError):
    """The user cancelled the camera or file picker."""

    def __init__(self, message: str = "No image selected", details: dict | None = None):
        super().__init__("NO_IMAGE_SELECTED", message, details)


class UnsupportedImage(PhotoCaptureError):
    """The selected file is not an image."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNSUPPORTED_IMAGE", message, details)


# ─── Verification ───────────────────────────────────────────────────


class VerificationServiceError(BondFlowError):
    """The face-matching service failed. NOT the same as a negative match."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("VERIFICATION_SERVICE_ERROR", message, details)


# ─── Submission ─────────────────────────────────────────────────────


class SubmissionError(BondFlowError):
    """A check-in submission was rejected before anything was stored."""


class IncompleteCheckIn(SubmissionError):
    """Location, photo, or client is missing."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INCOMPLETE_CHECK_IN", message, details)


class SubmissionInProgress(SubmissionError):
    """A submission for this attempt is already in flight or finished."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SUBMISSION_IN_PROGRESS", message, details)


# ─── Lookups ────────────────────────────────────────────────────────


class RecordNotFound(BondFlowError):
    """A referenced record does not exist in the data layer."""


class ClientNotFound(RecordNotFound):
    def __init__(self, client_id: str):
        super().__init__(
            "CLIENT_NOT_FOUND", f"No client with id '{client_id}'", {"client_id": client_id}
        )


class CaseNotFound(RecordNotFound):
    def __init__(self, case_id: str):
        super().__init__("CASE_NOT_FOUND", f"No case with id '{case_id}'", {"case_id": case_id})


# ─── AI Gateway ─────────────────────────────────────────────────────


class GatewayError(BondFlowError):
    """The hosted language model could not produce text."""


class ServiceUnavailable(GatewayError):
    """No API key configured, or the service could not be reached."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SERVICE_UNAVAILABLE", message, details)


class InvalidCredential(GatewayError):
    """The configured API key was rejected."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_CREDENTIAL", message, details)


class EmptyResponse(GatewayError):
    """The model answered without any text."""

    def __init__(self, message: str = "The model returned no content", details: dict | None = None):
        super().__init__("EMPTY_RESPONSE", message, details)
