"""
Error taxonomy shared by the ledger, the HTTP layer and the client engine.

Each error carries a stable, user-facing ``public_message`` that is safe to
return to callers; internal details stay in the log.
"""
from __future__ import annotations


class ProctorError(Exception):
    """Base class for all proctoring errors."""
    status_code = 500
    public_message = "Internal error."
    retryable = False

    def __init__(self, detail: str = "", session_id: int | None = None):
        super().__init__(detail or self.public_message)
        self.detail = detail or self.public_message
        self.session_id = session_id


class ValidationError(ProctorError):
    """Missing or malformed caller input."""
    status_code = 400
    public_message = "Invalid request."


class NotFoundError(ProctorError):
    """Unknown session id."""
    status_code = 404
    public_message = "Session not found."


class SessionEndedError(ProctorError):
    """The session is finalized and no longer accepts events."""
    status_code = 409
    public_message = "Session has already ended."


class StorageError(ProctorError):
    """Persistence unavailable or timed out; safe to retry with backoff."""
    status_code = 500
    public_message = "Storage unavailable. Please retry."
    retryable = True


class PerceptionUnavailable(ProctorError):
    """Capture device denied or perception models failed to load."""
    status_code = 503
    public_message = "Camera or microphone unavailable. Check device permissions and try again."
