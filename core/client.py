"""
HTTP ledger client: the remote counterpart of ScoreLedger.

Used by the client-side engine when the ledger runs behind the API. Any
httpx.Client works, including fastapi.testclient.TestClient.
"""
from __future__ import annotations
import logging
from typing import Optional

import httpx

from core.config import Settings
from core.errors import NotFoundError, SessionEndedError, StorageError, ValidationError
from core.events import EventType
from core.models import EventApplied, SessionOut, SessionReport

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: ValidationError,
    404: NotFoundError,
    409: SessionEndedError,
}


class HttpLedger:
    def __init__(self, base_url: str = "", timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpLedger":
        return cls(settings.API_URL, settings.HTTP_TIMEOUT_SECONDS)

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, session_id: Optional[int] = None, **kwargs) -> dict:
        try:
            r = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[client] {method} {path} failed session={session_id}: {e}")
            raise StorageError(f"request failed: {e}", session_id=session_id) from e

        if r.status_code >= 400:
            try:
                detail = r.json().get("error", "")
            except ValueError:
                detail = r.text
            logger.warning(f"[client] {method} {path} -> {r.status_code} session={session_id} {detail}")
            err = _STATUS_ERRORS.get(r.status_code, StorageError)
            raise err(detail, session_id=session_id)
        return r.json()

    def create_session(self, candidate_name: Optional[str]) -> SessionOut:
        data = self._request("POST", "/sessions", json={"candidateName": candidate_name})
        return SessionOut.model_validate(data)

    def apply_event(self, session_id: int, event_type: EventType | str,
                    message: Optional[str] = None, deduction: Optional[int] = None) -> EventApplied:
        body = {
            "sessionId": session_id,
            "eventType": EventType(event_type).value,
            "message": message,
            "deduction": deduction,
        }
        data = self._request("POST", "/events", session_id=session_id, json=body)
        return EventApplied.model_validate(data)

    def end_session(self, session_id: int) -> SessionOut:
        data = self._request("PUT", f"/sessions/{session_id}/end", session_id=session_id)
        return SessionOut.model_validate(data)

    def get_report(self, session_id: int) -> SessionReport:
        data = self._request("GET", f"/sessions/{session_id}", session_id=session_id)
        return SessionReport.model_validate(data)
