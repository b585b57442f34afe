import httpx
import pytest

from core.client import HttpLedger
from core.errors import NotFoundError, SessionEndedError, StorageError, ValidationError
from core.events import EventType


def test_http_ledger_round_trip(client):
    remote = HttpLedger(client=client)
    s = remote.create_session("Alice")
    applied = remote.apply_event(s.id, EventType.NO_FACE)
    assert applied.updated_score == 95
    assert applied.event.message == "Candidate not in frame for >10s"
    ended = remote.end_session(s.id)
    assert ended.end_time is not None
    report = remote.get_report(s.id)
    assert [e.event_type for e in report.events] == [EventType.NO_FACE]


def test_http_ledger_error_mapping(client):
    remote = HttpLedger(client=client)
    with pytest.raises(ValidationError):
        remote.create_session("")
    with pytest.raises(NotFoundError):
        remote.apply_event(12345, EventType.NO_FACE)
    s = remote.create_session("Bo")
    remote.end_session(s.id)
    with pytest.raises(SessionEndedError):
        remote.apply_event(s.id, EventType.BOOK_DETECTED)


def test_http_ledger_transport_failure_is_retryable():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    remote = HttpLedger(client=httpx.Client(base_url="http://ledger", transport=httpx.MockTransport(handler)))
    with pytest.raises(StorageError) as exc:
        remote.apply_event(1, EventType.NO_FACE)
    assert exc.value.retryable
    assert exc.value.session_id == 1


def test_http_ledger_server_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "Storage unavailable. Please retry."}))
    remote = HttpLedger(client=httpx.Client(base_url="http://ledger", transport=transport))
    with pytest.raises(StorageError):
        remote.end_session(3)
