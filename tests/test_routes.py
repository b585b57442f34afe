
from fastapi.testclient import TestClient
from api.main import create_app
from core.errors import StorageError


def test_start_session(client):
    r = client.post("/sessions", json={"candidateName": "Alice"})
    assert r.status_code == 201
    j = r.json()
    assert j["candidateName"] == "Alice"
    assert j["finalIntegrityScore"] == 100
    assert j["endTime"] is None


def test_start_session_requires_name(client):
    assert client.post("/sessions", json={}).status_code == 400
    r = client.post("/sessions", json={"candidateName": "  "})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request."}


def test_end_to_end_alice(client):
    sid = client.post("/sessions", json={"candidateName": "Alice"}).json()["id"]

    r = client.post("/events", json={"sessionId": sid, "eventType": "no_face",
                                     "message": "Candidate not in frame for >10s", "deduction": 5})
    assert r.status_code == 201
    assert r.json()["updatedScore"] == 95
    assert r.json()["event"]["eventType"] == "no_face"

    r = client.post("/events", json={"sessionId": sid, "eventType": "phone_detected",
                                     "message": "Unauthorized item: cell phone", "deduction": 10})
    assert r.json()["updatedScore"] == 85

    r = client.put(f"/sessions/{sid}/end")
    assert r.status_code == 200
    assert r.json()["endTime"] is not None

    report = client.get(f"/sessions/{sid}").json()
    assert report["finalIntegrityScore"] == 85
    assert [(e["eventType"], e["deduction"]) for e in report["events"]] == [("no_face", 5), ("phone_detected", 10)]

    summary = client.get(f"/sessions/{sid}/summary").json()
    assert summary["focusLostCount"] == 1
    assert summary["totalDeduction"] == 15
    assert summary["durationSeconds"] is not None


def test_unknown_session_404(client):
    r = client.post("/events", json={"sessionId": 404, "eventType": "no_face", "message": "m", "deduction": 5})
    assert r.status_code == 404
    assert r.json() == {"error": "Session not found."}
    assert client.get("/sessions/404").status_code == 404
    assert client.get("/sessions/404/summary").status_code == 404
    assert client.put("/sessions/404/end").status_code == 404


def test_out_of_range_session_id_404(client):
    huge = 2**70
    r = client.post("/events", json={"sessionId": huge, "eventType": "no_face"})
    assert r.status_code == 404
    assert r.json() == {"error": "Session not found."}
    assert client.get(f"/sessions/{huge}").status_code == 404
    assert client.get(f"/sessions/{huge}/summary").status_code == 404
    r = client.put(f"/sessions/{huge}/end")
    assert r.status_code == 404
    assert r.json() == {"error": "Session not found."}


def test_times_are_sent_with_utc_offset(client):
    sid = client.post("/sessions", json={"candidateName": "Ola"}).json()["id"]
    ended = client.put(f"/sessions/{sid}/end").json()
    for value in (ended["startTime"], ended["endTime"]):
        assert value.endswith("Z") or value.endswith("+00:00")


def test_event_validation_400(client):
    sid = client.post("/sessions", json={"candidateName": "Zed"}).json()["id"]
    assert client.post("/events", json={"sessionId": sid, "eventType": "bogus"}).status_code == 400
    assert client.post("/events", json={"sessionId": sid, "eventType": "no_face", "deduction": -3}).status_code == 400


def test_event_after_end_409(client):
    sid = client.post("/sessions", json={"candidateName": "Yan"}).json()["id"]
    client.put(f"/sessions/{sid}/end")
    r = client.post("/events", json={"sessionId": sid, "eventType": "no_face"})
    assert r.status_code == 409
    # ending again is idempotent
    assert client.put(f"/sessions/{sid}/end").status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "connected"}


def test_health_database_down(ledger, monkeypatch):
    def down():
        raise StorageError("database unreachable")
    monkeypatch.setattr(ledger, "ping", down)
    r = TestClient(create_app(ledger)).get("/health")
    assert r.status_code == 503
    assert r.json()["database"] == "unavailable"


def test_storage_error_is_generic_500(ledger, monkeypatch):
    def fail(*a, **k):
        raise StorageError("sqlite3.OperationalError: database is locked")
    monkeypatch.setattr(ledger, "create_session", fail)
    r = TestClient(create_app(ledger)).post("/sessions", json={"candidateName": "Q"})
    assert r.status_code == 500
    assert "sqlite" not in r.text
