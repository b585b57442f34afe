
from datetime import datetime, timezone
from core.events import EventType, EVENT_CATALOG, lookup
from core.models import EventCreate, EventOut, EventApplied, ObjectDetection, SessionReport, SignalSample

def test_models():
    now = datetime.now(timezone.utc)
    ev = EventOut(id=1, session_id=7, event_type="no_face", message="m", deduction=5, timestamp=now)
    rep = SessionReport(id=7, candidate_name="Alice", start_time=now, final_integrity_score=95, events=[ev])
    body = rep.model_dump(by_alias=True)
    assert body["candidateName"] == "Alice" and body["finalIntegrityScore"] == 95
    assert body["events"][0]["eventType"] == EventType.NO_FACE
    applied = EventApplied(event=ev, updated_score=95).model_dump(by_alias=True)
    assert applied["updatedScore"] == 95

def test_event_create_accepts_camel_case():
    ec = EventCreate.model_validate({"sessionId": 3, "eventType": "phone_detected", "message": "x", "deduction": 10})
    assert ec.session_id == 3 and ec.event_type is EventType.PHONE_DETECTED

def test_signal_sample_from_feed_json():
    s = SignalSample.model_validate({
        "faces": [[{"x": 0.1, "y": 0.2}]],
        "objects": [{"class": "cell phone", "confidence": 0.9, "bbox": [1, 2, 3, 4]}],
        "audio_level": 40,
    })
    assert s.objects[0].label == "cell phone"
    assert s.faces[0][0].z == 0.0
    assert ObjectDetection(label="book", confidence=0.7).label == "book"

def test_catalog():
    assert len(EVENT_CATALOG) == len(EventType)
    assert lookup("no_face").deduction == 5
    assert lookup(EventType.LOOKING_AWAY).message == "Candidate looking away from screen."
    assert {lookup(t).deduction for t in ("multiple_faces", "drowsiness", "phone_detected",
                                          "book_detected", "extra_device")} == {10}
    assert lookup("background_voice").deduction == 5
