"""
Event type catalogue: canonical message and deduction per violation.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, NamedTuple


class EventType(str, Enum):
    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    LOOKING_AWAY = "looking_away"
    DROWSINESS = "drowsiness"
    PHONE_DETECTED = "phone_detected"
    BOOK_DETECTED = "book_detected"
    BACKGROUND_VOICE = "background_voice"
    EXTRA_DEVICE = "extra_device"


class EventSpec(NamedTuple):
    event_type: EventType
    message: str
    deduction: int


EVENT_CATALOG: Dict[EventType, EventSpec] = {
    spec.event_type: spec
    for spec in (
        EventSpec(EventType.NO_FACE, "Candidate not in frame for >10s", 5),
        EventSpec(EventType.MULTIPLE_FACES, "Multiple faces detected", 10),
        EventSpec(EventType.LOOKING_AWAY, "Candidate looking away from screen.", 2),
        EventSpec(EventType.DROWSINESS, "Drowsiness or closed eyes detected.", 10),
        EventSpec(EventType.PHONE_DETECTED, "Unauthorized item: cell phone", 10),
        EventSpec(EventType.BOOK_DETECTED, "Unauthorized item: book/notes", 10),
        EventSpec(EventType.BACKGROUND_VOICE, "Loud background noise detected.", 5),
        EventSpec(EventType.EXTRA_DEVICE, "Unauthorized electronic device detected.", 10),
    )
}

# Object classifier labels -> event type. Laptop/TV/remote share one slot.
OBJECT_EVENTS: Dict[str, EventType] = {
    "cell phone": EventType.PHONE_DETECTED,
    "book": EventType.BOOK_DETECTED,
    "laptop": EventType.EXTRA_DEVICE,
    "tv": EventType.EXTRA_DEVICE,
    "remote": EventType.EXTRA_DEVICE,
}

# Events that count as "focus lost" in a report.
FOCUS_LOST_EVENTS = (EventType.LOOKING_AWAY, EventType.NO_FACE)


def lookup(event_type: EventType | str) -> EventSpec:
    """Return the catalogue entry for an event type (raises ValueError if unknown)."""
    return EVENT_CATALOG[EventType(event_type)]
