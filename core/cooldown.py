"""
Cooldown gate: rate-limit instantaneous conditions per event type.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from core.config import Settings
from core.events import EventType, OBJECT_EVENTS
from core.models import ObjectDetection

logger = logging.getLogger(__name__)


class CooldownGate:
    """Remembers when each event type last fired for one session."""
    def __init__(self, settings: Settings):
        self.s = settings
        self.windows: Dict[EventType, float] = {
            EventType.MULTIPLE_FACES: settings.COOLDOWN_MS,
            EventType.PHONE_DETECTED: settings.COOLDOWN_MS,
            EventType.BOOK_DETECTED: settings.COOLDOWN_MS,
            EventType.EXTRA_DEVICE: settings.COOLDOWN_MS,
            EventType.DROWSINESS: settings.COOLDOWN_MS,
            EventType.BACKGROUND_VOICE: settings.AUDIO_COOLDOWN_MS,
        }
        self.last_fired: Dict[EventType, float] = {}

    def try_fire(self, event_type: EventType, now: float, window: Optional[float] = None) -> bool:
        """
        Fire iff the type never fired or strictly more than ``window`` ms passed
        since it last did. Suppressed attempts leave the state untouched.
        """
        if window is None:
            window = self.windows[event_type]
        last = self.last_fired.get(event_type)
        if last is not None and now - last <= window:
            logger.debug(f"[cooldown] {event_type.value} suppressed ({now - last:.0f}ms <= {window:.0f}ms)")
            return False
        self.last_fired[event_type] = now
        return True

    def check_faces(self, face_count: int, now: float) -> List[EventType]:
        if face_count > 1 and self.try_fire(EventType.MULTIPLE_FACES, now):
            return [EventType.MULTIPLE_FACES]
        return []

    def check_objects(self, detections: Iterable[ObjectDetection], now: float) -> List[EventType]:
        fired: List[EventType] = []
        for det in detections:
            if det.confidence <= self.s.OBJECT_CONFIDENCE:
                continue
            event_type = OBJECT_EVENTS.get(det.label)
            if event_type is not None and self.try_fire(event_type, now):
                fired.append(event_type)
        return fired

    def check_audio(self, level: float, now: float) -> List[EventType]:
        if level > self.s.AUDIO_THRESHOLD and self.try_fire(EventType.BACKGROUND_VOICE, now):
            return [EventType.BACKGROUND_VOICE]
        return []

    def reset(self) -> None:
        self.last_fired.clear()
