# core/tracker.py
"""
Temporal condition tracking.

Turns per-sample booleans (no face, looking away, eyes closed) into one-shot
confirmations. Each condition owns a latching timer:

    Inactive --true--> Pending(started_at) --elapsed >= threshold--> Confirmed
       ^                   |                                            |
       +------false--------+-------------------false--------------------+

A Confirmed timer stays latched until the condition is observed false, so a
single continuous episode confirms at most once.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from core.config import Settings
from core.events import EventType
from core.models import Landmark

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Face-mesh landmark indices
# -----------------------------------------------------------------------------
NOSE_TIP = 1
LEFT_EYE_INNER = 133
RIGHT_EYE_INNER = 362
LEFT_EYE_POINTS = (33, 160, 158, 133, 153, 144)
RIGHT_EYE_POINTS = (362, 385, 387, 263, 380, 373)


def _point(landmarks: Sequence[Landmark], idx: int) -> Optional[np.ndarray]:
    if idx >= len(landmarks) or landmarks[idx] is None:
        return None
    p = landmarks[idx]
    return np.array([p.x, p.y], dtype=float)


def eye_openness(landmarks: Sequence[Landmark], eye_points: Sequence[int]) -> float:
    """
    Eye aspect ratio from six contour points p0..p5:
    (|p1-p5| + |p2-p4|) / (2 * |p0-p3|).

    A missing point or a zero horizontal distance yields 0.0 (fully closed).
    """
    pts = [_point(landmarks, i) for i in eye_points]
    if any(p is None for p in pts):
        return 0.0
    vertical = np.linalg.norm(pts[1] - pts[5]) + np.linalg.norm(pts[2] - pts[4])
    horizontal = np.linalg.norm(pts[0] - pts[3])
    if horizontal == 0:
        return 0.0
    return float(vertical / (2.0 * horizontal))


def average_eye_openness(landmarks: Sequence[Landmark]) -> float:
    left = eye_openness(landmarks, LEFT_EYE_POINTS)
    right = eye_openness(landmarks, RIGHT_EYE_POINTS)
    return (left + right) / 2.0


def gaze_offset(landmarks: Sequence[Landmark]) -> Optional[float]:
    """Horizontal distance of the nose tip from the midpoint of the inner eye corners."""
    nose = _point(landmarks, NOSE_TIP)
    left = _point(landmarks, LEFT_EYE_INNER)
    right = _point(landmarks, RIGHT_EYE_INNER)
    if nose is None or left is None or right is None:
        return None
    baseline_x = (left[0] + right[0]) / 2.0
    return float(abs(nose[0] - baseline_x))


# -----------------------------------------------------------------------------
# Latching timer
# -----------------------------------------------------------------------------
class TimerState(str, Enum):
    INACTIVE = "inactive"
    PENDING = "pending"
    CONFIRMED = "confirmed"


class ConditionTimer:
    """Debounce one sustained condition into a single confirmation per episode."""
    def __init__(self, name: str, threshold_ms: float):
        self.name = name
        self.threshold_ms = float(threshold_ms)
        self.state = TimerState.INACTIVE
        self.started_at: Optional[float] = None

    def observe(self, active: bool, now: float) -> bool:
        """
        Feed the current value of the condition.
        Returns True exactly when the timer transitions to Confirmed.
        """
        if not active:
            if self.state is not TimerState.INACTIVE:
                logger.debug(f"[tracker] {self.name} cleared ({self.state.value})")
            self.cancel()
            return False
        if self.state is TimerState.INACTIVE:
            self.state = TimerState.PENDING
            self.started_at = now
            logger.debug(f"[tracker] {self.name} pending at {now:.0f}")
        return self.poll(now)

    def poll(self, now: float) -> bool:
        """Age a pending timer without a new observation."""
        if self.state is not TimerState.PENDING:
            return False
        if now - self.started_at >= self.threshold_ms:
            self.state = TimerState.CONFIRMED
            logger.debug(f"[tracker] {self.name} confirmed at {now:.0f}")
            return True
        return False

    def cancel(self) -> None:
        self.state = TimerState.INACTIVE
        self.started_at = None


# -----------------------------------------------------------------------------
# ConditionTracker: the three sustained conditions of one session
# -----------------------------------------------------------------------------
class ConditionTracker:
    """Owns the no-face, looking-away and drowsy-eyes timers of one session."""
    def __init__(self, settings: Settings):
        self.s = settings
        self.no_face = ConditionTimer(EventType.NO_FACE.value, settings.NO_FACE_MS)
        self.looking_away = ConditionTimer(EventType.LOOKING_AWAY.value, settings.LOOKING_AWAY_MS)
        self.drowsy = ConditionTimer(EventType.DROWSINESS.value, settings.DROWSY_MS)

    @property
    def timers(self) -> List[ConditionTimer]:
        return [self.no_face, self.looking_away, self.drowsy]

    def update(self, faces: Sequence[Sequence[Landmark]], now: float) -> List[EventType]:
        """
        Observe one perception sample. Returns the conditions confirmed by it.

        More than one face pre-empts every sustained track; the multiple-faces
        condition itself is instantaneous and handled by the cooldown gate.
        """
        confirmed: List[EventType] = []
        if len(faces) > 1:
            self.no_face.cancel()
            self.looking_away.cancel()
            self.drowsy.cancel()
            return confirmed

        if len(faces) == 0:
            # Gaze and eyes are unobservable without a face
            self.looking_away.cancel()
            self.drowsy.cancel()
            if self.no_face.observe(True, now):
                confirmed.append(EventType.NO_FACE)
            return confirmed

        self.no_face.observe(False, now)
        landmarks = faces[0]

        offset = gaze_offset(landmarks)
        if offset is not None:
            if self.looking_away.observe(offset > self.s.GAZE_TOLERANCE, now):
                confirmed.append(EventType.LOOKING_AWAY)

        ear = average_eye_openness(landmarks)
        if self.drowsy.observe(ear < self.s.EAR_THRESHOLD, now):
            confirmed.append(EventType.DROWSINESS)
        return confirmed

    def age(self, now: float) -> List[EventType]:
        """Advance pending timers between perception samples."""
        return [EventType(t.name) for t in self.timers if t.poll(now)]

    def reset(self) -> None:
        for t in self.timers:
            t.cancel()
