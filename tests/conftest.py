import pytest
from typing import List, Optional

from fastapi.testclient import TestClient

from api.main import create_app
from core.engine import ManualClock
from core.errors import PerceptionUnavailable
from core.ledger import ScoreLedger
from core.models import Landmark, ObjectDetection, SignalSample

MESH_SIZE = 478


def make_face(gaze: float = 0.0, ear: float = 0.3) -> List[Landmark]:
    """
    Synthetic face mesh: inner eye corners at x=0.45/0.55, nose at 0.5 + gaze,
    both eyes 0.1 wide with an aspect ratio of ``ear``.
    """
    pts = [Landmark(x=0.5, y=0.5) for _ in range(MESH_SIZE)]
    h = ear / 20.0  # ear = 4h / (2 * 0.1)
    def eye(p0, p1, p2, p3, p4, p5, x0):
        pts[p0] = Landmark(x=x0, y=0.5)
        pts[p3] = Landmark(x=x0 + 0.1, y=0.5)
        pts[p1] = Landmark(x=x0 + 0.03, y=0.5 - h)
        pts[p5] = Landmark(x=x0 + 0.03, y=0.5 + h)
        pts[p2] = Landmark(x=x0 + 0.07, y=0.5 - h)
        pts[p4] = Landmark(x=x0 + 0.07, y=0.5 + h)
    eye(33, 160, 158, 133, 153, 144, 0.35)
    eye(362, 385, 387, 263, 380, 373, 0.55)
    pts[1] = Landmark(x=0.5 + gaze, y=0.55)
    return pts


def sample(faces: int = 1, gaze: float = 0.0, ear: float = 0.3,
           objects: Optional[list] = None, audio: float = 0.0) -> SignalSample:
    return SignalSample(
        faces=[make_face(gaze=gaze, ear=ear) for _ in range(faces)],
        objects=[ObjectDetection(label=lbl, confidence=conf) for lbl, conf in (objects or [])],
        audio_level=audio,
    )


class FakeFeed:
    """Scriptable perception feed; ``current`` is returned by every read."""
    def __init__(self, current: Optional[SignalSample] = None, fail_start: bool = False, calls: Optional[list] = None):
        self.current = current or sample()
        self.fail_start = fail_start
        self.reads = 0
        self.calls = calls if calls is not None else []

    def start(self):
        self.calls.append("feed.start")
        if self.fail_start:
            raise PerceptionUnavailable("camera permission denied")

    def read(self) -> SignalSample:
        self.reads += 1
        return self.current

    def stop(self):
        self.calls.append("feed.stop")


@pytest.fixture
def ledger(tmp_path):
    lg = ScoreLedger(f"sqlite:///{tmp_path / 'ledger.db'}", timeout=5)
    lg.init_schema()
    yield lg
    lg.engine.dispose()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client(ledger):
    return TestClient(create_app(ledger))
