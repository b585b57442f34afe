# core/engine.py
"""
Detection engine: per-session fusion of perception samples into events.

One DetectionEngine exists per active session and owns its tracker, cooldown
gate and dispatcher, so sessions never share timer or cooldown state.

The loop is driven by ticks:
- every tick ages pending condition timers against the clock
- at most once per PERCEPTION_INTERVAL_MS a sample is pulled from the feed
  (faces, objects, audio) and evaluated

Ticks come from a RealtimeTicker (background thread) in production or from a
ManualTicker that advances a ManualClock in tests and replays.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Protocol

from core.config import Settings
from core.cooldown import CooldownGate
from core.dispatcher import EventDispatcher
from core.events import EventType
from core.models import EventApplied, SignalSample
from core.tracker import ConditionTracker

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Clocks (milliseconds)
# -----------------------------------------------------------------------------
class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """Simulated clock for tests; time only moves when advanced."""
    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        self._now += float(ms)
        return self._now

    def set(self, ms: float) -> None:
        self._now = float(ms)


class PerceptionFeed(Protocol):
    """External capture + inference collaborator."""
    def start(self) -> None: ...
    def read(self) -> SignalSample: ...
    def stop(self) -> None: ...


# -----------------------------------------------------------------------------
# DetectionEngine
# -----------------------------------------------------------------------------
class DetectionEngine:
    """Evaluates samples for one session and dispatches confirmed events."""
    def __init__(self, dispatcher: EventDispatcher, settings: Settings, clock: Optional[Clock] = None):
        self.s = settings
        self.clock = clock or MonotonicClock()
        self.dispatcher = dispatcher
        self.tracker = ConditionTracker(settings)
        self.gate = CooldownGate(settings)
        self._last_perception: Optional[float] = None
        self._stopped = False
        # tick() may be called from a ticker thread while stop() runs elsewhere
        self._lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stopped

    # ---- loop entry points ----
    def tick(self, feed: PerceptionFeed) -> List[EventApplied]:
        """One loop iteration: perceive if due, otherwise only age timers."""
        with self._lock:
            if self._stopped:
                return []
            now = self.clock.now()
            due = (self._last_perception is None
                   or now - self._last_perception >= self.s.PERCEPTION_INTERVAL_MS)
            if due:
                self._last_perception = now
                sample = feed.read()
                return self._evaluate(sample, now)
            return self._dispatch_all(self._age(now))

    def age(self) -> List[EventApplied]:
        """Age pending timers at the current clock time without perceiving."""
        with self._lock:
            if self._stopped:
                return []
            return self._dispatch_all(self._age(self.clock.now()))

    def process(self, sample: SignalSample) -> List[EventApplied]:
        """Evaluate one sample at the current clock time, bypassing throttling."""
        with self._lock:
            if self._stopped:
                return []
            return self._evaluate(sample, self.clock.now())

    def stop(self) -> None:
        """Stop the engine and cancel every pending condition timer."""
        with self._lock:
            self._stopped = True
            self.tracker.reset()
        logger.info(f"[engine] session={self.dispatcher.session_id} stopped; timers canceled")

    # ---- internals ----
    def _age(self, now: float) -> List[EventType]:
        fired: List[EventType] = []
        for event_type in self.tracker.age(now):
            fired.extend(self._gate_sustained(event_type, now))
        return fired

    def _gate_sustained(self, event_type: EventType, now: float) -> List[EventType]:
        # Drowsiness is confirmed by the tracker and then rate-limited
        if event_type is EventType.DROWSINESS and not self.gate.try_fire(event_type, now):
            return []
        return [event_type]

    def _evaluate(self, sample: SignalSample, now: float) -> List[EventApplied]:
        fired: List[EventType] = []
        for event_type in self.tracker.update(sample.faces, now):
            fired.extend(self._gate_sustained(event_type, now))
        fired.extend(self.gate.check_faces(len(sample.faces), now))
        fired.extend(self.gate.check_objects(sample.objects, now))
        fired.extend(self.gate.check_audio(sample.audio_level, now))
        return self._dispatch_all(fired)

    def _dispatch_all(self, fired: List[EventType]) -> List[EventApplied]:
        results: List[EventApplied] = []
        for event_type in fired:
            applied = self.dispatcher.dispatch(event_type)
            if applied is not None:
                results.append(applied)
        return results


# -----------------------------------------------------------------------------
# Tick sources
# -----------------------------------------------------------------------------
class RealtimeTicker:
    """Calls engine.tick(feed) on a background thread at a fixed interval."""
    def __init__(self, engine: DetectionEngine, feed: PerceptionFeed, interval_s: float):
        self.engine = engine
        self.feed = feed
        self.interval_s = float(interval_s)
        self._run = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._run.is_set():
            return
        self._run.set()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._run.clear()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def _loop(self) -> None:
        while self._run.is_set():
            try:
                self.engine.tick(self.feed)
            except Exception:
                logger.exception(f"[ticker] session={self.engine.dispatcher.session_id} tick failed")
            time.sleep(self.interval_s)


class ManualTicker:
    """Advances a ManualClock in fixed steps, ticking after each step."""
    def __init__(self, engine: DetectionEngine, feed: PerceptionFeed, clock: ManualClock, step_ms: float = 100.0):
        self.engine = engine
        self.feed = feed
        self.clock = clock
        self.step_ms = float(step_ms)
        self.running = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def run_for(self, duration_ms: float) -> List[EventApplied]:
        out: List[EventApplied] = []
        elapsed = 0.0
        while self.running and elapsed < duration_ms:
            step = min(self.step_ms, duration_ms - elapsed)
            self.clock.advance(step)
            elapsed += step
            out.extend(self.engine.tick(self.feed))
        return out
