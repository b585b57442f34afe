# core/proctor.py
"""
Client-side session orchestration.

Start: perception feed first (a denied camera aborts before any session
exists), then the ledger session, then a fresh engine and its tick source.

Stop, strictly in order:
    1. stop the tick source (no further samples processed)
    2. stop the engine (cancel pending condition timers)
    3. stop the perception feed (camera/microphone)
    4. end the session in the ledger
so no event can be produced while or after the session is finalized.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from core.config import Settings
from core.dispatcher import EventDispatcher, Ledger
from core.engine import Clock, DetectionEngine, PerceptionFeed, RealtimeTicker
from core.errors import PerceptionUnavailable, ProctorError
from core.events import EventType
from core.models import EventOut, SessionOut

logger = logging.getLogger(__name__)

TickerFactory = Callable[[DetectionEngine, PerceptionFeed], object]


class ProctorSession:
    """Runs one proctored session at a time and mirrors its confirmed score."""
    def __init__(self, ledger: Ledger, feed: PerceptionFeed, settings: Settings,
                 clock: Optional[Clock] = None, ticker_factory: Optional[TickerFactory] = None):
        self.ledger = ledger
        self.feed = feed
        self.s = settings
        self.clock = clock
        self.ticker_factory = ticker_factory or (
            lambda engine, feed: RealtimeTicker(engine, feed, settings.TICK_INTERVAL_S)
        )
        self.session: Optional[SessionOut] = None
        self.engine: Optional[DetectionEngine] = None
        self.ticker = None
        self.score: int = 100
        self.logs: List[Dict] = []
        self.errors: List[Dict] = []

    @property
    def running(self) -> bool:
        return self.engine is not None and not self.engine.stopped

    # ---- lifecycle ----
    def start(self, candidate_name: str) -> SessionOut:
        if self.running:
            raise RuntimeError("a session is already running")

        try:
            self.feed.start()
        except PerceptionUnavailable:
            logger.exception(f"[proctor] perception unavailable; session for {candidate_name!r} not created")
            raise

        try:
            session = self.ledger.create_session(candidate_name)
        except ProctorError:
            logger.exception(f"[proctor] could not create session for {candidate_name!r}")
            self.feed.stop()
            raise

        self.session = session
        self.score = session.final_integrity_score
        self.logs = []
        self.errors = []

        dispatcher = EventDispatcher(self.ledger, session.id)
        dispatcher.subscribe(on_score=self._on_score, on_error=self._on_error)
        self.engine = DetectionEngine(dispatcher, self.s, clock=self.clock)
        self.ticker = self.ticker_factory(self.engine, self.feed)
        self.ticker.start()
        self._log(f"Session started for {session.candidate_name}.")
        logger.info(f"[proctor] session={session.id} running")
        return session

    def stop(self) -> Optional[SessionOut]:
        if self.session is None or self.engine is None:
            return None
        session_id = self.session.id
        self.ticker.stop()
        self.engine.stop()
        self.feed.stop()
        ended = self.ledger.end_session(session_id)
        self.session = ended
        logger.info(f"[proctor] session={session_id} ended score={ended.final_integrity_score}")
        return ended

    # ---- observers ----
    def _on_score(self, event: EventOut, score: int) -> None:
        self.score = score
        self._log(event.message, event_type=event.event_type.value, deduction=event.deduction)

    def _on_error(self, event_type: EventType, exc: Exception) -> None:
        self.errors.append({"eventType": event_type.value, "error": str(exc)})

    def _log(self, message: str, **extra) -> None:
        entry = {"message": message, "timestamp": datetime.now(timezone.utc).isoformat(), **extra}
        self.logs.insert(0, entry)
