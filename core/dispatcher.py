"""
Event dispatcher: the single path from a confirmed condition to the ledger.
"""
from __future__ import annotations
import logging
from typing import Callable, List, Optional, Protocol

from core.errors import ProctorError
from core.events import EventType, lookup
from core.models import EventApplied, EventOut, SessionOut, SessionReport

logger = logging.getLogger(__name__)

ScoreObserver = Callable[[EventOut, int], None]
ErrorObserver = Callable[[EventType, Exception], None]


class Ledger(Protocol):
    """Operations shared by the local and the HTTP ledger."""
    def create_session(self, candidate_name: Optional[str]) -> SessionOut: ...
    def apply_event(self, session_id: int, event_type: EventType | str,
                    message: Optional[str] = None, deduction: Optional[int] = None) -> EventApplied: ...
    def end_session(self, session_id: int) -> SessionOut: ...
    def get_report(self, session_id: int) -> SessionReport: ...


class EventDispatcher:
    """Turns confirmations into catalogue events and applies them to one session."""
    def __init__(self, ledger: Ledger, session_id: int):
        self.ledger = ledger
        self.session_id = session_id
        self.score_observers: List[ScoreObserver] = []
        self.error_observers: List[ErrorObserver] = []

    def subscribe(self, on_score: Optional[ScoreObserver] = None,
                  on_error: Optional[ErrorObserver] = None) -> None:
        if on_score is not None:
            self.score_observers.append(on_score)
        if on_error is not None:
            self.error_observers.append(on_error)

    def dispatch(self, event_type: EventType) -> Optional[EventApplied]:
        """
        Apply one confirmed event. Returns the ledger result, or None if the
        ledger rejected or failed the call (observers are told via on_error and
        the local score is left untouched).
        """
        spec = lookup(event_type)
        logger.info(f"[dispatch] session={self.session_id} {spec.event_type.value} -{spec.deduction}")
        try:
            applied = self.ledger.apply_event(self.session_id, spec.event_type, spec.message, spec.deduction)
        except ProctorError as e:
            logger.error(f"[dispatch] session={self.session_id} {spec.event_type.value} not recorded: {e.detail}")
            for cb in self.error_observers:
                cb(spec.event_type, e)
            return None

        for cb in self.score_observers:
            cb(applied.event, applied.updated_score)
        return applied
