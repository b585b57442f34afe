# core/ledger.py
"""
Score ledger: authoritative record of a session's integrity score and events.

Deductions for one session are serialized by a per-session lock, and the score
itself is decremented by a single UPDATE with a floor at zero, so concurrent
apply_event calls never lose an update. Sessions use independent locks and do
not wait for each other. A session's lock only lives while some call holds or
waits on it.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from sqlalchemy import case, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from core.config import Settings
from core.db import Base, EventLog, ProctoringSession, make_engine, make_session_factory
from core.errors import NotFoundError, SessionEndedError, StorageError, ValidationError
from core.events import EventType, lookup
from core.models import EventApplied, EventOut, SessionOut, SessionReport

logger = logging.getLogger(__name__)

INITIAL_SCORE = 100
MAX_ID = 2**63 - 1
MIN_ID = -(2**63)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScoreLedger:
    """SQLAlchemy-backed ledger shared by every request of one process."""
    def __init__(self, database_url: str, timeout: float = 5.0):
        self.timeout = float(timeout)
        self.engine = make_engine(database_url, self.timeout)
        self.SessionLocal = make_session_factory(self.engine)
        self._locks: Dict[int, List] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoreLedger":
        return cls(settings.DATABASE_URL, settings.DB_TIMEOUT_SECONDS)

    def init_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.exception("[ledger] schema creation failed")
            raise StorageError(f"schema creation failed: {e}") from e

    def ping(self) -> None:
        """Run a trivial query; raises StorageError if the database is not reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"[ledger] health check failed: {e}")
            raise StorageError(f"database unreachable: {e}") from e

    # ---- helpers ----
    @contextmanager
    def _db(self, session_id: Optional[int] = None) -> Iterator[DBSession]:
        db = self.SessionLocal()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"[ledger] storage failure session={session_id}")
            raise StorageError(str(e), session_id=session_id) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def _session_lock(self, session_id: int) -> Iterator[None]:
        # [lock, holders]; the entry is dropped once nobody holds or waits on it
        with self._locks_guard:
            entry = self._locks.setdefault(session_id, [threading.Lock(), 0])
            entry[1] += 1
        lock = entry[0]
        try:
            if not lock.acquire(timeout=self.timeout):
                logger.error(f"[ledger] lock timeout session={session_id}")
                raise StorageError("timed out waiting for session lock", session_id=session_id)
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[session_id]

    @staticmethod
    def _get(db: DBSession, session_id: int) -> ProctoringSession:
        # ids outside the 64-bit integer column range cannot exist
        if not MIN_ID <= session_id <= MAX_ID:
            raise NotFoundError(f"session {session_id} not found", session_id=session_id)
        row = db.get(ProctoringSession, session_id)
        if row is None:
            raise NotFoundError(f"session {session_id} not found", session_id=session_id)
        return row

    # ---- operations ----
    def create_session(self, candidate_name: Optional[str]) -> SessionOut:
        name = (candidate_name or "").strip()
        if not name:
            raise ValidationError("Candidate name is required.")
        with self._db() as db:
            row = ProctoringSession(candidate_name=name, start_time=_utcnow(), final_integrity_score=INITIAL_SCORE)
            db.add(row)
            db.commit()
            logger.info(f"[ledger] session={row.id} started for {name!r}")
            return SessionOut.model_validate(row)

    def apply_event(self, session_id: int, event_type: EventType | str,
                    message: Optional[str] = None, deduction: Optional[int] = None) -> EventApplied:
        """
        Deduct ``deduction`` from the session score (floored at 0), persist the
        event and return it with the updated score. Missing message/deduction
        default to the catalogue entry for ``event_type``.
        """
        try:
            spec = lookup(event_type)
        except ValueError as e:
            raise ValidationError(f"unknown event type {event_type!r}", session_id=session_id) from e
        message = message or spec.message
        deduction = spec.deduction if deduction is None else int(deduction)
        if deduction < 0:
            raise ValidationError("deduction must be non-negative", session_id=session_id)

        with self._session_lock(session_id), self._db(session_id) as db:
            row = self._get(db, session_id)
            if row.end_time is not None:
                logger.warning(f"[ledger] session={session_id} rejected {spec.event_type.value}: already ended")
                raise SessionEndedError(f"session {session_id} ended", session_id=session_id)

            score = ProctoringSession.final_integrity_score
            db.execute(
                update(ProctoringSession)
                .where(ProctoringSession.id == session_id)
                .values(final_integrity_score=case((score - deduction < 0, 0), else_=score - deduction))
                .execution_options(synchronize_session=False)
            )
            ev = EventLog(
                session_id=session_id,
                event_type=spec.event_type.value,
                message=message,
                deduction=deduction,
                timestamp=_utcnow(),
            )
            db.add(ev)
            db.flush()
            new_score = db.execute(select(score).where(ProctoringSession.id == session_id)).scalar_one()
            db.commit()
            logger.info(f"[ledger] session={session_id} {ev.event_type} -{deduction} -> {new_score}")
            return EventApplied(event=EventOut.model_validate(ev), updated_score=new_score)

    def end_session(self, session_id: int) -> SessionOut:
        """Set the end time. Ending an already-ended session returns it unchanged."""
        with self._session_lock(session_id), self._db(session_id) as db:
            row = self._get(db, session_id)
            if row.end_time is None:
                row.end_time = _utcnow()
                db.commit()
                logger.info(f"[ledger] session={session_id} ended score={row.final_integrity_score}")
            else:
                logger.info(f"[ledger] session={session_id} already ended; no-op")
            return SessionOut.model_validate(row)

    def get_report(self, session_id: int) -> SessionReport:
        with self._db(session_id) as db:
            row = self._get(db, session_id)
            return SessionReport.model_validate(row)

    def delete_session(self, session_id: int) -> None:
        """Remove a session together with its events."""
        with self._session_lock(session_id), self._db(session_id) as db:
            row = self._get(db, session_id)
            db.delete(row)
            db.commit()
        logger.info(f"[ledger] session={session_id} deleted")
