# core/db.py
from datetime import timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timestamp stored as UTC and always read back timezone-aware.

    SQLite has no timezone support and returns naive values; those are UTC
    because that is all this module ever writes.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class ProctoringSession(Base):
    __tablename__ = "proctoring_sessions"

    id = Column(Integer, primary_key=True, index=True)
    candidate_name = Column(String(255), nullable=False)
    start_time = Column(UTCDateTime, nullable=False, server_default=func.now())
    end_time = Column(UTCDateTime, nullable=True)
    final_integrity_score = Column(Integer, nullable=False, default=100)

    events = relationship(
        "EventLog",
        back_populates="session",
        order_by="EventLog.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("proctoring_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)  # e.g. "no_face", "phone_detected"
    message = Column(String(255), nullable=False)
    deduction = Column(Integer, nullable=False)
    timestamp = Column(UTCDateTime, nullable=False, server_default=func.now())

    session = relationship("ProctoringSession", back_populates="events")


def make_engine(database_url: str, timeout: float) -> Engine:
    """Create an engine whose connection attempts are bounded by ``timeout`` seconds."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )

        # SQLite only enforces ON DELETE CASCADE with foreign keys switched on
        @event.listens_for(engine, "connect")
        def _enable_fk(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"connect_timeout": int(max(1, timeout))},
    )


def make_session_factory(engine: Engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
