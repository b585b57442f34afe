"""
REST endpoints for sessions and events.

Endpoints are synchronous: FastAPI runs each request in its worker threadpool,
and the ledger serializes deductions per session.
"""
import logging

from fastapi import APIRouter, Request, status

from core.ledger import ScoreLedger
from core.models import EventApplied, EventCreate, ReportSummary, SessionCreate, SessionOut, SessionReport
from core.report import summarize_report

router = APIRouter()
logger = logging.getLogger(__name__)


def _ledger(request: Request) -> ScoreLedger:
    return request.app.state.ledger


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionOut)
def start_session(body: SessionCreate, request: Request):
    """
    Start a proctoring session with a fresh score of 100.

    Args:
        body: {candidateName}

    Returns:
        SessionOut: The created session.
    """
    logger.debug(f"[api] /sessions candidate={body.candidate_name!r}")
    return _ledger(request).create_session(body.candidate_name)


@router.post("/events", status_code=status.HTTP_201_CREATED, response_model=EventApplied)
def log_event(body: EventCreate, request: Request):
    """
    Apply one violation to a session and return the event with the updated score.
    """
    logger.debug(f"[api] /events session={body.session_id} type={body.event_type.value}")
    return _ledger(request).apply_event(body.session_id, body.event_type, body.message, body.deduction)


@router.get("/sessions/{session_id}", response_model=SessionReport)
def get_report(session_id: int, request: Request):
    return _ledger(request).get_report(session_id)


@router.get("/sessions/{session_id}/summary", response_model=ReportSummary)
def get_summary(session_id: int, request: Request):
    return summarize_report(_ledger(request).get_report(session_id))


@router.put("/sessions/{session_id}/end", response_model=SessionOut)
def end_session(session_id: int, request: Request):
    logger.debug(f"[api] /sessions/{session_id}/end")
    return _ledger(request).end_session(session_id)
