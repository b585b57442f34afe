"""
Report summary numbers (duration, focus lost, per-type counts).
"""
from __future__ import annotations
from collections import Counter

from core.events import FOCUS_LOST_EVENTS
from core.models import ReportSummary, SessionReport


def summarize_report(report: SessionReport) -> ReportSummary:
    """
    Aggregate a session report. Duration is None until the session has ended.
    """
    duration = None
    if report.end_time is not None:
        duration = max(0, round((report.end_time - report.start_time).total_seconds()))

    counts = Counter(e.event_type.value for e in report.events)
    return ReportSummary(
        session_id=report.id,
        candidate_name=report.candidate_name,
        duration_seconds=duration,
        focus_lost_count=sum(counts[t.value] for t in FOCUS_LOST_EVENTS),
        event_counts=dict(counts),
        total_deduction=sum(e.deduction for e in report.events),
        final_integrity_score=report.final_integrity_score,
    )
