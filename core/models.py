"""
Pydantic data models for API IO and perception samples.
"""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional

from core.events import EventType


class CamelModel(BaseModel):
    """Serialized as camelCase on the wire, constructed with either name."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ledger models


class SessionCreate(CamelModel):
    candidate_name: Optional[str] = None

class EventCreate(CamelModel):
    session_id: int
    event_type: EventType
    message: Optional[str] = None
    deduction: Optional[int] = Field(default=None, ge=0)

class EventOut(CamelModel):
    id: int
    session_id: int
    event_type: EventType
    message: str
    deduction: int
    timestamp: datetime

class SessionOut(CamelModel):
    id: int
    candidate_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    final_integrity_score: int = Field(ge=0, le=100)

class SessionReport(SessionOut):
    events: List[EventOut] = Field(default_factory=list)

class EventApplied(CamelModel):
    event: EventOut
    updated_score: int

class ReportSummary(CamelModel):
    session_id: int
    candidate_name: str
    duration_seconds: Optional[int] = None
    focus_lost_count: int
    event_counts: Dict[str, int] = Field(default_factory=dict)
    total_deduction: int
    final_integrity_score: int



# perception models


class Landmark(BaseModel):
    x: float
    y: float
    z: float = 0.0

class ObjectDetection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(alias="class")
    confidence: float = Field(ge=0.0, le=1.0)
    bbox: List[float] = Field(default_factory=list)

class SignalSample(BaseModel):
    """One fused perception reading. ``ts`` is only set for recorded streams (ms)."""
    faces: List[List[Landmark]] = Field(default_factory=list)
    objects: List[ObjectDetection] = Field(default_factory=list)
    audio_level: float = 0.0
    ts: Optional[float] = None
