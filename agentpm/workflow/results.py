"""Structured results returned by workflow operations.

These are the objects the output formatters render as text, JSON or XML.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class OperationResult(BaseModel):
    """Outcome of a single state change."""
    operation: str  # "started", "completed", "cancelled", "passed", "failed"
    entity_kind: str
    entity_id: str
    previous_status: str
    new_status: str
    timestamp: datetime
    message: str
    event_id: str = ""
    reason: str = ""


class CountSummary(BaseModel):
    total: int = 0
    completed: int = 0
    cancelled: int = 0


class EpicSummary(BaseModel):
    """Aggregate figures reported when an epic completes."""
    epic_id: str
    phases: CountSummary
    tasks: CountSummary
    tests: CountSummary
    passing_tests: int = 0
    failing_tests: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: int = 0


class AutoNextResult(BaseModel):
    """Recommendation (and performed action) from the auto-next selector."""
    action: str  # start_task, start_phase, complete_epic, no_work
    phase_id: str = ""
    task_id: str = ""
    phase_name: str = ""
    task_name: str = ""
    phase_status: str = ""
    task_status: str = ""
    started_at: Optional[datetime] = None
    auto_selected: bool = False
    message: str = ""
    completed_phase_id: str = ""
