"""Phase operations: start, complete, and active-phase lookup.

Only one phase may be active at a time. Completing a phase requires every
task in it to be completed or cancelled and every test in it to be done
or cancelled.
"""

import logging
from datetime import datetime
from typing import Optional

from agentpm.workflow import events, fsm, validation
from agentpm.workflow.models import Epic, Phase
from agentpm.workflow.results import OperationResult
from agentpm.workflow.status import PhaseStatus

logger = logging.getLogger(__name__)


def start_phase(epic: Epic, phase_id: str, at: datetime) -> OperationResult:
    """Activate a pending phase.

    Raises:
        NotFound, InvalidTransition, PhaseConstraintError, PhaseTestPrerequisiteError
    """
    error = validation.check_start_phase(epic, phase_id)
    if error:
        raise error

    phase = epic.find_phase(phase_id)
    previous = phase.status
    phase.status = fsm.advance("phase", phase_id, phase.status, PhaseStatus.ACTIVE, "start")
    phase.started_at = at
    event = events.record_phase(epic, events.PHASE_STARTED, phase_id, at)

    logger.info(f"[PHASE] {epic.id}/{phase_id}: {previous.value} -> {phase.status.value}")
    return OperationResult(
        operation="started",
        entity_kind="phase",
        entity_id=phase_id,
        previous_status=previous.value,
        new_status=phase.status.value,
        timestamp=at,
        message=f"Phase {phase_id} started",
        event_id=event.id,
    )


def complete_phase(epic: Epic, phase_id: str, at: datetime) -> OperationResult:
    """Complete the active phase.

    The completion timestamp and the event timestamp are both ``at``.

    Raises:
        NotFound, InvalidTransition, PhaseIncompleteError, PhaseTestDependencyError,
        ValidationError (``at`` before the phase started)
    """
    error = validation.check_complete_phase(epic, phase_id, at)
    if error:
        raise error

    phase = epic.find_phase(phase_id)
    previous = phase.status
    phase.status = fsm.advance("phase", phase_id, phase.status, PhaseStatus.COMPLETED, "complete")
    phase.completed_at = at
    event = events.record_phase(epic, events.PHASE_COMPLETED, phase_id, at)

    logger.info(f"[PHASE] {epic.id}/{phase_id}: {previous.value} -> {phase.status.value}")
    return OperationResult(
        operation="completed",
        entity_kind="phase",
        entity_id=phase_id,
        previous_status=previous.value,
        new_status=phase.status.value,
        timestamp=at,
        message=f"Phase {phase_id} completed",
        event_id=event.id,
    )


def get_active_phase(epic: Epic) -> Optional[Phase]:
    """Return the active phase, or None."""
    for phase in epic.phases:
        if phase.status == PhaseStatus.ACTIVE:
            return phase
    return None


def get_next_pending_phase(epic: Epic) -> Optional[Phase]:
    """First pending phase in document order."""
    for phase in epic.phases:
        if phase.status == PhaseStatus.PENDING:
            return phase
    return None
