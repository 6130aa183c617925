"""Append-only event log for an epic.

Every state-changing operation records exactly one event. Events are only
ever appended; nothing in agentpm edits or removes them. The timestamp is
always supplied by the caller.
"""

import itertools
import logging
from datetime import datetime

from agentpm.workflow.errors import ValidationError
from agentpm.workflow.models import Epic, Event
from agentpm.workflow.status import PhaseStatus, TaskStatus

logger = logging.getLogger(__name__)

EPIC_STARTED = "epic_started"
EPIC_COMPLETED = "epic_completed"
PHASE_STARTED = "phase_started"
PHASE_COMPLETED = "phase_completed"
TASK_STARTED = "task_started"
TASK_COMPLETED = "task_completed"
TASK_CANCELLED = "task_cancelled"
TEST_STARTED = "test_started"
TEST_PASSED = "test_passed"
TEST_FAILED = "test_failed"
TEST_CANCELLED = "test_cancelled"

EVENT_TYPES = (
    EPIC_STARTED, EPIC_COMPLETED,
    PHASE_STARTED, PHASE_COMPLETED,
    TASK_STARTED, TASK_COMPLETED, TASK_CANCELLED,
    TEST_STARTED, TEST_PASSED, TEST_FAILED, TEST_CANCELLED,
)

# Free-form entries written by `agentpm log`
LOG_TYPES = ("implementation", "blocker", "issue", "milestone", "decision", "note")
FILE_ACTIONS = ("added", "modified", "deleted", "renamed")

# Process-wide suffix counter for event ids
_counter = itertools.count(1)


def _next_event_id(epic: Epic, event_type: str) -> str:
    existing = {e.id for e in epic.events}
    while True:
        event_id = f"{event_type}_{next(_counter)}"
        if event_id not in existing:
            return event_id


def _describe(label: str, entity_id: str, name: str, verb: str, reason: str = "") -> str:
    text = f"{label} {entity_id} ({name}) {verb}" if name else f"{label} {entity_id} {verb}"
    if reason:
        text += f": {reason}"
    return text


def record(
    epic: Epic,
    event_type: str,
    data: str,
    timestamp: datetime,
    phase_id: str = "",
    task_id: str = "",
    test_id: str = "",
) -> Event:
    """Append an event to the epic and return it."""
    event = Event(
        id=_next_event_id(epic, event_type),
        type=event_type,
        timestamp=timestamp,
        data=data,
        phase_id=phase_id,
        task_id=task_id,
        test_id=test_id,
    )
    epic.events.append(event)
    logger.debug(f"[EVENT] {epic.id}: {event.id} {data}")
    return event


def record_epic(epic: Epic, event_type: str, timestamp: datetime) -> Event:
    verb = "started" if event_type == EPIC_STARTED else "completed"
    return record(epic, event_type, f"Epic {epic.name or epic.id} {verb}", timestamp)


def record_phase(epic: Epic, event_type: str, phase_id: str, timestamp: datetime) -> Event:
    phase = epic.find_phase(phase_id)
    verb = event_type.split("_", 1)[1]
    data = _describe("Phase", phase_id, phase.name if phase else "", verb)
    return record(epic, event_type, data, timestamp, phase_id=phase_id)


def record_task(epic: Epic, event_type: str, task_id: str, timestamp: datetime, reason: str = "") -> Event:
    task = epic.find_task(task_id)
    verb = event_type.split("_", 1)[1]
    data = _describe("Task", task_id, task.name if task else "", verb, reason)
    return record(
        epic, event_type, data, timestamp,
        phase_id=task.phase_id if task else "", task_id=task_id,
    )


def record_test(epic: Epic, event_type: str, test_id: str, timestamp: datetime, reason: str = "") -> Event:
    test = epic.find_test(test_id)
    verb = event_type.split("_", 1)[1]
    data = _describe("Test", test_id, test.name if test else "", verb, reason)
    return record(
        epic, event_type, data, timestamp,
        phase_id=test.phase_id if test else "",
        task_id=test.task_id if test else "",
        test_id=test_id,
    )


def events_since(epic: Epic, index: int) -> list[Event]:
    """Events appended after position ``index`` in the log."""
    return list(epic.events[index:])


def recent_events(epic: Epic, limit: int = 10) -> list[Event]:
    """Most recent events, newest first."""
    if limit <= 0:
        return []
    return list(reversed(epic.events[-limit:]))


def parse_files(spec: str) -> list[tuple[str, str]]:
    """Parse ``path:action,path2:action2`` into (path, action) pairs.

    The action is split off at the last colon so paths may contain colons.

    Raises:
        ValidationError: If an entry has no action or an unknown one
    """
    files = []
    for part in (spec or "").split(","):
        part = part.strip()
        if not part:
            continue
        path, sep, action = part.rpartition(":")
        if not sep or not path or not action:
            raise ValidationError(f"Invalid file entry '{part}': expected 'path:action'")
        if action not in FILE_ACTIONS:
            raise ValidationError(
                f"Invalid file action '{action}' for {path}: expected one of {', '.join(FILE_ACTIONS)}"
            )
        files.append((path, action))
    return files


def log_entry(epic: Epic, message: str, timestamp: datetime, event_type: str = "implementation",
              files: list[tuple[str, str]] | None = None) -> Event:
    """Record a free-form log entry against the active phase and task.

    Raises:
        ValidationError: If the message is empty or the type unknown
    """
    if not message or not message.strip():
        raise ValidationError("A log message is required")
    if event_type not in LOG_TYPES:
        raise ValidationError(f"Invalid log type '{event_type}': expected one of {', '.join(LOG_TYPES)}")

    data = message.strip()
    if files:
        data += " [files: " + ", ".join(f"{path}:{action}" for path, action in files) + "]"

    phase = next((p for p in epic.phases if p.status == PhaseStatus.ACTIVE), None)
    task = None
    if phase is not None:
        task = next((t for t in epic.tasks_in_phase(phase.id) if t.status == TaskStatus.ACTIVE), None)
    return record(
        epic, event_type, data, timestamp,
        phase_id=phase.id if phase else "",
        task_id=task.id if task else "",
    )
