"""Command flow around the workflow services.

A mutating command loads the epic, lets one service change it in memory,
then persists it. Nothing is written if the service raises, so a failed
command leaves the document exactly as it was.

Usage:
    from agentpm.workflow.engine import mutate_epic
    from agentpm.workflow import phases

    with mutate_epic(epic_path) as epic:
        phases.start_phase(epic, "P1", at)
"""

import logging
from contextlib import contextmanager, nullcontext
from pathlib import Path

from agentpm.lib.locking import epic_lock
from agentpm.storage.file import FileStore
from agentpm.workflow import autonext, phases, tasks
from agentpm.workflow.models import CurrentState, Epic
from agentpm.workflow.validation import validate_document

logger = logging.getLogger(__name__)


def load_epic(path: Path, store=None) -> Epic:
    """Load and structurally validate an epic for read-only use."""
    store = store or FileStore()
    epic = store.load(path)
    validate_document(epic)
    return epic


def refresh_current_state(epic: Epic) -> None:
    """Recompute the ``<current_state>`` hint from the epic's statuses."""
    active = phases.get_active_phase(epic)
    active_task = tasks.get_active_task(epic, active.id) if active else None
    epic.current_state = CurrentState(
        active_phase=active.id if active else "",
        active_task=active_task.id if active_task else "",
        next_action=autonext.preview_next(epic),
    )


@contextmanager
def mutate_epic(path: Path, store=None):
    """Yield the loaded epic; persist it when the block exits cleanly.

    File-backed epics are locked for the whole load-mutate-save cycle.
    A block that records no event leaves the document untouched.

    Raises:
        StorageError, ValidationError: On load/save problems
        Any workflow error raised inside the block (nothing is saved)
    """
    store = store or FileStore()
    path = Path(path)
    lock = epic_lock(path) if isinstance(store, FileStore) else nullcontext()

    with lock:
        epic = load_epic(path, store)
        events_before = len(epic.events)
        yield epic
        # Every state change appends an event
        added = len(epic.events) - events_before
        if not added:
            logger.debug(f"[ENGINE] {epic.id}: no changes, not saving")
            return
        refresh_current_state(epic)
        store.save(epic, path)
        logger.info(f"[ENGINE] {epic.id}: saved with {added} new event(s)")
