"""Entity state machines using the transitions library.

One transition table per entity kind. Each table is a list of
(trigger, source, dest) dicts; every trigger becomes a method on the FSM.
Anything not listed is an invalid transition, including every move out of
a terminal state.

Usage:
    from agentpm.workflow.fsm import advance
    from agentpm.workflow.status import PhaseStatus

    phase.status = advance("phase", phase.id, phase.status, PhaseStatus.ACTIVE)
"""

import logging
from enum import Enum

from transitions import Machine, MachineError

from agentpm.workflow.errors import InvalidTransition
from agentpm.workflow.status import EpicStatus, PhaseStatus, TaskStatus, TestStatus

logger = logging.getLogger(__name__)


EPIC_TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "active"},
    {"trigger": "complete", "source": "active", "dest": "completed"},
]

PHASE_TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "active"},
    {"trigger": "cancel", "source": "pending", "dest": "cancelled"},
    {"trigger": "complete", "source": "active", "dest": "completed"},
    {"trigger": "cancel", "source": "active", "dest": "cancelled"},
]

TASK_TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "active"},
    {"trigger": "cancel", "source": "pending", "dest": "cancelled"},
    {"trigger": "complete", "source": "active", "dest": "completed"},
    {"trigger": "cancel", "source": "active", "dest": "cancelled"},
]

TEST_TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "active"},
    {"trigger": "cancel", "source": "pending", "dest": "cancelled"},
    {"trigger": "finish", "source": "active", "dest": "done"},
    {"trigger": "cancel", "source": "active", "dest": "cancelled"},
    # Regression path: a passed test that fails again goes back to active
    {"trigger": "reopen", "source": "done", "dest": "active"},
]

# kind -> (status enum, transition table)
MACHINES: dict[str, tuple[type[Enum], list[dict]]] = {
    "epic": (EpicStatus, EPIC_TRANSITIONS),
    "phase": (PhaseStatus, PHASE_TRANSITIONS),
    "task": (TaskStatus, TASK_TRANSITIONS),
    "test": (TestStatus, TEST_TRANSITIONS),
}

TERMINAL_STATES = {
    "epic": {"completed"},
    "phase": {"cancelled"},
    "task": {"cancelled"},
    "test": {"cancelled"},
}


def _build_trigger_lookup(table: list[dict]) -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in table:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = {kind: _build_trigger_lookup(table) for kind, (_, table) in MACHINES.items()}


class EntityFSM:
    """State machine for one entity's status field.

    The FSM is a transient view: it is built from the current status,
    fired once, and the resulting state is written back by the caller.
    """

    def __init__(self, kind: str, entity_id: str, initial: str):
        if kind not in MACHINES:
            raise ValueError(f"Unknown entity kind: {kind}")
        status_enum, table = MACHINES[kind]
        self.kind = kind
        self.entity_id = entity_id
        self.machine = Machine(
            model=self,
            states=[s.value for s in status_enum],
            transitions=table,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[FSM] {self.kind} {self.entity_id}: "
            f"{event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )

    def to(self, target: str, operation: str = "") -> None:
        """Move to ``target`` via whichever trigger connects the two states.

        Raises:
            InvalidTransition: If the table has no such edge
        """
        current = self.state
        trigger = TRIGGER_FOR[self.kind].get((current, target))
        if trigger is None:
            raise InvalidTransition(self.kind, self.entity_id, current, target, operation)
        try:
            getattr(self, trigger)()
        except MachineError as e:
            raise InvalidTransition(self.kind, self.entity_id, current, target, operation) from e

    def get_available_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)


def advance(kind: str, entity_id: str, current: Enum, target: Enum, operation: str = "") -> Enum:
    """Validate and perform a status transition, returning the new status.

    Raises:
        InvalidTransition: If ``current -> target`` is not in the table for ``kind``
    """
    fsm = EntityFSM(kind, entity_id, current.value)
    fsm.to(target.value, operation)
    return type(current)(fsm.state)


def check_transition(kind: str, entity_id: str, current: Enum, target: Enum, operation: str = "") -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    if not can_transition(kind, current, target):
        raise InvalidTransition(kind, entity_id, current.value, target.value, operation)


def can_transition(kind: str, current: Enum, target: Enum) -> bool:
    return (current.value, target.value) in TRIGGER_FOR[kind]


def is_terminal(kind: str, status: Enum) -> bool:
    return status.value in TERMINAL_STATES[kind]
