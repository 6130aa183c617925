"""Error taxonomy for workflow operations.

Errors are plain data: each carries the structured fields a formatter or
the hint registry needs, plus a readable message. Hints are computed
elsewhere (see agentpm.lib.hints) so nothing here knows about presentation.
"""

from agentpm.lib.constants import (
    EXIT_ERROR,
    EXIT_INVALID_STATE,
    EXIT_NOT_FOUND,
    EXIT_VALIDATION,
)


class AgentPMError(Exception):
    """Base class for all errors surfaced to the command layer."""

    exit_code = EXIT_ERROR
    entity_kind = ""
    entity_id = ""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def details(self) -> dict:
        """Structured fields for JSON/XML output."""
        data = {"type": self.kind, "message": self.message}
        if self.entity_kind:
            data["entity_kind"] = self.entity_kind
        if self.entity_id:
            data["entity_id"] = self.entity_id
        data.update(self._extra())
        return data

    def _extra(self) -> dict:
        return {}


class NotFound(AgentPMError):
    """Referenced entity id does not exist."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, entity_kind: str, entity_id: str, candidates: list[str] | None = None):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.candidates = list(candidates or [])
        super().__init__(f"{entity_kind.capitalize()} {entity_id} not found")


class InvalidTransition(AgentPMError):
    """Source status disallows the requested target status."""

    exit_code = EXIT_INVALID_STATE

    def __init__(self, entity_kind: str, entity_id: str, current: str, target: str, operation: str = ""):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.current = current
        self.target = target
        self.operation = operation
        super().__init__(
            f"Invalid transition for {entity_kind} {entity_id}: {current} -> {target}"
        )

    def _extra(self) -> dict:
        return {"current": self.current, "target": self.target, "operation": self.operation}


class PhaseConstraintError(AgentPMError):
    """Starting the phase would leave two phases active."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "phase"

    def __init__(self, phase_id: str, active_phase_id: str):
        self.entity_id = phase_id
        self.active_phase_id = active_phase_id
        super().__init__(
            f"Cannot start phase {phase_id}: phase {active_phase_id} is already active"
        )

    def _extra(self) -> dict:
        return {"active_phase_id": self.active_phase_id}


class TaskConstraintError(AgentPMError):
    """Task cannot start: its phase is not active, or a sibling task is active."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "task"

    def __init__(self, task_id: str, reason: str, phase_id: str = "", active_task_id: str = ""):
        self.entity_id = task_id
        self.reason = reason
        self.phase_id = phase_id
        self.active_task_id = active_task_id
        super().__init__(f"Cannot start task {task_id}: {reason}")

    def _extra(self) -> dict:
        return {
            "reason": self.reason,
            "phase_id": self.phase_id,
            "active_task_id": self.active_task_id,
        }


class PhaseIncompleteError(AgentPMError):
    """Phase completion attempted while tasks remain."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "phase"

    def __init__(self, phase_id: str, pending_tasks: list[str]):
        self.entity_id = phase_id
        self.pending_tasks = list(pending_tasks)
        super().__init__(
            f"Cannot complete phase {phase_id}: {len(self.pending_tasks)} task(s) not finished "
            f"({', '.join(self.pending_tasks)})"
        )

    def _extra(self) -> dict:
        return {"pending_tasks": self.pending_tasks}


class TaskIncompleteError(AgentPMError):
    """Task completion attempted while tests remain."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "task"

    def __init__(self, task_id: str, pending_tests: list[str]):
        self.entity_id = task_id
        self.pending_tests = list(pending_tests)
        super().__init__(
            f"Cannot complete task {task_id}: {len(self.pending_tests)} test(s) not finished "
            f"({', '.join(self.pending_tests)})"
        )

    def _extra(self) -> dict:
        return {"pending_tests": self.pending_tests}


class PhaseTestDependencyError(AgentPMError):
    """Phase completion blocked by tests that are not done or cancelled."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "phase"

    def __init__(self, phase_id: str, incomplete_tests: list[str]):
        self.entity_id = phase_id
        self.incomplete_tests = list(incomplete_tests)
        super().__init__(
            f"Cannot complete phase {phase_id}: tests not finished ({', '.join(self.incomplete_tests)})"
        )

    def _extra(self) -> dict:
        return {"incomplete_tests": self.incomplete_tests}


class PhaseTestPrerequisiteError(AgentPMError):
    """Phase start blocked by prerequisite tests that are not done."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "phase"

    def __init__(self, phase_id: str, prerequisite_tests: list[str]):
        self.entity_id = phase_id
        self.prerequisite_tests = list(prerequisite_tests)
        super().__init__(
            f"Cannot start phase {phase_id}: prerequisite tests not done "
            f"({', '.join(self.prerequisite_tests)})"
        )

    def _extra(self) -> dict:
        return {"prerequisite_tests": self.prerequisite_tests}


class TestPrerequisiteError(AgentPMError):
    """Test cannot start because its task is neither active nor completed."""

    __test__ = False
    exit_code = EXIT_INVALID_STATE
    entity_kind = "test"

    def __init__(self, test_id: str, task_id: str, task_status: str):
        self.entity_id = test_id
        self.task_id = task_id
        self.task_status = task_status
        super().__init__(
            f"Cannot start test {test_id}: task {task_id} is {task_status}, "
            "must be active or completed"
        )

    def _extra(self) -> dict:
        return {"task_id": self.task_id, "task_status": self.task_status}


class EpicIncompleteError(AgentPMError):
    """Epic completion blocked by unfinished phases or failing tests."""

    exit_code = EXIT_INVALID_STATE
    entity_kind = "epic"

    def __init__(self, epic_id: str, pending_phases: list[str], failing_tests: list[str]):
        self.entity_id = epic_id
        self.pending_phases = list(pending_phases)
        self.failing_tests = list(failing_tests)
        parts = []
        if self.pending_phases:
            parts.append(f"phases not finished ({', '.join(self.pending_phases)})")
        if self.failing_tests:
            parts.append(f"failing tests ({', '.join(self.failing_tests)})")
        super().__init__(f"Cannot complete epic {epic_id}: " + "; ".join(parts))

    def _extra(self) -> dict:
        return {"pending_phases": self.pending_phases, "failing_tests": self.failing_tests}


class ValidationError(AgentPMError):
    """Structural problem in the epic document or in command input."""

    exit_code = EXIT_VALIDATION

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)

    def _extra(self) -> dict:
        return {"problems": self.problems} if self.problems else {}


class StorageError(AgentPMError):
    """Loading or saving the epic document failed."""

    exit_code = EXIT_ERROR

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message + (f" ({path})" if path else ""))

    def _extra(self) -> dict:
        return {"path": self.path} if self.path else {}
