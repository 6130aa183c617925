"""
Hint registry: turns a workflow error into one actionable suggestion.

Rules are checked in priority order (high first, then registration order);
the first rule whose predicate accepts the error builds the hint. A
fallback rule accepts everything, so a query on an enabled registry always
yields a hint unless priority filtering removes it.

Usage:
    registry = default_registry(HintConfig.from_config(cfg.hints))
    hint = registry.query(error)
    if hint:
        print(hint.message, hint.suggested_command)
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional

from agentpm.lib.suggest import find_similar
from agentpm.workflow.errors import AgentPMError

logger = logging.getLogger(__name__)


class HintPriority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass
class Hint:
    message: str
    suggested_command: str = ""
    priority: HintPriority = HintPriority.LOW

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "suggested_command": self.suggested_command,
            "priority": self.priority.value,
        }


@dataclass
class HintRule:
    """One entry in the registry.

    ``error_kind`` is the error class name the rule applies to, or "*" for
    any error. ``predicate`` narrows further; ``build`` returns the
    (message, command) pair.
    """
    name: str
    error_kind: str
    priority: HintPriority
    build: Callable[[AgentPMError], tuple[str, str]]
    predicate: Callable[[AgentPMError], bool] = lambda error: True

    def matches(self, error: AgentPMError) -> bool:
        if self.error_kind != "*" and self.error_kind != error.kind:
            return False
        return self.predicate(error)


@dataclass
class HintConfig:
    enabled: bool = True
    min_priority: HintPriority = HintPriority.LOW
    overrides: dict[str, str] = field(default_factory=dict)
    show_commands: bool = True

    @classmethod
    def from_config(cls, data: Optional[dict]) -> "HintConfig":
        """Build from the ``hints`` section of the workspace config."""
        data = data or {}
        return cls(
            enabled=data.get("enabled", True),
            min_priority=HintPriority(data.get("min_priority", HintPriority.LOW.value)),
            overrides=dict(data.get("overrides", {})),
            show_commands=data.get("show_commands", True),
        )


class HintRegistry:
    def __init__(self, config: Optional[HintConfig] = None):
        self.config = config or HintConfig()
        self._rules: list[HintRule] = []

    @property
    def rules(self) -> list[HintRule]:
        # sorted() is stable: ties keep registration order
        return sorted(self._rules, key=lambda r: r.priority.rank, reverse=True)

    def register(self, rule: HintRule) -> None:
        self._rules.append(rule)

    def query(self, error: AgentPMError) -> Optional[Hint]:
        """Return the best hint for ``error``, or None when hints are off."""
        if not self.config.enabled:
            return None

        for rule in self.rules:
            if not rule.matches(error):
                continue
            if rule.priority.rank < self.config.min_priority.rank:
                logger.debug(f"[HINT] {rule.name} filtered by min_priority")
                return None
            message, command = rule.build(error)
            message = self.config.overrides.get(error.kind, message)
            if not self.config.show_commands:
                command = ""
            logger.debug(f"[HINT] {error.kind} -> {rule.name}")
            return Hint(message, command, rule.priority)

        return None


# Rule builders


def _phase_constraint(error) -> tuple[str, str]:
    return (
        f"Complete phase {error.active_phase_id} before starting {error.entity_id}",
        f"agentpm done-phase {error.active_phase_id}",
    )


def _task_constraint(error) -> tuple[str, str]:
    if error.active_task_id:
        return (
            f"Complete task {error.active_task_id} before starting {error.entity_id}",
            f"agentpm done-task {error.active_task_id}",
        )
    if error.phase_id:
        return (
            f"Start phase {error.phase_id} before starting task {error.entity_id}",
            f"agentpm start-phase {error.phase_id}",
        )
    return ("Check the active phase and task", "agentpm current")


def _phase_incomplete(error) -> tuple[str, str]:
    first = error.pending_tasks[0]
    return (
        f"Finish or cancel the remaining tasks in phase {error.entity_id}: {', '.join(error.pending_tasks)}",
        f"agentpm done-task {first}",
    )


def _task_incomplete(error) -> tuple[str, str]:
    return (
        f"Pass or cancel the remaining tests for task {error.entity_id}: {', '.join(error.pending_tests)}",
        f"agentpm pass-test {' '.join(error.pending_tests)}",
    )


def _phase_test_dependency(error) -> tuple[str, str]:
    return (
        f"Finish the tests of phase {error.entity_id} first: {', '.join(error.incomplete_tests)}",
        f"agentpm pass-test {' '.join(error.incomplete_tests)}",
    )


def _phase_test_prerequisite(error) -> tuple[str, str]:
    return (
        f"Phase {error.entity_id} requires these tests to pass first: {', '.join(error.prerequisite_tests)}",
        f"agentpm pass-test {' '.join(error.prerequisite_tests)}",
    )


def _test_prerequisite(error) -> tuple[str, str]:
    return (
        f"Start task {error.task_id} before running test {error.entity_id}",
        f"agentpm start-task {error.task_id}",
    )


def _epic_incomplete(error) -> tuple[str, str]:
    if error.failing_tests:
        return (
            f"Fix the failing tests before completing the epic: {', '.join(error.failing_tests)}",
            "agentpm failing",
        )
    return (
        f"Complete the remaining phases first: {', '.join(error.pending_phases)}",
        "agentpm start-next",
    )


def _already_finished(error) -> tuple[str, str]:
    return (
        f"{error.entity_kind.capitalize()} {error.entity_id} is already {error.current}. "
        "Use 'agentpm status' to see available work",
        "agentpm status",
    )


def _already_active(error) -> tuple[str, str]:
    return (
        f"{error.entity_kind.capitalize()} {error.entity_id} is already active. "
        "Use 'agentpm current' to see active work",
        "agentpm current",
    )


def _not_started(error) -> tuple[str, str]:
    command = f"agentpm start-{error.entity_kind}"
    if error.entity_kind != "epic":
        command += f" {error.entity_id}"
    return (
        f"Start {error.entity_kind} {error.entity_id} before marking it {error.target}",
        command,
    )


def _transition(error) -> tuple[str, str]:
    return (
        f"Check the status of {error.entity_kind} {error.entity_id}: "
        f"cannot go from {error.current} to {error.target}",
        "agentpm status",
    )


def _not_found(error) -> tuple[str, str]:
    match = find_similar(error.entity_id, error.candidates)
    if match:
        return (f"Did you mean {error.entity_kind} {match}?", "agentpm status")
    return (f"No {error.entity_kind} with id {error.entity_id}. List ids with 'agentpm status'", "agentpm status")


def _validation(error) -> tuple[str, str]:
    return ("Fix the epic document and run the command again", "agentpm status")


def _fallback(error) -> tuple[str, str]:
    return ("Check the current state and try again", "agentpm current")


def _is_finished(error) -> bool:
    return error.current in ("completed", "cancelled", "done") and error.operation == "start"


def _is_active(error) -> bool:
    return error.current == "active" and error.operation == "start"


def _is_pending(error) -> bool:
    return error.current == "pending" and error.operation in ("complete", "pass", "cancel")


DEFAULT_RULES = [
    HintRule("phase-constraint", "PhaseConstraintError", HintPriority.HIGH, _phase_constraint),
    HintRule("task-constraint", "TaskConstraintError", HintPriority.HIGH, _task_constraint),
    HintRule("phase-incomplete", "PhaseIncompleteError", HintPriority.HIGH, _phase_incomplete),
    HintRule("task-incomplete", "TaskIncompleteError", HintPriority.HIGH, _task_incomplete),
    HintRule("phase-test-dependency", "PhaseTestDependencyError", HintPriority.HIGH, _phase_test_dependency),
    HintRule("phase-test-prerequisite", "PhaseTestPrerequisiteError", HintPriority.HIGH, _phase_test_prerequisite),
    HintRule("test-prerequisite", "TestPrerequisiteError", HintPriority.HIGH, _test_prerequisite),
    HintRule("epic-incomplete", "EpicIncompleteError", HintPriority.HIGH, _epic_incomplete),
    HintRule("transition-finished", "InvalidTransition", HintPriority.MEDIUM, _already_finished, _is_finished),
    HintRule("transition-active", "InvalidTransition", HintPriority.MEDIUM, _already_active, _is_active),
    HintRule("transition-pending", "InvalidTransition", HintPriority.MEDIUM, _not_started, _is_pending),
    HintRule("transition", "InvalidTransition", HintPriority.MEDIUM, _transition),
    HintRule("not-found", "NotFound", HintPriority.MEDIUM, _not_found),
    HintRule("validation", "ValidationError", HintPriority.MEDIUM, _validation),
    HintRule("fallback", "*", HintPriority.LOW, _fallback),
]


def default_registry(config: Optional[HintConfig] = None) -> HintRegistry:
    """Registry preloaded with the built-in rules."""
    registry = HintRegistry(config)
    for rule in DEFAULT_RULES:
        registry.register(replace(rule))
    return registry
