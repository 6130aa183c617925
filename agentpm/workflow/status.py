"""Status enumerations for epics, phases, tasks and tests.

Values match the canonical names written to the epic document. Older
documents use a different vocabulary (planning / wip / done); the
``project_*`` helpers map those onto the canonical enums on read.

Usage:
    from agentpm.workflow.status import PhaseStatus, project_phase_status

    project_phase_status("wip")  # PhaseStatus.ACTIVE
"""

from enum import Enum


class EpicStatus(Enum):
    """Epic lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class PhaseStatus(Enum):
    """Phase lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TestStatus(Enum):
    """Lifecycle position of a test, independent of its outcome."""

    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"
    CANCELLED = "cancelled"


class TestResult(Enum):
    """Last recorded outcome of a test."""

    PASSING = "passing"
    FAILING = "failing"


# Work is finished for these; completion gates treat them alike
TASK_FINISHED = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})
PHASE_FINISHED = frozenset({PhaseStatus.COMPLETED, PhaseStatus.CANCELLED})
TEST_FINISHED = frozenset({TestStatus.DONE, TestStatus.CANCELLED})


_LEGACY_LIFECYCLE = {
    "planning": "pending",
    "wip": "active",
    "done": "completed",
}

# Legacy test status -> (test_status, implied result)
_LEGACY_TEST = {
    "planning": (TestStatus.PENDING, None),
    "pending": (TestStatus.PENDING, None),
    "wip": (TestStatus.ACTIVE, None),
    "active": (TestStatus.ACTIVE, None),
    "done": (TestStatus.DONE, TestResult.PASSING),
    "completed": (TestStatus.DONE, TestResult.PASSING),
    "passed": (TestStatus.DONE, TestResult.PASSING),
    "failed": (TestStatus.ACTIVE, TestResult.FAILING),
    "cancelled": (TestStatus.CANCELLED, None),
}

# Canonical test status -> mirrored legacy attribute written for old readers
LEGACY_TEST_STATUS = {
    TestStatus.PENDING: "pending",
    TestStatus.ACTIVE: "active",
    TestStatus.DONE: "completed",
    TestStatus.CANCELLED: "cancelled",
}


def _parse(enum_cls, value: str | None):
    """Parse a canonical or legacy status string into ``enum_cls``.

    Returns None if the value is unknown.
    """
    if value is None:
        return None
    value = value.strip()
    value = _LEGACY_LIFECYCLE.get(value, value)
    for member in enum_cls:
        if member.value == value:
            return member
    return None


def project_epic_status(value: str | None) -> EpicStatus | None:
    return _parse(EpicStatus, value)


def project_phase_status(value: str | None) -> PhaseStatus | None:
    return _parse(PhaseStatus, value)


def project_task_status(value: str | None) -> TaskStatus | None:
    return _parse(TaskStatus, value)


def parse_test_status(value: str | None) -> TestStatus | None:
    """Parse a canonical ``test_status`` attribute (no legacy names)."""
    if value is None:
        return None
    if value.strip() == "wip":
        return TestStatus.ACTIVE
    for member in TestStatus:
        if member.value == value.strip():
            return member
    return None


def parse_test_result(value: str | None) -> TestResult | None:
    if value is None:
        return None
    value = value.strip()
    if value == "passed":
        return TestResult.PASSING
    if value == "failed":
        return TestResult.FAILING
    for member in TestResult:
        if member.value == value:
            return member
    return None


def project_test_status(legacy: str | None) -> tuple[TestStatus, TestResult | None] | None:
    """Project a legacy test ``status`` attribute onto the two-axis model.

    Returns None if the value is unknown.
    """
    if legacy is None:
        return None
    return _LEGACY_TEST.get(legacy.strip())
