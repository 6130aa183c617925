"""
In-memory model of an epic document.

The epic owns every phase, task, test and event. Children refer to their
parents by id only, so lists can be reordered or rebuilt freely.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from agentpm.workflow.status import (
    EpicStatus,
    PhaseStatus,
    TaskStatus,
    TestResult,
    TestStatus,
)


@dataclass
class Phase:
    id: str
    name: str = ""
    status: PhaseStatus = PhaseStatus.PENDING
    description: str = ""
    deliverables: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class Task:
    id: str
    phase_id: str
    name: str = ""
    status: TaskStatus = TaskStatus.PENDING
    description: str = ""
    acceptance_criteria: str = ""
    assignee: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: str = ""


@dataclass
class EpicTest:
    """A verification attached to one task.

    ``test_status`` is the lifecycle position and ``test_result`` the last
    outcome (None until the test has passed or failed once).
    """
    id: str
    task_id: str
    phase_id: str = ""
    name: str = ""
    description: str = ""
    test_status: TestStatus = TestStatus.PENDING
    test_result: Optional[TestResult] = None
    blocks_phase: str = ""  # Phase whose start waits for this test
    started_at: Optional[datetime] = None
    passed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    failure_note: str = ""
    cancellation_reason: str = ""

    @property
    def is_failing(self) -> bool:
        return self.test_result == TestResult.FAILING


@dataclass
class Event:
    id: str
    type: str
    timestamp: datetime
    data: str = ""
    phase_id: str = ""
    task_id: str = ""
    test_id: str = ""


@dataclass
class CurrentState:
    active_phase: str = ""
    active_task: str = ""
    next_action: str = ""


@dataclass
class Epic:
    id: str
    name: str = ""
    status: EpicStatus = EpicStatus.PENDING
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    assignee: str = ""
    description: str = ""
    workflow: str = ""
    requirements: str = ""
    dependencies: str = ""
    priority: str = ""
    estimated_effort: str = ""
    phases: list[Phase] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    tests: list[EpicTest] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    current_state: Optional[CurrentState] = None
    # Unrecognised root children, serialized, written back unchanged
    extra_elements: list[str] = field(default_factory=list)

    def find_phase(self, phase_id: str) -> Optional[Phase]:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def find_test(self, test_id: str) -> Optional[EpicTest]:
        for test in self.tests:
            if test.id == test_id:
                return test
        return None

    def tasks_in_phase(self, phase_id: str) -> list[Task]:
        return [t for t in self.tasks if t.phase_id == phase_id]

    def tests_for_task(self, task_id: str) -> list[EpicTest]:
        return [t for t in self.tests if t.task_id == task_id]

    def tests_in_phase(self, phase_id: str) -> list[EpicTest]:
        return [t for t in self.tests if t.phase_id == phase_id]
