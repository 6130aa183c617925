"""Shared fixtures: an epic builder, a fixed clock, event helpers."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from agentpm.workflow.models import Epic, EpicTest, Phase, Task
from agentpm.workflow.status import (
    EpicStatus,
    PhaseStatus,
    TaskStatus,
    TestResult,
    TestStatus,
)

T0 = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class EpicBuilder:
    """Fluent builder for in-memory epics.

    Statuses are given as canonical strings to keep tests short:

        epic = (EpicBuilder("epic-1")
                .phase("P1", "active")
                .task("T1", "P1")
                .test("X1", "T1")
                .build())
    """

    def __init__(self, epic_id: str = "epic-1", status: str = "pending", name: str = "Test Epic"):
        self.epic = Epic(id=epic_id, name=name, status=EpicStatus(status), created_at=T0)

    def phase(self, phase_id: str, status: str = "pending", name: str = "") -> "EpicBuilder":
        self.epic.phases.append(Phase(id=phase_id, name=name or f"Phase {phase_id}", status=PhaseStatus(status)))
        return self

    def task(self, task_id: str, phase_id: str, status: str = "pending", name: str = "") -> "EpicBuilder":
        self.epic.tasks.append(
            Task(id=task_id, phase_id=phase_id, name=name or f"Task {task_id}", status=TaskStatus(status))
        )
        return self

    def test(self, test_id: str, task_id: str, status: str = "pending", result: str = None,
             blocks_phase: str = "", name: str = "") -> "EpicBuilder":
        task = self.epic.find_task(task_id)
        self.epic.tests.append(
            EpicTest(
                id=test_id,
                task_id=task_id,
                phase_id=task.phase_id if task else "",
                name=name or f"Test {test_id}",
                test_status=TestStatus(status),
                test_result=TestResult(result) if result else None,
                blocks_phase=blocks_phase,
            )
        )
        return self

    def build(self) -> Epic:
        return self.epic


class FixedClock:
    """Deterministic timestamps; ``tick`` advances by one minute."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def tick(self, minutes: int = 1) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


@pytest.fixture
def builder():
    """Factory for EpicBuilder instances."""
    return EpicBuilder


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def at():
    return T0


@pytest.fixture
def simple_epic():
    """Epic {P1:{T1:{X1}}}, everything pending."""
    return EpicBuilder().phase("P1").task("T1", "P1").test("X1", "T1").build()


def _strip_suffix(event_id: str) -> str:
    return re.sub(r"_\d+$", "", event_id)


@pytest.fixture
def event_types():
    """Event types of an epic, in log order."""
    def _types(epic: Epic) -> list[str]:
        return [e.type for e in epic.events]
    return _types


@pytest.fixture
def normalized_ids():
    """Event ids with their numeric suffix removed."""
    def _ids(epic: Epic) -> list[str]:
        return [_strip_suffix(e.id) for e in epic.events]
    return _ids
