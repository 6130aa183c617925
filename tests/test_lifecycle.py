"""Tests for epic lifecycle and end-to-end flows."""

from datetime import timedelta

import pytest

from agentpm.workflow import lifecycle, phases, tasks
from agentpm.workflow import status
from agentpm.workflow import tests as test_service
from agentpm.workflow.errors import EpicIncompleteError, InvalidTransition, ValidationError
from agentpm.workflow.status import EpicStatus


class TestStartEpic:
    """Tests for start_epic()."""

    def test_start(self, simple_epic, at, event_types):
        """A pending epic becomes active and records epic_started."""
        result = lifecycle.start_epic(simple_epic, at)
        assert simple_epic.status == EpicStatus.ACTIVE
        assert simple_epic.started_at == at
        assert result.previous_status == "pending"
        assert event_types(simple_epic) == ["epic_started"]
        assert simple_epic.events[0].data == "Epic Test Epic started"

    def test_start_twice(self, simple_epic, at):
        """Starting an active epic is an invalid transition."""
        lifecycle.start_epic(simple_epic, at)
        with pytest.raises(InvalidTransition) as exc:
            lifecycle.start_epic(simple_epic, at)
        assert exc.value.entity_kind == "epic"


class TestCompleteEpic:
    """Tests for complete_epic()."""

    def test_pending_phases_block(self, builder, at):
        """Unfinished phases keep the epic active."""
        epic = builder(status="active").phase("P1", "completed").phase("P2").build()
        with pytest.raises(EpicIncompleteError) as exc:
            lifecycle.complete_epic(epic, at)
        assert exc.value.pending_phases == ["P2"]
        assert epic.status == EpicStatus.ACTIVE

    def test_failing_tests_block(self, builder, at):
        """A failing test blocks completion even when phases are done."""
        epic = (builder(status="active")
                .phase("P1", "completed")
                .task("T1", "P1", "completed")
                .test("X1", "T1", "active", "failing")
                .build())
        with pytest.raises(EpicIncompleteError) as exc:
            lifecycle.complete_epic(epic, at)
        assert exc.value.failing_tests == ["X1"]

    def test_completed_epic_is_terminal(self, builder, at):
        """A completed epic cannot be completed again."""
        epic = builder(status="completed").build()
        with pytest.raises(InvalidTransition):
            lifecycle.complete_epic(epic, at)

    def test_pending_epic_cannot_complete(self, builder, at):
        with pytest.raises(InvalidTransition):
            lifecycle.complete_epic(builder().build(), at)

    def test_summary(self, builder, at):
        """The summary counts each entity kind by status and reports duration."""
        epic = (builder(status="active")
                .phase("P1", "completed").phase("P2", "cancelled")
                .task("T1", "P1", "completed").task("T2", "P1", "cancelled")
                .test("X1", "T1", "done", "passing").test("X2", "T1", "cancelled")
                .build())
        epic.started_at = at
        done_at = at + timedelta(hours=2)

        _, summary = lifecycle.complete_epic(epic, done_at)

        assert summary.phases.total == 2
        assert summary.phases.completed == 1
        assert summary.phases.cancelled == 1
        assert summary.tasks.cancelled == 1
        assert summary.tests.completed == 1
        assert summary.passing_tests == 1
        assert summary.failing_tests == 0
        assert summary.duration_seconds == 7200

    def test_summary_without_start_time(self, builder, at):
        """Without started_at the duration is zero."""
        epic = builder(status="active").build()
        _, summary = lifecycle.complete_epic(epic, at)
        assert summary.duration_seconds == 0

    def test_completion_before_start_rejected(self, builder, at):
        """A negative epic duration is refused."""
        epic = builder(status="active").phase("P1", "completed").build()
        epic.started_at = at + timedelta(hours=1)

        with pytest.raises(ValidationError):
            lifecycle.complete_epic(epic, at)

        assert epic.status == EpicStatus.ACTIVE
        assert epic.completed_at is None
        assert epic.events == []


class TestEndToEnd:
    """End-to-end flows through the services."""

    def test_simple_linear(self, simple_epic, clock, event_types):
        """The straight path from pending to completed records one event per step."""
        epic = simple_epic
        lifecycle.start_epic(epic, clock.tick())
        phases.start_phase(epic, "P1", clock.tick())
        tasks.start_task(epic, "T1", clock.tick())
        test_service.pass_test(epic, "X1", clock.tick())
        tasks.complete_task(epic, "T1", clock.tick())
        phases.complete_phase(epic, "P1", clock.tick())
        lifecycle.complete_epic(epic, clock.tick())

        assert epic.status == EpicStatus.COMPLETED
        x1 = epic.find_test("X1")
        assert x1.test_status == status.TestStatus.DONE
        assert x1.test_result == status.TestResult.PASSING
        assert event_types(epic) == [
            "epic_started", "phase_started", "task_started", "test_passed",
            "task_completed", "phase_completed", "epic_completed",
        ]

    def test_test_recovery(self, simple_epic, clock, event_types):
        """A failed test can be fixed and passed before the epic completes."""
        epic = simple_epic
        lifecycle.start_epic(epic, clock.tick())
        phases.start_phase(epic, "P1", clock.tick())
        tasks.start_task(epic, "T1", clock.tick())
        test_service.fail_test(epic, "X1", "boom", clock.tick())
        test_service.pass_test(epic, "X1", clock.tick())
        tasks.complete_task(epic, "T1", clock.tick())
        phases.complete_phase(epic, "P1", clock.tick())
        lifecycle.complete_epic(epic, clock.tick())

        types = event_types(epic)
        assert epic.status == EpicStatus.COMPLETED
        assert types.index("test_failed") < types.index("test_passed")
        assert epic.find_test("X1").test_result == status.TestResult.PASSING

    def test_event_timestamps_never_decrease(self, simple_epic, clock):
        """Events are appended in time order."""
        epic = simple_epic
        lifecycle.start_epic(epic, clock.tick())
        phases.start_phase(epic, "P1", clock.tick())
        tasks.start_task(epic, "T1", clock.tick())
        test_service.pass_test(epic, "X1", clock.tick())

        stamps = [e.timestamp for e in epic.events]
        assert stamps == sorted(stamps)

    def test_event_ids_unique(self, simple_epic, clock, normalized_ids):
        epic = simple_epic
        lifecycle.start_epic(epic, clock.tick())
        phases.start_phase(epic, "P1", clock.tick())

        assert len({e.id for e in epic.events}) == 2
        assert normalized_ids(epic) == ["epic_started", "phase_started"]
