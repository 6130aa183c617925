"""Tests for the test service (start / pass / fail / cancel)."""

from datetime import timedelta

import pytest

from agentpm.workflow import status
from agentpm.workflow import tests as test_service
from agentpm.workflow.errors import (
    InvalidTransition,
    NotFound,
    TestPrerequisiteError,
    ValidationError,
)


@pytest.fixture
def running_epic(builder):
    """P1 active, T1 active, X1 pending, X2 pending."""
    return (builder()
            .phase("P1", "active")
            .task("T1", "P1", "active")
            .test("X1", "T1")
            .test("X2", "T1")
            .build())


class TestStartTest:
    """Tests for start_test()."""

    def test_start(self, running_epic, at, event_types):
        """A pending test becomes active with no result."""
        test_service.start_test(running_epic, "X1", at)
        x1 = running_epic.find_test("X1")
        assert x1.test_status == status.TestStatus.ACTIVE
        assert x1.test_result is None
        assert x1.started_at == at
        assert event_types(running_epic) == ["test_started"]

    def test_task_must_be_started(self, builder, at):
        """A test cannot start while its task is pending."""
        epic = builder().phase("P1", "active").task("T1", "P1").test("X1", "T1").build()
        with pytest.raises(TestPrerequisiteError) as exc:
            test_service.start_test(epic, "X1", at)
        assert exc.value.task_status == "pending"

    def test_completed_task_allows_start(self, builder, at):
        """Tests of a completed task can still run."""
        epic = builder().phase("P1", "active").task("T1", "P1", "completed").test("X1", "T1").build()
        test_service.start_test(epic, "X1", at)
        assert epic.find_test("X1").test_status == status.TestStatus.ACTIVE

    def test_already_active(self, builder, at):
        """An active test cannot be started again."""
        epic = builder().phase("P1", "active").task("T1", "P1", "active").test("X1", "T1", "active").build()
        with pytest.raises(InvalidTransition):
            test_service.start_test(epic, "X1", at)


class TestPassTest:
    """Tests for pass_test()."""

    def test_pass_active_test(self, builder, at):
        """Passing sets done, passing and passed_at."""
        epic = builder().phase("P1", "active").task("T1", "P1", "active").test("X1", "T1", "active").build()
        test_service.pass_test(epic, "X1", at)
        x1 = epic.find_test("X1")
        assert x1.test_status == status.TestStatus.DONE
        assert x1.test_result == status.TestResult.PASSING
        assert x1.passed_at == at

    def test_pass_pending_test_starts_it_implicitly(self, running_epic, at, event_types):
        test_service.pass_test(running_epic, "X1", at)
        x1 = running_epic.find_test("X1")
        assert x1.test_status == status.TestStatus.DONE
        assert x1.started_at == at
        assert event_types(running_epic) == ["test_passed"]

    def test_pass_pending_test_needs_started_task(self, builder, at):
        """The implicit start still needs a started task."""
        epic = builder().phase("P1", "active").task("T1", "P1").test("X1", "T1").build()
        with pytest.raises(TestPrerequisiteError):
            test_service.pass_test(epic, "X1", at)

    def test_pass_clears_failure_note(self, running_epic, clock):
        """A pass after a failure clears the failure note."""
        test_service.fail_test(running_epic, "X1", "boom", clock.tick())
        test_service.pass_test(running_epic, "X1", clock.tick())
        x1 = running_epic.find_test("X1")
        assert x1.failure_note == ""
        assert x1.test_result == status.TestResult.PASSING

    def test_repass_emits_event_only(self, running_epic, clock, event_types):
        """Passing a done test again only adds an event."""
        first = clock.tick()
        test_service.pass_test(running_epic, "X1", first)
        test_service.pass_test(running_epic, "X1", clock.tick())

        assert running_epic.find_test("X1").passed_at == first
        assert event_types(running_epic) == ["test_passed", "test_passed"]

    def test_repass_without_recording(self, running_epic, clock):
        """record_repeat=False makes a repeat pass a no-op."""
        test_service.pass_test(running_epic, "X1", clock.tick())
        result = test_service.pass_test(running_epic, "X1", clock.tick(), record_repeat=False)

        assert len(running_epic.events) == 1
        assert result.event_id == ""

    def test_cancelled_test_cannot_pass(self, builder, at):
        """Cancelled tests are terminal."""
        epic = builder().phase("P1", "active").task("T1", "P1", "active").test("X1", "T1", "cancelled").build()
        with pytest.raises(InvalidTransition):
            test_service.pass_test(epic, "X1", at)

    def test_pass_before_start_rejected(self, running_epic, at):
        """A test cannot pass earlier than it was started."""
        test_service.start_test(running_epic, "X1", at + timedelta(minutes=10))

        with pytest.raises(ValidationError):
            test_service.pass_test(running_epic, "X1", at)

        x1 = running_epic.find_test("X1")
        assert x1.test_status == status.TestStatus.ACTIVE
        assert x1.passed_at is None


class TestFailTest:
    """Tests for fail_test()."""

    def test_fail_active_test(self, builder, at):
        """Failing keeps the test active with a failing result and a note."""
        epic = builder().phase("P1", "active").task("T1", "P1", "active").test("X1", "T1", "active").build()
        result = test_service.fail_test(epic, "X1", "assertion error", at)

        x1 = epic.find_test("X1")
        assert x1.test_status == status.TestStatus.ACTIVE
        assert x1.test_result == status.TestResult.FAILING
        assert x1.failure_note == "assertion error"
        assert x1.failed_at == at
        assert result.reason == "assertion error"
        assert epic.events[-1].data == "Test X1 (Test X1) failed: assertion error"

    def test_fail_done_test_reopens_it(self, builder, at):
        """Regression path: done -> active, result failing."""
        epic = (builder()
                .phase("P1", "active")
                .task("T1", "P1", "completed")
                .test("X1", "T1", "done", "passing")
                .build())

        result = test_service.fail_test(epic, "X1", "regressed", at)

        assert result.previous_status == "done"
        assert epic.find_test("X1").test_status == status.TestStatus.ACTIVE
        assert epic.find_test("X1").is_failing

    def test_empty_reason(self, running_epic, at):
        """A blank reason is rejected."""
        with pytest.raises(ValidationError):
            test_service.fail_test(running_epic, "X1", "", at)
        assert running_epic.events == []

    def test_unknown_test_checked_before_reason(self, running_epic, at):
        """NotFound wins over a missing reason."""
        with pytest.raises(NotFound):
            test_service.fail_test(running_epic, "X9", "", at)


class TestCancelTest:
    """Tests for cancel_test()."""

    def test_cancel(self, running_epic, at):
        """Cancelling stores the reason and time."""
        test_service.cancel_test(running_epic, "X1", "obsolete", at)
        x1 = running_epic.find_test("X1")
        assert x1.test_status == status.TestStatus.CANCELLED
        assert x1.cancellation_reason == "obsolete"
        assert x1.cancelled_at == at

    def test_empty_reason(self, running_epic, at):
        """A blank reason is rejected."""
        with pytest.raises(ValidationError):
            test_service.cancel_test(running_epic, "X1", "", at)

    def test_done_test_cannot_be_cancelled(self, builder, at):
        """Done tests cannot be cancelled."""
        epic = builder().phase("P1", "active").task("T1", "P1", "active").test("X1", "T1", "done", "passing").build()
        with pytest.raises(InvalidTransition):
            test_service.cancel_test(epic, "X1", "too late", at)


class TestBatch:
    """Tests for pass_tests() / fail_tests()."""

    def test_pass_many(self, running_epic, at):
        """Several tests pass in one call, in the given order."""
        results = test_service.pass_tests(running_epic, ["X1", "X2"], at)
        assert [r.entity_id for r in results] == ["X1", "X2"]
        assert all(t.test_status == status.TestStatus.DONE for t in running_epic.tests)

    def test_all_or_nothing(self, running_epic, at):
        """One unknown id leaves every test untouched."""
        with pytest.raises(NotFound):
            test_service.pass_tests(running_epic, ["X1", "X9"], at)
        assert running_epic.find_test("X1").test_status == status.TestStatus.PENDING
        assert running_epic.events == []

    def test_duplicate_ids_collapsed(self, running_epic, at):
        """A repeated id is applied once."""
        results = test_service.fail_tests(running_epic, ["X1", "X1"], "flaky", at)
        assert len(results) == 1
        assert len(running_epic.events) == 1


class TestQueries:
    """Tests for test queries."""

    def test_failing_tests(self, builder):
        """Only active tests with a failing result are failing."""
        epic = (builder()
                .phase("P1", "active")
                .task("T1", "P1", "active")
                .test("X1", "T1", "active", "failing")
                .test("X2", "T1", "done", "passing")
                .build())
        assert [t.id for t in test_service.get_failing_tests(epic)] == ["X1"]

    def test_tests_by_task_and_phase(self, builder):
        """Tests can be looked up by task or by phase."""
        epic = (builder()
                .phase("P1").phase("P2")
                .task("T1", "P1").task("T2", "P2")
                .test("X1", "T1").test("X2", "T2")
                .build())
        assert [t.id for t in test_service.get_tests_for_task(epic, "T2")] == ["X2"]
        assert [t.id for t in test_service.get_tests_in_phase(epic, "P1")] == ["X1"]
