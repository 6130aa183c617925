"""Test operations on the two-axis test model.

``test_status`` is where a test is in its lifecycle; ``test_result`` is
what it last reported:

    start   pending -> active            result unchanged
    pass    active|done -> done          passing
    fail    active|done -> active        failing, failure_note set
    cancel  pending|active -> cancelled  result unchanged

Passing or failing a pending test starts it implicitly (its task must be
active or completed); only the pass or fail event is recorded.

Failing a test that already passed is the regression path: it reopens the
test so task and phase completion gates apply again.
"""

import logging
from datetime import datetime

from agentpm.workflow import events, fsm, validation
from agentpm.workflow.models import Epic, EpicTest
from agentpm.workflow.results import OperationResult
from agentpm.workflow.status import TestResult, TestStatus

logger = logging.getLogger(__name__)


def _result(test: EpicTest, operation: str, previous: TestStatus, at: datetime,
            message: str, event_id: str = "", reason: str = "") -> OperationResult:
    return OperationResult(
        operation=operation,
        entity_kind="test",
        entity_id=test.id,
        previous_status=previous.value,
        new_status=test.test_status.value,
        timestamp=at,
        message=message,
        event_id=event_id,
        reason=reason,
    )


def start_test(epic: Epic, test_id: str, at: datetime) -> OperationResult:
    """Start a pending test whose task is active or completed.

    Raises:
        NotFound, InvalidTransition, TestPrerequisiteError
    """
    error = validation.check_start_test(epic, test_id)
    if error:
        raise error

    test = epic.find_test(test_id)
    previous = test.test_status
    test.test_status = fsm.advance("test", test_id, test.test_status, TestStatus.ACTIVE, "start")
    test.started_at = at
    event = events.record_test(epic, events.TEST_STARTED, test_id, at)

    logger.info(f"[TEST] {epic.id}/{test_id}: {previous.value} -> {test.test_status.value}")
    return _result(test, "started", previous, at, f"Test {test_id} started", event.id)


def _implicit_start(epic: Epic, test: EpicTest, at: datetime) -> None:
    """Start a pending test as part of pass/fail, without a test_started event."""
    if test.test_status == TestStatus.PENDING:
        test.test_status = fsm.advance("test", test.id, test.test_status, TestStatus.ACTIVE, "start")
        test.started_at = at
        logger.debug(f"[TEST] {epic.id}/{test.id}: started implicitly")


def pass_test(epic: Epic, test_id: str, at: datetime, record_repeat: bool = True) -> OperationResult:
    """Mark a test as passing.

    Re-passing a test that is already done changes nothing but, unless
    ``record_repeat`` is False, still appends a ``test_passed`` event.

    Raises:
        NotFound, InvalidTransition, TestPrerequisiteError,
        ValidationError (``at`` before the test started)
    """
    error = validation.check_pass_test(epic, test_id, at)
    if error:
        raise error

    test = epic.find_test(test_id)
    previous = test.test_status

    if previous == TestStatus.DONE and test.test_result == TestResult.PASSING:
        if not record_repeat:
            logger.debug(f"[TEST] {epic.id}/{test_id}: already passing, no-op")
            return _result(test, "passed", previous, at, f"Test {test_id} already passing")
        event = events.record_test(epic, events.TEST_PASSED, test_id, at)
        logger.debug(f"[TEST] {epic.id}/{test_id}: re-passed")
        return _result(test, "passed", previous, at, f"Test {test_id} passed", event.id)

    _implicit_start(epic, test, at)
    if test.test_status != TestStatus.DONE:
        test.test_status = fsm.advance("test", test_id, test.test_status, TestStatus.DONE, "pass")
    test.test_result = TestResult.PASSING
    test.passed_at = at
    test.failure_note = ""
    event = events.record_test(epic, events.TEST_PASSED, test_id, at)

    logger.info(f"[TEST] {epic.id}/{test_id}: {previous.value} -> {test.test_status.value} (passing)")
    return _result(test, "passed", previous, at, f"Test {test_id} passed", event.id)


def fail_test(epic: Epic, test_id: str, reason: str, at: datetime) -> OperationResult:
    """Record a failure. A done test is reopened.

    Raises:
        NotFound, ValidationError (empty reason), InvalidTransition, TestPrerequisiteError
    """
    error = validation.check_fail_test(epic, test_id, reason, at)
    if error:
        raise error

    test = epic.find_test(test_id)
    previous = test.test_status
    _implicit_start(epic, test, at)
    if previous == TestStatus.DONE:
        test.test_status = fsm.advance("test", test_id, previous, TestStatus.ACTIVE, "fail")
    test.test_result = TestResult.FAILING
    test.failed_at = at
    test.failure_note = reason
    event = events.record_test(epic, events.TEST_FAILED, test_id, at, reason)

    logger.info(f"[TEST] {epic.id}/{test_id}: {previous.value} -> {test.test_status.value} (failing: {reason})")
    return _result(test, "failed", previous, at, f"Test {test_id} failed", event.id, reason)


def cancel_test(epic: Epic, test_id: str, reason: str, at: datetime) -> OperationResult:
    """Cancel a pending or active test.

    Raises:
        NotFound, ValidationError (empty reason), InvalidTransition
    """
    error = validation.check_cancel_test(epic, test_id, reason, at)
    if error:
        raise error

    test = epic.find_test(test_id)
    previous = test.test_status
    test.test_status = fsm.advance("test", test_id, previous, TestStatus.CANCELLED, "cancel")
    test.cancelled_at = at
    test.cancellation_reason = reason
    event = events.record_test(epic, events.TEST_CANCELLED, test_id, at, reason)

    logger.info(f"[TEST] {epic.id}/{test_id}: {previous.value} -> cancelled ({reason})")
    return _result(test, "cancelled", previous, at, f"Test {test_id} cancelled", event.id, reason)


def _unique(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    return [i for i in ids if not (i in seen or seen.add(i))]


def pass_tests(epic: Epic, test_ids: list[str], at: datetime) -> list[OperationResult]:
    """Pass several tests; nothing changes unless every id is valid.

    Raises:
        The first validation error among ``test_ids``
    """
    test_ids = _unique(test_ids)
    for test_id in test_ids:
        error = validation.check_pass_test(epic, test_id, at)
        if error:
            raise error
    return [pass_test(epic, test_id, at) for test_id in test_ids]


def fail_tests(epic: Epic, test_ids: list[str], reason: str, at: datetime) -> list[OperationResult]:
    """Fail several tests with one reason; all-or-nothing like pass_tests."""
    test_ids = _unique(test_ids)
    for test_id in test_ids:
        error = validation.check_fail_test(epic, test_id, reason, at)
        if error:
            raise error
    return [fail_test(epic, test_id, reason, at) for test_id in test_ids]


def get_failing_tests(epic: Epic) -> list[EpicTest]:
    return [t for t in epic.tests if t.is_failing]


def get_tests_for_task(epic: Epic, task_id: str) -> list[EpicTest]:
    return epic.tests_for_task(task_id)


def get_tests_in_phase(epic: Epic, phase_id: str) -> list[EpicTest]:
    return epic.tests_in_phase(phase_id)
