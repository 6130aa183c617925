"""
XML encoding of epic documents.

Reads both the current layout and older documents (legacy status names, a
single ``status`` attribute on tests, ``result`` instead of ``test_result``,
timestamps as child elements). Always writes the current layout. Root
children the model does not know are carried through a load and save
unchanged.
"""

import copy
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Optional

from agentpm.lib.timeutil import format_timestamp, parse_optional
from agentpm.workflow.errors import ValidationError
from agentpm.workflow.models import (
    CurrentState,
    Epic,
    EpicTest,
    Event,
    Phase,
    Task,
)
from agentpm.workflow.status import (
    LEGACY_TEST_STATUS,
    EpicStatus,
    TestResult,
    TestStatus,
    parse_test_result,
    parse_test_status,
    project_epic_status,
    project_phase_status,
    project_task_status,
    project_test_status,
)

KNOWN_ROOT_TAGS = frozenset({
    "assignee", "description", "workflow", "requirements", "dependencies", "metadata",
    "current_state", "phases", "tasks", "tests", "events",
})


# Decoding


def _text(elem: ET.Element, tag: str) -> str:
    child = elem.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _value(elem: ET.Element, name: str) -> str:
    """Attribute value, falling back to a child element of the same name."""
    value = elem.get(name)
    if value is not None:
        return value
    return _text(elem, name)


def _time(elem: ET.Element, name: str, where: str) -> Optional[datetime]:
    raw = _value(elem, name)
    try:
        return parse_optional(raw)
    except ValueError:
        raise ValidationError(f"Invalid timestamp '{raw}' for {name} on {where}") from None


def _status(parse, raw: Optional[str], where: str, default):
    if raw is None or raw == "":
        return default
    status = parse(raw)
    if status is None:
        raise ValidationError(f"Unknown status '{raw}' on {where}")
    return status


def _decode_phase(elem: ET.Element) -> Phase:
    pid = elem.get("id", "")
    where = f"phase {pid}"
    return Phase(
        id=pid,
        name=elem.get("name", ""),
        status=_status(project_phase_status, elem.get("status"), where, project_phase_status("pending")),
        description=_text(elem, "description"),
        deliverables=_text(elem, "deliverables"),
        started_at=_time(elem, "started_at", where),
        completed_at=_time(elem, "completed_at", where),
    )


def _decode_task(elem: ET.Element) -> Task:
    tid = elem.get("id", "")
    where = f"task {tid}"
    return Task(
        id=tid,
        phase_id=elem.get("phase_id", ""),
        name=elem.get("name", ""),
        status=_status(project_task_status, elem.get("status"), where, project_task_status("pending")),
        description=_text(elem, "description"),
        acceptance_criteria=_text(elem, "acceptance_criteria"),
        assignee=elem.get("assignee", ""),
        started_at=_time(elem, "started_at", where),
        completed_at=_time(elem, "completed_at", where),
        cancelled_at=_time(elem, "cancelled_at", where),
        cancellation_reason=_value(elem, "cancellation_reason"),
    )


def _decode_test(elem: ET.Element) -> EpicTest:
    xid = elem.get("id", "")
    where = f"test {xid}"

    raw_status = elem.get("test_status")
    raw_result = elem.get("test_result", elem.get("result"))
    legacy = elem.get("status")

    result = _status(parse_test_result, raw_result, where, None)
    if raw_status:
        status = _status(parse_test_status, raw_status, where, TestStatus.PENDING)
    elif legacy:
        projected = project_test_status(legacy)
        if projected is None:
            raise ValidationError(f"Unknown status '{legacy}' on {where}")
        status, implied = projected
        if result is None:
            result = implied
    else:
        status = TestStatus.PENDING

    failed_at = _time(elem, "failed_at", where)
    if result is None and status == TestStatus.ACTIVE and failed_at is not None:
        result = TestResult.FAILING

    return EpicTest(
        id=xid,
        task_id=elem.get("task_id", ""),
        phase_id=elem.get("phase_id", ""),
        name=elem.get("name", ""),
        description=_text(elem, "description"),
        test_status=status,
        test_result=result,
        blocks_phase=elem.get("blocks_phase", ""),
        started_at=_time(elem, "started_at", where),
        passed_at=_time(elem, "passed_at", where),
        failed_at=failed_at,
        cancelled_at=_time(elem, "cancelled_at", where),
        failure_note=_value(elem, "failure_note"),
        cancellation_reason=_value(elem, "cancellation_reason"),
    )


def _decode_event(elem: ET.Element) -> Event:
    eid = elem.get("id", "")
    timestamp = _time(elem, "timestamp", f"event {eid}")
    if timestamp is None:
        raise ValidationError(f"Event {eid} has no timestamp")
    data = _text(elem, "data") if elem.find("data") is not None else (elem.text or "").strip()
    return Event(
        id=eid,
        type=elem.get("type", ""),
        timestamp=timestamp,
        data=data,
        phase_id=elem.get("phase_id", ""),
        task_id=elem.get("task_id", ""),
        test_id=elem.get("test_id", ""),
    )


def _preserve(elem: ET.Element) -> str:
    """Serialize an element we do not model, ignoring layout whitespace."""
    elem = copy.deepcopy(elem)
    for node in elem.iter():
        if node.text is not None and not node.text.strip():
            node.text = None
        if node.tail is not None and not node.tail.strip():
            node.tail = None
    elem.tail = None
    return ET.tostring(elem, encoding="unicode")


def decode_epic(root: ET.Element) -> Epic:
    """Build an Epic from a parsed ``<epic>`` element.

    Raises:
        ValidationError: If the root is not an epic or a value is unknown
    """
    if root.tag != "epic":
        raise ValidationError(f"Expected <epic> root element, found <{root.tag}>")

    eid = root.get("id", "")
    where = f"epic {eid}"
    metadata = root.find("metadata")

    epic = Epic(
        id=eid,
        name=root.get("name", ""),
        status=_status(project_epic_status, root.get("status"), where, EpicStatus.PENDING),
        created_at=_time(root, "created_at", where),
        started_at=_time(root, "started_at", where),
        completed_at=_time(root, "completed_at", where),
        description=_text(root, "description"),
        workflow=_text(root, "workflow"),
        requirements=_text(root, "requirements"),
        dependencies=_text(root, "dependencies"),
    )
    if metadata is not None:
        epic.assignee = _text(metadata, "assignee")
        epic.priority = _text(metadata, "priority")
        epic.estimated_effort = _text(metadata, "estimated_effort")
        if epic.created_at is None:
            epic.created_at = _time(metadata, "created_at", where) or _time(metadata, "created", where)
    if not epic.assignee:
        epic.assignee = _text(root, "assignee")

    state = root.find("current_state")
    if state is not None:
        epic.current_state = CurrentState(
            active_phase=_text(state, "active_phase"),
            active_task=_text(state, "active_task"),
            next_action=_text(state, "next_action"),
        )

    epic.phases = [_decode_phase(e) for e in root.findall("phases/phase")]
    epic.tasks = [_decode_task(e) for e in root.findall("tasks/task")]
    epic.tests = [_decode_test(e) for e in root.findall("tests/test")]
    epic.events = [_decode_event(e) for e in root.findall("events/event")]
    epic.extra_elements = [_preserve(e) for e in root if e.tag not in KNOWN_ROOT_TAGS]
    return epic


def loads(text: str) -> Epic:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ValidationError(f"Malformed epic XML: {e}") from None
    return decode_epic(root)


# Encoding


def _set(elem: ET.Element, name: str, value) -> None:
    """Set an attribute, skipping empty values."""
    if value is None or value == "":
        return
    if isinstance(value, datetime):
        value = format_timestamp(value)
    elem.set(name, str(value))


def _child(parent: ET.Element, tag: str, text: str, always: bool = False) -> None:
    if text or always:
        ET.SubElement(parent, tag).text = text


def encode_epic(epic: Epic) -> ET.Element:
    root = ET.Element("epic")
    _set(root, "id", epic.id)
    _set(root, "name", epic.name)
    _set(root, "status", epic.status.value)
    _set(root, "created_at", epic.created_at)
    _set(root, "started_at", epic.started_at)
    _set(root, "completed_at", epic.completed_at)

    _child(root, "description", epic.description)
    _child(root, "workflow", epic.workflow)
    _child(root, "requirements", epic.requirements)
    _child(root, "dependencies", epic.dependencies)

    metadata = ET.SubElement(root, "metadata")
    if epic.created_at:
        _child(metadata, "created", format_timestamp(epic.created_at))
    _child(metadata, "assignee", epic.assignee, always=True)
    _child(metadata, "estimated_effort", epic.estimated_effort)
    _child(metadata, "priority", epic.priority)

    if epic.current_state is not None:
        state = ET.SubElement(root, "current_state")
        _child(state, "active_phase", epic.current_state.active_phase, always=True)
        _child(state, "active_task", epic.current_state.active_task, always=True)
        _child(state, "next_action", epic.current_state.next_action, always=True)

    phases = ET.SubElement(root, "phases")
    for phase in epic.phases:
        elem = ET.SubElement(phases, "phase")
        _set(elem, "id", phase.id)
        _set(elem, "name", phase.name)
        _set(elem, "status", phase.status.value)
        _set(elem, "started_at", phase.started_at)
        _set(elem, "completed_at", phase.completed_at)
        _child(elem, "description", phase.description)
        _child(elem, "deliverables", phase.deliverables)

    tasks = ET.SubElement(root, "tasks")
    for task in epic.tasks:
        elem = ET.SubElement(tasks, "task")
        _set(elem, "id", task.id)
        _set(elem, "phase_id", task.phase_id)
        _set(elem, "name", task.name)
        _set(elem, "status", task.status.value)
        _set(elem, "assignee", task.assignee)
        _set(elem, "started_at", task.started_at)
        _set(elem, "completed_at", task.completed_at)
        _set(elem, "cancelled_at", task.cancelled_at)
        _child(elem, "description", task.description)
        _child(elem, "acceptance_criteria", task.acceptance_criteria)
        _child(elem, "cancellation_reason", task.cancellation_reason)

    tests = ET.SubElement(root, "tests")
    for test in epic.tests:
        elem = ET.SubElement(tests, "test")
        _set(elem, "id", test.id)
        _set(elem, "task_id", test.task_id)
        _set(elem, "phase_id", test.phase_id)
        _set(elem, "name", test.name)
        _set(elem, "status", LEGACY_TEST_STATUS[test.test_status])
        _set(elem, "test_status", test.test_status.value)
        _set(elem, "test_result", test.test_result.value if test.test_result else "")
        _set(elem, "blocks_phase", test.blocks_phase)
        _set(elem, "started_at", test.started_at)
        _set(elem, "passed_at", test.passed_at)
        _set(elem, "failed_at", test.failed_at)
        _set(elem, "cancelled_at", test.cancelled_at)
        _child(elem, "description", test.description)
        _child(elem, "failure_note", test.failure_note)
        _child(elem, "cancellation_reason", test.cancellation_reason)

    events = ET.SubElement(root, "events")
    for event in epic.events:
        elem = ET.SubElement(events, "event")
        _set(elem, "id", event.id)
        _set(elem, "type", event.type)
        _set(elem, "timestamp", event.timestamp)
        _set(elem, "phase_id", event.phase_id)
        _set(elem, "task_id", event.task_id)
        _set(elem, "test_id", event.test_id)
        elem.text = event.data

    for extra in epic.extra_elements:
        root.append(ET.fromstring(extra))
    return root


def dumps(epic: Epic) -> str:
    root = encode_epic(epic)
    ET.indent(root, space="    ")
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"
