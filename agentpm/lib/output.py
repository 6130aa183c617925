"""
Renderers for command results: text, JSON and XML.

Structured results are pydantic models (see agentpm.workflow.results);
read-only views are plain dicts. Every renderer returns a string and
never prints.
"""

import json
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from agentpm.lib.hints import Hint
from agentpm.lib.timeutil import format_timestamp
from agentpm.workflow import autonext
from agentpm.workflow.errors import AgentPMError
from agentpm.workflow.results import AutoNextResult, EpicSummary, OperationResult


def _scalar(value) -> str:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _jsonable(data):
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    if isinstance(data, datetime):
        return format_timestamp(data)
    return data


def to_json(data) -> str:
    return json.dumps(_jsonable(data), indent=2)


def _singular(tag: str) -> str:
    return tag[:-1] if tag.endswith("s") else "item"


def _append(parent: ET.Element, tag: str, value) -> None:
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, dict):
        element = ET.SubElement(parent, tag)
        for key, item in value.items():
            _append(element, key, item)
    elif isinstance(value, list):
        element = ET.SubElement(parent, tag)
        for item in value:
            _append(element, _singular(tag), item)
    else:
        ET.SubElement(parent, tag).text = _scalar(value)


def _xml(element: ET.Element) -> str:
    ET.indent(element, space="    ")
    return ET.tostring(element, encoding="unicode")


def to_xml(root: str, data: dict, attrs: Optional[dict] = None) -> str:
    """Generic dict -> XML; nested dicts become elements, lists repeat."""
    element = ET.Element(root, {k: _scalar(v) for k, v in (attrs or {}).items()})
    for key, value in data.items():
        _append(element, key, value)
    return _xml(element)


def to_text(data: dict, indent: int = 0) -> str:
    lines = []
    pad = "  " * indent
    for key, value in data.items():
        label = key.replace("_", " ").capitalize()
        if isinstance(value, dict):
            lines.append(f"{pad}{label}:")
            lines.append(to_text(value, indent + 1))
        elif isinstance(value, list):
            lines.append(f"{pad}{label}: {len(value)}")
            for item in value:
                if isinstance(item, dict):
                    lines.append(f"{pad}  - " + ", ".join(f"{k}={_scalar(v)}" for k, v in item.items() if v not in ("", None)))
                else:
                    lines.append(f"{pad}  - {_scalar(item)}")
        else:
            lines.append(f"{pad}{label}: {_scalar(value)}")
    return "\n".join(line for line in lines if line)


# Operation results


def render_operations(results: list[OperationResult], fmt: str, epic_id: str = "",
                      summary: Optional[EpicSummary] = None) -> str:
    if fmt == "json":
        data = {"results": results}
        if summary is not None:
            data["summary"] = summary
        return to_json(data if len(results) != 1 or summary else results[0])

    if fmt == "xml":
        if len(results) == 1 and summary is None:
            return _operation_xml(results[0], epic_id)
        root = ET.Element("results", {"epic": epic_id})
        for result in results:
            root.append(ET.fromstring(_operation_xml(result, epic_id)))
        if summary is not None:
            _append(root, "summary", summary)
        return _xml(root)

    lines = [result.message for result in results]
    if summary is not None:
        lines.append(_summary_text(summary))
    return "\n".join(lines)


def _operation_xml(result: OperationResult, epic_id: str) -> str:
    tag = f"{result.entity_kind}_{result.operation}"
    element = ET.Element(tag, {"epic": epic_id, result.entity_kind: result.entity_id})
    ET.SubElement(element, "previous_status").text = result.previous_status
    ET.SubElement(element, "new_status").text = result.new_status
    ET.SubElement(element, "timestamp").text = format_timestamp(result.timestamp)
    if result.reason:
        ET.SubElement(element, "reason").text = result.reason
    if result.event_id:
        ET.SubElement(element, "event_id").text = result.event_id
    ET.SubElement(element, "message").text = result.message
    return _xml(element)


def _summary_text(summary: EpicSummary) -> str:
    return (
        f"Phases: {summary.phases.completed}/{summary.phases.total} completed, "
        f"Tasks: {summary.tasks.completed}/{summary.tasks.total} completed, "
        f"Tests: {summary.passing_tests} passing, {summary.failing_tests} failing, "
        f"Duration: {summary.duration_seconds}s"
    )


# Auto-next


def render_autonext(result: AutoNextResult, fmt: str, epic_id: str = "") -> str:
    if fmt == "json":
        return to_json(result)
    if fmt == "xml":
        return _autonext_xml(result, epic_id)
    return result.message


def _autonext_xml(result: AutoNextResult, epic_id: str) -> str:
    if result.action == autonext.COMPLETE_EPIC:
        element = ET.Element("all_complete", {"epic": epic_id})
        ET.SubElement(element, "message").text = result.message
        ET.SubElement(element, "suggestion").text = "Use 'agentpm done-epic' to complete the epic"
        return _xml(element)

    if result.action == autonext.START_TASK:
        element = ET.Element("task_started", {"epic": epic_id, "task": result.task_id})
        ET.SubElement(element, "task_name").text = result.task_name
        ET.SubElement(element, "phase_id").text = result.phase_id
        ET.SubElement(element, "previous_status").text = "pending"
        ET.SubElement(element, "new_status").text = result.task_status
    elif result.action == autonext.START_PHASE:
        element = ET.Element("phase_started", {"epic": epic_id, "phase": result.phase_id})
        ET.SubElement(element, "phase_name").text = result.phase_name
        ET.SubElement(element, "previous_status").text = "pending"
        ET.SubElement(element, "new_status").text = result.phase_status
        if result.task_id:
            task = ET.SubElement(element, "task_started", {"task": result.task_id})
            ET.SubElement(task, "task_name").text = result.task_name
            ET.SubElement(task, "new_status").text = result.task_status
    else:
        element = ET.Element("no_work", {"epic": epic_id})
        if result.phase_id:
            element.set("phase", result.phase_id)
        if result.task_id:
            element.set("task", result.task_id)
        ET.SubElement(element, "message").text = result.message
        return _xml(element)

    if result.completed_phase_id:
        ET.SubElement(element, "completed_phase").text = result.completed_phase_id
    ET.SubElement(element, "started_at").text = _scalar(result.started_at)
    ET.SubElement(element, "auto_selected").text = _scalar(result.auto_selected)
    ET.SubElement(element, "message").text = result.message
    return _xml(element)


# Errors


def render_error(error: AgentPMError, hint: Optional[Hint], fmt: str) -> str:
    if fmt == "json":
        data = {"error": error.details()}
        if hint is not None:
            data["hint"] = hint.to_dict()
        return to_json(data)

    if fmt == "xml":
        element = ET.Element("error", {"type": error.kind})
        ET.SubElement(element, "message").text = error.message
        for key, value in error.details().items():
            if key in ("type", "message"):
                continue
            _append(element, key, value)
        if hint is not None:
            hint_el = ET.SubElement(element, "hint", {"priority": hint.priority.value})
            hint_el.text = hint.message
            if hint.suggested_command:
                hint_el.set("command", hint.suggested_command)
        return _xml(element)

    lines = [f"Error: {error.message}"]
    if hint is not None:
        lines.append(f"Hint: {hint.message}")
        if hint.suggested_command:
            lines.append(f"  Try: {hint.suggested_command}")
    return "\n".join(lines)
