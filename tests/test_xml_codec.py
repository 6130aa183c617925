"""Tests for the epic XML codec."""

from datetime import datetime, timezone
import xml.etree.ElementTree as ET

import pytest

from agentpm.storage import xml_codec
from agentpm.workflow import lifecycle, status
from agentpm.workflow.errors import ValidationError
from agentpm.workflow.models import CurrentState, Event
from agentpm.workflow.status import EpicStatus, PhaseStatus, TaskStatus

LEGACY_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<epic id="8" name="Legacy Epic" status="wip" created_at="2025-01-10T09:00:00Z">
    <metadata>
        <assignee>agent_claude</assignee>
        <priority>high</priority>
    </metadata>
    <description>Old layout</description>
    <phases>
        <phase id="1A" name="Setup" status="done"/>
        <phase id="1B" name="Build" status="wip"/>
        <phase id="1C" name="Ship" status="planning"/>
    </phases>
    <tasks>
        <task id="1A_1" phase_id="1A" status="done"/>
        <task id="1B_1" phase_id="1B" status="wip">
            <started_at>2025-01-10T10:00:00Z</started_at>
        </task>
    </tasks>
    <tests>
        <test id="T1" task_id="1A_1" phase_id="1A" status="done"/>
        <test id="T2" task_id="1B_1" phase_id="1B" status="failed"/>
        <test id="T3" task_id="1B_1" phase_id="1B" status="wip" result="failing"/>
        <test id="T4" task_id="1B_1" status="wip">
            <failed_at>2025-01-10T11:00:00Z</failed_at>
        </test>
    </tests>
    <events>
        <event id="e1" type="phase_started" timestamp="2025-01-10T09:30:00Z" phase_id="1B">Phase 1B started</event>
        <event id="e2" type="task_started" timestamp="2025-01-10T10:00:00Z">
            <data>Task 1B_1 started</data>
        </event>
    </events>
</epic>
"""


class TestLegacyDecoding:
    """Older documents are projected onto the canonical model."""

    @pytest.fixture
    def epic(self):
        return xml_codec.loads(LEGACY_DOC)

    def test_lifecycle_statuses(self, epic):
        """wip, done and planning map to canonical statuses."""
        assert epic.status == EpicStatus.ACTIVE
        assert [p.status for p in epic.phases] == [
            PhaseStatus.COMPLETED, PhaseStatus.ACTIVE, PhaseStatus.PENDING,
        ]
        assert epic.find_task("1B_1").status == TaskStatus.ACTIVE

    def test_metadata(self, epic):
        """Assignee, priority and created time come from metadata."""
        assert epic.assignee == "agent_claude"
        assert epic.priority == "high"
        assert epic.description == "Old layout"
        assert epic.created_at == datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)

    def test_child_element_timestamps(self, epic):
        """Timestamps written as child elements are read."""
        assert epic.find_task("1B_1").started_at == datetime(2025, 1, 10, 10, 0, tzinfo=timezone.utc)

    def test_done_projects_to_passing(self, epic):
        """A legacy done test is done and passing."""
        t1 = epic.find_test("T1")
        assert t1.test_status == status.TestStatus.DONE
        assert t1.test_result == status.TestResult.PASSING

    def test_failed_projects_to_active_failing(self, epic):
        """A legacy failed test is active and failing."""
        t2 = epic.find_test("T2")
        assert t2.test_status == status.TestStatus.ACTIVE
        assert t2.is_failing

    def test_result_attribute_alias(self, epic):
        """The old result attribute is read as test_result."""
        assert epic.find_test("T3").is_failing

    def test_active_with_failed_at_is_failing(self, epic):
        """An active test with failed_at is treated as failing."""
        assert epic.find_test("T4").is_failing

    def test_event_data_text_or_child(self, epic):
        """Event data may be element text or a <data> child."""
        assert [e.data for e in epic.events] == ["Phase 1B started", "Task 1B_1 started"]


class TestCanonicalDecoding:
    """Documents in the current layout."""

    def test_two_axis_attributes_win(self):
        """test_status and test_result override the legacy status."""
        doc = """<epic id="e" status="active"><phases><phase id="P1" status="active"/></phases>
        <tasks><task id="T1" phase_id="P1" status="active"/></tasks>
        <tests><test id="X1" task_id="T1" phase_id="P1" status="completed"
                     test_status="active" test_result="failing" blocks_phase="P1"/></tests></epic>"""
        epic = xml_codec.loads(doc)
        x1 = epic.find_test("X1")
        assert x1.test_status == status.TestStatus.ACTIVE
        assert x1.test_result == status.TestResult.FAILING
        assert x1.blocks_phase == "P1"

    def test_unknown_status(self):
        """Unknown lifecycle statuses are a ValidationError."""
        with pytest.raises(ValidationError):
            xml_codec.loads('<epic id="e" status="paused"/>')

    def test_unknown_test_status(self):
        """Unknown test statuses are a ValidationError."""
        doc = '<epic id="e"><tests><test id="X1" task_id="T1" status="flaky"/></tests></epic>'
        with pytest.raises(ValidationError):
            xml_codec.loads(doc)

    def test_malformed_xml(self):
        """Parse errors are reported as ValidationError."""
        with pytest.raises(ValidationError):
            xml_codec.loads("<epic id='e'>")

    def test_wrong_root(self):
        """The root element must be <epic>."""
        with pytest.raises(ValidationError):
            xml_codec.loads("<story id='s'/>")

    def test_bad_timestamp(self):
        """Unparseable timestamps are a ValidationError."""
        with pytest.raises(ValidationError):
            xml_codec.loads('<epic id="e" created_at="yesterday"/>')


class TestEncoding:
    """Tests for dumps()."""

    def test_writes_canonical_and_mirrored_legacy_status(self, builder):
        """Tests carry both the two-axis attributes and a legacy status."""
        epic = (builder()
                .phase("P1", "active")
                .task("T1", "P1", "active")
                .test("X1", "T1", "done", "passing")
                .build())
        root = ET.fromstring(xml_codec.dumps(epic))
        test = root.find("tests/test")
        assert test.get("status") == "completed"
        assert test.get("test_status") == "done"
        assert test.get("test_result") == "passing"

    def test_timestamps_use_z(self, builder, at):
        """UTC timestamps are written with a Z suffix."""
        epic = builder().phase("P1").build()
        epic.find_phase("P1").started_at = at
        root = ET.fromstring(xml_codec.dumps(epic))
        assert root.find("phases/phase").get("started_at") == "2025-01-15T10:00:00Z"

    def test_current_state_written(self, builder):
        """current_state is written when set."""
        epic = builder().build()
        epic.current_state = CurrentState(active_phase="P1", active_task="", next_action="Start task T1")
        root = ET.fromstring(xml_codec.dumps(epic))
        assert root.find("current_state/next_action").text == "Start task T1"

    def test_event_data_as_text(self, builder, at):
        """Event data is written as element text."""
        epic = builder().build()
        epic.events.append(Event(id="phase_started_1", type="phase_started", timestamp=at,
                                 data="Phase P1 started", phase_id="P1"))
        root = ET.fromstring(xml_codec.dumps(epic))
        assert root.find("events/event").text == "Phase P1 started"

    def test_legacy_document_is_stable_after_one_save(self):
        """Load -> save -> load -> save produces identical output."""
        first = xml_codec.dumps(xml_codec.loads(LEGACY_DOC))
        second = xml_codec.dumps(xml_codec.loads(first))
        assert first == second

    def test_round_trip_preserves_model(self, builder, at):
        """dumps then loads gives back an equal epic."""
        epic = (builder(status="active")
                .phase("P1", "active")
                .task("T1", "P1", "cancelled")
                .test("X1", "T1", "cancelled", blocks_phase="P1")
                .build())
        epic.find_task("T1").cancellation_reason = "dropped"
        epic.find_task("T1").cancelled_at = at
        assert xml_codec.loads(xml_codec.dumps(epic)) == epic


PLANNING_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<epic id="9" name="Planned Epic" status="pending" created_at="2025-01-10T09:00:00Z">
    <assignee>agent_claude</assignee>
    <description>Has planning content</description>
    <workflow>Write tests first, then implement.</workflow>
    <requirements>Python 3.10 or newer</requirements>
    <dependencies>Epic 8</dependencies>
    <metadata>
        <created>2025-01-10T09:00:00Z</created>
        <assignee>agent_claude</assignee>
        <estimated_effort>3 days</estimated_effort>
    </metadata>
    <outline version="2">
        <section title="Intro">Background</section>
    </outline>
    <phases>
        <phase id="P1" name="Setup" status="pending"/>
    </phases>
    <tasks/>
    <tests/>
    <events/>
</epic>
"""


class TestContentPreservation:
    """Content the workflow never touches survives a mutate-and-save."""

    @pytest.fixture
    def saved(self, at):
        epic = xml_codec.loads(PLANNING_DOC)
        lifecycle.start_epic(epic, at)
        return ET.fromstring(xml_codec.dumps(epic))

    def test_root_text_elements_kept(self, saved):
        """workflow, requirements and dependencies are written back."""
        assert saved.find("workflow").text == "Write tests first, then implement."
        assert saved.find("requirements").text == "Python 3.10 or newer"
        assert saved.find("dependencies").text == "Epic 8"

    def test_metadata_kept(self, saved):
        """Metadata keeps <created>, assignee and estimated_effort."""
        metadata = saved.find("metadata")
        assert metadata.find("created").text == "2025-01-10T09:00:00Z"
        assert metadata.find("created_at") is None
        assert metadata.find("assignee").text == "agent_claude"
        assert metadata.find("estimated_effort").text == "3 days"

    def test_unknown_elements_kept(self, saved):
        """Elements the model does not know are written back with attributes and text."""
        outline = saved.find("outline")
        assert outline.get("version") == "2"
        assert outline.find("section").get("title") == "Intro"
        assert outline.find("section").text == "Background"

    def test_mutation_still_applied(self, saved):
        """The status change and its event are in the saved document."""
        assert saved.get("status") == "active"
        assert saved.find("events/event").get("type") == "epic_started"

    def test_decoded_fields(self):
        """Planning fields are available on the model."""
        epic = xml_codec.loads(PLANNING_DOC)
        assert epic.workflow == "Write tests first, then implement."
        assert epic.estimated_effort == "3 days"
        assert len(epic.extra_elements) == 1

    def test_stable_across_saves(self):
        """Preserved elements do not pick up extra whitespace on each save."""
        first = xml_codec.dumps(xml_codec.loads(PLANNING_DOC))
        second = xml_codec.dumps(xml_codec.loads(first))
        assert first == second
        assert xml_codec.loads(first) == xml_codec.loads(PLANNING_DOC)
