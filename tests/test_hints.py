"""Tests for the hint registry."""

from agentpm.lib.hints import (
    Hint,
    HintConfig,
    HintPriority,
    HintRegistry,
    HintRule,
    default_registry,
)
from agentpm.lib.suggest import find_similar
from agentpm.workflow.errors import (
    AgentPMError,
    InvalidTransition,
    NotFound,
    PhaseConstraintError,
    TaskConstraintError,
    TaskIncompleteError,
    ValidationError,
)


class TestDefaultRules:
    """Each built-in rule produces a concrete next step."""

    def test_phase_constraint(self):
        """A second active phase points at finishing the first."""
        hint = default_registry().query(PhaseConstraintError("P2", "P1"))
        assert hint.priority == HintPriority.HIGH
        assert hint.suggested_command == "agentpm done-phase P1"
        assert "P1" in hint.message

    def test_task_constraint_active_sibling(self):
        """A busy phase points at finishing the active task."""
        error = TaskConstraintError("T2", "busy", phase_id="P1", active_task_id="T1")
        assert default_registry().query(error).suggested_command == "agentpm done-task T1"

    def test_task_constraint_inactive_phase(self):
        """A task in an idle phase points at starting the phase."""
        error = TaskConstraintError("T1", "phase P1 is not active", phase_id="P1")
        assert default_registry().query(error).suggested_command == "agentpm start-phase P1"

    def test_task_incomplete_lists_tests(self):
        """Every blocking test id ends up in the suggested command."""
        hint = default_registry().query(TaskIncompleteError("T1", ["X1", "X2"]))
        assert hint.suggested_command == "agentpm pass-test X1 X2"

    def test_transition_already_completed(self):
        """Finished entities suggest checking status."""
        error = InvalidTransition("task", "T1", "completed", "active", "start")
        hint = default_registry().query(error)
        assert hint.priority == HintPriority.MEDIUM
        assert hint.suggested_command == "agentpm status"
        assert "already completed" in hint.message

    def test_transition_already_active(self):
        """Active entities suggest looking at current work."""
        error = InvalidTransition("phase", "P1", "active", "active", "start")
        assert default_registry().query(error).suggested_command == "agentpm current"

    def test_transition_not_started(self):
        """Completing a pending task suggests starting it."""
        error = InvalidTransition("task", "T1", "pending", "completed", "complete")
        assert default_registry().query(error).suggested_command == "agentpm start-task T1"

    def test_epic_not_started(self):
        """The epic has its own start command."""
        error = InvalidTransition("epic", "e1", "pending", "completed", "complete")
        assert default_registry().query(error).suggested_command == "agentpm start-epic"

    def test_not_found_did_you_mean(self):
        """A close id is offered as a suggestion."""
        hint = default_registry().query(NotFound("task", "T-1", ["T1", "T2", "X9"]))
        assert "Did you mean task T1?" == hint.message

    def test_not_found_without_match(self):
        """Without a close id the hint just says it is missing."""
        hint = default_registry().query(NotFound("task", "zzz", ["T1"]))
        assert "No task with id zzz" in hint.message

    def test_validation(self):
        hint = default_registry().query(ValidationError("bad"))
        assert hint.priority == HintPriority.MEDIUM

    def test_fallback(self):
        """Errors without a rule still get a low-priority hint."""
        hint = default_registry().query(AgentPMError("something odd"))
        assert hint.priority == HintPriority.LOW
        assert hint.message == "Check the current state and try again"
        assert hint.suggested_command == "agentpm current"


class TestConfiguration:
    """Hint settings from the workspace config."""

    def test_disabled(self):
        """Disabled hints return nothing."""
        registry = default_registry(HintConfig(enabled=False))
        assert registry.query(PhaseConstraintError("P2", "P1")) is None

    def test_min_priority_filters_lower_rules(self):
        """Rules below min_priority are skipped."""
        registry = default_registry(HintConfig(min_priority=HintPriority.HIGH))
        assert registry.query(NotFound("task", "T9")) is None
        assert registry.query(PhaseConstraintError("P2", "P1")) is not None

    def test_override_message(self):
        """Overrides replace the message but keep the command."""
        config = HintConfig(overrides={"PhaseConstraintError": "Finish what you started"})
        hint = default_registry(config).query(PhaseConstraintError("P2", "P1"))
        assert hint.message == "Finish what you started"
        assert hint.suggested_command == "agentpm done-phase P1"

    def test_hide_commands(self):
        """show_commands=False drops the suggested command."""
        hint = default_registry(HintConfig(show_commands=False)).query(PhaseConstraintError("P2", "P1"))
        assert hint.suggested_command == ""

    def test_from_config(self):
        """Config dicts are parsed into HintConfig."""
        config = HintConfig.from_config({"enabled": True, "min_priority": "medium", "show_commands": False})
        assert config.min_priority == HintPriority.MEDIUM
        assert not config.show_commands

    def test_from_empty_config(self):
        assert HintConfig.from_config(None) == HintConfig()


class TestRegistry:
    """Tests for HintRegistry ordering."""

    def test_higher_priority_rule_wins(self):
        """The highest-priority matching rule answers."""
        registry = HintRegistry()
        registry.register(HintRule("low", "*", HintPriority.LOW, lambda e: ("low", "")))
        registry.register(HintRule("high", "*", HintPriority.HIGH, lambda e: ("high", "")))
        assert registry.query(AgentPMError("x")).message == "high"

    def test_registration_order_breaks_ties(self):
        """Equal priorities fall back to registration order."""
        registry = HintRegistry()
        registry.register(HintRule("first", "*", HintPriority.MEDIUM, lambda e: ("first", "")))
        registry.register(HintRule("second", "*", HintPriority.MEDIUM, lambda e: ("second", "")))
        assert registry.query(AgentPMError("x")).message == "first"

    def test_predicate_narrows_rule(self):
        """A rule whose predicate fails is skipped."""
        registry = HintRegistry()
        registry.register(HintRule("never", "*", HintPriority.HIGH, lambda e: ("never", ""), lambda e: False))
        assert registry.query(AgentPMError("x")) is None

    def test_hint_to_dict(self):
        hint = Hint("msg", "agentpm status", HintPriority.MEDIUM)
        assert hint.to_dict() == {"message": "msg", "suggested_command": "agentpm status", "priority": "medium"}


class TestFindSimilar:
    """Tests for find_similar()."""

    def test_exact_case_insensitive(self):
        """Case differences still count as an exact match."""
        assert find_similar("p1", ["P1", "P2"]) == "P1"

    def test_close_match(self):
        """Typos within the cutoff are matched."""
        assert find_similar("setup_phse", ["setup_phase", "build"]) == "setup_phase"

    def test_no_match(self):
        """Unrelated ids are not suggested."""
        assert find_similar("xyz", ["P1"]) is None

    def test_empty_candidates(self):
        assert find_similar("P1", []) is None
