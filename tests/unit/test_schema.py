"""
Unit tests for schema validation.

Tests cover:
- Check grammar parsing (every op, aliases, rejection of bad input)
- Control and PolicyFile parsing
- Validation verdict invariants and rendering
- Grammar description generation
"""

import json

import pytest
from pydantic import TypeAdapter, ValidationError

from policygate.schema import (
    MAX_CHECK_DEPTH,
    AllOf,
    AnyOf,
    Check,
    Contains,
    Control,
    Equals,
    ExistsAndNotEmpty,
    If,
    Not,
    PolicyFile,
    Requirement,
    Some,
    Validation,
    check_children,
    check_depth,
    generate_schema,
    generate_schema_json,
)


check_adapter = TypeAdapter(Check)


# =============================================================================
# Check Grammar Tests
# =============================================================================


class TestCheckParsing:
    """Tests for parsing checks from policy data."""

    @pytest.mark.parametrize(
        ("data", "expected_type"),
        [
            ({"op": "exists_and_not_empty", "field": "/name"}, ExistsAndNotEmpty),
            ({"op": "equals", "field": "/env", "value": "prod"}, Equals),
            ({"op": "contains", "field": "/tags", "value": "approved"}, Contains),
            ({"op": "some", "field": "/sla"}, Some),
            ({"op": "allOf", "rules": []}, AllOf),
            ({"op": "anyOf", "rules": []}, AnyOf),
            ({"op": "not", "rule": {"op": "some", "field": "/x"}}, Not),
        ],
    )
    def test_each_op(self, data: dict, expected_type: type) -> None:
        """The op field selects the variant."""
        assert isinstance(check_adapter.validate_python(data), expected_type)

    def test_if_uses_grammar_keys(self) -> None:
        """If reads "if"/"then"/"else" and exposes condition/then/otherwise."""
        check = check_adapter.validate_python({
            "op": "if",
            "if": {"op": "equals", "field": "/tier", "value": "gold"},
            "then": {"op": "some", "field": "/sla"},
            "else": {"op": "equals", "field": "/tier", "value": "free"},
        })
        assert isinstance(check, If)
        assert isinstance(check.condition, Equals)
        assert isinstance(check.then, Some)
        assert isinstance(check.otherwise, Equals)

    def test_if_else_is_optional(self) -> None:
        """The else branch may be omitted."""
        check = check_adapter.validate_python({
            "op": "if",
            "if": {"op": "some", "field": "/a"},
            "then": {"op": "some", "field": "/b"},
        })
        assert check.otherwise is None

    def test_if_by_python_name(self) -> None:
        """If can be built in Python with attribute names."""
        check = If(condition=Some(field="/a"), then=Some(field="/b"))
        assert check.condition == Some(field="/a")

    def test_nested_rules(self) -> None:
        """Compound checks nest and keep order."""
        check = check_adapter.validate_python({
            "op": "allOf",
            "rules": [
                {"op": "some", "field": "/a"},
                {"op": "anyOf", "rules": [{"op": "some", "field": "/b"}]},
            ],
        })
        assert isinstance(check.rules[0], Some)
        assert isinstance(check.rules[1], AnyOf)
        assert isinstance(check.rules[1].rules[0], Some)

    def test_value_may_be_any_json(self) -> None:
        """Equals accepts objects, arrays and null as values."""
        check = check_adapter.validate_python(
            {"op": "equals", "field": "/x", "value": {"a": [1, None]}}
        )
        assert check.value == {"a": [1, None]}

        check = check_adapter.validate_python({"op": "equals", "field": "/x", "value": None})
        assert check.value is None


class TestCheckRejection:
    """Malformed checks are rejected."""

    def test_unknown_op(self) -> None:
        """An unknown discriminator is rejected."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "regex", "field": "/x"})

    def test_missing_op(self) -> None:
        """A check without op is rejected."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"field": "/x"})

    def test_missing_operand(self) -> None:
        """Equals without value is rejected."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "equals", "field": "/x"})

    def test_wrong_operand_type(self) -> None:
        """field must be a string."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "some", "field": 3})

    def test_rules_must_be_list(self) -> None:
        """rules must be a list of checks."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "allOf", "rules": {"op": "some", "field": "/x"}})

    def test_extra_key(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "some", "field": "/x", "value": 1})

    def test_if_requires_then(self) -> None:
        """If without then is rejected."""
        with pytest.raises(ValidationError):
            check_adapter.validate_python({"op": "if", "if": {"op": "some", "field": "/a"}})


class TestCheckImmutability:
    """Loaded checks cannot be changed."""

    def test_frozen(self) -> None:
        """Assigning to a check raises."""
        check = Some(field="/a")
        with pytest.raises(ValidationError):
            check.field = "/b"

    def test_rules_are_tuples(self) -> None:
        """Sub-rules are stored in a tuple."""
        check = AllOf(rules=[Some(field="/a")])
        assert isinstance(check.rules, tuple)


class TestCheckDepth:
    """Tests for check_children and check_depth."""

    def test_leaf_depth(self) -> None:
        """A leaf check has depth 1 and no children."""
        assert check_depth(Some(field="/a")) == 1
        assert check_children(Some(field="/a")) == ()

    def test_compound_depth(self) -> None:
        """Depth counts the deepest branch."""
        check = AllOf(rules=[Some(field="/a"), Not(rule=Not(rule=Some(field="/b")))])
        assert check_depth(check) == 4

    def test_if_children(self) -> None:
        """If exposes its condition, then and else branches."""
        check = If(condition=Some(field="/a"), then=Some(field="/b"), otherwise=Some(field="/c"))
        assert len(check_children(check)) == 3

    def test_deep_chain(self) -> None:
        """Depth is computed without recursion for long chains."""
        check = Some(field="/a")
        for _ in range(MAX_CHECK_DEPTH * 20):
            check = Not(rule=check)
        assert check_depth(check) == MAX_CHECK_DEPTH * 20 + 1


# =============================================================================
# Policy Model Tests
# =============================================================================


class TestPolicyFile:
    """Tests for Control and PolicyFile."""

    def test_parse_policy_file(self) -> None:
        """A policy file holds ordered controls."""
        policy = PolicyFile.model_validate({
            "controls": [
                {"id": "a", "description": "A", "check": {"op": "some", "field": "/a"}},
                {"id": "b", "description": "B", "check": {"op": "some", "field": "/b"}},
            ],
        })
        assert [c.id for c in policy.controls] == ["a", "b"]

    def test_control_requires_description(self) -> None:
        """Controls need an id, a description and a check."""
        with pytest.raises(ValidationError):
            Control.model_validate({"id": "a", "check": {"op": "some", "field": "/a"}})

    def test_policy_file_requires_controls(self) -> None:
        """The controls key is required."""
        with pytest.raises(ValidationError):
            PolicyFile.model_validate({})


# =============================================================================
# Validation Verdict Tests
# =============================================================================


class TestValidation:
    """Tests for the Validation verdict."""

    def test_passed(self) -> None:
        """A passing verdict has no requirements."""
        result = Validation.passed()
        assert result.valid is True
        assert result.requirements == ()

    def test_failed(self) -> None:
        """A failing verdict keeps requirement order."""
        result = Validation.failed([
            Requirement(control="a", required="A"),
            Requirement(control="b", required="B"),
        ])
        assert result.valid is False
        assert [r.control for r in result.requirements] == ["a", "b"]

    def test_failed_requires_requirements(self) -> None:
        """A failing verdict with no requirements is refused."""
        with pytest.raises(ValidationError):
            Validation.failed([])

    def test_valid_with_requirements_refused(self) -> None:
        """A passing verdict with requirements is refused."""
        with pytest.raises(ValidationError):
            Validation(valid=True, requirements=(Requirement(control="a", required="A"),))

    def test_to_dict_pass(self) -> None:
        """A pass has no requirements key."""
        assert Validation.passed().to_dict() == {"valid": True}

    def test_to_dict_fail(self) -> None:
        """A fail lists control/required pairs."""
        result = Validation.failed([Requirement(control="a", required="A")])
        assert result.to_dict() == {
            "valid": False,
            "requirements": [{"control": "a", "required": "A"}],
        }
        assert json.loads(result.to_json()) == result.to_dict()

    def test_summary_pass(self) -> None:
        """Pass summary is a single line."""
        assert str(Validation.passed()) == "Validation PASSED\n"

    def test_summary_single_failure(self) -> None:
        """One failure uses the singular noun."""
        result = Validation.failed([Requirement(control="exists_001", required="Name must be set")])
        assert result.summary() == (
            "Validation FAILED with 1 requirement:\n"
            '  - 1: RULE "exists_001" => Name must be set\n'
        )

    def test_summary_multiple_failures(self) -> None:
        """Several failures use the plural noun and are numbered."""
        result = Validation.failed([
            Requirement(control="a", required="A"),
            Requirement(control="b", required="B"),
        ])
        lines = result.summary().splitlines()
        assert lines[0] == "Validation FAILED with 2 requirements:"
        assert lines[2] == '  - 2: RULE "b" => B'


# =============================================================================
# Grammar Description Tests
# =============================================================================


class TestGenerateSchema:
    """Tests for the JSON Schema of the policy grammar."""

    def test_schema_lists_every_op(self) -> None:
        """Every variant appears in the schema."""
        text = generate_schema_json()
        for op in ("exists_and_not_empty", "equals", "contains", "some", "allOf", "anyOf", "not", "if"):
            assert f'"{op}"' in text

    def test_schema_uses_grammar_keys(self) -> None:
        """The If variant is described with its grammar keys."""
        schema = generate_schema()
        if_schema = schema["$defs"]["If"]
        assert {"if", "then", "else"} <= set(if_schema["properties"])
        assert "condition" not in if_schema["properties"]

    def test_schema_requires_controls(self) -> None:
        """The top level requires a controls array."""
        schema = generate_schema()
        assert schema["required"] == ["controls"]
        assert schema["properties"]["controls"]["type"] == "array"
