"""
Schema definitions for policygate.

This module defines the Pydantic models used throughout policygate:
- Check variants: the closed rule grammar (discriminated on "op")
- Control/PolicyFile: what a policy source contains
- Requirement/Validation: the verdict produced by the engine

Design Decisions:
    - All models are frozen and forbid unknown keys
    - The Check union is closed; adding a variant means updating the
      evaluator, and the generated schema picks it up automatically
    - Sub-checks are held in tuples so a loaded tree cannot be mutated
"""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Checks nested deeper than this are rejected when a policy is loaded.
MAX_CHECK_DEPTH = 64


# =============================================================================
# Check Variants
# =============================================================================


class ExistsAndNotEmpty(BaseModel):
    """Passes when the field resolves to a non-empty string."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["exists_and_not_empty"] = "exists_and_not_empty"
    field: str = Field(..., description="Pointer path to the field, e.g. '/name'")


class Equals(BaseModel):
    """Passes when the field resolves to a value structurally equal to `value`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["equals"] = "equals"
    field: str = Field(..., description="Pointer path to the field")
    value: Any = Field(..., description="Expected JSON value")


class Contains(BaseModel):
    """Passes when the field resolves to an array holding `value`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["contains"] = "contains"
    field: str = Field(..., description="Pointer path to an array field")
    value: Any = Field(..., description="JSON value that must appear in the array")


class Some(BaseModel):
    """Passes when the field is present and not null."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["some"] = "some"
    field: str = Field(..., description="Pointer path to the field")


class AllOf(BaseModel):
    """Passes when every sub-rule passes (vacuously true when empty)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["allOf"] = "allOf"
    rules: tuple["Check", ...] = Field(..., description="Rules that must all pass")


class AnyOf(BaseModel):
    """Passes when at least one sub-rule passes (false when empty)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["anyOf"] = "anyOf"
    rules: tuple["Check", ...] = Field(..., description="Rules of which one must pass")


class Not(BaseModel):
    """Negates its sub-rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: Literal["not"] = "not"
    rule: "Check" = Field(..., description="Rule to negate")


class If(BaseModel):
    """
    Conditional rule.

    When the condition passes, the result is the `then` rule. When it
    fails, the result is the `else` rule, or true if there is none.

    The grammar keys are "if", "then" and "else"; the Python attributes
    are `condition`, `then` and `otherwise`. Keyword construction in code
    may use either, but policy sources are validated with `by_name=False`
    so only the grammar keys are accepted there.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_by_alias=True,
        validate_by_name=True,
    )

    op: Literal["if"] = "if"
    condition: "Check" = Field(..., alias="if", description="Condition rule")
    then: "Check" = Field(..., description="Rule applied when the condition passes")
    otherwise: "Check | None" = Field(
        default=None,
        alias="else",
        description="Rule applied when the condition fails",
    )


Check = Annotated[
    Union[ExistsAndNotEmpty, Equals, Contains, Some, AllOf, AnyOf, Not, If],
    Field(discriminator="op"),
]

for _model in (AllOf, AnyOf, Not, If):
    _model.model_rebuild()


def check_children(check: Check) -> tuple[Check, ...]:
    """Return the direct sub-checks of a check."""
    if isinstance(check, (AllOf, AnyOf)):
        return check.rules
    if isinstance(check, Not):
        return (check.rule,)
    if isinstance(check, If):
        if check.otherwise is None:
            return (check.condition, check.then)
        return (check.condition, check.then, check.otherwise)
    return ()


def check_depth(check: Check) -> int:
    """
    Return the nesting depth of a check (a leaf check has depth 1).

    Walks the tree iteratively so arbitrarily deep input cannot exhaust
    the interpreter stack.
    """
    deepest = 0
    stack = [(check, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in check_children(node))
    return deepest


# =============================================================================
# Policy Models
# =============================================================================


class Control(BaseModel):
    """
    A single named compliance requirement.

    Attributes:
        id: Control identifier (not required to be unique)
        description: What the control requires, shown when it fails
        check: The rule evaluated against the metadata document
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Control identifier, e.g. 'sec_001'")
    description: str = Field(..., description="Human-readable requirement")
    check: Check = Field(..., description="Rule evaluated against the document")


class PolicyFile(BaseModel):
    """Top-level shape of a policy source."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    controls: tuple[Control, ...] = Field(
        ...,
        description="Controls, evaluated in declaration order",
    )


# =============================================================================
# Verdict Models
# =============================================================================


class Requirement(BaseModel):
    """A failed control: its identifier and what it requires."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    control: str = Field(..., description="Identifier of the failing control")
    required: str = Field(..., description="Description of the failing control")


class Validation(BaseModel):
    """
    Verdict of validating one document against a policy set.

    `valid` is true exactly when `requirements` is empty; the model
    refuses any other combination.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    valid: bool = Field(..., description="Whether every control passed")
    requirements: tuple[Requirement, ...] = Field(
        default=(),
        description="Failing controls in declaration order",
    )

    @model_validator(mode="after")
    def check_consistency(self) -> "Validation":
        if self.valid == bool(self.requirements):
            msg = "valid must be true exactly when there are no requirements"
            raise ValueError(msg)
        return self

    @classmethod
    def passed(cls) -> "Validation":
        """Create a PASS verdict."""
        return cls(valid=True)

    @classmethod
    def failed(cls, requirements: list[Requirement] | tuple[Requirement, ...]) -> "Validation":
        """Create a FAIL verdict from a non-empty list of requirements."""
        return cls(valid=False, requirements=tuple(requirements))

    def to_dict(self) -> dict[str, Any]:
        """Machine-readable form; `requirements` only appears when invalid."""
        if self.valid:
            return {"valid": True}
        return {
            "valid": False,
            "requirements": [r.model_dump() for r in self.requirements],
        }

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize the machine-readable form to JSON."""
        return json.dumps(self.to_dict(), indent=indent)

    def summary(self) -> str:
        """Multi-line human-readable summary."""
        if self.valid:
            return "Validation PASSED\n"

        count = len(self.requirements)
        noun = "requirement" if count == 1 else "requirements"
        lines = [f"Validation FAILED with {count} {noun}:"]
        for i, req in enumerate(self.requirements, start=1):
            lines.append(f'  - {i}: RULE "{req.control}" => {req.required}')
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.summary()


# =============================================================================
# Grammar Description
# =============================================================================


def generate_schema() -> dict[str, Any]:
    """Return the JSON Schema describing the policy source grammar."""
    return PolicyFile.model_json_schema(by_alias=True)


def generate_schema_json(indent: int = 2) -> str:
    """Return the policy JSON Schema as a pretty-printed string."""
    return json.dumps(generate_schema(), indent=indent)
