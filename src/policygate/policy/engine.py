"""
Policy Engine for policygate.

The Policy Engine evaluates every loaded control against a metadata
document and reports the controls that fail.

Design Principles:
    - Fail-closed: an absent or mistyped field makes its check false
    - Predictable: same controls and document always give the same verdict
    - Side-effect free: the document is never mutated, and the engine
      keeps no state between validate() calls

How it works:
    1. The loader builds an engine from a finished list of controls
    2. validate(document) evaluates each control in declaration order
    3. Failing controls become Requirements in the returned Validation
"""

import logging
from collections.abc import Iterable
from typing import Any, assert_never

from policygate.errors import PolicyDepthError
from policygate.pointer import MISSING, resolve_pointer
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
    Requirement,
    Some,
    Validation,
    check_depth,
)


logger = logging.getLogger(__name__)


class PolicyEngine:
    """
    Evaluates a fixed, ordered set of controls against metadata documents.

    The control list is frozen at construction, so one engine can serve
    concurrent validate() calls from several threads.

    Usage:
        engine = PolicyEngine(controls)
        result = engine.validate({"name": "service-a"})
        if not result.valid:
            for req in result.requirements:
                print(req.control, req.required)

    Attributes:
        controls: The loaded controls, in declaration order
    """

    def __init__(self, controls: Iterable[Control] = ()) -> None:
        """
        Initialize the policy engine.

        Args:
            controls: Controls to enforce, in declaration order

        Raises:
            PolicyDepthError: If a control's check nests too deeply
        """
        controls = tuple(controls)
        for control in controls:
            if check_depth(control.check) > MAX_CHECK_DEPTH:
                raise PolicyDepthError(
                    source=f"control {control.id}",
                    max_depth=MAX_CHECK_DEPTH,
                )
        self._controls = controls

    @property
    def controls(self) -> tuple[Control, ...]:
        """The loaded controls, in declaration order."""
        return self._controls

    def __len__(self) -> int:
        return len(self._controls)

    def validate(self, document: Any) -> Validation:
        """
        Validate a metadata document against every control.

        Args:
            document: Parsed metadata document

        Returns:
            Validation that passes only if every control passed
        """
        failed: list[Requirement] = []
        for control in self._controls:
            if not _evaluate(control.check, document):
                failed.append(
                    Requirement(control=control.id, required=control.description)
                )

        logger.debug(
            "Validated document against %d controls: %d failed",
            len(self._controls),
            len(failed),
        )

        if not failed:
            return Validation.passed()
        return Validation.failed(failed)

    def evaluate(self, check: Check, document: Any) -> bool:
        """Evaluate a single check against a document."""
        return evaluate(check, document)


def evaluate(check: Check, document: Any) -> bool:
    """
    Evaluate a check against a document.

    Checks deeper than MAX_CHECK_DEPTH evaluate to False instead of
    being walked.
    """
    if check_depth(check) > MAX_CHECK_DEPTH:
        logger.warning("Check exceeds depth %d, treating as failed", MAX_CHECK_DEPTH)
        return False
    return _evaluate(check, document)


def _evaluate(check: Check, document: Any) -> bool:
    """Recursive evaluator; callers guarantee the depth bound."""
    if isinstance(check, ExistsAndNotEmpty):
        value = resolve_pointer(document, check.field)
        return isinstance(value, str) and len(value) > 0

    elif isinstance(check, Equals):
        value = resolve_pointer(document, check.field)
        return value is not MISSING and json_equal(value, check.value)

    elif isinstance(check, Contains):
        value = resolve_pointer(document, check.field)
        if not isinstance(value, list):
            return False
        return any(json_equal(item, check.value) for item in value)

    elif isinstance(check, Some):
        value = resolve_pointer(document, check.field)
        return value is not MISSING and value is not None

    elif isinstance(check, AllOf):
        return all(_evaluate(rule, document) for rule in check.rules)

    elif isinstance(check, AnyOf):
        return any(_evaluate(rule, document) for rule in check.rules)

    elif isinstance(check, Not):
        return not _evaluate(check.rule, document)

    elif isinstance(check, If):
        if _evaluate(check.condition, document):
            return _evaluate(check.then, document)
        if check.otherwise is None:
            return True
        return _evaluate(check.otherwise, document)

    else:
        assert_never(check)


def json_equal(left: Any, right: Any) -> bool:
    """
    Structural, type-sensitive equality of two JSON values.

    Booleans never equal numbers and strings never equal numbers, unlike
    Python's ==. Integers and floats are distinct: 1 does not equal 1.0,
    while two floats (or two integers) compare by value. Objects compare by key set and values, arrays element-wise.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return type(left) is type(right) and left == right

    if isinstance(left, str) and isinstance(right, str):
        return left == right

    if left is None or right is None:
        return left is None and right is None

    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right))

    return False
