"""
Policy Engine module for policygate.

Key concepts:
    - Control: a named requirement pairing an id, a description and a check
    - PolicySetBuilder: loads policy sources, isolating per-source errors
    - PolicyEngine: evaluates every control against a metadata document

The engine is fail-closed: a field that is missing or has the wrong type
makes its check false, never raises, and never silently passes.
"""

from policygate.policy.engine import PolicyEngine, evaluate, json_equal
from policygate.policy.loader import (
    POLICY_EXTENSIONS,
    PolicySetBuilder,
    load_metadata,
    load_metadata_from_string,
    load_policy_directory,
    load_policy_source,
)

__all__ = [
    "POLICY_EXTENSIONS",
    "PolicyEngine",
    "PolicySetBuilder",
    "evaluate",
    "json_equal",
    "load_metadata",
    "load_metadata_from_string",
    "load_policy_directory",
    "load_policy_source",
]
