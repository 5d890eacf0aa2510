"""
policygate - Evaluate metadata documents against declarative compliance controls.

policygate gates releases and deployments on externally authored controls.
It provides:
- A closed rule grammar (equals, contains, allOf, anyOf, not, if, ...)
- Fail-closed evaluation against JSON/YAML metadata documents
- Console and JSON verdict reports
- A JSON Schema of the policy grammar for editors and tooling

Example usage:
    $ policygate validate metadata.json --policies policies/
    $ policygate schema --out policy.schema.json
"""

__version__ = "0.1.0"
__author__ = "policygate Contributors"

from policygate.policy import PolicyEngine, PolicySetBuilder
from policygate.schema import Control, Requirement, Validation

__all__ = [
    "__version__",
    "__author__",
    "Control",
    "PolicyEngine",
    "PolicySetBuilder",
    "Requirement",
    "Validation",
]
