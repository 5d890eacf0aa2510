"""
JSON report generator for policygate.

Produces the machine-readable verdict:
    {"valid": true}
or
    {"valid": false, "requirements": [{"control": ..., "required": ...}]}

Optional metadata (report version, document name, control count) can be
attached for CI logs; the verdict keys are always present unchanged.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from policygate.errors import ReportWriteError
from policygate.schema import Validation


REPORT_VERSION = "1.0"


def build_report_dict(
    validation: Validation,
    document: str | None = None,
    control_count: int | None = None,
    include_meta: bool = False,
) -> dict[str, Any]:
    """
    Build a report dictionary for a verdict.

    Args:
        validation: The verdict to report
        document: Name of the validated document, if known
        control_count: Number of controls evaluated, if known
        include_meta: Whether to add a "meta" block

    Returns:
        Dictionary with the verdict (and optional metadata)
    """
    report = validation.to_dict()
    if include_meta:
        report["meta"] = {
            "report_version": REPORT_VERSION,
            "generated_at": datetime.now(UTC).isoformat(),
            "document": document,
            "control_count": control_count,
            "failed_count": len(validation.requirements),
        }
    return report


def generate_json_report(
    validation: Validation,
    indent: int = 2,
    **kwargs: Any,
) -> str:
    """Generate a JSON report string for a verdict."""
    return json.dumps(build_report_dict(validation, **kwargs), indent=indent)


def write_json_report(
    validation: Validation,
    path: Path | str,
    indent: int = 2,
    **kwargs: Any,
) -> Path:
    """
    Write a JSON report to a file.

    Raises:
        ReportWriteError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.write_text(generate_json_report(validation, indent=indent, **kwargs) + "\n", encoding="utf-8")
    except OSError as e:
        raise ReportWriteError(path=str(path), underlying_error=str(e)) from e
    return path
