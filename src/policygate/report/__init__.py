"""
Reporting module for policygate.

Output formats:
    - Console: Rich terminal output with status header and failure table
    - JSON: Structured verdict for programmatic consumption

Example:
    from policygate.report import generate_console_report, generate_json_report

    generate_console_report(validation)
    print(generate_json_report(validation))
"""

from policygate.report.console import generate_console_report
from policygate.report.json import build_report_dict, generate_json_report, write_json_report

__all__ = [
    "generate_console_report",
    "generate_json_report",
    "build_report_dict",
    "write_json_report",
]
