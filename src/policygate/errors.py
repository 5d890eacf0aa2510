"""
Exception hierarchy for policygate.

All policygate exceptions inherit from PolicyGateError, allowing callers to
catch every policygate-specific exception with a single except clause.

Exception Categories:
    - PolicySourceError: One policy source could not be loaded
    - PolicyDirectoryError: The policy directory itself is unusable
    - MetadataError: The metadata document could not be parsed
    - ReportWriteError: A report or schema file could not be written

Evaluation never raises. Every error here belongs to the loading or output
boundary, so a caller can always tell "bad input" apart from "failed controls".
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Policy errors: 1xxx
ERROR_POLICY_SOURCE_INVALID = 1001
ERROR_POLICY_DEPTH_EXCEEDED = 1002
ERROR_POLICY_DIRECTORY = 1003

# Metadata errors: 2xxx
ERROR_METADATA_INVALID = 2001

# Output errors: 3xxx
ERROR_REPORT_WRITE = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PolicyGateError(Exception):
    """
    Base exception for all policygate errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Policy Errors
# =============================================================================


@dataclass
class PolicySourceError(PolicyGateError):
    """
    Raised when a single policy source does not match the control grammar.

    The error is scoped to one source, so a loader can record it and keep
    going with the remaining sources.

    Attributes:
        source: Name of the offending source (usually a file path)
        underlying_error: The parser or validator complaint
    """

    source: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid policy source {self.source}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_SOURCE_INVALID
        if not self.suggestion:
            self.suggestion = "Check the source against the output of 'policygate schema'"
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


@dataclass
class PolicyDepthError(PolicySourceError):
    """Raised when a check nests deeper than the engine accepts."""

    max_depth: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.underlying_error:
            self.underlying_error = f"check nesting exceeds {self.max_depth} levels"
        if self.code == 0:
            self.code = ERROR_POLICY_DEPTH_EXCEEDED
        if not self.suggestion:
            self.suggestion = "Flatten the check, e.g. merge nested allOf/anyOf blocks"
        super().__post_init__()
        self.context["max_depth"] = self.max_depth


@dataclass
class PolicyDirectoryError(PolicyGateError):
    """Raised when the policy directory is missing or not a directory."""

    directory: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Policy directory not found: {self.directory}"
        if self.code == 0:
            self.code = ERROR_POLICY_DIRECTORY
        if not self.suggestion:
            self.suggestion = "Pass --policies or set POLICYGATE_POLICY_DIR"
        self.context["directory"] = self.directory


# =============================================================================
# Metadata Errors
# =============================================================================


@dataclass
class MetadataError(PolicyGateError):
    """
    Raised when the metadata document cannot be read or parsed.

    Aborts one validation attempt; the loaded policy set is untouched.

    Attributes:
        source: Name of the document (usually a file path)
        underlying_error: The reader or parser complaint
    """

    source: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid metadata document {self.source}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_METADATA_INVALID
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Output Errors
# =============================================================================


@dataclass
class ReportWriteError(PolicyGateError):
    """Raised when a report or schema file cannot be written."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_REPORT_WRITE
        if not self.suggestion:
            self.suggestion = "Check that the output path is valid and writable"
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
