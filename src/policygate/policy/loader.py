"""
Policy and metadata loading for policygate.

This module provides:
- load_policy_source: parse one policy source into Controls
- PolicySetBuilder: accumulate controls from many sources, keeping a list
  of per-source errors instead of stopping at the first bad one
- load_metadata: parse the document to validate

Design Decisions:
    - .json sources are parsed with json.loads; everything else with a
      SafeLoader restricted to what JSON can express, so a value means the
      same thing whichever format it was written in
    - A directory is loaded non-recursively in sorted filename order
    - Loading is a separate phase; build() hands the finished control
      list to an immutable PolicyEngine
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from policygate.errors import (
    MetadataError,
    PolicyDepthError,
    PolicyDirectoryError,
    PolicySourceError,
)
from policygate.policy.engine import PolicyEngine
from policygate.schema import MAX_CHECK_DEPTH, Control, PolicyFile, check_depth


logger = logging.getLogger(__name__)

POLICY_EXTENSIONS = (".json", ".yaml", ".yml")

_JSON_SCALARS = (str, int, float, bool, type(None))


# =============================================================================
# Parsing
# =============================================================================


class JsonCompatibleLoader(yaml.SafeLoader):
    """
    SafeLoader that resolves plain scalars the way JSON would.

    Unquoted dates stay strings, and exponent numbers without a decimal
    point ("1e5", "2E10") load as floats instead of strings.
    """


JsonCompatibleLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
JsonCompatibleLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"^[-+]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)[eE][-+]?[0-9]+$"),
    list("-+0123456789."),
)


def format_for_path(path: Path) -> str:
    """Return "json" for .json files and "yaml" for anything else."""
    return "json" if path.suffix.lower() == ".json" else "yaml"


def _parse(content: str, fmt: str) -> Any:
    """Parse JSON or YAML text; raises json.JSONDecodeError or yaml.YAMLError."""
    if fmt == "json":
        return json.loads(content)
    return yaml.load(content, Loader=JsonCompatibleLoader)


def _find_non_json_value(data: Any) -> str | None:
    """Describe the first value JSON cannot represent, or return None."""
    stack: list[tuple[Any, tuple[str, ...]]] = [(data, ())]
    while stack:
        node, location = stack.pop()
        where = ".".join(location) or "<root>"
        if isinstance(node, dict):
            for key, value in node.items():
                if not isinstance(key, str):
                    return f"{where}: key {key!r} is not a string"
                stack.append((value, location + (key,)))
        elif isinstance(node, list):
            stack.extend((item, location + (str(i),)) for i, item in enumerate(node))
        elif not isinstance(node, _JSON_SCALARS):
            return f"{where}: {type(node).__name__} {node!r} is not a JSON value"
    return None


# =============================================================================
# Policy Sources
# =============================================================================


def load_policy_source(content: str, source: str = "<string>", fmt: str = "yaml") -> list[Control]:
    """
    Parse one policy source.

    Only the grammar keys are accepted: an if check must be written with
    "if"/"else", never with its Python attribute names.

    Args:
        content: Policy text
        source: Name used in error messages, usually the file path
        fmt: "json" or "yaml" (YAML also accepts JSON text)

    Returns:
        The controls declared in the source, in order

    Raises:
        PolicySourceError: If the text is not valid YAML/JSON, holds a value
            JSON cannot represent, or does not match the control grammar
        PolicyDepthError: If a check nests deeper than MAX_CHECK_DEPTH
    """
    try:
        data = _parse(content, fmt)
        problem = _find_non_json_value(data)
        if problem is not None:
            raise PolicySourceError(source=source, underlying_error=problem)
        policy_file = PolicyFile.model_validate(data, by_name=False)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise PolicySourceError(source=source, underlying_error=str(e)) from e
    except ValidationError as e:
        raise PolicySourceError(source=source, underlying_error=_format_validation_error(e)) from e
    except RecursionError as e:
        raise PolicyDepthError(source=source, max_depth=MAX_CHECK_DEPTH) from e

    for control in policy_file.controls:
        if check_depth(control.check) > MAX_CHECK_DEPTH:
            raise PolicyDepthError(
                source=source,
                max_depth=MAX_CHECK_DEPTH,
                underlying_error=(
                    f"control {control.id} nests deeper than {MAX_CHECK_DEPTH} levels"
                ),
            )

    return list(policy_file.controls)


def _format_validation_error(error: ValidationError) -> str:
    """Condense a pydantic ValidationError into one line per problem."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class PolicySetBuilder:
    """
    Accumulates controls from several policy sources.

    A source that fails to load is recorded in `errors` and skipped; the
    controls of every other source are kept. Call build() once loading is
    done to get the engine.

    Example:
        >>> builder = PolicySetBuilder()
        >>> builder.add_directory("policies")
        >>> for error in builder.errors:
        ...     print(error)
        >>> engine = builder.build()
    """

    def __init__(self) -> None:
        self._controls: list[Control] = []
        self._errors: list[PolicySourceError] = []
        self._sources: list[str] = []

    @property
    def controls(self) -> tuple[Control, ...]:
        """Controls collected so far."""
        return tuple(self._controls)

    @property
    def errors(self) -> tuple[PolicySourceError, ...]:
        """Errors of the sources that were skipped."""
        return tuple(self._errors)

    @property
    def sources(self) -> tuple[str, ...]:
        """Sources loaded successfully."""
        return tuple(self._sources)

    def add_source(self, content: str, source: str = "<string>", fmt: str = "yaml") -> bool:
        """
        Load controls from policy text written in `fmt` ("json" or "yaml").

        Returns:
            True if the source was loaded, False if it was skipped
        """
        try:
            controls = load_policy_source(content, source, fmt)
        except PolicySourceError as e:
            logger.warning("Skipping policy source %s: %s", source, e.underlying_error)
            self._errors.append(e)
            return False

        logger.debug("Loaded %d controls from %s", len(controls), source)
        self._controls.extend(controls)
        self._sources.append(source)
        return True

    def add_file(self, path: Path | str) -> bool:
        """
        Load controls from a policy file.

        An unreadable file counts as a failed source.
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error = PolicySourceError(source=str(path), underlying_error=str(e))
            logger.warning("Skipping policy source %s: %s", path, e)
            self._errors.append(error)
            return False

        return self.add_source(content, str(path), format_for_path(path))

    def add_directory(self, directory: Path | str) -> int:
        """
        Load every policy file in a directory (non-recursive).

        Args:
            directory: Directory containing .json/.yaml/.yml policy files

        Returns:
            Number of files loaded successfully

        Raises:
            PolicyDirectoryError: If the directory does not exist
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise PolicyDirectoryError(directory=str(directory))

        paths = sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in POLICY_EXTENSIONS
        )
        logger.debug("Found %d policy files in %s", len(paths), directory)

        return sum(1 for path in paths if self.add_file(path))

    def build(self) -> PolicyEngine:
        """Freeze the collected controls into a PolicyEngine."""
        return PolicyEngine(self._controls)


def load_policy_directory(directory: Path | str) -> tuple[PolicyEngine, tuple[PolicySourceError, ...]]:
    """
    Load a policy directory into an engine.

    Returns:
        The engine and the errors of any skipped sources
    """
    builder = PolicySetBuilder()
    builder.add_directory(directory)
    return builder.build(), builder.errors


# =============================================================================
# Metadata Documents
# =============================================================================


def load_metadata_from_string(content: str, source: str = "<string>", fmt: str = "json") -> Any:
    """
    Parse a metadata document.

    Args:
        content: Document text
        source: Name used in error messages
        fmt: "json" or "yaml"

    Raises:
        MetadataError: If the text cannot be parsed
    """
    try:
        return _parse(content, fmt)
    except (json.JSONDecodeError, yaml.YAMLError, RecursionError) as e:
        raise MetadataError(source=source, underlying_error=str(e)) from e


def load_metadata(path: Path | str) -> Any:
    """
    Load a metadata document from a file.

    Files ending in .json are parsed as JSON; anything else as YAML.

    Raises:
        MetadataError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MetadataError(source=str(path), underlying_error=str(e)) from e

    return load_metadata_from_string(content, str(path), format_for_path(path))
