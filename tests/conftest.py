"""
Pytest configuration and fixtures for policygate tests.

This module provides shared fixtures used across unit and integration tests.
"""

import json
import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def policy_dir(temp_dir: Path) -> Path:
    """Create a policy directory with one JSON and one YAML source."""
    directory = temp_dir / "policies"
    directory.mkdir()

    (directory / "01_identity.json").write_text(json.dumps({
        "controls": [
            {
                "id": "exists_001",
                "description": "Project name must be set",
                "check": {"op": "exists_and_not_empty", "field": "/name"},
            },
        ],
    }))

    (directory / "02_release.yaml").write_text(
        """
controls:
  - id: equals_001
    description: Environment must be prod
    check:
      op: equals
      field: /env
      value: prod
  - id: contains_001
    description: Release must be approved
    check:
      op: contains
      field: /tags
      value: approved
"""
    )
    return directory


@pytest.fixture
def passing_metadata() -> dict:
    """Metadata that satisfies every control in policy_dir."""
    return {"name": "service-a", "env": "prod", "tags": ["a", "approved"]}


@pytest.fixture
def failing_metadata() -> dict:
    """Metadata that fails equals_001 and contains_001."""
    return {"name": "service-a", "env": "staging", "tags": ["a"]}
