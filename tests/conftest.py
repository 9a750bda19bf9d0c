"""
Pytest configuration and shared fixtures for dapp tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from dapp.logging import SilentLogger, set_global_logger


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def clean_env(monkeypatch):
    """
    Remove the environment variables the sample settings types read.

    Returns the monkeypatch fixture so tests can set variables on top.
    """
    for name in ("FLAG", "NAME", "APP_FLAG", "APP_NAME", "APP_WORKERS", "APP_RATIO",
                 "APP_LOG_DIR", "APP_TAGS", "APP_LIMITS", "APP_MODE", "APP_LEVEL",
                 "APP_SEARCH_PATHS", "CUSTOM_NAME", "MY_BOOL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Restore the silent global logger after every test."""
    yield
    set_global_logger(SilentLogger())
