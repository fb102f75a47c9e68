"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _isolated_tenantdb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep TENANTDB_* variables from the developer shell out of tests."""
    for name in (
        "TENANTDB_API_BASE_URL",
        "TENANTDB_SNAPSHOT_ROOT",
        "TENANTDB_SNAPSHOT_ENCODING",
        "TENANTDB_STATE_FILE",
        "TENANTDB_PROBE_TIMEOUT",
        "TENANTDB_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
