"""Unit tests for client state persistence."""

from __future__ import annotations

import pytest

from core.errors import TenantDbStateError
from store.state_store import InMemoryStateStore, JsonFileStateStore


def test_json_store_roundtrips_values(tmp_path) -> None:
    """Values should survive a new store instance on the same file."""
    state_path = tmp_path / "nested" / "state.json"
    JsonFileStateStore(state_path).set("operating_mode", "remote")

    reopened = JsonFileStateStore(state_path)

    assert reopened.get("operating_mode") == "remote"
    assert reopened.get("missing") is None


def test_json_store_delete_removes_key(tmp_path) -> None:
    """Deleted keys read as missing."""
    store = JsonFileStateStore(tmp_path / "state.json")
    store.set("operating_mode", "remote")

    store.delete("operating_mode")
    store.delete("never_set")

    assert store.get("operating_mode") is None


def test_json_store_raises_for_corrupt_file(tmp_path) -> None:
    """A corrupt state file should fail with guidance."""
    state_path = tmp_path / "state.json"
    state_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(TenantDbStateError):
        JsonFileStateStore(state_path).get("operating_mode")


def test_in_memory_store_copies_initial_values() -> None:
    """The initial mapping is not shared with the store."""
    initial = {"operating_mode": "remote"}
    store = InMemoryStateStore(initial)

    store.set("operating_mode", "snapshot_ro")

    assert initial["operating_mode"] == "remote"
