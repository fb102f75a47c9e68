"""Key-value client state persistence.

This module stores small string settings, such as the operating mode,
across sessions. The JSON file store is the default backend.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from core.errors import TenantDbStateError


class StateStore(Protocol):
    """String key-value persistence used for client state."""

    def get(self, key: str) -> str | None:
        """Return the stored value for a key, if any."""

    def set(self, key: str, value: str) -> None:
        """Store a value for a key."""

    def delete(self, key: str) -> None:
        """Remove a key when present."""


class InMemoryStateStore:
    """Process-local state store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStateStore:
    """Filesystem-backed state store holding one JSON object."""

    def __init__(self, state_path: Path) -> None:
        self._state_path = state_path

    @property
    def path(self) -> Path:
        """Return the backing JSON file path."""
        return self._state_path

    def get(self, key: str) -> str | None:
        """Return the stored value for a key.

        Raises:
            TenantDbStateError: If the state file is unreadable.
        """
        value = self._read_state().get(key)
        return str(value) if value is not None else None

    def set(self, key: str, value: str) -> None:
        """Persist a value for a key.

        Raises:
            TenantDbStateError: If the state file cannot be written.
        """
        state = self._read_state()
        state[key] = value
        self._write_state(state)

    def delete(self, key: str) -> None:
        """Remove a key from the state file when present."""
        state = self._read_state()
        if key in state:
            del state[key]
            self._write_state(state)

    def _read_state(self) -> dict[str, object]:
        if not self._state_path.exists():
            return {}
        try:
            payload = json.loads(self._state_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise TenantDbStateError(
                f"Failed to read client state at {self._state_path}: {error}. "
                "Delete the state file to reset saved settings."
            ) from error
        if not isinstance(payload, dict):
            raise TenantDbStateError(
                f"Invalid client state at {self._state_path}: expected JSON object. "
                "Delete the state file to reset saved settings."
            )
        return payload

    def _write_state(self, state: dict[str, object]) -> None:
        try:
            self._state_path.parent.mkdir(parents=True, exist_ok=True)
            self._state_path.write_text(
                json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8"
            )
        except OSError as error:
            raise TenantDbStateError(
                f"Failed to write client state at {self._state_path}: {error}. "
                "Check directory permissions."
            ) from error
