"""Operating mode persistence and detection.

This module stores the process-wide operating mode in a key-value state
store and decides it on first use by probing the remote service.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from core.constants import OPERATING_MODE_STATE_KEY
from core.logging_config import get_logger
from core.types import OperatingMode
from store.state_store import StateStore

_LOGGER = get_logger(__name__)


class OperatingModeStore:
    """Typed access to the persisted operating mode."""

    def __init__(self, state_store: StateStore) -> None:
        self._state_store = state_store

    def get(self) -> OperatingMode | None:
        """Return the persisted mode, ignoring unknown stored values."""
        raw_value = self._state_store.get(OPERATING_MODE_STATE_KEY)
        if raw_value is None:
            return None
        try:
            return OperatingMode(raw_value)
        except ValueError:
            _LOGGER.warning("operating_mode_invalid", stored_value=raw_value)
            return None

    def set(self, mode: OperatingMode) -> None:
        """Persist a mode."""
        self._state_store.set(OPERATING_MODE_STATE_KEY, mode.value)

    def clear(self) -> None:
        """Forget the persisted mode so the next run probes again."""
        self._state_store.delete(OPERATING_MODE_STATE_KEY)


async def determine_mode(
    mode_store: OperatingModeStore,
    probe: Callable[[], Awaitable[bool]],
    timeout: float,
) -> OperatingMode:
    """Return the persisted mode, or probe the remote service and persist.

    The probe runs as a task bounded by ``timeout``. A probe still running at
    the deadline is cancelled and left behind.

    Args:
        mode_store: Persisted mode store.
        probe: Coroutine factory returning whether the remote service answered.
        timeout: Probe deadline in seconds.

    Returns:
        The resolved operating mode.
    """
    saved_mode = mode_store.get()
    if saved_mode is not None:
        return saved_mode
    probe_task = asyncio.ensure_future(probe())
    done, _ = await asyncio.wait({probe_task}, timeout=timeout)
    if probe_task in done and probe_task.result():
        mode = OperatingMode.REMOTE
    else:
        if probe_task not in done:
            probe_task.cancel()
            _LOGGER.info("operating_mode_probe_timeout", timeout=timeout)
        mode = OperatingMode.SNAPSHOT_RO
    mode_store.set(mode)
    _LOGGER.info("operating_mode_detected", mode=mode.value)
    return mode
