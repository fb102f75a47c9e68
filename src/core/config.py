"""Runtime configuration model for tenantdb.

This module owns all environment variable and config file parsing.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from core.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SNAPSHOT_ENCODING,
    DEFAULT_SNAPSHOT_ROOT,
    DEFAULT_STATE_FILE,
)
from core.errors import TenantDbConfigError

_FILE_KEYS = (
    "api_base_url",
    "snapshot_root",
    "snapshot_encoding",
    "state_file",
    "probe_timeout",
    "request_timeout",
)


@dataclass(frozen=True)
class TenantDbConfig:
    """Validated runtime configuration.

    Attributes:
        api_base_url: Base URL of the remote table service (``.../api``).
        snapshot_root: Local directory or ``http(s)://`` base holding snapshots.
        snapshot_encoding: Text encoding of snapshot files.
        state_file: JSON file persisting client state such as the operating mode.
        probe_timeout: Deadline in seconds for the mode-detection probe.
        request_timeout: Timeout in seconds for remote and snapshot HTTP reads.
    """

    api_base_url: str
    snapshot_root: str
    snapshot_encoding: str
    state_file: Path
    probe_timeout: float
    request_timeout: float

    @classmethod
    def from_env(cls) -> "TenantDbConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TenantDbConfigError: If environment values are invalid.
        """
        return cls(
            api_base_url=_parse_base_url(
                os.getenv("TENANTDB_API_BASE_URL", DEFAULT_API_BASE_URL),
                "TENANTDB_API_BASE_URL",
            ),
            snapshot_root=os.getenv("TENANTDB_SNAPSHOT_ROOT", DEFAULT_SNAPSHOT_ROOT),
            snapshot_encoding=_parse_encoding(
                os.getenv("TENANTDB_SNAPSHOT_ENCODING", DEFAULT_SNAPSHOT_ENCODING),
                "TENANTDB_SNAPSHOT_ENCODING",
            ),
            state_file=Path(os.getenv("TENANTDB_STATE_FILE", str(DEFAULT_STATE_FILE)))
            .expanduser()
            .resolve(),
            probe_timeout=_parse_timeout(
                os.getenv("TENANTDB_PROBE_TIMEOUT", str(DEFAULT_PROBE_TIMEOUT_SECONDS)),
                "TENANTDB_PROBE_TIMEOUT",
            ),
            request_timeout=_parse_timeout(
                os.getenv("TENANTDB_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)),
                "TENANTDB_REQUEST_TIMEOUT",
            ),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "TenantDbConfig":
        """Build config from a YAML file layered over environment defaults.

        Args:
            config_path: Path to a YAML mapping using lower-case config keys.

        Returns:
            A validated config object.

        Raises:
            TenantDbConfigError: If the file is missing, malformed, or invalid.
        """
        payload = _load_yaml_mapping(Path(config_path).expanduser().resolve())
        return _apply_overrides(cls.from_env(), payload)

    def is_remote_snapshot_root(self) -> bool:
        """Return whether snapshots are served over HTTP instead of a local dir."""
        return self.snapshot_root.startswith(("http://", "https://"))


def _load_yaml_mapping(config_file: Path) -> Mapping[str, Any]:
    """Read and validate the YAML config payload.

    Args:
        config_file: Resolved config path.

    Returns:
        Parsed mapping with known keys only.

    Raises:
        TenantDbConfigError: If the file cannot be used.
    """
    if not config_file.exists():
        raise TenantDbConfigError(
            f"Config file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except OSError as error:
        raise TenantDbConfigError(
            f"Failed to read config file at {config_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise TenantDbConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise TenantDbConfigError(
            f"Invalid config at {config_file}: expected a mapping at top level."
        )
    unknown_keys = sorted(str(key) for key in payload if key not in _FILE_KEYS)
    if unknown_keys:
        raise TenantDbConfigError(
            f"Invalid config at {config_file}: unknown keys {unknown_keys}. "
            f"Supported keys: {list(_FILE_KEYS)}."
        )
    return payload


def _apply_overrides(config: TenantDbConfig, payload: Mapping[str, Any]) -> TenantDbConfig:
    """Apply validated file values on top of a base config."""
    updates: dict[str, Any] = {}
    if "api_base_url" in payload:
        updates["api_base_url"] = _parse_base_url(str(payload["api_base_url"]), "api_base_url")
    if "snapshot_root" in payload:
        updates["snapshot_root"] = str(payload["snapshot_root"])
    if "snapshot_encoding" in payload:
        updates["snapshot_encoding"] = _parse_encoding(
            str(payload["snapshot_encoding"]), "snapshot_encoding"
        )
    if "state_file" in payload:
        updates["state_file"] = Path(str(payload["state_file"])).expanduser().resolve()
    if "probe_timeout" in payload:
        updates["probe_timeout"] = _parse_timeout(str(payload["probe_timeout"]), "probe_timeout")
    if "request_timeout" in payload:
        updates["request_timeout"] = _parse_timeout(
            str(payload["request_timeout"]), "request_timeout"
        )
    return replace(config, **updates)


def _parse_base_url(raw_value: str, source: str) -> str:
    """Validate an HTTP base URL and drop trailing slashes.

    Raises:
        TenantDbConfigError: If the value is not an http(s) URL.
    """
    value = raw_value.strip()
    if not value.startswith(("http://", "https://")):
        raise TenantDbConfigError(
            f"Invalid {source} value: expected http(s) URL, got '{raw_value}'."
        )
    return value.rstrip("/")


def _parse_encoding(raw_value: str, source: str) -> str:
    """Validate a text encoding name.

    Raises:
        TenantDbConfigError: If Python does not know the encoding.
    """
    try:
        "".encode(raw_value)
    except LookupError as error:
        raise TenantDbConfigError(
            f"Invalid {source} value: unknown encoding '{raw_value}'. Use e.g. utf-8 or shift_jis."
        ) from error
    return raw_value


def _parse_timeout(raw_value: str, source: str) -> float:
    """Parse a positive timeout value in seconds.

    Raises:
        TenantDbConfigError: If value is not a positive finite number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise TenantDbConfigError(
            f"Invalid {source} value: expected seconds, got '{raw_value}'. "
            "Set it to a positive number."
        ) from error
    if not math.isfinite(timeout) or timeout <= 0:
        raise TenantDbConfigError(
            f"Invalid {source} value: expected a positive number, got '{raw_value}'."
        )
    return timeout
