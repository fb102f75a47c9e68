"""tenantdb CLI entry points.

This module exposes commands for mode control, table fetches, and name
inspection. It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import TenantDbConfig
from core.errors import TenantDbError
from core.types import Database, FetchOptions, OperatingMode
from fetch.csv_snapshot import rows_to_csv
from store.data_client import TenantDataClient
from tables.path_resolver import resolve_locations
from tables.table_names import parse_table_name


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="tenantdb", description="tenantdb data-access CLI")
    parser.add_argument("--config", help="YAML config file layered over TENANTDB_* env values")
    parser.add_argument("--state-file", help="Override TENANTDB_STATE_FILE for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_mode_command(subparsers)
    _add_fetch_command(subparsers)
    _add_resolve_command(subparsers)
    _add_parse_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the tenantdb CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "resolve":
            return _run_resolve_command(args)
        if args.command == "parse":
            return _run_parse_command(args)
        client = _build_client(args.config, args.state_file)
        if args.command == "mode":
            return _run_mode_command(client, args)
        if args.command == "fetch":
            return _run_fetch_command(client, args)
    except TenantDbError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(config_file: str | None, state_file: str | None) -> TenantDataClient:
    """Build SDK client from env or a config file, with an optional state override."""
    config = TenantDbConfig.from_file(config_file) if config_file else TenantDbConfig.from_env()
    if state_file:
        config = replace(config, state_file=Path(state_file).expanduser().resolve())
    return TenantDataClient(config)


def _run_mode_command(client: TenantDataClient, args: argparse.Namespace) -> int:
    """Handle mode command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.reset:
        client.mode_store.clear()
        print("mode=unset")
        return 0
    if args.set:
        mode = OperatingMode(args.set)
        client.mode_store.set(mode)
    else:
        mode = asyncio.run(client.determine_mode())
    print(f"mode={mode.value}")
    return 0


def _run_fetch_command(client: TenantDataClient, args: argparse.Namespace) -> int:
    """Handle fetch command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = FetchOptions(
        lightweight=args.lightweight,
        tool_name=args.tool,
        tenant_id=args.tenant,
    )
    database = asyncio.run(client.load(args.names, options))
    if args.format == "csv":
        print(_render_csv(database))
    else:
        payload = {name: table.to_payload() for name, table in database.items()}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _run_resolve_command(args: argparse.Namespace) -> int:
    """Print candidate snapshot locations, most specific first."""
    for location in resolve_locations(args.name, args.tenant):
        print(location)
    return 0


def _run_parse_command(args: argparse.Namespace) -> int:
    parsed = parse_table_name(args.name)
    print(f"logical_name={parsed.logical_name}")
    print(f"tenant_id={parsed.tenant_id or '-'}")
    return 0


def _render_csv(database: Database) -> str:
    sections = []
    for name, table in database.items():
        body = rows_to_csv(table.data, table.schema or None)
        sections.append(f"# {name}\n{body}" if body else f"# {name}")
    return "\n\n".join(sections)


def _add_mode_command(subparsers: Any) -> None:
    """Register mode subcommand."""
    parser = subparsers.add_parser("mode", help="Show, set, or reset the operating mode")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--set",
        choices=[mode.value for mode in OperatingMode],
        help="Persist an operating mode",
    )
    group.add_argument(
        "--reset",
        action="store_true",
        help="Forget the persisted mode so the next command probes again",
    )


def _add_fetch_command(subparsers: Any) -> None:
    """Register fetch subcommand."""
    parser = subparsers.add_parser("fetch", help="Fetch tables in the current operating mode")
    parser.add_argument("names", nargs="+", help="Logical or tenant-qualified table names")
    parser.add_argument("--tenant", help="Restrict tenant tables to one tenant id")
    parser.add_argument("--tool", help="Route remote fetches to <tool>-data.php")
    parser.add_argument(
        "--lightweight",
        action="store_true",
        help="Ask the remote service for a reduced payload",
    )
    parser.add_argument("--format", choices=("json", "csv"), default="json", help="Output format")


def _add_resolve_command(subparsers: Any) -> None:
    """Register resolve subcommand."""
    parser = subparsers.add_parser("resolve", help="List snapshot locations for a table")
    parser.add_argument("name", help="Logical or tenant-qualified table name")
    parser.add_argument("--tenant", help="Tenant id for partitioned tables")


def _add_parse_command(subparsers: Any) -> None:
    """Register parse subcommand."""
    parser = subparsers.add_parser("parse", help="Split a physical table name")
    parser.add_argument("name", help="Physical or logical table name")
