#!/usr/bin/env python3
"""
Demote stale active sessions to incomplete. Meant to be run from cron.
From backend/: python scripts/check_timeouts.py [--timeout-ms 30000]
"""
from __future__ import annotations

import os
import sys

_script_dir = os.path.dirname(os.path.abspath(__file__))
_backend = os.path.dirname(_script_dir)
if _backend not in sys.path:
    sys.path.insert(0, _backend)

import click

from studio.core.config import get_settings
from studio.core.errors import StudioError
from studio.services.container import build_services


@click.command()
@click.option(
    "--timeout-ms",
    type=int,
    default=None,
    help="Staleness window in milliseconds. Defaults to HEARTBEAT_TIMEOUT_MS.",
)
def main(timeout_ms: int | None) -> None:
    """Run one heartbeat timeout sweep and print the demoted session ids."""
    services = build_services(get_settings())
    try:
        demoted = services.monitor.sweep(timeout_ms)
    except StudioError as e:
        click.echo(f"FAIL: {e}", err=True)
        sys.exit(1)
    finally:
        services.close()

    for session_id in demoted:
        click.echo(session_id)
    click.echo(f"OK: {len(demoted)} session(s) marked incomplete", err=True)


if __name__ == "__main__":
    main()
