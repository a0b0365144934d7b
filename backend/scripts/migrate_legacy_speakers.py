#!/usr/bin/env python3
"""
One-time rewrite of legacy speaker names ('mikkel' -> 'human', 'freja' -> 'ai')
in messages and audio_files. Safe to re-run.
From backend/: python scripts/migrate_legacy_speakers.py
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
from studio.db.session import build_engine, build_session_factory, init_db, session_scope
from studio.repositories import migrate_legacy_speakers


@click.command()
def main() -> None:
    """Rewrite legacy speaker rows and print per-table counts."""
    engine = build_engine(get_settings().database_url)
    try:
        init_db(engine)
        with session_scope(build_session_factory(engine)) as db:
            counts = migrate_legacy_speakers(db)
    finally:
        engine.dispose()

    for table, renames in counts.items():
        for rename, n in renames.items():
            click.echo(f"{table}: {rename}: {n}")
    click.echo("OK", err=True)


if __name__ == "__main__":
    main()
