"""
Plain-SQL migration runner for the schools database.

    python -m schoolhub.infrastructure.db.migrate up
    python -m schoolhub.infrastructure.db.migrate status
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

import psycopg

from schoolhub.logging import setup_logging
from schoolhub.settings import get_settings

logger = logging.getLogger("schoolhub.migrate")

MIGRATIONS_DIR = Path(
    os.environ.get("MIGRATIONS_DIR", Path(__file__).resolve().parents[3] / "migrations")
)
SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"migrations dir not found: {directory}")
    return sorted(directory.glob("*.sql"))


def pending_migrations(all_paths: list[Path], applied: set[str]) -> list[Path]:
    return [p for p in all_paths if p.stem not in applied]


def applied_versions(conn: psycopg.Connection) -> set[str]:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version FROM schema_migrations ORDER BY version;")
        rows = cur.fetchall()
    conn.commit()
    return {r[0] for r in rows}


def apply_one(conn: psycopg.Connection, path: Path) -> None:
    logger.info("applying migration", extra={"version": path.stem})
    with conn.cursor() as cur:
        cur.execute(path.read_text(encoding="utf-8"))
        cur.execute(
            "INSERT INTO schema_migrations (version, applied_at) VALUES (%s, now());",
            (path.stem,),
        )
    conn.commit()


def cmd_up(dsn: str) -> int:
    with psycopg.connect(dsn, autocommit=False) as conn:
        to_run = pending_migrations(list_migrations(), applied_versions(conn))
        if not to_run:
            logger.info("no pending migrations")
            return 0
        for path in to_run:
            try:
                apply_one(conn, path)
            except psycopg.Error:
                conn.rollback()
                logger.exception("migration failed", extra={"version": path.stem})
                return 1
    return 0


def cmd_status(dsn: str) -> int:
    with psycopg.connect(dsn) as conn:
        applied = applied_versions(conn)
    for path in list_migrations():
        print(f"{'applied' if path.stem in applied else 'pending':8} {path.stem}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="schoolhub.infrastructure.db.migrate")
    parser.add_argument("command", choices=("up", "status"))
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)
    if args.command == "up":
        return cmd_up(settings.database_url)
    return cmd_status(settings.database_url)


if __name__ == "__main__":
    raise SystemExit(main())
