"""
Plain-SQL migration runner.

    python -m identity.infrastructure.db.migrate up
    python -m identity.infrastructure.db.migrate status
    python -m identity.infrastructure.db.migrate new <name>

Migrations are the *.sql files next to this module (override with
MIGRATIONS_DIR), applied in filename order, each in its own transaction.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import psycopg

from identity.settings import get_settings

MIGRATIONS_DIR = Path(
    os.environ.get("MIGRATIONS_DIR", Path(__file__).resolve().parent / "migrations")
)
SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


def log(msg: str) -> None:
    print(msg, flush=True)


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    if not directory.exists():
        print(f"ERROR: migrations dir not found: {directory}", file=sys.stderr)
        sys.exit(2)
    return sorted(directory.glob("*.sql"))


def applied_versions(conn: psycopg.Connection) -> set[str]:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version FROM schema_migrations ORDER BY version;")
        rows = cur.fetchall()
    conn.commit()
    return {r[0] for r in rows}


def apply_one(conn: psycopg.Connection, path: Path) -> None:
    version = path.stem
    log(f"==> applying {version}")
    with conn.cursor() as cur:
        cur.execute(path.read_text(encoding="utf-8"))
        cur.execute(
            "INSERT INTO schema_migrations (version, applied_at) VALUES (%s, now());",
            (version,),
        )
    conn.commit()
    log(f"applied {version}")


def cmd_up(dsn: str) -> int:
    with psycopg.connect(dsn, autocommit=False) as conn:
        done = applied_versions(conn)
        pending = [p for p in list_migrations() if p.stem not in done]
        if not pending:
            log("No pending migrations.")
            return 0
        for path in pending:
            try:
                apply_one(conn, path)
            except psycopg.Error as e:
                conn.rollback()
                print(f"failed {path.stem}: {e}", file=sys.stderr)
                return 1
    return 0


def cmd_status(dsn: str) -> int:
    with psycopg.connect(dsn) as conn, conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version, applied_at FROM schema_migrations ORDER BY version;")
        rows = cur.fetchall()
    seen = set()
    print("=== Applied ===")
    for version, at in rows:
        seen.add(version)
        print(f"{version} @ {at.isoformat() if isinstance(at, datetime) else at}")
    print("=== Pending ===")
    for path in list_migrations():
        if path.stem not in seen:
            print(path.stem)
    return 0


def cmd_new(name: str) -> int:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M")
    path = MIGRATIONS_DIR / f"{ts}_{name}.sql"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("-- write your SQL here\n", encoding="utf-8")
    print(str(path))
    return 0


def main(argv: list[str]) -> int:
    usage = "usage: python -m identity.infrastructure.db.migrate [up|status|new <name>]"
    if len(argv) < 2:
        print(usage, file=sys.stderr)
        return 2
    cmd = argv[1]
    if cmd == "new":
        if len(argv) < 3:
            print(usage, file=sys.stderr)
            return 2
        return cmd_new(argv[2])

    dsn = get_settings().database_url
    if cmd == "up":
        return cmd_up(dsn)
    if cmd == "status":
        return cmd_status(dsn)
    print(f"unknown command: {cmd}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
