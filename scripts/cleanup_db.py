"""
Maintenance utility for the relational backend.

Modes:
 - "orphans" (default): remove rows nothing points at any more
     * sections without test cases (a failed import keeps the sections it created)
     * results of deleted runs
     * history logs of deleted cases and results
 - "all": empty every data table; users are kept so people can still log in

The SQLite file is copied to ./data/backups/ first and VACUUMed afterwards.

Usage examples:
  python scripts/cleanup_db.py --dry-run
  python scripts/cleanup_db.py --mode orphans --yes
  python scripts/cleanup_db.py --mode all --yes --no-backup
"""

from __future__ import annotations

import argparse
import shutil
import sys
import time
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import text

# Ensure we can import the testdeck package when running as a script
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from testdeck.config.settings import settings  # noqa: E402
from testdeck.core.database import resolved_db_url, session_scope, sqlite_file_path  # noqa: E402

# Child tables first
DATA_TABLES = ("history_logs", "test_results", "test_runs", "test_cases", "sections", "projects")

ORPHAN_PREDICATES = {
    "sections": "id NOT IN (SELECT DISTINCT section_id FROM test_cases WHERE section_id IS NOT NULL)",
    "test_results": "run_id NOT IN (SELECT id FROM test_runs)",
    "history_logs": (
        "entity_id NOT IN (SELECT id FROM test_cases) "
        "AND entity_id NOT IN (SELECT id FROM test_results)"
    ),
}


def backup_sqlite(db_path: Path, backups_dir: Path) -> Optional[Path]:
    if not db_path.exists():
        return None
    backups_dir.mkdir(parents=True, exist_ok=True)
    backup_path = backups_dir / f"testdeck-{time.strftime('%Y%m%d-%H%M%S')}.db"
    shutil.copy2(db_path, backup_path)
    return backup_path


def vacuum(session) -> None:
    try:
        session.execute(text("VACUUM"))
    except Exception as e:
        # VACUUM refuses to run inside an open transaction
        print(f"VACUUM skipped: {e}")


def count_orphans(session) -> Dict[str, int]:
    return {
        table: session.execute(text(f"SELECT COUNT(*) FROM {table} WHERE {predicate}")).scalar()
        for table, predicate in ORPHAN_PREDICATES.items()
    }


def cleanup_orphans(session) -> Dict[str, int]:
    """Delete orphaned rows; returns the number removed per table"""
    removed = {
        table: session.execute(text(f"DELETE FROM {table} WHERE {predicate}")).rowcount
        for table, predicate in ORPHAN_PREDICATES.items()
    }
    session.commit()
    return removed


def cleanup_all(session) -> Dict[str, int]:
    removed = {table: session.execute(text(f"DELETE FROM {table}")).rowcount for table in DATA_TABLES}
    session.commit()
    return removed


def _report(title: str, counts: Dict[str, int]) -> None:
    print(title)
    for table, count in counts.items():
        print(f"  {table}: {count}")


def main():
    parser = argparse.ArgumentParser(description="Clean up the TestDeck database")
    parser.add_argument("--mode", choices=["orphans", "all"], default="orphans", help="Cleanup mode")
    parser.add_argument("--dry-run", action="store_true", help="Only count orphaned rows")
    parser.add_argument("--yes", action="store_true", help="Run without interactive confirmation")
    parser.add_argument("--no-backup", action="store_true", help="Skip the SQLite file backup")
    args = parser.parse_args()

    if settings.storage_backend != "sql":
        print(f"STORAGE_BACKEND is {settings.storage_backend!r}; nothing to clean in the database.")
        return

    sqlite_path = sqlite_file_path(resolved_db_url)

    if args.dry_run:
        with session_scope() as session:
            _report("Orphaned rows:", count_orphans(session))
        return

    print(f"Mode: {args.mode}")
    print(f"Database: {sqlite_path or resolved_db_url}")
    if not args.yes and input("Proceed? (y/N): ").strip().lower() not in {"y", "yes"}:
        print("Aborted.")
        return

    if sqlite_path and not args.no_backup:
        backup = backup_sqlite(sqlite_path, REPO_ROOT / "data" / "backups")
        if backup:
            print(f"Backup saved under: {backup}")

    with session_scope() as session:
        removed = cleanup_orphans(session) if args.mode == "orphans" else cleanup_all(session)
        if sqlite_path:
            vacuum(session)

    _report("Deleted rows:", removed)


if __name__ == "__main__":
    main()
