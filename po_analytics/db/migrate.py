#!/usr/bin/env python3
"""
Schema bootstrapper.

Creates every table defined in `po_analytics.db.models`, adds columns missing
from older `labor_statistics` tables, and prints a table-row summary.
"""
from __future__ import annotations

import sys
from pathlib import Path
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import argparse
import logging
from typing import List

from sqlalchemy.engine import Engine

from po_analytics.db.maintenance import table_counts
from po_analytics.db.store import open_store
from po_analytics.utils.config import load_config

logger = logging.getLogger(__name__)

LABOR_STATISTICS_COLUMNS = {
    "day_of_week": "TEXT NOT NULL DEFAULT ''",
    "transaction_lines": "INTEGER NOT NULL DEFAULT 0",
    "quantity_picked": "INTEGER NOT NULL DEFAULT 0",
    "bulk_points": "REAL NOT NULL DEFAULT 0",
    "lum_points": "REAL NOT NULL DEFAULT 0",
    "replen_points": "REAL NOT NULL DEFAULT 0",
    "receive_points": "REAL NOT NULL DEFAULT 0",
    "put_points": "REAL NOT NULL DEFAULT 0",
    "bulk_fte": "REAL NOT NULL DEFAULT 0",
    "lum_fte": "REAL NOT NULL DEFAULT 0",
    "receive_fte": "REAL NOT NULL DEFAULT 0",
    "inventory_fte": "REAL NOT NULL DEFAULT 0",
    "support_fte": "REAL NOT NULL DEFAULT 0",
    "rfid_fte": "REAL NOT NULL DEFAULT 0",
    "supervisor_fte": "REAL NOT NULL DEFAULT 0",
    "leader_fte": "REAL NOT NULL DEFAULT 0",
    "created_at": "DATETIME",
}


def ensure_labor_statistics_columns(engine: Engine) -> List[str]:
    """Add any missing labor_statistics columns; returns the names added."""
    if engine.dialect.name != "sqlite":
        return []

    added: List[str] = []
    with engine.begin() as conn:
        rows = conn.exec_driver_sql("PRAGMA table_info('labor_statistics')").fetchall()
        existing = {row[1] for row in rows}
        for column, ddl_type in LABOR_STATISTICS_COLUMNS.items():
            if column not in existing:
                conn.exec_driver_sql(f"ALTER TABLE labor_statistics ADD COLUMN {column} {ddl_type}")
                added.append(column)
    if added:
        logger.info("Added labor_statistics columns: %s", added)
    return added


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create or upgrade the SQLite schema")
    parser.add_argument("--config", type=Path, help="Optional path to CONFIG.yaml")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all tables (SQLite only). WARNING: destructive.",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else load_config()
    logging.basicConfig(level=config.app.log_level, format=config.app.log_format)

    with open_store(config, create=False) as store:
        if args.reset:
            if not store.is_sqlite:
                print("--reset is only supported for SQLite databases.", file=sys.stderr)
                return 1
            store.recreate_schema()
            print("Dropped and recreated all tables (SQLite reset).")
        else:
            store.create_schema()
        ensure_labor_statistics_columns(store.engine)
        counts = table_counts(store)

    print("Migration complete. Table row counts:")
    for name, count in counts.items():
        print(f"  - {name}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
