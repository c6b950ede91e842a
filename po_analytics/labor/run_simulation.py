#!/usr/bin/env python3
"""
CLI to regenerate daily labor statistics and the weekday/weekend summary.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from po_analytics.db.store import open_store
from po_analytics.labor.service import clear_labor_statistics, run_simulation
from po_analytics.labor.summary import get_summary
from po_analytics.utils.config import load_config

logger = logging.getLogger(__name__)


def _parse_set(values: list[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep:
            raise ValueError(f"Expected KEY=VALUE, got {item!r}")
        overrides[key.strip()] = float(raw)
    return overrides


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the labor process simulation.")
    parser.add_argument("--config", type=Path, help="Optional path to CONFIG.yaml")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a productivity parameter (e.g. --set bulk_ratio=30)",
    )
    parser.add_argument("--save", action="store_true", help="Save the resulting parameters as the preference")
    parser.add_argument("--defaults", action="store_true", help="Ignore the saved preference")
    parser.add_argument("--clear", action="store_true", help="Clear labor statistics and exit")
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else load_config()
    logging.basicConfig(level=config.app.log_level, format=config.app.log_format)

    try:
        overrides = {**config.labor.overrides, **_parse_set(args.overrides)}
    except ValueError as exc:
        logger.error(str(exc))
        return 2

    with open_store(config) as store:
        if args.clear:
            cleared = clear_labor_statistics(store)
            print(cleared.message)
            return 0 if cleared.success else 1

        outcome = run_simulation(
            store,
            overrides,
            use_saved=not args.defaults,
            save_preference=args.save,
        )
        print(outcome.message)
        if not outcome.success:
            return 1
        if outcome.skipped_dates:
            print(f"Unrecognised dates: {', '.join(outcome.skipped_dates)}")
        with store.session() as session:
            summary = get_summary(session)
    for row in summary:
        printable = {key: value for key, value in row.items() if key not in {"id", "updated_at"}}
        print(json.dumps(printable, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
