#!/usr/bin/env python3
"""
CLI to validate and import purchase-order extracts (CSV / XLSX) into the store.

Files are imported in the order given: the first replaces existing orders and
the rest append.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from po_analytics.db.store import open_store
from po_analytics.ingest.decoder import UploadedFile
from po_analytics.ingest.service import import_files, validate_file
from po_analytics.utils.config import load_config

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import purchase-order CSV/XLSX files.")
    parser.add_argument("files", nargs="+", type=Path, help="Files to import, first one replaces existing data")
    parser.add_argument("--config", type=Path, help="Optional path to CONFIG.yaml")
    parser.add_argument("--validate-only", action="store_true", help="Only run the pre-import checks")
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else load_config()
    logging.basicConfig(level=config.app.log_level, format=config.app.log_format)

    missing = [path for path in args.files if not path.expanduser().exists()]
    if missing:
        for path in missing:
            logger.error("File not found: %s", path)
        return 1

    uploads = [UploadedFile.from_path(path.expanduser()) for path in args.files]
    rejected = 0
    for upload in uploads:
        validation = validate_file(upload, config.ingest)
        for warning in validation.warnings:
            logger.info("%s: %s", upload.filename, warning)
        for error in validation.errors:
            logger.error("%s: %s", upload.filename, error)
        if not validation.is_valid:
            rejected += 1
    if rejected:
        print(f"Validation failed for {rejected} of {len(uploads)} file(s)")
        return 1
    if args.validate_only:
        print(f"Validated {len(uploads)} file(s)")
        return 0

    with open_store(config) as store:
        outcome = import_files(store, uploads, config.ingest)

    for result in outcome.results:
        status = "ok" if result.success else "FAILED"
        print(
            f"  - {result.file_name} -> {result.table_name} [{result.mode or '-'}]: "
            f"{result.records_imported} records, {status} ({result.duration:.2f}s)"
        )
        for error in result.errors:
            print(f"      error: {error}")
        for warning in result.warnings:
            print(f"      warning: {warning}")
    print(outcome.message)
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
