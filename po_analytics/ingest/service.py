"""
Entry points used by the upload layer.

Each function returns a structured outcome instead of raising, so callers can
show per-file and per-table messages.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from po_analytics.db.store import Store
from po_analytics.ingest.columns import DestinationTable
from po_analytics.ingest.decoder import UploadedFile, decode_upload
from po_analytics.ingest.errors import ImportRejected, IngestError
from po_analytics.ingest.loader import LoadMode, load_csv_text
from po_analytics.ingest.validator import ValidationResult, validate_upload
from po_analytics.utils.config import IngestSettings

logger = logging.getLogger(__name__)


@dataclass
class TableImportResult:
    success: bool
    file_name: str
    table_name: str
    records_imported: int = 0
    mode: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration: float = 0.0


@dataclass
class ImportOutcome:
    success: bool
    message: str
    results: List[TableImportResult] = field(default_factory=list)

    @property
    def records_imported(self) -> int:
        return sum(result.records_imported for result in self.results)


def validate_file(upload: UploadedFile, settings: Optional[IngestSettings] = None) -> ValidationResult:
    try:
        return validate_upload(upload, settings)
    except Exception as exc:  # noqa: BLE001 - surfaced as a validation error
        logger.exception("Error validating %s", upload.filename)
        return ValidationResult(is_valid=False, errors=[f"Failed to validate file: {exc}"])


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, IngestError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def import_files(
    store: Store,
    uploads: Sequence[UploadedFile],
    settings: Optional[IngestSettings] = None,
) -> ImportOutcome:
    """
    Import an ordered batch of files as one logical dataset.

    Each table is replaced by the first file that loads into it successfully;
    later files append. Overlapping files are not de-duplicated.
    """
    settings = settings or IngestSettings()
    if not uploads:
        return ImportOutcome(success=False, message="No files provided")

    results: List[TableImportResult] = []
    replaced: Set[DestinationTable] = set()
    for index, upload in enumerate(uploads, start=1):
        started = time.monotonic()
        logger.info("Processing file %d/%d: %s", index, len(uploads), upload.filename)
        try:
            decoded = decode_upload(upload, large_file_mb=settings.large_file_mb)
        except Exception as exc:  # noqa: BLE001 - reported per file
            logger.error("Error processing file %s: %s", upload.filename, exc)
            results.append(
                TableImportResult(
                    success=False,
                    file_name=upload.filename,
                    table_name=upload.filename,
                    errors=[_describe_failure(exc)],
                    duration=time.monotonic() - started,
                )
            )
            continue

        if not decoded:
            results.append(
                TableImportResult(
                    success=False,
                    file_name=upload.filename,
                    table_name=upload.filename,
                    errors=["File contains no data"],
                    duration=time.monotonic() - started,
                )
            )
            continue

        for table, csv_text in decoded.items():
            mode = LoadMode.APPEND if table in replaced else LoadMode.REPLACE
            try:
                loaded = load_csv_text(store, table, csv_text, mode, settings=settings)
            except Exception as exc:  # noqa: BLE001 - reported per table
                level = logging.WARNING if isinstance(exc, ImportRejected) else logging.ERROR
                logger.log(level, "Error importing %s into %s: %s", upload.filename, table.table_name, exc)
                results.append(
                    TableImportResult(
                        success=False,
                        file_name=upload.filename,
                        table_name=table.table_name,
                        mode=mode.value,
                        errors=[_describe_failure(exc)],
                        duration=time.monotonic() - started,
                    )
                )
                continue

            replaced.add(table)
            warnings: List[str] = []
            if loaded.short_rows:
                warnings.append(f"{loaded.short_rows} rows had fewer fields than headers")
            if loaded.long_rows:
                warnings.append(f"{loaded.long_rows} rows had more fields than headers")
            if loaded.dropped_columns:
                warnings.append(f"Ignored columns: {', '.join(loaded.dropped_columns)}")
            results.append(
                TableImportResult(
                    success=True,
                    file_name=upload.filename,
                    table_name=table.table_name,
                    records_imported=loaded.rows_inserted,
                    mode=mode.value,
                    warnings=warnings,
                    duration=time.monotonic() - started,
                )
            )

    succeeded = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    total = sum(r.records_imported for r in succeeded)
    if failed and not succeeded:
        message = f"Import failed for all {len(uploads)} file(s)"
    elif failed:
        message = f"Imported {total} records; {len(failed)} table load(s) failed"
    else:
        message = f"Imported {total} records from {len(uploads)} file(s)"
    return ImportOutcome(success=not failed, message=message, results=results)


def summarize_results(outcome: ImportOutcome) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for result in outcome.results:
        if result.success:
            counts[result.table_name] = counts.get(result.table_name, 0) + result.records_imported
    return counts


__all__ = [
    "ImportOutcome",
    "TableImportResult",
    "import_files",
    "summarize_results",
    "validate_file",
]
