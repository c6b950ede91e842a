"""
Fast pre-import checks for uploaded files.

CSV uploads are checked from the header line plus a bounded sample of data
lines. Workbook parsing is deferred to import time; the result says so.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from po_analytics.ingest.columns import PURCHASE_ORDER_FIELDS, DestinationTable, map_columns, table_for_sheet
from po_analytics.ingest.decoder import UploadedFile, file_kind
from po_analytics.ingest.errors import NoMatchingColumns, UnsupportedFileType
from po_analytics.utils.config import IngestSettings

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "Sheet1"
VERY_LARGE_FILE_MB = 200
LARGE_FILE_MB = 100
WARN_HEADER_COLUMNS = 30


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    sheet_names: List[str] = field(default_factory=list)
    table_mapping: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "sheetNames": list(self.sheet_names),
            "tableMapping": dict(self.table_mapping),
        }


def _size_warning(upload: UploadedFile, *, csv_thresholds: bool) -> Optional[str]:
    size_mb = upload.size_mb
    if csv_thresholds and size_mb > VERY_LARGE_FILE_MB:
        return f"Very large file detected ({size_mb:.1f}MB). Processing may take longer."
    if size_mb > LARGE_FILE_MB:
        return f"Large file detected ({size_mb:.1f}MB). Processing may take longer."
    return None


def _head_lines(data: bytes, limit: int) -> List[str]:
    """Read at most `limit` non-empty lines without decoding the whole upload."""
    stream = io.TextIOWrapper(io.BytesIO(data), encoding="utf-8-sig", errors="replace", newline=None)
    lines: List[str] = []
    for line in stream:
        if not line.strip():
            continue
        lines.append(line.rstrip("\n"))
        if len(lines) >= limit:
            break
    return lines


def _split_fields(line: str) -> List[str]:
    return next(csv.reader([line]), [])


def validate_csv(upload: UploadedFile, settings: IngestSettings) -> ValidationResult:
    result = ValidationResult(is_valid=True)
    warning = _size_warning(upload, csv_thresholds=True)
    if warning:
        result.warnings.append(warning)

    lines = _head_lines(upload.data, settings.validation_sample_rows + 1)
    if not lines:
        result.errors.append("CSV file is empty")
        result.is_valid = False
        return result

    headers = [h.strip().replace('"', "") for h in _split_fields(lines[0])]
    logger.info("CSV headers found: %s", headers)

    try:
        map_columns(DestinationTable.default(), headers)
    except NoMatchingColumns as exc:
        result.errors.append(str(exc))

    if len(headers) < WARN_HEADER_COLUMNS:
        result.warnings.append(
            f"CSV has {len(headers)} columns, expected around {settings.expected_columns}. "
            "Some data may be missing."
        )

    missing = [name for name in PURCHASE_ORDER_FIELDS if name not in headers]
    if missing:
        logger.info("CSV is missing %d expected columns: %s", len(missing), missing)

    sampled = 0
    incomplete = 0
    for line in lines[1:]:
        sampled += 1
        if len(_split_fields(line)) < len(headers):
            incomplete += 1
    if incomplete:
        pct = incomplete / sampled * 100
        result.warnings.append(
            f"Data quality check: {incomplete} of {sampled} sampled records ({pct:.1f}%) "
            f"have incomplete data (fewer than {len(headers)} fields)."
        )
    else:
        logger.info("Data quality check: all %d sampled records have complete data", sampled)

    result.sheet_names = [DEFAULT_SHEET_NAME]
    result.table_mapping = {DEFAULT_SHEET_NAME: table_for_sheet(DEFAULT_SHEET_NAME).table_name}
    result.is_valid = not result.errors
    if result.is_valid:
        result.warnings.append("CSV validation completed - ready for import")
    return result


def validate_spreadsheet(upload: UploadedFile) -> ValidationResult:
    result = ValidationResult(is_valid=True)
    warning = _size_warning(upload, csv_thresholds=False)
    if warning:
        result.warnings.append(warning)
    result.sheet_names = [DEFAULT_SHEET_NAME]
    result.table_mapping = {DEFAULT_SHEET_NAME: table_for_sheet(DEFAULT_SHEET_NAME).table_name}
    result.warnings.append("Excel parsing deferred to import time for performance")
    return result


def validate_upload(upload: UploadedFile, settings: Optional[IngestSettings] = None) -> ValidationResult:
    """Advisory accept/reject check; the loader re-checks columns independently."""
    settings = settings or IngestSettings()
    try:
        kind = file_kind(upload.filename)
    except UnsupportedFileType as exc:
        return ValidationResult(is_valid=False, errors=[str(exc)])
    if kind == "csv":
        return validate_csv(upload, settings)
    return validate_spreadsheet(upload)


__all__ = ["ValidationResult", "validate_csv", "validate_spreadsheet", "validate_upload"]
