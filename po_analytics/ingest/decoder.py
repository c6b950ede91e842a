"""
Decode uploaded CSV / XLSX files into per-table CSV text.

CSV uploads pass through with empty lines removed. Workbooks are converted
sheet by sheet with raw cell values (no number or date formatting), skipping
blank and hidden rows and hidden columns. Sheets that map to the same table
are combined. Workbooks above the large-file threshold are streamed
read-only.
"""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set

from openpyxl import load_workbook
from openpyxl.utils import column_index_from_string
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException

from po_analytics.ingest.columns import DestinationTable, normalize_header, table_for_sheet
from po_analytics.ingest.errors import DecodeError, UnsupportedFileType

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xlsm"}
LARGE_FILE_MB = 150
_WRITE_CHUNK_LINES = 10_000

DecodedTables = Dict[DestinationTable, str]


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload as handed over by the transport layer."""

    filename: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Path) -> "UploadedFile":
        return cls(filename=path.name, data=path.read_bytes())


def file_kind(filename: str) -> str:
    """Return 'csv' or 'spreadsheet' from the extension; raise for anything else."""
    suffix = Path(filename).suffix.lower()
    if suffix in CSV_EXTENSIONS:
        return "csv"
    if suffix in SPREADSHEET_EXTENSIONS:
        return "spreadsheet"
    raise UnsupportedFileType(filename)


def _non_empty_lines(stream: io.TextIOBase) -> Iterator[str]:
    for line in stream:
        line = line.rstrip("\n")
        if line.strip():
            yield line


def _decode_csv_standard(data: bytes) -> str:
    text = data.decode("utf-8-sig")
    return "\n".join(_non_empty_lines(io.StringIO(text, newline=None)))


def _decode_csv_large(data: bytes) -> str:
    """Stream the upload line by line instead of splitting one large string."""
    out = io.StringIO()
    wrapper = io.TextIOWrapper(io.BytesIO(data), encoding="utf-8-sig", newline=None)
    pending: List[str] = []
    written = 0
    first = True
    for line in _non_empty_lines(wrapper):
        pending.append(line)
        if len(pending) >= _WRITE_CHUNK_LINES:
            out.write(("" if first else "\n") + "\n".join(pending))
            first = False
            written += len(pending)
            pending = []
    if pending:
        out.write(("" if first else "\n") + "\n".join(pending))
        written += len(pending)
    logger.info("Large CSV streamed: %d non-empty lines", written)
    return out.getvalue()


def decode_csv(data: bytes, *, large_file_mb: float = LARGE_FILE_MB) -> str:
    size_mb = len(data) / (1024 * 1024)
    try:
        if size_mb > large_file_mb:
            logger.info("Very large CSV file detected (%.1f MB) - streaming decode", size_mb)
            return _decode_csv_large(data)
        return _decode_csv_standard(data)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Failed to read CSV file: {exc}") from exc


def _raw_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date, time, timedelta)):
        serial = to_excel(value)
        return str(int(serial)) if float(serial).is_integer() else str(serial)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _hidden_columns(worksheet) -> Set[int]:
    """Zero-based indexes of hidden columns, expanding grouped dimension ranges."""
    hidden: Set[int] = set()
    for key, dim in worksheet.column_dimensions.items():
        if not dim.hidden:
            continue
        start = dim.min or column_index_from_string(key)
        end = dim.max or start
        hidden.update(range(start - 1, end))
    return hidden


def _sheet_rows(worksheet, *, read_only: bool = False) -> Iterable[List[str]]:
    """Non-blank rows as raw strings; hidden rows and columns are skipped unless streaming."""
    if read_only:
        raw_rows: Iterable[Sequence] = worksheet.iter_rows(values_only=True)
    else:
        hidden_columns = _hidden_columns(worksheet)
        raw_rows = (
            [cell.value for idx, cell in enumerate(row) if idx not in hidden_columns]
            for row in worksheet.iter_rows()
            if row and not worksheet.row_dimensions[row[0].row].hidden
        )
    for raw in raw_rows:
        values = [_raw_cell(value) for value in raw]
        if not any(value.strip() for value in values):
            continue
        yield values


def _to_csv(rows: Iterable[List[str]], width: int = 0) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for values in rows:
        if len(values) < width:
            values = values + [""] * (width - len(values))
        writer.writerow(values)
    return buffer.getvalue().rstrip("\n")


class _TableRows:
    """Rows from every sheet mapped to one table, aligned on the first sheet's header."""

    def __init__(self) -> None:
        self.header: List[str] = []
        self.rows: List[List[str]] = []
        self.sheets: List[str] = []
        self._index: Dict[str, int] = {}

    def add(self, sheet_name: str, rows: List[List[str]]) -> None:
        header, body = rows[0], rows[1:]
        if not self.sheets:
            self.header = list(header)
            for position, name in enumerate(header):
                self._index.setdefault(normalize_header(name), position)
            self.rows.extend(body)
        else:
            positions: List[Optional[int]] = []
            used: Set[str] = set()
            for name in header:
                key = normalize_header(name)
                if key in used:
                    positions.append(None)
                    continue
                used.add(key)
                if key not in self._index:
                    self._index[key] = len(self.header)
                    self.header.append(name)
                positions.append(self._index[key])
            for values in body:
                aligned = [""] * len(self.header)
                for position, value in zip(positions, values):
                    if position is not None:
                        aligned[position] = value
                self.rows.append(aligned)
        self.sheets.append(sheet_name)

    def to_csv(self) -> str:
        return _to_csv([self.header] + self.rows, width=len(self.header))


def decode_workbook(data: bytes, *, read_only: bool = False) -> DecodedTables:
    """
    Convert every sheet and combine sheets that map to the same table.

    Later sheets are appended under the first sheet's header, matched by
    normalized column name; columns the first sheet lacks are added at the
    end. With ``read_only`` the workbook is streamed and hidden rows and
    columns are not filtered.
    """
    try:
        workbook = load_workbook(io.BytesIO(data), data_only=True, read_only=read_only)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise DecodeError(f"Failed to read Excel file: {exc}") from exc

    tables: Dict[DestinationTable, _TableRows] = {}
    try:
        logger.info("Processing Excel workbook with sheets: %s", workbook.sheetnames)
        if read_only:
            logger.warning("Streaming workbook in read-only mode; hidden rows and columns are included")
        for sheet_name in workbook.sheetnames:
            rows = list(_sheet_rows(workbook[sheet_name], read_only=read_only))
            if not rows:
                logger.warning("Sheet '%s' is empty; skipping", sheet_name)
                continue
            table = table_for_sheet(sheet_name)
            if table in tables:
                logger.info(
                    "Sheet '%s' appended to table '%s' after sheets %s (%d rows)",
                    sheet_name,
                    table.table_name,
                    tables[table].sheets,
                    len(rows) - 1,
                )
            else:
                logger.info("Excel import: mapped sheet '%s' to table '%s'", sheet_name, table.table_name)
                tables[table] = _TableRows()
            tables[table].add(sheet_name, rows)
    finally:
        workbook.close()
    return {table: combined.to_csv() for table, combined in tables.items()}


def decode_upload(upload: UploadedFile, *, large_file_mb: Optional[float] = None) -> DecodedTables:
    """Convert one upload into {table: csv_text}."""
    kind = file_kind(upload.filename)
    logger.info("Decoding %s (%.2f MB, %s)", upload.filename, upload.size_mb, kind)
    threshold = LARGE_FILE_MB if large_file_mb is None else large_file_mb
    if kind == "csv":
        return {DestinationTable.default(): decode_csv(upload.data, large_file_mb=threshold)}
    return decode_workbook(upload.data, read_only=upload.size_mb > threshold)


__all__ = [
    "DecodedTables",
    "UploadedFile",
    "decode_csv",
    "decode_upload",
    "decode_workbook",
    "file_kind",
]
