"""Exception types raised by the ingestion pipeline."""
from __future__ import annotations

from typing import Sequence


class IngestError(Exception):
    """Base class for ingestion failures."""


class DecodeError(IngestError):
    """File content could not be read. Not transient; do not retry."""


class ImportRejected(IngestError, ValueError):
    """The input must be fixed by the user; nothing was persisted."""


class UnsupportedFileType(ImportRejected):
    def __init__(self, filename: str) -> None:
        super().__init__(f"Unsupported file type for '{filename}'; expected .csv, .xlsx or .xlsm")
        self.filename = filename


class NoMatchingColumns(ImportRejected):
    def __init__(self, table_name: str, headers: Sequence[str], known_columns: Sequence[str]) -> None:
        super().__init__(
            f"No valid columns found for table {table_name}. "
            f"CSV headers: [{', '.join(headers)}]. "
            f"Database columns: [{', '.join(known_columns)}]"
        )
        self.table_name = table_name
        self.headers = list(headers)
        self.known_columns = list(known_columns)


class EmptyImport(ImportRejected):
    def __init__(self, table_name: str) -> None:
        super().__init__(f"No data rows found for table {table_name}")
        self.table_name = table_name


__all__ = [
    "DecodeError",
    "EmptyImport",
    "ImportRejected",
    "IngestError",
    "NoMatchingColumns",
    "UnsupportedFileType",
]
