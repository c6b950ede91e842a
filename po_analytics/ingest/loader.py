"""
Batched, all-or-nothing loading of decoded CSV text into a destination table.

One call is one transaction: rows are inserted in fixed-size batches, but any
store error rolls back the whole call (including the Replace-mode clear).
Short rows are padded with NULLs and counted as shape warnings; long rows are
truncated to the header width.
"""
from __future__ import annotations

import csv
import enum
import io
import logging
import time
from dataclasses import dataclass, field
from itertools import islice
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy import delete, insert, text
from sqlalchemy.orm import Session

from po_analytics.db.store import Store
from po_analytics.ingest.columns import ColumnMapping, DestinationTable, map_columns
from po_analytics.ingest.errors import EmptyImport
from po_analytics.utils.config import IngestSettings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class LoadMode(enum.Enum):
    REPLACE = "replace"
    APPEND = "append"


@dataclass
class LoadResult:
    table: DestinationTable
    mode: LoadMode
    rows_inserted: int
    batch_size: int
    columns: List[str]
    dropped_columns: List[str] = field(default_factory=list)
    short_rows: int = 0
    long_rows: int = 0
    duration: float = 0.0

    @property
    def shape_warnings(self) -> int:
        return self.short_rows + self.long_rows


def _records(csv_text: str) -> Iterator[List[str]]:
    """Parsed CSV records, skipping blank ones."""
    reader = csv.reader(io.StringIO(csv_text))
    return (row for row in reader if row and not (len(row) == 1 and not row[0].strip()))


def _read_header(csv_text: str) -> Tuple[List[str], int]:
    """Return raw header fields and the number of data records after them."""
    records = _records(csv_text)
    headers = next(records, [])
    data_records = sum(1 for _ in records)
    return headers, data_records


def choose_batch_size(row_count: int, settings: IngestSettings) -> int:
    if row_count > settings.large_row_threshold:
        return settings.large_batch_size
    return settings.batch_size


def iter_batches(csv_text: str, batch_size: int) -> Iterator[List[List[str]]]:
    """Yield lists of parsed data rows (header skipped), `batch_size` rows at a time."""
    rows = _records(csv_text)
    next(rows, None)
    while True:
        batch = list(islice(rows, batch_size))
        if not batch:
            return
        yield batch


def _clear_table(session: Session, table: DestinationTable, is_sqlite: bool) -> None:
    logger.info("Clearing existing data for table: %s", table.table_name)
    session.execute(delete(table.model))
    if is_sqlite:
        session.execute(
            text("DELETE FROM sqlite_sequence WHERE name = :name"), {"name": table.table_name}
        )


def _insert_batch(
    session: Session,
    mapping: ColumnMapping,
    batch: List[List[str]],
    offset: int,
) -> Tuple[int, int, int]:
    """Insert one batch; returns (inserted, short_rows, long_rows)."""
    width = len(mapping.headers)
    short_rows = 0
    long_rows = 0
    records = []
    for index, values in enumerate(batch):
        if len(values) != width:
            if len(values) < width:
                short_rows += 1
            else:
                long_rows += 1
            if short_rows + long_rows <= 5:
                logger.warning(
                    "Field count mismatch in row %d: expected %d fields, got %d",
                    offset + index + 1,
                    width,
                    len(values),
                )
        records.append(mapping.to_record(values))
    if short_rows or long_rows:
        logger.warning(
            "%s: %d short and %d long rows in batch starting at record %d",
            mapping.table.table_name,
            short_rows,
            long_rows,
            offset + 1,
        )
    if not records:
        return 0, short_rows, long_rows
    try:
        session.execute(insert(mapping.table.model), records)
    except Exception:
        logger.error(
            "Error inserting records %d-%d for table %s; rolling back",
            offset + 1,
            offset + len(records),
            mapping.table.table_name,
        )
        raise
    return len(records), short_rows, long_rows


def load_csv_text(
    store: Store,
    table: DestinationTable,
    csv_text: str,
    mode: LoadMode,
    *,
    settings: Optional[IngestSettings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> LoadResult:
    """
    Persist decoded rows for `table` in one transaction.

    Replace clears the table and resets its id sequence first; Append inserts
    alongside existing rows without duplicate suppression. Returns the number
    of rows inserted; raises ImportRejected subclasses before touching the
    store and re-raises store errors after rollback.
    """
    settings = settings or IngestSettings()
    started = time.monotonic()

    headers, data_lines = _read_header(csv_text)
    mapping = map_columns(table, headers)
    if data_lines == 0:
        raise EmptyImport(table.table_name)

    batch_size = choose_batch_size(data_lines, settings)
    log_interval = settings.large_batch_size if data_lines > settings.large_row_threshold else settings.batch_size
    logger.info(
        "Loading %d records into %s (%s, batch size %d, columns %s)",
        data_lines,
        table.table_name,
        mode.value,
        batch_size,
        mapping.column_names,
    )

    inserted = 0
    short_rows = 0
    long_rows = 0
    with store.session() as session:
        if mode is LoadMode.REPLACE:
            _clear_table(session, table, store.is_sqlite)
        else:
            logger.info("Appending data to existing table: %s", table.table_name)

        for batch in iter_batches(csv_text, batch_size):
            count, short, long_ = _insert_batch(session, mapping, batch, inserted)
            previous = inserted
            inserted += count
            short_rows += short
            long_rows += long_
            if inserted // log_interval != previous // log_interval:
                logger.info("Inserted %d of ~%d records into %s", inserted, data_lines, table.table_name)
            if on_progress:
                on_progress(min(100.0, inserted / data_lines * 100))

    duration = time.monotonic() - started
    logger.info("Successfully imported %d records for table: %s in %.2fs", inserted, table.table_name, duration)
    return LoadResult(
        table=table,
        mode=mode,
        rows_inserted=inserted,
        batch_size=batch_size,
        columns=mapping.column_names,
        dropped_columns=list(mapping.dropped),
        short_rows=short_rows,
        long_rows=long_rows,
        duration=duration,
    )


__all__ = ["LoadMode", "LoadResult", "choose_batch_size", "iter_batches", "load_csv_text"]
