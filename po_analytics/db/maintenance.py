"""
Housekeeping operations on the store: clears, supplier retention and stats.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import delete, func, or_, not_, select, text

from po_analytics.db.models import Base, LaborAnalysisSummary, LaborStatistic, PurchaseOrder, utcnow
from po_analytics.db.store import Store

logger = logging.getLogger(__name__)

DEFAULT_SUPPLIER_PREFIX = "Cardinal"
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


@dataclass
class RetentionResult:
    deleted_records: int
    remaining_records: int


@dataclass
class DatabaseStats:
    total_records: int
    table_counts: Dict[str, int] = field(default_factory=dict)
    database_size: str = "0 Bytes"
    last_updated: Optional[datetime] = None


def format_file_size(size: int) -> str:
    """Human-readable size using 1024 steps, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    index = 0
    while size >= 1024 ** (index + 1) and index < len(_SIZE_UNITS) - 1:
        index += 1
    value = round(size / (1024 ** index), 2)
    if float(value).is_integer():
        value = int(value)
    return f"{value} {_SIZE_UNITS[index]}"


def _reset_sequence(session, table_name: str) -> None:
    session.execute(text("DELETE FROM sqlite_sequence WHERE name = :name"), {"name": table_name})


def clear_orders(store: Store) -> int:
    """Delete every order line and reset the id sequence. Returns rows deleted."""
    with store.session() as session:
        deleted = session.execute(delete(PurchaseOrder)).rowcount
        if store.is_sqlite:
            _reset_sequence(session, PurchaseOrder.__tablename__)
    logger.info("Cleared %d purchase order rows", deleted)
    return deleted


def clear_labor(store: Store) -> int:
    """Delete labor statistics and their summary. Returns daily rows deleted."""
    with store.session() as session:
        deleted = session.execute(delete(LaborStatistic)).rowcount
        session.execute(delete(LaborAnalysisSummary))
    logger.info("Cleared %d labor statistics rows", deleted)
    return deleted


def retain_supplier_prefix(store: Store, prefix: str = DEFAULT_SUPPLIER_PREFIX) -> RetentionResult:
    """
    Keep only order lines whose Supplier_Name starts with `prefix`.

    Rows with a missing or empty supplier are removed too. Matching follows
    SQLite LIKE, so it is case-insensitive for ASCII.
    """
    supplier = PurchaseOrder.Supplier_Name
    doomed = or_(supplier.is_(None), supplier == "", not_(supplier.startswith(prefix, autoescape=True)))
    with store.session() as session:
        deleted = session.execute(delete(PurchaseOrder).where(doomed)).rowcount
        remaining = session.execute(select(func.count()).select_from(PurchaseOrder)).scalar_one()
    logger.info("Removed %d order lines not supplied by '%s*'; %d remain", deleted, prefix, remaining)
    return RetentionResult(deleted_records=deleted, remaining_records=remaining)


def table_counts(store: Store) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    with store.session() as session:
        for table in Base.metadata.sorted_tables:
            counts[table.name] = session.execute(select(func.count()).select_from(table)).scalar_one()
    return counts


def database_stats(store: Store) -> DatabaseStats:
    with store.session() as session:
        orders = session.execute(select(func.count()).select_from(PurchaseOrder)).scalar_one()
    path = store.database_path
    size = path.stat().st_size if path is not None and path.exists() else 0
    return DatabaseStats(
        total_records=orders,
        table_counts={PurchaseOrder.__tablename__: orders},
        database_size=format_file_size(size),
        last_updated=utcnow(),
    )


__all__ = [
    "DEFAULT_SUPPLIER_PREFIX",
    "DatabaseStats",
    "RetentionResult",
    "clear_labor",
    "clear_orders",
    "database_stats",
    "format_file_size",
    "retain_supplier_prefix",
    "table_counts",
]
