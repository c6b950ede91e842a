"""
Daily aggregation of order lines into transaction volumes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from po_analytics.db.models import PurchaseOrder
from po_analytics.labor.calendar import resolve_date
from po_analytics.labor.numeric import coerce_quantity

logger = logging.getLogger(__name__)

_STREAM_CHUNK = 10_000


@dataclass(frozen=True)
class DailyAggregate:
    date: str
    transaction_lines: int
    quantity_picked: int


def _sort_key(value: str) -> Tuple[int, date, str]:
    resolved = resolve_date(value)
    if resolved is None:
        return (1, date.max, value)
    return (0, resolved, value)


def aggregate_daily(session: Session) -> List[DailyAggregate]:
    """
    One aggregate per distinct non-empty PO_Date value, in ascending date order.

    Dates are grouped by the stored value exactly; quantities that are not
    non-negative numbers count as zero.
    """
    stmt = (
        select(PurchaseOrder.PO_Date, PurchaseOrder.PO_Quantity_Ordered)
        .where(PurchaseOrder.PO_Date.is_not(None))
        .where(func.trim(PurchaseOrder.PO_Date) != "")
        .execution_options(yield_per=_STREAM_CHUNK)
    )
    lines: Dict[str, int] = {}
    quantities: Dict[str, int] = {}
    defaulted = 0
    for po_date, quantity in session.execute(stmt):
        key = str(po_date)
        coerced = coerce_quantity(quantity)
        if coerced.defaulted and quantity is not None:
            defaulted += 1
        lines[key] = lines.get(key, 0) + 1
        quantities[key] = quantities.get(key, 0) + coerced.value

    if defaulted:
        logger.warning("%d order lines had a non-numeric quantity; counted as zero", defaulted)
    aggregates = [
        DailyAggregate(date=key, transaction_lines=lines[key], quantity_picked=quantities[key])
        for key in sorted(lines, key=_sort_key)
    ]
    logger.info("Aggregated %d order lines into %d days", sum(lines.values()), len(aggregates))
    return aggregates


__all__ = ["DailyAggregate", "aggregate_daily"]
