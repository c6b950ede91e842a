"""
Read-only reporting queries over purchase_orders.

Average daily values divide a group's record count by the number of distinct
PO dates in the whole dataset, not the group's own active days.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from po_analytics.db.models import PurchaseOrder as PO
from po_analytics.labor.calendar import resolve_date

logger = logging.getLogger(__name__)

QUALITY_KEY_FIELDS = (
    "Entity",
    "Supplier_Name",
    "Oracle_Item_Number",
    "PO_Number",
    "Ship_To",
    "Item_Description",
    "PO_Quantity_Ordered",
)
CRITICAL_FIELDS = ("Entity", "Supplier_Name", "Oracle_Item_Number", "PO_Number")
DEFAULT_LIMIT = 1000


def _present(column) -> ColumnElement[bool]:
    return and_(column.is_not(None), column != "")


def _missing(column) -> ColumnElement[bool]:
    return or_(column.is_(None), column == "")


def total_unique_dates(session: Session) -> int:
    stmt = select(func.count(func.distinct(PO.PO_Date))).where(_present(PO.PO_Date))
    return session.execute(stmt).scalar_one()


def average_daily_value(records: int, unique_dates: int) -> float:
    return round(records / unique_dates, 2) if unique_dates > 0 else 0.0


def date_range(start: Any, end: Any) -> Dict[str, Any]:
    first, last = resolve_date(start), resolve_date(end)
    days = max(1, (last - first).days) if first and last else 1
    return {"start": start, "end": end, "days": days}


def unique_counts(session: Session) -> Dict[str, int]:
    def distinct(column) -> int:
        return session.execute(select(func.count(func.distinct(column))).where(column.is_not(None))).scalar_one()

    return {
        "unique_entities": distinct(PO.Entity),
        "unique_suppliers": distinct(PO.Supplier_Name),
        "unique_items": distinct(PO.Oracle_Item_Number),
        "unique_po_numbers": distinct(PO.PO_Number),
        "unique_unspsc": distinct(PO.UNSPSC_Code),
        "total_records": session.execute(select(func.count()).select_from(PO)).scalar_one(),
    }


def _group_rollup(
    session: Session,
    key,
    key_name: str,
    filters: Sequence[ColumnElement[bool]] = (),
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    unique_dates = total_unique_dates(session)
    unique_items = func.count(func.distinct(PO.Oracle_Item_Number)).label("unique_item_count")
    stmt = (
        select(
            key.label(key_name),
            unique_items,
            func.count().label("total_record_count"),
            func.min(PO.PO_Date).label("start_date"),
            func.max(PO.PO_Date).label("end_date"),
        )
        .where(_present(key), _present(PO.PO_Date), *filters)
        .group_by(key)
        .order_by(unique_items.desc())
    )
    if limit:
        stmt = stmt.limit(limit)

    rows = []
    for row in session.execute(stmt).mappings():
        rows.append(
            {
                key_name: row[key_name],
                "unique_item_count": row["unique_item_count"],
                "total_record_count": row["total_record_count"],
                "average_daily_value": average_daily_value(row["total_record_count"], unique_dates),
                "distinct_days": unique_dates,
                "date_range": date_range(row["start_date"], row["end_date"]),
            }
        )
    return rows


def supplier_analysis(
    session: Session,
    supplier: Optional[str] = None,
    ship_to: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    filters = []
    if supplier:
        filters.append(PO.Supplier_Name == supplier)
    if ship_to:
        filters.append(PO.Ship_To == ship_to)
    if filters and limit is None:
        limit = DEFAULT_LIMIT
    return _group_rollup(session, PO.Supplier_Name, "supplier_name", filters, limit)


def ship_to_analysis(session: Session) -> List[Dict[str, Any]]:
    return _group_rollup(session, PO.Ship_To, "ship_to_name")


def ship_to_details(session: Session, ship_to: str) -> List[Dict[str, Any]]:
    """Destination locations served by one ship-to, busiest first."""
    if not ship_to:
        raise ValueError("Ship To parameter is required")
    unique_dates = total_unique_dates(session)
    record_count = func.count().label("record_count")
    stmt = (
        select(
            PO.Destination_Location_Name.label("destination_location_name"),
            record_count,
            func.count(func.distinct(PO.Oracle_Item_Number)).label("unique_item_count"),
            func.min(PO.PO_Date).label("start_date"),
            func.max(PO.PO_Date).label("end_date"),
        )
        .where(PO.Ship_To == ship_to, _present(PO.Destination_Location_Name), _present(PO.PO_Date))
        .group_by(PO.Destination_Location_Name)
        .order_by(record_count.desc())
    )
    return [
        {
            "destination_location_name": row["destination_location_name"],
            "record_count": row["record_count"],
            "unique_item_count": row["unique_item_count"],
            "average_daily_value": average_daily_value(row["record_count"], unique_dates),
            "date_range": date_range(row["start_date"], row["end_date"]),
        }
        for row in session.execute(stmt).mappings()
    ]


def item_analysis(session: Session) -> List[Dict[str, Any]]:
    unique_dates = total_unique_dates(session)
    record_count = func.count().label("total_record_count")
    stmt = (
        select(
            PO.Oracle_Item_Number,
            PO.Item_Description,
            record_count,
            func.min(PO.PO_Date).label("start_date"),
            func.max(PO.PO_Date).label("end_date"),
        )
        .where(_present(PO.Oracle_Item_Number), _present(PO.Item_Description), _present(PO.PO_Date))
        .group_by(PO.Oracle_Item_Number, PO.Item_Description)
        .order_by(record_count.desc())
    )
    items = session.execute(stmt).mappings().all()

    partners_stmt = (
        select(PO.Oracle_Item_Number, PO.Item_Description, PO.Supplier_Name, PO.Ship_To)
        .where(_present(PO.Oracle_Item_Number), _present(PO.Item_Description), _present(PO.PO_Date))
        .distinct()
    )
    suppliers: Dict[tuple, List[str]] = {}
    ship_tos: Dict[tuple, List[str]] = {}
    for number, description, supplier, ship_to in session.execute(partners_stmt):
        key = (number, description)
        if supplier and supplier not in suppliers.setdefault(key, []):
            suppliers[key].append(supplier)
        if ship_to and ship_to not in ship_tos.setdefault(key, []):
            ship_tos[key].append(ship_to)

    return [
        {
            "oracle_item_number": row["Oracle_Item_Number"],
            "item_description": row["Item_Description"],
            "total_record_count": row["total_record_count"],
            "average_daily_value": average_daily_value(row["total_record_count"], unique_dates),
            "distinct_days": unique_dates,
            "date_range": date_range(row["start_date"], row["end_date"]),
            "suppliers": suppliers.get((row["Oracle_Item_Number"], row["Item_Description"]), []),
            "ship_to_locations": ship_tos.get((row["Oracle_Item_Number"], row["Item_Description"]), []),
        }
        for row in items
    ]


def data_quality(session: Session) -> Dict[str, Any]:
    """Completeness of the key order-line fields, as percentages of all rows."""
    total = session.execute(select(func.count()).select_from(PO)).scalar_one()
    incomplete_filter = or_(*(_missing(getattr(PO, name)) for name in CRITICAL_FIELDS))
    incomplete = session.execute(select(func.count()).select_from(PO).where(incomplete_filter)).scalar_one()

    completeness: Dict[str, float] = {}
    for name in QUALITY_KEY_FIELDS:
        present = session.execute(
            select(func.count()).select_from(PO).where(_present(getattr(PO, name)))
        ).scalar_one()
        completeness[name] = round(present / total * 100, 2) if total else 0.0

    return {
        "total_records": total,
        "incomplete_records": incomplete,
        "complete_records": total - incomplete,
        "incomplete_percentage": round(incomplete / total * 100, 2) if total else 0.0,
        "field_completeness": completeness,
    }


__all__ = [
    "average_daily_value",
    "data_quality",
    "item_analysis",
    "ship_to_analysis",
    "ship_to_details",
    "supplier_analysis",
    "total_unique_dates",
    "unique_counts",
]
