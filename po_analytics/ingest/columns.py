"""
Destination schema lookups, header normalisation and cell sanitising.

Every decision about which decoded columns reach the store is made here so the
decoder, validator and loader agree on it.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import pandas as pd

from po_analytics.db.models import Base, PurchaseOrder
from po_analytics.ingest.errors import NoMatchingColumns

logger = logging.getLogger(__name__)

_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")
NULL_TOKENS = {"", "null", "NULL"}
# Populated by the store, never by an import.
MANAGED_COLUMNS = {"created_at"}


class DestinationTable(enum.Enum):
    """Closed set of tables the loader may write to."""

    PURCHASE_ORDERS = "purchase_orders"

    @property
    def table_name(self) -> str:
        return self.value

    @property
    def model(self) -> Type[Base]:
        return _TABLE_MODELS[self]

    @classmethod
    def default(cls) -> "DestinationTable":
        return cls.PURCHASE_ORDERS


_TABLE_MODELS: Dict[DestinationTable, Type[Base]] = {
    DestinationTable.PURCHASE_ORDERS: PurchaseOrder,
}

# Sheet-name keywords that identify each table's data.
TABLE_KEYWORDS: Dict[DestinationTable, Tuple[str, ...]] = {
    DestinationTable.PURCHASE_ORDERS: ("purchase", "order", "po", "data", "ccf", "analysis", "history"),
}

PURCHASE_ORDER_FIELDS: Tuple[str, ...] = (
    "Entity",
    "Site_Location",
    "Entity_Level_2",
    "Entity_Level_3",
    "SCSS_Category_Team",
    "UNSPSC_Code",
    "UNSPSC_Segment_Title",
    "UNSPSC_Family_Title",
    "UNSPSC_Class_Title",
    "UNSPSC_Commodity_Title",
    "PO_Year",
    "PO_Month",
    "PO_Week",
    "PO_Date",
    "Destination_Location",
    "Destination_Location_Name",
    "Ship_To",
    "Ship_To_Name",
    "Special_Handling",
    "Rush_Flag",
    "PO_Number",
    "PO_Line_Number",
    "Oracle_Item_Number",
    "Item_Description",
    "Item_Type",
    "PO_Quantity_Ordered",
    "PO_Quantity_Ordered_LUOM",
    "Buy_UOM",
    "Buy_UOM_Multiplier",
    "Manufacturer_Name",
    "Manufacturer_Number",
    "Supplier_Number",
    "Supplier_Name",
    "Supplier_Site",
    "ValueLink_Flag",
    "Cost_Center_Group",
    "PPI_Flag",
)


def known_columns(table: DestinationTable) -> List[str]:
    """Destination columns in table order, excluding the surrogate key."""
    return [
        col.name
        for col in table.model.__table__.columns
        if not col.primary_key and col.name not in MANAGED_COLUMNS
    ]


def normalize_header(header: Any) -> str:
    text = _EDGE_QUOTES.sub("", str(header if header is not None else ""))
    return text.strip().replace("\r", "").replace(" ", "_")


def sanitize_value(value: Any) -> Optional[str]:
    """Map a raw cell to its stored form; empty / null tokens become None."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value)
    if text in NULL_TOKENS:
        return None
    return _EDGE_QUOTES.sub("", text.strip())


@dataclass(frozen=True)
class ColumnMapping:
    """Decoded header positions that survive into the destination table."""

    table: DestinationTable
    headers: Tuple[str, ...]
    columns: Tuple[Tuple[int, str], ...]
    dropped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> List[str]:
        return [name for _, name in self.columns]

    def to_record(self, values: Sequence[Any]) -> Dict[str, Optional[str]]:
        """Build a partial record from one decoded row; missing trailing values map to None."""
        record: Dict[str, Optional[str]] = {}
        for position, name in self.columns:
            raw = values[position] if position < len(values) else None
            record[name] = sanitize_value(raw)
        return record


def map_columns(table: DestinationTable, raw_headers: Sequence[Any]) -> ColumnMapping:
    """
    Intersect decoded headers with the destination schema, preserving decode order.

    Raises NoMatchingColumns when nothing overlaps.
    """
    headers = tuple(normalize_header(h) for h in raw_headers)
    destination = known_columns(table)
    allowed = set(destination)

    columns: List[Tuple[int, str]] = []
    dropped: List[str] = []
    seen = set()
    for position, name in enumerate(headers):
        if name in allowed and name not in seen:
            columns.append((position, name))
            seen.add(name)
        else:
            dropped.append(name)

    if not columns:
        raise NoMatchingColumns(table.table_name, headers, destination)
    if dropped:
        logger.info("%s: ignoring %d unmapped headers: %s", table.table_name, len(dropped), dropped)
    return ColumnMapping(table=table, headers=headers, columns=tuple(columns), dropped=tuple(dropped))


def table_for_sheet(sheet_name: str) -> DestinationTable:
    """Pick the destination for a workbook sheet by keyword score; ties keep the default."""
    normalized = re.sub(r"[_\s]+", " ", str(sheet_name).lower())
    best = DestinationTable.default()
    best_score = 0
    for table, keywords in TABLE_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in normalized)
        if score > best_score:
            best, best_score = table, score
    logger.debug("Mapped sheet '%s' to table '%s' (score: %d)", sheet_name, best.table_name, best_score)
    return best


__all__ = [
    "ColumnMapping",
    "DestinationTable",
    "PURCHASE_ORDER_FIELDS",
    "known_columns",
    "map_columns",
    "normalize_header",
    "sanitize_value",
    "table_for_sheet",
]
