"""
SQLAlchemy ORM models for the purchase-order store.

Column names on `purchase_orders` match the source extract headers exactly so
decoded CSV headers can be intersected against the table without a mapping
layer.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class PurchaseOrder(Base):
    """One ingested order line. No natural key; duplicates are possible."""

    __tablename__ = "purchase_orders"
    __table_args__ = (
        Index("idx_po_number", "PO_Number"),
        Index("idx_po_date", "PO_Date"),
        Index("idx_supplier", "Supplier_Name"),
        Index("idx_entity", "Entity"),
        Index("idx_unspsc_code", "UNSPSC_Code"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    Entity: Mapped[Optional[str]] = mapped_column(Text)
    Site_Location: Mapped[Optional[str]] = mapped_column(Text)
    Entity_Level_2: Mapped[Optional[str]] = mapped_column(Text)
    Entity_Level_3: Mapped[Optional[str]] = mapped_column(Text)
    SCSS_Category_Team: Mapped[Optional[str]] = mapped_column(Text)
    UNSPSC_Code: Mapped[Optional[str]] = mapped_column(Text)
    UNSPSC_Segment_Title: Mapped[Optional[str]] = mapped_column(Text)
    UNSPSC_Family_Title: Mapped[Optional[str]] = mapped_column(Text)
    UNSPSC_Class_Title: Mapped[Optional[str]] = mapped_column(Text)
    UNSPSC_Commodity_Title: Mapped[Optional[str]] = mapped_column(Text)
    PO_Year: Mapped[Optional[int]] = mapped_column(Integer)
    PO_Month: Mapped[Optional[int]] = mapped_column(Integer)
    PO_Week: Mapped[Optional[int]] = mapped_column(Integer)
    # Either an ISO string or a spreadsheet serial, stored as decoded.
    PO_Date: Mapped[Optional[str]] = mapped_column(Text)
    Destination_Location: Mapped[Optional[str]] = mapped_column(Text)
    Destination_Location_Name: Mapped[Optional[str]] = mapped_column(Text)
    Ship_To: Mapped[Optional[str]] = mapped_column(Text)
    Ship_To_Name: Mapped[Optional[str]] = mapped_column(Text)
    Special_Handling: Mapped[Optional[str]] = mapped_column(Text)
    Rush_Flag: Mapped[Optional[str]] = mapped_column(Text)
    PO_Number: Mapped[Optional[str]] = mapped_column(Text)
    PO_Line_Number: Mapped[Optional[str]] = mapped_column(Text)
    Oracle_Item_Number: Mapped[Optional[str]] = mapped_column(Text)
    Item_Description: Mapped[Optional[str]] = mapped_column(Text)
    Item_Type: Mapped[Optional[str]] = mapped_column(Text)
    PO_Quantity_Ordered: Mapped[Optional[int]] = mapped_column(Integer)
    PO_Quantity_Ordered_LUOM: Mapped[Optional[int]] = mapped_column(Integer)
    Buy_UOM: Mapped[Optional[str]] = mapped_column(Text)
    Buy_UOM_Multiplier: Mapped[Optional[int]] = mapped_column(Integer)
    Manufacturer_Name: Mapped[Optional[str]] = mapped_column(Text)
    Manufacturer_Number: Mapped[Optional[str]] = mapped_column(Text)
    Supplier_Number: Mapped[Optional[str]] = mapped_column(Text)
    Supplier_Name: Mapped[Optional[str]] = mapped_column(Text)
    Supplier_Site: Mapped[Optional[str]] = mapped_column(Text)
    ValueLink_Flag: Mapped[Optional[str]] = mapped_column(Text)
    Cost_Center_Group: Mapped[Optional[str]] = mapped_column(Text)
    PPI_Flag: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=utcnow)


class LaborStatistic(Base):
    """Simulated staffing for one calendar date."""

    __tablename__ = "labor_statistics"
    __table_args__ = (UniqueConstraint("date", name="uq_labor_statistics_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(32), nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)
    transaction_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quantity_picked: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    bulk_points: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    lum_points: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    replen_points: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    receive_points: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    put_points: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    bulk_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    lum_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    receive_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    inventory_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    support_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    rfid_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    supervisor_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    leader_fte: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=utcnow)


class LaborAnalysisSummary(Base):
    """Weekday / Weekend cohort averages derived from labor_statistics."""

    __tablename__ = "labor_analysis_summary"
    __table_args__ = (UniqueConstraint("day_type", name="uq_labor_analysis_summary_day_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day_type: Mapped[str] = mapped_column(String(16), nullable=False)
    day_count: Mapped[int] = mapped_column(Integer, nullable=False)
    avg_bulk_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_lum_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_receive_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_inventory_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_support_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_rfid_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_supervisor_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_leader_fte: Mapped[float] = mapped_column(Float, nullable=False)
    avg_total_fte: Mapped[float] = mapped_column(Float, nullable=False)
    stddev_total_fte: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class AnalysisVariables(Base):
    """Saved productivity preference; a single row."""

    __tablename__ = "analysis_variables"
    __table_args__ = (CheckConstraint("id = 1", name="ck_analysis_variables_singleton"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1, server_default="1")
    variables: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
