from __future__ import annotations

from sqlalchemy import select

from po_analytics import reports
from po_analytics.db import maintenance
from po_analytics.db.migrate import ensure_labor_statistics_columns
from po_analytics.db.models import PurchaseOrder
from po_analytics.db.store import Store


def _seed(store, rows):
    with store.session() as session:
        session.add_all(PurchaseOrder(**row) for row in rows)


ROWS = [
    dict(Entity="E1", Supplier_Name="Cardinal Health", Oracle_Item_Number="I1", Item_Description="Gloves",
         PO_Number="P1", Ship_To="S1", Destination_Location_Name="Dock A", PO_Date="2024-01-02",
         PO_Quantity_Ordered=5),
    dict(Entity="E1", Supplier_Name="Cardinal Health", Oracle_Item_Number="I2", Item_Description="Masks",
         PO_Number="P2", Ship_To="S1", Destination_Location_Name="Dock B", PO_Date="2024-01-03",
         PO_Quantity_Ordered=3),
    dict(Entity="E2", Supplier_Name="Cardinal Health", Oracle_Item_Number="I1", Item_Description="Gloves",
         PO_Number="P3", Ship_To="S2", Destination_Location_Name="Dock A", PO_Date="2024-01-05"),
    dict(Entity="E2", Supplier_Name="Acme", Oracle_Item_Number="I3", Item_Description="Tape",
         PO_Number="P4", Ship_To="S2", PO_Date="2024-01-05"),
    dict(Entity=None, Supplier_Name="", Oracle_Item_Number="I4", PO_Number="P5", PO_Date=""),
    dict(Entity="E3", Supplier_Name=None, Oracle_Item_Number="I5", PO_Number="P6"),
]


def test_format_file_size():
    assert maintenance.format_file_size(0) == "0 Bytes"
    assert maintenance.format_file_size(512) == "512 Bytes"
    assert maintenance.format_file_size(1536) == "1.5 KB"
    assert maintenance.format_file_size(1024 ** 2) == "1 MB"
    assert maintenance.format_file_size(3 * 1024 ** 3) == "3 GB"


def test_supplier_prefix_retention(store):
    _seed(store, ROWS)
    result = maintenance.retain_supplier_prefix(store)

    assert result.deleted_records == 3
    assert result.remaining_records == 3
    with store.session() as session:
        suppliers = set(session.scalars(select(PurchaseOrder.Supplier_Name)))
    assert suppliers == {"Cardinal Health"}


def test_clear_orders_and_stats(store):
    _seed(store, ROWS)
    stats = maintenance.database_stats(store)
    assert stats.total_records == 6
    assert stats.table_counts == {"purchase_orders": 6}

    assert maintenance.clear_orders(store) == 6
    assert maintenance.table_counts(store)["purchase_orders"] == 0


def test_unique_counts(store):
    _seed(store, ROWS)
    with store.session() as session:
        counts = reports.unique_counts(session)
    assert counts["unique_entities"] == 3
    assert counts["unique_suppliers"] == 3
    assert counts["unique_items"] == 5
    assert counts["total_records"] == 6


def test_supplier_analysis_uses_dataset_dates(store):
    _seed(store, ROWS)
    with store.session() as session:
        suppliers = reports.supplier_analysis(session)
        filtered = reports.supplier_analysis(session, ship_to="S2")

    assert [row["supplier_name"] for row in suppliers] == ["Cardinal Health", "Acme"]
    cardinal = suppliers[0]
    assert cardinal["unique_item_count"] == 2
    assert cardinal["total_record_count"] == 3
    assert cardinal["distinct_days"] == 3
    assert cardinal["average_daily_value"] == 1.0
    assert cardinal["date_range"] == {"start": "2024-01-02", "end": "2024-01-05", "days": 3}
    assert suppliers[1]["average_daily_value"] == 0.33
    assert {row["supplier_name"] for row in filtered} == {"Cardinal Health", "Acme"}


def test_ship_to_and_item_analysis(store):
    _seed(store, ROWS)
    with store.session() as session:
        ship_tos = {row["ship_to_name"]: row for row in reports.ship_to_analysis(session)}
        details = reports.ship_to_details(session, "S1")
        items = reports.item_analysis(session)

    assert ship_tos["S1"]["total_record_count"] == 2
    assert {row["destination_location_name"] for row in details} == {"Dock A", "Dock B"}
    gloves = items[0]
    assert gloves["oracle_item_number"] == "I1"
    assert gloves["total_record_count"] == 2
    assert gloves["suppliers"] == ["Cardinal Health"]
    assert sorted(gloves["ship_to_locations"]) == ["S1", "S2"]


def test_data_quality(store):
    _seed(store, ROWS)
    with store.session() as session:
        quality = reports.data_quality(session)
    assert quality["total_records"] == 6
    assert quality["incomplete_records"] == 2
    assert quality["incomplete_percentage"] == 33.33
    assert quality["field_completeness"]["PO_Number"] == 100.0
    assert quality["field_completeness"]["Ship_To"] == 66.67


def test_migrate_adds_missing_labor_columns(tmp_path):
    store = Store(f"sqlite:///{tmp_path / 'old.db'}", create=False)
    try:
        with store.engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE labor_statistics (id INTEGER PRIMARY KEY, date TEXT)")
        added = ensure_labor_statistics_columns(store.engine)
        assert "rfid_fte" in added
        assert "date" not in added
        assert ensure_labor_statistics_columns(store.engine) == []
    finally:
        store.dispose()
