from __future__ import annotations

import io

from openpyxl import Workbook
from sqlalchemy import func, select

from po_analytics.db.models import PurchaseOrder
from po_analytics.ingest.decoder import UploadedFile
from po_analytics.ingest.service import import_files, summarize_results

HEADER = "Entity,Supplier_Name,Oracle_Item_Number,PO_Number,PO_Date,PO_Quantity_Ordered"


def _csv_upload(name: str, count: int, start: int = 0) -> UploadedFile:
    rows = [f"E{i},Acme,I{i},PO{i},2024-01-02,{i}" for i in range(start, start + count)]
    return UploadedFile(name, "\n".join([HEADER, *rows]).encode("utf-8"))


def _xlsx_upload(name: str, count: int) -> UploadedFile:
    wb = Workbook()
    ws = wb.active
    ws.title = "CCF Data"
    ws.append(HEADER.split(","))
    for i in range(count):
        ws.append([f"X{i}", "Cardinal Health", f"I{i}", f"XPO{i}", "2024-01-03", i])
    buffer = io.BytesIO()
    wb.save(buffer)
    return UploadedFile(name, buffer.getvalue())


def _count(store) -> int:
    with store.session() as session:
        return session.execute(select(func.count()).select_from(PurchaseOrder)).scalar_one()


def test_first_file_replaces_rest_append(store):
    outcome = import_files(store, [_csv_upload("a.csv", 3), _xlsx_upload("b.xlsx", 2)])

    assert outcome.success
    assert [r.mode for r in outcome.results] == ["replace", "append"]
    assert [r.records_imported for r in outcome.results] == [3, 2]
    assert summarize_results(outcome) == {"purchase_orders": 5}
    assert _count(store) == 5


def test_every_order_sheet_is_imported(store):
    wb = Workbook()
    jan = wb.active
    jan.title = "PO Jan"
    jan.append(HEADER.split(","))
    jan.append(["E1", "Acme", "I1", "PO1", "2024-01-02", 1])
    feb = wb.create_sheet("PO Feb")
    feb.append(HEADER.split(","))
    feb.append(["E2", "Acme", "I2", "PO2", "2024-02-01", 2])
    feb.append(["E3", "Acme", "I3", "PO3", "2024-02-02", 3])
    buffer = io.BytesIO()
    wb.save(buffer)

    outcome = import_files(store, [UploadedFile("orders.xlsx", buffer.getvalue())])

    assert outcome.success
    assert [r.records_imported for r in outcome.results] == [3]
    assert _count(store) == 3


def test_new_batch_replaces_previous_batch(store):
    import_files(store, [_csv_upload("a.csv", 3)])
    outcome = import_files(store, [_csv_upload("b.csv", 2, start=10)])

    assert outcome.records_imported == 2
    assert _count(store) == 2


def test_failures_are_reported_per_file(store):
    bad_type = UploadedFile("notes.txt", b"hello")
    no_columns = UploadedFile("other.csv", b"foo,bar\n1,2")
    outcome = import_files(store, [bad_type, no_columns, _csv_upload("a.csv", 2)])

    assert not outcome.success
    failed = [r for r in outcome.results if not r.success]
    assert len(failed) == 2
    assert "Unsupported file type" in failed[0].errors[0]
    assert "No valid columns found" in failed[1].errors[0]
    # The first file that actually loads still replaces.
    assert outcome.results[-1].mode == "replace"
    assert _count(store) == 2


def test_no_files():
    outcome = import_files(None, [])
    assert not outcome.success
    assert outcome.message == "No files provided"
