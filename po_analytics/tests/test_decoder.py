from __future__ import annotations

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from po_analytics.ingest.columns import DestinationTable
from po_analytics.ingest.decoder import UploadedFile, decode_csv, decode_upload, decode_workbook, file_kind
from po_analytics.ingest.errors import DecodeError, UnsupportedFileType


def _workbook_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_file_kind_by_extension():
    assert file_kind("orders.CSV") == "csv"
    assert file_kind("orders.xlsx") == "spreadsheet"
    with pytest.raises(UnsupportedFileType):
        file_kind("orders.txt")


def test_csv_drops_empty_lines_and_bom():
    data = "\ufeffEntity,PO_Number\r\nE1,PO1\r\n\r\n   \r\nE2,PO2\r\n".encode("utf-8")
    assert decode_csv(data) == "Entity,PO_Number\nE1,PO1\nE2,PO2"


def test_large_csv_path_matches_standard_path():
    lines = ["Entity,PO_Number,PO_Date"] + [f"E{i},PO{i},2024-01-{i % 28 + 1:02d}" for i in range(25_000)]
    data = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
    assert decode_csv(data, large_file_mb=0) == decode_csv(data)


def test_invalid_utf8_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_csv(b"Entity\n\xff\xfe\xfa")


def test_decode_upload_routes_csv_to_default_table():
    upload = UploadedFile("orders.csv", b"Entity\nE1\n")
    assert decode_upload(upload) == {DestinationTable.PURCHASE_ORDERS: "Entity\nE1"}


def test_workbook_raw_values_and_hidden_content():
    wb = Workbook()
    ws = wb.active
    ws.title = "PO Data"
    ws.append(["Entity", "PO_Date", "Secret", "PO_Quantity_Ordered"])
    ws.append(["E1", datetime(2024, 1, 2), "x", 5])
    ws.append(["E2", datetime(2024, 1, 3), "y", 2.5])
    ws.append([None, None, None, None])
    ws.append(["E3", datetime(2024, 1, 4), "z", 7])
    ws.row_dimensions[3].hidden = True
    ws.column_dimensions["C"].hidden = True

    decoded = decode_workbook(_workbook_bytes(wb))

    assert decoded == {
        DestinationTable.PURCHASE_ORDERS: "Entity,PO_Date,PO_Quantity_Ordered\nE1,45293,5\nE3,45295,7"
    }


def test_workbook_combines_sheets_for_same_table():
    wb = Workbook()
    first = wb.active
    first.title = "PO Jan"
    first.append(["Entity", "PO_Number"])
    first.append(["E1", "P1"])
    second = wb.create_sheet("PO Feb")
    second.append(["PO_Number", "Entity", "Supplier_Name"])
    second.append(["P2", "E2", "S2"])
    second.append(["P3", "E3", "S3"])
    wb.create_sheet("Empty")

    decoded = decode_workbook(_workbook_bytes(wb))

    assert decoded == {
        DestinationTable.PURCHASE_ORDERS: "Entity,PO_Number,Supplier_Name\nE1,P1,\nE2,P2,S2\nE3,P3,S3"
    }


def test_large_workbook_is_streamed_read_only():
    wb = Workbook()
    ws = wb.active
    ws.title = "PO Data"
    ws.append(["Entity", "PO_Date", "PO_Quantity_Ordered"])
    ws.append(["E1", datetime(2024, 1, 2), 5])
    ws.append([None, None, None])
    ws.append(["E2", datetime(2024, 1, 3), 2.0])
    ws.row_dimensions[2].hidden = True
    upload = UploadedFile("orders.xlsx", _workbook_bytes(wb))

    decoded = decode_upload(upload, large_file_mb=0)

    # hidden rows are only filtered on the in-memory path
    assert decoded == {
        DestinationTable.PURCHASE_ORDERS: "Entity,PO_Date,PO_Quantity_Ordered\nE1,45293,5\nE2,45294,2"
    }
    assert decode_upload(upload) == {
        DestinationTable.PURCHASE_ORDERS: "Entity,PO_Date,PO_Quantity_Ordered\nE2,45294,2"
    }



def test_corrupt_workbook_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_upload(UploadedFile("orders.xlsx", b"not a zip file"))
