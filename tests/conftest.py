"""Shared test fixtures."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import openpyxl
import pytest
from openpyxl import Workbook


def workbook_bytes(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


def load_bytes(data: bytes) -> Workbook:
    return openpyxl.load_workbook(BytesIO(data))


def column_values(ws, col: int) -> list:
    """Data-row values of a 1-based column."""
    return [ws.cell(row=r, column=col).value for r in range(2, ws.max_row + 1)]


def sheet_rows(ws) -> list[list]:
    return [list(row) for row in ws.iter_rows(values_only=True)]


@pytest.fixture()
def sales_workbook(tmp_path: Path) -> Path:
    """Two sheets: Sales with an order table, Summary with a formula."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales"
    ws.append(["Item", "Price", "Tax", "Discount", "Quantity", "Amount", "Type", "Status"])
    ws.append(["Widget", 10, 2, 1, 5, 30, "A", "Open"])
    ws.append(["Gadget", 20, 3, 2, 15, 10, "B", "Open"])
    ws.append(["Doohickey", 30, 4, 3, 10, 20, "A", "Open"])

    ws2 = wb.create_sheet("Summary")
    ws2["A1"] = "Total"
    ws2["B1"] = "=SUM(Sales!F2:F4)"

    path = tmp_path / "sales.xlsx"
    wb.save(str(path))
    wb.close()
    return path


@pytest.fixture()
def sales_bytes(sales_workbook: Path) -> bytes:
    return sales_workbook.read_bytes()


@pytest.fixture()
def messy_headers_workbook(tmp_path: Path) -> Path:
    """Headers with stray case and whitespace, and string-typed numbers."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Data"
    ws.append(["  price ", "TAX", "Unit  Count", None, "Label"])
    ws.append(["1,000", "50", "3", None, "x"])
    ws.append([200, None, "n/a", None, "y"])
    ws.append(["abc", 7.5, 12, None, "z"])
    path = tmp_path / "messy.xlsx"
    wb.save(str(path))
    wb.close()
    return path


def make_ctx(rows: list[list], title: str = "Sheet1", extra_sheets: tuple[str, ...] = ()):
    """Build an in-memory WorkbookContext from literal rows."""
    from sheetbol.engine.context import WorkbookContext

    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    for name in extra_sheets:
        wb.create_sheet(name)
    return WorkbookContext.from_bytes(workbook_bytes(wb))
