"""Tests for the openpyxl action executor."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import column_values, make_ctx, sheet_rows
from sheetbol.adapters.openpyxl_engine import (
    apply_action,
    apply_actions,
    cell_text,
    compare_number,
    find_column,
    to_number,
)
from sheetbol.contracts.actions import (
    AddColumnSum,
    DeleteColumn,
    FilterRows,
    RenameColumn,
    RenameSheet,
    SetValueWhere,
    SortBy,
)
from sheetbol.engine.context import WorkbookContext


# ---------------------------------------------------------------------------
# value helpers
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("raw,expected", [
    (5, 5),
    (2.5, 2.5),
    ("1,000", 1000),
    (" 42 ", 42),
    ("3.25", 3.25),
    ("-7", -7),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    ("inf", None),
])
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text(3.0) == "3"
    assert cell_text(3.5) == "3.5"
    assert cell_text("A") == "A"


def test_compare_number_unparseable_only_satisfies_not_equal():
    for op in (">", ">=", "<", "<=", "=="):
        assert compare_number("n/a", op, 1.0) is False
    assert compare_number("n/a", "!=", 1.0) is True
    assert compare_number(None, "!=", 0.0) is True


# ---------------------------------------------------------------------------
# rename_sheet
# ---------------------------------------------------------------------------
def test_rename_sheet(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    change = apply_action(ctx, RenameSheet(sheet_old="Sales", sheet_new="Revenue"))
    assert ctx.sheet_names == ["Revenue", "Summary"]
    assert change.before == "Sales"
    assert change.after == "Revenue"
    assert not change.skipped


def test_rename_sheet_unknown_falls_back_to_first():
    ctx = make_ctx([["A"]], title="First", extra_sheets=("Second",))
    apply_action(ctx, RenameSheet(sheet_old="Nope", sheet_new="Renamed"))
    assert ctx.sheet_names == ["Renamed", "Second"]


def test_rename_sheet_protected_is_skipped(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    change = apply_action(
        ctx, RenameSheet(sheet_old="Sales", sheet_new="Revenue"), protected_sheets=["Sales"]
    )
    assert change.skipped
    assert change.warnings[0].code == "WARN_PROTECTED_SHEET"
    assert ctx.sheet_names == ["Sales", "Summary"]


def test_rename_sheet_onto_existing_title_warns(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    change = apply_action(ctx, RenameSheet(sheet_old="Sales", sheet_new="Summary"))
    assert not change.skipped
    assert change.after == ctx.sheet_names[0]
    assert change.after != "Summary"
    assert change.warnings[0].code == "WARN_SHEET_EXISTS"
    assert change.warnings[0].path == change.after


def test_rename_sheet_to_fresh_title_has_no_warning(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    change = apply_action(ctx, RenameSheet(sheet_old="Sales", sheet_new="Revenue"))
    assert change.warnings == []


# ---------------------------------------------------------------------------
# rename_column
# ---------------------------------------------------------------------------
def test_rename_column_matches_normalized_header(messy_headers_workbook: Path):
    ctx = WorkbookContext(messy_headers_workbook)
    ws = ctx.get_sheet("Data")
    change = apply_action(ctx, RenameColumn(column_old="Price", column_new="Cost"))
    assert ws.cell(row=1, column=1).value == "Cost"
    assert change.before == "  price "
    assert change.target == "Data!A1"


def test_find_column_collapses_inner_whitespace(messy_headers_workbook: Path):
    ctx = WorkbookContext(messy_headers_workbook)
    ws = ctx.get_sheet("Data")
    assert find_column(ws, "unit count") == 3
    assert find_column(ws, "Label") == 5
    assert find_column(ws, "missing") is None


# ---------------------------------------------------------------------------
# add_column_sum
# ---------------------------------------------------------------------------
def test_add_column_sum_appends_after_last_header():
    ctx = make_ctx([["Price", "Tax"], [10, 2], [20, 3]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, AddColumnSum(col_a="Price", col_b="Tax", new_column="Total"))
    assert ws.cell(row=1, column=3).value == "Total"
    assert column_values(ws, 3) == [12, 23]


def test_add_column_sum_treats_non_numeric_as_zero(messy_headers_workbook: Path):
    ctx = WorkbookContext(messy_headers_workbook)
    ws = ctx.get_sheet("Data")
    change = apply_action(ctx, AddColumnSum(col_a="Price", col_b="Tax", new_column="Total"))
    # last non-empty header is "Label" in column E
    assert ws.cell(row=1, column=6).value == "Total"
    assert column_values(ws, 6) == [1050, 200, 7.5]
    assert change.impact["rows"] == 3


def test_add_column_sum_missing_operand_is_noop():
    ctx = make_ctx([["Price", "Tax"], [10, 2]])
    ws = ctx.resolve_sheet(None)
    before = sheet_rows(ws)
    change = apply_action(ctx, AddColumnSum(col_a="Price", col_b="Shipping", new_column="Total"))
    assert change.skipped
    assert change.warnings[0].code == "WARN_COLUMN_NOT_FOUND"
    assert "Shipping" in change.warnings[0].message
    assert sheet_rows(ws) == before


# ---------------------------------------------------------------------------
# delete_column
# ---------------------------------------------------------------------------
def test_delete_column_shifts_left(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    ws = ctx.get_sheet("Sales")
    apply_action(ctx, DeleteColumn(column_name="Discount"))
    headers = [c.value for c in ws[1]]
    assert headers == ["Item", "Price", "Tax", "Quantity", "Amount", "Type", "Status"]
    assert column_values(ws, 4) == [5, 15, 10]


def test_delete_missing_column_is_noop(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    ws = ctx.get_sheet("Sales")
    before = sheet_rows(ws)
    change = apply_action(ctx, DeleteColumn(column_name="Nope"))
    assert change.skipped
    assert sheet_rows(ws) == before


def test_delete_column_targets_named_sheet():
    ctx = make_ctx([["A", "B"], [1, 2]], title="First", extra_sheets=("Second",))
    second = ctx.get_sheet("Second")
    second["A1"] = "B"
    second["B1"] = "C"
    apply_action(ctx, DeleteColumn(sheet_name="Second", column_name="B"))
    assert [c.value for c in second[1]] == ["C"]
    assert [c.value for c in ctx.get_sheet("First")[1]] == ["A", "B"]


# ---------------------------------------------------------------------------
# filter_rows
# ---------------------------------------------------------------------------
def test_filter_rows_keeps_header_and_matches():
    ctx = make_ctx([["Quantity"], [5], [15], [10]])
    ws = ctx.resolve_sheet(None)
    change = apply_action(ctx, FilterRows(column_name="Quantity", operator=">", value=10))
    assert sheet_rows(ws) == [["Quantity"], [15]]
    assert change.impact["rows"] == 2


def test_filter_rows_parses_commas_and_drops_unparseable(messy_headers_workbook: Path):
    ctx = WorkbookContext(messy_headers_workbook)
    ws = ctx.get_sheet("Data")
    apply_action(ctx, FilterRows(column_name="price", operator=">=", value=200))
    assert column_values(ws, 1) == ["1,000", 200]


def test_filter_rows_not_equal_keeps_unparseable():
    ctx = make_ctx([["Score"], [1], ["n/a"], [2]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, FilterRows(column_name="Score", operator="!=", value=1))
    assert column_values(ws, 1) == ["n/a", 2]


def test_filter_rows_moves_whole_rows():
    ctx = make_ctx([["Name", "Qty"], ["a", 1], ["b", 20], ["c", 30]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, FilterRows(column_name="Qty", operator=">", value=10))
    assert sheet_rows(ws) == [["Name", "Qty"], ["b", 20], ["c", 30]]


# ---------------------------------------------------------------------------
# sort_by
# ---------------------------------------------------------------------------
def test_sort_desc_numeric():
    ctx = make_ctx([["Name", "Amount"], ["x", 30], ["y", 10], ["z", 20]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="Amount", direction="desc"))
    assert column_values(ws, 2) == [30, 20, 10]
    assert column_values(ws, 1) == ["x", "z", "y"]


def test_sort_asc_strings():
    ctx = make_ctx([["Key"], ["b"], ["a"], ["c"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="Key"))
    assert column_values(ws, 1) == ["a", "b", "c"]


def test_sort_strings_case_insensitive():
    ctx = make_ctx([["Key"], ["banana"], ["Apple"], ["cherry"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="Key"))
    assert column_values(ws, 1) == ["Apple", "banana", "cherry"]


def test_sort_numeric_strings_compare_as_numbers():
    ctx = make_ctx([["N"], ["100"], ["9"], ["1,000"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="N"))
    assert column_values(ws, 1) == ["9", "100", "1,000"]


def test_sort_preserves_row_count_and_blank_cells():
    ctx = make_ctx([["Name", "Amount", "Note"], ["x", 3, None], ["y", 1, "hi"], ["z", 2, None]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="Amount"))
    assert sheet_rows(ws) == [
        ["Name", "Amount", "Note"],
        ["y", 1, "hi"],
        ["z", 2, None],
        ["x", 3, None],
    ]


def test_sort_is_stable():
    ctx = make_ctx([["K", "Tag"], [1, "first"], [0, "zero"], [1, "second"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SortBy(column_name="K"))
    assert column_values(ws, 2) == ["zero", "first", "second"]


# ---------------------------------------------------------------------------
# set_value_where
# ---------------------------------------------------------------------------
def test_set_value_where_equal():
    ctx = make_ctx([["Type", "Status"], ["A", "Open"], ["B", "Open"], ["A", "Open"]])
    ws = ctx.resolve_sheet(None)
    change = apply_action(ctx, SetValueWhere(
        target_column="Status", operator="==", condition_column="Type",
        condition_value="A", value="Done",
    ))
    assert column_values(ws, 2) == ["Done", "Open", "Done"]
    assert change.after["rows"] == [2, 4]


def test_set_value_where_not_equal():
    ctx = make_ctx([["Type", "Status"], ["A", "Open"], ["B", "Open"], [None, "Open"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SetValueWhere(
        target_column="Status", operator="!=", condition_column="Type",
        condition_value="A", value="Closed",
    ))
    assert column_values(ws, 2) == ["Open", "Closed", "Closed"]


def test_set_value_where_compares_text_of_numbers():
    ctx = make_ctx([["Code", "Flag"], [1, None], [2.0, None], ["2", None]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SetValueWhere(
        target_column="Flag", operator="==", condition_column="Code",
        condition_value="2", value="yes",
    ))
    assert column_values(ws, 2) == [None, "yes", "yes"]


def test_set_value_where_is_case_sensitive():
    ctx = make_ctx([["Type", "Status"], ["a", "Open"], ["A", "Open"]])
    ws = ctx.resolve_sheet(None)
    apply_action(ctx, SetValueWhere(
        target_column="Status", operator="==", condition_column="Type",
        condition_value="A", value="Done",
    ))
    assert column_values(ws, 2) == ["Open", "Done"]


# ---------------------------------------------------------------------------
# batches
# ---------------------------------------------------------------------------
def test_apply_actions_reresolves_headers_between_actions():
    ctx = make_ctx([["Price", "Tax"], [10, 2]])
    ws = ctx.resolve_sheet(None)
    changes = apply_actions(ctx, [
        RenameColumn(column_old="Price", column_new="Cost"),
        AddColumnSum(col_a="Cost", col_b="Tax", new_column="Total"),
        DeleteColumn(column_name="Price"),
    ])
    assert [c.skipped for c in changes] == [False, False, True]
    assert sheet_rows(ws) == [["Cost", "Tax", "Total"], [10, 2, 12]]


def test_protected_sheet_skips_column_action(sales_workbook: Path):
    ctx = WorkbookContext(sales_workbook)
    ws = ctx.get_sheet("Sales")
    before = sheet_rows(ws)
    change = apply_action(ctx, DeleteColumn(column_name="Discount"), protected_sheets={"Sales"})
    assert change.skipped
    assert change.warnings[0].code == "WARN_PROTECTED_SHEET"
    assert sheet_rows(ws) == before
