"""openpyxl-based execution of interpreted actions against a loaded workbook."""

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Sequence

from openpyxl.worksheet.worksheet import Worksheet

from sheetbol.contracts.actions import (
    Action,
    AddColumnSum,
    DeleteColumn,
    FilterRows,
    RenameColumn,
    RenameSheet,
    SetValueWhere,
    SortBy,
)
from sheetbol.contracts.common import ChangeRecord, WarningDetail
from sheetbol.engine.context import WorkbookContext, normalize_header


# ---------------------------------------------------------------------------
# value helpers
# ---------------------------------------------------------------------------
def to_number(value: Any) -> int | float | None:
    """Parse a cell value as a number, or return None.

    Strings may carry thousands-separator commas. Booleans, empty cells and
    non-finite values are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    text = value.replace(",", "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        num = float(text)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def cell_text(value: Any) -> str:
    """String form of a cell value as shown to a user."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def compare_number(cell: Any, op: str, target: float) -> bool:
    """Numeric comparison; an unparseable cell only satisfies ``!=``."""
    num = to_number(cell)
    if num is None:
        return op == "!="
    return _COMPARATORS[op](num, target)


def _sort_cmp(a: Any, b: Any) -> int:
    an, bn = to_number(a), to_number(b)
    if an is not None and bn is not None:
        return (an > bn) - (an < bn)
    sa, sb = cell_text(a), cell_text(b)
    ka, kb = (sa.casefold(), sa), (sb.casefold(), sb)
    return (ka > kb) - (ka < kb)


# ---------------------------------------------------------------------------
# header resolution
# ---------------------------------------------------------------------------
def header_columns(ws: Worksheet) -> list[tuple[int, str]]:
    """(column index, raw header text) for every non-empty header in row 1."""
    headers: list[tuple[int, str]] = []
    for col in range(1, ws.max_column + 1):
        value = ws.cell(row=1, column=col).value
        if value is None or str(value).strip() == "":
            continue
        headers.append((col, str(value)))
    return headers


def find_column(ws: Worksheet, header: str) -> int | None:
    """1-based index of the first column whose header matches, case/whitespace-insensitive."""
    key = normalize_header(header)
    for col, text in header_columns(ws):
        if normalize_header(text) == key:
            return col
    return None


def last_header_column(ws: Worksheet) -> int:
    headers = header_columns(ws)
    return headers[-1][0] if headers else 0


# ---------------------------------------------------------------------------
# skipped / applied records
# ---------------------------------------------------------------------------
def _skipped(action: Action, target: str, code: str, message: str) -> ChangeRecord:
    return ChangeRecord(
        type=action.type,
        status="skipped",
        target=target,
        reason=message,
        warnings=[WarningDetail(code=code, message=message, path=target)],
    )


def _missing_columns(action: Action, ws: Worksheet, names: Sequence[str]) -> ChangeRecord:
    quoted = ", ".join(f"'{n}'" for n in names)
    return _skipped(
        action, ws.title, "WARN_COLUMN_NOT_FOUND",
        f"Column {quoted} not found in sheet '{ws.title}'",
    )


# ---------------------------------------------------------------------------
# per-action executors
# ---------------------------------------------------------------------------
def rename_sheet(ctx: WorkbookContext, action: RenameSheet) -> ChangeRecord:
    """Rename ``sheet_old`` (or the first sheet when it does not exist)."""
    ws = ctx.resolve_sheet(action.sheet_old)
    if ws is None:
        return _skipped(action, action.sheet_old, "WARN_SHEET_NOT_FOUND", "Workbook has no sheets")
    old_title = ws.title
    ws.title = action.sheet_new
    warnings: list[WarningDetail] = []
    if ws.title != action.sheet_new:
        # openpyxl suffixes a duplicate title instead of refusing it
        warnings.append(WarningDetail(
            code="WARN_SHEET_EXISTS",
            message=f"Sheet '{action.sheet_new}' already exists; renamed to '{ws.title}'",
            path=ws.title,
        ))
    return ChangeRecord(
        type=action.type,
        target=old_title,
        before=old_title,
        after=ws.title,
        impact={"cells": 0},
        warnings=warnings,
    )


def rename_column(ws: Worksheet, action: RenameColumn) -> ChangeRecord:
    col = find_column(ws, action.column_old)
    if col is None:
        return _missing_columns(action, ws, [action.column_old])
    cell = ws.cell(row=1, column=col)
    before = cell.value
    cell.value = action.column_new
    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{cell.coordinate}",
        before=before,
        after=action.column_new,
        impact={"cells": 1},
    )


def add_column_sum(ws: Worksheet, action: AddColumnSum) -> ChangeRecord:
    col_a = find_column(ws, action.col_a)
    col_b = find_column(ws, action.col_b)
    missing = [name for name, idx in ((action.col_a, col_a), (action.col_b, col_b)) if idx is None]
    if missing:
        return _missing_columns(action, ws, missing)

    new_col = last_header_column(ws) + 1
    ws.cell(row=1, column=new_col).value = action.new_column

    rows = 0
    for row in range(2, ws.max_row + 1):
        a = to_number(ws.cell(row=row, column=col_a).value) or 0
        b = to_number(ws.cell(row=row, column=col_b).value) or 0
        ws.cell(row=row, column=new_col).value = a + b
        rows += 1

    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{ws.cell(row=1, column=new_col).column_letter}",
        after={"column": action.new_column, "index": new_col, "sum_of": [action.col_a, action.col_b]},
        impact={"rows": rows, "cells": rows + 1},
    )


def delete_column(ws: Worksheet, action: DeleteColumn) -> ChangeRecord:
    col = find_column(ws, action.column_name)
    if col is None:
        return _missing_columns(action, ws, [action.column_name])
    before = ws.cell(row=1, column=col).value
    rows = ws.max_row
    ws.delete_cols(col, 1)
    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{action.column_name}",
        before={"column": before, "index": col},
        impact={"rows": rows, "cells": rows},
    )


def filter_rows(ws: Worksheet, action: FilterRows) -> ChangeRecord:
    col = find_column(ws, action.column_name)
    if col is None:
        return _missing_columns(action, ws, [action.column_name])

    last_row = ws.max_row
    drop = [
        row for row in range(2, last_row + 1)
        if not compare_number(ws.cell(row=row, column=col).value, action.operator, action.value)
    ]
    # Bottom-to-top so pending row indices stay valid.
    for row in reversed(drop):
        ws.delete_rows(row, 1)

    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{action.column_name}",
        before={"rows": last_row - 1},
        after={"rows": last_row - 1 - len(drop), "condition": f"{action.operator} {action.value:g}"},
        impact={"rows": len(drop), "cells": len(drop) * ws.max_column},
    )


def sort_by(ws: Worksheet, action: SortBy) -> ChangeRecord:
    col = find_column(ws, action.column_name)
    if col is None:
        return _missing_columns(action, ws, [action.column_name])

    width = ws.max_column
    last_row = ws.max_row
    rows = [
        [ws.cell(row=row, column=c).value for c in range(1, width + 1)]
        for row in range(2, last_row + 1)
    ]
    sign = -1 if action.direction == "desc" else 1
    rows.sort(key=cmp_to_key(lambda r1, r2: sign * _sort_cmp(r1[col - 1], r2[col - 1])))

    for offset, values in enumerate(rows):
        for c, value in enumerate(values, start=1):
            ws.cell(row=2 + offset, column=c).value = value

    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{action.column_name}",
        after={"direction": action.direction},
        impact={"rows": len(rows), "cells": len(rows) * width},
    )


def set_value_where(ws: Worksheet, action: SetValueWhere) -> ChangeRecord:
    target_col = find_column(ws, action.target_column)
    cond_col = find_column(ws, action.condition_column)
    missing = [
        name for name, idx in ((action.target_column, target_col), (action.condition_column, cond_col))
        if idx is None
    ]
    if missing:
        return _missing_columns(action, ws, missing)

    matches = _COMPARATORS[action.operator]
    updated: list[int] = []
    for row in range(2, ws.max_row + 1):
        if matches(cell_text(ws.cell(row=row, column=cond_col).value), action.condition_value):
            ws.cell(row=row, column=target_col).value = action.value
            updated.append(row)

    return ChangeRecord(
        type=action.type,
        target=f"{ws.title}!{action.target_column}",
        after={
            "value": action.value,
            "condition": f"{action.condition_column} {action.operator} '{action.condition_value}'",
            "rows": updated,
        },
        impact={"rows": len(updated), "cells": len(updated)},
    )


_SHEET_EXECUTORS: dict[str, Callable[[Worksheet, Any], ChangeRecord]] = {
    "rename_column": rename_column,
    "add_column_sum": add_column_sum,
    "delete_column": delete_column,
    "filter_rows": filter_rows,
    "sort_by": sort_by,
    "set_value_where": set_value_where,
}


def apply_action(
    ctx: WorkbookContext,
    action: Action,
    *,
    protected_sheets: Iterable[str] = (),
) -> ChangeRecord:
    """Apply one action in place. Unresolvable references yield a skipped record."""
    protected = set(protected_sheets)

    if isinstance(action, RenameSheet):
        ws = ctx.resolve_sheet(action.sheet_old)
        if ws is not None and ws.title in protected:
            return _skipped(action, ws.title, "WARN_PROTECTED_SHEET", f"Sheet '{ws.title}' is protected")
        return rename_sheet(ctx, action)

    ws = ctx.resolve_sheet(action.sheet_name)
    if ws is None:
        return _skipped(action, action.sheet_name or "", "WARN_SHEET_NOT_FOUND", "Workbook has no sheets")
    if ws.title in protected:
        return _skipped(action, ws.title, "WARN_PROTECTED_SHEET", f"Sheet '{ws.title}' is protected")
    return _SHEET_EXECUTORS[action.type](ws, action)


def apply_actions(
    ctx: WorkbookContext,
    actions: Iterable[Action],
    *,
    protected_sheets: Iterable[str] = (),
) -> list[ChangeRecord]:
    """Apply actions in order; each one re-resolves its sheet and headers."""
    protected = list(protected_sheets)
    return [apply_action(ctx, action, protected_sheets=protected) for action in actions]
