"""Action models: the structured commands produced by the interpreter."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

CompareOp = Literal[">", ">=", "<", "<=", "==", "!="]
EqualityOp = Literal["==", "!="]
SortDirection = Literal["asc", "desc"]


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class RenameSheet(_ActionBase):
    """Rename a worksheet."""

    type: Literal["rename_sheet"] = "rename_sheet"
    sheet_old: str
    sheet_new: str


class RenameColumn(_ActionBase):
    """Rename the first column whose header matches ``column_old``."""

    type: Literal["rename_column"] = "rename_column"
    sheet_name: str | None = None
    column_old: str
    column_new: str


class AddColumnSum(_ActionBase):
    """Append a column holding ``col_a + col_b`` for every data row."""

    type: Literal["add_column_sum"] = "add_column_sum"
    sheet_name: str | None = None
    col_a: str
    col_b: str
    new_column: str


class DeleteColumn(_ActionBase):
    """Remove a column across all rows."""

    type: Literal["delete_column"] = "delete_column"
    sheet_name: str | None = None
    column_name: str


class FilterRows(_ActionBase):
    """Keep only the data rows whose numeric cell satisfies the comparison."""

    type: Literal["filter_rows"] = "filter_rows"
    sheet_name: str | None = None
    column_name: str
    operator: CompareOp
    value: float


class SortBy(_ActionBase):
    """Sort data rows by one column."""

    type: Literal["sort_by"] = "sort_by"
    sheet_name: str | None = None
    column_name: str
    direction: SortDirection = "asc"


class SetValueWhere(_ActionBase):
    """Overwrite ``target_column`` with ``value`` where the condition holds."""

    type: Literal["set_value_where"] = "set_value_where"
    sheet_name: str | None = None
    target_column: str
    operator: EqualityOp
    condition_column: str
    condition_value: str
    value: str


Action = Annotated[
    Union[
        RenameSheet,
        RenameColumn,
        AddColumnSum,
        DeleteColumn,
        FilterRows,
        SortBy,
        SetValueWhere,
    ],
    Field(discriminator="type"),
]

ActionAdapter: TypeAdapter[Action] = TypeAdapter(Action)
ActionListAdapter: TypeAdapter[list[Action]] = TypeAdapter(list[Action])
