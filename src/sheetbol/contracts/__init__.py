"""Pydantic models for actions, responses, and envelopes."""

from sheetbol.contracts.actions import (
    Action,
    ActionAdapter,
    ActionListAdapter,
    AddColumnSum,
    DeleteColumn,
    FilterRows,
    RenameColumn,
    RenameSheet,
    SetValueWhere,
    SortBy,
)
from sheetbol.contracts.common import (
    ChangeRecord,
    DocumentMissingError,
    ErrorDetail,
    InputError,
    InstructionMissingError,
    InstructionTooLongError,
    Metrics,
    ResponseEnvelope,
    Target,
    WarningDetail,
    WorkbookCorruptError,
)
from sheetbol.contracts.responses import (
    FileTransformResult,
    InterpretResult,
    SheetMeta,
    TransformResult,
)

__all__ = [
    "Action",
    "ActionAdapter",
    "ActionListAdapter",
    "AddColumnSum",
    "ChangeRecord",
    "DeleteColumn",
    "DocumentMissingError",
    "ErrorDetail",
    "FileTransformResult",
    "FilterRows",
    "InputError",
    "InstructionMissingError",
    "InstructionTooLongError",
    "InterpretResult",
    "Metrics",
    "RenameColumn",
    "RenameSheet",
    "ResponseEnvelope",
    "SetValueWhere",
    "SheetMeta",
    "SortBy",
    "Target",
    "TransformResult",
    "WarningDetail",
    "WorkbookCorruptError",
]
