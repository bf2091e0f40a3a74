"""Command-specific result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sheetbol.contracts.common import ChangeRecord, WarningDetail


class SheetMeta(BaseModel):
    """Metadata for a single worksheet."""

    name: str
    index: int
    max_row: int = 0
    max_column: int = 0
    headers: list[str] = Field(default_factory=list)


class InterpretResult(BaseModel):
    """Result of ``sheetbol interpret``."""

    instruction: str
    sheet_names: list[str] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    recognized: bool = False


class TransformResult(BaseModel):
    """Outcome of one load -> interpret -> apply -> save request."""

    instruction: str
    actions: list[dict[str, Any]] = Field(default_factory=list)
    changes: list[ChangeRecord] = Field(default_factory=list)
    warnings: list[WarningDetail] = Field(default_factory=list)
    fingerprint_before: str = ""
    fingerprint_after: str = ""
    data: bytes = Field(default=b"", exclude=True, repr=False)

    @property
    def recognized(self) -> bool:
        return bool(self.actions)

    @property
    def modified(self) -> bool:
        return any(not c.skipped for c in self.changes)


class FileTransformResult(BaseModel):
    """Result of ``sheetbol transform`` for a workbook on disk."""

    applied: bool = False
    dry_run: bool = False
    recognized: bool = False
    out: str | None = None
    backup_path: str | None = None
    actions: list[dict[str, Any]] = Field(default_factory=list)
    actions_applied: int = 0
    actions_skipped: int = 0
    fingerprint_before: str = ""
    fingerprint_after: str | None = None
