"""Envelope models shared by every transport, plus the input error taxonomy."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ChangeStatus = Literal["applied", "skipped"]


class InputError(Exception):
    """Raised when a request cannot be processed because its input is unusable."""


class DocumentMissingError(InputError):
    """No workbook payload was supplied."""


class InstructionMissingError(InputError):
    """The instruction text is empty."""


class InstructionTooLongError(InputError):
    """The instruction exceeds the accepted length."""


class WorkbookCorruptError(InputError):
    """The payload is not a workbook openpyxl can read."""


class Target(BaseModel):
    """Workbook a command read from and, for transforms, wrote to."""

    file: str | None = None
    out: str | None = None


class WarningDetail(BaseModel):
    code: str
    message: str
    path: str | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    duration_ms: int = 0


class ChangeRecord(BaseModel):
    """Outcome of executing one action.

    A skipped record means the action resolved to nothing in the workbook
    (unknown column, protected sheet) and the workbook was not touched.
    """

    type: str
    status: ChangeStatus = "applied"
    target: str
    before: Any | None = None
    after: Any | None = None
    reason: str | None = None
    impact: dict[str, int] = Field(default_factory=dict)
    warnings: list[WarningDetail] = Field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"


class ResponseEnvelope(BaseModel):
    """The single JSON document every CLI command prints."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    changes: list[ChangeRecord] = Field(default_factory=list)
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
