"""WorkbookContext: loads a workbook and exposes the sheet-level operations the executor needs."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import openpyxl
from openpyxl.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from sheetbol.contracts.common import DocumentMissingError, WorkbookCorruptError
from sheetbol.contracts.responses import SheetMeta
from sheetbol.io.fileops import atomic_write, fingerprint_bytes


def normalize_header(value: object) -> str:
    """Lowercase, collapse whitespace runs and trim a header label."""
    if value is None:
        return ""
    return " ".join(str(value).split()).lower()


class WorkbookContext:
    """Wraps an openpyxl workbook loaded for a single request."""

    def __init__(self, path: str | Path) -> None:
        self.path: Path | None = Path(path).resolve()
        if not self.path.exists():
            raise FileNotFoundError(f"Workbook not found: {self.path}")
        self._init_from_bytes(self.path.read_bytes(), source=str(self.path))

    @classmethod
    def from_bytes(cls, data: bytes) -> "WorkbookContext":
        """Load a workbook from an in-memory payload."""
        if not data:
            raise DocumentMissingError("No workbook data supplied")
        ctx = cls.__new__(cls)
        ctx.path = None
        ctx._init_from_bytes(data, source="<bytes>")
        return ctx

    def _init_from_bytes(self, data: bytes, *, source: str) -> None:
        self.fp = fingerprint_bytes(data)
        try:
            self.wb: Workbook = openpyxl.load_workbook(BytesIO(data))
        except Exception as e:
            raise WorkbookCorruptError(f"Cannot open workbook {source}: {e}") from e

    @property
    def sheet_names(self) -> list[str]:
        return list(self.wb.sheetnames)

    def get_sheet(self, name: str) -> Worksheet:
        if name not in self.wb.sheetnames:
            raise KeyError(f"Sheet not found: {name}")
        return self.wb[name]

    def resolve_sheet(self, name: str | None) -> Worksheet | None:
        """Return the sheet titled ``name``, else the first sheet."""
        if name and name in self.wb.sheetnames:
            return self.wb[name]
        if not self.wb.worksheets:
            return None
        return self.wb.worksheets[0]

    def list_sheets(self) -> list[SheetMeta]:
        sheets: list[SheetMeta] = []
        for idx, ws in enumerate(self.wb.worksheets):
            headers = ["" if cell.value is None else str(cell.value) for cell in ws[1]]
            while headers and not headers[-1]:
                headers.pop()
            sheets.append(SheetMeta(
                name=ws.title,
                index=idx,
                max_row=ws.max_row,
                max_column=ws.max_column,
                headers=headers,
            ))
        return sheets

    def save(self, path: str | Path | None = None) -> bytes:
        """Save workbook to bytes. Optionally write atomically to a path."""
        buf = BytesIO()
        self.wb.save(buf)
        data = buf.getvalue()
        if path:
            atomic_write(path, data)
        return data

    def close(self) -> None:
        self.wb.close()
