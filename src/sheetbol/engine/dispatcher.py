"""Envelope construction, error-code mapping and exit codes."""

from __future__ import annotations

import sys
from typing import Any

import orjson
import portalocker

from sheetbol.config import ConfigError
from sheetbol.contracts.common import (
    DocumentMissingError,
    ErrorDetail,
    InputError,
    InstructionMissingError,
    InstructionTooLongError,
    Metrics,
    ResponseEnvelope,
    Target,
    WorkbookCorruptError,
)

EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "io": 50,
    "internal": 90,
}

# First matching class wins, so subclasses go before their bases.
ERROR_CODES: tuple[tuple[type[BaseException], str], ...] = (
    (InstructionMissingError, "ERR_MISSING_INSTRUCTION"),
    (InstructionTooLongError, "ERR_INSTRUCTION_TOO_LONG"),
    (DocumentMissingError, "ERR_MISSING_DOCUMENT"),
    (WorkbookCorruptError, "ERR_WORKBOOK_CORRUPT"),
    (FileNotFoundError, "ERR_WORKBOOK_NOT_FOUND"),
    (ConfigError, "ERR_CONFIG_INVALID"),
    (portalocker.LockException, "ERR_LOCK_HELD"),
    (InputError, "ERR_INVALID_ARGUMENT"),
)

CODE_CLASSES = {
    "ERR_MISSING_INSTRUCTION": "validation",
    "ERR_INSTRUCTION_TOO_LONG": "validation",
    "ERR_MISSING_DOCUMENT": "validation",
    "ERR_CONFIG_INVALID": "validation",
    "ERR_USAGE": "validation",
    "ERR_INVALID_ARGUMENT": "validation",
    "ERR_WORKBOOK_NOT_FOUND": "io",
    "ERR_WORKBOOK_CORRUPT": "io",
    "ERR_LOCK_HELD": "io",
}


def error_code_for(exc: BaseException) -> str:
    for exc_type, code in ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "ERR_INTERNAL"


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    changes: list | None = None,
    warnings: list | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=True,
        command=command,
        target=target or Target(),
        result=result,
        changes=changes or [],
        warnings=warnings or [],
        metrics=Metrics(duration_ms=duration_ms),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[ErrorDetail(code=code, message=message, details=details)],
        metrics=Metrics(duration_ms=duration_ms),
    )


def exception_envelope(
    command: str,
    exc: BaseException,
    *,
    target: Target | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    """Error envelope for an exception raised while serving ``command``."""
    code = error_code_for(exc)
    details = {"exception": type(exc).__name__} if code == "ERR_INTERNAL" else None
    return error_envelope(
        command, code, str(exc) or type(exc).__name__,
        target=target, details=details, duration_ms=duration_ms,
    )


def output_json(envelope: ResponseEnvelope) -> str:
    return orjson.dumps(envelope.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope) -> None:
    sys.stdout.write(output_json(envelope) + "\n")


def exit_code_for(envelope: ResponseEnvelope) -> int:
    """Exit code for an envelope; unknown error codes count as internal."""
    if envelope.ok:
        return EXIT_CODES["success"]
    if not envelope.errors:
        return EXIT_CODES["internal"]
    return EXIT_CODES[CODE_CLASSES.get(envelope.errors[0].code, "internal")]
