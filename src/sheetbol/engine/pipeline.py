"""Request pipeline: load -> interpret -> apply -> save."""

from __future__ import annotations

from pathlib import Path

from sheetbol.adapters.openpyxl_engine import apply_action
from sheetbol.config import Settings
from sheetbol.contracts.common import (
    ChangeRecord,
    DocumentMissingError,
    InstructionMissingError,
    InstructionTooLongError,
    WarningDetail,
)
from sheetbol.contracts.responses import FileTransformResult, TransformResult
from sheetbol.engine.context import WorkbookContext
from sheetbol.engine.interpreter import MAX_INSTRUCTION_LENGTH, interpret
from sheetbol.io.fileops import WorkbookLock, atomic_write, backup, fingerprint_bytes
from sheetbol.observe.events import EventEmitter


def require_instruction(instruction: str | None) -> str:
    """Stripped instruction text; rejects empty and over-long input."""
    text = (instruction or "").strip()
    if not text:
        raise InstructionMissingError("Instruction required")
    if len(text) > MAX_INSTRUCTION_LENGTH:
        raise InstructionTooLongError(
            f"Instruction is {len(text)} characters; the limit is {MAX_INSTRUCTION_LENGTH}"
        )
    return text


def transform_bytes(
    data: bytes | None,
    instruction: str | None,
    *,
    settings: Settings | None = None,
    emitter: EventEmitter | None = None,
) -> TransformResult:
    """Run one request over an in-memory workbook and return the new payload.

    Raises :class:`InputError` subclasses for a missing payload, a missing
    instruction or an unparsable workbook. Any other exception propagates.
    """
    settings = settings or Settings()
    emitter = emitter or EventEmitter(enabled=settings.emit_events)

    if not data:
        raise DocumentMissingError("No file uploaded")
    text = require_instruction(instruction)

    ctx = WorkbookContext.from_bytes(data)
    try:
        emitter.emit("transform.start", {"fingerprint": ctx.fp, "sheets": ctx.sheet_names})
        actions = interpret(text, ctx.sheet_names)
        emitter.emit("transform.interpreted", {
            "instruction": text,
            "actions": [a.model_dump() for a in actions],
        })

        changes: list[ChangeRecord] = []
        warnings: list[WarningDetail] = []
        for action in actions:
            change = apply_action(ctx, action, protected_sheets=settings.protected_sheets)
            changes.append(change)
            warnings.extend(change.warnings)
            if change.skipped:
                emitter.emit("action.skipped", {"type": action.type, "reason": change.reason})
            else:
                emitter.emit("action.applied", {"type": action.type, "target": change.target})

        out = ctx.save()
    finally:
        ctx.close()

    result = TransformResult(
        instruction=text,
        actions=[a.model_dump() for a in actions],
        changes=changes,
        warnings=warnings,
        fingerprint_before=ctx.fp,
        fingerprint_after=fingerprint_bytes(out),
        data=out,
    )
    emitter.emit("transform.done", {
        "recognized": result.recognized,
        "modified": result.modified,
        "bytes": len(out),
    })
    return result


def transform_file(
    path: str | Path,
    instruction: str | None,
    *,
    out: str | Path | None = None,
    dry_run: bool = False,
    do_backup: bool | None = None,
    settings: Settings | None = None,
    emitter: EventEmitter | None = None,
) -> tuple[TransformResult, FileTransformResult]:
    """Transform a workbook on disk.

    Writes to ``out`` when given, otherwise rewrites ``path`` in place under a
    :class:`WorkbookLock`. Nothing is written on ``dry_run``.
    """
    settings = settings or Settings()
    src = Path(path)
    if not src.exists():
        raise FileNotFoundError(f"Workbook not found: {src}")
    require_instruction(instruction)
    dest = Path(out) if out else src
    in_place = dest.resolve() == src.resolve()
    if do_backup is None:
        do_backup = settings.backup

    with WorkbookLock(dest, timeout=settings.lock_timeout):
        result = transform_bytes(src.read_bytes(), instruction, settings=settings, emitter=emitter)

        backup_path = None
        written = False
        if not dry_run and (result.modified or not in_place):
            if do_backup and dest.exists():
                backup_path = backup(dest)
            atomic_write(dest, result.data)
            written = True

    applied = [c for c in result.changes if not c.skipped]
    summary = FileTransformResult(
        applied=written,
        dry_run=dry_run,
        recognized=result.recognized,
        out=str(dest),
        backup_path=backup_path,
        actions=result.actions,
        actions_applied=len(applied),
        actions_skipped=len(result.changes) - len(applied),
        fingerprint_before=result.fingerprint_before,
        fingerprint_after=result.fingerprint_after if written else None,
    )
    return result, summary
