"""Typer CLI application: top-level commands and subcommand groups."""

from __future__ import annotations

from typing import Annotated, Optional

import typer

import sheetbol
from sheetbol.config import ConfigError, Settings
from sheetbol.contracts.common import InputError, Target, WorkbookCorruptError
from sheetbol.contracts.responses import InterpretResult
from sheetbol.engine.dispatcher import (
    exception_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from sheetbol.observe.events import EventEmitter, Timer

# ---------------------------------------------------------------------------
# App & subcommand groups
# ---------------------------------------------------------------------------

_MAIN_HELP = """\
Edit Excel workbooks (.xlsx) with short instructions in Hindi, English, or a mix of both.

**Recommended workflow:**  sheet ls → interpret → transform --dry-run → transform

1. `sheetbol sheet ls -f data.xlsx`  — discover sheets and header labels
2. `sheetbol interpret -f data.xlsx -i "Amount ke hisaab se sort karo desc"`  — see the parsed action
3. `sheetbol transform -f data.xlsx -i "..." --dry-run`  — preview without writing
4. `sheetbol transform -f data.xlsx -i "..." --out updated.xlsx`

**Recognized instructions** (one action per instruction, first match wins):
- `Sales sheet ka naam Revenue rakho` / `rename sheet Sales to Revenue`
- `Price column ka naam Cost rakho` / `rename column Price to Cost`
- `Total column add karo jo Price + Tax ho`
- `Discount column hatao` / `delete column Discount`
- `sirf woh rows rakho jahan Quantity > 10` / `keep rows where Quantity > 10`
- `sort by Amount desc` / `Amount ke hisaab se sort karo`
- `Status ko 'Done' set karo jahan Type == 'A'`

Anything else is a no-op: the workbook is left unchanged.

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "warnings": [...], "metrics": {"duration_ms": N}}`

**Exit codes:** 0=success, 10=validation, 50=io, 90=internal
"""

_SHEET_EPILOG = """\
**Examples:**

`sheetbol sheet ls -f data.xlsx`  — list sheets with extents and row-1 headers

Column names in instructions are matched against these headers, ignoring case and extra spaces.
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(sheetbol.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="sheetbol",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

sheet_app = typer.Typer(
    name="sheet", help="Sheet listing and discovery.",
    epilog=_SHEET_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)

app.add_typer(sheet_app)


@app.callback(invoke_without_command=True)
def main_callback(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FilePath = Annotated[str, typer.Option("--file", "-f", help="Path to .xlsx workbook file")]
InstructionOpt = Annotated[str, typer.Option("--instruction", "-i", help="Instruction text (Hindi, English, or mixed)")]
ConfigOpt = Annotated[Optional[str], typer.Option("--config", help="Path to sheetbol.yaml (default: ./sheetbol.yaml or $SHEETBOL_CONFIG)")]
JsonFlag = Annotated[bool, typer.Option("--json", help="JSON output (always on — all output is JSON)")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _load_settings_or_emit(config: str | None, cmd: str) -> Settings:
    try:
        return Settings.discover(config)
    except ConfigError as e:
        _emit(exception_envelope(cmd, e))


def _load_ctx_or_emit(file: str, cmd: str):
    """Load a WorkbookContext, or emit an error envelope."""
    from sheetbol.engine.context import WorkbookContext

    try:
        return WorkbookContext(file)
    except (FileNotFoundError, WorkbookCorruptError) as e:
        _emit(exception_envelope(cmd, e, target=Target(file=file)))


# ---------------------------------------------------------------------------
# sheetbol version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the sheetbol version.

    Example: `sheetbol version`
    """
    _emit(success_envelope("version", {"version": sheetbol.__version__}))


# ---------------------------------------------------------------------------
# sheetbol sheet ls
# ---------------------------------------------------------------------------
@sheet_app.command("ls")
def sheet_ls(
    file: FilePath,
    json_out: JsonFlag = True,
):
    """List all sheets with name, index, extents and header labels.

    Example: `sheetbol sheet ls -f data.xlsx`
    """
    with Timer() as t:
        ctx = _load_ctx_or_emit(file, "sheet.ls")
        sheets = ctx.list_sheets()
        ctx.close()

    _emit(success_envelope(
        "sheet.ls",
        [s.model_dump() for s in sheets],
        target=Target(file=file),
        duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# sheetbol interpret
# ---------------------------------------------------------------------------
@app.command("interpret")
def interpret_cmd(
    instruction: InstructionOpt,
    file: Annotated[Optional[str], typer.Option("--file", "-f", help="Workbook whose sheet names are used to detect the target sheet")] = None,
    sheets: Annotated[Optional[str], typer.Option("--sheets", help="Comma-separated sheet names, used when no --file is given")] = None,
    json_out: JsonFlag = True,
):
    """Show the action an instruction maps to. Non-mutating.

    Returns zero or one actions. An empty list means the instruction is not
    recognized and `transform` would leave the workbook unchanged.

    Example: `sheetbol interpret -i "sort by Amount desc"`

    Example: `sheetbol interpret -f data.xlsx -i "Sales sheet me Discount column hatao"`
    """
    from sheetbol.engine.interpreter import interpret
    from sheetbol.engine.pipeline import require_instruction

    with Timer() as t:
        try:
            require_instruction(instruction)
        except InputError as e:
            _emit(exception_envelope("interpret", e))

        sheet_names: list[str] = []
        if file:
            ctx = _load_ctx_or_emit(file, "interpret")
            sheet_names = ctx.sheet_names
            ctx.close()
        elif sheets:
            sheet_names = [s.strip() for s in sheets.split(",") if s.strip()]

        actions = interpret(instruction, sheet_names)

    result = InterpretResult(
        instruction=instruction,
        sheet_names=sheet_names,
        actions=[a.model_dump() for a in actions],
        recognized=bool(actions),
    )
    _emit(success_envelope(
        "interpret",
        result.model_dump(),
        target=Target(file=file),
        duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# sheetbol transform
# ---------------------------------------------------------------------------
@app.command("transform")
def transform_cmd(
    file: FilePath,
    instruction: InstructionOpt,
    out: Annotated[Optional[str], typer.Option("--out", "-o", help="Write the result here instead of rewriting --file")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Interpret and apply in memory without writing to disk")] = False,
    do_backup: Annotated[Optional[bool], typer.Option("--backup/--no-backup", help="Create timestamped .bak copy before overwriting (default from config: on)")] = None,
    config: ConfigOpt = None,
    events: Annotated[bool, typer.Option("--events", help="Emit NDJSON lifecycle events to stderr")] = False,
    json_out: JsonFlag = True,
):
    """Interpret an instruction and apply it to a workbook. Mutating.

    Unrecognized instructions and unknown sheet/column names are not errors:
    the workbook is left unchanged and the envelope carries warnings.

    Example (preview): `sheetbol transform -f data.xlsx -i "keep rows where Quantity > 10" --dry-run`

    Example: `sheetbol transform -f data.xlsx -i "Total column add karo jo Price + Tax ho" --out updated.xlsx`
    """
    from sheetbol.engine.pipeline import transform_file

    settings = _load_settings_or_emit(config, "transform")
    emitter = EventEmitter(enabled=events or settings.emit_events)
    target = Target(file=file, out=out)

    with Timer() as t:
        try:
            result, summary = transform_file(
                file,
                instruction,
                out=out,
                dry_run=dry_run,
                do_backup=do_backup,
                settings=settings,
                emitter=emitter,
            )
        except Exception as e:
            _emit(exception_envelope("transform", e, target=target, duration_ms=t.elapsed_ms))

    _emit(success_envelope(
        "transform",
        summary.model_dump(),
        target=target,
        changes=result.changes,
        warnings=result.warnings,
        duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# sheetbol serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve_cmd(
    config: ConfigOpt = None,
):
    """Start the stdio server for agent tool integration.

    Reads one JSON request per line from stdin and writes one JSON response per line:
    `{"id": "1", "command": "transform", "args": {"file": "data.xlsx", "instruction": "sort by Amount desc"}}`

    Commands: `interpret`, `transform` (with `file` or base64 `data`), `sheet.ls`.

    Example: `sheetbol serve`
    """
    from sheetbol.server.stdio import StdioServer

    settings = _load_settings_or_emit(config, "serve")
    StdioServer(settings).run()


# ---------------------------------------------------------------------------
# Entrypoint (for `python -m sheetbol`)
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        # Unhandled exceptions still produce a JSON envelope.
        print_response(exception_envelope("unknown", exc))
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
