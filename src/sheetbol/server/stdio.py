"""stdio server mode: JSON line-delimited protocol over stdin/stdout."""

from __future__ import annotations

import base64
import binascii
import sys
from typing import Any, Callable, TextIO

import orjson

from sheetbol.config import Settings
from sheetbol.contracts.common import InputError
from sheetbol.engine.context import WorkbookContext
from sheetbol.engine.dispatcher import error_code_for
from sheetbol.engine.interpreter import interpret
from sheetbol.engine.pipeline import require_instruction, transform_bytes, transform_file
from sheetbol.observe.events import EventEmitter

Handler = Callable[[dict[str, Any], EventEmitter], Any]


class StdioServer:
    """Line-oriented request/response server for agent tool integration.

    Request:  ``{"id": "1", "command": "transform", "args": {...}}``
    Response: ``{"id": "1", "ok": true, "result": ...}`` or
    ``{"id": "1", "ok": false, "code": "ERR_...", "error": "..."}``

    Requests are independent; no workbook stays loaded between them.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.handlers: dict[str, Handler] = {
            "interpret": self._interpret,
            "transform": self._transform,
            "sheet.ls": self._sheet_ls,
        }

    def _interpret(self, args: dict[str, Any], emitter: EventEmitter) -> Any:
        text = require_instruction(args.get("instruction"))
        sheet_names = list(args.get("sheets") or [])
        if args.get("file"):
            ctx = WorkbookContext(args["file"])
            sheet_names = ctx.sheet_names
            ctx.close()
        return [a.model_dump() for a in interpret(text, sheet_names)]

    def _transform(self, args: dict[str, Any], emitter: EventEmitter) -> Any:
        instruction = args.get("instruction")
        if "data" in args:
            try:
                payload = base64.b64decode(args["data"] or "", validate=True)
            except (binascii.Error, TypeError) as e:
                raise InputError(f"Invalid base64 'data': {e}") from e
            result = transform_bytes(payload, instruction, settings=self.settings, emitter=emitter)
            body = result.model_dump(mode="json")
            body["data"] = base64.b64encode(result.data).decode("ascii")
            return body

        if not args.get("file"):
            raise InputError("Provide 'file' or base64 'data' in args")
        _, summary = transform_file(
            args["file"],
            instruction,
            out=args.get("out"),
            dry_run=bool(args.get("dry_run", False)),
            do_backup=args.get("backup"),
            settings=self.settings,
            emitter=emitter,
        )
        return summary.model_dump(mode="json")

    def _sheet_ls(self, args: dict[str, Any], emitter: EventEmitter) -> Any:
        if not args.get("file"):
            raise InputError("Missing 'file' in args")
        ctx = WorkbookContext(args["file"])
        try:
            return [s.model_dump() for s in ctx.list_sheets()]
        finally:
            ctx.close()

    def handle_request(self, request: dict[str, Any]) -> dict[str, Any]:
        req_id = request.get("id", "")
        command = request.get("command", "")
        handler = self.handlers.get(command)
        if handler is None:
            return {"id": req_id, "ok": False, "code": "ERR_USAGE", "error": f"Unknown command: {command}"}

        emitter = EventEmitter(enabled=self.settings.emit_events, request_id=str(req_id) or None)
        try:
            result = handler(request.get("args") or {}, emitter)
        except Exception as e:
            return {"id": req_id, "ok": False, "code": error_code_for(e), "error": str(e)}
        return {"id": req_id, "ok": True, "result": result}

    def handle_line(self, line: str) -> dict[str, Any]:
        try:
            request = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            return {"ok": False, "code": "ERR_USAGE", "error": f"Invalid JSON: {e}"}
        if not isinstance(request, dict):
            return {"ok": False, "code": "ERR_USAGE", "error": "Request must be a JSON object"}
        return self.handle_request(request)

    def run(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        """Serve until stdin closes; one response line per non-blank request line."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        for line in stdin:
            if not line.strip():
                continue
            response = self.handle_line(line)
            stdout.write(orjson.dumps(response, default=str).decode() + "\n")
            stdout.flush()
