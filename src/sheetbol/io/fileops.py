"""Workbook file handling: content fingerprints, backups, atomic replace and the write lock."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Iterable

import portalocker

_CHUNK = 1 << 16
_LOCK_FLAGS = portalocker.LOCK_EX | portalocker.LOCK_NB


def _sha256(chunks: Iterable[bytes]) -> str:
    digest = hashlib.sha256()
    for chunk in chunks:
        digest.update(chunk)
    return "sha256:" + digest.hexdigest()


def fingerprint_bytes(data: bytes) -> str:
    """Fingerprint of an in-memory workbook payload."""
    return _sha256([data])


def fingerprint(path: str | Path) -> str:
    """Fingerprint of a file on disk; equal to :func:`fingerprint_bytes` of its content."""
    with open(path, "rb") as fh:
        return _sha256(iter(lambda: fh.read(_CHUNK), b""))


def backup(path: str | Path) -> str:
    """Copy ``path`` to ``<stem>.<UTC stamp>.bak<suffix>`` beside it and return the copy's path."""
    src = Path(path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    dest = src.with_name(f"{src.stem}.{stamp}.bak{src.suffix}")
    shutil.copy2(src, dest)
    return str(dest)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Replace ``target`` with ``data`` so readers see either the old or the new file."""
    target = Path(target)
    tmp = tempfile.NamedTemporaryFile(
        dir=target.parent, prefix=".sheetbol_", suffix=target.suffix, delete=False
    )
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def read_text_safe(path: str | Path) -> str:
    """Read UTF-8 text, dropping a leading BOM if an editor added one."""
    return Path(path).read_text(encoding="utf-8-sig")


def _lock_with_deadline(fh: IO[str], timeout: float) -> None:
    """Take an exclusive lock on ``fh``, polling until ``timeout`` seconds pass."""
    deadline = time.monotonic() + max(timeout, 0)
    interval = min(0.1, max(0.01, timeout / 20)) if timeout > 0 else 0
    while True:
        try:
            portalocker.lock(fh, _LOCK_FLAGS)
            return
        except portalocker.LockException:
            if time.monotonic() >= deadline:
                raise
            time.sleep(interval)


class WorkbookLock:
    """Exclusive lock held while a workbook is rewritten.

    The lock is taken on a ``<file>.sheetbol.lock`` sidecar rather than on
    the workbook, because the workbook itself is replaced by rename. The
    sidecar records the holder's pid for diagnostics and is left behind on
    release; the OS drops the lock itself if the holder dies.
    """

    def __init__(self, workbook_path: str | Path, *, timeout: float = 0) -> None:
        workbook = Path(workbook_path).resolve()
        self.workbook_path = workbook
        self.lock_path = workbook.with_name(workbook.name + ".sheetbol.lock")
        self.timeout = timeout
        self._fh: IO[str] | None = None

    def __enter__(self) -> "WorkbookLock":
        fh = open(self.lock_path, "a+")  # noqa: SIM115
        try:
            _lock_with_deadline(fh, self.timeout)
        except portalocker.LockException:
            fh.close()
            raise
        fh.seek(0)
        fh.truncate()
        fh.write(f"pid={os.getpid()}\ntime={datetime.now(timezone.utc).isoformat()}\n")
        fh.flush()
        self._fh = fh
        return self

    def __exit__(self, *exc: object) -> None:
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            portalocker.unlock(fh)
        finally:
            fh.close()
