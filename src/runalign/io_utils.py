"""Shared JSON I/O helpers."""

from __future__ import annotations

from collections.abc import Callable
import json
import os
from pathlib import Path
import tempfile
from typing import Any, Optional, TextIO

from runalign.errors import ValidationError


def read_json(path: Path) -> Any:
    if not path.exists():
        raise ValidationError(f"File not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Failed to parse JSON from {path}: {exc}") from exc


def _write_atomic(path: Path, write: Callable[[TextIO], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_handle: Optional[int] = None
    tmp_path: Optional[str] = None
    try:
        tmp_handle, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(tmp_handle, "w", encoding="utf-8") as handle:
            tmp_handle = None
            write(handle)
        os.replace(tmp_path, path)
    finally:
        if tmp_handle is not None:
            try:
                os.close(tmp_handle)
            except OSError:
                pass
        if tmp_path is not None and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                pass


def write_json_atomic(path: Path, payload: Any) -> None:
    def _dump(handle: TextIO) -> None:
        json.dump(payload, handle, indent=2, sort_keys=True)
        handle.write("\n")

    _write_atomic(path, _dump)


def write_text_atomic(path: Path, text: str) -> None:
    _write_atomic(path, lambda handle: handle.write(text))


__all__ = ["read_json", "write_json_atomic", "write_text_atomic"]
