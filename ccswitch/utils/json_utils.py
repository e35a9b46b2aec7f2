"""JSON and file helper utilities for cc-switch."""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any


def dump_json(data: Any) -> str:
    """Serialize ``data`` the way every cc-switch JSON file is written."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_json_file(path: Path) -> Any:
    """Read and parse a JSON document.

    Raises OSError when the file cannot be read and ValueError (including
    json.JSONDecodeError) when it is not valid JSON.
    """
    return json.loads(path.read_text(encoding="utf-8"))


def write_bytes_atomic(path: Path, data: bytes, *, temp_prefix: str = ".ccswitch_") -> None:
    """Replace ``path`` with ``data`` through a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=temp_prefix, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        if path.exists():
            # mkstemp creates 0600 files; keep the permissions of the file being replaced.
            shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    finally:
        with contextlib.suppress(OSError):
            if os.path.exists(temp_path):
                os.unlink(temp_path)


def copy_file(source: Path, destination: Path) -> None:
    """Copy ``source`` over ``destination``, creating parent directories."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
