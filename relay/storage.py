"""Per-user file layout shared by the exchange log and the fact record.

Both files live side by side in one data directory and are keyed by the same
user id: ``<user_id>.txt`` for the log, ``<user_id>_context.json`` for facts.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from relay.errors import StorageError

LOG_SUFFIX = ".txt"
FACTS_SUFFIX = "_context.json"

_UNSAFE_CHARS = re.compile(r"[^\w.@+-]")


def safe_user_key(user_id: str) -> str:
    """Map an opaque user id onto a file-name-safe key."""
    key = _UNSAFE_CHARS.sub("_", str(user_id)).lstrip(".")
    return key or "_"


def log_path(data_dir: Path, user_id: str) -> Path:
    return data_dir / f"{safe_user_key(user_id)}{LOG_SUFFIX}"


def facts_path(data_dir: Path, user_id: str) -> Path:
    return data_dir / f"{safe_user_key(user_id)}{FACTS_SUFFIX}"


def append_line(path: Path, line: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line)
    except OSError as e:
        raise StorageError(str(path), str(e)) from e


def read_text(path: Path) -> str | None:
    """Return the file content, or None when the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(str(path), str(e)) from e


def write_text_atomic(path: Path, content: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        raise StorageError(str(path), str(e)) from e


def remove(path: Path) -> bool:
    """Delete path if present. Returns True when something was deleted."""
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageError(str(path), str(e)) from e
