"""Atomic file I/O utilities for Active."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from active.errors import StoreError


def read_text(path: Path) -> str:
    """Read a text file, returning empty string if missing."""
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise StoreError(f"Cannot read {path}: {e}") from e


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object, returning empty dict if missing or blank.

    A file that exists but does not hold a JSON object raises StoreError so
    callers can tell a broken file from an empty one.
    """
    text = read_text(path)
    if not text.strip():
        return {}
    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        raise StoreError(f"Malformed JSON in {path}: {e}") from e
    if not isinstance(result, dict):
        raise StoreError(f"Expected a JSON object in {path}")
    return result


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file, returning empty dict if missing, empty or not a mapping."""
    text = read_text(path)
    if not text.strip():
        return {}
    try:
        result = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise StoreError(f"Malformed YAML in {path}: {e}") from e
    return result if isinstance(result, dict) else {}


def _atomic_write(path: Path, content: str, suffix: str = ".tmp") -> None:
    """Atomic write with file locking: temp file + flock + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        os.rename(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Atomic JSON write. OS failures surface as StoreError."""
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    try:
        _atomic_write(path, content, suffix=".json")
    except OSError as e:
        raise StoreError(f"Cannot write {path}: {e}") from e
