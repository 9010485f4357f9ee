"""Workspace root, timezone, path helpers for Active."""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from active.errors import StoreError
from active.fileio import read_yaml


def workspace_root() -> Path:
    """Get the workspace root directory (contains data/ and profile.yaml)."""
    return Path(
        os.environ.get("ACTIVE_ROOT", str(Path.home() / "active"))
    ).expanduser().resolve()


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get user's timezone from profile.yaml, defaulting to UTC."""
    if root is None:
        root = workspace_root()
    try:
        profile = read_yaml(profile_path(root))
        if profile and "timezone" in profile:
            return ZoneInfo(str(profile["timezone"]))
    except (StoreError, ZoneInfoNotFoundError, ValueError):
        pass
    return ZoneInfo("UTC")


# ── Path helpers ──────────────────────────────────────────────

def store_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data" / "store.json"


def profile_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "profile.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"
