"""Shell hooks for Active.

Hooks are shell commands run when reminders are scheduled or removed,
which is how a workspace wires Active to whatever actually delivers
notifications (cron, a push service, a desktop notifier).
Configured via hooks.yaml:

    on_schedule:
      - ./bin/push-reminders
    on_unschedule:
      - command: ./bin/drop-reminders
        timeout: 10

Hook points:
- on_schedule, on_unschedule
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from active.fileio import read_yaml
from active.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {"on_schedule", "on_unschedule"}

DEFAULT_TIMEOUT = 30


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    """Load hooks configuration from hooks.yaml."""
    if root is None:
        root = workspace_root()
    path = hooks_config_path(root)
    if not path.exists():
        return {}
    return read_yaml(path)


def _hook_command(hook: Any) -> tuple[str, float]:
    """Normalize a hooks.yaml entry into (command, timeout)."""
    if isinstance(hook, str):
        return hook, DEFAULT_TIMEOUT
    if isinstance(hook, dict):
        return str(hook.get("command") or ""), float(hook.get("timeout", DEFAULT_TIMEOUT))
    return "", DEFAULT_TIMEOUT


def _run_hook(command: str, timeout: float, payload: str, root: Path) -> dict[str, Any]:
    try:
        proc = subprocess.run(
            command,
            shell=True,
            input=payload,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(root),
        )
    except subprocess.TimeoutExpired:
        return {"exit_code": -1, "error": f"Hook timed out after {timeout:g}s"}
    except OSError as e:
        return {"exit_code": -1, "error": str(e)}
    return {
        "exit_code": proc.returncode,
        "stdout": proc.stdout[:4096],
        "stderr": proc.stderr[:4096],
    }


def run_hooks(
    hook_point: str,
    payload: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run every command registered for *hook_point*, in order.

    The payload is written as JSON to each command's stdin. Unknown hook
    points and missing config run nothing. Returns one result per command
    with its exit code and captured output (or an error message).
    """
    if hook_point not in VALID_HOOK_POINTS:
        return []
    if root is None:
        root = workspace_root()

    hooks = load_hooks_config(root).get(hook_point)
    if not isinstance(hooks, list):
        return []

    payload_json = json.dumps(payload, ensure_ascii=False)
    results = []
    for hook in hooks:
        command, timeout = _hook_command(hook)
        if not command:
            continue
        result = {"command": command, "hook_point": hook_point}
        result.update(_run_hook(command, timeout, payload_json, root))
        if result["exit_code"] != 0:
            logger.warning(
                "Hook %s (%s) failed: %s",
                hook_point, command, result.get("error") or result.get("stderr", "").strip(),
            )
        results.append(result)
    return results
