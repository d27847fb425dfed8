"""Proxy PID tracker: makes sure engineproxy never outlives this process.

Every spawned proxy is registered here.  An ``atexit`` handler sends
SIGTERM to whatever is still registered, and the PIDs can be mirrored to
a file so the next run can kill proxies orphaned by a hard crash.
"""
from __future__ import annotations

import atexit
import logging
import os
import signal
from pathlib import Path

logger = logging.getLogger(__name__)

_tracked: dict[int, str] = {}  # pid -> label
_pid_file: Path | None = None


def set_pid_file(path: str | Path | None) -> None:
    """Mirror tracked PIDs to *path* (None disables the mirror)."""
    global _pid_file
    _pid_file = Path(path) if path else None


def tracked_pids() -> dict[int, str]:
    return dict(_tracked)


def track(pid: int, label: str = "proxy") -> None:
    _tracked[pid] = label
    _save()


def untrack(pid: int) -> None:
    _tracked.pop(pid, None)
    _save()


def _terminate(pid: int) -> bool:
    try:
        os.kill(pid, signal.SIGTERM)
        return True
    except ProcessLookupError:
        return False
    except OSError as e:
        logger.debug("Failed to signal PID %d: %s", pid, e)
        return False


def kill_all() -> None:
    """SIGTERM every tracked PID (registered with atexit)."""
    for pid, label in list(_tracked.items()):
        if _terminate(pid):
            logger.debug("Sent SIGTERM to %s (pid %d)", label, pid)
    _tracked.clear()
    _save()


def cleanup_stale_pids() -> int:
    """Kill proxies left behind by a previous run. Returns how many."""
    if not _pid_file or not _pid_file.exists():
        return 0
    killed = 0
    try:
        lines = _pid_file.read_text().splitlines()
    except OSError:
        lines = []
    for line in lines:
        pid_text, _, label = line.strip().partition(" ")
        if not (pid_text.isascii() and pid_text.isdigit()):
            continue
        if _terminate(int(pid_text)):
            killed += 1
            logger.info("Killed stale %s (pid %s)", label or "process", pid_text)
    try:
        _pid_file.unlink(missing_ok=True)
    except OSError:
        pass
    return killed


def _save() -> None:
    if not _pid_file:
        return
    try:
        _pid_file.parent.mkdir(parents=True, exist_ok=True)
        _pid_file.write_text(
            "".join(f"{pid} {label}\n" for pid, label in _tracked.items())
        )
    except OSError:
        pass


atexit.register(kill_all)
