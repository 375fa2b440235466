from __future__ import annotations

"""Subprocess wrapper and JSON-lines event log."""

import datetime as _dt
import json
import os
import shlex
import subprocess
import sys
import time
from typing import Sequence

from .paths import log_dir_candidates


LOG_DIRS: list[str] | None = None
LOG_PATH: str | None = None
LOG_NAME = "zfs-home.jsonl"


def _log_dirs() -> list[str]:
    if LOG_DIRS:
        return list(LOG_DIRS)
    return log_dir_candidates()


def _ensure_logger() -> str | None:
    global LOG_PATH
    if LOG_PATH:
        return LOG_PATH
    for d in _log_dirs():
        d_expanded = os.path.expanduser(d)
        try:
            os.makedirs(d_expanded, mode=0o700, exist_ok=True)
            LOG_PATH = os.path.join(d_expanded, LOG_NAME)
            return LOG_PATH
        except OSError:
            continue
    LOG_PATH = None
    return None


def resolve_log_path() -> str | None:
    """Return the active log path, creating directories when possible."""

    return _ensure_logger()


def _now() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _log_event(kind: str, cmd: list[str], rc: int = None, out: str = None, err: str = None, dur: float = None):
    # raw exec/done records sit at INFO
    if not _enabled("INFO"):
        return
    line = {"ts": _now(), "kind": kind, "cmd": cmd, "rc": rc, "dur": dur, "out": out, "err": err}
    _write_jsonl(line)


class Result:
    def __init__(self, rc: int, out: str, err: str, duration: float):
        self.rc, self.out, self.err, self.duration = rc, out, err, duration


LEVELS = {"TRACE": 10, "INFO": 20, "WARN": 30, "ERROR": 40, "NONE": 100}
LOG_LEVEL = os.environ.get("ZFSHOME_LOG_LEVEL", "INFO").upper()

# --verbose mirrors every emitted record to stderr
ECHO_STDERR = False


def _enabled(level: str) -> bool:
    return LEVELS.get(level.upper(), 100) >= LEVELS.get(LOG_LEVEL, 20)


def _write_jsonl(obj: dict):
    path = _ensure_logger()
    try:
        if path:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(obj) + "\n")
    except OSError:
        pass


def _echo(rec: dict):
    fields = " ".join(
        f"{k}={v}" for k, v in rec.items() if k not in ("ts", "level", "event")
    )
    print(f"[{rec['level']}] {rec['event']} {fields}".rstrip(), file=sys.stderr)


def log(level: str, event: str, **fields):
    if not _enabled(level):
        return
    rec = {"ts": _now(), "level": level.upper(), "event": event}
    rec.update(fields)
    _write_jsonl(rec)
    if ECHO_STDERR:
        _echo(rec)


def trace(event: str, **fields):
    log("TRACE", event, **fields)


def info(event: str, **fields):
    log("INFO", event, **fields)


def warn(event: str, **fields):
    log("WARN", event, **fields)


def error(event: str, **fields):
    log("ERROR", event, **fields)


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run(
    cmd: Sequence[str],
    check: bool = True,
    dry_run: bool = False,
    timeout: float | None = None,
    env: dict | None = None,
    input: bytes | None = None,
) -> Result:
    """Run ``cmd`` and capture its output.

    ``input`` is fed to the child's stdin and is never written to the event
    log.  No timeout is applied unless one is passed explicitly.
    """

    trace("exec.start", cmd=list(cmd), stdin=input is not None)
    _log_event("exec", list(cmd))
    started = time.time()
    if dry_run:
        text = "DRY-RUN: " + " ".join(shlex.quote(c) for c in cmd)
        return Result(0, text, "", 0.0)
    proc = subprocess.run(cmd, input=input, capture_output=True, timeout=timeout, env=env)
    out, err = _decode(proc.stdout), _decode(proc.stderr)
    dur = time.time() - started
    trace("exec.done", cmd=list(cmd), rc=proc.returncode, dur=dur)
    _log_event("done", list(cmd), rc=proc.returncode, out=out, err=err, dur=dur)
    if check and proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, cmd, out, err)
    return Result(proc.returncode, out, err, dur)


def append_jsonl(path: str, obj: dict):
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(obj, ensure_ascii=False) + "\n")
    except OSError:
        pass
