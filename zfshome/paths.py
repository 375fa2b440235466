from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_LOG_DIR = "/var/log/zfs-home"
_FALLBACK_LOG_DIR = "/tmp/zfs-home-logs"

DEFAULT_OWNER_PROPERTY = "zfs-home:user"
DEFAULT_ZFS_BIN = "zfs"


def _expand(path: str) -> str:
    candidate = Path(path).expanduser()
    try:
        return str(candidate.resolve())
    except FileNotFoundError:
        return str(candidate)


def log_dir_candidates() -> list[str]:
    """Return the directories tried, in order, for the JSONL event log.

    ``ZFSHOME_LOG_DIR`` takes precedence.  The system log directory comes
    next and ``/tmp`` is the last resort so a read-only ``/var`` never
    blocks a login.
    """

    dirs = []
    override = os.environ.get("ZFSHOME_LOG_DIR")
    if override:
        dirs.append(_expand(override))
    dirs.extend([_DEFAULT_LOG_DIR, _FALLBACK_LOG_DIR])
    return dirs


def owner_property() -> str:
    return os.environ.get("ZFSHOME_OWNER_PROPERTY") or DEFAULT_OWNER_PROPERTY


def zfs_bin() -> str:
    return os.environ.get("ZFSHOME_ZFS_BIN") or DEFAULT_ZFS_BIN
