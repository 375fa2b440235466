"""Guards that refuse to mount over existing data."""

from __future__ import annotations

from typing import Callable, Sequence


def guard_mountpoint_empty(path: str, lister: Callable[[str], Sequence[str]]) -> tuple[bool, str]:
    """
    Refuse when ``path`` already holds files while the dataset is unmounted.
    Mounting on top would hide them. A missing directory is fine: zfs mount
    creates it. A path that exists but cannot be listed is refused too.
    Returns (ok, reason).
    """
    try:
        entries = list(lister(path))
    except FileNotFoundError:
        return True, ""
    except OSError as exc:
        return False, f"{path} cannot be listed: {exc.strerror or exc}."
    if entries:
        preview = ", ".join(entries[:5])
        more = "..." if len(entries) > 5 else ""
        return False, f"{path} is not empty ({len(entries)} entries: {preview}{more})."
    return True, ""
