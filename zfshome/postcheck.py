from __future__ import annotations

from .errors import ExternalOperationError


def verify_mounted(volumes, volume: str, mountpoint: str) -> dict:
    """Confirm ``volume`` is mounted at ``mountpoint`` and shows content.

    A freshly mounted home always holds at least its dotfiles, so an empty
    directory means the mount did not land where expected.
    """

    checks = {"mounted": volumes.is_mounted(volume), "entries": 0}
    state = {"stage": "postcheck", "volume": volume, "path": mountpoint}
    if not checks["mounted"]:
        raise ExternalOperationError(f"{volume} is not mounted after mount step", state=state)
    try:
        entries = volumes.list_directory(mountpoint)
    except FileNotFoundError as exc:
        raise ExternalOperationError(f"mountpoint {mountpoint} missing for {volume}", state=state) from exc
    except OSError as exc:
        raise ExternalOperationError(
            f"mountpoint {mountpoint} unreadable for {volume}: {exc.strerror or exc}", state=state
        ) from exc
    checks["entries"] = len(entries)
    if not entries:
        raise ExternalOperationError(f"mountpoint {mountpoint} is empty after mounting {volume}", state=state)
    return checks
