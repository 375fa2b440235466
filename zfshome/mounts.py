"""Unlock-and-mount flow for a user's encrypted home dataset."""

from __future__ import annotations

from typing import Iterable, Optional

from . import postcheck, safety
from .errors import ConfigurationError, ExternalOperationError, UnsafeStateError
from .executil import error, info, warn
from .model import (
    ALREADY_MOUNTED_OK,
    MOUNT_OK,
    NOOP_NO_VOLUME,
    PLAN_OK,
    MountState,
    Outcome,
    VolumeRecord,
)
from .paths import DEFAULT_OWNER_PROPERTY
from .resolver import CANMOUNT, candidates, resolve


def _catalog(volumes, owner_key: str) -> list[VolumeRecord]:
    return list(volumes.list_properties(scope="filesystem", keys=(owner_key, CANMOUNT)))


def _unlock_and_mount(volumes, volume: str, mountpoint: str, secret: bytes) -> dict:
    ok, reason = safety.guard_mountpoint_empty(mountpoint, volumes.list_directory)
    if not ok:
        error("mounts.unsafe_mountpoint", volume=volume, path=mountpoint, reason=reason)
        raise UnsafeStateError(
            f"refusing to mount {volume}: {reason}",
            state={"stage": "safety", "volume": volume, "path": mountpoint},
        )

    loaded = volumes.load_key(volume, secret)
    if not loaded:
        info("mounts.key_already_loaded", volume=volume)
    volumes.mount(volume)
    info("mounts.mount_issued", volume=volume, path=mountpoint)
    if getattr(volumes, "dry_run", False):
        return {"key_loaded": loaded, "dry_run": True}

    if not volumes.is_mounted(volume):
        raise ExternalOperationError(
            f"{volume} does not report mounted after zfs mount",
            state={"stage": "mount", "volume": volume, "path": mountpoint},
        )
    return {"key_loaded": loaded}


def run(
        requesting_user: str,
        secret: bytes,
        volumes,
        owner_key: str = DEFAULT_OWNER_PROPERTY,
        catalog: Optional[Iterable[VolumeRecord]] = None,
        plan: bool = False,
) -> Outcome:
    """Resolve, unlock and mount ``requesting_user``'s home dataset.

    Returns an :class:`Outcome` for the two success shapes (nothing to do,
    mounted).  Fatal conditions raise a :class:`~zfshome.errors.MountError`
    subclass and nothing is retried.
    """

    records = list(catalog) if catalog is not None else _catalog(volumes, owner_key)
    volume = resolve(records, requesting_user, owner_key)
    if volume is None:
        info("mounts.no_volume", user=requesting_user, owner_key=owner_key, rows=len(records))
        return Outcome(NOOP_NO_VOLUME, requesting_user)

    matches = candidates(records, requesting_user, owner_key)
    info("mounts.resolved", user=requesting_user, volume=volume, candidates=matches)

    mountpoint = volumes.mountpoint(volume)
    if not mountpoint:
        raise ConfigurationError(
            f"{volume} has no usable mountpoint",
            state={"stage": "mountpoint", "volume": volume},
        )

    state = MountState(mountpoint=mountpoint, mounted=volumes.is_mounted(volume))
    if plan:
        action = "postcheck" if state.mounted else "load-key+mount"
        return Outcome(
            PLAN_OK, requesting_user, volume, mountpoint,
            detail={
                "mounted": state.mounted,
                "keystatus": volumes.key_status(volume),
                "action": action,
                "candidates": matches,
            },
        )

    if state.mounted:
        warn("mounts.already_mounted", volume=volume, path=mountpoint)
        detail = {"skipped": ["load-key", "mount"]}
        result = ALREADY_MOUNTED_OK
    else:
        detail = _unlock_and_mount(volumes, volume, mountpoint, secret)
        result = MOUNT_OK

    if not detail.get("dry_run"):
        detail["checks"] = postcheck.verify_mounted(volumes, volume, mountpoint)
    info("mounts.done", result=result, volume=volume, path=mountpoint)
    return Outcome(result, requesting_user, volume, mountpoint, detail=detail)
