"""ZFS dataset queries, key loading and mounting via zfs(8)."""

from __future__ import annotations

import os
from subprocess import CalledProcessError
from typing import Iterable

from .errors import ExternalOperationError
from .executil import info, run, trace
from .model import VolumeRecord
from .paths import DEFAULT_ZFS_BIN

# zfs reports these instead of a path when the dataset cannot be mounted
# with ``zfs mount``
_NO_PATH = {"", "-", "none", "legacy"}


def _message(exc: CalledProcessError) -> str:
    return (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"


def parse_get_output(text: str) -> list[VolumeRecord]:
    """Parse ``zfs get -H -o name,property,value,source`` rows."""

    records: list[VolumeRecord] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        parts = line.split("\t", 3)
        if len(parts) != 4:
            trace("zfs.get.malformed_row", row=line)
            continue
        name, key, value, source = parts
        records.append(VolumeRecord(name=name, key=key, value=value, source=source))
    return records


class ZfsVolumes:
    """Capability object handed to the mount flow.

    Every method maps to one zfs(8) invocation except
    :meth:`list_directory`, which looks at the mountpoint itself.
    """

    def __init__(self, zfs_bin: str = DEFAULT_ZFS_BIN, dry_run: bool = False) -> None:
        self.zfs_bin = zfs_bin
        self.dry_run = dry_run

    def _zfs(self, *args: str, stage: str, volume: str | None = None, **kwargs):
        cmd = [self.zfs_bin, *args]
        try:
            return run(cmd, check=True, **kwargs)
        except CalledProcessError as exc:
            raise ExternalOperationError(
                f"{stage} failed for {volume or 'all datasets'}: {_message(exc)}",
                state={"stage": stage, "volume": volume, "rc": exc.returncode},
            ) from exc
        except FileNotFoundError as exc:
            raise ExternalOperationError(
                f"{stage}: {self.zfs_bin} not found",
                state={"stage": stage, "volume": volume},
            ) from exc

    def list_properties(self, scope: str = "filesystem", keys: Iterable[str] = ("canmount",)) -> list[VolumeRecord]:
        keys = list(keys)
        res = self._zfs(
            "get", "-H", "-p", "-t", scope,
            "-o", "name,property,value,source",
            ",".join(keys),
            stage="zfs.list_properties",
        )
        records = parse_get_output(res.out)
        trace("zfs.list_properties", scope=scope, keys=keys, rows=len(records))
        return records

    def get_property(self, volume: str, key: str) -> tuple[str, str]:
        res = self._zfs(
            "get", "-H", "-p", "-o", "value,source", key, volume,
            stage="zfs.get_property", volume=volume,
        )
        line = (res.out or "").splitlines()[0] if res.out else ""
        value, _, source = line.partition("\t")
        return value.strip(), source.strip()

    def mountpoint(self, volume: str) -> str:
        value, _source = self.get_property(volume, "mountpoint")
        if value in _NO_PATH or not value.startswith("/"):
            return ""
        return value

    def is_mounted(self, volume: str) -> bool:
        value, _source = self.get_property(volume, "mounted")
        return value == "yes"

    def key_status(self, volume: str) -> str:
        value, _source = self.get_property(volume, "keystatus")
        return value

    def load_key(self, volume: str, secret: bytes | bytearray) -> bool:
        """Feed ``secret`` to ``zfs load-key``.

        Returns ``False`` when the key was already loaded, which zfs reports
        as an error but is harmless here.
        """

        try:
            res = run(
                [self.zfs_bin, "load-key", volume],
                check=False,
                dry_run=self.dry_run,
                input=secret,
            )
        except FileNotFoundError as exc:
            raise ExternalOperationError(
                f"zfs.load_key: {self.zfs_bin} not found",
                state={"stage": "zfs.load_key", "volume": volume},
            ) from exc
        if res.rc == 0:
            info("zfs.load_key.loaded", volume=volume)
            return True
        combined = f"{res.out}\n{res.err}".lower()
        if "already loaded" in combined:
            info("zfs.load_key.already_loaded", volume=volume)
            return False
        raise ExternalOperationError(
            f"zfs load-key failed for {volume}: {(res.err or res.out).strip() or f'exit status {res.rc}'}",
            state={"stage": "zfs.load_key", "volume": volume, "rc": res.rc},
        )

    def mount(self, volume: str) -> None:
        self._zfs("mount", volume, stage="zfs.mount", volume=volume, dry_run=self.dry_run)

    def list_directory(self, path: str) -> list[str]:
        return sorted(os.listdir(path))
