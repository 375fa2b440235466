from dataclasses import dataclass
from typing import Optional

SOURCE_LOCAL = "local"

NOOP_NO_VOLUME = "NOOP_NO_VOLUME"
MOUNT_OK = "MOUNT_OK"
ALREADY_MOUNTED_OK = "ALREADY_MOUNTED_OK"
PLAN_OK = "PLAN_OK"


@dataclass(frozen=True)
class VolumeRecord:
    name: str
    key: str
    value: str
    source: str

    @property
    def is_local(self) -> bool:
        return self.source == SOURCE_LOCAL


@dataclass
class MountState:
    mountpoint: str
    mounted: bool


@dataclass
class Flags:
    plan: bool = False
    dry_run: bool = False
    verbose: bool = False
    json: bool = True


@dataclass
class Outcome:
    result: str
    user: str
    volume: Optional[str] = None
    mountpoint: Optional[str] = None
    detail: Optional[dict] = None

    @property
    def noop(self) -> bool:
        return self.result == NOOP_NO_VOLUME

    @property
    def mounted(self) -> bool:
        return self.result in (MOUNT_OK, ALREADY_MOUNTED_OK)

    def as_dict(self) -> dict:
        payload = {"result": self.result, "user": self.user}
        if self.volume is not None:
            payload["volume"] = self.volume
        if self.mountpoint is not None:
            payload["mountpoint"] = self.mountpoint
        if self.detail:
            payload.update(self.detail)
        return payload
