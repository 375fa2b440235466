"""Failure classes raised by the unlock-and-mount flow."""

from __future__ import annotations


class MountError(RuntimeError):
    """Base for fatal conditions; ``result`` names the exit code key."""

    result = "FAIL_UNHANDLED"

    def __init__(self, message: str, *, state: dict | None = None) -> None:
        super().__init__(message)
        self.state = state or {}


class InputError(MountError):
    """Missing username, unreadable secret or malformed option."""

    result = "FAIL_INPUT"


class ConfigurationError(MountError):
    """The resolved dataset has no usable mountpoint."""

    result = "FAIL_CONFIG"


class UnsafeStateError(MountError):
    """Mountpoint is populated while the dataset reports unmounted."""

    result = "FAIL_UNSAFE_STATE"


class ExternalOperationError(MountError):
    """A zfs command failed or the post-mount state is wrong."""

    result = "FAIL_EXTERNAL"
