"""CLI entrypoint run by pam_exec at login."""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from typing import Any, BinaryIO, Dict, Optional

from . import executil, mounts
from .errors import InputError, MountError
from .executil import append_jsonl, resolve_log_path, trace
from .model import Flags
from .paths import owner_property, zfs_bin
from .zfs import ZfsVolumes

RESULT_CODES: Dict[str, int] = {
    "MOUNT_OK": 0,
    "ALREADY_MOUNTED_OK": 0,
    "PLAN_OK": 0,
    "NOOP_NO_VOLUME": 1,
    "NOOP_PAM_TYPE": 1,
    "FAIL_INPUT": 2,
    "FAIL_CONFIG": 3,
    "FAIL_UNSAFE_STATE": 4,
    "FAIL_EXTERNAL": 5,
    "FAIL_UNHANDLED": 9,
}

JSON_OUTPUT_ENABLED = True
CLI_START_MONO = time.perf_counter()
_CHUNK = 4096


def _emit_result(kind: str, extra: Optional[Dict[str, Any]] = None) -> None:
    payload: Dict[str, Any] = {"result": kind, "ts": int(time.time())}
    if extra:
        payload.update(extra)
    payload["timing_total_ms"] = int(max(0.0, (time.perf_counter() - CLI_START_MONO) * 1000))
    log_path = resolve_log_path()
    if log_path:
        payload.setdefault("log_path", log_path)
        append_jsonl(log_path, payload)
    if JSON_OUTPUT_ENABLED:
        print(json.dumps(payload, sort_keys=True, separators=(",", ":")))
    raise SystemExit(RESULT_CODES.get(kind, 1))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zfs-home-unlock",
        description="Unlock and mount a user's encrypted ZFS home at login. "
                    "The password is read from stdin, the user from PAM_USER.",
    )
    parser.add_argument("--user", default=None, help="login name (default: $PAM_USER)")
    parser.add_argument(
        "--owner-property",
        default=None,
        help="ZFS user property naming the owner (default: $ZFSHOME_OWNER_PROPERTY or zfs-home:user)",
    )
    parser.add_argument("--zfs-bin", default=None, help="zfs executable (default: $ZFSHOME_ZFS_BIN or zfs)")
    parser.add_argument("--plan", action="store_true", help="resolve and report, change nothing")
    parser.add_argument("--dry-run", action="store_true", help="log zfs mutations instead of running them")
    parser.add_argument("--verbose", action="store_true", help="echo log records to stderr")
    parser.add_argument("--json", dest="json", action="store_true", default=True)
    parser.add_argument("--no-json", dest="json", action="store_false")
    return parser


def _read_secret(stream: BinaryIO) -> bytearray:
    """Read the whole password from ``stream`` into a mutable buffer.

    pam_exec terminates the token with a NUL byte; an interactive ``echo``
    adds a newline.  One of each is stripped.
    """

    secret = bytearray()
    chunk = bytearray(_CHUNK)
    view = memoryview(chunk)
    try:
        while True:
            n = stream.readinto(chunk)
            if not n:
                break
            secret.extend(view[:n])
    finally:
        view.release()
        _wipe(chunk)
    if secret.endswith(b"\0"):
        del secret[-1:]
    if secret.endswith(b"\n"):
        del secret[-1:]
    return secret


def _wipe(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _require_user(arg: Optional[str]) -> str:
    user = arg or os.environ.get("PAM_USER") or ""
    if not user:
        raise InputError("no user given: set PAM_USER or pass --user", state={"stage": "input"})
    return user


def _require_owner_property(arg: Optional[str]) -> str:
    key = arg or owner_property()
    # zfs only accepts user properties of the form module:property
    if ":" not in key:
        raise InputError(
            f"owner property {key!r} is not a ZFS user property (needs a colon)",
            state={"stage": "input"},
        )
    return key


def _main_impl(argv: Optional[list[str]] = None, stdin: Optional[BinaryIO] = None) -> int:
    global JSON_OUTPUT_ENABLED

    args = build_parser().parse_args(argv)
    flags = Flags(plan=args.plan, dry_run=args.dry_run, verbose=args.verbose, json=args.json)
    JSON_OUTPUT_ENABLED = flags.json
    executil.ECHO_STDERR = flags.verbose

    pam_type = os.environ.get("PAM_TYPE")
    if pam_type and pam_type != "auth":
        trace("cli.pam_type_skip", pam_type=pam_type)
        _emit_result("NOOP_PAM_TYPE", {"pam_type": pam_type})

    secret = bytearray()
    try:
        # read the token first; nothing below may block before it is drained
        if not flags.plan:
            secret = _read_secret(stdin or sys.stdin.buffer)
        try:
            user = _require_user(args.user)
            owner_key = _require_owner_property(args.owner_property)
            if not flags.plan and not secret:
                raise InputError("empty password on stdin", state={"stage": "input", "user": user})
            volumes = ZfsVolumes(zfs_bin=args.zfs_bin or zfs_bin(), dry_run=flags.dry_run)
            trace("cli.start", user=user, owner_key=owner_key, plan=flags.plan, dry_run=flags.dry_run)
            outcome = mounts.run(user, secret, volumes, owner_key=owner_key, plan=flags.plan)
        except MountError as exc:
            executil.error("cli.failed", result=exc.result, error=str(exc), **exc.state)
            _emit_result(exc.result, {"error": str(exc), **exc.state})
    finally:
        _wipe(secret)

    _emit_result(outcome.result, outcome.as_dict())
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    try:
        return _main_impl(argv)
    except SystemExit:
        raise
    except Exception as exc:  # noqa: BLE001
        _emit_result("FAIL_UNHANDLED", extra={"error": str(exc)})
    return 0


if __name__ == "__main__":
    sys.exit(main())
