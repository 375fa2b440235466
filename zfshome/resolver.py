"""Pick the encrypted home dataset owned by a user."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from .model import VolumeRecord
from .paths import DEFAULT_OWNER_PROPERTY

CANMOUNT = "canmount"
NOAUTO = "noauto"


def _wanted(owner_key: str, user: str) -> set[tuple[str, str]]:
    return {(owner_key, user), (CANMOUNT, NOAUTO)}


def candidates(
        catalog: Iterable[VolumeRecord],
        requesting_user: str,
        owner_key: str = DEFAULT_OWNER_PROPERTY,
) -> list[str]:
    """Return every dataset carrying both required local properties.

    Only ``local`` observations count: a tag inherited from a parent or a
    built-in default says nothing about the dataset itself.  Repeated
    observations collapse, so the result does not depend on duplicates or
    on the order of ``catalog``.  The list is sorted by (length, name).
    """

    wanted = _wanted(owner_key, requesting_user)
    seen: dict[str, set[tuple[str, str]]] = defaultdict(set)
    for rec in catalog:
        if not rec.is_local:
            continue
        pair = (rec.key, rec.value)
        if pair in wanted:
            seen[rec.name].add(pair)
    matched = [name for name, pairs in seen.items() if pairs >= wanted]
    return sorted(matched, key=lambda name: (len(name), name))


def resolve(
        catalog: Iterable[VolumeRecord],
        requesting_user: str,
        owner_key: str = DEFAULT_OWNER_PROPERTY,
) -> Optional[str]:
    """Return the dataset to unlock for ``requesting_user`` or ``None``.

    When a parent and a child both match, the parent wins: it is the
    encryption root the child's key hangs off.  Matches of equal length are
    ordered lexicographically and the first one is taken.
    """

    if not requesting_user:
        return None
    found = candidates(catalog, requesting_user, owner_key)
    return found[0] if found else None
