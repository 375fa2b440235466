import itertools
import random

from zfshome import resolver
from zfshome.model import VolumeRecord

OWNER = "zfs-home:user"


def owned(name, user, source="local"):
    return VolumeRecord(name, OWNER, user, source)


def noauto(name, source="local"):
    return VolumeRecord(name, "canmount", "noauto", source)


def home(name, user):
    return [owned(name, user), noauto(name)]


def test_resolve_single_match():
    catalog = home("rpool/home/alice", "alice") + home("rpool/home/bob", "bob")
    assert resolver.resolve(catalog, "alice", OWNER) == "rpool/home/alice"
    assert resolver.resolve(catalog, "bob", OWNER) == "rpool/home/bob"


def test_resolve_is_deterministic():
    catalog = home("rpool/home/alice", "alice") + [noauto("rpool/var")]
    first = resolver.resolve(catalog, "alice", OWNER)
    assert all(resolver.resolve(catalog, "alice", OWNER) == first for _ in range(5))


def test_other_users_volume_is_never_returned():
    catalog = home("rpool/home/bob", "bob") + [noauto("rpool/home/alice")]
    for perm in itertools.permutations(catalog):
        assert resolver.resolve(list(perm), "alice", OWNER) is None


def test_inherited_owner_tag_is_not_trusted():
    catalog = [
        owned("rpool/home/alice", "alice", source="inherited from rpool/home"),
        noauto("rpool/home/alice"),
    ]
    assert resolver.resolve(catalog, "alice", OWNER) is None


def test_default_canmount_is_not_trusted():
    catalog = [owned("rpool/home/alice", "alice"), noauto("rpool/home/alice", source="default")]
    assert resolver.resolve(catalog, "alice", OWNER) is None


def test_both_properties_required():
    only_tag = [owned("rpool/home/alice", "alice")]
    only_noauto = [noauto("rpool/home/alice")]
    assert resolver.resolve(only_tag, "alice", OWNER) is None
    assert resolver.resolve(only_noauto, "alice", OWNER) is None
    split = [owned("rpool/a", "alice"), noauto("rpool/b")]
    assert resolver.resolve(split, "alice", OWNER) is None


def test_canmount_on_must_not_match():
    catalog = [owned("pool/a", "u"), VolumeRecord("pool/a", "canmount", "on", "local")]
    assert resolver.resolve(catalog, "u", OWNER) is None


def test_ancestor_is_preferred_over_descendant():
    catalog = home("pool/a/b", "u") + home("pool/a", "u")
    assert resolver.resolve(catalog, "u", OWNER) == "pool/a"
    assert resolver.resolve(list(reversed(catalog)), "u", OWNER) == "pool/a"


def test_shortest_name_wins_in_any_order():
    catalog = home("tank/users/u/var/cache", "u") + home("tank/users/u", "u") + home("tank/users/u/var", "u")
    rng = random.Random(7)
    for _ in range(20):
        shuffled = list(catalog)
        rng.shuffle(shuffled)
        assert resolver.resolve(shuffled, "u", OWNER) == "tank/users/u"


def test_equal_length_tie_break_is_lexicographic():
    catalog = home("pool/zz", "u") + home("pool/aa", "u") + home("pool/mm", "u")
    assert resolver.resolve(catalog, "u", OWNER) == "pool/aa"
    assert resolver.candidates(catalog, "u", OWNER) == ["pool/aa", "pool/mm", "pool/zz"]


def test_duplicates_collapse():
    once = home("rpool/home/alice", "alice")
    twice = once + once + [noauto("rpool/home/alice")]
    assert resolver.resolve(twice, "alice", OWNER) == resolver.resolve(once, "alice", OWNER)
    assert resolver.candidates(twice, "alice", OWNER) == ["rpool/home/alice"]


def test_owner_key_is_configurable():
    catalog = [VolumeRecord("p/h", "org.example:owner", "u", "local"), noauto("p/h")]
    assert resolver.resolve(catalog, "u", OWNER) is None
    assert resolver.resolve(catalog, "u", "org.example:owner") == "p/h"


def test_no_user_or_empty_catalog():
    assert resolver.resolve([], "alice", OWNER) is None
    assert resolver.resolve(home("p/h", ""), "", OWNER) is None


def test_irrelevant_properties_ignored():
    catalog = home("p/h", "u") + [
        VolumeRecord("p/h", "mountpoint", "/home/u", "local"),
        VolumeRecord("p/h", "mounted", "no", "-"),
    ]
    assert resolver.resolve(catalog, "u", OWNER) == "p/h"
