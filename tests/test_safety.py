from zfshome import safety
from zfshome.zfs import ZfsVolumes


def test_guard_mountpoint_empty_detects_files(tmp_path):
    (tmp_path / "stray.txt").write_text("left behind", encoding="utf-8")
    ok, reason = safety.guard_mountpoint_empty(str(tmp_path), ZfsVolumes().list_directory)
    assert not ok
    assert "not empty" in reason
    assert "stray.txt" in reason


def test_guard_mountpoint_empty_accepts_empty_and_missing(tmp_path):
    lister = ZfsVolumes().list_directory
    assert safety.guard_mountpoint_empty(str(tmp_path), lister) == (True, "")
    assert safety.guard_mountpoint_empty(str(tmp_path / "absent"), lister) == (True, "")


def test_guard_mountpoint_truncates_long_listing():
    entries = [f"f{i}" for i in range(8)]
    ok, reason = safety.guard_mountpoint_empty("/home/u", lambda path: entries)
    assert not ok
    assert "8 entries" in reason
    assert reason.endswith("...).")


def test_guard_mountpoint_refuses_regular_file(tmp_path):
    home = tmp_path / "home"
    home.write_text("not a directory", encoding="utf-8")
    ok, reason = safety.guard_mountpoint_empty(str(home), ZfsVolumes().list_directory)
    assert not ok
    assert str(home) in reason
    assert "cannot be listed" in reason


def test_guard_mountpoint_refuses_unreadable_directory():
    def lister(path):
        raise PermissionError(13, "Permission denied", path)

    ok, reason = safety.guard_mountpoint_empty("/home/u", lister)
    assert not ok
    assert reason == "/home/u cannot be listed: Permission denied."
