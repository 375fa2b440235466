import pytest


@pytest.fixture(autouse=True)
def _isolated_event_log(tmp_path, monkeypatch):
    """Keep the JSONL event log out of /var/log while tests run."""
    from zfshome import executil

    log_dir = tmp_path / "logs"
    monkeypatch.setattr(executil, "LOG_DIRS", [str(log_dir)])
    monkeypatch.setattr(executil, "LOG_PATH", None)
    monkeypatch.setattr(executil, "ECHO_STDERR", False)
    monkeypatch.setattr(executil, "LOG_LEVEL", "TRACE")
    monkeypatch.delenv("PAM_TYPE", raising=False)
    monkeypatch.delenv("PAM_USER", raising=False)
    monkeypatch.delenv("ZFSHOME_OWNER_PROPERTY", raising=False)
    monkeypatch.delenv("ZFSHOME_ZFS_BIN", raising=False)
    yield log_dir
