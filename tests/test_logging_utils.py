import logging
from pathlib import Path

from passbolt_sync.core.logging_utils import get_logger, setup_logging


def test_file_handler_created_with_kind_and_action(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PASSBOLT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("PASSBOLT_LOG_FILE_LEVEL", "DEBUG")

    logfile = setup_logging(kind="folder", action="create")
    assert logfile is not None
    assert logfile.parent == tmp_path / "logs"
    assert logfile.name.startswith("folder-create-")

    get_logger("passbolt_sync.test").debug("debug-line-42")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "debug-line-42" in Path(logfile).read_text(encoding="utf-8")


def test_setup_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PASSBOLT_LOG_DIR", str(tmp_path / "logs"))
    setup_logging(kind="user", action="read")
    setup_logging(kind="user", action="read")
    root = logging.getLogger()
    assert sum(isinstance(h, logging.FileHandler) for h in root.handlers) == 1
    assert sum(type(h) is logging.StreamHandler for h in root.handlers) == 1


def test_console_only_without_kind(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PASSBOLT_LOG_DIR", str(tmp_path / "logs"))
    assert setup_logging() is None
    assert not (tmp_path / "logs").exists()
    assert get_logger().name == "passbolt_sync"


def test_root_level_follows_installed_handlers(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PASSBOLT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("PASSBOLT_LOG_FILE_LEVEL", "WARNING")
    setup_logging(kind="group", action="update")
    assert logging.getLogger().level == logging.INFO

    monkeypatch.setenv("PASSBOLT_LOG_FILE_LEVEL", "DEBUG")
    setup_logging(kind="group", action="update")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging()
    assert logging.getLogger().level == logging.INFO
