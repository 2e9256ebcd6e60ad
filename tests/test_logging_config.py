"""Tests for dircache logging configuration."""

import logging

import pytest

from dircache.logging_config import LOG_FILE_NAME, _rotate_log_if_needed, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    setup_logging(None)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_creates_log_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        logger = setup_logging(log_dir)

        log_file = log_dir / LOG_FILE_NAME
        assert log_file.exists()
        assert "dircache session started" in log_file.read_text()
        assert logger.level == logging.INFO

    def test_verbose_enables_debug(self, tmp_path):
        logger = setup_logging(tmp_path, verbose=True)
        get_logger("dircache.cache").debug("store options")

        assert logger.level == logging.DEBUG
        assert "store options" in (tmp_path / LOG_FILE_NAME).read_text()

    def test_without_log_dir(self, tmp_path):
        logger = setup_logging(None)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.NullHandler)
        assert list(tmp_path.iterdir()) == []

    def test_repeated_setup_replaces_handlers(self, tmp_path):
        setup_logging(tmp_path)
        logger = setup_logging(tmp_path)
        assert len(logger.handlers) == 1


class TestRotateLog:
    """Tests for log rotation on startup."""

    def test_small_file_is_kept(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("small")

        _rotate_log_if_needed(log_file, max_bytes=100)

        assert log_file.read_text() == "small"

    def test_large_file_is_rotated(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("x" * 200)
        (tmp_path / f"{LOG_FILE_NAME}.1").write_text("older")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=2)

        assert not log_file.exists()
        assert (tmp_path / f"{LOG_FILE_NAME}.1").read_text() == "x" * 200
        assert (tmp_path / f"{LOG_FILE_NAME}.2").read_text() == "older"

    def test_oldest_backup_is_dropped(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("x" * 200)
        (tmp_path / f"{LOG_FILE_NAME}.1").write_text("one")
        (tmp_path / f"{LOG_FILE_NAME}.2").write_text("two")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=2)

        assert (tmp_path / f"{LOG_FILE_NAME}.2").read_text() == "one"
        assert not (tmp_path / f"{LOG_FILE_NAME}.3").exists()

    def test_missing_file(self, tmp_path):
        _rotate_log_if_needed(tmp_path / LOG_FILE_NAME)
        assert list(tmp_path.iterdir()) == []


class TestGetLogger:
    """Tests for get_logger."""

    def test_prefixes_foreign_names(self):
        assert get_logger("plugins").name == "dircache.plugins"

    def test_keeps_package_names(self):
        assert get_logger("dircache.cache").name == "dircache.cache"
        assert get_logger("dircache").name == "dircache"
