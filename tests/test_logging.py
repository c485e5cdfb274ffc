import json
import logging

import pytest

from relay.logging_config import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_logging(capsys):
    configure_logging(level="INFO", json_format=True, log_file=None)
    logger = logging.getLogger("test.json")
    logger.info("hello json")

    captured = capsys.readouterr()
    record = json.loads(captured.err.strip())
    assert record["message"] == "hello json"
    assert record["level"] == "INFO"
    assert record["logger"] == "test.json"
    assert "timestamp" in record


def test_plain_logging(capsys):
    configure_logging(level="INFO", json_format=False, log_file=None)
    logger = logging.getLogger("test.plain")
    logger.info("hello plain")

    captured = capsys.readouterr()
    line = captured.err.strip()
    assert "hello plain" in line
    assert "test.plain" in line
    with pytest.raises(json.JSONDecodeError):
        json.loads(line)


def test_log_level_filtering(capsys):
    configure_logging(level="WARNING", json_format=True, log_file=None)
    logger = logging.getLogger("test.level")
    logger.info("should not appear")
    logger.warning("should appear")

    captured = capsys.readouterr()
    lines = [line for line in captured.err.strip().splitlines() if line]
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["message"] == "should appear"


def test_log_file_receives_records(tmp_path, capsys):
    log_file = tmp_path / "logs" / "relay.log"
    configure_logging(level="INFO", json_format=True, log_file=str(log_file))
    logging.getLogger("test.file").info("to disk", extra={"user_id": "u1"})

    for handler in logging.getLogger().handlers:
        handler.flush()
    record = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert record["message"] == "to disk"
    assert record["user_id"] == "u1"


def test_noisy_loggers_silenced():
    configure_logging(level="DEBUG", json_format=True, log_file=None)
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
