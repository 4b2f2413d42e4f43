import json
import logging
from pathlib import Path

import pytest

from mdns_scanner.logger import LOGGER_NAME, create_logger, get_logger, log_event


def test_create_logger_twice_keeps_one_set_of_handlers(tmp_path: Path) -> None:
    logger = create_logger(log_path=str(tmp_path / "scan.log"))
    count = len(logger.handlers)
    assert create_logger(verbose=True, log_path=str(tmp_path / "scan.log")) is logger
    assert len(logger.handlers) == count
    assert logger.level == logging.DEBUG


def test_file_handler_writes_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "scan.log"
    logger = create_logger(log_path=str(path))
    assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    log_event(get_logger("scanner"), "port_open", {"host": "192.168.1.40", "port": 80, "service": "HTTP"})
    for handler in logger.handlers:
        handler.flush()

    (line,) = path.read_text(encoding="utf-8").splitlines()
    payload = json.loads(line)
    assert payload["event"] == "port_open"
    assert payload["host"] == "192.168.1.40"
    assert payload["port"] == 80
    assert payload["service"] == "HTTP"
    assert "ts" in payload


def test_log_event_respects_level(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    child = get_logger("interact")
    log_event(child, "ssh_attempt", {"password": "x"}, level=logging.DEBUG)
    log_event(child, "http_response", {"status": "200 OK", "raw": b"\x00"})
    assert [json.loads(r.getMessage())["event"] for r in caplog.records] == ["http_response"]
    assert json.loads(caplog.records[0].getMessage())["raw"] == "b'\\x00'"
