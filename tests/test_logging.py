"""Tests for logging configuration."""

import sys

from loguru import logger

from wxrelay.utils.logging import configure_logging


def test_file_sink_receives_debug(tmp_path):
    log_file = tmp_path / "logs" / "wxrelay.log"
    try:
        configure_logging(log_file=log_file)
        logger.debug("turn state change")
        logger.info("bot started")
    finally:
        logger.remove()
        logger.add(sys.stderr)

    content = log_file.read_text(encoding="utf-8")
    assert "turn state change" in content
    assert "bot started" in content
