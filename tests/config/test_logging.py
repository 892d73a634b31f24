"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from wsctl.config.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    ws = logging.getLogger("wsctl")
    ws_level = ws.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    ws.setLevel(ws_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("wsctl").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("wsctl").level == logging.WARNING

    def test_diagnostics_sets_info(self) -> None:
        configure_logging(verbose=False, log_json=False, diagnostics=True)
        assert logging.getLogger("wsctl").level == logging.INFO

    def test_verbose_wins_over_diagnostics(self) -> None:
        configure_logging(verbose=True, log_json=False, diagnostics=True)
        assert logging.getLogger("wsctl").level == logging.DEBUG

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("wsctl.test")
        log.warning("json test", answer=42)
        captured = capfd.readouterr()
        parsed = json.loads(captured.err.strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "wsctl.test"
        assert "timestamp" in parsed

    def test_stdlib_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=False, log_json=True, diagnostics=True)

        logging.getLogger("wsctl.domain.requirements").info("Peer requirements for ui")

        captured = capfd.readouterr()
        parsed = json.loads(captured.err.strip())
        assert parsed["event"] == "Peer requirements for ui"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "wsctl.domain.requirements"

    def test_third_party_debug_is_suppressed(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)

        logging.getLogger("networkx").debug("graph noise")
        logging.getLogger("pluggy").debug("hook noise")

        captured = capfd.readouterr()
        assert captured.err == ""

    def test_idempotent_calls(self) -> None:
        """Multiple configure_logging calls don't stack handlers."""
        configure_logging(verbose=True, log_json=False)
        configure_logging(verbose=True, log_json=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1
