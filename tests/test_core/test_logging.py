"""Tests for structlog setup."""

from __future__ import annotations

import logging
from decimal import Decimal

import structlog

from arbcore.core.config import LoggingConfig
from arbcore.core.logging import decimals_as_strings, setup_logging


class TestSetupLogging:
    def test_single_root_handler(self) -> None:
        setup_logging(level="DEBUG", fmt="console")
        setup_logging(level="DEBUG", fmt="json")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_http_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG", fmt="json")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_quiet_loggers_from_config(self) -> None:
        setup_logging(level="DEBUG", config=LoggingConfig(quiet_loggers=["hpack"]))
        assert logging.getLogger("hpack").level == logging.WARNING

    def test_config_level_used_without_override(self) -> None:
        setup_logging(config=LoggingConfig(level="ERROR"))
        assert logging.getLogger().level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging(level="chatty", fmt="json")
        assert logging.getLogger().level == logging.INFO


class TestDecimalsAsStrings:
    def test_decimal_fields_become_strings(self) -> None:
        event = decimals_as_strings(
            None, "info", {"event": "opportunity_detected", "spread_pct": Decimal("0.6000"), "n": 3},
        )
        assert event["spread_pct"] == "0.6000"
        assert event["n"] == 3
