"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from edgesql.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from edgesql.core.settings import DatabaseSettings


class TestConfigureLogging:
    def test_json_output_is_ecs_shaped(self, caplog):
        configure_logging(level="INFO", json_format=True, service="edgesql-test")
        caplog.set_level(logging.INFO)

        get_logger("edgesql.test").info("query.attempt", sql="SELECT 1", attempt=1)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "query.attempt"
        assert payload["sql"] == "SELECT 1"
        assert payload["attempt"] == 1
        assert payload["service.name"] == "edgesql-test"
        assert payload["log.level"] == "info"
        assert "@timestamp" in payload

    def test_level_filters_debug(self, caplog):
        configure_logging(level="INFO", json_format=True)
        caplog.set_level(logging.DEBUG)

        get_logger("edgesql.test").debug("query.attempt")

        assert not caplog.records

    def test_configure_from_settings(self, caplog):
        configure_from_settings(
            DatabaseSettings(_env_file=None, log_level="WARNING", service_name="svc")
        )
        caplog.set_level(logging.DEBUG)

        log = get_logger("edgesql.test")
        log.info("ignored")
        log.warning("query.slow", duration_ms=6000.0)

        assert len(caplog.records) == 1
        payload = json.loads(caplog.records[0].getMessage())
        assert payload["service.name"] == "svc"

    def test_context_merged_into_events(self, caplog):
        configure_logging(level="INFO", json_format=True)
        caplog.set_level(logging.INFO)

        with LogContext(request_id="abc123"):
            get_logger("edgesql.test").info("query.attempt")

        assert json.loads(caplog.records[-1].getMessage())["request_id"] == "abc123"


class TestLogContext:
    def test_binds_and_unbinds(self):
        with LogContext(request_id="abc"):
            assert structlog.contextvars.get_contextvars() == {"request_id": "abc"}
        assert structlog.contextvars.get_contextvars() == {}

    @pytest.mark.asyncio
    async def test_async(self):
        async with LogContext(tenant="t1"):
            assert structlog.contextvars.get_contextvars()["tenant"] == "t1"
        assert "tenant" not in structlog.contextvars.get_contextvars()

    def test_clear_context(self):
        bind_context(a=1, b=2)
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
