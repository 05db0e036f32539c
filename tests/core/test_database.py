"""Tests for the DatabaseService facade."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from edgesql.core.database import DatabaseService
from edgesql.core.errors import ConfigurationError, QueryFailedError, UnsupportedOperationError
from edgesql.core.metrics import MetricsCollector


class TestInitialize:
    @pytest.mark.asyncio
    async def test_unbound_service_raises_configuration_error(self, settings, sleep):
        db = DatabaseService(settings=settings, sleep=sleep)

        with pytest.raises(ConfigurationError):
            await db.query("SELECT 1")
        with pytest.raises(ConfigurationError):
            db.get_connection()

    @pytest.mark.asyncio
    async def test_initialize_binds_environment(self, binding, settings, sleep):
        db = DatabaseService(settings=settings, sleep=sleep)

        db.initialize({"DB": binding})

        assert db.get_connection() is binding
        assert (await db.query_one("SELECT 1 AS one")).row == {"one": 1}

    def test_initialize_swaps_logger(self, binding, settings):
        db = DatabaseService(settings=settings)
        events = []

        class Sink:
            def info(self, event, **kw):
                events.append(event)

        db.initialize({"DB": binding}, logger=Sink())

        assert events == ["database.initialized"]
        assert db.executor.logger is db.logger

    def test_binding_is_looked_up_on_every_call(self, binding, settings):
        env = {"DB": binding}
        db = DatabaseService(env, settings=settings)
        assert db.get_connection() is binding

        replacement = object()
        env["DB"] = replacement
        assert db.get_connection() is replacement

    def test_custom_binding_name(self, binding):
        from edgesql.core.settings import DatabaseSettings

        db = DatabaseService({"PRIMARY": binding}, settings=DatabaseSettings(_env_file=None, binding_name="PRIMARY"))
        assert db.get_connection() is binding


class TestStatements:
    @pytest.mark.asyncio
    async def test_query_execute_round_trip(self, migrated_db):
        await migrated_db.execute(
            "INSERT INTO config (id, key, value) VALUES (?, ?, ?)", ["c1", "site.name", "demo"]
        )

        result = await migrated_db.query("SELECT key, value FROM config")

        assert result.rows == [{"key": "site.name", "value": "demo"}]

    @pytest.mark.asyncio
    async def test_batch(self, migrated_db):
        results = await migrated_db.batch(
            [
                ("INSERT INTO config (id, key, value) VALUES (?, ?, ?)", ["c1", "a", "1"]),
                ("INSERT INTO config (id, key, value) VALUES (?, ?, ?)", ["c2", "b", "2"]),
            ]
        )

        assert len(results) == 2
        assert (await migrated_db.query_one("SELECT COUNT(*) AS n FROM config")).row == {"n": 2}


class TestTransaction:
    @pytest.mark.asyncio
    async def test_callback_result_is_returned(self, migrated_db):
        async def work(tx):
            stmt = tx.prepare("INSERT INTO config (id, key, value) VALUES (?, ?, ?)")
            await tx.batch([stmt.bind("c1", "a", "1"), stmt.bind("c2", "b", "2")])
            return "done"

        assert await migrated_db.transaction(work) == "done"
        assert (await migrated_db.query_one("SELECT COUNT(*) AS n FROM config")).row == {"n": 2}

    @pytest.mark.asyncio
    async def test_failure_is_reraised_without_rollback(self, migrated_db):
        async def work(tx):
            await tx.prepare("INSERT INTO config (id, key, value) VALUES (?, ?, ?)").bind(
                "c1", "a", "1"
            ).run()
            raise RuntimeError("boom")

        with capture_logs() as logs:
            with pytest.raises(RuntimeError, match="boom"):
                await migrated_db.transaction(work)

        assert any(e["event"] == "transaction.failed" for e in logs)
        # the first statement stays applied
        assert (await migrated_db.query_one("SELECT COUNT(*) AS n FROM config")).row == {"n": 1}

    @pytest.mark.asyncio
    async def test_exec_through_transaction(self, migrated_db):
        async def work(tx):
            return await tx.exec("CREATE TABLE extra (id TEXT); CREATE TABLE extra2 (id TEXT);")

        result = await migrated_db.transaction(work)
        assert result.count == 2

    @pytest.mark.asyncio
    async def test_unconfigured_transaction_raises(self, settings):
        db = DatabaseService(settings=settings)

        async def work(tx):
            return None

        with pytest.raises(ConfigurationError):
            await db.transaction(work)


class TestSchema:
    @pytest.mark.asyncio
    async def test_validate_schema_false_before_migrations(self, db):
        with capture_logs() as logs:
            assert await db.validate_schema() is False
        missing = [e for e in logs if e["event"] == "schema.missing_tables"]
        assert missing and "users" in missing[0]["tables"]

    @pytest.mark.asyncio
    async def test_validate_schema_true_after_migrations(self, migrated_db):
        assert await migrated_db.validate_schema() is True

    @pytest.mark.asyncio
    async def test_validate_schema_false_when_table_dropped(self, migrated_db):
        await migrated_db.execute("DROP TABLE config")
        assert await migrated_db.validate_schema() is False

    @pytest.mark.asyncio
    async def test_validate_schema_false_on_error(self, settings, sleep):
        db = DatabaseService({}, settings=settings, sleep=sleep)

        with capture_logs() as logs:
            assert await db.validate_schema() is False
        assert any(e["event"] == "schema.validation_failed" for e in logs)

    def test_get_table_schema_is_unsupported(self, db):
        with pytest.raises(UnsupportedOperationError, match="Schema introspection not implemented"):
            db.get_table_schema("users")

    def test_rollback_migration_is_unsupported(self, db):
        with pytest.raises(UnsupportedOperationError):
            db.rollback_migration("001")

    @pytest.mark.asyncio
    async def test_migration_status(self, migrated_db):
        records = await migrated_db.get_migration_status()
        assert [r.migration_id for r in records] == ["002", "001"]

    @pytest.mark.asyncio
    async def test_migration_status_on_empty_database(self, db):
        assert await db.get_migration_status() == []


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, migrated_db):
        status = await migrated_db.health_check()

        assert status.status == "healthy"
        assert status.message == "Database service is operational"
        assert status.details["error_rate"] == 0
        assert status.details["metrics"]["total_queries"] == 1

    @pytest.mark.asyncio
    async def test_degraded_when_error_rate_moderate(self, migrated_db):
        # 1 failure out of 5 calls (including the check) is a 0.2 error rate
        for _ in range(3):
            await migrated_db.query("SELECT 1")
        with pytest.raises(QueryFailedError):
            await migrated_db.query("SELECT * FROM no_such_table")

        status = await migrated_db.health_check()

        assert status.status == "degraded"

    @pytest.mark.asyncio
    async def test_unhealthy_when_error_rate_high(self, migrated_db):
        for _ in range(2):
            with pytest.raises(QueryFailedError):
                await migrated_db.query("SELECT * FROM no_such_table")

        status = await migrated_db.health_check()

        # 2 failures out of 3 calls
        assert status.status == "unhealthy"
        assert status.message == "Database service is operational"

    @pytest.mark.asyncio
    async def test_check_failure_is_unhealthy_and_never_raises(self, settings, sleep):
        db = DatabaseService({}, settings=settings, sleep=sleep)

        status = await db.health_check()

        assert status.status == "unhealthy"
        assert status.message == "Database connection failed"
        assert "Database not configured" in status.details["error"]
        assert db.get_metrics().connection_errors == 1

    @pytest.mark.asyncio
    async def test_check_failure_after_retries(self, make_flaky, settings, sleep):
        db = DatabaseService({"DB": make_flaky(10)}, settings=settings, sleep=sleep)

        status = await db.health_check()

        assert status.status == "unhealthy"
        snap = db.get_metrics()
        assert snap.connection_errors == 1
        assert snap.failed_queries == 1


class TestMetrics:
    @pytest.mark.asyncio
    async def test_get_metrics_returns_a_copy(self, migrated_db):
        snap = migrated_db.get_metrics()
        snap.total_queries = 999

        assert migrated_db.get_metrics().total_queries == 0

    @pytest.mark.asyncio
    async def test_reset_metrics(self, migrated_db):
        await migrated_db.query("SELECT 1")
        migrated_db.reset_metrics()

        snap = migrated_db.get_metrics()
        assert snap.total_queries == 0
        assert snap.average_query_time == 0.0

    @pytest.mark.asyncio
    async def test_disabled_metrics_do_not_count(self, binding, sleep):
        from edgesql.core.settings import DatabaseSettings

        db = DatabaseService(
            {"DB": binding},
            settings=DatabaseSettings(_env_file=None, enable_metrics=False),
            sleep=sleep,
        )
        await db.query("SELECT 1")

        assert db.get_metrics().total_queries == 0

    @pytest.mark.asyncio
    async def test_shared_collector(self, binding, settings):
        metrics = MetricsCollector()
        a = DatabaseService({"DB": binding}, settings=settings, metrics=metrics)
        b = DatabaseService({"DB": binding}, settings=settings, metrics=metrics)

        await a.query("SELECT 1")
        await b.query("SELECT 1")

        assert metrics.snapshot().total_queries == 2
