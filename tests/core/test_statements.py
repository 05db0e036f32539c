"""Tests for SQL script splitting."""

from edgesql.core.migrations import BUILTIN_MIGRATIONS
from edgesql.core.statements import split_sql


class TestSplitSql:
    def test_simple_statements(self):
        assert split_sql("CREATE TABLE a (id TEXT); CREATE TABLE b (id TEXT);") == [
            "CREATE TABLE a (id TEXT);",
            "CREATE TABLE b (id TEXT);",
        ]

    def test_empty_and_comment_only(self):
        assert split_sql("") == []
        assert split_sql("-- nothing here\n\n;;") == []

    def test_semicolon_in_string_literal(self):
        assert split_sql("INSERT INTO t VALUES ('a;b'); SELECT 1;") == [
            "INSERT INTO t VALUES ('a;b');",
            "SELECT 1;",
        ]

    def test_trigger_body_is_one_statement(self):
        script = (
            "CREATE TRIGGER tr AFTER INSERT ON t\n"
            "BEGIN\n"
            "  UPDATE t SET n = n + 1;\n"
            "  DELETE FROM u;\n"
            "END;\n"
            "SELECT 1;"
        )
        statements = split_sql(script)
        assert len(statements) == 2
        assert statements[0].endswith("END;")

    def test_unterminated_tail_is_kept(self):
        assert split_sql("SELECT 1; SELECT 2") == ["SELECT 1;", "SELECT 2"]

    def test_full_line_comments_dropped(self):
        assert split_sql("-- Users table\nCREATE TABLE u (id TEXT);") == ["CREATE TABLE u (id TEXT);"]

    def test_builtin_migrations_split_cleanly(self):
        initial, identity = BUILTIN_MIGRATIONS
        assert len(split_sql(initial.up)) == 14
        statements = split_sql(identity.up)
        assert len(statements) == 5
        assert all(s.startswith("ALTER TABLE users ADD COLUMN") for s in statements[:3])
