"""Built-in migration definitions.

Definitions are supplied by the process, not stored: only their application
is recorded in the ``migrations`` bookkeeping table. Ids are zero-padded so
that string order is application order.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Migration(BaseModel):
    """A schema change with its forward and reverse scripts."""

    id: str
    name: str
    up: str
    down: str
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class MigrationRecord(BaseModel):
    """Row of the ``migrations`` bookkeeping table."""

    id: str
    migration_id: str
    name: str
    executed_at: str
    checksum: str
    created_at: str | None = None
    updated_at: str | None = None


MIGRATIONS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS migrations (
  id TEXT PRIMARY KEY,
  migration_id TEXT NOT NULL UNIQUE,
  name TEXT NOT NULL,
  executed_at TEXT NOT NULL DEFAULT (datetime('now')),
  checksum TEXT NOT NULL,
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

INITIAL_SCHEMA = Migration(
    id="001",
    name="initial_schema",
    created_at="2024-01-01T00:00:00+00:00",
    up="""
-- Users table
CREATE TABLE IF NOT EXISTS users (
  id TEXT PRIMARY KEY,
  email TEXT NOT NULL UNIQUE,
  name TEXT NOT NULL,
  picture TEXT,
  verified_email BOOLEAN NOT NULL DEFAULT FALSE,
  last_login_at TEXT,
  status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive', 'suspended')),
  metadata TEXT,
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Sessions table
CREATE TABLE IF NOT EXISTS sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  token_hash TEXT NOT NULL UNIQUE,
  expires_at TEXT NOT NULL,
  ip_address TEXT,
  user_agent TEXT,
  is_active BOOLEAN NOT NULL DEFAULT TRUE,
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  updated_at TEXT NOT NULL DEFAULT (datetime('now')),
  FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

-- Audit logs table
CREATE TABLE IF NOT EXISTS audit_logs (
  id TEXT PRIMARY KEY,
  user_id TEXT,
  action TEXT NOT NULL,
  resource_type TEXT NOT NULL,
  resource_id TEXT,
  old_values TEXT,
  new_values TEXT,
  ip_address TEXT,
  user_agent TEXT,
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  updated_at TEXT NOT NULL DEFAULT (datetime('now')),
  FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE SET NULL
);

-- Configuration table
CREATE TABLE IF NOT EXISTS config (
  id TEXT PRIMARY KEY,
  key TEXT NOT NULL UNIQUE,
  value TEXT NOT NULL,
  description TEXT,
  is_public BOOLEAN NOT NULL DEFAULT FALSE,
  category TEXT NOT NULL DEFAULT 'general',
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_users_status ON users(status);
CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_sessions_token_hash ON sessions(token_hash);
CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at);
CREATE INDEX IF NOT EXISTS idx_audit_logs_user_id ON audit_logs(user_id);
CREATE INDEX IF NOT EXISTS idx_audit_logs_resource ON audit_logs(resource_type, resource_id);
CREATE INDEX IF NOT EXISTS idx_audit_logs_created_at ON audit_logs(created_at);
CREATE INDEX IF NOT EXISTS idx_config_key ON config(key);
CREATE INDEX IF NOT EXISTS idx_config_category ON config(category);
""",
    down="""
DROP INDEX IF EXISTS idx_config_category;
DROP INDEX IF EXISTS idx_config_key;
DROP INDEX IF EXISTS idx_audit_logs_created_at;
DROP INDEX IF EXISTS idx_audit_logs_resource;
DROP INDEX IF EXISTS idx_audit_logs_user_id;
DROP INDEX IF EXISTS idx_sessions_expires_at;
DROP INDEX IF EXISTS idx_sessions_token_hash;
DROP INDEX IF EXISTS idx_sessions_user_id;
DROP INDEX IF EXISTS idx_users_status;
DROP INDEX IF EXISTS idx_users_email;
DROP TABLE IF EXISTS config;
DROP TABLE IF EXISTS audit_logs;
DROP TABLE IF EXISTS sessions;
DROP TABLE IF EXISTS users;
""",
)

# Columns the user repository filters on but the initial schema lacks.
USER_IDENTITY = Migration(
    id="002",
    name="user_identity",
    created_at="2024-01-15T00:00:00+00:00",
    up="""
ALTER TABLE users ADD COLUMN role TEXT NOT NULL DEFAULT 'USER' CHECK (role IN ('USER', 'ADMIN', 'MODERATOR'));
ALTER TABLE users ADD COLUMN provider TEXT NOT NULL DEFAULT 'email' CHECK (provider IN ('email', 'google', 'github'));
ALTER TABLE users ADD COLUMN provider_id TEXT;
CREATE INDEX IF NOT EXISTS idx_users_provider ON users(provider, provider_id);
CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);
""",
    down="""
DROP INDEX IF EXISTS idx_users_role;
DROP INDEX IF EXISTS idx_users_provider;
ALTER TABLE users DROP COLUMN provider_id;
ALTER TABLE users DROP COLUMN provider;
ALTER TABLE users DROP COLUMN role;
""",
)

BUILTIN_MIGRATIONS: tuple[Migration, ...] = (INITIAL_SCHEMA, USER_IDENTITY)

# Tables that must exist for the schema to be considered valid.
REQUIRED_TABLES: tuple[str, ...] = ("users", "sessions", "audit_logs", "config", "migrations")


__all__ = [
    "Migration",
    "MigrationRecord",
    "MIGRATIONS_TABLE_DDL",
    "INITIAL_SCHEMA",
    "USER_IDENTITY",
    "BUILTIN_MIGRATIONS",
    "REQUIRED_TABLES",
]
