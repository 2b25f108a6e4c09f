"""
Database Schema Setup for the Giveaway System
Creates the record store and the delayed task queue tables
"""

import logging

from sqlalchemy import create_engine, text

logger = logging.getLogger(__name__)

# Portable across SQLite and PostgreSQL (timestamps are epoch seconds)
GIVEAWAY_SCHEMA_SQL = """
-- ============================================
-- GIVEAWAY SYSTEM DATABASE SCHEMA
-- ============================================

-- Keyed records: (namespace, record_key) -> JSON payload
CREATE TABLE IF NOT EXISTS giveaway_records (
    namespace VARCHAR(32) NOT NULL,
    record_key VARCHAR(64) NOT NULL,
    payload TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    status VARCHAR(16) NOT NULL DEFAULT 'open',  -- open, drawing
    claimed_at DOUBLE PRECISION,
    created_at DOUBLE PRECISION NOT NULL,
    updated_at DOUBLE PRECISION NOT NULL,
    PRIMARY KEY (namespace, record_key)
);

-- Durable delayed tasks (at-least-once delivery)
CREATE TABLE IF NOT EXISTS scheduled_tasks (
    task_id VARCHAR(36) PRIMARY KEY,
    queue VARCHAR(32) NOT NULL,
    payload TEXT NOT NULL,
    status VARCHAR(16) NOT NULL DEFAULT 'pending',  -- pending, dead
    due_at DOUBLE PRECISION NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    lease_token VARCHAR(36),
    last_error TEXT,
    created_at DOUBLE PRECISION NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_scheduled_tasks_due ON scheduled_tasks(queue, status, due_at);
"""


def create_db_engine(database_url):
    """SQLAlchemy engine; SQLite gets a busy timeout and cross-thread connections"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(database_url, pool_pre_ping=True)


def setup_giveaway_database(engine):
    """
    Create all giveaway tables and indices

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Setting up giveaway database schema...")

    with engine.begin() as conn:
        # One statement at a time (SQLite can only execute one per call)
        statements = []
        current_statement = []

        for line in GIVEAWAY_SCHEMA_SQL.split('\n'):
            stripped = line.strip()
            if not stripped or stripped.startswith('--'):
                continue

            current_statement.append(line)

            if stripped.endswith(';'):
                statements.append('\n'.join(current_statement))
                current_statement = []

        for statement in statements:
            conn.execute(text(statement))

    logger.info("✅ Giveaway database schema ready")
