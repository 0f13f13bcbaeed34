"""
SQLite foundation for the edit record store.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import get_db_path, get_busy_timeout, ensure_db_directory
from .errors import PersistenceError
from ..util.logging import logger


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection in autocommit mode."""
    try:
        ensure_db_directory()
        conn = sqlite3.connect(get_db_path(), timeout=get_busy_timeout(), isolation_level=None)
    except (sqlite3.Error, OSError) as e:
        logger.log_store_error("connect", e)
        raise PersistenceError(f"Database unreachable: {e}") from e

    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction() -> Generator[sqlite3.Connection, None, None]:
    """Run a block as one write transaction; any exception rolls it back.

    BEGIN IMMEDIATE takes the write lock up front so a read-modify-write
    inside the block cannot interleave with another writer.
    """
    with get_db() as conn:
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            logger.log_store_error("begin", e)
            raise PersistenceError(f"Could not start transaction: {e}") from e

        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.log_store_error("commit", e)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise PersistenceError(f"Transaction commit failed: {e}") from e


def init_db():
    """Initialize the database with required tables."""
    with get_db() as conn:
        try:
            _create_schema(conn)
        except sqlite3.Error as e:
            logger.log_store_error("init_db", e)
            raise PersistenceError(f"Schema initialization failed: {e}") from e


def _create_schema(conn: sqlite3.Connection):
    cursor = conn.cursor()

    # Append-only edit log for units and buildings
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS field_edits (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            target_type TEXT NOT NULL,
            target_id TEXT NOT NULL,
            field_name TEXT NOT NULL,
            previous_value TEXT,      -- JSON
            new_value TEXT,           -- JSON
            source TEXT NOT NULL,     -- 'scraper', 'locator', 'admin'
            edited_by TEXT,
            has_conflict BOOLEAN NOT NULL DEFAULT FALSE,
            conflict_value TEXT,      -- JSON
            created_at TEXT NOT NULL,
            flag_version INTEGER NOT NULL DEFAULT 0
        )
    ''')
    cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_field_edits_key
        ON field_edits(target_type, target_id, field_name, created_at DESC, seq DESC)
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_field_edits_conflict ON field_edits(has_conflict)')

    # Only the conflict flag columns may change after insert
    cursor.execute('''
        CREATE TRIGGER IF NOT EXISTS field_edits_immutable
        BEFORE UPDATE OF id, target_type, target_id, field_name, previous_value,
                         new_value, source, edited_by, created_at ON field_edits
        BEGIN
            SELECT RAISE(ABORT, 'field edit records are append-only');
        END
    ''')
    cursor.execute('''
        CREATE TRIGGER IF NOT EXISTS field_edits_no_delete
        BEFORE DELETE ON field_edits
        BEGIN
            SELECT RAISE(ABORT, 'field edit records are append-only');
        END
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS client_field_edits (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            client_id TEXT NOT NULL,
            field_name TEXT NOT NULL,
            previous_value TEXT,
            new_value TEXT,
            source TEXT NOT NULL,
            edited_by TEXT,
            created_at TEXT NOT NULL
        )
    ''')
    cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_client_field_edits_key
        ON client_field_edits(client_id, field_name, created_at DESC, seq DESC)
    ''')
    cursor.execute('''
        CREATE TRIGGER IF NOT EXISTS client_field_edits_immutable
        BEFORE UPDATE ON client_field_edits
        BEGIN
            SELECT RAISE(ABORT, 'client field edit records are append-only');
        END
    ''')

    # Audit trail for flag transitions and resolutions
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS edit_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT NOT NULL,
            actor TEXT NOT NULL,
            action TEXT NOT NULL,
            edit_id TEXT,
            target_type TEXT,
            target_id TEXT,
            field_name TEXT,
            payload TEXT          -- JSON
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_edit_events_edit_id ON edit_events(edit_id, id DESC)')

    # Tenant ownership
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS entity_owners (
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            tenant_id TEXT NOT NULL,
            PRIMARY KEY (entity_type, entity_id)
        )
    ''')
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tenant_members (
            tenant_id TEXT NOT NULL,
            member_id TEXT NOT NULL,
            PRIMARY KEY (tenant_id, member_id)
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_tenant_members_member ON tenant_members(member_id)')


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]

            required_tables = ['field_edits', 'client_field_edits', 'edit_events',
                               'entity_owners', 'tenant_members']
            return all(table in table_names for table in required_tables)
    except (PersistenceError, sqlite3.Error):
        return False
