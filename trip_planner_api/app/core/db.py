"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), running a block of statements inside a single
write transaction (``immediate_transaction``) and applying migrations
on application start (``init_db``).

Monetary columns (``total_cost``, ``amount``) are stored as TEXT
holding a ``Decimal`` string so that no precision is lost between
writes and reads.  Aggregation over them happens in Python.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # trip_planner_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign key enforcement is enabled per connection; the
    ``ON DELETE`` clauses below rely on it.
    """
    conn = sqlite3.connect(get_database_path(), timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


@contextmanager
def immediate_transaction() -> Iterator[sqlite3.Cursor]:
    """Yield a cursor inside a ``BEGIN IMMEDIATE`` transaction.

    The write lock is taken before the first read, so everything
    executed on the cursor sees one consistent snapshot and no other
    writer can interleave.  Commits on success, rolls back and
    re-raises on any exception.
    """
    conn = get_connection()
    conn.isolation_level = None
    cursor = conn.cursor()
    try:
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
        except BaseException:
            cursor.execute("ROLLBACK")
            raise
        cursor.execute("COMMIT")
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    the ``migrations`` list.  If you add a new migration, append it
    with an incremented version number.
    """
    migrations: list[tuple[int, str]] = [
        # Migration 1: Initial schema
        (
            1,
            """
            CREATE TABLE IF NOT EXISTS participants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                display_name TEXT NOT NULL,
                password TEXT,
                phone TEXT,
                venmo_handle TEXT,
                trip_status TEXT NOT NULL DEFAULT 'invited'
                    CHECK (trip_status IN ('invited', 'confirmed', 'declined', 'maybe')),
                is_groom INTEGER NOT NULL DEFAULT 0,
                is_admin INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                description TEXT,
                location TEXT,
                start_time TIMESTAMP NOT NULL,
                end_time TIMESTAMP,
                category TEXT,
                notes TEXT,
                is_mandatory INTEGER NOT NULL DEFAULT 0,
                total_cost TEXT NOT NULL DEFAULT '0',
                split_type TEXT NOT NULL DEFAULT 'even'
                    CHECK (split_type IN ('even', 'fixed', 'custom')),
                exclude_groom INTEGER NOT NULL DEFAULT 1,
                created_by INTEGER REFERENCES participants(id) ON DELETE SET NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS rsvps (
                participant_id INTEGER NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
                event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'confirmed', 'declined', 'maybe')),
                responded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (participant_id, event_id)
            );

            CREATE TABLE IF NOT EXISTS event_costs (
                event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                participant_id INTEGER NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
                amount TEXT NOT NULL,
                note TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (event_id, participant_id)
            );

            CREATE TABLE IF NOT EXISTS payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                participant_id INTEGER NOT NULL REFERENCES participants(id) ON DELETE CASCADE,
                event_id INTEGER REFERENCES events(id) ON DELETE SET NULL,
                amount TEXT NOT NULL,
                payment_method TEXT NOT NULL DEFAULT 'other',
                payment_reference TEXT,
                notes TEXT,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'confirmed', 'rejected')),
                confirmed_by INTEGER REFERENCES participants(id) ON DELETE SET NULL,
                confirmed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS audit_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER,
                action TEXT NOT NULL,
                object_type TEXT,
                object_id INTEGER,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                details TEXT
            );
            """,
        ),
        # Migration 2: indices for the cost engine and ledger lookups
        (
            2,
            """
            CREATE INDEX IF NOT EXISTS idx_rsvps_event ON rsvps(event_id);
            CREATE INDEX IF NOT EXISTS idx_event_costs_participant ON event_costs(participant_id);
            CREATE INDEX IF NOT EXISTS idx_payments_participant ON payments(participant_id);
            CREATE INDEX IF NOT EXISTS idx_payments_status ON payments(status);
            CREATE INDEX IF NOT EXISTS idx_events_start_time ON events(start_time);
            """,
        ),
        # Migration 3: at most one groom, enforced by the store as well
        (
            3,
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_participants_single_groom
                ON participants(is_groom) WHERE is_groom = 1;
            """,
        ),
    ]

    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in migrations:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
