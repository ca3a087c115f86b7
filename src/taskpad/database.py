"""Database management for taskpad."""

import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from taskpad.models import extract_tags

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

LEGACY_DEFAULT_TAG = "work"
HASHTAG_PATTERN = re.compile(r"#\w+", re.ASCII)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_priority ON tasks(priority, status)",
    "CREATE INDEX IF NOT EXISTS idx_status ON tasks(status)",
    "CREATE INDEX IF NOT EXISTS idx_scheduled ON tasks(scheduled_for)",
    "CREATE INDEX IF NOT EXISTS idx_completed_range ON tasks(completed_at)",
    "CREATE INDEX IF NOT EXISTS idx_tags ON tasks(tags)",
)


class Database:
    """SQLite database manager.

    Holds a single connection, opened on first use and released by close().
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize database with path."""
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection, created and migrated on first access."""
        if self._conn is None:
            return self.open()
        return self._conn

    def open(self) -> sqlite3.Connection:
        """Open the connection and bring the schema up to date."""
        if self._conn is not None:
            return self._conn
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._conn = conn
        try:
            self.initialize_schema()
            self.migrate_schema()
            self.create_indexes()
        except sqlite3.Error:
            logger.exception("Failed to initialize database at %s", self.db_path)
            self.close()
            raise
        logger.info(
            "Database initialized at %s (schema v%s)",
            self.db_path,
            self.get_schema_version(),
        )
        return conn

    def close(self) -> None:
        """Close the connection; calling it again is a no-op."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("Database closed: %s", self.db_path)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block of writes atomically: commit on success, roll back on error."""
        conn = self.connection
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()

    def initialize_schema(self) -> None:
        """Create the tasks table if it doesn't exist."""
        conn = self.connection
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                priority INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                completed_at TEXT,
                scheduled_for TEXT,
                updated_at TEXT NOT NULL,
                extracted_urls TEXT,
                tags TEXT
            )
        """)
        conn.commit()

    def create_indexes(self) -> None:
        """Create indexes; runs after migrations since idx_tags needs the tags column."""
        conn = self.connection
        for statement in INDEXES:
            conn.execute(statement)
        conn.commit()

    def get_schema_version(self) -> int:
        """Get the schema version stored in PRAGMA user_version."""
        row = self.connection.execute("PRAGMA user_version").fetchone()
        return int(row[0]) if row else 0

    def _set_schema_version(self, version: int) -> None:
        # PRAGMA does not accept bound parameters
        self.connection.execute(f"PRAGMA user_version = {int(version)}")

    def _column_names(self) -> set[str]:
        rows = self.connection.execute("PRAGMA table_info(tasks)").fetchall()
        return {row["name"] for row in rows}

    def migrate_schema(self) -> None:
        """Run any pending schema migrations, each at most once."""
        current_version = self.get_schema_version()
        if current_version >= CURRENT_SCHEMA_VERSION:
            return

        logger.info(
            "Migrating database from v%s to v%s",
            current_version,
            CURRENT_SCHEMA_VERSION,
        )

        # Migration v0 -> v1: Add tags column
        if current_version < 1:
            with self.transaction() as conn:
                if "tags" not in self._column_names():
                    conn.execute("ALTER TABLE tasks ADD COLUMN tags TEXT")
                self._set_schema_version(1)
            logger.info("Migration to v1 complete: tags column present")
            current_version = 1

        # Migration v1 -> v2: Tag untagged tasks with #work
        if current_version < 2:
            with self.transaction() as conn:
                rows = conn.execute(
                    "SELECT id, content FROM tasks "
                    "WHERE tags IS NULL OR tags = '' OR tags = '[]'"
                ).fetchall()
                updated_at = datetime.now(timezone.utc).isoformat()
                for row in rows:
                    content = row["content"] or ""
                    if not HASHTAG_PATTERN.search(content):
                        content = f"{content} #{LEGACY_DEFAULT_TAG}"
                    conn.execute(
                        "UPDATE tasks SET content = ?, tags = ?, updated_at = ? WHERE id = ?",
                        (content, json.dumps(extract_tags(content)), updated_at, row["id"]),
                    )
                self._set_schema_version(2)
            logger.info("Migration to v2 complete: tagged %d task(s)", len(rows))
