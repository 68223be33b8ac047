"""SQLite database holding submissions, their links, and listing page progress."""

import logging
import os
import re
import shutil
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

logger = logging.getLogger("submission_scraper")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS submission (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        document_id TEXT NOT NULL UNIQUE,
        submitter TEXT NOT NULL,
        submitter_reference TEXT DEFAULT '',
        submitted_at TEXT,
        document_hash TEXT,
        is_downloaded INTEGER NOT NULL DEFAULT 0,
        content TEXT,
        content_size INTEGER,
        image_count INTEGER,
        parsed_at TIMESTAMP,
        is_group INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CHECK (is_downloaded = 0 OR document_hash IS NOT NULL)
    );

    CREATE INDEX IF NOT EXISTS idx_submission_downloaded ON submission(is_downloaded);
    CREATE INDEX IF NOT EXISTS idx_submission_submitter ON submission(submitter, submitted_at);

    CREATE TABLE IF NOT EXISTS submission_link (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        parent_submission_id INTEGER NOT NULL,
        child_submission_id INTEGER NOT NULL UNIQUE,
        link_order INTEGER NOT NULL CHECK (link_order > 0),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CHECK (parent_submission_id != child_submission_id),
        FOREIGN KEY (parent_submission_id) REFERENCES submission(id),
        FOREIGN KEY (child_submission_id) REFERENCES submission(id)
    );

    CREATE INDEX IF NOT EXISTS idx_link_parent ON submission_link(parent_submission_id);

    CREATE TABLE IF NOT EXISTS page_record (
        page_number INTEGER PRIMARY KEY CHECK (page_number > 0),
        is_scraped INTEGER NOT NULL DEFAULT 0,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS name (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    );

    CREATE TABLE IF NOT EXISTS submission_name (
        submission_id INTEGER PRIMARY KEY,
        first_name TEXT,
        middle_names TEXT,
        last_name TEXT,
        FOREIGN KEY (submission_id) REFERENCES submission(id)
    );
"""


def _regexp(pattern: str, value) -> int:
    if value is None:
        return 0
    return 1 if re.search(pattern, value) else 0


def backup_database(db_path: str, backup_dir: str) -> Optional[str]:
    """Copy an existing database file to a timestamped file in backup_dir."""
    if not os.path.exists(db_path):
        return None
    os.makedirs(backup_dir, exist_ok=True)
    base, ext = os.path.splitext(os.path.basename(db_path))
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    backup_path = os.path.join(backup_dir, f"{base}_{stamp}{ext}")
    shutil.copy2(db_path, backup_path)
    logger.info(f"Database backed up to {backup_path}")
    return backup_path


class Database:
    """Per-thread SQLite connections with a single-writer discipline.

    Reads run in autocommit mode. Writes go through ``transaction()``, which holds a
    process-wide lock and an IMMEDIATE transaction so concurrent workers never
    interleave partial writes.
    """

    def __init__(self, db_path: str = "submissions.db", backup_dir: Optional[str] = None):
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.RLock()
        if backup_dir:
            backup_database(db_path, backup_dir)
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        self._init_db()

    @property
    def _conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            conn.create_function("REGEXP", 2, _regexp)
            self._local.conn = conn
        return self._local.conn

    def _init_db(self):
        with self._write_lock:
            self._conn.executescript(SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock:
            conn = self._conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def execute(self, sql: str, params=()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
