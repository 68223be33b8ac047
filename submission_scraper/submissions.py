"""Submission identity and lifecycle.

Every write runs in its own transaction, so a failure part-way through a listing page
never rolls back submissions committed earlier on that page. Top-level queries exclude
any submission that is the child of a supplementary link.
"""

import logging
import sqlite3
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from .db import Database
from .errors import DuplicateRecord
from .models import GroupClassification, Submission

logger = logging.getLogger("submission_scraper")

_TOP_LEVEL = """
    SELECT s.* FROM submission s
    LEFT JOIN submission_link sl ON s.id = sl.child_submission_id
    WHERE sl.id IS NULL
"""


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


class SubmissionStore:
    def __init__(self, db: Database):
        self.db = db

    # --- identity ---

    def exists(self, document_id: str) -> bool:
        row = self.db.execute(
            "SELECT 1 FROM submission WHERE document_id = ?", (document_id,)
        ).fetchone()
        return row is not None

    def get(self, document_id: str) -> Optional[Submission]:
        row = self.db.execute(
            "SELECT * FROM submission WHERE document_id = ?", (document_id,)
        ).fetchone()
        return Submission.from_row(row) if row else None

    def get_id(self, document_id: str) -> Optional[int]:
        row = self.db.execute(
            "SELECT id FROM submission WHERE document_id = ?", (document_id,)
        ).fetchone()
        return row["id"] if row else None

    def create(self, document_id: str, submitter: str, submitted_at: Optional[date],
               submitter_reference: str = "") -> int:
        try:
            with self.db.transaction() as conn:
                cur = conn.execute(
                    """INSERT INTO submission
                       (document_id, submitter, submitter_reference, submitted_at)
                       VALUES (?, ?, ?, ?)""",
                    (document_id, submitter, submitter_reference, _iso(submitted_at)),
                )
                return cur.lastrowid
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateRecord(document_id) from e
            raise

    def ensure(self, document_id: str, submitter: str, submitted_at: Optional[date],
               submitter_reference: str = "") -> Tuple[int, bool]:
        """Create the submission unless it exists. Returns (id, created)."""
        existing = self.get_id(document_id)
        if existing is not None:
            return existing, False
        try:
            return self.create(document_id, submitter, submitted_at, submitter_reference), True
        except DuplicateRecord:
            logger.debug(f"Lost create race for {document_id}, using existing row")
            return self.get_id(document_id), False

    def refresh_submitted_at(self, document_id: str, submitted_at: Optional[date]):
        # The listing is authoritative and republishes corrected dates
        with self.db.transaction() as conn:
            conn.execute(
                """UPDATE submission SET submitted_at = ?, updated_at = CURRENT_TIMESTAMP
                   WHERE document_id = ?""",
                (_iso(submitted_at), document_id),
            )

    # --- hash & download ---

    def get_hash(self, document_id: str) -> Optional[str]:
        row = self.db.execute(
            "SELECT document_hash FROM submission WHERE document_id = ?", (document_id,)
        ).fetchone()
        return row["document_hash"] if row else None

    def set_hash(self, document_id: str, document_hash: str):
        if not document_hash:
            raise ValueError(f"Refusing to store an empty hash for {document_id}")
        with self.db.transaction() as conn:
            conn.execute(
                """UPDATE submission SET document_hash = ?, updated_at = CURRENT_TIMESTAMP
                   WHERE document_id = ?""",
                (document_hash, document_id),
            )

    def is_downloaded(self, document_id: str) -> bool:
        row = self.db.execute(
            "SELECT 1 FROM submission WHERE document_id = ? AND is_downloaded = 1",
            (document_id,),
        ).fetchone()
        return row is not None

    def flag_downloaded(self, document_id: str):
        with self.db.transaction() as conn:
            cur = conn.execute(
                """UPDATE submission SET is_downloaded = 1, updated_at = CURRENT_TIMESTAMP
                   WHERE document_id = ? AND document_hash IS NOT NULL""",
                (document_id,),
            )
            if cur.rowcount == 0:
                raise ValueError(
                    f"Cannot flag {document_id} as downloaded: unknown submission or no hash"
                )

    def list_undownloaded(self) -> List[Submission]:
        rows = self.db.execute(
            "SELECT * FROM submission WHERE is_downloaded = 0 ORDER BY id"
        ).fetchall()
        return [Submission.from_row(r) for r in rows]

    # --- top-level & links ---

    def list_top_level(self) -> List[Submission]:
        rows = self.db.execute(_TOP_LEVEL + " ORDER BY s.id").fetchall()
        return [Submission.from_row(r) for r in rows]

    def list_top_level_unclassified(self) -> List[Submission]:
        rows = self.db.execute(_TOP_LEVEL + " AND s.is_group IS NULL ORDER BY s.id").fetchall()
        return [Submission.from_row(r) for r in rows]

    def list_children(self, parent_id: int) -> List[Submission]:
        rows = self.db.execute(
            """SELECT s.* FROM submission s
               INNER JOIN submission_link sl ON s.id = sl.child_submission_id
               WHERE sl.parent_submission_id = ?
               ORDER BY sl.link_order ASC, s.id ASC""",
            (parent_id,),
        ).fetchall()
        return [Submission.from_row(r) for r in rows]

    def get_parent(self, child_id: int) -> Optional[Submission]:
        row = self.db.execute(
            """SELECT s.* FROM submission s
               INNER JOIN submission_link sl ON s.id = sl.parent_submission_id
               WHERE sl.child_submission_id = ?""",
            (child_id,),
        ).fetchone()
        return Submission.from_row(row) if row else None

    def list_unlinked_supplementary(self, pattern: str) -> List[Submission]:
        """Top-level submissions whose submitter label matches ``pattern``."""
        rows = self.db.execute(
            _TOP_LEVEL + " AND s.submitter REGEXP ? ORDER BY s.id", (pattern,)
        ).fetchall()
        return [Submission.from_row(r) for r in rows]

    def find_parent(self, submitter: str, submitted_at: Optional[date]) -> Optional[int]:
        if submitted_at is None:
            return None
        row = self.db.execute(
            """SELECT id FROM submission WHERE submitter = ? AND submitted_at = ?
               ORDER BY id LIMIT 1""",
            (submitter, _iso(submitted_at)),
        ).fetchone()
        return row["id"] if row else None

    def add_link(self, child_id: int, parent_id: int, order: int) -> bool:
        """Link child under parent. Returns False if the child was already linked."""
        if order < 1:
            raise ValueError(f"Link order must be at least 1, got {order}")
        with self.db.transaction() as conn:
            cur = conn.execute(
                """INSERT OR IGNORE INTO submission_link
                   (parent_submission_id, child_submission_id, link_order)
                   VALUES (?, ?, ?)""",
                (parent_id, child_id, order),
            )
            if cur.rowcount == 0:
                return False
            conn.execute(
                """UPDATE submission
                   SET is_group = (SELECT is_group FROM submission WHERE id = ?)
                   WHERE id = ?""",
                (parent_id, child_id),
            )
            return True

    def count_links(self) -> int:
        return self.db.execute("SELECT COUNT(*) AS cnt FROM submission_link").fetchone()["cnt"]

    # --- classification ---

    def set_group_classification(self, document_id: str,
                                 classification: Optional[GroupClassification]) -> bool:
        """Classify a top-level submission; linked children follow their parent."""
        value = classification.to_db() if classification is not None else None
        with self.db.transaction() as conn:
            row = conn.execute(
                """SELECT s.id, sl.id AS link_id FROM submission s
                   LEFT JOIN submission_link sl ON s.id = sl.child_submission_id
                   WHERE s.document_id = ?""",
                (document_id,),
            ).fetchone()
            if row is None:
                return False
            if row["link_id"] is not None:
                raise ValueError(
                    f"{document_id} is a supplementary submission; classify its parent instead"
                )
            conn.execute(
                """UPDATE submission SET is_group = ?, updated_at = CURRENT_TIMESTAMP
                   WHERE id = ? OR id IN (
                       SELECT child_submission_id FROM submission_link
                       WHERE parent_submission_id = ?)""",
                (value, row["id"], row["id"]),
            )
            return True

    # --- content ---

    def list_unparsed(self) -> List[Submission]:
        rows = self.db.execute(
            _TOP_LEVEL + " AND s.is_downloaded = 1 AND s.parsed_at IS NULL ORDER BY s.id"
        ).fetchall()
        return [Submission.from_row(r) for r in rows]

    def set_content(self, submission_id: int, content: str, size: int, image_count: int):
        with self.db.transaction() as conn:
            conn.execute(
                """UPDATE submission
                   SET content = ?, content_size = ?, image_count = ?,
                       parsed_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
                   WHERE id = ?""",
                (content, size, image_count, submission_id),
            )

    def clear_content(self) -> int:
        with self.db.transaction() as conn:
            cur = conn.execute(
                """UPDATE submission
                   SET content = NULL, content_size = NULL, image_count = NULL, parsed_at = NULL
                   WHERE parsed_at IS NOT NULL"""
            )
            return cur.rowcount

    def stats(self) -> Dict[str, int]:
        row = self.db.execute(
            """SELECT COUNT(*) AS total,
                      COALESCE(SUM(document_hash IS NOT NULL), 0) AS hashed,
                      COALESCE(SUM(is_downloaded), 0) AS downloaded,
                      COALESCE(SUM(parsed_at IS NOT NULL), 0) AS parsed,
                      COALESCE(SUM(is_group = 1), 0) AS groups,
                      COALESCE(SUM(is_group = 0), 0) AS individuals
               FROM submission"""
        ).fetchone()
        stats = dict(row)
        stats["linked"] = self.count_links()
        return stats
