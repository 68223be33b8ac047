"""Listing page progress tracking."""

from typing import List, Optional, Tuple

from .db import Database
from .models import PageRecord


class PageTracker:
    def __init__(self, db: Database):
        self.db = db

    def materialize_range(self, start: int, end: int) -> int:
        """Ensure a row exists for every page in [start, end]. Returns rows added."""
        if start < 1 or end < start:
            return 0
        with self.db.transaction() as conn:
            cur = conn.executemany(
                "INSERT OR IGNORE INTO page_record (page_number, is_scraped) VALUES (?, 0)",
                [(n,) for n in range(start, end + 1)],
            )
            return cur.rowcount

    def list_unscraped(self) -> List[int]:
        rows = self.db.execute(
            "SELECT page_number FROM page_record WHERE is_scraped = 0 ORDER BY page_number"
        ).fetchall()
        return [r["page_number"] for r in rows]

    def mark_scraped(self, page_number: int) -> bool:
        """Flag a page as fully harvested.

        Only the first call for a page changes anything; repeated calls return False.
        """
        with self.db.transaction() as conn:
            cur = conn.execute(
                """UPDATE page_record SET is_scraped = 1, updated_at = CURRENT_TIMESTAMP
                   WHERE page_number = ? AND is_scraped = 0""",
                (page_number,),
            )
            return cur.rowcount > 0

    def reset_range(self, start: int, end: int) -> int:
        with self.db.transaction() as conn:
            cur = conn.execute(
                """UPDATE page_record SET is_scraped = 0, updated_at = CURRENT_TIMESTAMP
                   WHERE page_number BETWEEN ? AND ? AND is_scraped = 1""",
                (start, end),
            )
            return cur.rowcount

    def get(self, page_number: int) -> Optional[PageRecord]:
        row = self.db.execute(
            "SELECT page_number, is_scraped FROM page_record WHERE page_number = ?",
            (page_number,),
        ).fetchone()
        if row is None:
            return None
        return PageRecord(row["page_number"], bool(row["is_scraped"]))

    def list_all(self) -> List[PageRecord]:
        rows = self.db.execute(
            "SELECT page_number, is_scraped FROM page_record ORDER BY page_number"
        ).fetchall()
        return [PageRecord(r["page_number"], bool(r["is_scraped"])) for r in rows]

    def counts(self) -> Tuple[int, int]:
        """Return (scraped, total)."""
        row = self.db.execute(
            "SELECT COALESCE(SUM(is_scraped), 0) AS scraped, COUNT(*) AS total FROM page_record"
        ).fetchone()
        return row["scraped"], row["total"]
