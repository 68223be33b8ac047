"""Known personal names used to classify submissions as individuals."""

from typing import Iterable, List

from .db import Database


def split_submitter(submitter: str) -> List[str]:
    return [part.strip().lower() for part in submitter.split(" ") if part.strip()]


class NameStore:
    def __init__(self, db: Database):
        self.db = db

    def add_names(self, names: Iterable[str]) -> int:
        cleaned = [n.strip().lower() for n in names if n and n.strip()]
        with self.db.transaction() as conn:
            cur = conn.executemany(
                "INSERT OR IGNORE INTO name (name) VALUES (?)", [(n,) for n in cleaned]
            )
            return cur.rowcount

    def list_names(self) -> List[str]:
        rows = self.db.execute("SELECT name FROM name ORDER BY name").fetchall()
        return [r["name"] for r in rows]

    def set_submission_names(self, document_id: str, names: List[str]) -> bool:
        """Store first/middle/last names for a submission, replacing earlier ones."""
        first = names[0] if names else None
        middle = " ".join(names[1:-1]) or None
        last = names[-1] if len(names) > 1 else None
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT id FROM submission WHERE document_id = ?", (document_id,)
            ).fetchone()
            if row is None:
                return False
            conn.execute(
                """INSERT INTO submission_name (submission_id, first_name, middle_names, last_name)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(submission_id) DO UPDATE SET
                     first_name = excluded.first_name,
                     middle_names = excluded.middle_names,
                     last_name = excluded.last_name""",
                (row["id"], first, middle, last),
            )
            return True

    def get_submission_names(self, document_id: str):
        return self.db.execute(
            """SELECT n.first_name, n.middle_names, n.last_name FROM submission_name n
               JOIN submission s ON s.id = n.submission_id WHERE s.document_id = ?""",
            (document_id,),
        ).fetchone()
