"""Attach supplementary submissions ("Jane Doe Supp 2") to the submission they amend."""

import logging
import re
from typing import Dict, Optional, Tuple

from .errors import ParentNotFound
from .submissions import SubmissionStore

logger = logging.getLogger("submission_scraper")

SUPPLEMENTARY_RE = re.compile(r"^(?P<base>.*\S)\s+Supp\s+(?P<order>[1-9][0-9]*)$")


def parse_supplementary(submitter: str) -> Optional[Tuple[str, int]]:
    """Return (base submitter, order) for a supplementary label, else None."""
    match = SUPPLEMENTARY_RE.match(submitter.strip())
    if not match:
        return None
    return match.group("base").strip(), int(match.group("order"))


class SupplementaryLinker:
    """Link every unlinked supplementary submission under its parent.

    The parent is the submission whose label is the base name and whose submission date
    matches the first supplementary seen for that base in this pass. It is looked up once
    per base name. A supplementary without a parent raises ParentNotFound rather than
    being guessed at.
    """

    def __init__(self, store: SubmissionStore):
        self.store = store

    def run(self) -> int:
        candidates = self.store.list_unlinked_supplementary(SUPPLEMENTARY_RE.pattern)
        parents: Dict[str, int] = {}
        created = 0

        for submission in candidates:
            parsed = parse_supplementary(submission.submitter)
            if parsed is None:
                continue
            base, order = parsed

            if base not in parents:
                parent_id = self.store.find_parent(base, submission.submitted_at)
                if parent_id is None:
                    raise ParentNotFound(submission.submitter, submission.submitted_at)
                parents[base] = parent_id

            logger.info(f"Creating submission link {submission.submitter} #{order}.")
            if self.store.add_link(submission.id, parents[base], order):
                created += 1

        return created
