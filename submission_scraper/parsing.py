"""Parse pass: link supplementary submissions, then extract PDF content.

Linking runs first so supplementary PDFs are folded into their parent's content instead
of being parsed as independent submissions.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .extractor import ContentParser
from .linker import SupplementaryLinker
from .submissions import SubmissionStore

logger = logging.getLogger("submission_scraper")


@dataclass
class ParseSummary:
    linked: int = 0
    parsed: int = 0
    missing: int = 0
    failed: int = 0


def run_parse(store: SubmissionStore, parser: ContentParser, pdf_dir: str,
              limit: Optional[int] = None, reset: bool = False) -> ParseSummary:
    summary = ParseSummary()

    if reset:
        cleared = store.clear_content()
        logger.info(f"Cleared content of {cleared} submissions.")

    summary.linked = SupplementaryLinker(store).run()

    submissions = store.list_unparsed()
    logger.info(f"Found {len(submissions)} unparsed submissions.")

    for submission in submissions:
        if limit is not None and summary.parsed >= limit:
            logger.info(f"Parsed limit of {limit}.")
            break

        children = store.list_children(submission.id)
        if children:
            logger.info(f"{submission.document_id}: {len(children)} supplementary submissions")

        paths = [
            os.path.join(pdf_dir, f"{s.document_id}.pdf") for s in [submission, *children]
        ]
        missing = [p for p in paths if not os.path.exists(p)]
        if missing:
            summary.missing += 1
            logger.warning(f"{submission.document_id}: missing PDF files {missing}")
            continue

        try:
            contents = [parser.parse(p) for p in paths]
        except Exception as e:
            summary.failed += 1
            logger.error(f"{submission.document_id}: PDF parsing failed: {e}")
            continue

        store.set_content(
            submission.id,
            "\n\n".join(c.text for c in contents),
            sum(c.size for c in contents),
            sum(c.image_count for c in contents),
        )
        summary.parsed += 1
        logger.info(
            f"Parsed {submission.document_id}: {sum(c.size for c in contents):,} bytes, "
            f"{sum(c.image_count for c in contents)} images"
        )

    return summary
