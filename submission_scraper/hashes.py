"""Document hash resolution from the submission detail page."""

import asyncio
import logging

from .errors import HashNotFound
from .submissions import SubmissionStore

logger = logging.getLogger("submission_scraper")


class HashResolver:
    """Look up the hash that addresses a submission's PDF.

    The detail page sometimes renders without its related-links block on first load.
    A missing hash is re-read once after ``settle_delay`` seconds; a second miss raises
    HashNotFound, since acquisition cannot proceed without it. So does a resource link
    that belongs to a different document.
    """

    def __init__(self, site, store: SubmissionStore, settle_delay: float = 5.0):
        self.site = site
        self.store = store
        self.settle_delay = settle_delay

    async def resolve(self, page, document_id: str, submitter_reference: str) -> str:
        existing = self.store.get_hash(document_id)
        if existing:
            return existing

        await self.site.open_detail(page, document_id, submitter_reference)
        detail = await self.site.read_detail(page)

        if not detail.document_hash:
            logger.info(f"No hash on first load of {document_id}, re-reading in {self.settle_delay}s")
            await asyncio.sleep(self.settle_delay)
            detail = await self.site.read_detail(page)

        if not detail.document_hash:
            raise HashNotFound(document_id)

        if detail.document_id and detail.document_id != document_id:
            raise HashNotFound(
                document_id, f"resource link points at document {detail.document_id}"
            )

        self.store.set_hash(document_id, detail.document_hash)
        return detail.document_hash
