"""Page worker: harvests one contiguous chunk of listing pages.

A worker owns one browser session for its whole chunk and processes pages strictly in
order, finishing every submission on a page before claiming the next. A failed page is
retried after the cooldown instead of being skipped. Workers share nothing in memory;
all coordination goes through the submission store and page tracker.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List

from .config import CrawlConfig
from .hashes import HashResolver
from .models import ListingEntry, ListingPage
from .pages import PageTracker
from .submissions import SubmissionStore

logger = logging.getLogger("submission_scraper")


@dataclass
class WorkerReport:
    worker_id: int
    pages_scraped: List[int] = field(default_factory=list)
    pages_partial: List[int] = field(default_factory=list)
    submissions_created: int = 0
    documents_downloaded: int = 0
    errors: int = 0


async def acquire_document(page, store: SubmissionStore, resolver: HashResolver, downloader,
                           document_id: str, submitter_reference: str) -> str:
    """Resolve the hash, download the PDF, then flag the submission as downloaded."""
    document_hash = await resolver.resolve(page, document_id, submitter_reference)
    local_path, size = await downloader.download(page, document_id, document_hash)
    store.flag_downloaded(document_id)
    logger.info(f"Downloaded {document_id} ({size:,} bytes) to {local_path}")
    return local_path


class PageWorker:
    def __init__(self, worker_id: int, pages: List[int], pool, site, store: SubmissionStore,
                 tracker: PageTracker, resolver: HashResolver, downloader,
                 crawl_config: CrawlConfig):
        self.worker_id = worker_id
        self.pool = pool
        self.site = site
        self.store = store
        self.tracker = tracker
        self.resolver = resolver
        self.downloader = downloader
        self.config = crawl_config
        self._backlog = deque(pages)
        self.report = WorkerReport(worker_id=worker_id)

    @property
    def tag(self) -> str:
        return f"[worker {self.worker_id}]"

    async def run(self) -> WorkerReport:
        async with self.pool.session() as page:
            while self._backlog:
                page_number = self._backlog[0]
                try:
                    await self.scrape_page(page, page_number)
                except Exception as e:
                    self.report.errors += 1
                    logger.error(f"{self.tag} Error scraping page {page_number}: {e}")
                    logger.info(
                        f"{self.tag} Waiting {self.config.retry_cooldown}s before retrying "
                        f"page {page_number}"
                    )
                    await asyncio.sleep(self.config.retry_cooldown)
                    continue
                self._backlog.popleft()

        logger.info(f"{self.tag} No more pages to scrape.")
        return self.report

    async def scrape_page(self, page, page_number: int) -> ListingPage:
        listing = await self.site.fetch_listing(page, page_number)
        if listing.current_page != page_number:
            logger.warning(
                f"{self.tag} Asked for page {page_number} but the listing shows "
                f"page {listing.current_page}"
            )

        harvested = [e for e in listing.entries if e.document_id]
        for entry in listing.entries:
            if not entry.document_id:
                logger.warning(f"{self.tag} Listing entry {entry.submitter!r} has no document id")

        new_count = sum(1 for e in harvested if not self.store.exists(e.document_id))
        logger.info(
            f"{self.tag} Loaded page {page_number} of {listing.total_pages}: "
            f"{new_count} new submissions ({len(harvested)} total)"
        )

        for entry in harvested:
            await self.process_entry(page, entry)

        # Short pages may still grow at the tail. Rows without an id were never harvested.
        if len(harvested) == self.config.page_size:
            self.tracker.mark_scraped(page_number)
            self.report.pages_scraped.append(page_number)
            scraped, total = self.tracker.counts()
            logger.info(f"{self.tag} Page {page_number} complete ({scraped}/{total} pages scraped)")
        else:
            self.report.pages_partial.append(page_number)
            logger.info(
                f"{self.tag} Page {page_number} has {len(harvested)} of "
                f"{self.config.page_size} submissions, leaving it unscraped"
            )
        return listing

    async def process_entry(self, page, entry: ListingEntry) -> bool:
        """Reconcile one listing entry and acquire its document. Returns True if downloaded."""
        _, created = self.store.ensure(
            entry.document_id, entry.submitter, entry.submitted_at, entry.submitter_reference
        )
        if created:
            self.report.submissions_created += 1
            logger.info(f"{self.tag} Found new submission: {entry.submitter} - {entry.raw_date}")
        self.store.refresh_submitted_at(entry.document_id, entry.submitted_at)

        if self.store.is_downloaded(entry.document_id):
            return False

        await acquire_document(
            page, self.store, self.resolver, self.downloader,
            entry.document_id, entry.submitter_reference,
        )
        self.report.documents_downloaded += 1
        return True
