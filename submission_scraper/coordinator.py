"""Crawl coordinator: resume, discover the page count, and run the worker pool."""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from .config import AppConfig
from .downloader import DocumentDownloader
from .hashes import HashResolver
from .pages import PageTracker
from .site import ParliamentSite
from .submissions import SubmissionStore
from .worker import PageWorker, WorkerReport, acquire_document

logger = logging.getLogger("submission_scraper")


def split_backlog(pages: List[int], concurrency: int) -> List[List[int]]:
    """Split pages into at most ``concurrency`` contiguous chunks."""
    if not pages:
        return []
    size = math.ceil(len(pages) / max(concurrency, 1))
    return [pages[i:i + size] for i in range(0, len(pages), size)]


@dataclass
class CrawlSummary:
    resumed: int = 0
    total_pages: int = 0
    backlog: List[int] = field(default_factory=list)
    reports: List[WorkerReport] = field(default_factory=list)

    @property
    def pages_scraped(self) -> int:
        return sum(len(r.pages_scraped) for r in self.reports)

    @property
    def submissions_created(self) -> int:
        return sum(r.submissions_created for r in self.reports)

    @property
    def documents_downloaded(self) -> int:
        return sum(r.documents_downloaded for r in self.reports)

    @property
    def errors(self) -> int:
        return sum(r.errors for r in self.reports)


class CrawlCoordinator:
    def __init__(self, config: AppConfig, pool, store: SubmissionStore, tracker: PageTracker,
                 site=None, downloader=None):
        self.config = config
        self.pool = pool
        self.store = store
        self.tracker = tracker
        self.site = site or ParliamentSite(config.site)
        self.downloader = downloader or DocumentDownloader(self.site, config.pdf_dir)
        self.resolver = HashResolver(self.site, store, config.crawl.hash_settle_delay)

    async def resume_undownloaded(self) -> int:
        """Finish submissions discovered by an earlier, interrupted run."""
        pending = self.store.list_undownloaded()
        if not pending:
            return 0
        logger.info(f"Found {len(pending)} undownloaded submissions.")

        completed = 0
        async with self.pool.session() as page:
            for submission in pending:
                if not submission.document_hash and not submission.submitter_reference:
                    logger.warning(
                        f"Cannot resume {submission.document_id}: no hash and no submitter "
                        f"reference, leaving it for the listing crawl"
                    )
                    continue
                try:
                    await acquire_document(
                        page, self.store, self.resolver, self.downloader,
                        submission.document_id, submission.submitter_reference,
                    )
                    completed += 1
                except Exception as e:
                    logger.error(f"Failed to resume {submission.document_id}: {e}")
        return completed

    async def discover(self):
        async with self.pool.session() as page:
            return await self.site.fetch_listing(page, 1)

    async def run(self, resume: bool = True) -> CrawlSummary:
        summary = CrawlSummary()
        if resume:
            summary.resumed = await self.resume_undownloaded()

        first = await self.discover()
        if not first.entries:
            logger.info("No submissions found. Exiting.")
            return summary

        summary.total_pages = first.total_pages
        self.tracker.materialize_range(1, first.total_pages)
        logger.info(f"Found {first.total_pages} pages of submissions.")

        summary.backlog = self.tracker.list_unscraped()
        if not summary.backlog:
            logger.info("No new pages to scrape.")
            return summary

        chunks = split_backlog(summary.backlog, self.config.crawl.concurrency)
        logger.info(
            f"Scraping {len(summary.backlog)} pages, split into chunks "
            f"[{', '.join(str(len(c)) for c in chunks)}]"
        )

        workers = [
            PageWorker(
                worker_id=i + 1, pages=chunk, pool=self.pool, site=self.site,
                store=self.store, tracker=self.tracker, resolver=self.resolver,
                downloader=self.downloader, crawl_config=self.config.crawl,
            )
            for i, chunk in enumerate(chunks)
        ]
        tasks = [
            asyncio.create_task(w.run(), name=f"page-worker-{w.worker_id}") for w in workers
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failure: Optional[BaseException] = None
        for worker, result in zip(workers, results):
            if isinstance(result, BaseException):
                logger.error(f"{worker.tag} stopped: {result}")
                summary.reports.append(worker.report)
                failure = failure or result
            else:
                summary.reports.append(result)

        if failure is not None:
            raise failure
        return summary
