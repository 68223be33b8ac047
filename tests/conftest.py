import asyncio
import os
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date

import pytest

from submission_scraper.config import AppConfig, CrawlConfig
from submission_scraper.db import Database
from submission_scraper.errors import TransientFetchError
from submission_scraper.models import ListingEntry, ListingPage, SubmissionDetail
from submission_scraper.pages import PageTracker
from submission_scraper.submissions import SubmissionStore


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    yield database
    database.close()


@pytest.fixture
def store(db):
    return SubmissionStore(db)


@pytest.fixture
def tracker(db):
    return PageTracker(db)


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        data_dir=str(tmp_path / "data"),
        db_path=str(tmp_path / "test.db"),
        log_dir=str(tmp_path / "logs"),
        pdf_dir=str(tmp_path / "pdf"),
        crawl=CrawlConfig(concurrency=2, page_size=20, retry_cooldown=0, hash_settle_delay=0),
    )


def _listing(page_number, count, total_pages=1, prefix="DOC"):
    entries = [
        ListingEntry(
            submitter=f"Submitter {page_number}-{i}",
            document_id=f"{prefix}{page_number}-{i}",
            submitter_reference=f"ref-{page_number}-{i}",
            raw_date="7 January 2025",
            submitted_at=date(2025, 1, 7),
        )
        for i in range(count)
    ]
    return ListingPage(entries=entries, current_page=page_number, total_pages=total_pages)


@pytest.fixture
def make_listing():
    return _listing


class FakePage:
    def __init__(self, number):
        self.number = number
        self.viewing = None


class FakePool:
    """Hands out FakePages and records how many are in use at once."""

    def __init__(self):
        self.created = 0
        self.in_use = set()
        self.max_in_use = 0
        self._idle = []

    @asynccontextmanager
    async def session(self):
        if self._idle:
            page = self._idle.pop()
        else:
            self.created += 1
            page = FakePage(self.created)
        assert page.number not in self.in_use
        self.in_use.add(page.number)
        self.max_in_use = max(self.max_in_use, len(self.in_use))
        try:
            yield page
        finally:
            self.in_use.discard(page.number)
            self._idle.append(page)


class FakeSite:
    """In-memory listing and detail pages.

    ``hashes`` maps a document id to the hashes returned by successive detail reads; an
    empty string is a read where the resource link had not rendered yet. ``failures``
    maps a page number to how many listing fetches fail before one succeeds. ``redirects``
    maps a document id to the id its detail page's resource link reports instead.
    """

    def __init__(self, listings, hashes=None, failures=None, redirects=None):
        self.listings = listings
        self.hashes = hashes or {}
        self.redirects = redirects or {}
        self.failures = dict(failures or {})
        self.listing_fetches = []
        self.detail_opens = []
        self.detail_reads = defaultdict(int)

    async def fetch_listing(self, page, page_number):
        self.listing_fetches.append(page_number)
        await asyncio.sleep(0)
        if self.failures.get(page_number, 0) > 0:
            self.failures[page_number] -= 1
            raise TransientFetchError(f"Navigation to page {page_number} timed out")
        return self.listings[page_number]

    async def open_detail(self, page, document_id, submitter_reference):
        self.detail_opens.append(document_id)
        page.viewing = document_id
        await asyncio.sleep(0)

    async def read_detail(self, page):
        document_id = page.viewing
        index = self.detail_reads[document_id]
        self.detail_reads[document_id] += 1
        sequence = self.hashes.get(document_id)
        if sequence is None:
            document_hash = f"hash-{document_id}"
        else:
            document_hash = sequence[min(index, len(sequence) - 1)]
        return SubmissionDetail(
            document_id=self.redirects.get(document_id, document_id), document_hash=document_hash
        )


class FakeDownloader:
    def __init__(self, pdf_dir):
        self.pdf_dir = pdf_dir
        self.calls = []

    def path_for(self, document_id):
        return os.path.join(self.pdf_dir, f"{document_id}.pdf")

    async def download(self, page, document_id, document_hash):
        assert document_hash
        self.calls.append((document_id, document_hash))
        await asyncio.sleep(0)
        os.makedirs(self.pdf_dir, exist_ok=True)
        path = self.path_for(document_id)
        with open(path, "wb") as f:
            f.write(b"%PDF-1.4 fake")
        return path, os.path.getsize(path)


@pytest.fixture
def page():
    return FakePage(1)


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def fake_site():
    return FakeSite


@pytest.fixture
def downloader(config):
    return FakeDownloader(config.pdf_dir)
