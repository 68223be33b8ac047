from datetime import date

import pytest

from submission_scraper.coordinator import CrawlCoordinator, split_backlog
from submission_scraper.models import ListingPage


def test_split_backlog():
    assert split_backlog([1, 2, 3, 4, 5], 2) == [[1, 2, 3], [4, 5]]
    assert split_backlog([1, 2, 3, 4, 5, 6, 7, 8], 4) == [[1, 2], [3, 4], [5, 6], [7, 8]]
    assert split_backlog([3, 7], 4) == [[3], [7]]
    assert split_backlog([], 4) == []


def make_coordinator(config, pool, store, tracker, site, downloader):
    return CrawlCoordinator(config, pool, store, tracker, site=site, downloader=downloader)


@pytest.mark.asyncio
async def test_crawl_converges(store, tracker, pool, fake_site, downloader, config, make_listing):
    site = fake_site({n: make_listing(n, 20, total_pages=5) for n in range(1, 6)})
    coordinator = make_coordinator(config, pool, store, tracker, site, downloader)

    summary = await coordinator.run()

    assert summary.total_pages == 5
    assert summary.backlog == [1, 2, 3, 4, 5]
    assert summary.pages_scraped == 5
    assert summary.submissions_created == 100
    assert summary.documents_downloaded == 100
    assert summary.errors == 0
    assert sorted(site.listing_fetches) == [1, 1, 2, 3, 4, 5]
    assert tracker.list_unscraped() == []
    assert store.list_undownloaded() == []
    assert pool.max_in_use <= config.crawl.concurrency

    site.listing_fetches.clear()
    again = await coordinator.run()
    assert again.backlog == []
    assert site.listing_fetches == [1]


@pytest.mark.asyncio
async def test_partial_tail_page_is_revisited(
        store, tracker, pool, fake_site, downloader, config, make_listing):
    listings = {1: make_listing(1, 20, total_pages=3), 2: make_listing(2, 20, total_pages=3),
                3: make_listing(3, 7, total_pages=3)}
    site = fake_site(listings)
    coordinator = make_coordinator(config, pool, store, tracker, site, downloader)

    await coordinator.run()
    assert tracker.list_unscraped() == [3]

    listings[3] = make_listing(3, 12, total_pages=3)
    site.listing_fetches.clear()
    downloader.calls.clear()
    summary = await coordinator.run()

    assert summary.backlog == [3]
    assert site.listing_fetches == [1, 3]
    assert summary.submissions_created == 5
    assert len(downloader.calls) == 5
    assert tracker.list_unscraped() == [3]


@pytest.mark.asyncio
async def test_transient_failures_are_retried(
        store, tracker, pool, fake_site, downloader, config, make_listing):
    site = fake_site({n: make_listing(n, 20, total_pages=4) for n in range(1, 5)},
                     failures={3: 2})
    coordinator = make_coordinator(config, pool, store, tracker, site, downloader)

    summary = await coordinator.run()

    assert summary.errors == 2
    assert site.listing_fetches.count(3) == 3
    assert tracker.list_unscraped() == []


@pytest.mark.asyncio
async def test_resume_finishes_interrupted_downloads(
        store, tracker, pool, fake_site, downloader, config):
    store.create("OLD1", "Jane Doe", date(2025, 1, 7), "jane-doe")
    store.create("OLD2", "John Smith", date(2025, 1, 7), "john-smith")
    store.set_hash("OLD2", "stored-hash")
    store.create("ORPHAN", "No Reference", date(2025, 1, 7))
    site = fake_site({1: ListingPage(entries=[])})
    coordinator = make_coordinator(config, pool, store, tracker, site, downloader)

    summary = await coordinator.run()

    assert summary.resumed == 2
    assert ("OLD1", "hash-OLD1") in downloader.calls
    assert ("OLD2", "stored-hash") in downloader.calls
    assert site.detail_opens == ["OLD1"]
    assert [s.document_id for s in store.list_undownloaded()] == ["ORPHAN"]


@pytest.mark.asyncio
async def test_empty_listing_exits_early(store, tracker, pool, fake_site, downloader, config):
    site = fake_site({1: ListingPage(entries=[], total_pages=1)})
    coordinator = make_coordinator(config, pool, store, tracker, site, downloader)

    summary = await coordinator.run()

    assert summary.reports == []
    assert tracker.list_all() == []
    assert site.listing_fetches == [1]
