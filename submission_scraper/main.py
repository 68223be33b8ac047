"""CLI entry point and orchestrator."""

import argparse
import asyncio
import sys

from .browser import SessionPool
from .config import AppConfig, load_config
from .coordinator import CrawlCoordinator, CrawlSummary
from .db import Database
from .errors import ParentNotFound
from .extractor import ContentParser
from .linker import SupplementaryLinker
from .logger import setup_logger
from .pages import PageTracker
from .parsing import run_parse
from .submissions import SubmissionStore


async def crawl(config: AppConfig, store: SubmissionStore, tracker: PageTracker) -> CrawlSummary:
    async with SessionPool(config.browser) as pool:
        coordinator = CrawlCoordinator(config, pool, store, tracker)
        return await coordinator.run()


def run_scraper(config: AppConfig, store: SubmissionStore, tracker: PageTracker):
    """Resume interrupted downloads, then harvest every unscraped listing page."""
    scraped, total = tracker.counts()
    if total:
        print(_progress_bar(scraped, total))

    summary = asyncio.run(crawl(config, store, tracker))

    print(f"Resumed {summary.resumed} interrupted submissions.")
    print(f"Pages: {summary.pages_scraped} completed of {len(summary.backlog)} in backlog "
          f"({summary.total_pages} total)")
    print(f"Submissions: {summary.submissions_created} new, "
          f"{summary.documents_downloaded} downloaded, {summary.errors} page errors")


def run_parse_only(config: AppConfig, store: SubmissionStore, limit=None, reset=False):
    summary = run_parse(store, ContentParser(), config.pdf_dir, limit=limit, reset=reset)
    print(f"Linked {summary.linked} supplementary submissions.")
    print(f"Parsed {summary.parsed} submissions "
          f"({summary.missing} missing files, {summary.failed} failed).")


def run_link_only(store: SubmissionStore):
    created = SupplementaryLinker(store).run()
    print(f"Linked {created} supplementary submissions.")


def show_stats(store: SubmissionStore, tracker: PageTracker):
    """Display crawl, download and classification statistics."""
    stats = store.stats()
    scraped, total = tracker.counts()

    print("\n" + "=" * 50)
    print("  SUBMISSION STATISTICS")
    print("=" * 50)
    print(f"{'Listing pages scraped':<30} {scraped:>8} / {total}")
    print(_progress_bar(scraped, total))
    print(f"{'Submissions':<30} {stats['total']:>8}")
    print(f"{'With document hash':<30} {stats['hashed']:>8}")
    print(f"{'Downloaded':<30} {stats['downloaded']:>8}")
    print(f"{'Parsed':<30} {stats['parsed']:>8}")
    print(f"{'Supplementary links':<30} {stats['linked']:>8}")
    print(f"{'Classified individual':<30} {stats['individuals']:>8}")
    print(f"{'Classified group':<30} {stats['groups']:>8}")
    print()


def _progress_bar(done: int, total: int, width: int = 40) -> str:
    if total <= 0:
        return f"[{'-' * width}] 0/0"
    filled = int(width * done / total)
    return f"[{'#' * filled}{'-' * (width - filled)}] {done}/{total} ({done / total:.0%})"


def main():
    parser = argparse.ArgumentParser(description="Select committee submission harvester")
    parser.add_argument("--config", type=str, default="config.yaml",
                        help="Path to config file")
    parser.add_argument("--parse", action="store_true",
                        help="Link supplementary submissions and parse downloaded PDFs")
    parser.add_argument("--link", action="store_true",
                        help="Only link supplementary submissions to their parents")
    parser.add_argument("--stats", action="store_true",
                        help="Show crawl and download statistics")
    parser.add_argument("--reset-pages", type=int, nargs=2, metavar=("START", "END"),
                        help="Mark listing pages START..END as unscraped")
    parser.add_argument("--reset-content", action="store_true",
                        help="With --parse, clear previously parsed content first")
    parser.add_argument("--limit", type=int, default=None,
                        help="With --parse, stop after this many submissions")
    args = parser.parse_args()

    config = load_config(args.config)
    logger = setup_logger(config.log_dir, config.log_level)
    db = Database(config.db_path, backup_dir=config.backup_dir)
    store = SubmissionStore(db)
    tracker = PageTracker(db)

    if args.stats:
        show_stats(store, tracker)
        return

    if args.reset_pages:
        start, end = args.reset_pages
        count = tracker.reset_range(start, end)
        print(f"Reset {count} pages between {start} and {end}.")
        return

    try:
        if args.link:
            run_link_only(store)
            return

        if args.parse:
            run_parse_only(config, store, limit=args.limit, reset=args.reset_content)
            return
    except ParentNotFound as e:
        logger.error(str(e))
        sys.exit(1)

    print("Select committee submission harvester")
    print(f"Keyword: {config.site.keyword}")
    print(f"Database: {config.db_path}")
    print(f"PDF directory: {config.pdf_dir}")

    run_scraper(config, store, tracker)

    if config.parse.enabled:
        try:
            run_parse_only(config, store)
        except ParentNotFound as e:
            logger.error(str(e))
            show_stats(store, tracker)
            sys.exit(1)

    show_stats(store, tracker)


if __name__ == "__main__":
    main()
