"""Parliament submissions site: URLs, navigation, and HTML extraction.

Listing pages come in two layouts depending on viewport width: a desktop table
(``table.table--list``) and a mobile accordion. Both carry a link whose last two path
segments are the document id and the submitter reference. Detail pages link the PDF as
``/resource/<locale>/<document_id>/<hash>``.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional, Tuple
from urllib.parse import quote, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .config import SiteConfig
from .errors import TransientFetchError
from .models import ListingEntry, ListingPage, SubmissionDetail

logger = logging.getLogger("submission_scraper")

DATE_FORMAT = "%d %B %Y"


def _clean(text: Optional[str]) -> str:
    return (text or "").replace("\u00a0", " ").strip()


def parse_listing_date(raw: str) -> Optional[date]:
    """Parse a listing date such as '3 March 2025'. Returns None if unparseable."""
    cleaned = re.sub(r"\s+", " ", _clean(raw))
    try:
        return datetime.strptime(cleaned, DATE_FORMAT).date()
    except ValueError:
        logger.warning(f"Unparseable submission date: {raw!r}")
        return None


def split_link(href: str) -> Tuple[str, str]:
    """Return the last two path segments of a link, or empty strings."""
    parts = urlparse(href or "").path.rstrip("/").split("/")
    if len(parts) >= 2:
        return parts[-2], parts[-1]
    return "", ""


def parse_listing_html(html: str) -> ListingPage:
    soup = BeautifulSoup(html, "html.parser")
    raw_rows = []

    rows = soup.select("table.table--list tbody tr")
    if rows:
        for row in rows:
            cells = row.find_all("td", recursive=False)
            if len(cells) < 3:
                continue
            name_cell, committee_cell, date_cell = cells[0], cells[1], cells[2]
            link = name_cell.find("a")
            name = link.get("title") if link else ""
            if not name:
                body_link = name_cell.select_one(".list__cell-body a")
                name = body_link.get_text() if body_link else ""
            bill = name_cell.select_one("p.list__cell-text")
            raw_rows.append((
                _clean(name),
                link.get("href", "") if link else "",
                _clean(bill.get_text()) if bill else "",
                _clean(committee_cell.get_text()),
                _clean(date_cell.get_text()),
            ))
    else:
        for item in soup.select(".accordion-details-list__item"):
            title = item.select_one(".accordion-details-list__title")
            bill = item.select_one(".accordion-details-list__body div")
            committee = item.select_one(".accordion-details-list__body p:nth-child(2)")
            when = item.select_one(".accordion-details-list__body p:nth-child(3)")
            raw_rows.append((
                _clean(title.get_text()) if title else "",
                title.get("href", "") if title else "",
                _clean(bill.get_text()) if bill else "",
                _clean(committee.get_text()).replace("Committee:", "").strip() if committee else "",
                _clean(when.get_text()).replace("Date:", "").strip() if when else "",
            ))

    entries = []
    for name, href, bill, committee, raw_date in raw_rows:
        document_id, reference = split_link(href)
        entries.append(ListingEntry(
            submitter=name,
            document_id=document_id,
            submitter_reference=reference,
            raw_date=raw_date,
            submitted_at=parse_listing_date(raw_date),
            bill=bill,
            committee=committee,
        ))

    current_page = 1
    selected = soup.select_one(".pagination__item--desktop span.is-selected")
    if selected is None:
        selected = soup.select_one(".pagination__dropdown-trigger")
    if selected is not None and _clean(selected.get_text()).isdigit():
        current_page = int(_clean(selected.get_text()))

    mobile = soup.select_one(".pagination__item--mobile")
    total_match = re.search(r"of\s+(\d+)", mobile.get_text()) if mobile else None
    if total_match:
        total_pages = int(total_match.group(1))
    else:
        links = soup.select(".pagination__item--desktop a, .pagination__item--desktop span")
        total_pages = len(links) or 1

    return ListingPage(entries=entries, current_page=current_page, total_pages=total_pages)


def parse_detail_html(html: str) -> SubmissionDetail:
    soup = BeautifulSoup(html, "html.parser")
    detail = SubmissionDetail()

    title = soup.select_one("h1.beta")
    if title is not None:
        parts = title.get_text().split(" - ")
        if len(parts) > 1:
            detail.submitter = parts[-1].strip()

    published = soup.select_one("span.publish-date")
    if published is not None:
        match = re.search(r"Published date:?\s*(.+)", _clean(published.get_text()), re.IGNORECASE)
        if match:
            detail.published_date = match.group(1).strip()

    link = soup.select_one('span.related-links__legacy-link a[href*="/resource/"]')
    if link is None or not link.get("href"):
        link = soup.select_one('.related-links__item a[href*="/resource/"]')
    if link is not None:
        detail.document_id, detail.document_hash = split_link(link.get("href", ""))

    return detail


class ParliamentSite:
    """Navigation for one bill's submissions. Every method drives the given page only."""

    def __init__(self, config: SiteConfig):
        self.config = config

    def listing_url(self, page_number: int) -> str:
        keyword = quote(f'"{self.config.keyword}"', safe="")
        return (
            f"{self.config.base_url}/en/pb/sc/evidence-submissions/"
            f"?Criteria.PageNumber={page_number}&Criteria.Keyword={keyword}"
            f"&Criteria.Sort={self.config.sort}&Criteria.Direction={self.config.direction}"
        )

    def detail_url(self, document_id: str, submitter_reference: str) -> str:
        return (
            f"{self.config.base_url}/en/pb/sc/submissions-and-advice/document/"
            f"{document_id}/{submitter_reference}"
        )

    def resource_url(self, document_id: str, document_hash: str) -> str:
        return f"{self.config.base_url}/resource/{self.config.locale}/{document_id}/{document_hash}"

    async def _goto(self, page: Page, url: str):
        try:
            await page.goto(url, wait_until="networkidle")
        except PlaywrightError as e:
            raise TransientFetchError(f"Navigation to {url} failed: {e}") from e

    async def fetch_listing(self, page: Page, page_number: int) -> ListingPage:
        logger.info(f"Searching for {self.config.keyword!r}, page {page_number}")
        await self._goto(page, self.listing_url(page_number))
        return parse_listing_html(await page.content())

    async def open_detail(self, page: Page, document_id: str, submitter_reference: str):
        await self._goto(page, self.detail_url(document_id, submitter_reference))

    async def read_detail(self, page: Page) -> SubmissionDetail:
        return parse_detail_html(await page.content())
