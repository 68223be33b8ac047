from datetime import date

from submission_scraper.config import SiteConfig
from submission_scraper.site import (
    ParliamentSite,
    parse_detail_html,
    parse_listing_date,
    parse_listing_html,
    split_link,
)

DESKTOP_LISTING = """
<html><body>
<table class="table--list"><tbody>
  <tr>
    <td>
      <div class="list__cell-body">
        <a href="/en/pb/sc/submissions-and-advice/document/54SCJU_EVI_1/jane-doe" title="Jane Doe">Jane Doe</a>
      </div>
      <p class="list__cell-text">Principles of the Treaty of Waitangi Bill</p>
    </td>
    <td>Justice&nbsp;Committee</td>
    <td>7&nbsp;January 2025</td>
  </tr>
  <tr>
    <td>
      <div class="list__cell-body">
        <a href="/en/pb/sc/submissions-and-advice/document/54SCJU_EVI_2/jane-doe-supp-1">Jane Doe Supp 1</a>
      </div>
    </td>
    <td>Justice Committee</td>
    <td>not a date</td>
  </tr>
</tbody></table>
<ul>
  <li class="pagination__item--desktop"><span class="is-selected">3</span></li>
  <li class="pagination__item--mobile">Page 3 of 412</li>
</ul>
</body></html>
"""

MOBILE_LISTING = """
<html><body>
<ul>
  <li class="accordion-details-list__item">
    <a class="accordion-details-list__title" href="/en/pb/sc/submissions-and-advice/document/54SCJU_EVI_9/acme-trust">Acme Trust</a>
    <div class="accordion-details-list__body">
      <div>Principles of the Treaty of Waitangi Bill</div>
      <p>Committee: Justice Committee</p>
      <p>Date: 12 February 2025</p>
    </div>
  </li>
</ul>
<div class="pagination__dropdown-trigger">2</div>
<ul>
  <li class="pagination__item--desktop"><a href="?p=1">1</a></li>
  <li class="pagination__item--desktop"><span>2</span></li>
  <li class="pagination__item--desktop"><a href="?p=3">3</a></li>
</ul>
</body></html>
"""

DETAIL = """
<html><body>
<h1 class="beta">Submission on Principles of the Treaty of Waitangi Bill - Jane Doe</h1>
<span class="publish-date"><strong>Published date:</strong> 7 Jan 2025</span>
<ul class="related-links">
  <li class="related-links__item">
    <span class="related-links__legacy-link">
      <a href="/resource/en-NZ/54SCJU_EVI_1/0a1b2c3d4e5f">Download PDF</a>
    </span>
  </li>
</ul>
</body></html>
"""


def test_parse_desktop_listing():
    listing = parse_listing_html(DESKTOP_LISTING)

    assert listing.current_page == 3
    assert listing.total_pages == 412
    assert len(listing.entries) == 2

    first = listing.entries[0]
    assert first.submitter == "Jane Doe"
    assert first.document_id == "54SCJU_EVI_1"
    assert first.submitter_reference == "jane-doe"
    assert first.committee == "Justice Committee"
    assert first.bill == "Principles of the Treaty of Waitangi Bill"
    assert first.submitted_at == date(2025, 1, 7)

    second = listing.entries[1]
    assert second.submitter == "Jane Doe Supp 1"
    assert second.submitted_at is None
    assert second.raw_date == "not a date"


def test_parse_mobile_listing():
    listing = parse_listing_html(MOBILE_LISTING)

    assert listing.current_page == 2
    assert listing.total_pages == 3
    entry = listing.entries[0]
    assert entry.submitter == "Acme Trust"
    assert entry.document_id == "54SCJU_EVI_9"
    assert entry.committee == "Justice Committee"
    assert entry.submitted_at == date(2025, 2, 12)


def test_parse_empty_listing():
    listing = parse_listing_html("<html><body><p>No results</p></body></html>")
    assert listing.entries == []
    assert listing.current_page == 1
    assert listing.total_pages == 1


def test_parse_listing_date():
    assert parse_listing_date("1 March 2024") == date(2024, 3, 1)
    assert parse_listing_date(" 21 March  2024 ") == date(2024, 3, 21)
    assert parse_listing_date("2024-03-21") is None
    assert parse_listing_date("") is None


def test_parse_detail():
    detail = parse_detail_html(DETAIL)
    assert detail.submitter == "Jane Doe"
    assert detail.published_date == "7 Jan 2025"
    assert detail.document_id == "54SCJU_EVI_1"
    assert detail.document_hash == "0a1b2c3d4e5f"


def test_parse_detail_fallback_link():
    html = """
    <div class="related-links__item"><a href="/resource/en-NZ/DOC7/ffee">PDF</a></div>
    """
    detail = parse_detail_html(html)
    assert (detail.document_id, detail.document_hash) == ("DOC7", "ffee")


def test_parse_detail_without_link():
    detail = parse_detail_html("<h1 class='beta'>Loading</h1>")
    assert detail.document_hash == ""
    assert detail.submitter == ""


def test_split_link():
    assert split_link("https://x/resource/en-NZ/DOC/HASH?dl=1") == ("DOC", "HASH")
    assert split_link("/a/b/") == ("a", "b")
    assert split_link("") == ("", "")


def test_site_urls():
    site = ParliamentSite(SiteConfig(base_url="https://example.test", keyword="Some Bill"))
    url = site.listing_url(4)
    assert url.startswith("https://example.test/en/pb/sc/evidence-submissions/")
    assert "Criteria.PageNumber=4" in url
    assert "Criteria.Keyword=%22Some%20Bill%22" in url
    assert site.detail_url("DOC", "ref") == (
        "https://example.test/en/pb/sc/submissions-and-advice/document/DOC/ref"
    )
    assert site.resource_url("DOC", "HASH") == "https://example.test/resource/en-NZ/DOC/HASH"
