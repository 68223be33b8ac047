"""Data models for the scraper."""

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


class GroupClassification(enum.Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"

    @classmethod
    def from_db(cls, value) -> Optional["GroupClassification"]:
        if value is None:
            return None
        return cls.GROUP if value else cls.INDIVIDUAL

    def to_db(self) -> int:
        return 1 if self is GroupClassification.GROUP else 0


@dataclass
class Submission:
    id: int
    document_id: str
    submitter: str
    submitted_at: Optional[date] = None
    submitter_reference: str = ""
    document_hash: Optional[str] = None
    is_downloaded: bool = False
    # Filled by the parse pass
    content: Optional[str] = None
    content_size: Optional[int] = None
    image_count: Optional[int] = None
    group: Optional[GroupClassification] = None

    @classmethod
    def from_row(cls, row) -> "Submission":
        submitted = row["submitted_at"]
        return cls(
            id=row["id"],
            document_id=row["document_id"],
            submitter=row["submitter"],
            submitted_at=date.fromisoformat(submitted) if submitted else None,
            submitter_reference=row["submitter_reference"] or "",
            document_hash=row["document_hash"],
            is_downloaded=bool(row["is_downloaded"]),
            content=row["content"],
            content_size=row["content_size"],
            image_count=row["image_count"],
            group=GroupClassification.from_db(row["is_group"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "submitter": self.submitter,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "document_hash": self.document_hash,
            "is_downloaded": self.is_downloaded,
            "content_size": self.content_size,
            "image_count": self.image_count,
            "is_group": None if self.group is None else self.group is GroupClassification.GROUP,
        }


@dataclass
class PageRecord:
    page_number: int
    is_scraped: bool = False


@dataclass
class ListingEntry:
    """One row of the submissions listing."""
    submitter: str
    document_id: str
    submitter_reference: str
    raw_date: str = ""
    submitted_at: Optional[date] = None
    bill: str = ""
    committee: str = ""


@dataclass
class ListingPage:
    entries: List[ListingEntry] = field(default_factory=list)
    current_page: int = 1
    total_pages: int = 1


@dataclass
class SubmissionDetail:
    submitter: str = ""
    published_date: str = ""
    document_id: str = ""
    document_hash: str = ""


@dataclass
class PdfContent:
    text: str
    size: int
    image_count: int
