"""Exceptions raised by the harvesting pipeline."""


class ScraperError(Exception):
    """Base class for pipeline errors."""


class TransientFetchError(ScraperError):
    """Navigation, network or download failure. The page worker retries these."""


class HashNotFound(ScraperError):
    def __init__(self, document_id: str, reason: str = ""):
        message = f"Document hash not found for {document_id}"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.document_id = document_id


class ParentNotFound(ScraperError):
    def __init__(self, submitter: str, submitted_at=None):
        super().__init__(
            f"Parent submission not found for {submitter!r} (submitted {submitted_at})"
        )
        self.submitter = submitter
        self.submitted_at = submitted_at


class DuplicateRecord(ScraperError):
    """Raised by create() when another writer inserted the same document first."""

    def __init__(self, document_id: str):
        super().__init__(f"Submission {document_id} already exists")
        self.document_id = document_id
