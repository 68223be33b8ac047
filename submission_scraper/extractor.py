"""Text and image extraction from submission PDFs with PyMuPDF."""

import logging
import os
import re

from .models import PdfContent

logger = logging.getLogger("submission_scraper")

_LETTERS = re.compile(r"[a-zA-Z]")


class ContentParser:
    def parse(self, pdf_path: str) -> PdfContent:
        """Extract text, byte size and embedded image count from a PDF.

        Scanned submissions often yield only page furniture (numbers, punctuation); text
        without a single letter is treated as empty.
        """
        import fitz  # PyMuPDF

        size = os.path.getsize(pdf_path)
        pages = []
        image_count = 0

        with fitz.open(pdf_path) as doc:
            for page in doc:
                pages.append(page.get_text())
                image_count += len(page.get_images(full=True))

        text = "\n".join(pages)
        if not _LETTERS.search(text):
            text = ""

        return PdfContent(text=text, size=size, image_count=image_count)
