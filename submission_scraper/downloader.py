"""PDF acquisition through the browser's native download flow.

The resource URL answers with ``Content-Disposition: attachment``, so navigation is
interrupted by the download and Playwright reports "Download is starting". The file is
saved beside the destination first and renamed into place once complete, so a crash
never leaves a truncated PDF under the final name.
"""

import logging
import os
from typing import Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import TransientFetchError
from .site import ParliamentSite

logger = logging.getLogger("submission_scraper")


class DocumentDownloader:
    def __init__(self, site: ParliamentSite, pdf_dir: str):
        self.site = site
        self.pdf_dir = pdf_dir

    def path_for(self, document_id: str) -> str:
        return os.path.join(self.pdf_dir, f"{document_id}.pdf")

    async def download(self, page: Page, document_id: str, document_hash: str) -> Tuple[str, int]:
        """Download a submission PDF. Returns (local_path, file_size)."""
        if not document_hash:
            raise ValueError(f"Cannot download {document_id} without a document hash")

        os.makedirs(self.pdf_dir, exist_ok=True)
        local_path = self.path_for(document_id)
        partial_path = local_path + ".part"
        url = self.site.resource_url(document_id, document_hash)

        try:
            async with page.expect_download() as download_info:
                try:
                    await page.goto(url, wait_until="networkidle")
                except PlaywrightError as e:
                    if "Download is starting" not in str(e):
                        raise
            download = await download_info.value
            await download.save_as(partial_path)
        except PlaywrightError as e:
            raise TransientFetchError(f"Download of {document_id} failed: {e}") from e

        size = os.path.getsize(partial_path)
        if size == 0:
            os.remove(partial_path)
            raise TransientFetchError(f"Download of {document_id} produced an empty file")

        os.replace(partial_path, local_path)
        return local_path, size
