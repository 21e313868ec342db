"""
URL downloader for remote archives.
Fetches the response body into memory and rejects it as soon as the first
bytes show it is not a ZIP archive (an HTML error page, for instance).
"""
import logging
import requests
from typing import Optional
from tqdm import tqdm

from pkstream.base import AbstractDownloader, NotAnArchiveError
from pkstream.config import Config, get_config
from pkstream.headers import (
    CENTRAL_DIR_SIG,
    END_CENTRAL_DIR_SIG,
    LOCAL_FILE_HEADER_SIG,
)

logger = logging.getLogger(__name__)

# Signatures an archive body may start with
ARCHIVE_MAGIC = (
    LOCAL_FILE_HEADER_SIG,
    CENTRAL_DIR_SIG,
    END_CENTRAL_DIR_SIG,
)


class URLDownloader(AbstractDownloader):
    """Downloads archives from URLs with streaming support."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize downloader with config chunk size and timeout."""
        self.config = config or get_config()
        self.chunk_size = self.config.chunk_size
        self.timeout = self.config.download_timeout

    def download(self, url: str) -> bytes:
        """
        Stream-download an archive from url into memory.

        The body is checked for a ZIP signature once its first four bytes
        have arrived, so a wrong URL fails before the rest is transferred.

        Args:
            url: Source URL

        Returns:
            The archive bytes

        Raises:
            requests.exceptions.RequestException: on HTTP errors
            NotAnArchiveError: if the body does not start with a ZIP signature
        """
        logger.info("Downloading %s", url)
        body = bytearray()
        checked = False

        with requests.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total_size = int(response.headers.get('content-length', 0))

            # Unknown total size shows a counter instead of a bar
            with tqdm(total=total_size or None, unit='B', unit_scale=True,
                      desc=url.split('/')[-1].split('?')[0] or 'download') as pbar:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if not chunk:
                        continue
                    body += chunk
                    pbar.update(len(chunk))
                    if not checked and len(body) >= 4:
                        self._check_magic(url, body)
                        checked = True

        if not checked:
            raise NotAnArchiveError(f"{url} returned {len(body)} bytes, too short for a ZIP archive")

        logger.debug("Downloaded %d bytes from %s", len(body), url)
        return bytes(body)

    @staticmethod
    def _check_magic(url: str, body: bytearray):
        if bytes(body[:4]) not in ARCHIVE_MAGIC:
            raise NotAnArchiveError(f"{url} did not return a ZIP archive (starts with {bytes(body[:4])!r})")
