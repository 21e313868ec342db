"""
Orchestrator: coordinates the archive import flow.

Responsibilities:
  * Fetch an archive (local file or URL) into memory.
  * Clear any previous copy of the destination folder when configured.
  * Run the streaming extractor and report its result.
"""
import logging
import shutil
from pathlib import Path
from typing import Optional

from pkstream.base import ExtractionResult
from pkstream.config import Config, get_config
from pkstream.downloaders.url_downloader import URLDownloader
from pkstream.extractors.zip_extractor import ZipExtractor

logger = logging.getLogger(__name__)


class Orchestrator:
    """Wires together the downloader and extractor."""

    def __init__(self, config: Optional[Config] = None,
                 downloader: Optional[URLDownloader] = None,
                 extractor: Optional[ZipExtractor] = None):
        self.config = config or get_config()
        self.downloader = downloader or URLDownloader(config=self.config)
        self.extractor = extractor or ZipExtractor(config=self.config)

    # ---------------------------------------------------------- public API

    def install_file(self, archive_path: Path, destination: Path,
                     replace: Optional[bool] = None) -> ExtractionResult:
        """
        Extract a local archive into *destination*.

        Args:
            archive_path: Archive on disk
            destination: Target folder
            replace: Remove an existing destination first; defaults to
                config.replace_existing

        Returns:
            The extractor's result

        Raises:
            FileNotFoundError: If archive_path does not exist
        """
        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise FileNotFoundError(archive_path)

        data = archive_path.read_bytes()
        logger.info("Read zip data: %d bytes from %s", len(data), archive_path.name)
        return self._install_bytes(data, Path(destination), replace)

    def install_url(self, url: str, destination: Path,
                    replace: Optional[bool] = None) -> ExtractionResult:
        """
        Download an archive into memory, then extract it.

        Args:
            url: Archive URL
            destination: Target folder
            replace: See install_file

        Raises:
            requests.exceptions.RequestException: on HTTP errors
            NotAnArchiveError: if the response is not a ZIP archive
        """
        data = self.downloader.download(url)
        logger.info("Fetched zip data: %d bytes from %s", len(data), url)
        return self._install_bytes(data, Path(destination), replace)

    # ---------------------------------------------------------- internals

    def _install_bytes(self, data: bytes, destination: Path,
                       replace: Optional[bool]) -> ExtractionResult:
        if replace is None:
            replace = self.config.replace_existing
        if replace and destination.exists():
            shutil.rmtree(destination)
            logger.info("Removed existing folder %s", destination)
        destination.mkdir(parents=True, exist_ok=True)

        result = self.extractor.extract_bytes(data, destination)
        if result.ok:
            logger.info("Unzip finished: %d entries", result.count)
        else:
            logger.warning("Unzip %s: %d entries, %d failures",
                           result.status.value, result.count, len(result.failures))
        return result
