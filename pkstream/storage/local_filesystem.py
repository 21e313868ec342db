"""
Local filesystem primitives used by the extractor.
Every file handle is opened in a with-block so it is closed even when
the write fails part-way.
"""
import logging
from pathlib import Path

from pkstream.base import AbstractFileSystem

logger = logging.getLogger(__name__)


class LocalFileSystem(AbstractFileSystem):
    """Writes extracted entries to the local disk."""

    def create_directory(self, path: Path, create_intermediates: bool = True) -> bool:
        try:
            Path(path).mkdir(parents=create_intermediates, exist_ok=True)
            return True
        except OSError as e:
            logger.error("Failed to create directory %s: %s", path, e)
            return False

    def write_file(self, path: Path, data: bytes) -> bool:
        """
        Write *data* to *path*, truncating any existing file.

        Returns:
            False if the file could not be opened or written
        """
        try:
            with open(path, 'wb') as f:
                f.write(data)
            return True
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            return False
