"""
Base abstract classes and shared types for the streaming ZIP extractor.
Defines interfaces for all major components.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum


class FailureReason(Enum):
    """Why an entry (or the whole scan) could not be extracted."""
    TRUNCATED_HEADER = "truncated_header"
    TRUNCATED_PAYLOAD = "truncated_payload"
    UNSUPPORTED_METHOD = "unsupported_method"
    DECOMPRESSION_FAILED = "decompression_failed"
    NAME_DECODE_FAILED = "name_decode_failed"
    WRITE_FAILED = "write_failed"
    UNSAFE_PATH = "unsafe_path"
    CRC_MISMATCH = "crc_mismatch"
    NOT_AN_ARCHIVE = "not_an_archive"


# Reasons that make further scanning unsafe
SCAN_FATAL_REASONS = frozenset({
    FailureReason.TRUNCATED_HEADER,
    FailureReason.TRUNCATED_PAYLOAD,
})


class ExtractionStatus(Enum):
    """Overall outcome of one extraction run."""
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class LocalFileHeader:
    """Fields of a local file header, read in place from the archive buffer."""
    offset: int
    flags: int
    compression_method: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_length: int
    extra_field_length: int

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & 0x08)

    @property
    def total_length(self) -> int:
        """Fixed header plus the two variable-length fields."""
        return 30 + self.filename_length + self.extra_field_length


@dataclass
class ArchiveEntry:
    """One entry found during a scan. Never outlives the scan step."""
    header: LocalFileHeader
    name: Optional[str]
    payload_start: int
    bytes_consumed: int = 0
    crc_known: bool = True

    @property
    def is_directory(self) -> bool:
        return self.name is not None and self.name.endswith('/')

    @property
    def next_offset(self) -> int:
        return self.payload_start + self.bytes_consumed


@dataclass
class InflateResult:
    """Output of one raw DEFLATE run."""
    data: bytes
    bytes_consumed: int
    reached_end: bool


@dataclass
class EntryFailure:
    """A per-entry (or scan-stopping) failure."""
    offset: int
    reason: FailureReason
    message: str
    name: Optional[str] = None

    @property
    def is_scan_fatal(self) -> bool:
        return self.reason in SCAN_FATAL_REASONS


@dataclass
class ExtractionResult:
    """Structured outcome of extracting one archive."""
    status: ExtractionStatus = ExtractionStatus.COMPLETE
    extracted: List[str] = field(default_factory=list)
    failures: List[EntryFailure] = field(default_factory=list)
    stop_reason: Optional[FailureReason] = None
    bytes_scanned: int = 0
    files_written: int = 0

    @property
    def count(self) -> int:
        """Number of entries materialized (files and directories)."""
        return len(self.extracted)

    @property
    def ok(self) -> bool:
        return self.status == ExtractionStatus.COMPLETE


class ZipFormatError(Exception):
    """Raised by the parsing helpers and the inflater; carries a FailureReason."""

    reason = FailureReason.TRUNCATED_HEADER

    def __init__(self, message: str, offset: int = 0):
        super().__init__(message)
        self.offset = offset


class TruncatedHeaderError(ZipFormatError):
    reason = FailureReason.TRUNCATED_HEADER


class TruncatedPayloadError(ZipFormatError):
    reason = FailureReason.TRUNCATED_PAYLOAD


class DecompressionFailedError(ZipFormatError):
    reason = FailureReason.DECOMPRESSION_FAILED


class NotAnArchiveError(ZipFormatError):
    reason = FailureReason.NOT_AN_ARCHIVE


class AbstractDownloader(ABC):
    """Abstract base class for fetching archives."""

    @abstractmethod
    def download(self, url: str) -> bytes:
        """
        Fetch the archive at *url* into memory.

        Args:
            url: Source URL

        Returns:
            The archive bytes

        Raises:
            NotAnArchiveError: If the body does not start like a ZIP archive
        """
        pass


class AbstractExtractor(ABC):
    """Abstract base class for archive extraction."""

    @abstractmethod
    def extract(self, archive_path: Path, destination: Path) -> ExtractionResult:
        """
        Extract files from archive.

        Args:
            archive_path: Path to archive file
            destination: Destination directory

        Returns:
            Structured extraction result
        """
        pass

    @abstractmethod
    def is_archive(self, file_path: Path) -> bool:
        """
        Check if file is an archive.

        Args:
            file_path: Path to check

        Returns:
            True if file is an archive
        """
        pass


class AbstractInflater(ABC):
    """Abstract base class for payload decompressors."""

    @abstractmethod
    def inflate(self, compressed: bytes, size_hint: Optional[int] = None) -> InflateResult:
        """
        Decompress one entry payload.

        Args:
            compressed: Compressed bytes, possibly followed by unrelated data
            size_hint: Declared output size, if known; advisory only

        Returns:
            Decompressed bytes and the number of input bytes consumed

        Raises:
            DecompressionFailedError: If the stream is corrupt
        """
        pass


class AbstractFileSystem(ABC):
    """Abstract base class for the directory/file write primitives."""

    @abstractmethod
    def create_directory(self, path: Path, create_intermediates: bool = True) -> bool:
        """
        Create a directory.

        Args:
            path: Directory to create
            create_intermediates: Also create missing parents

        Returns:
            True if the directory exists afterwards
        """
        pass

    @abstractmethod
    def write_file(self, path: Path, data: bytes) -> bool:
        """
        Write bytes to a file, replacing any existing content.

        Args:
            path: Target file
            data: Content

        Returns:
            True if the write succeeded
        """
        pass
