"""
Streaming zip archive extractor.

Walks the archive buffer one local file header at a time, without
reading the central directory, and writes each entry as soon as its
payload has been copied or inflated.  The offset of the next entry is
only known once the current one has been fully consumed, so the scan
is a single forward pass.
"""
import logging
import posixpath
import zlib
from pathlib import Path
from typing import List, Optional, Tuple

from pkstream.base import (
    AbstractExtractor,
    AbstractFileSystem,
    AbstractInflater,
    ArchiveEntry,
    DecompressionFailedError,
    EntryFailure,
    ExtractionResult,
    ExtractionStatus,
    FailureReason,
    TruncatedPayloadError,
    ZipFormatError,
)
from pkstream.config import Config, get_config
from pkstream.headers import (
    CENTRAL_DIR_SIG,
    END_CENTRAL_DIR_SIG,
    LOCAL_FILE_HEADER_SIG,
    METHOD_DEFLATE,
    METHOD_STORE,
    decode_name,
    descriptor_length,
    parse_local_header,
    raw_name,
    read_descriptor_crc,
    read_signature,
)
from pkstream.inflaters.raw_inflater import RawInflater
from pkstream.storage.local_filesystem import LocalFileSystem

logger = logging.getLogger(__name__)


def is_safe_member(name: str) -> bool:
    """False for absolute names, drive letters, or names that climb out of the root."""
    if name.startswith(('/', '\\')):
        return False
    if len(name) >= 2 and name[1] == ':' and name[0].isalpha():
        return False
    norm = posixpath.normpath(name)
    if norm.startswith('../') or norm == '..':
        return False
    return True


class ZipExtractor(AbstractExtractor):
    """Extracts Store and Deflate entries driven by their local file headers."""

    def __init__(self, config: Optional[Config] = None,
                 inflater: Optional[AbstractInflater] = None,
                 filesystem: Optional[AbstractFileSystem] = None):
        self.config = config or get_config()
        self.inflater = inflater or RawInflater(config=self.config)
        self.filesystem = filesystem or LocalFileSystem()

    # ---------------------------------------------------------- public API

    def extract(self, archive_path: Path, destination: Path) -> ExtractionResult:
        """
        Read the archive at *archive_path* into memory and extract it.

        Args:
            archive_path: Path to the .zip file
            destination: Root directory to extract into

        Returns:
            ExtractionResult describing what was written

        Raises:
            OSError: If the archive cannot be read
        """
        data = Path(archive_path).read_bytes()
        logger.info("Read %d bytes from %s", len(data), archive_path)
        return self.extract_bytes(data, destination)

    def extract_bytes(self, data: bytes, destination: Path) -> ExtractionResult:
        """
        Extract every entry of the in-memory archive *data* under *destination*.

        Truncated headers or payloads stop the scan but keep everything
        extracted before them.  Unsupported methods, corrupt streams, bad
        names and failed writes are recorded per entry; the scan carries on
        whenever the next header offset is still known.

        Args:
            data: Entire archive contents
            destination: Root directory to extract into

        Returns:
            ExtractionResult with status COMPLETE, PARTIAL or FAILED
        """
        result = ExtractionResult()
        self._scan(data, result, Path(destination))
        return result

    def list_entries(self, data: bytes) -> List[ArchiveEntry]:
        """
        Walk the archive without writing anything.

        Returns:
            Every entry reached by the scan, in archive order
        """
        result = ExtractionResult()
        return self._scan(data, result, None)

    def is_archive(self, file_path: Path) -> bool:
        """
        Determine whether a file is a zip archive.

        Checks the file extension first (fast path), then falls back to
        inspecting the first four magic bytes.

        Args:
            file_path: Path to inspect

        Returns:
            True if the file appears to be a zip archive
        """
        if not file_path.exists() or not file_path.is_file():
            return False

        if file_path.suffix.lower() == '.zip':
            return True

        try:
            with open(file_path, 'rb') as f:
                header = f.read(4)
            # PK\x03\x04 normal zip, PK\x05\x06 empty zip
            return header in (LOCAL_FILE_HEADER_SIG, END_CENTRAL_DIR_SIG)
        except OSError:
            return False

    # ---------------------------------------------------------- internals

    def _scan(self, data: bytes, result: ExtractionResult,
              destination: Optional[Path]) -> List[ArchiveEntry]:
        """Single forward pass over *data*; writes only when destination is set."""
        entries: List[ArchiveEntry] = []

        # An empty or sub-4-byte buffer lands here too (first is None) and is
        # reported as not an archive, unlike a short tail after real entries
        # which ends the scan normally
        first = read_signature(data, 0)
        if first not in (LOCAL_FILE_HEADER_SIG, CENTRAL_DIR_SIG, END_CENTRAL_DIR_SIG):
            self._fail(result, 0, FailureReason.NOT_AN_ARCHIVE,
                       "No zip signature at start of buffer")
            result.stop_reason = FailureReason.NOT_AN_ARCHIVE
            result.status = ExtractionStatus.FAILED
            return entries

        view = memoryview(data)
        cursor = 0

        while True:
            signature = read_signature(data, cursor)
            if signature is None or signature == CENTRAL_DIR_SIG:
                break
            if signature != LOCAL_FILE_HEADER_SIG:
                logger.debug("Unexpected signature %r at %d, stopping scan", signature, cursor)
                break

            try:
                entry, payload, keep_going = self._read_entry(data, view, cursor, result)
            except ZipFormatError as e:
                self._fail(result, e.offset, e.reason, str(e))
                result.stop_reason = e.reason
                break

            entries.append(entry)
            if destination is not None and payload is not None:
                self._materialize(entry, payload, destination, result)

            if not keep_going:
                break
            cursor = entry.next_offset

        result.bytes_scanned = cursor
        if result.failures:
            result.status = ExtractionStatus.PARTIAL
        return entries

    def _read_entry(self, data: bytes, view: memoryview, cursor: int,
                    result: ExtractionResult) -> Tuple[ArchiveEntry, Optional[bytes], bool]:
        """
        Parse the entry at *cursor* and produce its payload.

        Returns:
            (entry, payload or None if nothing should be written,
             whether the scan may continue after this entry)

        Raises:
            TruncatedHeaderError, TruncatedPayloadError: scan-fatal
        """
        header = parse_local_header(data, cursor)

        try:
            name = decode_name(data, header)
        except UnicodeDecodeError as e:
            name = None
            self._fail(result, cursor, FailureReason.NAME_DECODE_FAILED,
                       f"Entry name {raw_name(data, header)!r} is not UTF-8: {e}")

        entry = ArchiveEntry(header=header, name=name, payload_start=cursor + header.total_length)
        streaming = header.has_data_descriptor
        payload_end = None

        if not streaming:
            payload_end = entry.payload_start + header.compressed_size
            if payload_end > len(data):
                raise TruncatedPayloadError(
                    f"Payload of {name!r} needs {header.compressed_size} bytes at "
                    f"{entry.payload_start}, only {len(data) - entry.payload_start} remain",
                    cursor,
                )

        method = header.compression_method

        if method == METHOD_STORE and not streaming:
            entry.bytes_consumed = header.compressed_size
            return entry, bytes(view[entry.payload_start:payload_end]), True

        if method == METHOD_STORE:
            # No length and no end marker: the boundary cannot be found safely
            self._fail(result, cursor, FailureReason.UNSUPPORTED_METHOD,
                       "Stored entry with data descriptor cannot be bounded", name)
            return entry, None, False

        if method != METHOD_DEFLATE:
            self._fail(result, cursor, FailureReason.UNSUPPORTED_METHOD,
                       f"Unsupported compression method {method}", name)
            return entry, None, False

        source = view[entry.payload_start:payload_end] if payload_end is not None \
            else view[entry.payload_start:]
        try:
            inflated = self.inflater.inflate(source, header.uncompressed_size or None)
        except DecompressionFailedError as e:
            self._fail(result, cursor, FailureReason.DECOMPRESSION_FAILED, str(e), name)
            if streaming:
                return entry, None, False
            entry.bytes_consumed = header.compressed_size
            return entry, None, True

        if not inflated.reached_end:
            logger.warning("Deflate stream for %r ended early; keeping %d bytes",
                           name, len(inflated.data))

        entry.bytes_consumed = inflated.bytes_consumed
        if not streaming:
            return entry, inflated.data, True

        descriptor_start = entry.next_offset
        try:
            entry.bytes_consumed += descriptor_length(data, descriptor_start)
        except TruncatedPayloadError as e:
            # Output is complete; only the trailing descriptor is missing
            self._fail(result, e.offset, e.reason, str(e), name)
            result.stop_reason = e.reason
            entry.crc_known = False
            return entry, inflated.data, False

        entry.header.crc32 = read_descriptor_crc(data, descriptor_start)
        return entry, inflated.data, True

    def _materialize(self, entry: ArchiveEntry, payload: bytes, destination: Path,
                     result: ExtractionResult):
        """Create the directory or write the file for one decoded entry."""
        name = entry.name
        if name is None:
            return

        offset = entry.header.offset
        if not is_safe_member(name):
            self._fail(result, offset, FailureReason.UNSAFE_PATH,
                       "Entry would be written outside the destination", name)
            return

        target = destination / name

        if entry.is_directory:
            if self.filesystem.create_directory(target, create_intermediates=True):
                result.extracted.append(name)
            else:
                self._fail(result, offset, FailureReason.WRITE_FAILED,
                           f"Could not create directory {target}", name)
            return

        if self.config.verify_crc and entry.crc_known:
            actual = zlib.crc32(payload) & 0xFFFFFFFF
            if actual != entry.header.crc32:
                self._fail(result, offset, FailureReason.CRC_MISMATCH,
                           f"CRC32 {actual:08x} does not match {entry.header.crc32:08x}", name)
                return

        if not self.filesystem.create_directory(target.parent, create_intermediates=True):
            self._fail(result, offset, FailureReason.WRITE_FAILED,
                       f"Could not create directory {target.parent}", name)
            return

        if self.filesystem.write_file(target, payload):
            result.extracted.append(name)
            result.files_written += 1
            logger.info("Extracted: %s", name)
        else:
            self._fail(result, offset, FailureReason.WRITE_FAILED,
                       f"Could not write {target}", name)

    @staticmethod
    def _fail(result: ExtractionResult, offset: int, reason: FailureReason,
              message: str, name: Optional[str] = None):
        if reason == FailureReason.WRITE_FAILED or reason == FailureReason.NOT_AN_ARCHIVE:
            logger.error("%s: %s", name or f"offset {offset}", message)
        else:
            logger.warning("%s: %s", name or f"offset {offset}", message)
        result.failures.append(EntryFailure(offset=offset, reason=reason, message=message, name=name))
