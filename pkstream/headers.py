"""
Local file header and data descriptor parsing.

Every multi-byte field is little-endian and read in place from the
archive buffer.  Helpers never index past the end of the buffer: a
read that would need bytes that are not there raises instead.
"""
import struct
from typing import Optional

from pkstream.base import LocalFileHeader, TruncatedHeaderError, TruncatedPayloadError

LOCAL_FILE_HEADER_SIG = b'PK\x03\x04'
CENTRAL_DIR_SIG = b'PK\x01\x02'
DATA_DESCRIPTOR_SIG = b'PK\x07\x08'
END_CENTRAL_DIR_SIG = b'PK\x05\x06'

METHOD_STORE = 0
METHOD_DEFLATE = 8

FLAG_DATA_DESCRIPTOR = 0x08

LOCAL_HEADER_LENGTH = 30
# signature(4) + crc(4) + compressed(4) + uncompressed(4)
DESCRIPTOR_WITH_SIG_LENGTH = 16
DESCRIPTOR_WITHOUT_SIG_LENGTH = 12

# flags(H) method(H) time(H) date(H) crc(I) csize(I) usize(I) name_len(H) extra_len(H),
# starting at byte 6 of the header
_HEADER_STRUCT = struct.Struct('<HHHHIIIHH')
_HEADER_FIELDS_OFFSET = 6


def read_signature(data: bytes, offset: int) -> Optional[bytes]:
    """Return the 4 bytes at *offset*, or None if fewer than 4 remain."""
    if offset < 0 or offset + 4 > len(data):
        return None
    return bytes(data[offset:offset + 4])


def parse_local_header(data: bytes, offset: int) -> LocalFileHeader:
    """
    Parse the fixed 30-byte local file header at *offset*.

    The signature is assumed to have been checked already.

    Raises:
        TruncatedHeaderError: If the fixed header or the name/extra fields
            run past the end of the buffer
    """
    if offset + LOCAL_HEADER_LENGTH > len(data):
        raise TruncatedHeaderError(
            f"Local header at {offset} needs {LOCAL_HEADER_LENGTH} bytes, "
            f"only {len(data) - offset} remain",
            offset,
        )

    (flags, method, _mtime, _mdate, crc, csize, usize,
     name_len, extra_len) = _HEADER_STRUCT.unpack_from(data, offset + _HEADER_FIELDS_OFFSET)

    header = LocalFileHeader(
        offset=offset,
        flags=flags,
        compression_method=method,
        crc32=crc,
        compressed_size=csize,
        uncompressed_size=usize,
        filename_length=name_len,
        extra_field_length=extra_len,
    )

    if offset + LOCAL_HEADER_LENGTH + name_len > len(data):
        raise TruncatedHeaderError(
            f"Entry name at {offset} runs past end of archive", offset
        )
    if offset + header.total_length > len(data):
        raise TruncatedHeaderError(
            f"Extra field at {offset} runs past end of archive", offset
        )

    return header


def raw_name(data: bytes, header: LocalFileHeader) -> bytes:
    """Return the undecoded entry name bytes."""
    start = header.offset + LOCAL_HEADER_LENGTH
    return bytes(data[start:start + header.filename_length])


def decode_name(data: bytes, header: LocalFileHeader) -> str:
    """
    Decode the entry name as UTF-8.

    Raises:
        UnicodeDecodeError: If the name is not valid UTF-8
    """
    return raw_name(data, header).decode('utf-8')


def descriptor_length(data: bytes, offset: int) -> int:
    """
    Length of the data descriptor starting at *offset*.

    The descriptor signature is optional, so 16 bytes are skipped when it
    is present and 12 otherwise.

    Raises:
        TruncatedPayloadError: If the descriptor does not fit in the buffer
    """
    if read_signature(data, offset) == DATA_DESCRIPTOR_SIG:
        length = DESCRIPTOR_WITH_SIG_LENGTH
    else:
        length = DESCRIPTOR_WITHOUT_SIG_LENGTH

    if offset + length > len(data):
        raise TruncatedPayloadError(
            f"Data descriptor at {offset} needs {length} bytes, "
            f"only {max(len(data) - offset, 0)} remain",
            offset,
        )
    return length


def read_descriptor_crc(data: bytes, offset: int) -> int:
    """CRC32 stored in the data descriptor at *offset* (call descriptor_length first)."""
    if read_signature(data, offset) == DATA_DESCRIPTOR_SIG:
        offset += 4
    return struct.unpack_from('<I', data, offset)[0]
