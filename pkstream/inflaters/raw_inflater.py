"""
Raw DEFLATE decoder.
Decompresses one entry payload in fixed-size chunks so that neither the
input window nor any single output piece grows past CHUNK_SIZE, and
reports how many input bytes the stream actually used.
"""
import logging
import zlib
from typing import Optional

from pkstream.base import AbstractInflater, DecompressionFailedError, InflateResult
from pkstream.config import Config, get_config

logger = logging.getLogger(__name__)

# Negative window bits: no zlib/gzip framing, 32 KiB window
RAW_WINDOW_BITS = -zlib.MAX_WBITS


class RawInflater(AbstractInflater):
    """Inflates raw DEFLATE streams embedded in a larger buffer."""

    # Default working chunk size for input windows and output pieces
    CHUNK_SIZE = 65536  # 64 KB

    def __init__(self, config: Optional[Config] = None, chunk_size: Optional[int] = None):
        self.config = config or get_config()
        self.chunk_size = chunk_size or self.config.inflate_chunk_size or self.CHUNK_SIZE

    def inflate(self, compressed: bytes, size_hint: Optional[int] = None) -> InflateResult:
        """
        Run the decoder over *compressed* until the stream ends or the
        input runs out.

        Input is fed in CHUNK_SIZE windows and output drained in CHUNK_SIZE
        pieces.  Running out of input before the end-of-stream marker is a
        clean early stop (reached_end=False), not an error.

        Args:
            compressed: Payload bytes; anything after the end of the stream
                is left unconsumed
            size_hint: Declared uncompressed size, if known.  Only compared
                against the output length; pieces are joined once at the end,
                so no accumulator needs pre-sizing

        Returns:
            InflateResult with the output and the exact input bytes consumed

        Raises:
            DecompressionFailedError: On any decoder error
        """
        view = memoryview(compressed)
        decompressor = zlib.decompressobj(RAW_WINDOW_BITS)
        chunks = []
        fed = 0
        tail = b''

        while True:
            if tail:
                piece = tail
            else:
                piece = view[fed:fed + self.chunk_size]
                fed += len(piece)

            try:
                chunk = decompressor.decompress(piece, self.chunk_size)
            except zlib.error as e:
                raise DecompressionFailedError(f"Corrupt deflate stream: {e}") from e

            if chunk:
                chunks.append(chunk)
            tail = decompressor.unconsumed_tail

            if decompressor.eof:
                break
            # Buffer-starved: all input used, nothing more to drain
            if not chunk and not tail and fed >= len(view):
                break

        if decompressor.eof:
            # Leftover input can show up in both unused_data and unconsumed_tail here
            consumed = fed - len(decompressor.unused_data)
        else:
            consumed = fed - len(tail)
        data = b''.join(chunks)

        if not decompressor.eof:
            logger.debug("Deflate stream ended without end-of-stream marker after %d bytes", consumed)
        elif size_hint is not None and size_hint != len(data):
            logger.debug("Inflated %d bytes, header declared %d", len(data), size_hint)

        return InflateResult(data=data, bytes_consumed=consumed, reached_end=decompressor.eof)
