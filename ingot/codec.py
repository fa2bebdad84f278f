from __future__ import annotations

import zlib
from typing import Optional

import lz4.block
import zstandard

from .constants import (
    CODEC_NONE,
    CODEC_DEFLATE,
    CODEC_ZSTD,
    CODEC_LZ4,
    CODEC_NAMES,
    CODEC_IDS,
    DEFAULT_COMPRESSION,
    DEFAULT_DEFLATE_LEVEL,
    DEFAULT_ZSTD_LEVEL,
    MIN_DEFLATE_LEVEL,
    MAX_DEFLATE_LEVEL,
    MIN_ZSTD_LEVEL,
)
from .errors import (
    CompressionError,
    CorruptArchiveError,
    DecompressionError,
    UncompressedSizeMismatch,
    UnsupportedCodecError,
)


class Codec:
    """Compress/decompress contract shared by all algorithms.

    Codecs are stateless. The same (codec_id, level) pair that compressed a
    package at build time is recorded in it and used again to decompress.
    """

    codec_id: int = -1
    level: Optional[int] = None

    @property
    def name(self) -> str:
        return CODEC_NAMES[self.codec_id]

    def compress(self, data: bytes) -> bytes:
        raise NotImplementedError

    def _decompress(self, src: bytes, length: int) -> bytes:
        raise NotImplementedError

    def decompress_checked(self, src: bytes, length: int) -> bytes:
        raw = self._decompress(bytes(src), length)
        if len(raw) != length:
            raise UncompressedSizeMismatch(length, len(raw))
        return raw

    def decompress_into(self, src: bytes, dst: bytearray) -> None:
        """Decompress ``src`` into ``dst``, which must have the exact uncompressed size.

        If decompression fails the contents of ``dst`` are unspecified.
        """
        dst[:] = self.decompress_checked(src, len(dst))

    def decompress_with_length(self, src: bytes, length: int) -> bytes:
        """Like decompress_checked, but any failure means the package is corrupt."""
        try:
            return self.decompress_checked(src, length)
        except DecompressionError as exc:
            raise CorruptArchiveError(f"{self.name} decompression failed: {exc}") from exc

    def __eq__(self, other) -> bool:
        if not isinstance(other, Codec):
            return NotImplemented
        return (self.codec_id, self.level) == (other.codec_id, other.level)

    def __hash__(self) -> int:
        return hash((self.codec_id, self.level))

    def __repr__(self) -> str:
        if self.level is None:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}(level={self.level})"


class Uncompressed(Codec):
    codec_id = CODEC_NONE

    def compress(self, data: bytes) -> bytes:
        return bytes(data)

    def _decompress(self, src: bytes, length: int) -> bytes:
        # Copying can only fail when the lengths differ
        return src


class Lz4(Codec):
    """LZ4 block format, without the size prefix (the package records sizes)."""

    codec_id = CODEC_LZ4

    def compress(self, data: bytes) -> bytes:
        try:
            return lz4.block.compress(bytes(data), store_size=False)
        except lz4.block.LZ4BlockError as e:
            raise CompressionError(f"lz4 compression failed: {e}")

    def _decompress(self, src: bytes, length: int) -> bytes:
        if length == 0:
            # lz4 refuses a zero-sized destination; the empty block is a single token byte
            if src != self.compress(b""):
                raise DecompressionError("lz4 decompression failed: non-empty block for empty output")
            return b""
        try:
            return lz4.block.decompress(src, uncompressed_size=length)
        except lz4.block.LZ4BlockError as e:
            raise DecompressionError(f"lz4 decompression failed: {e}")


class Deflate(Codec):
    """Raw DEFLATE stream (no zlib or gzip wrapper)."""

    codec_id = CODEC_DEFLATE

    def __init__(self, level: int = DEFAULT_DEFLATE_LEVEL):
        if not (MIN_DEFLATE_LEVEL <= level <= MAX_DEFLATE_LEVEL):
            raise UnsupportedCodecError(
                f"invalid deflate level {level} (expected {MIN_DEFLATE_LEVEL}..{MAX_DEFLATE_LEVEL})"
            )
        self.level = level

    def compress(self, data: bytes) -> bytes:
        try:
            c = zlib.compressobj(self.level, zlib.DEFLATED, -zlib.MAX_WBITS)
            return c.compress(data) + c.flush()
        except zlib.error as e:
            raise CompressionError(f"deflate compression failed: {e}")

    def _decompress(self, src: bytes, length: int) -> bytes:
        d = zlib.decompressobj(-zlib.MAX_WBITS)
        try:
            # One byte of headroom so that oversized streams are detected
            raw = d.decompress(src, length + 1)
        except zlib.error as e:
            raise DecompressionError(f"deflate decompression failed: {e}")
        if len(raw) > length or d.unconsumed_tail:
            raise UncompressedSizeMismatch(length, len(raw) + len(d.unconsumed_tail))
        if not d.eof:
            raise DecompressionError("deflate decompression failed: truncated stream")
        return raw


class Zstd(Codec):
    codec_id = CODEC_ZSTD

    def __init__(self, level: int = DEFAULT_ZSTD_LEVEL):
        if not (MIN_ZSTD_LEVEL <= level <= zstandard.MAX_COMPRESSION_LEVEL):
            raise UnsupportedCodecError(
                f"invalid zstd level {level} (expected {MIN_ZSTD_LEVEL}..{zstandard.MAX_COMPRESSION_LEVEL})"
            )
        self.level = level

    def compress(self, data: bytes) -> bytes:
        try:
            c = zstandard.ZstdCompressor(level=self.level, write_content_size=True)
            return c.compress(data)
        except zstandard.ZstdError as e:
            raise CompressionError(f"zstd compression failed: {e}")

    def _decompress(self, src: bytes, length: int) -> bytes:
        try:
            d = zstandard.ZstdDecompressor()
            if length == 0:
                # max_output_size=0 means "unbounded" to zstandard
                return d.decompressobj().decompress(src)
            return d.decompress(src, max_output_size=length)
        except zstandard.ZstdError as e:
            raise DecompressionError(f"zstd decompression failed: {e}")


def codec_from_id(codec_id: int, level: Optional[int] = None) -> Codec:
    """Rebuild the codec recorded in a package."""
    if codec_id == CODEC_NONE:
        return Uncompressed()
    if codec_id == CODEC_LZ4:
        return Lz4()
    if codec_id == CODEC_DEFLATE:
        return Deflate(DEFAULT_DEFLATE_LEVEL if level is None else level)
    if codec_id == CODEC_ZSTD:
        return Zstd(DEFAULT_ZSTD_LEVEL if level is None else level)
    # Unknown/unsupported codec: fail fast
    raise UnsupportedCodecError(f"unsupported codec id: {codec_id}")


def codec_from_options(compression: Optional[str] = None, level: Optional[int] = None) -> Codec:
    """Select a codec from build configuration.

    Args:
        compression: One of "uncompressed", "lz4", "deflate" or "zstd". Defaults to zstd.
        level: Compression level. Not accepted for "uncompressed" and "lz4".

    Raises:
        UnsupportedCodecError: Unknown algorithm, or a level it does not support.
    """
    name = (compression or DEFAULT_COMPRESSION).lower()
    codec_id = CODEC_IDS.get(name)
    if codec_id is None:
        supported = ", ".join(sorted(CODEC_IDS))
        raise UnsupportedCodecError(f"invalid/unsupported compression '{name}' (supported: {supported})")
    if codec_id in (CODEC_NONE, CODEC_LZ4) and level is not None:
        raise UnsupportedCodecError(f"compression '{name}' does not have levels")
    return codec_from_id(codec_id, level)
