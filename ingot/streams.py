"""
Side streams of a package and range reconstruction.

A package stores asset boundaries as a stream of u32 little endian lengths
(named packages) or as cumulative end offsets (ordinal packages). Both are
turned into half-open ``ByteRange`` values into the decompressed data by a
running sum starting at 0. Names travel as one NUL separated UTF-8 stream.
"""

from __future__ import annotations

import struct
from typing import Iterable, List, NamedTuple, Sequence, Tuple

from .codec import Codec
from .constants import MAX_U32, NAME_SEPARATOR, SIZE_FIELD_BYTES
from .errors import ArchiveLimitError, CompressionError, CorruptArchiveError, InvalidAssetName


_U32 = struct.Struct("<I")


class ByteRange(NamedTuple):
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


# -------- sizes --------

def encode_sizes(items: Iterable[Tuple[str, int]]) -> bytes:
    """Pack (name, size) pairs into densely packed u32 LE sizes.

    The name is only used to report an oversized asset.
    """
    out = bytearray()
    for name, size in items:
        if size > MAX_U32:
            raise ArchiveLimitError(f"asset {name} is too big ({size} bytes)")
        out += _U32.pack(size)
    # the uncompressed sizes stream itself must be addressable with a u32
    if len(out) > MAX_U32:
        raise ArchiveLimitError(f"too many assets: size of uncompressed asset sizes is too big ({len(out)} bytes)")
    return bytes(out)


def compress_sizes(codec: Codec, items: Iterable[Tuple[str, int]]) -> bytes:
    raw = encode_sizes(items)
    try:
        return codec.compress(raw)
    except CompressionError as exc:
        raise CompressionError(f"couldn't compress asset data sizes: {exc}") from exc


def decode_lengths(raw: bytes) -> List[int]:
    if len(raw) % SIZE_FIELD_BYTES:
        raise CorruptArchiveError(f"sizes stream length {len(raw)} is not a multiple of {SIZE_FIELD_BYTES}")
    return [v for (v,) in _U32.iter_unpack(raw)]


# -------- ranges --------

def ranges_from_lengths(lengths: Iterable[int]) -> List[ByteRange]:
    ranges: List[ByteRange] = []
    start = 0
    for length in lengths:
        end = start + length
        if end > MAX_U32:
            raise CorruptArchiveError("asset ranges overflow u32; limit should have been enforced at build time")
        ranges.append(ByteRange(start, end))
        start = end
    return ranges


def decompress_ranges(codec: Codec, compressed_sizes: bytes, count: int) -> List[ByteRange]:
    raw = codec.decompress_with_length(compressed_sizes, count * SIZE_FIELD_BYTES)
    return ranges_from_lengths(decode_lengths(raw))


def end_offsets_from_lengths(lengths: Iterable[int]) -> List[int]:
    return [r.end for r in ranges_from_lengths(lengths)]


def ranges_from_end_offsets(end_offsets: Sequence[int]) -> List[ByteRange]:
    ranges: List[ByteRange] = []
    start = 0
    for i, end in enumerate(end_offsets):
        if end < start or end > MAX_U32:
            raise CorruptArchiveError(f"end offset {end} of asset {i} is out of order")
        ranges.append(ByteRange(start, end))
        start = end
    return ranges


# -------- names --------

def encode_names(names: Iterable[str]) -> bytes:
    parts = []
    for name in names:
        b = name.encode("utf-8")
        if NAME_SEPARATOR in b:
            raise InvalidAssetName(name, "names must not contain null bytes")
        parts.append(b)
    raw = NAME_SEPARATOR.join(parts)
    if len(raw) > MAX_U32:
        raise ArchiveLimitError(f"uncompressed names are too long ({len(raw)} bytes)")
    return raw


def compress_names(codec: Codec, names: Iterable[str]) -> Tuple[bytes, int]:
    """Return the compressed names stream and its uncompressed size."""
    raw = encode_names(names)
    try:
        return codec.compress(raw), len(raw)
    except CompressionError as exc:
        raise CompressionError(f"couldn't compress asset names: {exc}") from exc


def decompress_names(codec: Codec, compressed_names: bytes, uncompressed_size: int) -> List[str]:
    raw = codec.decompress_with_length(compressed_names, uncompressed_size)
    if not raw:
        return []
    try:
        return [part.decode("utf-8") for part in raw.split(NAME_SEPARATOR)]
    except UnicodeDecodeError as exc:
        raise CorruptArchiveError(f"asset names are not UTF-8: {exc}") from exc
