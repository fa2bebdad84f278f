from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

from .codec import codec_from_id
from .constants import (
    PACKAGE_MAGIC,
    VERSION_MAJOR,
    VERSION_MINOR,
    KIND_NAMED,
    KIND_ORDINAL,
    FLAG_LEVEL_PRESENT,
    CHECKSUM_SIZE,
    SIZE_FIELD_BYTES,
)
from .errors import PackageFormatError, UnsupportedCodecError
from .writer import NamedPackage, OrdinalPackage, Package


_HEADER_STRUCT = struct.Struct("<8sHHBBHiIIIQQQI")
# Fields (little endian):
# magic[8], ver_major u16, ver_minor u16, kind u8, flags u8, codec_id u16,
# level i32, asset_count u32, uncompressed_data_size u32,
# uncompressed_names_size u32, data_len u64, names_len u64, sizes_len u64,
# header_crc32 u32 (over all preceding header bytes)
_U32_ARRAY = "<%dI"


@dataclass
class Header:
    version_major: int
    version_minor: int
    kind: int
    flags: int
    codec_id: int
    level: Optional[int]
    asset_count: int
    uncompressed_data_size: int
    uncompressed_names_size: int
    data_len: int
    names_len: int
    sizes_len: int

    @property
    def body_len(self) -> int:
        return self.data_len + self.names_len + self.sizes_len + self.asset_count * CHECKSUM_SIZE


def _pack_header(
    kind: int,
    package: Package,
    uncompressed_names_size: int,
    names_len: int,
    sizes_len: int,
) -> bytes:
    codec = package.codec
    flags = FLAG_LEVEL_PRESENT if codec.level is not None else 0
    pre = _HEADER_STRUCT.pack(
        PACKAGE_MAGIC,
        VERSION_MAJOR,
        VERSION_MINOR,
        kind,
        flags,
        codec.codec_id,
        codec.level if codec.level is not None else 0,
        package.asset_count,
        package.uncompressed_data_size,
        uncompressed_names_size,
        len(package.data),
        names_len,
        sizes_len,
        0,  # crc placeholder
    )
    crc = zlib.crc32(pre[:-4])
    return pre[:-4] + struct.pack("<I", crc)


def dump_package(package: Package) -> bytes:
    """Serialize a package into a single resource blob."""
    if isinstance(package, NamedPackage):
        hdr = _pack_header(KIND_NAMED, package, package.uncompressed_names_size, len(package.names), len(package.sizes))
        parts = [hdr, package.data, package.names, package.sizes]
    elif isinstance(package, OrdinalPackage):
        ends = struct.pack(_U32_ARRAY % len(package.end_offsets), *package.end_offsets)
        hdr = _pack_header(KIND_ORDINAL, package, 0, 0, len(ends))
        parts = [hdr, package.data, ends]
    else:
        raise TypeError(f"not a package: {type(package).__name__}")
    for digest in package.checksums:
        if len(digest) != CHECKSUM_SIZE:
            raise ValueError(f"checksum must be {CHECKSUM_SIZE} bytes, got {len(digest)}")
    parts.extend(package.checksums)
    return b"".join(parts)


def read_header(raw: bytes) -> Header:
    if len(raw) < _HEADER_STRUCT.size:
        raise PackageFormatError("package header too short")
    (
        magic,
        vmaj,
        vmin,
        kind,
        flags,
        codec_id,
        level,
        count,
        data_size,
        names_size,
        data_len,
        names_len,
        sizes_len,
        hdr_crc,
    ) = _HEADER_STRUCT.unpack_from(raw)
    if magic != PACKAGE_MAGIC:
        raise PackageFormatError("bad package magic")
    if zlib.crc32(raw[: _HEADER_STRUCT.size - 4]) != hdr_crc:
        raise PackageFormatError("package header CRC mismatch")
    if vmaj != VERSION_MAJOR:
        raise PackageFormatError(f"unsupported package version {vmaj}.{vmin}")
    if kind not in (KIND_NAMED, KIND_ORDINAL):
        raise PackageFormatError(f"unknown package kind {kind}")
    return Header(
        version_major=vmaj,
        version_minor=vmin,
        kind=kind,
        flags=flags,
        codec_id=codec_id,
        level=level if flags & FLAG_LEVEL_PRESENT else None,
        asset_count=count,
        uncompressed_data_size=data_size,
        uncompressed_names_size=names_size,
        data_len=data_len,
        names_len=names_len,
        sizes_len=sizes_len,
    )


def section_spans(hdr: Header) -> Dict[str, Tuple[int, int]]:
    """Map section name to (offset, length) within a serialized package."""
    spans: Dict[str, Tuple[int, int]] = {}
    pos = _HEADER_STRUCT.size
    for name, length in (
        ("data", hdr.data_len),
        ("names", hdr.names_len),
        ("sizes", hdr.sizes_len),
        ("checksums", hdr.asset_count * CHECKSUM_SIZE),
    ):
        spans[name] = (pos, length)
        pos += length
    return spans


def load_package(raw: bytes, expect: Optional[Type] = None) -> Package:
    """Parse a blob produced by dump_package.

    Args:
        raw: Serialized package.
        expect: NamedPackage or OrdinalPackage to reject the other kind.

    Raises:
        PackageFormatError: Bad magic, version, CRC, codec or lengths.
    """
    raw = bytes(raw)
    hdr = read_header(raw)
    if len(raw) != _HEADER_STRUCT.size + hdr.body_len:
        raise PackageFormatError(
            f"package length mismatch: header describes {_HEADER_STRUCT.size + hdr.body_len} bytes, got {len(raw)}"
        )
    try:
        codec = codec_from_id(hdr.codec_id, hdr.level)
    except UnsupportedCodecError as exc:
        raise PackageFormatError(str(exc)) from exc

    pos = _HEADER_STRUCT.size
    data = raw[pos : pos + hdr.data_len]
    pos += hdr.data_len
    names = raw[pos : pos + hdr.names_len]
    pos += hdr.names_len
    sizes = raw[pos : pos + hdr.sizes_len]
    pos += hdr.sizes_len
    checksums = [raw[p : p + CHECKSUM_SIZE] for p in range(pos, len(raw), CHECKSUM_SIZE)]

    if hdr.kind == KIND_NAMED:
        package: Package = NamedPackage(
            codec=codec,
            data=data,
            uncompressed_data_size=hdr.uncompressed_data_size,
            names=names,
            uncompressed_names_size=hdr.uncompressed_names_size,
            sizes=sizes,
            checksums=checksums,
        )
    else:
        if hdr.names_len or hdr.sizes_len != hdr.asset_count * SIZE_FIELD_BYTES:
            raise PackageFormatError("malformed ordinal package sections")
        ends = list(struct.unpack(_U32_ARRAY % hdr.asset_count, sizes))
        package = OrdinalPackage(codec=codec, data=data, end_offsets=ends, checksums=checksums)
        if package.uncompressed_data_size != hdr.uncompressed_data_size:
            raise PackageFormatError("final end offset does not match the declared data size")

    if expect is not None and not isinstance(package, expect):
        raise PackageFormatError(f"expected a {expect.__name__}, found a {type(package).__name__}")
    return package


def write_package(path: str, package: Package) -> int:
    """Write a package resource file atomically; returns its size."""
    blob = dump_package(package)
    tmp = f"{path}.tmp"
    with open(tmp, "wb") as f:
        f.write(blob)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)
    return len(blob)


def read_package(path: str, expect: Optional[Type] = None) -> Package:
    with open(path, "rb") as f:
        return load_package(f.read(), expect=expect)


def read_package_header(path: str) -> Header:
    with open(path, "rb") as f:
        return read_header(f.read(_HEADER_STRUCT.size))
