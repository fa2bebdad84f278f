from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .codec import Codec
from .collect import read_dir, read_enum_assets
from .constants import MAX_U32, NAME_SEPARATOR
from .errors import ArchiveLimitError, CompressionError, DuplicateAssetName, InvalidAssetName
from .hashutil import compute_checksum
from .streams import compress_names, compress_sizes, end_offsets_from_lengths


@dataclass(frozen=True)
class Asset:
    name: str
    data: bytes


@dataclass
class NamedPackage:
    """Compressed named archive: everything the named loader needs."""
    codec: Codec
    data: bytes
    uncompressed_data_size: int
    # names in ascending order, separated (not terminated) by NUL bytes
    names: bytes
    uncompressed_names_size: int
    # u32 LE sizes in the same order as names
    sizes: bytes
    checksums: List[bytes] = field(default_factory=list)

    @property
    def asset_count(self) -> int:
        return len(self.checksums)


@dataclass
class OrdinalPackage:
    """Compressed ordinal archive: assets in declaration order, no names."""
    codec: Codec
    data: bytes
    end_offsets: List[int] = field(default_factory=list)
    checksums: List[bytes] = field(default_factory=list)

    @property
    def asset_count(self) -> int:
        return len(self.checksums)

    @property
    def uncompressed_data_size(self) -> int:
        return self.end_offsets[-1] if self.end_offsets else 0


AssetsLike = Union[Mapping[str, bytes], Iterable[Union[Asset, Tuple[str, bytes]]]]
Package = Union[NamedPackage, OrdinalPackage]


def validate_name(name) -> None:
    if not isinstance(name, str):
        raise InvalidAssetName(name, "names must be str")
    if not name:
        raise InvalidAssetName(name, "names must not be empty")
    try:
        encoded = name.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidAssetName(name, "names must be valid UTF-8")
    if NAME_SEPARATOR in encoded:
        raise InvalidAssetName(name, "names must not contain null bytes")


def _as_assets(assets: AssetsLike) -> List[Asset]:
    if isinstance(assets, Mapping):
        items: Iterable = assets.items()
    else:
        items = assets
    out: List[Asset] = []
    for item in items:
        if isinstance(item, Asset):
            out.append(item)
        else:
            name, data = item
            out.append(Asset(name, bytes(data)))
    return out


def canonicalize(assets: AssetsLike) -> List[Asset]:
    """Validate names and return the manifest in canonical (sorted) order.

    Sorting by name (code point order, which is also UTF-8 byte order) makes
    repeated builds byte-identical regardless of discovery order.
    """
    manifest = _as_assets(assets)
    seen = set()
    for asset in manifest:
        validate_name(asset.name)
        if asset.name in seen:
            raise DuplicateAssetName(asset.name)
        seen.add(asset.name)
    manifest.sort(key=lambda a: a.name)
    return manifest


def _check_limits(total_size: int, count: int) -> None:
    if total_size > MAX_U32:
        raise ArchiveLimitError(f"too much data ({total_size} bytes)")
    if count > MAX_U32:
        raise ArchiveLimitError(f"too many assets ({count})")


def _compress_data(codec: Codec, blobs: Sequence[bytes]) -> bytes:
    # Solid compression: one stream over all assets
    try:
        return codec.compress(b"".join(blobs))
    except CompressionError as exc:
        raise CompressionError(f"couldn't compress asset data: {exc}") from exc


def build_named_package(assets: AssetsLike, codec: Codec) -> NamedPackage:
    """Pack assets into a NamedPackage.

    Args:
        assets: Mapping of name to bytes, or an iterable of Asset / (name, bytes).
        codec: Codec used for the data, names and sizes streams.

    Raises:
        InvalidAssetName, DuplicateAssetName: Bad manifest, with the offending name.
        ArchiveLimitError: Data size, asset count or names size over 2^32-1.
        CompressionError: The codec failed.
    """
    manifest = canonicalize(assets)
    total_size = sum(len(a.data) for a in manifest)
    _check_limits(total_size, len(manifest))

    names, uncompressed_names_size = compress_names(codec, (a.name for a in manifest))
    sizes = compress_sizes(codec, ((a.name, len(a.data)) for a in manifest))
    checksums = [compute_checksum(a.data) for a in manifest]
    data = _compress_data(codec, [a.data for a in manifest])

    return NamedPackage(
        codec=codec,
        data=data,
        uncompressed_data_size=total_size,
        names=names,
        uncompressed_names_size=uncompressed_names_size,
        sizes=sizes,
        checksums=checksums,
    )


def build_ordinal_package(blobs: Sequence[bytes], codec: Codec) -> OrdinalPackage:
    """Pack blobs, in declaration order, into an OrdinalPackage.

    Ordinal i addresses blobs[i]; no sorting takes place.
    """
    blobs = [bytes(b) for b in blobs]
    total_size = sum(len(b) for b in blobs)
    _check_limits(total_size, len(blobs))
    return OrdinalPackage(
        codec=codec,
        data=_compress_data(codec, blobs),
        end_offsets=end_offsets_from_lengths(len(b) for b in blobs),
        checksums=[compute_checksum(b) for b in blobs],
    )


def build_enum_package(enum_cls, base_path: str, codec: Codec) -> OrdinalPackage:
    """Read the files named by an AssetEnum's members and pack them by ordinal."""
    return build_ordinal_package(read_enum_assets(enum_cls, base_path), codec)


def build_dir_package(base_path: str, codec: Codec, symlinks: Optional[str] = None) -> NamedPackage:
    """Pack every file under ``base_path`` into a NamedPackage."""
    return build_named_package(read_dir(base_path, symlinks=symlinks), codec)
