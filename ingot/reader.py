from __future__ import annotations

from typing import Dict, Iterator, KeysView, List, Optional, Tuple

from .container import load_package
from .errors import AssetCountMismatch, AssetNotFound, DataSizeMismatch
from .hashutil import check
from .streams import ByteRange, decompress_names, decompress_ranges
from .writer import NamedPackage


class AssetsView:
    """Sized iterable of (name, bytes) pairs, in unspecified order."""

    def __init__(self, archive: "NamedArchive"):
        self._archive = archive

    def __len__(self) -> int:
        return len(self._archive)

    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        data = self._archive._data
        for name, r in self._archive._ranges.items():
            yield name, data[r.start:r.end]


class NamedArchive:
    """Decompressed archive of assets looked up by name (i.e. path).

    Build one with NamedArchive.load once per process; it is read-only
    afterwards and safe to share between threads.
    """

    def __init__(self, data: bytes, ranges: Dict[str, ByteRange], checksums: Optional[Dict[str, bytes]] = None):
        self._data = data
        self._ranges = ranges
        self._checksums = checksums or {}

    @classmethod
    def load(cls, package: NamedPackage, *, verify: bool = False) -> "NamedArchive":
        """Decompress a NamedPackage.

        Raises CorruptArchiveError (or a subclass) if the package is
        inconsistent. Those errors mean corruption or a build/runtime mismatch
        and are not meant to be handled.

        Args:
            package: Package produced by build_named_package.
            verify: Also check every asset against its recorded checksum.
        """
        codec = package.codec
        data = codec.decompress_with_length(package.data, package.uncompressed_data_size)

        names = decompress_names(codec, package.names, package.uncompressed_names_size)
        ranges = decompress_ranges(codec, package.sizes, package.asset_count)
        if len(names) != len(ranges):
            raise AssetCountMismatch(
                f"number of asset names ({len(names)}) should equal number of asset data ranges ({len(ranges)})"
            )

        # Ranges are consecutive and start at 0; the final one must end where the data ends.
        end = ranges[-1].end if ranges else 0
        if end != package.uncompressed_data_size:
            raise DataSizeMismatch(f"asset ranges end at {end}, data size is {package.uncompressed_data_size}")

        table = dict(zip(names, ranges))
        if len(table) != len(names):
            raise AssetCountMismatch("asset names are not unique")
        archive = cls(data, table, dict(zip(names, package.checksums)))
        if verify:
            archive.verify()
        return archive

    @classmethod
    def from_bytes(cls, raw: bytes, *, verify: bool = False) -> "NamedArchive":
        return cls.load(load_package(raw, expect=NamedPackage), verify=verify)

    @classmethod
    def from_file(cls, path: str, *, verify: bool = False) -> "NamedArchive":
        with open(path, "rb") as f:
            return cls.from_bytes(f.read(), verify=verify)

    def get(self, name: str) -> Optional[bytes]:
        """Return the content of asset ``name``, or None if it is not included."""
        r = self._ranges.get(name)
        if r is None:
            return None
        return self._data[r.start:r.end]

    def contains(self, name: str) -> bool:
        return name in self._ranges

    def count(self) -> int:
        return len(self._ranges)

    def assets(self) -> AssetsView:
        return AssetsView(self)

    def names(self) -> KeysView[str]:
        return self._ranges.keys()

    def range_of(self, name: str) -> ByteRange:
        try:
            return self._ranges[name]
        except KeyError:
            raise AssetNotFound(name) from None

    def verify(self) -> bool:
        """Check every asset against its checksum; raises ChecksumMismatch on the first bad one."""
        for name, r in self._ranges.items():
            check(self._data[r.start:r.end], self._checksums[name], label=f"asset '{name}'")
        return True

    def sorted_names(self) -> List[str]:
        return sorted(self._ranges)

    def __getitem__(self, name: str) -> bytes:
        # Unlike get(), a missing asset is an error
        r = self.range_of(name)
        return self._data[r.start:r.end]

    def __contains__(self, name: object) -> bool:
        return name in self._ranges

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ranges)

    def __repr__(self) -> str:
        return f"<NamedArchive assets={len(self)} size={len(self._data)}>"
