"""
Asset archives keyed by a fixed enumeration.

Declare the asset set as an ``AssetEnum`` whose member values are file paths
relative to a base directory. Each member's ordinal is its declaration
index, so no names are stored in the package and every lookup is valid by
construction::

    class Icons(AssetEnum):
        CLOSE = "icons/close.svg"
        OPEN = "icons/open.svg"

    package = build_enum_package(Icons, "assets", codec)   # build time
    icons = EnumArchive.load(Icons, package)               # start-up
    svg = icons[Icons.OPEN]
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Generic, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from .container import load_package
from .errors import AssetCountMismatch, MapFailed
from .hashutil import check
from .streams import ByteRange, ranges_from_end_offsets
from .writer import OrdinalPackage


E = TypeVar("E", bound="AssetEnum")
T = TypeVar("T")
U = TypeVar("U")


class AssetEnum(Enum):
    @property
    def ordinal(self) -> int:
        return type(self)._member_names_.index(self._name_)

    @classmethod
    def check_members(cls) -> None:
        # Aliased members (two names, one path) would share an ordinal
        if len(cls.__members__) != len(cls._member_names_):
            aliases = sorted(set(cls.__members__) - set(cls._member_names_))
            raise TypeError(f"{cls.__name__} declares the same asset path more than once: {', '.join(aliases)}")


def unpack_ordinal(package: OrdinalPackage, labels: Optional[List[str]] = None) -> Tuple[bytes, List[ByteRange]]:
    """Decompress an OrdinalPackage and check every asset against its checksum.

    ``labels`` name the assets in error messages; ordinals are used otherwise.
    """
    ranges = ranges_from_end_offsets(package.end_offsets)
    data = package.codec.decompress_with_length(package.data, package.uncompressed_data_size)
    for i, (r, expected) in enumerate(zip(ranges, package.checksums)):
        label = labels[i] if labels else f"ordinal {i}"
        check(data[r.start:r.end], expected, label=label)
    return data, ranges


def _ordinal(enum_cls: Type[Enum], key: Union[Enum, int], size: int) -> int:
    if isinstance(key, Enum):
        if not isinstance(key, enum_cls):
            raise TypeError(f"expected a {enum_cls.__name__} member, got {key!r}")
        return enum_cls._member_names_.index(key._name_)
    if isinstance(key, bool):
        raise TypeError(f"expected a {enum_cls.__name__} member or an int ordinal, got {key!r}")
    if isinstance(key, int) and 0 <= key < size:
        return key
    raise IndexError(f"ordinal {key!r} out of range for {enum_cls.__name__}")


class EnumArchive(Generic[E]):
    """Decompressed data for an AssetEnum, indexed by member."""

    def __init__(self, enum_cls: Type[E], data: bytes, ranges: List[ByteRange]):
        self.enum_cls = enum_cls
        self._data = data
        self._ranges = ranges

    @classmethod
    def load(cls, enum_cls: Type[E], package: OrdinalPackage) -> "EnumArchive[E]":
        """Decompress an OrdinalPackage and verify every asset's checksum.

        Raises:
            AssetCountMismatch: The enum and the package disagree on the number of assets.
            ChecksumMismatch: An asset does not match the digest recorded at build time.
            CorruptArchiveError: Decompression failed.
        """
        if issubclass(enum_cls, AssetEnum):
            enum_cls.check_members()
        members = list(enum_cls)
        if len(members) != package.asset_count or len(package.end_offsets) != package.asset_count:
            raise AssetCountMismatch(
                f"{enum_cls.__name__} has {len(members)} members but the package holds "
                f"{package.asset_count} checksums and {len(package.end_offsets)} offsets"
            )
        data, ranges = unpack_ordinal(package, [f"{enum_cls.__name__}.{m.name}" for m in members])
        return cls(enum_cls, data, ranges)

    @classmethod
    def from_bytes(cls, enum_cls: Type[E], raw: bytes) -> "EnumArchive[E]":
        return cls.load(enum_cls, load_package(raw, expect=OrdinalPackage))

    @classmethod
    def from_file(cls, enum_cls: Type[E], path: str) -> "EnumArchive[E]":
        with open(path, "rb") as f:
            return cls.from_bytes(enum_cls, f.read())

    def _lookup(self, i: int) -> bytes:
        r = self._ranges[i]
        return self._data[r.start:r.end]

    def __getitem__(self, key: Union[E, int]) -> bytes:
        return self._lookup(_ordinal(self.enum_cls, key, len(self._ranges)))

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[Tuple[E, bytes]]:
        for i, member in enumerate(self.enum_cls):
            yield member, self._lookup(i)

    def map(self, f: Callable[[bytes], T]) -> "EnumMap[E, T]":
        """Apply ``f`` to every asset, in ordinal order."""
        return EnumMap(self.enum_cls, [f(self._lookup(i)) for i in range(len(self._ranges))])

    def try_map(self, f: Callable[[bytes], T]) -> "EnumMap[E, T]":
        """Like map, but stop at the first failure and raise MapFailed for that member."""
        return EnumMap(self.enum_cls, _try_apply(self.enum_cls, f, [self._lookup(i) for i in range(len(self._ranges))]))

    def __repr__(self) -> str:
        return f"<EnumArchive {self.enum_cls.__name__} assets={len(self)}>"


def _try_apply(enum_cls, f, values) -> list:
    out = []
    for member, value in zip(enum_cls, values):
        try:
            out.append(f(value))
        except Exception as exc:
            raise MapFailed(member, exc) from exc
    return out


class EnumMap(Generic[E, T]):
    """A value of type T for each member of an AssetEnum.

    Produced by EnumArchive.map/try_map. Unlike the archive it is mutable.
    """

    def __init__(self, enum_cls: Type[E], values: List[T]):
        self.enum_cls = enum_cls
        self._values = values

    def map(self, f: Callable[[T], U]) -> "EnumMap[E, U]":
        return EnumMap(self.enum_cls, [f(v) for v in self._values])

    def try_map(self, f: Callable[[T], U]) -> "EnumMap[E, U]":
        return EnumMap(self.enum_cls, _try_apply(self.enum_cls, f, self._values))

    def __getitem__(self, key: Union[E, int]) -> T:
        return self._values[_ordinal(self.enum_cls, key, len(self._values))]

    def __setitem__(self, key: Union[E, int], value: T) -> None:
        self._values[_ordinal(self.enum_cls, key, len(self._values))] = value

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Tuple[E, T]]:
        return iter(zip(self.enum_cls, self._values))

    def values(self) -> List[T]:
        return list(self._values)

    def __repr__(self) -> str:
        body = ", ".join(f"{m.name}={v!r}" for m, v in self)
        return f"EnumMap({self.enum_cls.__name__}: {body})"
