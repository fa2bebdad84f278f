from __future__ import annotations


class IngotError(Exception):
    """Base class for ingot-specific errors."""


# Codec related
class CodecError(IngotError):
    pass


class UnsupportedCodecError(CodecError, ValueError):
    pass


class CompressionError(CodecError):
    pass


class DecompressionError(CodecError):
    pass


class UncompressedSizeMismatch(DecompressionError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"unexpected uncompressed size: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


# Build time
class BuildError(IngotError):
    pass


class InvalidAssetName(BuildError):
    def __init__(self, name, reason: str):
        super().__init__(f"invalid asset name {name!r}: {reason}")
        self.name = name


class DuplicateAssetName(BuildError):
    def __init__(self, name: str):
        super().__init__(f"duplicate asset name: {name}")
        self.name = name


class ArchiveLimitError(BuildError):
    pass


class AssetReadError(BuildError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"couldn't read file '{path}': {reason}")
        self.path = path


class SymlinkForbiddenError(BuildError):
    def __init__(self, path: str):
        super().__init__(f"encountered a symbolic link: {path}")
        self.path = path


# Load time. These indicate corruption or a build/runtime mismatch.
class CorruptArchiveError(IngotError):
    pass


class PackageFormatError(CorruptArchiveError):
    pass


class AssetCountMismatch(CorruptArchiveError):
    pass


class DataSizeMismatch(CorruptArchiveError):
    pass


class ChecksumMismatch(CorruptArchiveError):
    def __init__(self, label: str, expected: bytes, actual: bytes):
        super().__init__(f"Checksum mismatch for {label}: expected {expected.hex()}, got {actual.hex()}")
        self.label = label
        self.expected = expected
        self.actual = actual


# Lookup
class AssetNotFound(IngotError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"asset '{self.name}' not found"


class MapFailed(IngotError):
    """Raised by ``try_map`` when the mapping function fails for a member."""

    def __init__(self, member, error: BaseException):
        super().__init__(f"mapping failed for {member}: {error}")
        self.member = member
        self.error = error
