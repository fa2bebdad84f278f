# Magic and version
PACKAGE_MAGIC = b"INGOTPK\x00"  # 8 bytes: "INGOTPK\0"

VERSION_MAJOR = 1
VERSION_MINOR = 0

# Package kinds
KIND_NAMED = 0
KIND_ORDINAL = 1

# Header flags
FLAG_LEVEL_PRESENT = 1 << 0


# Codec IDs (0=none, 1=raw deflate, 2=zstd, 3=lz4 block)
CODEC_NONE = 0
CODEC_DEFLATE = 1
CODEC_ZSTD = 2
CODEC_LZ4 = 3

CODEC_NAMES = {
    CODEC_NONE: "uncompressed",
    CODEC_DEFLATE: "deflate",
    CODEC_ZSTD: "zstd",
    CODEC_LZ4: "lz4",
}
CODEC_IDS = {name: cid for cid, name in CODEC_NAMES.items()}

DEFAULT_COMPRESSION = "zstd"
DEFAULT_DEFLATE_LEVEL = 2
DEFAULT_ZSTD_LEVEL = 5
MIN_DEFLATE_LEVEL = 0
MAX_DEFLATE_LEVEL = 9
MIN_ZSTD_LEVEL = -(1 << 17)


# Checksums are BLAKE2b-512 digests
CHECKSUM_SIZE = 64

# Sizes, counts and offsets are stored as u32
MAX_U32 = 0xFFFFFFFF
SIZE_FIELD_BYTES = 4

NAME_SEPARATOR = b"\x00"


SYMLINK_FORBID = "forbid"
SYMLINK_IGNORE = "ignore"
SYMLINK_FOLLOW = "follow"
SYMLINK_POLICIES = (SYMLINK_FORBID, SYMLINK_IGNORE, SYMLINK_FOLLOW)
