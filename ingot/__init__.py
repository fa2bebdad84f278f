"""
Ingot: solid, checksummed asset packages built offline and loaded at start-up.

Features:

- Solid compression: all assets are concatenated and compressed as one stream.
- Pluggable codecs: uncompressed, LZ4 block, raw DEFLATE (zlib) and zstd.
- Reproducible builds: assets are packed in sorted name order.
- Per-asset BLAKE2b-512 checksums recorded at build time.
- Two loaders: NamedArchive (lookup by path) and EnumArchive (lookup by a
  fixed AssetEnum member, checksums verified on load).
- A small resource container, an embeddable Python-module form, and a CLI.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "codec",
    "hashutil",
    "streams",
    "collect",
    "writer",
    "reader",
    "enums",
    "container",
    "embed",
    "cli",
]

# Programmatic API: build with ingot.writer (build_named_package,
# build_enum_package), persist with ingot.container, and load with
# ingot.reader.NamedArchive or ingot.enums.EnumArchive.
