from __future__ import annotations

import os
import sys
import time
import argparse
from typing import List, Optional

from ingot.codec import codec_from_options
from ingot.constants import CODEC_NAMES, KIND_NAMED, SYMLINK_POLICIES, DEFAULT_COMPRESSION
from ingot.container import read_package, read_package_header, write_package
from ingot.embed import write_module
from ingot.enums import unpack_ordinal
from ingot.errors import ChecksumMismatch, CorruptArchiveError, IngotError
from ingot.reader import NamedArchive
from ingot.writer import NamedPackage, OrdinalPackage, build_dir_package


def _build(source: str, compression: Optional[str], level: Optional[int], symlinks: str) -> NamedPackage:
    codec = codec_from_options(compression, level)
    return build_dir_package(source, codec, symlinks=symlinks)


def _summary(package: NamedPackage, size: int, started: float) -> str:
    raw = package.uncompressed_data_size
    ratio = (size / raw * 100.0) if raw else 0.0
    dt = time.time() - started
    level = "" if package.codec.level is None else f" level {package.codec.level}"
    return (
        f"Done: {package.asset_count} assets; {raw} bytes -> {size} bytes ({ratio:.1f}%); "
        f"{package.codec.name}{level}; {dt:.2f}s"
    )


def _load_named(archive: str) -> NamedArchive:
    return NamedArchive.load(read_package(archive, expect=NamedPackage))


def cmd_pack(output: str, source: str, *, compression: Optional[str] = None, level: Optional[int] = None, symlinks: str = "forbid", quiet: bool = False) -> bool:
    """Pack every file under a directory into a package resource file.

    Args:
        output: Path of the package file to write.
        source: Directory to pack.
        compression: Codec name; zstd when omitted.
        level: Codec level (deflate and zstd only).
        symlinks: forbid, ignore or follow.
        quiet: Suppress the summary line.
    """
    started = time.time()
    package = _build(source, compression, level, symlinks)
    size = write_package(output, package)
    if not quiet:
        print(_summary(package, size, started))
    return True


def cmd_embed(output: str, source: str, *, compression: Optional[str] = None, level: Optional[int] = None, symlinks: str = "forbid", quiet: bool = False) -> bool:
    """Pack a directory into a generated Python module exposing load()."""
    started = time.time()
    package = _build(source, compression, level, symlinks)
    write_module(output, package)
    if not quiet:
        print(_summary(package, os.path.getsize(output), started))
    return True


def cmd_list(archive: str) -> bool:
    """List assets as size<TAB>name, sorted by name (ordinal packages list ordinals)."""
    package = read_package(archive)
    if isinstance(package, OrdinalPackage):
        _data, ranges = unpack_ordinal(package)
        for i, r in enumerate(ranges):
            print(f"{r.size}\t#{i}")
        return True
    arc = NamedArchive.load(package)
    for name in arc.sorted_names():
        print(f"{arc.range_of(name).size}\t{name}")
    return True


def cmd_info(archive: str) -> bool:
    """Show package header information."""
    hdr = read_package_header(archive)
    size = os.path.getsize(archive)
    print(f"Package: {archive}")
    print(f"  Version: {hdr.version_major}.{hdr.version_minor}")
    print(f"  Kind: {'named' if hdr.kind == KIND_NAMED else 'ordinal'}")
    print(f"  Codec: {CODEC_NAMES.get(hdr.codec_id, str(hdr.codec_id))}")
    print(f"  Level: {'N/A' if hdr.level is None else hdr.level}")
    print(f"  Assets: {hdr.asset_count}")
    print(f"  Data: {hdr.uncompressed_data_size} bytes ({hdr.data_len} compressed)")
    if hdr.uncompressed_data_size:
        print(f"  Ratio: {hdr.data_len / hdr.uncompressed_data_size * 100.0:.1f}%")
    if hdr.kind == KIND_NAMED:
        print(f"  Names: {hdr.uncompressed_names_size} bytes ({hdr.names_len} compressed)")
    print(f"  File size: {size} bytes")
    return True


def cmd_cat(archive: str, name: str) -> bool:
    """Write one asset's bytes to stdout."""
    data = _load_named(archive).get(name)
    if data is None:
        print(f"Error: asset '{name}' not found", file=sys.stderr)
        return False
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
    return True


def cmd_extract(archive: str, *, outdir: str = ".", quiet: bool = False) -> bool:
    """Extract every asset of a named package below ``outdir``."""
    arc = _load_named(archive)
    root = os.path.abspath(outdir)
    for name in arc.sorted_names():
        dst = os.path.abspath(os.path.join(root, *name.split("/")))
        if os.path.commonpath([root, dst]) != root:
            print(f"Warning: skipping {name} (escapes output directory)", file=sys.stderr)
            continue
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        with open(dst, "wb") as f:
            f.write(arc[name])
        if not quiet:
            print(f"  extracting: {name}")
    if not quiet:
        print(f"Extracted {len(arc)} assets to {outdir}")
    return True


def cmd_verify(archive: str) -> bool:
    """Verify every asset against its recorded checksum.

    Prints:
        "OK" on success, "FAIL" on mismatch or corruption.
    """
    try:
        package = read_package(archive)
        if isinstance(package, OrdinalPackage):
            unpack_ordinal(package)
        else:
            NamedArchive.load(package, verify=True)
    except ChecksumMismatch as exc:
        print(f"{exc}", file=sys.stderr)
        print("FAIL")
        return False
    except CorruptArchiveError as exc:
        print(f"Package is corrupt: {exc}", file=sys.stderr)
        print("FAIL")
        return False
    print("OK")
    return True


def _add_build_options(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("source", help="Directory to pack")
    ap.add_argument(
        "--compression",
        choices=sorted(CODEC_NAMES.values()),
        default=None,
        help=f"Compression codec (default: {DEFAULT_COMPRESSION})",
    )
    ap.add_argument("--level", type=int, default=None, help="Compression level (deflate: 0-9, default 2; zstd: default 5)")
    ap.add_argument(
        "--symlinks",
        choices=list(SYMLINK_POLICIES),
        default="forbid",
        help="What to do with symbolic links: forbid (fail), ignore (skip) or follow. Default: forbid",
    )
    ap.add_argument("--quiet", help="do not print a summary", action="store_true")


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="ingot",
        description="Ingot asset package tool",
        epilog="Packages are solid-compressed; every asset carries a BLAKE2b-512 checksum.",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack a directory into a package file")
    ap_pack.add_argument("output", help="Output package path")
    _add_build_options(ap_pack)

    ap_embed = sub.add_parser("embed", help="Pack a directory into a generated Python module")
    ap_embed.add_argument("output", help="Output .py path")
    _add_build_options(ap_embed)

    ap_list = sub.add_parser("list", help="List package contents")
    ap_list.add_argument("archive", help="Package path")

    ap_info = sub.add_parser("info", help="Show package information")
    ap_info.add_argument("archive", help="Package path")

    ap_cat = sub.add_parser("cat", help="Write one asset to stdout")
    ap_cat.add_argument("archive", help="Package path")
    ap_cat.add_argument("name", help="Asset name")

    ap_extract = sub.add_parser("extract", help="Extract all assets")
    ap_extract.add_argument("archive", help="Package path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_verify = sub.add_parser("verify", help="Verify package integrity")
    ap_verify.add_argument("archive", help="Package path")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "pack":
            cmd_pack(args.output, args.source, compression=args.compression, level=args.level, symlinks=args.symlinks, quiet=args.quiet)
        elif args.cmd == "embed":
            cmd_embed(args.output, args.source, compression=args.compression, level=args.level, symlinks=args.symlinks, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "cat":
            if not cmd_cat(args.archive, args.name):
                sys.exit(1)
        elif args.cmd == "extract":
            cmd_extract(args.archive, outdir=args.outdir, quiet=args.quiet)
        elif args.cmd == "verify":
            if not cmd_verify(args.archive):
                sys.exit(1)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (IngotError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
