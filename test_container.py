from __future__ import annotations

import os
import struct
import tempfile
import unittest
import zlib
from pathlib import Path

from ingot.codec import Deflate, Lz4, Uncompressed, Zstd
from ingot.collect import SymlinkPolicy, norm_name
from ingot.constants import CHECKSUM_SIZE, KIND_NAMED, KIND_ORDINAL, PACKAGE_MAGIC
from ingot.container import (
    dump_package,
    load_package,
    read_header,
    read_package,
    read_package_header,
    section_spans,
    write_package,
)
from ingot.embed import render_module, write_module
from ingot.enums import AssetEnum
from ingot.errors import BuildError, PackageFormatError
from ingot.reader import NamedArchive
from ingot.writer import NamedPackage, OrdinalPackage, build_named_package, build_ordinal_package


ASSETS = {
    "a.txt": b"hi",
    "b/c.txt": b"world!",
    "img/logo.bin": os.urandom(300),
}


class Pair(AssetEnum):
    LEFT = "left.txt"
    RIGHT = "right.txt"


class ContainerTests(unittest.TestCase):
    def run_with_tmpdir(self, func):
        with tempfile.TemporaryDirectory() as tmp:
            func(Path(tmp))

    def test_named_dump_load(self):
        for codec in (Uncompressed(), Lz4(), Deflate(level=0), Zstd(level=-3)):
            with self.subTest(codec=codec):
                pkg = build_named_package(ASSETS, codec)
                restored = load_package(dump_package(pkg))
                self.assertEqual(restored, pkg)
                self.assertEqual(restored.codec, codec)
                self.assertEqual(dict(NamedArchive.load(restored, verify=True).assets()), ASSETS)

    def test_header_fields(self):
        pkg = build_named_package(ASSETS, Zstd(level=7))
        raw = dump_package(pkg)
        self.assertTrue(raw.startswith(PACKAGE_MAGIC))
        hdr = read_header(raw)
        self.assertEqual(hdr.kind, KIND_NAMED)
        self.assertEqual(hdr.level, 7)
        self.assertEqual(hdr.asset_count, 3)
        self.assertEqual(hdr.uncompressed_data_size, sum(len(v) for v in ASSETS.values()))
        self.assertEqual(hdr.data_len, len(pkg.data))

        lz = read_header(dump_package(build_named_package(ASSETS, Lz4())))
        self.assertIsNone(lz.level)

    def test_section_spans_cover_body(self):
        pkg = build_named_package(ASSETS, Deflate())
        raw = dump_package(pkg)
        spans = section_spans(read_header(raw))
        start, length = spans["data"]
        self.assertEqual(raw[start : start + length], pkg.data)
        start, length = spans["names"]
        self.assertEqual(raw[start : start + length], pkg.names)
        start, length = spans["checksums"]
        self.assertEqual(length, 3 * CHECKSUM_SIZE)
        self.assertEqual(start + length, len(raw))
        self.assertEqual(raw[start : start + CHECKSUM_SIZE], pkg.checksums[0])

    def test_ordinal_dump_load(self):
        pkg = build_ordinal_package([b"left", b"", b"right side"], Lz4())
        raw = dump_package(pkg)
        self.assertEqual(read_header(raw).kind, KIND_ORDINAL)
        restored = load_package(raw, expect=OrdinalPackage)
        self.assertEqual(restored, pkg)
        self.assertEqual(restored.uncompressed_data_size, 14)

    def test_kind_expectation(self):
        raw = dump_package(build_named_package(ASSETS, Uncompressed()))
        with self.assertRaises(PackageFormatError):
            load_package(raw, expect=OrdinalPackage)
        self.assertIsInstance(load_package(raw, expect=NamedPackage), NamedPackage)

    def test_bad_magic(self):
        raw = bytearray(dump_package(build_named_package(ASSETS, Uncompressed())))
        raw[0:8] = b"NOTINGOT"
        with self.assertRaises(PackageFormatError):
            load_package(bytes(raw))

    def test_header_crc(self):
        raw = bytearray(dump_package(build_named_package(ASSETS, Uncompressed())))
        raw[20] ^= 0x01
        with self.assertRaises(PackageFormatError) as ctx:
            load_package(bytes(raw))
        self.assertIn("CRC", str(ctx.exception))

    def test_unsupported_major_version(self):
        raw = bytearray(dump_package(build_named_package(ASSETS, Uncompressed())))
        hdr_size = section_spans(read_header(bytes(raw)))["data"][0]
        struct.pack_into("<H", raw, 8, 99)
        # Re-seal the header so only the version is wrong
        struct.pack_into("<I", raw, hdr_size - 4, zlib.crc32(bytes(raw[: hdr_size - 4])))
        with self.assertRaises(PackageFormatError) as ctx:
            load_package(bytes(raw))
        self.assertIn("version", str(ctx.exception))

    def test_truncated_and_extended(self):
        raw = dump_package(build_named_package(ASSETS, Zstd()))
        with self.assertRaises(PackageFormatError):
            load_package(raw[:-1])
        with self.assertRaises(PackageFormatError):
            load_package(raw + b"\x00")
        with self.assertRaises(PackageFormatError):
            load_package(raw[:10])

    def test_write_and_read_file(self):
        def scenario(tmp_path: Path):
            out = tmp_path / "pkg.ingot"
            pkg = build_named_package(ASSETS, Zstd())
            size = write_package(str(out), pkg)
            self.assertEqual(size, out.stat().st_size)
            self.assertFalse((tmp_path / "pkg.ingot.tmp").exists())
            self.assertEqual(read_package(str(out)), pkg)
            self.assertEqual(read_package_header(str(out)).asset_count, 3)

        self.run_with_tmpdir(scenario)


class EmbedTests(unittest.TestCase):
    def _exec(self, source: str) -> dict:
        namespace: dict = {}
        exec(compile(source, "<generated>", "exec"), namespace)
        return namespace

    def test_named_module(self):
        pkg = build_named_package(ASSETS, Deflate())
        source = render_module(pkg)
        self.assertIn("Do not edit", source)
        ns = self._exec(source)
        self.assertEqual(ns["PACKAGE"], dump_package(pkg))
        arc = ns["load"](verify=True)
        self.assertEqual(arc["b/c.txt"], b"world!")

    def test_ordinal_module(self):
        pkg = build_ordinal_package([b"L", b"R"], Zstd())
        ns = self._exec(render_module(pkg))
        arc = ns["load"](Pair)
        self.assertEqual(arc[Pair.RIGHT], b"R")

    def test_empty_package_module(self):
        ns = self._exec(render_module(build_named_package({}, Uncompressed())))
        self.assertEqual(ns["load"]().count(), 0)

    def test_write_module(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "gen_assets.py"
            write_module(str(path), build_named_package(ASSETS, Lz4()))
            ns = self._exec(path.read_text(encoding="utf-8"))
            self.assertEqual(ns["load"]()["a.txt"], b"hi")


class NameTests(unittest.TestCase):
    def test_norm_name(self):
        self.assertEqual(norm_name("a\\b/./c.txt"), "a/b/c.txt")
        self.assertEqual(norm_name("/lead//x"), "lead/x")
        with self.assertRaises(BuildError):
            norm_name("a/../b")

    def test_symlink_policy_parse(self):
        self.assertIs(SymlinkPolicy.parse(None), SymlinkPolicy.FORBID)
        self.assertIs(SymlinkPolicy.parse("Follow"), SymlinkPolicy.FOLLOW)
        with self.assertRaises(BuildError):
            SymlinkPolicy.parse("copy")


if __name__ == "__main__":
    unittest.main()
