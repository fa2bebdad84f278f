from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

from ingot.container import read_package_header, section_spans
from ingot.errors import IngotError


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.archive, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_section(args: argparse.Namespace) -> None:
    spans = section_spans(read_package_header(args.archive))
    start, length = spans[args.name]
    if args.within < 0 or args.within >= length:
        raise ValueError(f"--within must be within the {args.name} section (0..{length - 1})")
    off = start + args.within
    _flip_byte(args.archive, off, xor_val=args.xor)
    print(f"Flipped 1 byte in section {args.name} at package offset {off}")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="ingot.corrupt", description="Corrupt ingot packages for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute package offset")
    p_off.add_argument("archive", help="Path to package")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in package")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_sec = sub.add_parser("section", help="Flip a byte inside one package section")
    p_sec.add_argument("archive", help="Path to package")
    p_sec.add_argument("name", choices=["data", "names", "sizes", "checksums"], help="Section to corrupt")
    p_sec.add_argument("--within", type=int, default=0, help="Byte offset within section (default 0)")
    p_sec.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_sec.set_defaults(func=cmd_section)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (IngotError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
