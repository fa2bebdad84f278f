from __future__ import annotations

import os

from . import __version__
from .container import dump_package
from .writer import NamedPackage, Package

_LINE_BYTES = 48

_NAMED_TEMPLATE = '''\
# Generated by ingot {version}. Do not edit.
from ingot.reader import NamedArchive

PACKAGE = {literal}


def load(*, verify=False):
    """Decompress the embedded assets; call once at start-up."""
    return NamedArchive.from_bytes(PACKAGE, verify=verify)
'''

_ORDINAL_TEMPLATE = '''\
# Generated by ingot {version}. Do not edit.
from ingot.enums import EnumArchive

PACKAGE = {literal}


def load(enum_cls):
    """Decompress and verify the embedded assets for ``enum_cls``; call once at start-up."""
    return EnumArchive.from_bytes(enum_cls, PACKAGE)
'''


def _bytes_literal(blob: bytes) -> str:
    if not blob:
        return 'b""'
    lines = [repr(blob[i : i + _LINE_BYTES]) for i in range(0, len(blob), _LINE_BYTES)]
    return "(\n" + "".join(f"    {line}\n" for line in lines) + ")"


def render_module(package: Package) -> str:
    """Render a package as Python source exposing PACKAGE and load()."""
    template = _NAMED_TEMPLATE if isinstance(package, NamedPackage) else _ORDINAL_TEMPLATE
    return template.format(version=__version__, literal=_bytes_literal(dump_package(package)))


def write_module(path: str, package: Package) -> int:
    source = render_module(package)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(source)
    os.replace(tmp, path)
    return len(source)
