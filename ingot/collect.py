from __future__ import annotations

import os
from enum import Enum
from typing import List, Optional, Set, Tuple

from .constants import SYMLINK_FORBID, SYMLINK_IGNORE, SYMLINK_FOLLOW
from .errors import AssetReadError, BuildError, SymlinkForbiddenError


class SymlinkPolicy(str, Enum):
    FORBID = SYMLINK_FORBID
    IGNORE = SYMLINK_IGNORE
    FOLLOW = SYMLINK_FOLLOW

    @classmethod
    def parse(cls, value: Optional[str]) -> "SymlinkPolicy":
        if value is None:
            return cls.FORBID
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise BuildError(
                f"invalid/unsupported rule for symbolic links '{value}' (supported rules are: forbid, ignore, follow)"
            )


def norm_name(p: str) -> str:
    """Normalize an asset path to the canonical forward-slash form.

    Backslashes become slashes, empty and '.' segments are dropped and
    '..' is rejected.
    """
    parts = [q for q in p.replace("\\", "/").split("/") if q not in ("", ".")]
    if ".." in parts:
        raise BuildError(f"asset path may not contain '..': {p}")
    return "/".join(parts)


def _read_file(path: str, label: str = "") -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        reason = exc.strerror or str(exc)
        raise AssetReadError(path, f"{label}: {reason}" if label else reason)


def read_dir(base: str, symlinks: Optional[str] = None) -> List[Tuple[str, bytes]]:
    """Collect every regular file below ``base`` as (name, bytes).

    Entries are visited in sorted order so the result does not depend on
    filesystem iteration order. Names are relative to ``base`` and use '/'.

    Args:
        base: Directory to walk.
        symlinks: "forbid" (default), "ignore" or "follow".
    """
    policy = SymlinkPolicy.parse(symlinks)
    base = os.fspath(base)
    if not os.path.isdir(base):
        raise AssetReadError(base, "not a directory")
    assets: List[Tuple[str, bytes]] = []
    visiting: Set[str] = set()

    def walk(directory: str, prefix: str) -> None:
        real = os.path.realpath(directory)
        if real in visiting:
            raise BuildError(f"symbolic link loop at {directory}")
        visiting.add(real)
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as exc:
            raise AssetReadError(directory, exc.strerror or str(exc))
        for ent in entries:
            name = f"{prefix}{ent.name}"
            if ent.is_symlink():
                if policy is SymlinkPolicy.IGNORE:
                    continue
                if policy is SymlinkPolicy.FORBID:
                    raise SymlinkForbiddenError(ent.path)
                if not os.path.exists(ent.path):
                    raise AssetReadError(ent.path, "dangling symbolic link")
            if ent.is_dir():
                walk(ent.path, name + "/")
            elif ent.is_file():
                try:
                    name.encode("utf-8")
                except UnicodeEncodeError:
                    raise AssetReadError(ent.path, "non-UTF-8 file name")
                assets.append((name, _read_file(ent.path)))
            else:
                raise AssetReadError(ent.path, "neither directory, file, nor symbolic link")
        visiting.discard(real)

    walk(base, "")
    return assets


def read_enum_assets(enum_cls, base: str) -> List[bytes]:
    """Read the file of every member of an AssetEnum, in declaration order."""
    if not issubclass(enum_cls, Enum):
        raise TypeError(f"{enum_cls!r} is not an enum")
    blobs: List[bytes] = []
    for member in enum_cls:
        rel = norm_name(str(member.value))
        path = os.path.join(os.fspath(base), *rel.split("/"))
        blobs.append(_read_file(path, f"{enum_cls.__name__}.{member.name}"))
    return blobs
