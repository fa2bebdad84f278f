from __future__ import annotations

import hashlib

from .constants import CHECKSUM_SIZE
from .errors import ChecksumMismatch


def compute_checksum(data: bytes) -> bytes:
    # BLAKE2b-512, always computed over uncompressed asset bytes
    return hashlib.blake2b(data, digest_size=CHECKSUM_SIZE).digest()


def check(data: bytes, expected: bytes, label: str = "asset") -> None:
    """Raise ChecksumMismatch unless ``data`` hashes to ``expected``.

    The error carries both the expected and the actual digest.
    """
    actual = compute_checksum(data)
    if actual != expected:
        raise ChecksumMismatch(label, bytes(expected), actual)
