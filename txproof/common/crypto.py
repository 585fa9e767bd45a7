"""Hashing used by the transaction trie."""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak_mod

HASH_LENGTH = 32


def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 hash (NOT SHA3-256)."""
    h = _keccak_mod.new(digest_bits=256)
    h.update(data)
    return h.digest()
