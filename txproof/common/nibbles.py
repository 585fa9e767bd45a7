"""
Nibble paths and hex-prefix (compact) encoding.

Trie keys are walked one 4-bit nibble at a time. Leaf and extension nodes
store the remaining part of a path in compact form, where the first nibble
carries two flags:
- 0x2: the path terminates at a leaf
- 0x1: odd nibble count (no padding nibble follows the flag)
"""

from __future__ import annotations

from txproof.common.errors import MalformedEncoding


def to_nibbles(data: bytes) -> list[int]:
    """Convert bytes to a list of nibbles, high nibble first."""
    nibbles = []
    for byte in data:
        nibbles.append(byte >> 4)
        nibbles.append(byte & 0x0F)
    return nibbles


def from_nibbles(nibbles: list[int]) -> bytes:
    """Convert an even-length nibble list back to bytes."""
    if len(nibbles) % 2:
        raise ValueError(f"Odd nibble count: {len(nibbles)}")
    result = bytearray()
    for i in range(0, len(nibbles), 2):
        result.append((nibbles[i] << 4) | nibbles[i + 1])
    return bytes(result)


def compact_encode(nibbles: list[int], is_leaf: bool) -> bytes:
    """Pack a nibble path with its leaf/extension and parity flags."""
    flag = 2 if is_leaf else 0
    if len(nibbles) % 2 == 1:
        return from_nibbles([flag + 1] + list(nibbles))
    return from_nibbles([flag, 0] + list(nibbles))


def compact_decode(data: bytes) -> tuple[list[int], bool]:
    """Unpack a compact path. Returns (nibbles, is_leaf)."""
    if len(data) == 0:
        raise MalformedEncoding("Empty compact path")
    nibbles = to_nibbles(data)
    flag = nibbles[0]
    if flag > 3:
        raise MalformedEncoding(f"Invalid compact path flag nibble: {flag:#x}")
    is_leaf = flag >= 2
    if flag % 2 == 1:
        return nibbles[1:], is_leaf
    if nibbles[1] != 0:
        raise MalformedEncoding("Non-zero padding nibble in even compact path")
    return nibbles[2:], is_leaf


def common_prefix_length(a: list[int], b: list[int]) -> int:
    max_len = min(len(a), len(b))
    for i in range(max_len):
        if a[i] != b[i]:
            return i
    return max_len


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def index_to_nibbles(index: int) -> list[int]:
    """Nibbles of the bare integer index (most significant first, [0] for 0)."""
    if index < 0:
        raise ValueError("Index must be non-negative")
    if index == 0:
        return [0]
    return [int(c, 16) for c in format(index, "x")]


def format_nibble_path(nibbles: list[int]) -> str:
    return "".join(format(n, "x") for n in nibbles)
