"""
RLP (Recursive Length Prefix) codec.

Canonical serialization for both transactions and trie nodes, see
https://ethereum.org/en/developers/docs/data-structures-and-encoding/rlp/

An item is either a byte string or a list of items. Decoding is strict:
every length prefix must be minimal, otherwise the same value would have two
encodings and two different hashes.
"""

from __future__ import annotations

from typing import Union

from txproof.common.errors import MalformedEncoding

# RLP item: either raw bytes or a list of RLP items
RLPItem = Union[bytes, list["RLPItem"]]

SHORT_STRING = 0x80
LONG_STRING = 0xB7
SHORT_LIST = 0xC0
LONG_LIST = 0xF7
SHORT_LIMIT = 55


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode(item: RLPItem | int | str | bool) -> bytes:
    """Encode a Python object into RLP bytes.

    Accepted types:
    - bytes: encoded directly
    - int: minimal big-endian bytes (0 encodes as b'')
    - str: UTF-8 encoded then treated as bytes
    - bool: True -> b'\\x01', False -> b''
    - list/tuple: each element is recursively encoded
    """
    if isinstance(item, bool):
        return encode(b"\x01" if item else b"")
    if isinstance(item, int):
        return _encode_bytes(encode_uint(item))
    if isinstance(item, str):
        return _encode_bytes(item.encode("utf-8"))
    if isinstance(item, (bytes, bytearray, memoryview)):
        return _encode_bytes(bytes(item))
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(sub) for sub in item)
        return _prefix(payload, SHORT_LIST, LONG_LIST)
    raise TypeError(f"Cannot RLP-encode type {type(item).__name__}")


def _encode_bytes(data: bytes) -> bytes:
    if len(data) == 1 and data[0] < SHORT_STRING:
        return data
    return _prefix(data, SHORT_STRING, LONG_STRING)


def _prefix(payload: bytes, short_base: int, long_base: int) -> bytes:
    length = len(payload)
    if length <= SHORT_LIMIT:
        return bytes([short_base + length]) + payload
    len_bytes = encode_uint(length)
    return bytes([long_base + len(len_bytes)]) + len_bytes + payload


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode(data: bytes | bytearray | memoryview, strict: bool = True) -> RLPItem:
    """Decode RLP bytes into bytes or a nested list of bytes.

    With strict=False, trailing bytes after the first item are ignored.
    """
    view = memoryview(bytes(data))
    item, consumed = _decode_item(view, 0)
    if strict and consumed != len(view):
        raise MalformedEncoding(
            f"Trailing bytes: consumed {consumed} of {len(view)}"
        )
    return item


def decode_list(data: bytes | bytearray | memoryview, strict: bool = True) -> list[RLPItem]:
    """Decode RLP bytes, asserting the top-level item is a list."""
    result = decode(data, strict=strict)
    if not isinstance(result, list):
        raise MalformedEncoding("Expected RLP list, got bytes")
    return result


def _decode_item(data: memoryview, offset: int) -> tuple[RLPItem, int]:
    """Decode one item starting at offset, return (item, new_offset)."""
    if offset >= len(data):
        raise MalformedEncoding("Unexpected end of data")

    prefix = data[offset]

    if prefix < SHORT_STRING:
        return bytes(data[offset : offset + 1]), offset + 1

    if prefix < SHORT_LIST:
        start, end = _payload_bounds(data, offset, prefix, SHORT_STRING, LONG_STRING)
        if end - start == 1 and data[start] < SHORT_STRING:
            raise MalformedEncoding("Single byte should not have string prefix")
        return bytes(data[start:end]), end

    start, end = _payload_bounds(data, offset, prefix, SHORT_LIST, LONG_LIST)
    items: list[RLPItem] = []
    pos = start
    while pos < end:
        item, pos = _decode_item(data, pos)
        items.append(item)
    if pos != end:
        raise MalformedEncoding("List items did not consume exact payload")
    return items, end


def _payload_bounds(
    data: memoryview, offset: int, prefix: int, short_base: int, long_base: int,
) -> tuple[int, int]:
    """Return [start, end) of the payload announced by prefix at offset."""
    if prefix <= long_base:
        start = offset + 1
        length = prefix - short_base
    else:
        len_of_len = prefix - long_base
        start = offset + 1 + len_of_len
        if start > len(data):
            raise MalformedEncoding("Length-of-length exceeds data")
        len_bytes = data[offset + 1 : start]
        if len_bytes[0] == 0:
            raise MalformedEncoding("Leading zeros in length")
        length = int.from_bytes(len_bytes, "big")
        if length <= SHORT_LIMIT:
            raise MalformedEncoding("Should have used short encoding")
    end = start + length
    if end > len(data):
        raise MalformedEncoding(
            f"Payload of {length} bytes exceeds data at offset {offset}"
        )
    return start, end


# ---------------------------------------------------------------------------
# Helpers for typed fields
# ---------------------------------------------------------------------------

def encode_uint(value: int) -> bytes:
    """Minimal big-endian bytes of an unsigned integer (0 -> b'')."""
    if value < 0:
        raise ValueError("RLP cannot encode negative integers")
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def decode_uint(data: bytes) -> int:
    """Decode a canonical unsigned integer; leading zeros are rejected."""
    if not isinstance(data, bytes):
        raise MalformedEncoding("Expected bytes for integer field, got list")
    if len(data) == 0:
        return 0
    if data[0] == 0:
        raise MalformedEncoding("Leading zeros in integer")
    return int.from_bytes(data, "big")


def decode_address(data: bytes) -> bytes | None:
    """Decode a recipient field: 20 bytes, or b'' for contract creation."""
    if not isinstance(data, bytes):
        raise MalformedEncoding("Expected bytes for address field, got list")
    if len(data) == 0:
        return None
    if len(data) != 20:
        raise MalformedEncoding(f"Address must be 20 bytes, got {len(data)}")
    return data
