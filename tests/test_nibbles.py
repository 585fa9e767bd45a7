"""Tests for nibble paths and hex-prefix encoding."""

import pytest
from txproof.common.errors import MalformedEncoding
from txproof.common.nibbles import (
    common_prefix_length,
    compact_decode,
    compact_encode,
    format_nibble_path,
    from_nibbles,
    index_to_nibbles,
    to_nibbles,
)


class TestNibbles:
    def test_to_nibbles(self):
        assert to_nibbles(b"\x12\xab") == [1, 2, 10, 11]
        assert to_nibbles(b"") == []

    def test_from_nibbles(self):
        assert from_nibbles([1, 2, 10, 11]) == b"\x12\xab"

    def test_from_nibbles_odd_length(self):
        with pytest.raises(ValueError):
            from_nibbles([1, 2, 3])

    def test_common_prefix_length(self):
        assert common_prefix_length([1, 2, 3], [1, 2, 4]) == 2
        assert common_prefix_length([1, 2], [1, 2, 3]) == 2
        assert common_prefix_length([], [1]) == 0
        assert common_prefix_length([5], [6]) == 0


class TestCompactEncode:
    def test_extension_odd(self):
        assert compact_encode([1, 2, 3, 4, 5], is_leaf=False) == b"\x11\x23\x45"

    def test_extension_even(self):
        assert compact_encode([0, 1, 2, 3, 4, 5], is_leaf=False) == b"\x00\x01\x23\x45"

    def test_leaf_even(self):
        assert compact_encode([0, 15, 1, 12, 11, 8], is_leaf=True) == b"\x20\x0f\x1c\xb8"

    def test_leaf_odd(self):
        assert compact_encode([15, 1, 12, 11, 8], is_leaf=True) == b"\x3f\x1c\xb8"

    def test_empty_paths(self):
        assert compact_encode([], is_leaf=True) == b"\x20"
        assert compact_encode([], is_leaf=False) == b"\x00"


class TestCompactDecode:
    @pytest.mark.parametrize(
        "nibbles,is_leaf",
        [
            ([], True),
            ([], False),
            ([7], True),
            ([1, 2, 3, 4, 5], False),
            ([0, 15, 1, 12, 11, 8], True),
        ],
    )
    def test_roundtrip(self, nibbles, is_leaf):
        assert compact_decode(compact_encode(nibbles, is_leaf)) == (nibbles, is_leaf)

    def test_empty_input(self):
        with pytest.raises(MalformedEncoding):
            compact_decode(b"")

    def test_invalid_flag(self):
        with pytest.raises(MalformedEncoding, match="flag"):
            compact_decode(b"\x41\x23")

    def test_nonzero_padding(self):
        with pytest.raises(MalformedEncoding, match="padding"):
            compact_decode(b"\x21\x23")


class TestDisplayHelpers:
    def test_index_to_nibbles(self):
        assert index_to_nibbles(0) == [0]
        assert index_to_nibbles(5) == [5]
        assert index_to_nibbles(0x1a3) == [1, 10, 3]

    def test_index_to_nibbles_negative(self):
        with pytest.raises(ValueError):
            index_to_nibbles(-1)

    def test_format_nibble_path(self):
        assert format_nibble_path([8, 1, 12, 8]) == "81c8"
        assert format_nibble_path([]) == ""
