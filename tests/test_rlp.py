"""Tests for RLP encoding/decoding."""

import pytest
from txproof.common.errors import MalformedEncoding
from txproof.common.rlp import (
    encode,
    decode,
    decode_address,
    decode_list,
    decode_uint,
    encode_uint,
)


class TestRLPEncodeBytes:
    def test_single_byte_low(self):
        # Single byte in [0x00, 0x7f] encodes as itself
        assert encode(b"\x00") == b"\x00"
        assert encode(b"\x7f") == b"\x7f"

    def test_single_byte_high(self):
        assert encode(b"\x80") == b"\x81\x80"
        assert encode(b"\xff") == b"\x81\xff"

    def test_empty_bytes(self):
        assert encode(b"") == b"\x80"

    def test_short_string(self):
        assert encode(b"dog") == b"\x83dog"

    def test_55_byte_string(self):
        data = b"a" * 55
        assert encode(data) == bytes([0x80 + 55]) + data

    def test_56_byte_string_uses_long_form(self):
        data = b"b" * 56
        assert encode(data) == b"\xb8\x38" + data

    def test_length_prefix_is_minimal(self):
        data = b"c" * 1024
        assert encode(data) == b"\xb9\x04\x00" + data

    def test_str_and_bool(self):
        assert encode("dog") == b"\x83dog"
        assert encode(True) == b"\x01"
        assert encode(False) == b"\x80"


class TestRLPEncodeList:
    def test_empty_list(self):
        assert encode([]) == b"\xc0"

    def test_list_of_strings(self):
        assert encode([b"cat", b"dog"]) == b"\xc8\x83cat\x83dog"

    def test_set_theoretical_three(self):
        assert encode([[], [[]], [[], [[]]]]) == bytes.fromhex("c7c0c1c0c3c0c1c0")

    def test_tuple_same_as_list(self):
        assert encode((b"cat", b"dog")) == encode([b"cat", b"dog"])

    def test_short_list_max(self):
        result = encode([b"a"] * 55)
        assert result[0] == 0xc0 + 55
        assert len(result) == 56

    def test_long_list(self):
        result = encode([b"a"] * 60)
        assert result[:2] == b"\xf8\x3c"
        assert len(result) == 62

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            encode(1.5)


class TestRLPEncodeIntegers:
    def test_zero_is_empty_string(self):
        assert encode(0) == b"\x80"

    def test_small_int(self):
        assert encode(1) == b"\x01"
        assert encode(127) == b"\x7f"

    def test_medium_int(self):
        assert encode(128) == b"\x81\x80"
        assert encode(1024) == b"\x82\x04\x00"

    def test_no_leading_zero_bytes(self):
        assert encode(0x010000) == b"\x83\x01\x00\x00"
        assert encode(20_000_000_000) == bytes.fromhex("8504a817c800")

    def test_negative_int_raises(self):
        with pytest.raises(ValueError):
            encode(-1)


class TestRLPDecode:
    def test_single_byte(self):
        assert decode(b"\x00") == b"\x00"
        assert decode(b"\x7f") == b"\x7f"

    def test_empty_string(self):
        assert decode(b"\x80") == b""

    def test_short_string(self):
        assert decode(b"\x83dog") == b"dog"

    def test_long_string(self):
        data = b"b" * 56
        assert decode(b"\xb8\x38" + data) == data

    def test_nested_list(self):
        assert decode(bytes.fromhex("c7c0c1c0c3c0c1c0")) == [[], [[]], [[], [[]]]]

    def test_long_list(self):
        assert decode(encode([b"a"] * 60)) == [b"a"] * 60

    def test_decode_list_rejects_string(self):
        with pytest.raises(MalformedEncoding, match="Expected RLP list"):
            decode_list(b"\x83dog")

    def test_non_strict_ignores_trailing(self):
        assert decode(b"\x83dogXX", strict=False) == b"dog"


class TestRLPMalformed:
    def test_empty_input(self):
        with pytest.raises(MalformedEncoding):
            decode(b"")

    def test_trailing_bytes(self):
        with pytest.raises(MalformedEncoding, match="Trailing bytes"):
            decode(b"\x80\x80")

    def test_truncated_string(self):
        with pytest.raises(MalformedEncoding):
            decode(b"\x83do")

    def test_truncated_list(self):
        with pytest.raises(MalformedEncoding):
            decode(b"\xc8\x83cat\x83do")

    def test_truncated_length_of_length(self):
        with pytest.raises(MalformedEncoding):
            decode(b"\xb9\x04")

    def test_single_byte_with_prefix(self):
        with pytest.raises(MalformedEncoding, match="Single byte"):
            decode(b"\x81\x05")

    def test_long_form_for_short_string(self):
        with pytest.raises(MalformedEncoding, match="short encoding"):
            decode(b"\xb8\x03dog")

    def test_long_form_for_short_list(self):
        with pytest.raises(MalformedEncoding, match="short encoding"):
            decode(b"\xf8\x02\x80\x80")

    def test_leading_zeros_in_length(self):
        with pytest.raises(MalformedEncoding, match="Leading zeros"):
            decode(b"\xb9\x00\x38" + b"x" * 56)

    def test_list_item_overruns_payload(self):
        # List claims 2 payload bytes but its item claims 3
        with pytest.raises(MalformedEncoding):
            decode(b"\xc2\x83do")


class TestRLPRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            b"",
            b"\x80",
            b"a" * 56,
            [],
            [b"cat", [b"dog", []]],
        ],
    )
    def test_roundtrip(self, value):
        assert decode(encode(value)) == value


class TestTypedHelpers:
    def test_encode_uint(self):
        assert encode_uint(0) == b""
        assert encode_uint(256) == b"\x01\x00"

    def test_decode_uint(self):
        assert decode_uint(b"") == 0
        assert decode_uint(b"\x01\x00") == 256

    def test_decode_uint_rejects_leading_zero(self):
        with pytest.raises(MalformedEncoding):
            decode_uint(b"\x00\x01")

    def test_decode_uint_rejects_list(self):
        with pytest.raises(MalformedEncoding):
            decode_uint([b"\x01"])

    def test_decode_address(self):
        assert decode_address(b"") is None
        assert decode_address(b"\x11" * 20) == b"\x11" * 20
        with pytest.raises(MalformedEncoding):
            decode_address(b"\x11" * 19)
