from datetime import datetime, timezone

import pytest

from sigid.codec import (
    b64url_decode,
    b64url_encode,
    compare_mac,
    extract,
    mac,
    pack_uint,
    timestamp,
    to_seconds,
    unpack_uint,
)
from sigid.errors import HashMismatchError, IdentityError


def test_extract_slices():
    src = bytes([1, 2, 3, 4, 5, 6])
    assert extract(b"") == b""
    assert extract(src) == src
    assert extract(src, 1) == bytes([2, 3, 4, 5, 6])
    assert extract(src, 0, 5) == bytes([1, 2, 3, 4, 5])
    assert extract(src, 1, 4) == bytes([2, 3, 4, 5])


def test_pack_uint_fixed_width_big_endian():
    assert pack_uint(0, 1) == b"\x00"
    assert pack_uint(1, 5) == b"\x00\x00\x00\x00\x01"
    assert pack_uint(256, 2) == b"\x01\x00"
    assert pack_uint(2**40 - 1, 5) == b"\xff" * 5


def test_pack_uint_rejects_out_of_range():
    with pytest.raises(IdentityError, match="fit in 2 bytes"):
        pack_uint(65536, 2, "counter")
    with pytest.raises(IdentityError, match="non-negative"):
        pack_uint(-1, 5)
    with pytest.raises(IdentityError):
        pack_uint(1.5, 5)
    with pytest.raises(IdentityError):
        pack_uint(True, 1)


def test_unpack_uint():
    assert unpack_uint(b"\x00") == 0
    assert unpack_uint(b"\x01") == 1
    assert unpack_uint(b"\x01\x00") == 256
    assert unpack_uint(b"\xff\x00\x00\x00\x00\x01\x00", 1, 5) == 1
    with pytest.raises(IdentityError):
        unpack_uint(b"\x00\x01", 0, 5)


def test_base64url_encode_without_padding():
    assert b64url_encode(b"\x01") == "AQ"
    assert b64url_encode(b"\x02") == "Ag"
    assert b64url_encode(b"\x01\x02") == "AQI"
    assert b64url_encode(b"\xfb\xff") == "-_8"


def test_base64url_decode():
    assert b64url_decode("AQ") == b"\x01"
    assert b64url_decode("Ag") == b"\x02"
    assert b64url_decode("STI") == b"I2"
    assert b64url_decode("-_8") == b"\xfb\xff"


def test_base64url_decode_rejects_padding_and_foreign_chars():
    for bad in ["AQ==", "A+Q", "A/Q", "A$Q", "A"]:
        with pytest.raises(IdentityError):
            b64url_decode(bad)
    with pytest.raises(IdentityError):
        b64url_decode(b"AQ")


def test_to_seconds_floors_numbers_and_datetimes():
    assert to_seconds(1.9) == 1
    assert to_seconds(7) == 7
    assert to_seconds(datetime(1970, 1, 1, 0, 0, 5, 900000, tzinfo=timezone.utc)) == 5
    with pytest.raises(IdentityError):
        to_seconds("5")
    with pytest.raises(IdentityError):
        to_seconds(float("nan"))


def test_timestamp_helpers_use_clock():
    clock = lambda: 1000.7
    assert timestamp(clock=clock) == 1000
    assert timestamp(1, clock=clock) == 1001


def test_mac_accepts_str_and_bytes_secrets():
    assert len(mac("hello", b"payload")) == 32
    assert mac("hello", b"payload") == mac(b"hello", b"payload")
    assert mac("hello", b"payload") != mac("other", b"payload")


def test_compare_mac_reports_reason():
    with pytest.raises(HashMismatchError) as ex:
        compare_mac(b"\x01", bytes(32))
    assert ex.value.reason == "length"
    with pytest.raises(HashMismatchError) as ex:
        compare_mac(b"\x01" * 32, bytes(32))
    assert ex.value.reason == "content"
    compare_mac(bytes(32), bytes(32))
