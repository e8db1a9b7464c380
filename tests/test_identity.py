from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from sigid import Counter, Identity, IdentityError, SignedIdentity


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _fixed_random(n: int) -> bytes:
    return bytes([0x12, 0x34, 0x56, 0x78])[:n]


def test_identity_from_fields():
    ident = Identity(1, 1, 1)
    assert ident.timestamp == 1
    assert ident.counter == 1
    assert ident.noise == 1
    assert ident.to_bytes() == bytes([0, 0, 0, 0, 1, 0, 1, 0, 1])
    assert ident.to_base64() == "AAAAAAEAAQAB"
    assert str(ident) == "AAAAAAEAAQAB"
    assert ident.to_datetime() == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_identity_from_base64():
    assert Identity.from_base64("AAAAAAEAAQAB") == Identity(1, 1, 1)


def test_identity_clone():
    src = Identity(1, 1, 1)
    dst = Identity.clone(src)
    assert dst == src
    with pytest.raises(IdentityError):
        Identity.clone(object())


def test_identity_from_bytes():
    match = Identity(1, 1, 1)
    assert Identity.from_bytes(bytes([0, 0, 0, 0, 1, 0, 1, 0, 1])) == match
    assert Identity.from_bytes(bytearray(match.to_bytes())) == match

    signed = SignedIdentity.create("hello", timestamp=1, counter=1, noise=1)
    assert Identity.from_bytes(signed.to_bytes()) == match
    assert Identity.from_base64(signed.to_base64()) == match


def test_identity_projection_matches_embedded_region():
    signed = SignedIdentity.create("hello", timestamp=123456, counter=77, noise=999)
    blob = signed.to_bytes()
    assert Identity.from_bytes(blob) == Identity.from_bytes(blob[42:])
    assert Identity.from_bytes(blob) == signed.to_identity()


def test_invalid_byte_array_length():
    for n in [0, 4, 8, 10, 50, 52]:
        with pytest.raises(IdentityError, match="length"):
            Identity.from_bytes(bytes(n))


def test_identity_field_widths_are_enforced():
    with pytest.raises(IdentityError):
        Identity(2**40, 0, 0)
    with pytest.raises(IdentityError):
        Identity(0, 65536, 0)
    with pytest.raises(IdentityError):
        Identity(0, 0, 65536)
    with pytest.raises(IdentityError):
        Identity(-1, 0, 0)
    with pytest.raises(IdentityError):
        Identity(1.5, 0, 0)
    assert Identity(2**40 - 1, 65535, 65535).to_bytes() == b"\xff" * 9


def test_create_floors_fields():
    ident = Identity.create(1.9, 2.5, 3.7)
    assert (ident.timestamp, ident.counter, ident.noise) == (1, 2, 3)


def test_create_draws_noise_from_random_source():
    ident = Identity.create(1, 1, random_bytes=_fixed_random)
    assert ident == Identity(1, 1, 0x1234)


def test_create_draws_timestamp_and_counter_together():
    sequence = Counter(clock=FakeClock(100.5))
    first = Identity.create(sequence=sequence, random_bytes=_fixed_random)
    second = Identity.create(sequence=sequence, random_bytes=_fixed_random)
    assert (first.timestamp, first.counter) == (100, 0)
    assert (second.timestamp, second.counter) == (100, 1)


def test_create_keeps_explicit_timestamp_when_counting():
    sequence = Counter(clock=FakeClock(100.0))
    ident = Identity.create(5, sequence=sequence)
    assert ident.timestamp == 5
    assert ident.counter == 0


def test_create_uses_clock_when_counter_given():
    ident = Identity.create(counter=3, noise=4, clock=FakeClock(42.9))
    assert ident == Identity(42, 3, 4)


def test_create_accepts_datetime():
    when = datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)
    expected = int(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc).timestamp())
    assert Identity.create(when).timestamp == expected
    assert Identity.from_options({"timestamp": when}).timestamp == expected


def test_identity_from_options():
    ident = Identity.from_options({"timestamp": 1, "counter": 1})
    assert ident == Identity(1, 1, ident.noise)
    assert Identity.from_options({"noise": 1}).noise == 1
    assert Identity.from_options({"counter": 1}).counter == 1
    with pytest.raises(IdentityError, match="unknown identity keys"):
        Identity.from_options({"timestamp": 1, "secret": "x"})


def test_identity_from_any_dispatches_on_shape():
    match = Identity(1, 1, 1)
    assert Identity.from_any("AAAAAAEAAQAB") == match
    assert Identity.from_any(match.to_bytes()) == match
    assert Identity.from_any(match) == match
    assert Identity.from_any({"timestamp": 1, "counter": 1, "noise": 1}) == match
    assert Identity.from_any(1, 1, 1) == match
    assert isinstance(Identity.from_any(), Identity)
    with pytest.raises(IdentityError, match="invalid overload"):
        Identity.from_any([1, 2, 3])


def test_identity_rejects_bad_base64():
    with pytest.raises(IdentityError):
        Identity.from_base64("AAAAAAEAAQAB==")
    with pytest.raises(IdentityError):
        Identity.from_base64("AAAA")


def test_identity_is_immutable():
    ident = Identity(1, 1, 1)
    with pytest.raises(FrozenInstanceError):
        ident.counter = 2


def test_identity_timestamp_uses_injected_clock():
    clock = FakeClock(1000.0)
    first = Identity.create(clock=clock, random_bytes=_fixed_random)
    second = Identity.create(clock=clock, random_bytes=_fixed_random)
    assert first.timestamp == 1000
    assert second.timestamp == 1000
    assert (first.counter, second.counter) == (0, 1)
    assert Identity.create(clock=lambda: 1000.0).timestamp == 1000
