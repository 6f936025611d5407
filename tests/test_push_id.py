from datetime import datetime, timezone

import pytest

from utils.push_id import (
    MAX_TIMESTAMP,
    PUSH_CHARS,
    InvalidPushIDError,
    LcgRandom,
    PushIDCodec,
    decode_encoded_time,
    encode_time,
)

NOW = 1_700_000_000_000


@pytest.fixture
def codec():
    return PushIDCodec(rng=LcgRandom(seed=7))


# --- Time field ---

def test_alphabet_is_sorted_and_complete():
    assert len(PUSH_CHARS) == 64
    assert list(PUSH_CHARS) == sorted(PUSH_CHARS)


def test_encode_time_known_values():
    assert encode_time(0) == "00000000"
    assert encode_time(64) == "00000010"
    assert encode_time(MAX_TIMESTAMP) == "~~~~~~~~"


@pytest.mark.parametrize("ms", [0, 1, 63, 64, 4095, NOW, 2**47, MAX_TIMESTAMP])
def test_time_round_trip(ms):
    assert decode_encoded_time(encode_time(ms)) == ms


@pytest.mark.parametrize("ms", [-1, MAX_TIMESTAMP + 1])
def test_encode_time_rejects_out_of_range(ms):
    with pytest.raises(ValueError):
        encode_time(ms)


def test_encode_time_rejects_wrong_types():
    with pytest.raises(TypeError):
        encode_time("1700000000000")
    with pytest.raises(TypeError):
        encode_time(True)


def test_encode_time_accepts_datetimes():
    aware = datetime(1970, 1, 1, 0, 0, 0, 1000, tzinfo=timezone.utc)
    naive = datetime(1970, 1, 1, 0, 0, 0, 1000)
    assert encode_time(aware) == encode_time(1)
    assert encode_time(naive) == encode_time(1)


def test_decode_encoded_time_rejects_foreign_characters():
    assert decode_encoded_time("0000000!") is None
    assert decode_encoded_time("") is None


def test_ids_sort_by_time(codec):
    earlier = codec.new_id(time=NOW)
    later = codec.new_id(time=NOW + 1)
    assert earlier < later

    earlier = codec.new_id(time=NOW, stub="evt", length=20)
    later = codec.new_id(time=NOW + 60_000, stub="evt", length=20)
    assert earlier < later


# --- Generation ---

def test_legacy_format(codec):
    obj = codec.new_obj(time=NOW)
    assert obj.stub is None
    assert obj.id == encode_time(NOW) + obj.randomness
    assert len(obj.id) == 20


def test_tagged_format(codec):
    obj = codec.new_obj(time=NOW, stub="user")
    assert obj.id == f"{encode_time(NOW)}-user-{obj.randomness}"
    assert obj.stub == "user"


def test_empty_stub_means_legacy(codec):
    assert codec.new_obj(time=NOW, stub="").stub is None


def test_randomness_with_delimiter_is_rejected(codec):
    with pytest.raises(ValueError):
        codec.new_obj(time=NOW, randomness="ab-cd-ef")
    with pytest.raises(ValueError):
        codec.new_obj(time=NOW, stub="evt", randomness="ab-cd")
    assert codec.generated == 0


def test_non_string_stub_is_rejected(codec):
    with pytest.raises(TypeError):
        codec.new_obj(stub=5)


@pytest.mark.parametrize("requested, expected", [(1, 12), (12, 12), (20, 20)])
def test_random_length_is_clamped(codec, requested, expected):
    assert len(codec.new_obj(length=requested).randomness) == expected


def test_explicit_randomness_bypasses_generation(codec):
    obj = codec.new_obj(time=NOW, randomness="abc")
    assert obj.randomness == "abc"
    assert obj.id == encode_time(NOW) + "abc"


def test_data_makes_ids_deterministic():
    first = PushIDCodec().new_id(time=NOW, data={"a": 1, "b": 2})
    second = PushIDCodec().new_id(time=NOW, data={"b": 2, "a": 1})
    assert first == second


def test_new_hash_id_hashes_none_too(codec):
    assert codec.new_hash_id(None, time=NOW) == codec.new_hash_id(None, time=NOW)
    assert codec.decode_str(codec.new_hash_id(None, time=NOW)) == codec.hash(None)


def test_date_property(codec):
    obj = codec.new_obj(time=1000)
    assert obj.date == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_previous_is_tracked_per_codec(codec):
    assert codec.previous_obj() is None
    assert codec.previous_id() is None
    obj = codec.new_obj(time=NOW)
    assert codec.previous_obj() == obj
    assert codec.previous_id() == obj.id
    assert PushIDCodec().previous_id() is None


def test_generated_counter(codec):
    codec.new_id()
    codec.new_id()
    assert codec.generated == 2


# --- Random source ---

def test_lcg_recurrence():
    rng = LcgRandom(seed=0)
    assert rng() == 1013904223 / 0xFFFFFFFF
    assert rng.seed == 1013904223


def test_same_seed_same_sequence():
    assert PushIDCodec(rng=LcgRandom(seed=42)).new_rnd(30) == PushIDCodec(rng=LcgRandom(seed=42)).new_rnd(30)


def test_random_source_is_injectable():
    assert PushIDCodec(rng=lambda: 0.0).new_rnd() == "0" * 12
    assert PushIDCodec(rng=lambda: 0.999999).new_rnd() == "~" * 12


def test_new_rnd_uses_alphabet(codec):
    value = codec.new_rnd(200)
    assert len(value) == 200
    assert set(value) <= set(PUSH_CHARS)


# --- Decoding ---

def test_decode_legacy(codec):
    push_id = encode_time(NOW) + "aBcDeFgHiJkL"
    obj = codec.decode_id(push_id)
    assert obj.stub is None
    assert obj.timestamp == NOW
    assert obj.randomness == "aBcDeFgHiJkL"
    assert obj.encoded_time == encode_time(NOW)


def test_decode_tagged(codec):
    obj = codec.decode_id(f"{encode_time(NOW)}-cID-aBcDeFgHiJkL")
    assert obj.stub == "cID"
    assert obj.timestamp == NOW
    assert obj.randomness == "aBcDeFgHiJkL"


def test_stub_with_hyphens_round_trips(codec):
    push_id = codec.new_id(time=NOW, stub="page-view-2", randomness="abcdefghijkl")
    obj = codec.decode_id(push_id)
    assert obj.stub == "page-view-2"
    assert obj.randomness == "abcdefghijkl"
    assert obj.timestamp == NOW


@pytest.mark.parametrize("bad", ["abcde", "", None, 42, "!!!!!!!!abcdefghijkl", "0000000!-x-y"])
def test_tolerant_decode_returns_none(codec, bad):
    assert codec.decode_id(bad) is None
    assert codec.decode_time(bad) is None
    assert codec.decode_date(bad) is None
    assert codec.decode_str(bad) is None
    assert codec.decode_stub(bad) is None


def test_strict_decode_raises(codec):
    with pytest.raises(InvalidPushIDError):
        codec.decode_id_strict("abcde")
    with pytest.raises(ValueError):
        codec.decode_id_strict("!!!!!!!!abcdefghijkl")


def test_decode_accessors(codec):
    obj = codec.new_obj(time=NOW, stub="eID")
    assert codec.decode_time(obj.id) == NOW
    assert codec.decode_date(obj.id) == obj.date
    assert codec.decode_str(obj.id) == obj.randomness
    assert codec.decode_stub(obj.id) == "eID"


def test_far_future_ids_decode_without_a_date(codec):
    obj = codec.decode_id("~~~~~~~~abcdefghijkl")
    assert obj.timestamp == MAX_TIMESTAMP
    assert obj.date is None
