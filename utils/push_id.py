"""Push ID generation and decoding.

A push ID is a compact, chronologically sortable identifier: an 8-character
base-64 timestamp followed by a random (or hashed) part. Two formats exist:

- legacy:  <time><randomness>            e.g. 0QZ7q0_-aBcDeFgHiJkL
- tagged:  <time>-<stub>-<randomness>    e.g. 0QZ7q0_--user-aBcDeFgHiJkL

The alphabet is ordered by ASCII value, so for IDs of the same format the
string order is the time order. Timestamps cover 48 bits of milliseconds.
"""

import random
import time as _time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from config import PUSHID_SECURE_RANDOM
from models import PushIDObject
from utils.hashing import MIN_LENGTH, hash_ish

PUSH_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz~"
CHARS_MAP = {char: index for index, char in enumerate(PUSH_CHARS)}

TIME_LENGTH = 8
MAX_TIMESTAMP = 64 ** TIME_LENGTH - 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UNSET = object()

TimeLike = Union[int, float, datetime]


class InvalidPushIDError(ValueError):
    """Raised by strict decoding when a string is not a valid push ID."""


class LcgRandom:
    """Linear-congruential random source seeded from the clock.

    Cheap and good enough for session identifiers; not cryptographically
    secure. Two instances seeded in the same millisecond yield the same
    sequence.
    """

    MODULUS = 0xFFFFFFFF

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = now_ms() & 0xFFFFFFFF
        self.seed = seed % self.MODULUS

    def __call__(self) -> float:
        self.seed = (self.seed * 1664525 + 1013904223) % self.MODULUS
        return self.seed / self.MODULUS


def now_ms() -> int:
    return _time.time_ns() // 1_000_000


def to_millis(value: TimeLike) -> int:
    """Convert epoch milliseconds or a datetime to integer milliseconds.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH) // timedelta(milliseconds=1)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected epoch milliseconds or datetime, got {type(value).__name__}")
    return int(value)


def from_millis(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


def encode_time(value: TimeLike) -> str:
    """Encode a timestamp as 8 sortable base-64 characters."""
    ms = to_millis(value)
    if not 0 <= ms <= MAX_TIMESTAMP:
        raise ValueError(f"Timestamp {ms} outside push ID range 0..{MAX_TIMESTAMP}")

    chars = []
    for _ in range(TIME_LENGTH):
        ms, remainder = divmod(ms, 64)
        chars.append(PUSH_CHARS[remainder])
    return "".join(reversed(chars))


def decode_encoded_time(time_str: str) -> Optional[int]:
    """Decode an encoded time field to milliseconds, or None if it is not one."""
    if not time_str:
        return None
    total = 0
    for char in time_str:
        value = CHARS_MAP.get(char)
        if value is None:
            return None
        total = total * 64 + value
    return total


def parse(push_id: str) -> PushIDObject:
    """Split a push ID into its parts, raising InvalidPushIDError on bad input.

    Exactly three hyphen-separated parts are read as the tagged format. A
    stub may itself contain hyphens: when the 9th character is a hyphen and
    more than three parts result, the time is the first 8 characters, the
    randomness follows the last hyphen and the stub is what lies between.
    Anything else is read as the legacy format.
    """
    if not isinstance(push_id, str) or not push_id:
        raise InvalidPushIDError("Push ID must be a non-empty string")

    parts = push_id.split("-")
    if len(parts) == 3:
        time_str, stub, randomness = parts
    elif len(parts) > 3 and push_id[TIME_LENGTH:TIME_LENGTH + 1] == "-":
        time_str = push_id[:TIME_LENGTH]
        stub, _, randomness = push_id[TIME_LENGTH + 1:].rpartition("-")
    else:
        if len(push_id) < TIME_LENGTH:
            raise InvalidPushIDError(f"Legacy push ID shorter than {TIME_LENGTH} characters: {push_id!r}")
        time_str, stub, randomness = push_id[:TIME_LENGTH], None, push_id[TIME_LENGTH:]

    timestamp = decode_encoded_time(time_str)
    if timestamp is None:
        raise InvalidPushIDError(f"Invalid push ID time field: {time_str!r}")

    return PushIDObject(
        id=push_id,
        randomness=randomness,
        timestamp=timestamp,
        stub=stub,
        encoded_time=time_str,
    )


class PushIDCodec:
    """Generates and decodes push IDs.

    Each codec owns its random source and remembers the last object it
    generated (see `previous_obj`).
    """

    def __init__(self, rng: Optional[Callable[[], float]] = None):
        self.rng = rng or LcgRandom()
        self.generated = 0
        self._last: Optional[PushIDObject] = None

    # --- Generation ---

    def new_obj(
        self,
        time: Optional[TimeLike] = None,
        stub: Optional[str] = None,
        length: int = MIN_LENGTH,
        randomness: Optional[str] = None,
        data=_UNSET,
    ) -> PushIDObject:
        """Generate a new push ID object.

        Args:
            time: Timestamp to embed (epoch ms or datetime). Default: now.
            stub: Type tag. None or "" produces a legacy ID.
            length: Length of the generated random part, minimum 12.
            randomness: Explicit random part; bypasses generation. Must not
                contain "-", the tagged-format delimiter.
            data: Any serializable value; when given, the random part is
                its hash, making the ID deterministic for a fixed time.
        """
        if stub is not None and not isinstance(stub, str):
            raise TypeError(f"Stub must be a string, got {type(stub).__name__}")
        if isinstance(randomness, str) and "-" in randomness:
            raise ValueError(f"Randomness must not contain '-': {randomness!r}")

        timestamp = now_ms() if time is None else to_millis(time)
        encoded_time = encode_time(timestamp)
        rand_length = max(MIN_LENGTH, length)

        if isinstance(randomness, str):
            rand_str = randomness
        elif data is not _UNSET:
            rand_str = self.hash(data, rand_length)
        else:
            rand_str = self.new_rnd(rand_length)

        if stub:
            push_id = f"{encoded_time}-{stub}-{rand_str}"
        else:
            push_id = f"{encoded_time}{rand_str}"

        obj = PushIDObject(
            id=push_id,
            randomness=rand_str,
            timestamp=timestamp,
            stub=stub or None,
            encoded_time=encoded_time,
        )
        self._last = obj
        self.generated += 1
        return obj

    def new_id(self, **options) -> str:
        return self.new_obj(**options).id

    def new_hash_id(self, data, **options) -> str:
        """Generate a push ID whose random part is a hash of `data`."""
        return self.new_obj(data=data, **options).id

    def previous_obj(self) -> Optional[PushIDObject]:
        return self._last

    def previous_id(self) -> Optional[str]:
        return self._last.id if self._last else None

    def new_rnd(self, length: int = MIN_LENGTH) -> str:
        """Random string over the push ID alphabet, at least 12 characters."""
        length = max(MIN_LENGTH, length)
        return "".join(PUSH_CHARS[min(int(self.rng() * 64), 63)] for _ in range(length))

    def hash(self, value, length: int = MIN_LENGTH) -> str:
        return hash_ish(value, max(MIN_LENGTH, length), PUSH_CHARS)

    @staticmethod
    def new_time() -> int:
        return now_ms()

    @staticmethod
    def new_date() -> datetime:
        return from_millis(now_ms())

    # --- Decoding ---

    def decode_id_strict(self, push_id: str) -> PushIDObject:
        return parse(push_id)

    def decode_id(self, push_id: str) -> Optional[PushIDObject]:
        """Decode a push ID, returning None instead of raising on bad input."""
        try:
            return parse(push_id)
        except InvalidPushIDError:
            return None

    def decode_time(self, push_id: str) -> Optional[int]:
        obj = self.decode_id(push_id)
        return obj.timestamp if obj else None

    def decode_date(self, push_id: str) -> Optional[datetime]:
        obj = self.decode_id(push_id)
        return obj.date if obj else None

    def decode_str(self, push_id: str) -> Optional[str]:
        obj = self.decode_id(push_id)
        return obj.randomness if obj else None

    def decode_stub(self, push_id: str) -> Optional[str]:
        obj = self.decode_id(push_id)
        return obj.stub if obj else None


# Singleton
_codec: Optional[PushIDCodec] = None


def get_codec() -> PushIDCodec:
    global _codec
    if _codec is None:
        rng = random.SystemRandom().random if PUSHID_SECURE_RANDOM else None
        _codec = PushIDCodec(rng=rng)
    return _codec
