"""Fast, deterministic string hashing for push IDs.

A MurmurHash3-like mixer over a 128-bit state (four 32-bit words). It is
NOT cryptographic: it turns canonicalized input into a well-distributed,
fixed-length string, and the same input always yields the same output.

All arithmetic is unsigned 32-bit; Python ints are masked after every
multiply so results match the JavaScript implementation bit for bit.
"""

import struct
from typing import Tuple

from utils.serial import serialize

MASK32 = 0xFFFFFFFF
MIN_LENGTH = 12

SEEDS = (1779033703, 3144134277, 1013904242, 2773480762)


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


def _code_units(text: str):
    """Yield the UTF-16 code units of a string."""
    raw = text.encode("utf-16-le", "surrogatepass")
    return struct.unpack(f"<{len(raw) // 2}H", raw)


def mix(serialized: str) -> Tuple[int, int, int, int]:
    """Run the mixing rounds over a serialized string and return the state."""
    h1, h2, h3, h4 = SEEDS

    for k in _code_units(serialized):
        h1 = h2 ^ _imul(h1, 597399067)
        h2 = h3 ^ _imul(h2, 2869860233)
        h3 = h4 ^ _imul(h3, 951274213)
        h4 = h1 ^ _imul(h4, 2716044179)
        h1 = _imul(h1 ^ (h1 >> 16), 2246822507)
        h2 = _imul(h2 ^ (h2 >> 13), 3266489909)
        h3 = _imul(h3 ^ (h3 >> 16), 2246822507)
        h4 = _imul(h4 ^ (h4 >> 13), 3266489909)
        h1 = (h1 ^ k) & MASK32

    return h1, h2, h3, h4


def render(state: Tuple[int, int, int, int], length: int, chars: str) -> str:
    """Pick `length` characters from `chars` using the mixed state."""
    return "".join(
        chars[(state[i % 4] >> ((i % 5) * 3)) & 63]
        for i in range(length)
    )


def hash_ish(value, length: int = MIN_LENGTH, chars: str = None) -> str:
    """Hash any serializable value to a string of max(12, length) characters.

    Args:
        value: Anything `serialize` accepts (mappings, lists, scalars).
        length: Desired output length. Values below 12 are raised to 12.
        chars: 64-character output alphabet. Defaults to the push ID alphabet.
    """
    if chars is None:
        from utils.push_id import PUSH_CHARS
        chars = PUSH_CHARS
    if len(chars) != 64:
        raise ValueError("Hash alphabet must have exactly 64 characters")
    return render(mix(serialize(value)), max(MIN_LENGTH, length), chars)
