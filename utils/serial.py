"""Deterministic serialization for hashing.

Renders any JSON-like value to one canonical string: mapping keys are
sorted, so two mappings holding the same pairs serialize identically no
matter their insertion order. Scalars are rendered the way a browser's
JSON encoder renders them, which keeps hashes computed here identical to
hashes computed by the JavaScript clients.

Cyclic values must not be passed in.
"""

import json
import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal

_MAX_SAFE_INTEGER = 2 ** 53


def _utf16_key(key) -> bytes:
    """Sort key matching JavaScript string order (UTF-16 code units)."""
    return str(key).encode("utf-16-be", "surrogatepass")


def _js_number(value: float) -> str:
    """Format a float like ECMAScript Number.prototype.toString."""
    if not math.isfinite(value):
        # JSON has no NaN/Infinity
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    digits_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()[1:]
    digits = "".join(str(d) for d in digits_tuple)
    k = len(digits)
    n = k + exponent

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        e_str = f"e+{e}" if e >= 0 else f"e-{-e}"
        body = digits + e_str if k == 1 else digits[0] + "." + digits[1:] + e_str
    return sign + body


def _scalar(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        # Past 2**53 a browser only holds the nearest double
        if abs(value) > _MAX_SAFE_INTEGER:
            try:
                return _js_number(float(value))
            except OverflowError:
                return "null"
        return str(value)
    if isinstance(value, float):
        return _js_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (datetime, date)):
        return json.dumps(value.isoformat())
    raise TypeError(f"Cannot serialize value of type {type(value).__name__}")


def serialize(value) -> str:
    """Serialize a value to a stable string with sorted keys."""
    if value is None:
        return "null"
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    if isinstance(value, Mapping):
        keys = sorted(value.keys(), key=_utf16_key)
        return "{" + ",".join(
            json.dumps(str(key), ensure_ascii=False) + ":" + serialize(value[key])
            for key in keys
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(serialize(item) for item in value) + "]"
    return _scalar(value)
