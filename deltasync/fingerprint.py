"""Deterministic 64-bit fingerprints of replicated state.

A fingerprint is a cheap equality proxy: the server and every client hash
their copy of the state and compare the numbers instead of the contents.
For that to work across processes and machines the hash must not depend on
anything but the content:

- Python's built-in ``hash()`` is randomized per process for ``str`` and
  ``bytes``, so it is never used. Digests come from BLAKE2b with an 8-byte
  output, keyed by an explicit seed.
- Dicts and sets are hashed through a canonical projection whose entries
  are sorted by their own encoding, so two equal mappings built in a
  different insertion order (or held in a sharded concurrent map) agree.
- Containers are framed with begin/end markers rather than element counts.
- Numbers encode by value, the way ``==`` compares them: ``True``, ``1``,
  ``1.0`` and ``IntEnum`` members worth 1 all share one encoding, just as
  they share one dict slot.

Example::

    from deltasync.fingerprint import fingerprint

    assert fingerprint({1: "A", 2: "B"}) == fingerprint({2: "B", 1: "A"})
"""

from __future__ import annotations

import dataclasses
import hashlib
import math
import struct
from collections.abc import Mapping, Set
from enum import Enum
from typing import Any

__all__ = ["DEFAULT_SEED", "canonical_bytes", "fingerprint"]

DEFAULT_SEED = 1337

_MAX_SEED = (1 << 64) - 1

# Type tags
_NONE = b"N"
_INT = b"I"
_FLOAT = b"D"
_STR = b"S"
_BYTES = b"B"
_ENUM = b"Q"
_LIST = b"["
_TUPLE = b"("
_MAP = b"{"
_SET = b"<"
_RECORD = b"R"
_END = b"."


def _frame(tag: bytes, payload: bytes) -> bytes:
    return tag + struct.pack(">Q", len(payload)) + payload


def _encode_int(n: int) -> bytes:
    width = max(1, (n.bit_length() + 8) // 8)
    return _frame(_INT, n.to_bytes(width, "big", signed=True))


def _encode_float(x: float) -> bytes:
    if x.is_integer():
        return _encode_int(int(x))  # 1.0 == 1, -0.0 == 0
    if math.isnan(x):
        x = math.nan
    return _FLOAT + struct.pack(">d", x)


def _encode_sorted(tag: bytes, parts: list[bytes]) -> bytes:
    parts.sort()
    return tag + b"".join(parts) + _END


def _encode(value: Any) -> bytes:
    # Enums with a primitive mixin compare equal to their value
    if value is None:
        return _NONE
    if isinstance(value, Enum) and not isinstance(value, (int, float, str, bytes)):
        name = f"{type(value).__qualname__}.{value.name}"
        return _ENUM + _frame(_STR, name.encode("utf-8")) + _encode(value.value)
    if isinstance(value, int):
        return _encode_int(int(value))
    if isinstance(value, float):
        return _encode_float(float(value))
    if isinstance(value, str):
        return _frame(_STR, value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _frame(_BYTES, bytes(value))
    if isinstance(value, Mapping):
        return _encode_sorted(
            _MAP, [_encode(k) + _encode(v) for k, v in value.items()]
        )
    if isinstance(value, Set):
        return _encode_sorted(_SET, [_encode(item) for item in value])
    if isinstance(value, list):
        return _LIST + b"".join(_encode(item) for item in value) + _END
    if isinstance(value, tuple):
        return _TUPLE + b"".join(_encode(item) for item in value) + _END
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return _record(type(value), fields)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _record(type(value), to_dict())
    raise TypeError(
        f"cannot fingerprint value of type {type(value).__name__!r}; "
        "use plain data, dataclasses, or objects with to_dict()"
    )


def _record(cls: type, fields: Mapping[str, Any]) -> bytes:
    return _RECORD + _frame(_STR, cls.__qualname__.encode("utf-8")) + _encode(fields)


def canonical_bytes(value: Any) -> bytes:
    """Encode a value into deterministic, type-tagged bytes.

    Equal plain-data values always encode identically, independent of
    dict insertion order, set iteration order or the running process.

    Args:
        value: Plain data (None, bool, int, float, str, bytes, Enum, list,
            tuple, mappings, sets), dataclass instances, or objects with
            a ``to_dict()`` method, nested arbitrarily.

    Returns:
        The canonical encoding.

    Raises:
        TypeError: If the value (or anything nested in it) has no canonical
            encoding.
    """
    return _encode(value)


def fingerprint(value: Any, seed: int = DEFAULT_SEED) -> int:
    """Compute the 64-bit fingerprint of a value.

    Args:
        value: Anything accepted by :func:`canonical_bytes`.
        seed: Hash seed. Server and clients must agree on it.

    Returns:
        Unsigned 64-bit integer digest.

    Raises:
        ValueError: If seed is outside the unsigned 64-bit range.
        TypeError: If the value has no canonical encoding.
    """
    if not 0 <= seed <= _MAX_SEED:
        raise ValueError(f"seed must fit in 64 unsigned bits, got {seed}")
    h = hashlib.blake2b(digest_size=8, key=struct.pack(">Q", seed))
    h.update(_encode(value))
    return struct.unpack(">Q", h.digest())[0]
