"""Flat key-level diffs between keyed collections.

A :class:`Patch` records the keys whose values changed (``altered``, with
the new value) and the keys that disappeared (``removed``). Values are
compared with ``==`` (which agrees with how fingerprints compare them) and
replaced wholesale; the engine never recurses into a value to diff its
contents, which keeps patch generation linear in the number of keys and
means value types need no diff support of their own.

Laws (for any mappings ``a`` and ``b``)::

    target = dict(a)
    apply(target, generate(a, b))
    assert target == b

    assert generate(a, a).is_empty
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Set
from dataclasses import dataclass, field
from typing import Any, Self

from deltasync.fingerprint import canonical_bytes

__all__ = ["Patch", "apply", "from_plain", "generate", "to_plain"]


@dataclass
class Patch[K, V]:
    """Key insertions/updates and removals turning one state into another.

    Attributes:
        altered: Keys to upsert, mapped to their new values.
        removed: Keys to delete.

    Raises:
        ValueError: If a key appears in both ``altered`` and ``removed``.
    """

    altered: dict[K, V] = field(default_factory=dict)
    removed: set[K] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.altered = dict(self.altered)
        self.removed = set(self.removed)
        overlap = self.removed.intersection(self.altered)
        if overlap:
            keys = sorted(overlap, key=canonical_bytes)
            raise ValueError(f"keys both altered and removed: {keys!r}")

    @property
    def is_empty(self) -> bool:
        """True if applying this patch changes nothing."""
        return not self.altered and not self.removed

    def __len__(self) -> int:
        return len(self.altered) + len(self.removed)

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible plain data.

        ``altered`` becomes a list of ``[key, value]`` pairs so that keys
        need not be strings; both parts are emitted in canonical key order.
        Keys and values go through :func:`to_plain`.
        """
        return {
            "altered": [
                [to_plain(key), to_plain(self.altered[key])]
                for key in sorted(self.altered, key=canonical_bytes)
            ],
            "removed": [to_plain(key) for key in sorted(self.removed, key=canonical_bytes)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a dict produced by ``to_dict()``."""
        return cls(
            altered={from_plain(key): from_plain(value) for key, value in data["altered"]},
            removed={from_plain(key) for key in data["removed"]},
        )


# Plain-data tags for what JSON cannot carry as-is
_TUPLE = "$tuple"
_SET = "$set"
_FROZENSET = "$frozenset"
_MAP = "$map"
_BYTES = "$bytes"


def to_plain(value: Any) -> Any:
    """Convert a key or value into data a JSON round trip preserves.

    ``None``, bools, numbers, strings, lists and string-keyed dicts pass
    through (their contents converted recursively). Tuples, sets,
    frozensets, bytes and mappings with other keys become single-entry
    dicts tagged ``"$tuple"``, ``"$set"``, ``"$frozenset"``, ``"$bytes"``
    or ``"$map"``; a string-keyed dict with a ``"$"``-prefixed key is
    tagged too, so decoding is unambiguous. Anything else (dataclasses,
    enums, custom objects) is returned unchanged for the transport to
    encode.

    Example::

        to_plain({1: (2, 3)})
        # {"$map": [[1, {"$tuple": [2, 3]}]]}
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    if isinstance(value, tuple):
        return {_TUPLE: [to_plain(item) for item in value]}
    if isinstance(value, (bytes, bytearray)):
        return {_BYTES: bytes(value).hex()}
    if isinstance(value, Set):
        tag = _FROZENSET if isinstance(value, frozenset) else _SET
        return {tag: [to_plain(item) for item in sorted(value, key=canonical_bytes)]}
    if isinstance(value, Mapping):
        if all(isinstance(k, str) and not k.startswith("$") for k in value):
            return {k: to_plain(v) for k, v in value.items()}
        pairs = sorted(value.items(), key=lambda kv: canonical_bytes(kv[0]))
        return {_MAP: [[to_plain(k), to_plain(v)] for k, v in pairs]}
    return value


def from_plain(data: Any) -> Any:
    """Inverse of :func:`to_plain`."""
    if isinstance(data, list):
        return [from_plain(item) for item in data]
    if not isinstance(data, dict):
        return data
    if len(data) == 1:
        ((tag, payload),) = data.items()
        if tag == _TUPLE:
            return tuple(from_plain(item) for item in payload)
        if tag == _SET:
            return {from_plain(item) for item in payload}
        if tag == _FROZENSET:
            return frozenset(from_plain(item) for item in payload)
        if tag == _BYTES:
            return bytes.fromhex(payload)
        if tag == _MAP:
            return {from_plain(k): from_plain(v) for k, v in payload}
    return {k: from_plain(v) for k, v in data.items()}


def generate[K, V](source: Mapping[K, V], target: Mapping[K, V]) -> Patch[K, V]:
    """Compute the patch that turns ``source`` into ``target``.

    Args:
        source: The state the receiver currently holds.
        target: The state the receiver should end up with.

    Returns:
        A patch with an entry only for keys that differ.
    """
    altered: dict[K, V] = {}
    removed: set[K] = set()

    for key, value in source.items():
        if key in target:
            other = target[key]
            if other != value:
                altered[key] = other
        else:
            removed.add(key)

    for key, value in target.items():
        if key not in source:
            altered[key] = value

    return Patch(altered=altered, removed=removed)


def apply[K, V](state: MutableMapping[K, V], patch: Patch[K, V]) -> None:
    """Apply a patch to a mapping in place.

    Removals run first, then upserts. Removing a key that is already absent
    is a no-op.
    """
    for key in patch.removed:
        state.pop(key, None)
    for key, value in patch.altered.items():
        state[key] = value
