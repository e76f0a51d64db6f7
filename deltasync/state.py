"""State types that can be replicated by the sync protocol.

Any state type works with :class:`~deltasync.server.SyncServer` and
:class:`~deltasync.client.SyncClient` as long as it satisfies the
:class:`SyncState` protocol:

- ``fingerprint(seed)``: deterministic 64-bit digest of the contents.
- ``diff(other)``: :class:`~deltasync.diff.Patch` turning self into other.
- ``apply(patch)``: apply a patch in place.
- ``clone()``: an independent copy (used for server-side snapshots).
- ``identity()``: the empty state, baseline of every full resync.

Two implementations are provided. :class:`MapState` is a plain dict-backed
state for clients and single-threaded servers. :class:`ConcurrentMapState`
spreads its entries over lock-striped shards so application threads can
mutate the authoritative state while the server is snapshotting it.

Both hash their entries as a mapping, so a server holding a
``ConcurrentMapState`` and a client holding a ``MapState`` with the same
entries agree on the fingerprint.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Protocol, Self, runtime_checkable

from deltasync import diff as _diff
from deltasync.diff import Patch
from deltasync.fingerprint import DEFAULT_SEED, canonical_bytes, fingerprint

__all__ = ["ConcurrentMapState", "MapState", "SyncState"]


@runtime_checkable
class SyncState(Protocol):
    """Capability set required of every replicated state type."""

    def fingerprint(self, seed: int = DEFAULT_SEED) -> int:
        """Deterministic 64-bit digest of this state's contents."""
        ...

    def diff(self, other: Self) -> Patch:
        """Compute the patch that turns this state into ``other``."""
        ...

    def apply(self, patch: Patch) -> None:
        """Apply a patch to this state in place."""
        ...

    def clone(self) -> Self:
        """Return an independent copy of this state."""
        ...

    @classmethod
    def identity(cls) -> Self:
        """Return the empty state."""
        ...


class MapState(MutableMapping):
    """Dict-backed keyed state.

    Args:
        data: Initial entries (copied).

    Example::

        state = MapState({1: "A", 2: "B"})
        other = MapState({1: "A", 3: "C"})
        patch = state.diff(other)
        state.apply(patch)
        assert state == other
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping | None = None):
        self._data: dict = dict(data) if data else {}

    @classmethod
    def identity(cls) -> Self:
        return cls()

    def fingerprint(self, seed: int = DEFAULT_SEED) -> int:
        return fingerprint(self._data, seed)

    def diff(self, other: Mapping) -> Patch:
        return _diff.generate(self._data, _entries(other))

    def apply(self, patch: Patch) -> None:
        _diff.apply(self._data, patch)

    def clone(self) -> Self:
        return type(self)(self._data)

    def to_dict(self) -> dict:
        """Return a shallow copy of the entries."""
        return dict(self._data)

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: Any) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (MapState, ConcurrentMapState)):
            return self._data == _entries(other)
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"MapState({self._data!r})"


class ConcurrentMapState(MutableMapping):
    """Thread-safe keyed state striped over independently locked shards.

    Keys are routed to a shard by their canonical encoding, so routing is
    stable across processes. Single-key operations lock one shard only.
    :meth:`snapshot` locks shards one at a time; it is consistent per shard,
    not across shards. Use :meth:`SyncServer.mutate_state
    <deltasync.server.SyncServer.mutate_state>` for multi-key changes that
    must be observed atomically by the server.

    Args:
        data: Initial entries (copied).
        shards: Number of shards.
    """

    def __init__(self, data: Mapping | None = None, shards: int = 16):
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._shards: list[dict] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]
        if data:
            self.update(data)

    @classmethod
    def identity(cls) -> Self:
        return cls()

    def _index(self, key: Any) -> int:
        return fingerprint(key) % len(self._shards)

    def snapshot(self) -> dict:
        """Return a plain dict copy of all entries."""
        result: dict = {}
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                result.update(shard)
        return result

    def fingerprint(self, seed: int = DEFAULT_SEED) -> int:
        return fingerprint(self.snapshot(), seed)

    def diff(self, other: Mapping) -> Patch:
        return _diff.generate(self.snapshot(), _entries(other))

    def apply(self, patch: Patch) -> None:
        _diff.apply(self, patch)

    def clone(self) -> Self:
        return type(self)(self.snapshot(), shards=len(self._shards))

    def to_dict(self) -> dict:
        """Return a plain dict copy of all entries."""
        return self.snapshot()

    def __getitem__(self, key: Any) -> Any:
        i = self._index(key)
        with self._locks[i]:
            return self._shards[i][key]

    def __setitem__(self, key: Any, value: Any) -> None:
        i = self._index(key)
        with self._locks[i]:
            self._shards[i][key] = value

    def __delitem__(self, key: Any) -> None:
        i = self._index(key)
        with self._locks[i]:
            del self._shards[i][key]

    def pop(self, key: Any, *default: Any) -> Any:
        i = self._index(key)
        with self._locks[i]:
            return self._shards[i].pop(key, *default)

    def __iter__(self) -> Iterator:
        return iter(self.snapshot())

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                total += len(shard)
        return total

    def __contains__(self, key: object) -> bool:
        i = self._index(key)
        with self._locks[i]:
            return key in self._shards[i]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (MapState, ConcurrentMapState)):
            return self.snapshot() == _entries(other)
        if isinstance(other, Mapping):
            return self.snapshot() == dict(other)
        return NotImplemented

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        items = sorted(self.snapshot().items(), key=lambda kv: canonical_bytes(kv[0]))
        return f"ConcurrentMapState({dict(items)!r})"


def _entries(state: Mapping) -> Mapping:
    if isinstance(state, MapState):
        return state._data
    if isinstance(state, ConcurrentMapState):
        return state.snapshot()
    return state
