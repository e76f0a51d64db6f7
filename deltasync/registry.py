"""Server-side memory of what each client was last sent.

The registry maps client ids to a :class:`ClientRecord`: the state snapshot
and fingerprint of the last update handed to that client. It is the only
structure the server mutates while answering requests, so it is built for
many concurrent callers: ids are routed to one of N shards by their
canonical fingerprint, and each shard has its own lock. Requests for ids on
different shards never wait on each other.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from deltasync.fingerprint import fingerprint

__all__ = ["ClientRecord", "ClientRegistry"]


@dataclass(frozen=True)
class ClientRecord[S]:
    """What the server believes a client holds.

    Attributes:
        snapshot: Private copy of the state last sent to the client.
        fingerprint: Fingerprint of ``snapshot``.
    """

    snapshot: S
    fingerprint: int


class ClientRegistry[ID, S]:
    """Lock-striped map from client id to :class:`ClientRecord`.

    Args:
        shards: Number of independently locked shards.
    """

    def __init__(self, shards: int = 16):
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._shards: list[dict[ID, ClientRecord[S]]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    def _index(self, client_id: Any) -> int:
        return fingerprint(client_id) % len(self._shards)

    def get(self, client_id: ID) -> ClientRecord[S] | None:
        """Return the record for a client, or None if unknown."""
        i = self._index(client_id)
        with self._locks[i]:
            return self._shards[i].get(client_id)

    def swap(self, client_id: ID, record: ClientRecord[S]) -> ClientRecord[S] | None:
        """Store a record and return the one it replaced, atomically.

        Concurrent requests for the same id are serialized here, so each
        caller diffs against exactly the record its own write displaced.
        """
        i = self._index(client_id)
        with self._locks[i]:
            previous = self._shards[i].get(client_id)
            self._shards[i][client_id] = record
            return previous

    def remove(self, client_id: ID) -> bool:
        """Delete a client's record.

        Returns:
            True if a record existed.
        """
        i = self._index(client_id)
        with self._locks[i]:
            return self._shards[i].pop(client_id, None) is not None

    def ids(self) -> list[ID]:
        """Return the ids of all known clients."""
        result: list[ID] = []
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                result.extend(shard)
        return result

    def __contains__(self, client_id: object) -> bool:
        i = self._index(client_id)
        with self._locks[i]:
            return client_id in self._shards[i]

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                total += len(shard)
        return total
