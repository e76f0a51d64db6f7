"""Authoritative side of the sync protocol.

The server owns the state and remembers, per client id, the snapshot and
fingerprint of the last update it handed out. On every request it compares
that record with the fingerprint the client reports:

- unknown client, or the fingerprints disagree (client restarted, lost an
  update, or applied one out of order): send a :class:`CompleteUpdate`;
- fingerprints agree: send a :class:`DiffUpdate` from the recorded snapshot.

Either way the record is replaced with the current snapshot; the server
assumes the client will end up holding exactly what it was just sent.

Example::

    server = SyncServer(MapState({1: "A", 2: "B"}))
    client = SyncClient.with_id(7)

    update = server.get_client_diff(client.update_request())
    assert client.apply_update(update).ok

    with server.mutate_state() as state:
        del state[2]
        state[3] = "C"

    update = server.get_client_diff(client.update_request())
    assert isinstance(update, DiffUpdate)
    assert client.apply_update(update).ok
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Self

from deltasync.config import SyncConfig
from deltasync.messages import ClientUpdate, ClientUpdateRequest, CompleteUpdate, DiffUpdate
from deltasync.registry import ClientRecord, ClientRegistry
from deltasync.state import SyncState

__all__ = ["SyncServer", "SyncServerStats"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncServerStats:
    """Statistics for a SyncServer.

    Attributes:
        requests: Update requests answered.
        complete_updates: Requests answered with a full resync.
        diff_updates: Requests answered with an incremental diff.
        clients_forgotten: Client records removed by ``forget_client``.
    """

    requests: int = 0
    complete_updates: int = 0
    diff_updates: int = 0
    clients_forgotten: int = 0


class SyncServer[S: SyncState, ID]:
    """Holds the authoritative state and answers client update requests.

    Safe to call from many threads at once. Requests from different client
    ids only contend on the registry shard their ids map to. The state lock
    is held just long enough to clone the state, so the fingerprint and the
    snapshot stored for a client always describe the same contents.

    Args:
        initial_state: The authoritative state. The server takes ownership.
        config: Seed and registry sizing. Clients must use the same seed.
        name: Label used in log messages.
    """

    def __init__(
        self,
        initial_state: S,
        config: SyncConfig | None = None,
        name: str = "server",
    ):
        self._config = config or SyncConfig()
        self._state = initial_state
        self._state_lock = threading.RLock()
        self._registry: ClientRegistry[ID, S] = ClientRegistry(self._config.registry_shards)
        self.name = name

        self._stats_lock = threading.Lock()
        self._requests = 0
        self._complete_updates = 0
        self._diff_updates = 0
        self._clients_forgotten = 0

    @classmethod
    def new(cls, initial_state: S, config: SyncConfig | None = None) -> Self:
        """Create a server around ``initial_state``."""
        return cls(initial_state, config=config)

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def state(self) -> S:
        """The authoritative state (read access)."""
        return self._state

    def get_state(self) -> S:
        """Return the authoritative state for reading."""
        return self._state

    def get_state_mut(self) -> S:
        """Return the authoritative state for mutation.

        Mutations made through the returned object are not synchronized
        with concurrent requests. A request racing with a multi-key change
        may see part of it; clients still converge on a later request.
        Prefer :meth:`mutate_state` when requests run on other threads.
        """
        return self._state

    @contextmanager
    def mutate_state(self) -> Iterator[S]:
        """Mutate the state while no request is snapshotting it.

        Example::

            with server.mutate_state() as state:
                state["a"] = 1
                del state["b"]
        """
        with self._state_lock:
            yield self._state

    @property
    def stats(self) -> SyncServerStats:
        """Return a frozen snapshot of server statistics."""
        with self._stats_lock:
            return SyncServerStats(
                requests=self._requests,
                complete_updates=self._complete_updates,
                diff_updates=self._diff_updates,
                clients_forgotten=self._clients_forgotten,
            )

    @property
    def client_count(self) -> int:
        """Number of clients with a record."""
        return len(self._registry)

    def known_clients(self) -> list[ID]:
        """Return the ids of all clients with a record."""
        return self._registry.ids()

    def fingerprint(self) -> int:
        """Fingerprint of the current authoritative state."""
        with self._state_lock:
            return self._state.fingerprint(self._config.hash_seed)

    def get_client_diff(self, request: ClientUpdateRequest[ID]) -> ClientUpdate:
        """Build the update for one client request.

        Never fails for protocol reasons: a client the server cannot vouch
        for simply gets a complete update.

        Args:
            request: The client's id and self-reported fingerprint.

        Returns:
            A :class:`CompleteUpdate` or :class:`DiffUpdate`.
        """
        with self._state_lock:
            snapshot = self._state.clone()
        current_hash = snapshot.fingerprint(self._config.hash_seed)

        previous = self._registry.swap(request.id, ClientRecord(snapshot, current_hash))

        update: ClientUpdate
        if previous is None or previous.fingerprint != request.current_hash:
            if previous is None:
                logger.debug("[%s] New client %r, sending complete update", self.name, request.id)
            else:
                logger.debug(
                    "[%s] Client %r reports %#018x, expected %#018x, sending complete update",
                    self.name,
                    request.id,
                    request.current_hash,
                    previous.fingerprint,
                )
            update = CompleteUpdate(
                patch=type(snapshot).identity().diff(snapshot),
                new_hash=current_hash,
            )
            complete = True
        else:
            update = DiffUpdate(
                patch=previous.snapshot.diff(snapshot),
                new_hash=current_hash,
                old_hash=request.current_hash,
            )
            logger.debug(
                "[%s] Client %r in sync, sending diff with %d entries",
                self.name,
                request.id,
                len(update.patch),
            )
            complete = False

        with self._stats_lock:
            self._requests += 1
            if complete:
                self._complete_updates += 1
            else:
                self._diff_updates += 1

        return update

    def forget_client(self, client_id: ID) -> bool:
        """Drop the record for a client.

        Its next request will be answered with a complete update.

        Returns:
            True if the client was known.
        """
        removed = self._registry.remove(client_id)
        if removed:
            logger.debug("[%s] Forgot client %r", self.name, client_id)
            with self._stats_lock:
                self._clients_forgotten += 1
        return removed

    def __repr__(self) -> str:
        return f"SyncServer(name={self.name!r}, clients={self.client_count})"
