"""Replica side of the sync protocol.

A client holds a local copy of the state, asks the server for updates with
its current fingerprint, and verifies every update it applies:

- a :class:`CompleteUpdate` replaces the local state, then the result must
  match ``new_hash``;
- a :class:`DiffUpdate` is only applied on top of the exact state it was
  computed against (``old_hash``), then the result must match
  ``new_hash``.

Failures come back as :class:`~deltasync.errors.UpdateResult` values. A
rejected diff leaves the state untouched; the next request self-heals
because the server's record no longer matches what the client reports.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Self

from deltasync.config import SyncConfig
from deltasync.errors import UpdateError, UpdateResult
from deltasync.messages import ClientUpdate, ClientUpdateRequest, CompleteUpdate, DiffUpdate
from deltasync.state import MapState, SyncState

__all__ = ["SyncClient", "SyncClientStats"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncClientStats:
    """Statistics for a SyncClient.

    Attributes:
        requests: Update requests built.
        applied_complete: Complete updates applied successfully.
        applied_diff: Diff updates applied successfully.
        rejected: Updates that failed verification.
    """

    requests: int = 0
    applied_complete: int = 0
    applied_diff: int = 0
    rejected: int = 0


class SyncClient[S: SyncState, ID]:
    """Local replica of a server's state.

    Args:
        id: Identifier the server tracks this client by.
        state_type: State class to instantiate; starts from its identity.
        config: Must carry the same ``hash_seed`` as the server's.
    """

    def __init__(
        self,
        id: ID,
        state_type: type[S] = MapState,
        config: SyncConfig | None = None,
    ):
        self._id = id
        self._state_type = state_type
        self._state: S = state_type.identity()
        self._config = config or SyncConfig()
        self._synchronized = False

        self._stats_lock = threading.Lock()
        self._requests = 0
        self._applied_complete = 0
        self._applied_diff = 0
        self._rejected = 0

    @classmethod
    def with_id(cls, id: ID, state_type: type[S] = MapState, config: SyncConfig | None = None) -> Self:
        """Create an unsynchronized client with an empty state."""
        return cls(id, state_type=state_type, config=config)

    @property
    def id(self) -> ID:
        return self._id

    @property
    def state(self) -> S:
        """The local replica. Changing it desynchronizes the client."""
        return self._state

    @property
    def fingerprint(self) -> int:
        """Fingerprint of the local replica."""
        return self._state.fingerprint(self._config.hash_seed)

    @property
    def synchronized(self) -> bool:
        """True if the most recent update was applied and verified."""
        return self._synchronized

    @property
    def stats(self) -> SyncClientStats:
        """Return a frozen snapshot of client statistics."""
        with self._stats_lock:
            return SyncClientStats(
                requests=self._requests,
                applied_complete=self._applied_complete,
                applied_diff=self._applied_diff,
                rejected=self._rejected,
            )

    def update_request(self) -> ClientUpdateRequest[ID]:
        """Build a request carrying this client's id and fingerprint."""
        with self._stats_lock:
            self._requests += 1
        return ClientUpdateRequest(id=self._id, current_hash=self.fingerprint)

    def apply_update(self, update: ClientUpdate) -> UpdateResult:
        """Apply an update from the server and verify the result.

        Args:
            update: A :class:`CompleteUpdate` or :class:`DiffUpdate`.

        Returns:
            A successful result, or one carrying
            ``UpdateError.INVALID_UPDATE_START_STATE`` (state unchanged) or
            ``UpdateError.HASH_RESULT_DIFF``.

        Raises:
            TypeError: If ``update`` is not an update message.
        """
        if isinstance(update, CompleteUpdate):
            self._state = self._state_type.identity()
            self._state.apply(update.patch)
            result = self._verify(update.new_hash)
            if result.ok:
                with self._stats_lock:
                    self._applied_complete += 1
            return result

        if isinstance(update, DiffUpdate):
            current = self.fingerprint
            if current != update.old_hash:
                logger.info(
                    "[%r] Diff expects %#018x but replica is at %#018x, rejecting",
                    self._id,
                    update.old_hash,
                    current,
                )
                return self._reject(UpdateError.INVALID_UPDATE_START_STATE, update.old_hash, current)
            self._state.apply(update.patch)
            result = self._verify(update.new_hash)
            if result.ok:
                with self._stats_lock:
                    self._applied_diff += 1
            return result

        raise TypeError(f"expected CompleteUpdate or DiffUpdate, got {type(update).__name__}")

    def _verify(self, expected: int) -> UpdateResult:
        actual = self.fingerprint
        if actual != expected:
            logger.warning(
                "[%r] Fingerprint after update is %#018x, server declared %#018x",
                self._id,
                actual,
                expected,
            )
            return self._reject(UpdateError.HASH_RESULT_DIFF, expected, actual)
        self._synchronized = True
        return UpdateResult.success()

    def _reject(self, error: UpdateError, expected: int, actual: int) -> UpdateResult:
        self._synchronized = False
        with self._stats_lock:
            self._rejected += 1
        return UpdateResult.failure(error, expected, actual)

    def __repr__(self) -> str:
        return f"SyncClient(id={self._id!r}, synchronized={self._synchronized})"
