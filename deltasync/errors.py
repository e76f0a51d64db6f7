"""Outcomes of applying an update on the client.

:meth:`SyncClient.apply_update <deltasync.client.SyncClient.apply_update>`
reports failures as values, not exceptions: it returns an
:class:`UpdateResult` whose ``error`` is None on success or one of the
:class:`UpdateError` kinds. Callers that prefer exceptions can call
:meth:`UpdateResult.unwrap`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "HashResultDiff",
    "InvalidUpdateStartState",
    "SyncError",
    "UpdateError",
    "UpdateResult",
]


class UpdateError(Enum):
    """Why a client rejected an update."""

    INVALID_UPDATE_START_STATE = "invalid_update_start_state"
    """The client does not hold the state a diff was computed against.
    Recoverable: request again and the server answers with a full resync."""

    HASH_RESULT_DIFF = "hash_result_diff"
    """The state after applying does not match the declared fingerprint.
    Points at a defect (e.g. mismatched seeds), retrying will not help."""


class SyncError(Exception):
    """Base class for update failures raised by :meth:`UpdateResult.unwrap`."""

    kind: UpdateError


class InvalidUpdateStartState(SyncError):
    kind = UpdateError.INVALID_UPDATE_START_STATE


class HashResultDiff(SyncError):
    kind = UpdateError.HASH_RESULT_DIFF


_EXCEPTIONS: dict[UpdateError, type[SyncError]] = {
    UpdateError.INVALID_UPDATE_START_STATE: InvalidUpdateStartState,
    UpdateError.HASH_RESULT_DIFF: HashResultDiff,
}


@dataclass(frozen=True)
class UpdateResult:
    """Result of applying one update.

    Attributes:
        error: None on success, otherwise the failure kind.
        expected_hash: Fingerprint the update required (``old_hash`` for a
            rejected start state, ``new_hash`` otherwise).
        actual_hash: Fingerprint the client actually had.
    """

    error: UpdateError | None = None
    expected_hash: int | None = None
    actual_hash: int | None = None

    @classmethod
    def success(cls) -> UpdateResult:
        return cls()

    @classmethod
    def failure(cls, error: UpdateError, expected_hash: int, actual_hash: int) -> UpdateResult:
        return cls(error=error, expected_hash=expected_hash, actual_hash=actual_hash)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> None:
        """Raise the matching :class:`SyncError` if this result is a failure."""
        if self.error is None:
            return
        raise _EXCEPTIONS[self.error](
            f"{self.error.value}: expected fingerprint {self.expected_hash:#018x}, "
            f"got {self.actual_hash:#018x}"
        )
