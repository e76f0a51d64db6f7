"""Protocol messages exchanged between clients and the server.

A client sends a :class:`ClientUpdateRequest` carrying its id and the
fingerprint of what it currently holds. The server answers with one of:

- :class:`CompleteUpdate`: a patch from the empty state to the current
  state, sent on first contact or whenever the server's record of the
  client disagrees with the client's self-reported fingerprint.
- :class:`DiffUpdate`: a patch from the state the client is known to hold
  to the current state.

Transport and encoding are up to the application. ``to_dict()`` /
``from_dict()`` produce JSON-compatible plain data with a ``"type"`` tag on
updates; :func:`update_from_dict` restores the right class from that tag.
Keys, values and ids go through :func:`~deltasync.diff.to_plain`, so
tuples, sets, bytes and non-string-keyed mappings survive a JSON round
trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from deltasync.diff import Patch, from_plain, to_plain

__all__ = [
    "ClientUpdate",
    "ClientUpdateRequest",
    "CompleteUpdate",
    "DiffUpdate",
    "update_from_dict",
]


@dataclass(frozen=True)
class ClientUpdateRequest[ID]:
    """A client's request for an update.

    Attributes:
        id: The requesting client's identifier.
        current_hash: Fingerprint of the client's current state.
    """

    id: ID
    current_hash: int

    def to_dict(self) -> dict:
        return {"id": to_plain(self.id), "current_hash": self.current_hash}

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(id=from_plain(data["id"]), current_hash=int(data["current_hash"]))


@dataclass(frozen=True)
class CompleteUpdate:
    """Full resynchronization, expressed as a patch from the empty state.

    Attributes:
        patch: Patch from the identity state to the server's state.
        new_hash: Fingerprint the client must reach after applying.
    """

    patch: Patch
    new_hash: int

    TYPE = "Complete"

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "patch": self.patch.to_dict(),
            "new_hash": self.new_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(
            patch=Patch.from_dict(data["patch"]),
            new_hash=int(data["new_hash"]),
        )


@dataclass(frozen=True)
class DiffUpdate:
    """Incremental update from a state the client is known to hold.

    Attributes:
        patch: Patch from the client's last known state to the server's.
        new_hash: Fingerprint the client must reach after applying.
        old_hash: Fingerprint the client must hold before applying.
    """

    patch: Patch
    new_hash: int
    old_hash: int

    TYPE = "Diff"

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "patch": self.patch.to_dict(),
            "new_hash": self.new_hash,
            "old_hash": self.old_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(
            patch=Patch.from_dict(data["patch"]),
            new_hash=int(data["new_hash"]),
            old_hash=int(data["old_hash"]),
        )


type ClientUpdate = CompleteUpdate | DiffUpdate

_UPDATE_TYPES: dict[str, type[CompleteUpdate] | type[DiffUpdate]] = {
    CompleteUpdate.TYPE: CompleteUpdate,
    DiffUpdate.TYPE: DiffUpdate,
}


def update_from_dict(data: dict) -> ClientUpdate:
    """Deserialize a tagged update produced by ``to_dict()``.

    Raises:
        ValueError: If the ``"type"`` tag is missing or unknown.
    """
    tag = data.get("type")
    cls = _UPDATE_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"unknown update type: {tag!r}")
    return cls.from_dict(data)
