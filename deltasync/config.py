"""Runtime configuration shared by servers and clients.

Environment variables:
    DS_HASH_SEED: Fingerprint seed (unsigned 64-bit integer, default 1337).
    DS_REGISTRY_SHARDS: Lock shards in the server's client registry
        (positive integer, default 16).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from deltasync.fingerprint import DEFAULT_SEED

__all__ = ["SyncConfig"]

DEFAULT_REGISTRY_SHARDS = 16


@dataclass(frozen=True)
class SyncConfig:
    """Settings for a sync deployment.

    A server and all of its clients must use the same ``hash_seed``,
    otherwise every fingerprint comparison fails and each update degrades
    to a rejected full resync.

    Attributes:
        hash_seed: Seed for :func:`deltasync.fingerprint.fingerprint`.
        registry_shards: Number of independently locked registry shards.
    """

    hash_seed: int = DEFAULT_SEED
    registry_shards: int = DEFAULT_REGISTRY_SHARDS

    def __post_init__(self) -> None:
        if not 0 <= self.hash_seed < 1 << 64:
            raise ValueError(f"hash_seed must fit in 64 unsigned bits, got {self.hash_seed}")
        if self.registry_shards < 1:
            raise ValueError(f"registry_shards must be >= 1, got {self.registry_shards}")

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Build a config from ``DS_*`` environment variables.

        Unset variables fall back to the defaults.

        Raises:
            ValueError: If a variable is set but not a valid integer, or
                the resulting values are out of range.
        """
        return cls(
            hash_seed=_int_from_env("DS_HASH_SEED", DEFAULT_SEED),
            registry_shards=_int_from_env("DS_REGISTRY_SHARDS", DEFAULT_REGISTRY_SHARDS),
        )


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw, 0)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
