"""Optimistic delta synchronization of keyed state.

A :class:`SyncServer` owns the authoritative state; any number of
:class:`SyncClient` replicas reconcile with it by fingerprint. Clients the
server can vouch for get a minimal :class:`DiffUpdate`; everyone else gets
a :class:`CompleteUpdate`.
"""

import logging

from deltasync.client import SyncClient, SyncClientStats
from deltasync.config import SyncConfig
from deltasync.diff import Patch, apply, generate
from deltasync.errors import (
    HashResultDiff,
    InvalidUpdateStartState,
    SyncError,
    UpdateError,
    UpdateResult,
)
from deltasync.fingerprint import DEFAULT_SEED, canonical_bytes, fingerprint
from deltasync.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from deltasync.messages import (
    ClientUpdate,
    ClientUpdateRequest,
    CompleteUpdate,
    DiffUpdate,
    update_from_dict,
)
from deltasync.registry import ClientRecord, ClientRegistry
from deltasync.server import SyncServer, SyncServerStats
from deltasync.state import ConcurrentMapState, MapState, SyncState

# Silent unless the application enables logging
logging.getLogger("deltasync").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Protocol
    "SyncServer",
    "SyncServerStats",
    "SyncClient",
    "SyncClientStats",
    "SyncConfig",
    # Messages
    "ClientUpdate",
    "ClientUpdateRequest",
    "CompleteUpdate",
    "DiffUpdate",
    "update_from_dict",
    # State
    "SyncState",
    "MapState",
    "ConcurrentMapState",
    "ClientRecord",
    "ClientRegistry",
    # Diff and fingerprint
    "Patch",
    "generate",
    "apply",
    "fingerprint",
    "canonical_bytes",
    "DEFAULT_SEED",
    # Errors
    "UpdateError",
    "UpdateResult",
    "SyncError",
    "InvalidUpdateStartState",
    "HashResultDiff",
    # Logging
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "enable_json_file_logging",
    "configure_from_env",
    "set_level",
    "set_module_level",
    "disable_logging",
]
