"""Recording of client/server exchanges.

Example::

    trace = SyncTrace()
    for round_ in range(10):
        mutate(server)
        for client in clients:
            update = server.get_client_diff(client.update_request())
            trace.record(client.id, update, client.apply_update(update))

    df = trace.to_dataframe()
    print(trace.summary())
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any

import pandas as pd

from deltasync.errors import UpdateResult
from deltasync.messages import ClientUpdate, CompleteUpdate, DiffUpdate

__all__ = ["SyncExchange", "SyncTrace", "payload_size"]


@dataclass(frozen=True)
class SyncExchange:
    """One update handed to one client.

    Attributes:
        round: Round the exchange belongs to.
        client_id: Receiving client.
        kind: ``"Complete"`` or ``"Diff"``.
        altered: Upserted keys in the patch.
        removed: Removed keys in the patch.
        payload_bytes: Size of the update encoded as JSON.
        ok: Whether the client applied it successfully (None if unknown).
    """

    round: int
    client_id: Any
    kind: str
    altered: int
    removed: int
    payload_bytes: int
    ok: bool | None


def payload_size(update: ClientUpdate) -> int:
    """Size in bytes of an update encoded as compact JSON.

    Keys and values JSON cannot represent are measured by their ``str()``.
    """
    encoded = json.dumps(update.to_dict(), separators=(",", ":"), default=str)
    return len(encoded.encode("utf-8"))


class SyncTrace:
    """Thread-safe log of sync exchanges.

    Exchanges are grouped in rounds; call :meth:`next_round` between
    rounds of state mutation.
    """

    COLUMNS = ["round", "client_id", "kind", "altered", "removed", "payload_bytes", "ok"]

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._round = 0
        self._exchanges: list[SyncExchange] = []

    @property
    def round(self) -> int:
        return self._round

    @property
    def exchanges(self) -> list[SyncExchange]:
        with self._lock:
            return list(self._exchanges)

    def next_round(self) -> int:
        """Start a new round and return its number."""
        with self._lock:
            self._round += 1
            return self._round

    def record(
        self,
        client_id: Any,
        update: ClientUpdate,
        result: UpdateResult | None = None,
    ) -> SyncExchange:
        """Record an update sent to a client.

        Args:
            client_id: Receiving client.
            update: The update the server built.
            result: The client's result, if already applied.
        """
        exchange = SyncExchange(
            round=self._round,
            client_id=client_id,
            kind=CompleteUpdate.TYPE if isinstance(update, CompleteUpdate) else DiffUpdate.TYPE,
            altered=len(update.patch.altered),
            removed=len(update.patch.removed),
            payload_bytes=payload_size(update),
            ok=None if result is None else result.ok,
        )
        with self._lock:
            self._exchanges.append(exchange)
        return exchange

    def to_dataframe(self) -> pd.DataFrame:
        """Return one row per exchange, in recording order."""
        rows = [
            [
                e.round,
                e.client_id,
                e.kind,
                e.altered,
                e.removed,
                e.payload_bytes,
                e.ok,
            ]
            for e in self.exchanges
        ]
        return pd.DataFrame(rows, columns=self.COLUMNS)

    def summary(self) -> pd.DataFrame:
        """Per-kind exchange count, mean and total payload size.

        Returns:
            DataFrame indexed by kind with columns ``count``,
            ``mean_payload_bytes`` and ``total_payload_bytes``.
        """
        df = self.to_dataframe()
        if df.empty:
            return pd.DataFrame(
                columns=["count", "mean_payload_bytes", "total_payload_bytes"],
            ).rename_axis("kind")
        return df.groupby("kind").agg(
            count=("payload_bytes", "size"),
            mean_payload_bytes=("payload_bytes", "mean"),
            total_payload_bytes=("payload_bytes", "sum"),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._exchanges)
