"""Anchor tracking: many replicas following a frequently updated map.

A server tracks radio anchors keyed by id. Every round some anchors move,
a few are decommissioned and new ones come online. A fleet of clients
polls for updates. One of them restarts halfway through and another loses
an update in transit.

## Architecture

```
  mutator ──► SyncServer (anchors) ◄──► client-0 .. client-N
                    │
                    └──► SyncTrace ──► summary / payload chart
```

## Key Observations

- Each client pays for one complete update; after that only changed
  anchors travel.
- The restarted client reports an unknown fingerprint and is answered
  with a complete update.
- The client that drops an update keeps its old fingerprint, so its next
  request no longer matches the server's record and it also gets a
  complete update.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from pathlib import Path

import deltasync
from deltasync import MapState, SyncClient, SyncServer
from deltasync.analysis import SyncTrace, plot_payload_sizes


@dataclass(frozen=True)
class Position:
    x: int
    y: int


@dataclass(frozen=True)
class Anchor:
    position: Position
    sid: int
    battery: int


def random_anchor(rng: random.Random) -> Anchor:
    return Anchor(
        position=Position(rng.randrange(1000), rng.randrange(1000)),
        sid=rng.randrange(1 << 16),
        battery=rng.randrange(101),
    )


def run_anchor_tracking(
    rounds: int = 20,
    clients: int = 5,
    anchors: int = 100,
    seed: int = 42,
) -> SyncTrace:
    rng = random.Random(seed)
    server = SyncServer(MapState({i: random_anchor(rng) for i in range(anchors)}), name="anchors")
    fleet = [SyncClient.with_id(f"client-{i}") for i in range(clients)]
    trace = SyncTrace()

    for n in range(rounds):
        trace.next_round()

        with server.mutate_state() as state:
            for key in rng.sample(sorted(state), k=min(len(state), 10)):
                state[key] = random_anchor(rng)
            for _ in range(rng.randrange(3)):
                if state:
                    del state[rng.choice(sorted(state))]
            state[anchors + n] = random_anchor(rng)

        if n == rounds // 2:
            fleet[0] = SyncClient.with_id(fleet[0].id)

        for i, client in enumerate(fleet):
            update = server.get_client_diff(client.update_request())
            if i == 1 and n == rounds // 3:
                trace.record(client.id, update)  # lost in transit
                continue
            trace.record(client.id, update, client.apply_update(update))

    return trace


def print_summary(trace: SyncTrace) -> None:
    print("\n" + "=" * 70)
    print("ANCHOR TRACKING SUMMARY")
    print("=" * 70)
    print(trace.summary().to_string())
    df = trace.to_dataframe()
    failed = df[df["ok"] == False]  # noqa: E712
    print(f"\nExchanges: {len(df)}, rejected: {len(failed)}")
    print("=" * 70)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Anchor tracking sync demo")
    parser.add_argument("--rounds", type=int, default=20)
    parser.add_argument("--clients", type=int, default=5)
    parser.add_argument("--anchors", type=int, default=100)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=str, default="output/anchor_tracking")
    parser.add_argument("--no-viz", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        deltasync.enable_console_logging(level="DEBUG")

    print("Running anchor tracking...")
    trace = run_anchor_tracking(
        rounds=args.rounds,
        clients=args.clients,
        anchors=args.anchors,
        seed=args.seed,
    )
    print_summary(trace)

    if not args.no_viz:
        path = plot_payload_sizes(trace, Path(args.output) / "payload_sizes.png")
        print(f"Saved: {path}")
