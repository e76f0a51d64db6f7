"""Charts of sync traffic."""

from __future__ import annotations

from pathlib import Path

from deltasync.analysis.trace import SyncTrace

__all__ = ["plot_payload_sizes"]

_COLORS = {"Complete": "indianred", "Diff": "steelblue"}


def plot_payload_sizes(trace: SyncTrace, path: str | Path, title: str = "Sync payload size") -> Path:
    """Save a chart of total payload bytes per round, stacked by update kind.

    Args:
        trace: Recorded exchanges.
        path: Output image path. Parent directories are created.
        title: Chart title.

    Returns:
        The written path.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = trace.to_dataframe()
    fig, ax = plt.subplots(figsize=(8, 4))

    if not df.empty:
        per_round = df.pivot_table(
            index="round",
            columns="kind",
            values="payload_bytes",
            aggfunc="sum",
            fill_value=0,
        )
        bottom = None
        for kind in per_round.columns:
            ax.bar(
                per_round.index,
                per_round[kind],
                bottom=bottom,
                label=kind,
                color=_COLORS.get(kind, "gray"),
                alpha=0.8,
            )
            bottom = per_round[kind] if bottom is None else bottom + per_round[kind]
        ax.legend()

    ax.set_xlabel("Round")
    ax.set_ylabel("Payload (bytes)")
    ax.set_title(title)
    ax.grid(True, alpha=0.2)
    fig.tight_layout()

    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path
