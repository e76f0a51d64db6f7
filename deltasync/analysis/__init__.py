"""Offline analysis of sync traffic.

Record the updates a server hands out with a :class:`SyncTrace`, then look
at them as a DataFrame or a chart to see how often clients fall back to
complete updates and what that costs in payload size.
"""

from deltasync.analysis.plot import plot_payload_sizes
from deltasync.analysis.trace import SyncExchange, SyncTrace

__all__ = ["SyncExchange", "SyncTrace", "plot_payload_sizes"]
