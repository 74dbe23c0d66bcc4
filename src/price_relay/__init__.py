"""Price relay service.

Poll a DexScreener token price feed on an adaptive schedule, keep a bounded
in-memory tick cache backed by a database, serve bucketed chart queries, and
fan out broadcast-table changes to live WebSocket subscribers.
"""

__version__ = "0.1.0"
