"""Upstream price poller.

Fetch the configured token's quote on an adaptive timer, keep the most recent
ticks in a bounded cache, and persist every accepted tick.
"""
