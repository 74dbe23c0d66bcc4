"""Change-feed relay.

Watch the broadcasts table for inserts and deletes and fan them out to every
live WebSocket subscriber, alongside the HTTP chart endpoints.
"""
