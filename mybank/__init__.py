"""
MyBank Ledger

A small ledger service: accounts, capped transfers, administrative controls,
and best-effort snapshot replication between a mirror and its remote store.
"""

__version__ = "1.0.0"
