"""Ordered multi-resource deployment with a resumable ledger."""

__version__ = "0.1.0"
