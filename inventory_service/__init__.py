"""Idempotent inventory event consumer."""

__version__ = "0.1.0"
