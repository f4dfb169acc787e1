"""Error types raised by the persistence adapters."""

from __future__ import annotations


class StoreError(Exception):
    """Storage could not be read or written (I/O or database failure)."""


class CorruptRecordError(StoreError):
    """A stored record exists but its payload cannot be parsed."""
