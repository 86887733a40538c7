"""
etl/repositories/errors.py

Store-layer exceptions raised by record repositories.
"""

from __future__ import annotations


class RecordStoreError(Exception):
    """A lookup or write for one record failed; the run can continue."""


class RecordConflictError(RecordStoreError):
    """An insert hit the natural-key unique constraint."""


class StoreConnectionError(Exception):
    """The store is unreachable or the transaction cannot be committed."""
