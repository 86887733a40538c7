"""
etl/repositories package marker.
"""

from etl.repositories.errors import RecordConflictError, RecordStoreError, StoreConnectionError
from etl.repositories.rural_employment_repository import RecordStore, RuralEmploymentRepository

__all__ = [
    "RecordConflictError",
    "RecordStore",
    "RecordStoreError",
    "RuralEmploymentRepository",
    "StoreConnectionError",
]
