"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.rural_employment_record import RecordSourceTag, RuralEmploymentRecord

__all__ = [
    "RecordSourceTag",
    "RuralEmploymentRecord",
]
