"""
etl/domain package marker.
"""

from etl.domain.records import (
    METRIC_FIELDS,
    NATURAL_KEY_FIELDS,
    PRIMARY_VOLUME_METRIC,
    CanonicalRecord,
    EntityKey,
    MissingEssentialFields,
    NaturalKey,
    StoredRecord,
    UpsertOutcome,
    VolumePath,
)
from etl.domain.run import InvalidationResult, PipelineRunResult, PipelineRunStatus, RunSummary

__all__ = [
    "METRIC_FIELDS",
    "NATURAL_KEY_FIELDS",
    "PRIMARY_VOLUME_METRIC",
    "CanonicalRecord",
    "EntityKey",
    "InvalidationResult",
    "MissingEssentialFields",
    "NaturalKey",
    "PipelineRunResult",
    "PipelineRunStatus",
    "RunSummary",
    "StoredRecord",
    "UpsertOutcome",
    "VolumePath",
]
