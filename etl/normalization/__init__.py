"""
etl/normalization package marker.
"""

from etl.normalization.normalizer import RecordNormalizer
from etl.normalization.resolver import KeyIndex, fold_key, parse_number, resolve_number, resolve_text

__all__ = [
    "KeyIndex",
    "RecordNormalizer",
    "fold_key",
    "parse_number",
    "resolve_number",
    "resolve_text",
]
