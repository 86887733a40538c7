"""
etl/connectors package marker.
"""

from etl.connectors.base import BaseConnector, ConnectorRequestError, SourcePayloadError
from etl.connectors.data_gov_connector import DataGovConnector, extract_record_array

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "DataGovConnector",
    "SourcePayloadError",
    "extract_record_array",
]
