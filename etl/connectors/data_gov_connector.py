"""
etl/connectors/data_gov_connector.py

Open-data portal connector for the rural employment program dataset.

The portal answers one GET with the whole batch, but the body shape varies:
  * a JSON array of records
  * a JSON object holding the array under ``records``, ``data``, ``rows``
    or ``result``
  * an array-like object keyed by numeric strings ("0", "1", ...)
An HTML error page served with a 200 status is rejected before JSON parsing.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from etl.config import HTTPSettings, SourceAPISettings
from etl.connectors.base import BaseConnector, SourcePayloadError

logger = logging.getLogger(__name__)

RECORD_ARRAY_PROPERTIES: tuple[str, ...] = ("records", "data", "rows", "result")


def extract_record_array(payload: Any) -> list[Any]:
    """
    Return the raw record list from any of the supported payload shapes.

    Raises SourcePayloadError when no non-empty record array can be found.
    """

    records: Any = None
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        for name in RECORD_ARRAY_PROPERTIES:
            candidate = payload.get(name)
            if isinstance(candidate, list):
                records = candidate
                break
        if records is None and payload and all(
            isinstance(key, str) and key.isdigit() for key in payload
        ):
            records = [payload[key] for key in sorted(payload, key=int)]
            logger.info("Converted array-like payload object to list items=%s", len(records))

    if not isinstance(records, list) or not records:
        shape = type(payload).__name__
        keys = list(payload)[:10] if isinstance(payload, dict) else []
        logger.error("No records found in source payload shape=%s keys=%s", shape, keys)
        raise SourcePayloadError("No records found in source payload.")
    return records


class DataGovConnector(BaseConnector):
    """
    Fetches the full program dataset in a single request.
    """

    def __init__(
        self,
        *,
        settings: SourceAPISettings,
        http_settings: HTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="data_gov_in", http_settings=http_settings, session=session)
        self._settings = settings

    def fetch_raw_records(self) -> list[Any]:
        params: dict[str, Any] = {"format": self._settings.response_format}
        if self._settings.api_key:
            params["api-key"] = self._settings.api_key
        if self._settings.limit is not None:
            params["limit"] = self._settings.limit

        logger.info("Fetching source batch source=%s url=%s", self.source, self._settings.base_url)
        response = self._get(
            self._settings.base_url,
            params=params,
            headers={
                "User-Agent": self._settings.user_agent,
                "Accept": "application/json",
            },
        )
        payload = self._decode_json(response)
        records = extract_record_array(payload)
        logger.info("Fetched source batch source=%s records=%s", self.source, len(records))
        return records
