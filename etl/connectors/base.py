"""
etl/connectors/base.py

Source connector contract plus the one-GET-with-retries fetch every source uses.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import requests

from etl.config import HTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

_HTML_MARKERS = ("<!doctype", "<html")
_PREVIEW_CHARS = 500


class ConnectorRequestError(RuntimeError):
    """
    Raised when a connector cannot fetch data after retries.
    """


class SourcePayloadError(ConnectorRequestError):
    """
    Raised when the source answered but the body is not a usable record batch.
    """


def looks_like_html(body: str) -> bool:
    head = body.lstrip()[:200].lower()
    return head.startswith("<") or any(marker in head for marker in _HTML_MARKERS)


def backoff_delays(settings: HTTPSettings) -> list[float]:
    """
    Seconds to wait before each retry, growing geometrically.
    """

    return [
        settings.backoff_initial_seconds * settings.backoff_multiplier**retry
        for retry in range(settings.max_retries)
    ]


class BaseConnector(ABC):
    """
    A source answers one GET with its whole batch; subclasses shape the request
    and pick the record array out of the decoded body.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: HTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._http = http_settings
        self._session = session or requests.Session()

    @abstractmethod
    def fetch_raw_records(self) -> list[Any]:
        """
        Fetch the source batch and return its raw record list.
        """

    def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        GET ``url``, retrying timeouts, dropped connections and transient statuses.

        Any other error status fails immediately.
        """

        delays = iter(backoff_delays(self._http))
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self._http.timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                failure: Exception = exc
                reason = type(exc).__name__
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    self._raise_for_status(response, url)
                    return response
                failure = requests.HTTPError(f"HTTP {response.status_code}", response=response)
                reason = f"status={response.status_code}"

            delay = next(delays, None)
            if delay is None:
                logger.error(
                    "Source request exhausted retries source=%s attempts=%s url=%s last_error=%s",
                    self.source,
                    attempt,
                    url,
                    failure,
                )
                raise ConnectorRequestError(f"{self.source}: request failed after retries.") from failure

            logger.warning(
                "Source request retry source=%s attempt=%s reason=%s wait_seconds=%.2f",
                self.source,
                attempt,
                reason,
                delay,
            )
            time.sleep(delay)

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            logger.error(
                "Source request failed source=%s status=%s url=%s",
                self.source,
                response.status_code,
                url,
            )
            raise ConnectorRequestError(
                f"{self.source}: non-retryable request failure (HTTP {response.status_code})."
            ) from exc

    def _decode_json(self, response: requests.Response) -> Any:
        """
        Decode a JSON body, rejecting HTML error pages served with a success status.
        """

        body = response.text
        if looks_like_html(body):
            logger.error(
                "Source returned HTML instead of JSON source=%s preview=%r",
                self.source,
                body[:_PREVIEW_CHARS],
            )
            raise SourcePayloadError(f"{self.source}: response was an HTML page, not JSON.")
        try:
            return json.loads(body)
        except ValueError as exc:
            raise SourcePayloadError(f"{self.source}: response was not valid JSON.") from exc
