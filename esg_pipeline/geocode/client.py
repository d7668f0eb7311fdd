"""Single-query geocoding against a Nominatim-compatible search endpoint."""

from __future__ import annotations

import requests

from esg_pipeline.common.constants import NOMINATIM_SEARCH_URL
from esg_pipeline.common.http import HttpClient, HttpRequestError, RetryConfig, TimeoutConfig
from esg_pipeline.common.models import Coordinates
from esg_pipeline.common.values import parse_number


def _first_match(payload: object) -> Coordinates | None:
    if not isinstance(payload, list) or not payload:
        return None
    best = payload[0]
    if not isinstance(best, dict):
        return None
    lat = parse_number(best.get("lat"))
    lng = parse_number(best.get("lon"))
    if lat is None or lng is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=lat, lng=lng)


class GeocodingClient:
    """Issues exactly one request per ``lookup`` call and never raises.

    Spacing between calls is the caller's job.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        *,
        endpoint: str = NOMINATIM_SEARCH_URL,
        timeout: TimeoutConfig | None = None,
        max_attempts: int = 1,
    ) -> None:
        self.owns_client = http_client is None
        self.http_client = http_client or HttpClient(retry=RetryConfig(max_attempts=max_attempts))
        self.endpoint = endpoint
        self.timeout = timeout or TimeoutConfig(connect=5.0, read=10.0)
        self.last_error: str | None = None

    def close(self) -> None:
        if self.owns_client:
            self.http_client.close()

    def lookup(self, query: str) -> Coordinates | None:
        self.last_error = None
        if not query:
            self.last_error = "EMPTY_QUERY"
            return None
        try:
            payload = self.http_client.get_json(
                self.endpoint,
                params={"format": "json", "q": query, "limit": 1},
                timeout=self.timeout,
            )
        except HttpRequestError as exc:
            self.last_error = exc.error_code
            return None
        except requests.RequestException:
            self.last_error = "TRANSPORT_ERROR"
            return None

        coords = _first_match(payload)
        if coords is None:
            self.last_error = "NO_MATCH"
        return coords
