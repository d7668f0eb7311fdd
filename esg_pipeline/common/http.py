"""HTTP client with retries, timeouts, and a fixed User-Agent."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from esg_pipeline.common.constants import USER_AGENT
from esg_pipeline.common.errors import StageError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.user_agent = user_agent
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None, accept: str) -> dict[str, str]:
        out = {"User-Agent": self.user_agent, "Accept": accept}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status: {status}")
        if status >= 400:
            raise HttpRequestError(f"HTTP status: {status}")

    def _send(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str],
        timeout: TimeoutConfig | None,
    ) -> requests.Response:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=headers,
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.Timeout as exc:
            raise RetryableHttpError(f"Timed out requesting {url}") from exc
        except requests.RequestException as exc:
            raise HttpRequestError(f"Transport failure requesting {url}: {exc}") from exc
        self._raise_for_status_or_retry(response)
        return response

    def _with_retry(self, fn):
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped():
            return fn()

        return _wrapped()

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        def _request() -> Any:
            response = self._send(
                url,
                params=params,
                headers=self._headers(headers, "application/json"),
                timeout=timeout,
            )
            try:
                return response.json()
            except ValueError as exc:
                raise HttpRequestError(f"Invalid JSON payload from {url}") from exc

        return self._with_retry(_request)

    def get_bytes(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> bytes:
        def _request() -> bytes:
            response = self._send(
                url,
                params=None,
                headers=self._headers(headers, "text/csv, text/plain, */*"),
                timeout=timeout,
            )
            return response.content

        return self._with_retry(_request)
