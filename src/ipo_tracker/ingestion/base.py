"""Shared async HTTP plumbing for upstream feed adapters."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ipo_tracker.core.exceptions import RateLimitError, SourceError

logger = logging.getLogger(__name__)


class SourceClient:
    """Base class for upstream adapters.

    Any non-2xx response, transport error, timeout, or non-JSON body is
    raised as SourceError naming the source. There are no retries: a
    failed fetch fails the whole sync for that source. Adapters that
    download documents rather than JSON call `_send` with an absolute URL.

    Use via `async with SomeClient(...) as client:`.
    """

    source_name: str = "source"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        redact: tuple[str, ...] = (),
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            RateLimitError: Upstream returned 429.
            SourceError: Any other failure, including a non-JSON body.
        """
        url = f"{self._base_url}{path}"
        response = await self._send(method, url, redact=redact, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise SourceError(
                f"{self.source_name} returned a non-JSON body",
                context={
                    "source": self.source_name,
                    "status_code": response.status_code,
                    "url": self._redacted_url(url, kwargs.get("params"), redact),
                },
            ) from e

    async def _send(
        self,
        method: str,
        url: str,
        *,
        redact: tuple[str, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request to an absolute URL and return the 2xx response.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            redact: Query parameter names to mask in errors and logs.

        Raises:
            RateLimitError: Upstream returned 429.
            SourceError: Any other failure.
        """
        log_url = self._redacted_url(url, kwargs.get("params"), redact)

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise SourceError(
                f"{self.source_name} request timed out: {log_url}",
                context={"source": self.source_name, "url": log_url},
            ) from e
        except httpx.HTTPError as e:
            raise SourceError(
                f"{self.source_name} request failed: {e}",
                context={"source": self.source_name, "url": log_url},
            ) from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"{self.source_name} API error: 429 rate limited",
                context={
                    "source": self.source_name,
                    "status_code": 429,
                    "url": log_url,
                    "retry_after": int(retry_after) if retry_after and retry_after.isdigit() else None,
                },
            )

        if not response.is_success:
            raise SourceError(
                f"{self.source_name} API error: {response.status_code} "
                f"{response.reason_phrase}".rstrip(),
                context={
                    "source": self.source_name,
                    "status_code": response.status_code,
                    "url": log_url,
                },
            )

        logger.debug("%s %s -> %d", method, log_url, response.status_code)
        return response

    @staticmethod
    def _redacted_url(url: str, params: Any, redact: tuple[str, ...]) -> str:
        if not params:
            return url
        shown = {
            k: ("***" if k in redact else v) for k, v in dict(params).items()
        }
        return str(httpx.URL(url, params=shown))
