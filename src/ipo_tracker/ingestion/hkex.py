"""HKEX FINI IPO listings adapter (HK market)."""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from ipo_tracker.core.config import HkexConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.ingestion.base import SourceClient
from ipo_tracker.ingestion.rate_limit import SlidingWindowRateLimiter
from ipo_tracker.ingestion.schemas import HkexListings, HkexToken

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before the server-declared expiry.
_TOKEN_EXPIRY_MARGIN = 60.0


class HkexFiniClient(SourceClient):
    """OAuth client-credentials client for the HKEX FINI listings API.

    The access token is cached on the instance until shortly before it
    expires. Token and listing requests share one rate limiter.
    """

    source_name = "HKEX"

    def __init__(
        self,
        config: HkexConfig,
        timeout: float = 45.0,
        client: httpx.AsyncClient | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        super().__init__(config.base_url, timeout, client)
        self._config = config
        self._limiter = limiter or SlidingWindowRateLimiter(
            config.rate_limit, config.rate_window_seconds
        )
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def limiter(self) -> SlidingWindowRateLimiter:
        return self._limiter

    async def get_access_token(self) -> str:
        """Return a cached bearer token, exchanging credentials when needed."""
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not self._config.client_id or not self._config.client_secret:
            raise SourceError(
                "HKEX client credentials are not configured",
                context={"source": self.source_name},
            )

        await self._limiter.wait_if_needed()
        payload = await self._request_json(
            "POST",
            "/oauth/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
            },
        )

        try:
            token = HkexToken.model_validate(payload)
        except ValidationError as e:
            raise SourceError(
                "Malformed HKEX token response",
                context={"source": self.source_name},
            ) from e

        self._token = token.access_token
        self._token_expires_at = (
            time.monotonic() + max(0.0, token.expires_in - _TOKEN_EXPIRY_MARGIN)
        )
        logger.debug("Obtained HKEX access token (expires in %ds)", token.expires_in)
        return self._token

    async def get_ipo_listings(self, token: str | None = None) -> HkexListings:
        """GET /ipo/listings with a bearer token.

        Raises:
            SourceError: HTTP failure or a response without a `listings` list.
        """
        token = token or await self.get_access_token()

        await self._limiter.wait_if_needed()
        logger.info("Fetching HKEX IPO listings")
        payload = await self._request_json(
            "GET",
            "/ipo/listings",
            headers={"Authorization": f"Bearer {token}"},
        )

        try:
            return HkexListings.model_validate(payload)
        except ValidationError as e:
            raise SourceError(
                f"Malformed HKEX listings payload: {e.error_count()} validation error(s)",
                context={"source": self.source_name},
            ) from e
