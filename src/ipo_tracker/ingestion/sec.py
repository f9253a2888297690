"""sec-api.io filing search and EDGAR document download."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

import httpx
from pydantic import ValidationError

from ipo_tracker.core.config import SecApiConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.ingestion.base import SourceClient
from ipo_tracker.ingestion.rate_limit import SlidingWindowRateLimiter
from ipo_tracker.ingestion.schemas import SecFiling, SecFilingSearch

logger = logging.getLogger(__name__)

# EDGAR fair-access policy: at most 10 requests per second.
_EDGAR_MAX_REQUESTS = 10
_EDGAR_WINDOW_SECONDS = 1.0

_OLDEST = datetime.min.replace(tzinfo=UTC)


def build_filing_query(
    ticker: str | None = None,
    cik: str | None = None,
    form_type: str | None = None,
    accession_no: str | None = None,
) -> str:
    """Lucene query string for the sec-api.io query API."""
    terms = []
    if ticker:
        terms.append(f"ticker:{ticker.strip().upper()}")
    if cik:
        terms.append(f"cik:{cik.strip().lstrip('0') or '0'}")
    if form_type:
        terms.append(f'formType:"{form_type.strip()}"')
    if accession_no:
        terms.append(f'accessionNo:"{accession_no.strip()}"')
    if not terms:
        raise SourceError(
            "A filing search needs a ticker, CIK, form type or accession number",
            context={"source": SecFilingsClient.source_name},
        )
    return " AND ".join(terms)


class SecFilingsClient(SourceClient):
    """Searches filings through sec-api.io and downloads them from EDGAR.

    Search calls authenticate with the sec-api.io token. Document
    downloads go straight to sec.gov with a descriptive User-Agent, which
    EDGAR requires, and are throttled to its fair-access rate.
    """

    source_name = "SEC"

    def __init__(
        self,
        config: SecApiConfig,
        timeout: float = 45.0,
        client: httpx.AsyncClient | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        super().__init__(config.base_url, timeout, client, headers={"User-Agent": config.user_agent})
        self._config = config
        self._limiter = limiter or SlidingWindowRateLimiter(
            _EDGAR_MAX_REQUESTS, _EDGAR_WINDOW_SECONDS
        )

    async def search_filings(
        self,
        ticker: str | None = None,
        cik: str | None = None,
        form_type: str | None = None,
        start: int = 0,
        size: int = 10,
    ) -> tuple[list[SecFiling], int]:
        """Filings matching the filters, newest first.

        Returns:
            (filings, total) where total counts every match, not just
            this page.
        """
        query = build_filing_query(ticker=ticker, cik=cik, form_type=form_type)
        return await self._query(query, start, size)

    async def get_filing(self, accession_no: str) -> SecFiling:
        """Look up one filing by accession number.

        Raises:
            SourceError: No filing has that accession number (status 404).
        """
        filings, _ = await self._query(build_filing_query(accession_no=accession_no), 0, 1)
        if not filings:
            raise SourceError(
                f"Filing not found: {accession_no}",
                context={
                    "source": self.source_name,
                    "status_code": 404,
                    "accession_no": accession_no,
                },
            )
        return filings[0]

    async def get_company_filings(
        self,
        ticker: str,
        form_types: tuple[str, ...] = ("10-K", "10-Q"),
        limit: int = 10,
    ) -> list[SecFiling]:
        """Most recent filings of several form types, merged by filing date."""
        per_type = max(1, math.ceil(limit / max(1, len(form_types))))
        merged: list[SecFiling] = []
        for form_type in form_types:
            filings, _ = await self.search_filings(
                ticker=ticker, form_type=form_type, size=per_type
            )
            merged.extend(filings)

        merged.sort(key=lambda f: f.filed_at or _OLDEST, reverse=True)
        return merged[:limit]

    async def get_filing_content(self, filing: SecFiling) -> str:
        """Download the filing's primary document as text (usually HTML).

        Raises:
            SourceError: The filing has no document link, the download
                failed, or the document exceeds `max_content_bytes`.
        """
        url = filing.document_url
        if not url:
            raise SourceError(
                f"Filing {filing.accession_no} has no document URL",
                context={"source": self.source_name, "accession_no": filing.accession_no},
            )

        await self._limiter.wait_if_needed()
        logger.info("Downloading %s %s from %s", filing.form_type, filing.accession_no, url)
        response = await self._send("GET", url)

        if len(response.content) > self._config.max_content_bytes:
            raise SourceError(
                f"Filing {filing.accession_no} is larger than "
                f"{self._config.max_content_bytes} bytes",
                context={"source": self.source_name, "url": url},
            )
        return response.text

    async def _query(self, query: str, start: int, size: int) -> tuple[list[SecFiling], int]:
        if not self._config.api_key:
            raise SourceError(
                "SEC API key is not configured",
                context={"source": self.source_name},
            )

        logger.info("SEC filing search: %s (from=%d size=%d)", query, start, size)
        payload = await self._request_json(
            "POST",
            "",
            params={"token": self._config.api_key},
            redact=("token",),
            json={
                "query": query,
                "from": str(start),
                "size": str(size),
                "sort": [{"filedAt": {"order": "desc"}}],
            },
        )

        try:
            envelope = SecFilingSearch.model_validate(payload)
        except ValidationError as e:
            raise SourceError(
                f"Malformed SEC search payload: {e.error_count()} validation error(s)",
                context={"source": self.source_name},
            ) from e

        filings: list[SecFiling] = []
        for raw in envelope.filings:
            try:
                filings.append(SecFiling.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed filing: %r", raw)
        return filings, envelope.total or len(filings)
