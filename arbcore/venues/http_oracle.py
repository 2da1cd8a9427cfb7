"""httpx-backed price oracle querying each venue's quote API."""

from __future__ import annotations

import time
from decimal import Decimal, InvalidOperation
from types import TracebackType
from typing import Any

import httpx
import structlog

from arbcore.core.config import OracleConfig, get_settings
from arbcore.core.exceptions import ProviderError, RpcError
from arbcore.core.types import PriceQuote, Venue
from arbcore.venues.rate_limiter import VenueRateLimiter
from arbcore.venues.swaps import VENUE_SPECS

logger = structlog.stdlib.get_logger()


def _parse_quote(venue: Venue, base: str, quote: str, raw: Any) -> PriceQuote:
    """Extract price and liquidity from a ``{"data": {"price", "inAmount"}}`` body."""
    if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
        raise ProviderError(f"{venue}: unexpected quote payload")
    data = raw["data"]
    price_raw = data.get("price")
    if price_raw is None:
        raise ProviderError(f"{venue}: price not found in response")
    try:
        price = Decimal(str(price_raw))
    except InvalidOperation as exc:
        raise ProviderError(f"{venue}: unparseable price {price_raw!r}") from exc
    if price <= 0:
        raise ProviderError(f"{venue}: non-positive price {price}")

    try:
        liquidity = int(data.get("inAmount") or 0)
    except (TypeError, ValueError):
        liquidity = 0

    return PriceQuote(
        venue=venue,
        base=base,
        quote=quote,
        price=price,
        liquidity=liquidity,
        timestamp=time.time(),
    )


class HttpPriceOracle:
    """Queries venue quote endpoints over HTTP.

    Usage::

        async with HttpPriceOracle() as oracle:
            quote = await oracle.quote(Venue.JUPITER, SOL_MINT, USDC_MINT)
    """

    def __init__(
        self,
        config: OracleConfig | None = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: VenueRateLimiter | None = None,
    ) -> None:
        self._config = config or get_settings().oracle
        self._client = client
        self._owns_client = client is None
        self._rate_limiter = rate_limiter or VenueRateLimiter(
            burst_per_sec=self._config.burst_per_sec,
            sustained_per_sec=self._config.sustained_per_sec,
        )

    async def connect(self) -> httpx.AsyncClient:
        """Open the shared HTTP client if needed and return it."""
        if self._client is None:
            headers: dict[str, str] = {}
            api_key = self._config.api_key.get_secret_value()
            if api_key:
                headers["x-api-key"] = api_key
            self._client = httpx.AsyncClient(
                timeout=self._config.http_timeout_secs,
                headers=headers,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> HttpPriceOracle:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _url_for(self, venue: Venue) -> str:
        base_url = self._config.venue_urls.get(venue) or VENUE_SPECS[venue].api_url
        return f"{base_url.rstrip('/')}/price"

    async def quote(self, venue: Venue, base: str, quote: str) -> PriceQuote:
        """Fetch the current price of ``base`` in ``quote`` at ``venue``."""
        client = await self.connect()

        await self._rate_limiter.acquire(venue)
        params = {
            "inputMint": base,
            "outputMint": quote,
            "amount": str(self._config.quote_amount),
            "slippageBps": str(self._config.slippage_bps),
        }
        try:
            response = await client.get(self._url_for(venue), params=params)
        except httpx.TimeoutException as exc:
            raise RpcError(f"{venue}: quote request timed out") from exc
        except httpx.TransportError as exc:
            raise RpcError(f"{venue}: quote request failed: {exc}") from exc

        if response.status_code >= 500:
            raise RpcError(f"{venue}: HTTP {response.status_code}")
        if response.status_code >= 400:
            raise ProviderError(f"{venue}: HTTP {response.status_code}: {response.text[:200]}")

        try:
            raw = response.json()
        except ValueError as exc:
            raise ProviderError(f"{venue}: response is not JSON") from exc

        result = _parse_quote(venue, base, quote, raw)
        logger.debug(
            "venue_quote",
            venue=venue,
            price=result.price,
            liquidity=result.liquidity,
        )
        return result
