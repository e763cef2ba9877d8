from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from cryptomonitor.errors import UpstreamUnavailable
from cryptomonitor.models import PriceRecord
from cryptomonitor.tracing import Span

logger = logging.getLogger(__name__)


class MarketDataSource(Protocol):
    name: str

    async def fetch(
        self, client: httpx.AsyncClient, coin_ids: Sequence[str], span: Optional[Span] = None
    ) -> List[PriceRecord]: ...

    async def ping(self, client: httpx.AsyncClient) -> None: ...


class CoinGeckoSource:
    """CoinGecko ``coins/markets`` endpoint, one page of USD quotes for the requested ids."""

    name = "CoinGecko"

    def __init__(self, base_url: str = "https://api.coingecko.com/api/v3", vs_currency: str = "usd") -> None:
        self.base_url = base_url.rstrip("/")
        self.vs_currency = vs_currency

    def markets_url(self, coin_ids: Sequence[str]) -> httpx.URL:
        params = {
            "vs_currency": self.vs_currency,
            "ids": ",".join(coin_ids),
            "order": "market_cap_desc",
            "per_page": 100,
            "page": 1,
            "sparkline": "false",
            "locale": "en",
        }
        return httpx.URL(f"{self.base_url}/coins/markets", params=params)

    async def fetch(
        self, client: httpx.AsyncClient, coin_ids: Sequence[str], span: Optional[Span] = None
    ) -> List[PriceRecord]:
        url = self.markets_url(coin_ids)
        if span is not None:
            span.set_attribute("http.url", str(url))

        try:
            resp = await client.get(url)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"{self.name} request failed: {exc}") from exc

        if span is not None:
            span.set_attribute("http.status_code", resp.status_code)
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(
                f"{self.name} answered HTTP {resp.status_code}", status_code=resp.status_code
            ) from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamUnavailable(f"{self.name} returned a body that is not JSON") from exc
        if not isinstance(payload, list):
            raise UpstreamUnavailable(f"{self.name} returned {type(payload).__name__}, expected a list")

        try:
            records = [PriceRecord.model_validate(entry) for entry in payload]
        except ValueError as exc:
            raise UpstreamUnavailable(f"{self.name} returned a malformed market entry: {exc}") from exc

        logger.info("Fetched %s records from %s", len(records), self.name)
        return records

    async def ping(self, client: httpx.AsyncClient) -> None:
        try:
            resp = await client.get(f"{self.base_url}/ping")
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"{self.name} ping failed: {exc}") from exc
