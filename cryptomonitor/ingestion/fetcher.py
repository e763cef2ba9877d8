from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

import httpx

from cryptomonitor.errors import UpstreamUnavailable
from cryptomonitor.ingestion.mock import MockPriceGenerator
from cryptomonitor.ingestion.sources import MarketDataSource
from cryptomonitor.models import PriceRecord
from cryptomonitor.tracing import NullObserver, Observer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LiveResult:
    """Quotes that came from the market-data API."""

    records: List[PriceRecord] = field(default_factory=list)


@dataclass(slots=True)
class SyntheticResult:
    """Mock quotes produced because the live call failed."""

    records: List[PriceRecord] = field(default_factory=list)
    reason: str = ""


FetchResult = Union[LiveResult, SyntheticResult]


class PriceFetcher:
    """Single-attempt fetch of current prices with a mock-data fallback.

    Cancellation of the awaiting task is not a failure: ``asyncio.CancelledError``
    is a ``BaseException`` and passes through untouched, so no mock data is made
    for a caller that went away.
    """

    def __init__(
        self,
        source: MarketDataSource,
        generator: Optional[MockPriceGenerator] = None,
        observer: Optional[Observer] = None,
        request_timeout_seconds: float = 15.0,
        headers: Optional[Dict[str, str]] = None,
        fallback_enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.source = source
        self.generator = generator or MockPriceGenerator()
        self.observer = observer or NullObserver()
        self.request_timeout_seconds = request_timeout_seconds
        self.headers = dict(headers or {})
        self.fallback_enabled = fallback_enabled
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.request_timeout_seconds),
            headers=self.headers,
            follow_redirects=True,
            transport=self.transport,
        )

    async def fetch(self, coin_ids: Sequence[str]) -> FetchResult:
        ids = list(coin_ids)
        if not ids:
            return LiveResult()

        joined = ",".join(ids)
        with self.observer.span("GetCryptoPrices") as span:
            span.set_attribute("coin.ids", joined)
            span.set_attribute("coin.count", len(ids))
            try:
                logger.info("Fetching crypto prices from %s for coins: %s", self.source.name, joined)
                async with self._client() as client:
                    records = await self.source.fetch(client, ids, span=span)
            except Exception as exc:  # noqa: BLE001
                span.record_error(exc)
                if not self.fallback_enabled:
                    logger.error("Fetching prices from %s failed and mock fallback is disabled", self.source.name)
                    if isinstance(exc, UpstreamUnavailable):
                        raise
                    raise UpstreamUnavailable(str(exc)) from exc
                logger.warning("Falling back to mock data due to %s API error", self.source.name, exc_info=exc)
                return SyntheticResult(records=self._mock(ids), reason=str(exc))

            span.set_attribute("prices.retrieved_count", len(records))
            logger.info("Retrieved %s crypto prices from %s", len(records), self.source.name)
            return LiveResult(records=records)

    def _mock(self, coin_ids: Sequence[str]) -> List[PriceRecord]:
        with self.observer.span("GetMockCryptoPrices") as span:
            span.set_attribute("mock_data", True)
            records = self.generator.generate(coin_ids)
            span.set_attribute("mock_prices.generated_count", len(records))
            return records

    async def ping(self) -> None:
        async with self._client() as client:
            await self.source.ping(client)
