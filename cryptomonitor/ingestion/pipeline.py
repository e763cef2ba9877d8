from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import List, Optional, Sequence

from cryptomonitor.config import settings
from cryptomonitor.errors import FeatureNotImplemented, StorageError, UpstreamUnavailable
from cryptomonitor.ingestion.fetcher import PriceFetcher, SyntheticResult
from cryptomonitor.ingestion.mock import MockPriceGenerator
from cryptomonitor.ingestion.sources import CoinGeckoSource
from cryptomonitor.models import HealthEntry, HealthReport, PriceRecord, UpdateSummary
from cryptomonitor.storage import PriceStore, SqlPriceStore
from cryptomonitor.tracing import LoggingObserver, NullObserver, Observer

logger = logging.getLogger(__name__)


class CryptoPriceService:
    """Fetch current prices, persist them, and report on the dependencies behind both."""

    def __init__(self, fetcher: PriceFetcher, store: PriceStore, observer: Optional[Observer] = None) -> None:
        self.fetcher = fetcher
        self.store = store
        self.observer = observer or NullObserver()

    async def get_current_prices(self, coin_ids: Sequence[str]) -> List[PriceRecord]:
        result = await self.fetcher.fetch(coin_ids)
        return result.records

    async def get_price_history(self, coin_id: str, days: int = 30) -> PriceRecord:
        with self.observer.span("GetPriceHistory") as span:
            span.set_attribute("coin.id", coin_id)
            span.set_attribute("history.days", days)
            logger.info("Fetching price history for %s for %s days", coin_id, days)
            exc = FeatureNotImplemented("Price history feature not implemented yet")
            span.record_error(exc)
            logger.error("Error fetching price history for %s: %s", coin_id, exc)
            raise exc

    async def save_prices(self, records: Sequence[PriceRecord]) -> int:
        with self.observer.span("SavePricesToDatabase") as span:
            span.set_attribute("prices.count", len(records))
            logger.info("Saving %s crypto prices to database", len(records))
            try:
                written = await asyncio.to_thread(self.store.append, records)
            except StorageError as exc:
                span.record_error(exc)
                logger.exception("Error saving prices to database")
                raise
            except Exception as exc:  # noqa: BLE001
                span.record_error(exc)
                logger.exception("Error saving prices to database")
                raise StorageError(f"Could not persist {len(records)} price records: {exc}") from exc

            span.set_attribute("database.save.success", True)
            logger.info("Successfully saved %s prices to database", written)
            return written

    async def update_prices(self, coin_ids: Sequence[str]) -> UpdateSummary:
        result = await self.fetcher.fetch(coin_ids)
        if isinstance(result, SyntheticResult):
            logger.warning("Storing %s mock prices; upstream error was: %s", len(result.records), result.reason)
        await self.save_prices(result.records)
        return UpdateSummary(message="Prices updated successfully", count=len(result.records))

    async def load_prices(self, symbols: Optional[Sequence[str]] = None, limit: Optional[int] = None) -> List[PriceRecord]:
        return await asyncio.to_thread(self.store.load, symbols, limit)

    async def check_database(self) -> HealthEntry:
        started = time.perf_counter()
        try:
            await asyncio.to_thread(self.store.ping)
        except StorageError as exc:
            return HealthEntry(
                status="Unhealthy",
                description="Database is unhealthy",
                duration_ms=_elapsed_ms(started),
                error=str(exc),
            )
        return HealthEntry(status="Healthy", description="Database is healthy", duration_ms=_elapsed_ms(started))

    async def check_upstream(self) -> HealthEntry:
        started = time.perf_counter()
        try:
            await self.fetcher.ping()
        except UpstreamUnavailable as exc:
            return HealthEntry(
                status="Degraded",
                description=f"{self.fetcher.source.name} is unreachable",
                duration_ms=_elapsed_ms(started),
                error=str(exc),
            )
        return HealthEntry(
            status="Healthy",
            description=f"{self.fetcher.source.name} is reachable",
            duration_ms=_elapsed_ms(started),
        )

    async def health(self) -> HealthReport:
        """Database failures make the service unhealthy; an unreachable upstream only degrades it."""
        started = time.perf_counter()
        database, upstream = await asyncio.gather(self.check_database(), self.check_upstream())
        entries = {"database": database, "coingecko": upstream}

        statuses = {entry.status for entry in entries.values()}
        if "Unhealthy" in statuses:
            overall = "Unhealthy"
        elif "Degraded" in statuses:
            overall = "Degraded"
        else:
            overall = "Healthy"
        return HealthReport(status=overall, total_duration_ms=_elapsed_ms(started), entries=entries)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def build_service() -> CryptoPriceService:
    """Create a service with default settings, CoinGecko source and SQL store."""
    observer = LoggingObserver()
    rng = random.Random(settings.mock_seed) if settings.mock_seed is not None else random.Random()
    fetcher = PriceFetcher(
        source=CoinGeckoSource(base_url=settings.coingecko_base_url),
        generator=MockPriceGenerator(rng),
        observer=observer,
        request_timeout_seconds=settings.request_timeout_seconds,
        headers={"User-Agent": settings.user_agent},
        fallback_enabled=settings.mock_fallback_enabled,
    )
    store = SqlPriceStore(settings.database_url)
    return CryptoPriceService(fetcher=fetcher, store=store, observer=observer)
