from __future__ import annotations

import logging
import random
from decimal import Decimal
from typing import Dict, Final, List, Optional, Sequence

from cryptomonitor.models import PriceRecord, utcnow

logger = logging.getLogger(__name__)

KNOWN_SYMBOLS: Final[Dict[str, str]] = {
    "bitcoin": "btc",
    "ethereum": "eth",
    "cardano": "ada",
    "solana": "sol",
    "binancecoin": "bnb",
    "ripple": "xrp",
    "dogecoin": "doge",
    "polkadot": "dot",
    "litecoin": "ltc",
    "chainlink": "link",
}

# Half-open [low, high) bounds for each synthetic field, in USD or percent.
PRICE_RANGE: Final = (100, 100_000)
MARKET_CAP_RANGE: Final = (1_000_000, 1_000_000_000)
CHANGE_RANGE: Final = (-1_000, 1_000)
CHANGE_PERCENT_RANGE: Final = (-10, 10)


def fallback_symbol(coin_id: str) -> str:
    """Ticker for ``coin_id``: the well-known symbol, else its first three characters lower-cased."""
    lowered = coin_id.lower()
    return KNOWN_SYMBOLS.get(lowered, lowered[:3])


class MockPriceGenerator:
    """Builds placeholder quotes when the market-data API is unavailable."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def _cents(self, bounds: tuple[int, int]) -> Decimal:
        low, high = bounds
        return Decimal(self.rng.randrange(low * 100, high * 100)) / 100

    def generate(self, coin_ids: Sequence[str]) -> List[PriceRecord]:
        now = utcnow()
        records: List[PriceRecord] = []
        for coin_id in coin_ids:
            records.append(
                PriceRecord(
                    symbol=fallback_symbol(coin_id),
                    name=coin_id,
                    current_price=self._cents(PRICE_RANGE),
                    market_cap=self._cents(MARKET_CAP_RANGE),
                    price_change_24h=self._cents(CHANGE_RANGE),
                    price_change_percentage_24h=self._cents(CHANGE_PERCENT_RANGE),
                    last_updated=now,
                    created_at=now,
                )
            )
        logger.info("Generated %s mock crypto prices", len(records))
        return records
