from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

_DECIMAL_FIELDS = ("current_price", "market_cap", "price_change_24h", "price_change_percentage_24h")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceRecord(BaseModel):
    """One coin's market snapshot in USD, as returned by CoinGecko or synthesized."""

    symbol: str = Field("", description="Ticker symbol (e.g. btc, eth).")
    name: str = Field("", description="Display name of the coin.")
    current_price: Decimal = Field(Decimal(0), ge=0, description="Current price in USD.")
    market_cap: Decimal = Field(Decimal(0), ge=0, description="Market capitalization in USD.")
    price_change_24h: Decimal = Field(Decimal(0), description="Absolute price change over the last 24h in USD.")
    price_change_percentage_24h: Decimal = Field(
        Decimal(0), description="Percentage price change over the last 24h."
    )
    last_updated: Optional[datetime] = Field(None, description="When the upstream last refreshed this price.")
    created_at: datetime = Field(
        default_factory=utcnow, frozen=True, description="When this record was built, in UTC."
    )

    @model_validator(mode="before")
    @classmethod
    def _lowercase_keys(cls, data: Any) -> Any:
        # CoinGecko field names are matched case-insensitively.
        if isinstance(data, dict):
            return {key.lower() if isinstance(key, str) else key: value for key, value in data.items()}
        return data

    @field_validator(*_DECIMAL_FIELDS, mode="before")
    @classmethod
    def _null_as_zero(cls, value: Any) -> Any:
        return Decimal(0) if value is None else value

    @field_validator("symbol", "name", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_serializer(*_DECIMAL_FIELDS, when_used="json")
    def _decimal_as_number(self, value: Decimal) -> float:
        return float(value)


class UpdateSummary(BaseModel):
    """Outcome of a fetch-and-store run."""

    message: str
    count: int


class HealthEntry(BaseModel):
    status: str
    description: Optional[str] = None
    duration_ms: float = 0.0
    error: Optional[str] = None


class HealthReport(BaseModel):
    status: str
    total_duration_ms: float = 0.0
    entries: Dict[str, HealthEntry] = Field(default_factory=dict)
