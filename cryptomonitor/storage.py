from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence

import pandas as pd
from sqlalchemy import DateTime, Integer, Numeric, String, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from cryptomonitor.errors import StorageError
from cryptomonitor.models import PriceRecord, utcnow

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset behind DateTime(timezone=True); values are written in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class CryptoPriceRow(Base):
    __tablename__ = "crypto_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    current_price: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    market_cap: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    price_change_24h: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    price_change_percentage_24h: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    @classmethod
    def from_record(cls, record: PriceRecord) -> "CryptoPriceRow":
        values = record.model_dump()
        values["last_updated"] = _as_utc(values["last_updated"])
        values["created_at"] = _as_utc(values["created_at"])
        return cls(**values)

    def to_record(self) -> PriceRecord:
        return PriceRecord(
            symbol=self.symbol,
            name=self.name,
            current_price=self.current_price,
            market_cap=self.market_cap,
            price_change_24h=self.price_change_24h,
            price_change_percentage_24h=self.price_change_percentage_24h,
            last_updated=_as_utc(self.last_updated),
            created_at=_as_utc(self.created_at),
        )


class PriceStore(Protocol):
    """Storage contract for price records."""

    def append(self, records: Sequence[PriceRecord]) -> int: ...

    def load(self, symbols: Optional[Iterable[str]] = None, limit: Optional[int] = None) -> List[PriceRecord]: ...

    def export_csv(self, destination: Path) -> int: ...

    def ping(self) -> None: ...

    def create_schema(self) -> None: ...


class SqlPriceStore:
    """Append-only SQL table of price snapshots."""

    def __init__(self, url: str, engine: Engine | None = None) -> None:
        self.url = url
        self.engine = engine or create_engine(
            url,
            connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        )
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def append(self, records: Sequence[PriceRecord]) -> int:
        if not records:
            return 0

        rows = [CryptoPriceRow.from_record(record) for record in records]
        with self.session_factory() as session:
            try:
                session.add_all(rows)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Could not persist {len(rows)} price records: {exc}") from exc

        logger.info("Persisted %s new price records to %s", len(rows), self.engine.url.render_as_string())
        return len(rows)

    def load(self, symbols: Optional[Iterable[str]] = None, limit: Optional[int] = None) -> List[PriceRecord]:
        stmt = select(CryptoPriceRow).order_by(CryptoPriceRow.created_at.desc(), CryptoPriceRow.id.desc())
        if symbols:
            stmt = stmt.where(CryptoPriceRow.symbol.in_([s.lower() for s in symbols]))
        if limit:
            stmt = stmt.limit(limit)

        try:
            with self.session_factory() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read price records: {exc}") from exc
        return [row.to_record() for row in rows]

    def export_csv(self, destination: Path) -> int:
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            df = pd.read_sql(select(CryptoPriceRow.__table__), self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read price records for export: {exc}") from exc

        if df.empty:
            logger.warning("No price records stored in %s. Nothing to export.", self.engine.url.render_as_string())
            return 0

        df.to_csv(destination, index=False)
        logger.info("Exported %s rows to %s", len(df), destination)
        return len(df)

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageError(f"Database is unreachable: {exc}") from exc
