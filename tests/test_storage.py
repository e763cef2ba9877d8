from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pandas as pd
import pytest

from cryptomonitor.errors import StorageError
from cryptomonitor.models import PriceRecord
from cryptomonitor.storage import SqlPriceStore


@pytest.fixture
def store(tmp_path):
    store = SqlPriceStore(f"sqlite:///{(tmp_path / 'prices.db').as_posix()}")
    store.create_schema()
    return store


def test_append_reports_count_and_leaves_input_untouched(store, sample_records):
    before = [r.model_dump() for r in sample_records]
    ids_before = [id(r) for r in sample_records]

    written = store.append(sample_records)

    assert written == 2
    assert [r.model_dump() for r in sample_records] == before
    assert [id(r) for r in sample_records] == ids_before


def test_append_empty_batch_is_a_no_op(store):
    assert store.append([]) == 0
    assert store.load() == []


def test_appends_accumulate_rows(store, sample_records):
    store.append(sample_records)
    store.append(sample_records)

    assert len(store.load()) == 4


def test_load_returns_newest_first_and_filters_by_symbol(store):
    now = datetime.now(timezone.utc)
    older = PriceRecord(symbol="btc", name="Bitcoin", current_price=Decimal("49000"), created_at=now - timedelta(minutes=5))
    newer = PriceRecord(symbol="btc", name="Bitcoin", current_price=Decimal("50000"), created_at=now)
    other = PriceRecord(symbol="eth", name="Ethereum", current_price=Decimal("3000"), created_at=now)
    store.append([older, newer, other])

    loaded = store.load(symbols=["BTC"])

    assert [r.current_price for r in loaded] == [Decimal("50000"), Decimal("49000")]
    assert len(store.load(limit=1)) == 1


def test_round_trip_keeps_decimal_precision(store):
    record = PriceRecord(
        symbol="doge",
        name="Dogecoin",
        current_price=Decimal("0.12345678"),
        market_cap=Decimal("17500000000.25"),
        price_change_24h=Decimal("-0.00123456"),
        price_change_percentage_24h=Decimal("-1.23456789"),
    )
    store.append([record])

    (loaded,) = store.load()

    assert loaded.current_price == Decimal("0.12345678")
    assert loaded.market_cap == Decimal("17500000000.25")
    assert loaded.price_change_24h == Decimal("-0.00123456")
    assert loaded.price_change_percentage_24h == Decimal("-1.23456789")


def test_append_without_schema_raises_storage_error(tmp_path, sample_records):
    store = SqlPriceStore(f"sqlite:///{(tmp_path / 'empty.db').as_posix()}")

    with pytest.raises(StorageError):
        store.append(sample_records)


def test_export_csv_writes_all_rows(store, sample_records, tmp_path):
    store.append(sample_records)
    destination = tmp_path / "export" / "prices.csv"

    rows = store.export_csv(destination)

    assert rows == 2
    df = pd.read_csv(destination)
    assert list(df["symbol"]) == ["btc", "eth"]
    assert {"current_price", "market_cap", "last_updated", "created_at"} <= set(df.columns)


def test_export_csv_with_no_rows(store, tmp_path):
    assert store.export_csv(tmp_path / "out.csv") == 0


def test_ping(store):
    store.ping()


def test_load_returns_utc_aware_timestamps(store):
    last_updated = datetime(2025, 9, 6, 15, 59, 1, tzinfo=timezone.utc)
    created_at = datetime(2025, 9, 6, 18, 30, 0, 250000, tzinfo=timezone(timedelta(hours=3)))
    store.append([PriceRecord(symbol="btc", name="Bitcoin", last_updated=last_updated, created_at=created_at)])

    (loaded,) = store.load()

    assert loaded.last_updated.tzinfo is not None
    assert loaded.created_at.tzinfo is not None
    assert loaded.last_updated == last_updated
    assert loaded.created_at == created_at
    assert loaded.created_at.utcoffset() == timedelta(0)
    assert loaded.created_at <= datetime.now(timezone.utc)
