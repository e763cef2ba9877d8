import random
from decimal import Decimal

import pytest

from cryptomonitor.ingestion.mock import KNOWN_SYMBOLS, MockPriceGenerator, fallback_symbol


@pytest.mark.parametrize(
    "coin_id, symbol",
    [
        ("bitcoin", "btc"),
        ("ethereum", "eth"),
        ("cardano", "ada"),
        ("solana", "sol"),
        ("binancecoin", "bnb"),
        ("ripple", "xrp"),
        ("dogecoin", "doge"),
        ("polkadot", "dot"),
        ("litecoin", "ltc"),
        ("chainlink", "link"),
    ],
)
def test_known_ids_map_to_their_ticker(coin_id, symbol):
    assert fallback_symbol(coin_id) == symbol


def test_unknown_ids_use_first_three_characters_lowercased():
    assert fallback_symbol("unknown123") == "unk"
    assert fallback_symbol("Avalanche-2") == "ava"
    assert fallback_symbol("op") == "op"


def test_lookup_ignores_case():
    assert fallback_symbol("Bitcoin") == "btc"


def test_generate_returns_one_record_per_id_in_order():
    coin_ids = ["bitcoin", "ethereum", "cardano", "solana", "shiba-inu"]

    records = MockPriceGenerator(random.Random(7)).generate(coin_ids)

    assert [r.name for r in records] == coin_ids
    assert [r.symbol for r in records] == ["btc", "eth", "ada", "sol", "shi"]
    for record in records:
        assert record.last_updated == record.created_at


def test_generated_values_stay_within_bounds():
    generator = MockPriceGenerator(random.Random(1234))
    coin_ids = list(KNOWN_SYMBOLS) * 50

    for record in generator.generate(coin_ids):
        assert Decimal(100) <= record.current_price < Decimal(100_000)
        assert Decimal(1_000_000) <= record.market_cap < Decimal(1_000_000_000)
        assert Decimal(-1_000) <= record.price_change_24h < Decimal(1_000)
        assert Decimal(-10) <= record.price_change_percentage_24h < Decimal(10)


def test_seeded_generators_are_reproducible():
    fields = ("symbol", "current_price", "market_cap", "price_change_24h", "price_change_percentage_24h")

    first = MockPriceGenerator(random.Random(42)).generate(["bitcoin", "dogecoin"])
    second = MockPriceGenerator(random.Random(42)).generate(["bitcoin", "dogecoin"])

    assert [r.model_dump(include=set(fields)) for r in first] == [r.model_dump(include=set(fields)) for r in second]
