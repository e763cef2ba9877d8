import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path

# Keep import-time directories and the default database out of the working tree.
_scratch = Path(tempfile.mkdtemp(prefix="cryptomonitor-tests-"))
os.environ.setdefault("DATA_DIR", str(_scratch / "data"))
os.environ.setdefault("LOG_DIR", str(_scratch / "logs"))

import httpx  # noqa: E402
import pytest  # noqa: E402

from cryptomonitor.errors import StorageError  # noqa: E402
from cryptomonitor.models import PriceRecord  # noqa: E402
from cryptomonitor.tracing import Span  # noqa: E402


class RecordingObserver:
    def __init__(self):
        self.spans = []

    @contextmanager
    def span(self, name):
        current = Span(name=name)
        self.spans.append(current)
        try:
            yield current
        except Exception as exc:
            if current.status != "error":
                current.record_error(exc)
            raise

    def named(self, name):
        return [span for span in self.spans if span.name == name]


class InMemoryStore:
    def __init__(self):
        self.rows = []
        self.healthy = True

    def append(self, records):
        self.rows.extend(records)
        return len(records)

    def load(self, symbols=None, limit=None):
        rows = list(reversed(self.rows))
        if symbols:
            rows = [r for r in rows if r.symbol in set(symbols)]
        return rows[:limit] if limit else rows

    def export_csv(self, destination):
        return 0

    def ping(self):
        if not self.healthy:
            raise StorageError("database is down")

    def create_schema(self):
        pass


class FailingStore(InMemoryStore):
    def __init__(self, exc=None):
        super().__init__()
        self.exc = exc or StorageError("disk full")

    def append(self, records):
        raise self.exc


BTC_ETH_PAYLOAD = [
    {
        "symbol": "btc",
        "name": "Bitcoin",
        "current_price": 50000.00,
        "market_cap": 980000000000,
        "price_change_24h": 1200.5,
        "price_change_percentage_24h": 2.46,
        "last_updated": "2025-09-06T15:59:01.000Z",
    },
    {"symbol": "eth", "name": "Ethereum", "current_price": 3000.00},
]


def json_transport(payload, status_code=200, calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def failing_transport(calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("API call failed", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sample_records():
    return [
        PriceRecord(symbol="btc", name="Bitcoin", current_price=Decimal("50000.5"), market_cap=Decimal("1000000000")),
        PriceRecord(symbol="eth", name="Ethereum", current_price=Decimal("3000"), price_change_24h=Decimal("-12.5")),
    ]
