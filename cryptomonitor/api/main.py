from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cryptomonitor.config import settings
from cryptomonitor.errors import FeatureNotImplemented, InvalidArgument, StorageError, UpstreamUnavailable
from cryptomonitor.ingestion.pipeline import CryptoPriceService, build_service
from cryptomonitor.logging_config import setup_logging
from cryptomonitor.models import HealthEntry, HealthReport, PriceRecord, UpdateSummary

setup_logging(settings.log_level, settings.log_dir)
logger = logging.getLogger(__name__)

service = build_service()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    service.store.create_schema()
    logger.info("CryptoMonitor API started; database at %s", settings.database_url)
    yield


app = FastAPI(
    title="CryptoMonitor API",
    version="1.0.0",
    description="Current cryptocurrency prices from CoinGecko, with mock fallback and SQL persistence.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service() -> CryptoPriceService:
    return service


def require_coins(coins: Optional[List[str]]) -> List[str]:
    cleaned = [coin.strip() for coin in coins or [] if coin and coin.strip()]
    if not cleaned:
        raise InvalidArgument("At least one coin id must be provided.")
    return cleaned


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(_: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable_handler(_: Request, exc: UpstreamUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    detail = "Error updating crypto prices" if request.method == "POST" else "Error reading stored crypto prices"
    logger.error("%s: %s", detail, exc)
    return JSONResponse(status_code=500, content={"detail": detail})


@app.exception_handler(FeatureNotImplemented)
async def not_implemented_handler(_: Request, exc: FeatureNotImplemented) -> JSONResponse:
    return JSONResponse(status_code=501, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/prices", response_model=List[PriceRecord])
async def get_prices(
    coins: Optional[List[str]] = Query(None, description="Coin ids, e.g. bitcoin, ethereum, cardano"),
    svc: CryptoPriceService = Depends(get_service),
) -> List[PriceRecord]:
    coin_ids = require_coins(coins)
    logger.info("Getting prices for coins: %s", ", ".join(coin_ids))
    return await svc.get_current_prices(coin_ids)


@app.get("/prices/stored", response_model=List[PriceRecord])
async def list_stored_prices(
    symbol: Optional[str] = Query(None, description="Filter by ticker symbol"),
    limit: int = Query(200, ge=1, le=1000, description="Maximum number of records to return"),
    svc: CryptoPriceService = Depends(get_service),
) -> List[PriceRecord]:
    symbols = [symbol] if symbol else None
    return await svc.load_prices(symbols=symbols, limit=limit)


@app.get("/prices/history/{coin_id}", response_model=PriceRecord)
async def get_price_history(
    coin_id: str,
    days: int = Query(30, ge=1, description="Number of days of history"),
    svc: CryptoPriceService = Depends(get_service),
) -> PriceRecord:
    return await svc.get_price_history(coin_id, days)


@app.post("/update", response_model=UpdateSummary)
async def update_prices(
    coins: Optional[List[str]] = Query(None, description="Coin ids to fetch and store"),
    svc: CryptoPriceService = Depends(get_service),
) -> UpdateSummary:
    coin_ids = require_coins(coins)
    logger.info("Updating prices for coins: %s", ", ".join(coin_ids))
    return await svc.update_prices(coin_ids)


@app.get("/health", response_model=HealthReport)
async def health(svc: CryptoPriceService = Depends(get_service)) -> JSONResponse:
    report = await svc.health()
    status_code = 503 if report.status == "Unhealthy" else 200
    return JSONResponse(status_code=status_code, content=report.model_dump(mode="json"))


@app.get("/health/ping")
async def ping() -> dict:
    return {"status": "OK", "message": "API is running", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/health/database", response_model=HealthEntry)
async def health_database(svc: CryptoPriceService = Depends(get_service)) -> JSONResponse:
    entry = await svc.check_database()
    status_code = 200 if entry.status == "Healthy" else 503
    return JSONResponse(status_code=status_code, content=entry.model_dump(mode="json"))


@app.get("/health/ready", response_model=HealthEntry)
async def health_ready(svc: CryptoPriceService = Depends(get_service)) -> JSONResponse:
    """Readiness only depends on the database."""
    entry = await svc.check_database()
    status_code = 200 if entry.status == "Healthy" else 503
    return JSONResponse(status_code=status_code, content=entry.model_dump(mode="json"))


@app.get("/health/live", response_model=HealthEntry)
async def health_live() -> HealthEntry:
    return HealthEntry(status="Healthy", description="Process is alive")
