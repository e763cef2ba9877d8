from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import List, Optional

from cryptomonitor.config import settings
from cryptomonitor.ingestion.pipeline import build_service
from cryptomonitor.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch current prices once and store them in the database.")
    parser.add_argument(
        "--coins",
        nargs="+",
        default=settings.default_coins,
        help="Coin ids to update (default: DEFAULT_COINS from the environment).",
    )
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    service = build_service()
    service.store.create_schema()
    summary = await service.update_prices(args.coins)
    logger.info("Update summary: %s", summary.model_dump())
    print(json.dumps(summary.model_dump(), indent=2, default=str))


if __name__ == "__main__":
    setup_logging(settings.log_level, settings.log_dir)
    asyncio.run(main())
