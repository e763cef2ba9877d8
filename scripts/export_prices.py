from __future__ import annotations

import argparse
import logging
from pathlib import Path

from cryptomonitor.config import settings
from cryptomonitor.logging_config import setup_logging
from cryptomonitor.storage import SqlPriceStore

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export stored price records to CSV.")
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.data_dir / "export" / "crypto_prices.csv",
        help="Destination CSV path (directories will be created).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    store = SqlPriceStore(settings.database_url)
    store.create_schema()
    rows = store.export_csv(args.output)
    logger.info("Export complete: %s rows -> %s", rows, args.output)


if __name__ == "__main__":
    setup_logging(settings.log_level)
    main()
