from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _split_csv(raw: str) -> List[str]:
    return [token.strip() for token in raw.split(",") if token.strip()]


@dataclass(slots=True)
class Settings:
    """Central configuration driven by environment variables."""

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8080"))
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))

    coingecko_base_url: str = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
    user_agent: str = os.getenv("USER_AGENT", "CryptoMonitor/1.0")

    data_dir: Path = field(default_factory=lambda: Path(os.getenv("DATA_DIR", "./data")))
    database_url_raw: str | None = os.getenv("DATABASE_URL")

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir: Path = field(default_factory=lambda: Path(os.getenv("LOG_DIR", "./logs")))

    mock_fallback_enabled: bool = _env_flag("MOCK_FALLBACK_ENABLED", "true")
    mock_seed: int | None = _env_int("MOCK_SEED")

    cors_origins_raw: str = os.getenv("CORS_ORIGINS", "http://localhost:4200")
    default_coins_raw: str = os.getenv("DEFAULT_COINS", "bitcoin,ethereum,cardano,solana")

    def ensure_paths(self) -> None:
        """Create expected directories if they do not exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / "export").mkdir(parents=True, exist_ok=True)

    @property
    def database_url(self) -> str:
        if self.database_url_raw:
            return self.database_url_raw
        return f"sqlite:///{(self.data_dir / 'cryptomonitor.db').as_posix()}"

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.cors_origins_raw)

    @property
    def default_coins(self) -> List[str]:
        return _split_csv(self.default_coins_raw)


# Singleton-style settings import
settings: Final[Settings] = Settings()
settings.ensure_paths()
