from __future__ import annotations

import uvicorn

from cryptomonitor.config import settings


def main() -> None:
    uvicorn.run("cryptomonitor.api.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
