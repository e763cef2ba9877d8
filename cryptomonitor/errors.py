from __future__ import annotations


class CryptoMonitorError(Exception):
    """Base class for errors raised by the price workflow."""


class InvalidArgument(CryptoMonitorError, ValueError):
    """Caller supplied unusable input, e.g. an empty coin list."""


class UpstreamUnavailable(CryptoMonitorError):
    """The market-data API could not be reached or returned an unusable answer."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(CryptoMonitorError):
    """A batch of price records could not be written."""


class FeatureNotImplemented(CryptoMonitorError, NotImplementedError):
    pass
