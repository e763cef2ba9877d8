"""Lightweight span capability injected into the fetcher, store and service.

Components only talk to the ``Observer`` protocol, so tests can swap in a
recording observer and production code can log span summaries without a
tracing backend.
"""
from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ContextManager, Dict, Iterator, Optional, Protocol

logger = logging.getLogger(__name__)


class Observer(Protocol):
    def span(self, name: str) -> ContextManager["Span"]: ...


@dataclass(slots=True)
class Span:
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    status: str = "ok"
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: Optional[float] = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def record_error(self, exc: BaseException) -> None:
        self.status = "error"
        self.attributes["error.type"] = type(exc).__name__
        self.attributes["error.message"] = str(exc)
        self.attributes["error.stacktrace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000


class LoggingObserver:
    """Emits one DEBUG line per finished span."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    @contextmanager
    def span(self, name: str) -> Iterator[Span]:
        current = Span(name=name)
        try:
            yield current
        except Exception as exc:
            if current.status != "error":
                current.record_error(exc)
            raise
        finally:
            current.ended_at = time.perf_counter()
            attributes = {k: v for k, v in current.attributes.items() if k != "error.stacktrace"}
            self.log.debug(
                "span %s finished status=%s duration_ms=%.1f attributes=%s",
                current.name,
                current.status,
                current.duration_ms,
                attributes,
            )


class NullObserver:
    @contextmanager
    def span(self, name: str) -> Iterator[Span]:
        yield Span(name=name)
