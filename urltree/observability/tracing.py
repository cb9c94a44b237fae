"""Tracing helpers for upstream fetches and rebuilds."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bound_contextvars


def _logger() -> structlog.stdlib.BoundLogger:
    return structlog.get_logger("urltree.trace")


@contextlib.contextmanager
def span(*, name: str, url: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    with bound_contextvars(span=name):
        try:
            yield
        finally:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            _logger().info("trace_span", url=url, elapsed_ms=elapsed_ms)


def log_fetch_result(*, url: str, status: int, bytes_read: int, elapsed_ms: int) -> None:
    _logger().info(
        "fetch_result",
        url=url,
        status=status,
        bytes=bytes_read,
        elapsed_ms=elapsed_ms,
    )
