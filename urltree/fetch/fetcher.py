"""Read the upstream item feed and classify its failures."""
from __future__ import annotations

import time
from typing import List, Optional

import httpx
import orjson
import structlog
from pydantic import ValidationError

from urltree.errors import (
    UpstreamBadGateway,
    UpstreamError,
    UpstreamOther,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from urltree.fetch.session import UpstreamSession
from urltree.observability.metrics import MetricsRegistry
from urltree.observability.tracing import log_fetch_result, span
from urltree.tree.builder import build_tree
from urltree.tree.models import Item, ItemsPayload, TreeNode

LOGGER = structlog.get_logger(__name__)


def classify_status(status_code: int) -> type[UpstreamError]:
    """Map a non-success upstream status to the error kind reported to clients."""
    if status_code == httpx.codes.GATEWAY_TIMEOUT:
        return UpstreamTimeout
    if status_code == httpx.codes.BAD_GATEWAY:
        return UpstreamBadGateway
    return UpstreamOther


async def fetch_items(
    session: UpstreamSession,
    url: str,
    *,
    metrics: Optional[MetricsRegistry] = None,
) -> List[Item]:
    """Fetch the current flat item list. Performs a single attempt."""
    if metrics is not None:
        metrics.incr("upstream_requests")
    try:
        with span(name="fetch_items", url=url):
            start = time.perf_counter()
            response = await session.fetch(url)
    except httpx.TransportError as exc:
        raise UpstreamUnreachable(f"No response from {url}: {exc}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamOther(f"Request to {url} failed: {exc}") from exc

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_fetch_result(
        url=url,
        status=response.status_code,
        bytes_read=len(response.content or b""),
        elapsed_ms=elapsed_ms,
    )
    if metrics is not None:
        metrics.incr(f"http_{response.status_code // 100}xx")

    if not response.is_success:
        error_cls = classify_status(response.status_code)
        raise error_cls(f"Upstream {url} answered {response.status_code}")

    try:
        payload = ItemsPayload.model_validate(orjson.loads(response.content))
    except orjson.JSONDecodeError as exc:
        raise UpstreamOther(f"Upstream {url} returned invalid JSON: {exc}") from exc
    except ValidationError as exc:
        raise UpstreamOther(f"Upstream {url} returned an unexpected payload: {exc}") from exc
    LOGGER.debug("items_fetched", url=url, count=len(payload.items))
    return payload.items


async def fetch_tree(
    session: UpstreamSession,
    url: str,
    *,
    metrics: Optional[MetricsRegistry] = None,
) -> TreeNode:
    """Fetch the feed and fold it into a tree."""
    items = await fetch_items(session, url, metrics=metrics)
    return build_tree(items)
