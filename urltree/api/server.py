"""HTTP surface serving the cached tree."""
from __future__ import annotations

import contextlib
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from urltree.cache.manager import TreeCache
from urltree.errors import UrlTreeError

LOGGER = structlog.get_logger(__name__)


class TabIndentedJSONResponse(JSONResponse):
    """JSON body indented with tabs, non-ASCII names left unescaped."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, indent="\t", ensure_ascii=False).encode("utf-8")


def create_app(
    cache: TreeCache,
    *,
    background_refresh: bool = True,
    on_shutdown: Sequence[Callable[[], Awaitable[None]]] = (),
) -> FastAPI:
    """Build the application around ``cache``.

    With ``background_refresh`` the refresher runs for the lifetime of the app;
    ``on_shutdown`` callbacks close upstream resources once it has stopped.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            if background_refresh:
                async with cache.running():
                    yield
            else:
                yield
        finally:
            for callback in on_shutdown:
                await callback()

    app = FastAPI(title="urltree", lifespan=lifespan)
    app.state.cache = cache

    @app.exception_handler(UrlTreeError)
    async def _handle_rebuild_error(request: Request, exc: UrlTreeError) -> JSONResponse:
        LOGGER.warning(
            "rebuild_failed",
            path=request.url.path,
            kind=type(exc).__name__,
            status=exc.status_code,
            error=str(exc),
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.get("/api/files", response_class=TabIndentedJSONResponse)
    async def get_files() -> TabIndentedJSONResponse:
        """Return the directory tree built from the upstream feed."""
        tree = await cache.get()
        return TabIndentedJSONResponse(content=tree)

    return app
