"""FastAPI front end rendering the poller's current snapshot."""

import base64
import logging
import secrets
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Protocol

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from hn_poller.models import Item

log = logging.getLogger("hn_poller")

TEMPLATES_DIR = Path(__file__).parent / "templates"
HN_ITEM_PAGE = "https://news.ycombinator.com/item?id={id}"


class ItemSource(Protocol):
    def items(self) -> dict[int, Item]: ...


def timeago(epoch: int, now: Optional[float] = None) -> str:
    """Format an epoch timestamp as '5 minutes ago'."""
    if not epoch:
        return "unknown"
    seconds = int((now if now is not None else time.time()) - epoch)
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'s' if n != 1 else ''} ago"
    return "just now"


def newest_first(items: dict[int, Item]) -> list[Item]:
    return sorted(items.values(), key=lambda i: (i.time, i.id), reverse=True)


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["timeago"] = timeago
templates.env.globals["hn_item_page"] = HN_ITEM_PAGE


class BasicAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        user = request.app.state.auth_user
        password = request.app.state.auth_pass
        # Skip auth if not configured
        if not user or not password:
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Basic "):
            try:
                credentials = base64.b64decode(auth_header[6:]).decode("utf-8")
                username, given = credentials.split(":", 1)
            except (ValueError, UnicodeDecodeError):
                username, given = "", ""
            # Constant-time comparison
            if secrets.compare_digest(username, user) and secrets.compare_digest(
                given, password
            ):
                return await call_next(request)

        return Response(
            content="Authentication required",
            status_code=401,
            headers={"WWW-Authenticate": 'Basic realm="HN Poller"'},
        )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Real client IP behind a reverse proxy
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "-"

        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        log.info(
            f'[http] {client_ip} "{request.method} {request.url.path}" {response.status_code} {duration_ms:.0f}ms'
        )
        return response


def create_app(
    poller: ItemSource,
    auth_user: Optional[str] = None,
    auth_pass: Optional[str] = None,
) -> FastAPI:
    """Build the web app around an explicit poller handle.

    If the poller has start()/stop() they are tied to the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        start = getattr(poller, "start", None)
        if start is not None:
            await start()
        log.info("Server ready")
        yield
        log.info("Shutting down...")
        stop = getattr(poller, "stop", None)
        if stop is not None:
            await stop()
        log.info("Shutdown complete")

    app = FastAPI(lifespan=lifespan)
    app.state.poller = poller
    app.state.auth_user = auth_user
    app.state.auth_pass = auth_pass

    app.add_middleware(BasicAuthMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        items = newest_first(request.app.state.poller.items())
        return templates.TemplateResponse(
            request, "index.html", {"items": items, "count": len(items)}
        )

    @app.get("/api/items")
    async def list_items(request: Request):
        items = newest_first(request.app.state.poller.items())
        return {"count": len(items), "items": [i.to_dict() for i in items]}

    @app.get("/api/items/{item_id}")
    async def get_item(request: Request, item_id: int):
        item = request.app.state.poller.items().get(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return item.to_dict()

    @app.get("/api/status")
    async def get_status(request: Request):
        status = getattr(request.app.state.poller, "status", None)
        if status is None:
            return {"items": len(request.app.state.poller.items())}
        return status()

    return app
