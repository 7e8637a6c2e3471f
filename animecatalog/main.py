"""Anime catalog API — FastAPI application entry point.

Read-only catalog endpoints behind an edge gate. Every request passes
method, bot, origin and rate-limit checks before any route runs; episode
links additionally require a fresh signature.
"""

import logging
import re
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from animecatalog.catalog import repository
from animecatalog.catalog.database import close_db, get_db, init_db
from animecatalog.catalog.models import SearchFilters
from animecatalog.config.settings import get_settings
from animecatalog.kvstore.factory import close_kv_store, get_kv_store
from animecatalog.logging.audit import (
    RequestTimer,
    generate_request_id,
    log_event,
    request_id_var,
    setup_logging,
)
from animecatalog.security.errors import InternalError, MalformedRequest, NotFound, RequestRejected
from animecatalog.security.gate import RequestGate
from animecatalog.security.ratelimit import RateLimiter
from animecatalog.security.signature import check_signed_request

VERSION = "1.0.0"

SECURITY_HEADERS = {
    "Cache-Control": "no-store",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}

_DIGITS_RE = re.compile(r"[0-9]+")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    if not get_settings().api_secret:
        log_event(logging.WARNING, "API_SECRET is empty; episode signatures can be forged")
    await init_db()
    log_event(logging.INFO, "Catalog API started", version=VERSION)
    yield
    await close_kv_store()
    await close_db()
    log_event(logging.INFO, "Catalog API stopped")


app = FastAPI(
    title="Anime Catalog API",
    description="Read-only anime catalog with signed episode links",
    version=VERSION,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    redirect_slashes=False,
)


def build_gate() -> RequestGate:
    settings = get_settings()
    limiter = RateLimiter(
        get_kv_store(),
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        key_prefix=settings.rate_limit_key_prefix,
    )
    return RequestGate.from_settings(settings, limiter)


def _rejection_response(error: RequestRejected) -> Response:
    return PlainTextResponse(error.message, status_code=error.status_code)


@app.middleware("http")
async def edge_gate(request: Request, call_next):
    """Gate every request, then apply security headers to whatever goes out.

    Any exception escaping the gate or a route becomes a bare 500.
    """
    rid = generate_request_id()
    request_id_var.set(rid)

    client_ip = "unknown"
    try:
        with RequestTimer() as timer:
            gate = build_gate()
            client_ip = gate.identity(request.headers)
            decision = await gate.evaluate(request.method, request.headers)
            if decision.allowed:
                response = await call_next(request)
            else:
                log_event(
                    logging.WARNING,
                    "Request rejected at gate",
                    client_ip=client_ip,
                    method=request.method,
                    path=request.url.path,
                    status=decision.status_code,
                    reason=decision.reason,
                )
                response = _rejection_response(decision.error)
    except Exception:
        log_event(
            logging.ERROR,
            "Unhandled error",
            exc_info=True,
            client_ip=client_ip,
            path=request.url.path,
        )
        response = _rejection_response(InternalError())
    else:
        log_event(
            logging.INFO,
            "Request completed",
            client_ip=client_ip,
            path=request.url.path,
            status=response.status_code,
            latency_ms=timer.elapsed_ms,
        )

    response.headers.update(SECURITY_HEADERS)
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(RequestRejected)
async def request_rejected_handler(request: Request, exc: RequestRejected):
    log_event(
        logging.WARNING,
        "Request rejected",
        path=request.url.path,
        status=exc.status_code,
        reason=exc.message,
    )
    return _rejection_response(exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Unmatched paths: keep the plain-text error format
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def _parse_page(raw: str | None) -> int:
    """Page number from the query string. Missing or non-numeric means page 1."""
    try:
        page = int(raw) if raw is not None else 1
    except ValueError:
        page = 1
    return max(page, 1)


def _query_value(request: Request, name: str) -> str:
    return (request.query_params.get(name) or "").strip()


@app.get("/api/anime")
async def list_anime(request: Request, session: AsyncSession = Depends(get_db)):
    """Paginated catalog listing."""
    settings = get_settings()
    page = _parse_page(request.query_params.get("page"))
    rows = await repository.list_anime(session, page, settings.page_size)
    return JSONResponse(rows)


@app.get("/api/search")
async def search_anime(request: Request, session: AsyncSession = Depends(get_db)):
    """Search by title/id substring, type, year and tag. At least one filter is required."""
    raw_year = _query_value(request, "year")
    filters = SearchFilters(
        q=_query_value(request, "q"),
        type=_query_value(request, "type").lower(),
        tag=_query_value(request, "tag").lower(),
    )
    if raw_year:
        if not _DIGITS_RE.fullmatch(raw_year):
            raise MalformedRequest("Invalid Year")
        filters.year = int(raw_year)
    if filters.empty:
        raise MalformedRequest("Empty Search")

    settings = get_settings()
    page = _parse_page(request.query_params.get("page"))
    rows = await repository.search_anime(session, filters, page, settings.page_size)
    return JSONResponse(rows)


@app.get("/api/anime/{rest:path}")
async def get_anime(rest: str, session: AsyncSession = Depends(get_db)):
    """Single anime with tags and social links."""
    parts = rest.split("/")
    if len(parts) != 1 or not parts[0]:
        raise MalformedRequest("Invalid Request")

    detail = await repository.get_anime_detail(session, parts[0])
    if detail is None:
        raise NotFound()
    return JSONResponse(detail)


@app.get("/api/episode/{rest:path}")
async def get_episode(rest: str, request: Request, session: AsyncSession = Depends(get_db)):
    """Stream and download links for one episode, behind a signed link."""
    settings = get_settings()

    parts = rest.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedRequest("Invalid Episode Request")

    anime_id, raw_number = parts
    if not _DIGITS_RE.fullmatch(raw_number):
        raise MalformedRequest("Invalid Episode Number")
    number = int(raw_number)
    if number < 1 or number > settings.max_episode_number:
        raise MalformedRequest("Invalid Episode Number")

    check_signed_request(
        anime_id,
        number,
        request.query_params.get("ts"),
        request.query_params.get("sig"),
        settings.api_secret,
        max_age=settings.signature_max_age_seconds,
    )

    links = await repository.get_episode_links(session, anime_id, number)
    if links is None:
        raise NotFound("Episode Not Found")
    return JSONResponse(links.to_dict())
