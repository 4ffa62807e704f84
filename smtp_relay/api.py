"""
FastAPI application factory for the SMTP relay.

The module exposes a `create_app` function that builds the HTTP surface:

- ``GET /`` documentation and demo page
- ``POST /send-mail`` relays one message through caller-supplied credentials
- ``GET /health`` liveness probe
- ``GET /metrics`` Prometheus counters

Every response goes through the body size limit, CORS and security header
middleware. Only ``/send-mail`` is rate limited, per client address.
"""

from __future__ import annotations

import json
import secrets
from typing import Any, AsyncContextManager, Callable, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import ValidationError

from . import __version__
from .dispatcher import MailDispatcher
from .docs_page import render_docs_page
from .errors import BadRequest, RelayError, TooManyRequests, Unauthorized
from .logger import get_logger
from .middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware, content_security_policy
from .models import ErrorResponse, SendMailRequest, SendMailResponse
from .prometheus import RelayMetrics
from .rate_limit import InMemoryCounterStore, RateLimiter
from .settings import RelaySettings
from .validation import require_sections, validate_send_request

SUCCESS_MESSAGE = "Email sent successfully"

logger = get_logger("SmtpRelay.api")


def client_identity(request: Request, trust_proxy: bool = False) -> str:
    """Return the key used to rate limit ``request``.

    With ``trust_proxy`` the left-most ``X-Forwarded-For`` address wins,
    otherwise the peer address of the connection is used.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is None:
        return "unknown"
    return request.client.host


async def read_send_request(request: Request) -> SendMailRequest:
    """Parse the request body into a :class:`SendMailRequest`.

    Bodies that are not ``application/json`` and JSON values that are not
    objects are read as an empty payload, so they fail the presence checks.
    Those checks run on the raw JSON, before the schema sees any field type.

    Raises:
        BadRequest: For undecodable JSON, missing sections or values of the
            wrong type.
    """
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    data: Any = {}
    if media_type == "application/json":
        raw = await request.body()
        if raw.strip():
            try:
                data = json.loads(raw)
            except ValueError as exc:
                raise BadRequest("Malformed JSON body") from exc
    if not isinstance(data, dict):
        data = {}
    sections = require_sections(data)
    try:
        return SendMailRequest.model_validate(sections)
    except ValidationError as exc:
        logger.info("Invalid /send-mail payload: %d field error(s)", exc.error_count())
        raise BadRequest("Invalid request payload") from exc


def create_app(
    settings: RelaySettings | None = None,
    dispatcher: MailDispatcher | None = None,
    rate_limiter: RateLimiter | None = None,
    metrics: RelayMetrics | None = None,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings:
        Runtime configuration; defaults to :class:`RelaySettings` defaults.
    dispatcher:
        The :class:`MailDispatcher` performing SMTP delivery. Tests pass one
        built around an SMTP double.
    rate_limiter:
        Limiter guarding ``/send-mail``. Defaults to an in-memory store using
        the window and threshold from ``settings``.
    metrics:
        Prometheus counters; a private registry is created when omitted.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    settings = settings or RelaySettings()
    dispatcher = dispatcher or MailDispatcher(timeout=settings.smtp_timeout)
    rate_limiter = rate_limiter or RateLimiter(
        InMemoryCounterStore(),
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    metrics = metrics or RelayMetrics()

    api = FastAPI(
        title="SMTP Relay",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    api.state.settings = settings
    api.state.dispatcher = dispatcher
    api.state.rate_limiter = rate_limiter
    api.state.metrics = metrics

    # Outermost last: security headers wrap CORS, which wraps the size limit.
    api.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.add_middleware(SecurityHeadersMiddleware)

    @api.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        """Render a :class:`RelayError` as its JSON payload and status."""
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.payload, headers=exc.headers)

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        """Count the request against its client and refuse it past the limit."""
        decision = await rate_limiter.hit(client_identity(request, settings.trust_proxy))
        if not decision.allowed:
            metrics.inc_rate_limited()
            exc = TooManyRequests(decision.reset_after)
            exc.headers.update(decision.headers())
            raise exc
        response.headers.update(decision.headers())

    @api.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def docs_page():
        """Serve the documentation page with a CSP nonce for its demo script."""
        nonce = secrets.token_urlsafe(16)
        html = render_docs_page(
            nonce=nonce,
            allowed_ports=settings.allowed_ports,
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        return HTMLResponse(html, headers={"Content-Security-Policy": content_security_policy(nonce)})

    @api.get("/health")
    async def health() -> Dict[str, str]:
        """Liveness probe; does not touch SMTP."""
        return {"status": "ok"}

    @api.get("/metrics")
    async def prometheus_metrics():
        """Expose Prometheus metrics collected by the relay."""
        return Response(content=metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    @api.post(
        "/send-mail",
        response_model=SendMailResponse,
        responses={
            400: {"model": ErrorResponse},
            401: {"model": ErrorResponse},
            413: {"model": ErrorResponse},
            429: {"model": ErrorResponse},
        },
        dependencies=[Depends(enforce_rate_limit)],
    )
    async def send_mail(request: Request) -> SendMailResponse:
        """Validate the payload and relay one email through the caller's SMTP server."""
        try:
            payload = await read_send_request(request)
            smtp, mail = validate_send_request(payload, settings.allowed_ports)
            await dispatcher.send_mail(smtp, mail)
        except BadRequest as exc:
            metrics.inc_rejected(exc.message)
            raise
        except Unauthorized:
            metrics.inc_failed()
            raise
        metrics.inc_sent()
        return SendMailResponse(success=True, message=SUCCESS_MESSAGE)

    return api
