"""ASGI middleware applied in front of every route of the relay."""

from __future__ import annotations

from typing import Dict, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import PayloadTooLarge
from .logger import get_logger

DEFAULT_MAX_BODY_BYTES = 100 * 1024

logger = get_logger("SmtpRelay.middleware")

_CSP_DIRECTIVES = (
    ("default-src", "'self'"),
    ("base-uri", "'self'"),
    ("font-src", "'self' https: data:"),
    ("form-action", "'self'"),
    ("frame-ancestors", "'self'"),
    ("img-src", "'self' data:"),
    ("object-src", "'none'"),
    ("script-src", "'self'"),
    ("script-src-attr", "'none'"),
    ("style-src", "'self' https: 'unsafe-inline'"),
    ("upgrade-insecure-requests", ""),
)


def content_security_policy(script_nonce: Optional[str] = None) -> str:
    """Return the CSP header value, optionally allowing one inline script nonce."""
    parts = []
    for directive, value in _CSP_DIRECTIVES:
        if directive == "script-src" and script_nonce:
            value = f"{value} 'nonce-{script_nonce}'"
        parts.append(f"{directive} {value}".strip())
    return ";".join(parts)


SECURITY_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": content_security_policy(),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware:
    """Add the standard hardening headers to every HTTP response.

    Headers already set by a route (the documentation page sets its own CSP)
    are left untouched. The ``Server`` header is removed.
    """

    def __init__(self, app: ASGIApp, headers: Optional[Dict[str, str]] = None):
        self.app = app
        self.headers = dict(SECURITY_HEADERS if headers is None else headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    if name not in headers:
                        headers[name] = value
                if "server" in headers:
                    del headers["server"]
            await send(message)

        await self.app(scope, receive, send_with_headers)


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes`` with a 413.

    A declared ``Content-Length`` above the limit is refused before the
    application runs. Streamed bodies are counted while they are read and
    abort with :class:`~smtp_relay.errors.PayloadTooLarge` once they cross
    the limit.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.info("Rejected %s %s: body exceeds %d bytes", scope.get("method"), scope.get("path"), self.max_body_bytes)
        exc = PayloadTooLarge()
        response = JSONResponse(status_code=exc.status_code, content=exc.payload)
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise PayloadTooLarge()
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except PayloadTooLarge:
            if response_started:
                raise
            await self._reject(scope, receive, send)
