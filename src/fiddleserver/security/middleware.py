"""Site middleware for the fiddleserver HTTP app.

Implements:
- Default security headers
- Anti-forgery token minting
- Trailing-slash redirects
- Response compression
"""

import secrets
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import RedirectResponse

from ..config import FiddleConfig

# Security headers added to all responses
SECURITY_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
}

ANTI_FORGERY_COOKIE = "anti-forgery-token"


def mint_token() -> str:
    """Create a fresh anti-forgery token."""
    return secrets.token_urlsafe(48)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        return response


class AntiForgeryMiddleware(BaseHTTPMiddleware):
    """Middleware that gives every request an anti-forgery token.

    The token is kept in a cookie so that a browser session sees a stable
    value across page loads.
    """

    def __init__(self, app, cookie_name: str = ANTI_FORGERY_COOKIE):
        super().__init__(app)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        token = request.cookies.get(self.cookie_name)
        minted = not token
        if minted:
            token = mint_token()
        request.state.anti_forgery_token = token

        response = await call_next(request)

        if minted:
            response.set_cookie(
                self.cookie_name,
                token,
                httponly=True,
                samesite="lax",
            )
        return response


class TrailingSlashRedirectMiddleware(BaseHTTPMiddleware):
    """Redirect ``/some/path/`` to ``/some/path``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if request.method in ("GET", "HEAD") and path != "/" and path.endswith("/"):
            url = request.url.replace(path=path.rstrip("/") or "/")
            return RedirectResponse(url=str(url), status_code=301)

        return await call_next(request)


def add_site_middleware(app: FastAPI, config: FiddleConfig) -> None:
    """Add all site middleware to a FastAPI app.

    Args:
        app: FastAPI application
        config: Server configuration (compression threshold)
    """
    # Compression is outermost so it sees the final response
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AntiForgeryMiddleware)
    app.add_middleware(TrailingSlashRedirectMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=config.server.gzip_min_size)
