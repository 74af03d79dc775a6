"""Anti-forgery token access for rendered pages."""

from typing import Any, Protocol

from markupsafe import Markup, escape

from .middleware import mint_token

FIELD_NAME = "__anti-forgery-token"


class TokenProvider(Protocol):
    """Supplies the anti-forgery token for the current request."""

    def current_token(self, request: Any) -> str:
        ...


class SessionTokenProvider:
    """Reads the token stored on the request by ``AntiForgeryMiddleware``."""

    def current_token(self, request: Any) -> str:
        token = getattr(request.state, "anti_forgery_token", None)
        if token is None:
            token = mint_token()
            request.state.anti_forgery_token = token
        return token


def anti_forgery_field(token: str) -> Markup:
    """Hidden form field carrying the token."""
    return Markup(
        f'<input id="{FIELD_NAME}" name="{FIELD_NAME}" type="hidden" value="{escape(token)}">'
    )
