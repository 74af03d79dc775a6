"""Security module for fiddleserver."""

from .antiforgery import SessionTokenProvider, TokenProvider, anti_forgery_field
from .middleware import add_site_middleware

__all__ = [
    "SessionTokenProvider",
    "TokenProvider",
    "add_site_middleware",
    "anti_forgery_field",
]
