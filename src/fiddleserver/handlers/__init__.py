"""Request handlers for sandbox assets, pages and gists."""

from .assets import AssetHandler, content_headers
from .gist import GistFetcher, GistFile, GistResponse
from .pages import TemplateRenderer

__all__ = [
    "AssetHandler",
    "GistFetcher",
    "GistFile",
    "GistResponse",
    "TemplateRenderer",
    "content_headers",
]
