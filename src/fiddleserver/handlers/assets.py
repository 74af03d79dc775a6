"""Serves individual files of a sandbox version."""

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

from ..results import HandlerResponse, HandlerResult, NotFound
from ..storage import FileContent, SandboxRegistry

logger = logging.getLogger(__name__)


def http_date(value: datetime) -> str:
    """RFC 7231 HTTP-date; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def content_headers(content: FileContent) -> dict[str, str]:
    """Response headers for the metadata fields the store actually returned."""
    headers: dict[str, Optional[str]] = {
        "Content-Type": content.content_type,
        "Content-Length": (
            str(content.content_length) if content.content_length is not None else None
        ),
        "Last-Modified": (
            http_date(content.last_modified)
            if content.last_modified is not None
            else None
        ),
        "ETag": content.etag,
    }
    return {name: value for name, value in headers.items() if value}


class AssetHandler:
    """Maps ``(version, path)`` to the stored file."""

    def __init__(self, registry: SandboxRegistry):
        self.registry = registry

    def serve(self, version: str, path: str) -> HandlerResult:
        reader = self.registry.reader(version)
        if reader is None:
            return NotFound(f"Unknown sandbox version: {version}")

        content = reader.get(path)
        if content is None:
            logger.debug(f"Missing file {path!r} in sandbox {version}")
            return NotFound(f"No such file in sandbox {version}: {path}")

        return HandlerResponse(body=content.body, headers=content_headers(content))
