"""Fetches gist source code from the remote gist API."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

import httpx

from ..cache import TTLCache
from ..config import GistConfig
from ..results import HandlerResponse, HandlerResult, NotFound, UpstreamError

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github+json"


@dataclass(frozen=True)
class GistFile:
    """One file of a gist as described by the API."""

    filename: str
    content: Optional[str] = None
    truncated: bool = False
    raw_url: Optional[str] = None

    @classmethod
    def from_dict(cls, filename: str, data: dict[str, Any]) -> "GistFile":
        return cls(
            filename=filename,
            content=data.get("content"),
            truncated=bool(data.get("truncated", False)),
            raw_url=data.get("raw_url"),
        )


@dataclass(frozen=True)
class GistResponse:
    """Status and files of a gist metadata request."""

    status_code: int
    # Insertion order follows the API response
    files: dict[str, GistFile] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, status_code: int, payload: Any) -> "GistResponse":
        files = {}
        raw_files = payload.get("files") if isinstance(payload, dict) else None
        for filename, data in (raw_files or {}).items():
            if isinstance(data, dict):
                files[filename] = GistFile.from_dict(filename, data)
        return cls(status_code=status_code, files=files)

    def select_file(self, extension: str) -> Optional[GistFile]:
        """First file with the source extension, else the first file listed."""
        for filename, gist_file in self.files.items():
            if filename.endswith(extension):
                return gist_file
        return next(iter(self.files.values()), None)


class GistFetcher:
    """Loads the source of a gist, caching API metadata for a short window."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: GistConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.config = config
        self._cache: TTLCache[GistResponse] = TTLCache(ttl=config.cache_ttl, clock=clock)

    def gist_url(self, gist_id: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/gists/{gist_id}"

    async def fetch_metadata(self, gist_id: str) -> Union[GistResponse, UpstreamError]:
        """Get gist metadata, from cache when fetched within the TTL window."""
        cached = self._cache.get(gist_id)
        if cached is not None:
            logger.debug(f"Gist {gist_id} served from cache")
            return cached

        try:
            response = await self.client.get(
                self.gist_url(gist_id),
                headers={"Accept": GITHUB_ACCEPT},
                auth=self.config.credentials,
                timeout=self.config.timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException:
            logger.warning(f"Gist API timed out for {gist_id}")
            return UpstreamError(504, "Gist API timed out")
        except httpx.TransportError as e:
            logger.warning(f"Gist API unreachable for {gist_id}: {type(e).__name__}")
            return UpstreamError(502, "Gist API unreachable")

        if response.status_code == 200:
            try:
                payload = response.json()
            except ValueError:
                logger.warning(f"Gist API returned invalid JSON for {gist_id}")
                return UpstreamError(502, "Invalid gist API response")
        else:
            logger.info(f"Gist API returned {response.status_code} for {gist_id}")
            payload = None

        gist = GistResponse.from_payload(response.status_code, payload)
        self._cache.set(gist_id, gist)
        return gist

    async def fetch_raw(self, url: str) -> Union[str, NotFound, UpstreamError]:
        """Fetch the full content of a truncated file. Never cached."""
        try:
            response = await self.client.get(
                url, timeout=self.config.timeout, follow_redirects=True
            )
        except httpx.TimeoutException:
            logger.warning(f"Raw gist fetch timed out: {url}")
            return UpstreamError(504, "Raw gist fetch timed out")
        except httpx.TransportError as e:
            logger.warning(f"Raw gist fetch failed: {url}: {type(e).__name__}")
            return UpstreamError(502, "Raw gist fetch failed")

        if response.status_code != 200:
            logger.info(f"Raw gist fetch returned {response.status_code}: {url}")
            return NotFound(f"Raw content unavailable: {url}")
        return response.text

    async def fetch(self, gist_id: str) -> HandlerResult:
        """Resolve a gist id to the text of its source file.

        Returns:
            HandlerResponse with the source as text/plain, UpstreamError when
            the API answered with a non-200 status, or NotFound
        """
        gist = await self.fetch_metadata(gist_id)
        if isinstance(gist, UpstreamError):
            return gist
        if gist.status_code != 200:
            return UpstreamError(gist.status_code)

        gist_file = gist.select_file(self.config.source_extension)
        if gist_file is None:
            return NotFound(f"Gist {gist_id} has no files")

        if gist_file.truncated:
            if not gist_file.raw_url:
                return NotFound(f"Gist file {gist_file.filename} is truncated without a raw URL")
            source = await self.fetch_raw(gist_file.raw_url)
            if isinstance(source, (NotFound, UpstreamError)):
                return source
        else:
            source = gist_file.content

        if source is None:
            return NotFound(f"Gist file {gist_file.filename} has no content")

        return HandlerResponse(body=source, media_type="text/plain")
