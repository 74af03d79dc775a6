"""Registry of published sandbox versions and their file readers."""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..cache import MemoCache
from .objects import FileContent, ObjectStore, ObjectStoreUnavailable

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """The set of sandbox versions could not be enumerated."""


class CachedObjectReader:
    """Reads files of one sandbox version, fetching each path at most once."""

    def __init__(self, store: ObjectStore, bucket: str, version: str):
        self.store = store
        self.bucket = bucket
        self.version = version
        self._cache: MemoCache[Optional[FileContent]] = MemoCache()

    def key_for(self, path: str) -> str:
        return f"{self.version}/{path}"

    def get(self, path: str) -> Optional[FileContent]:
        """Return the file at ``path`` within this version, or None."""
        try:
            return self._cache.get_or_compute(
                path, lambda: self.store.get_object(self.bucket, self.key_for(path))
            )
        except ObjectStoreUnavailable as e:
            # Not memoized, the next request tries again
            logger.warning(f"Object store unavailable: {e}")
            return None


def latest_version(versions) -> Optional[str]:
    """The default version: the lexicographically greatest identifier."""
    return max(versions, default=None)


class SandboxRegistry:
    """Immutable mapping of version id to reader, built once at startup."""

    def __init__(self, readers: Mapping[str, CachedObjectReader]):
        self._readers = MappingProxyType(dict(readers))
        self._latest = latest_version(self._readers)

    @classmethod
    def from_store(cls, store: ObjectStore, bucket: str) -> "SandboxRegistry":
        """Enumerate the bucket's top-level prefixes as sandbox versions.

        Raises:
            RegistryError: the bucket could not be listed.
        """
        try:
            prefixes = store.list_prefixes(bucket, delimiter="/")
        except (ClientError, BotoCoreError, ObjectStoreUnavailable) as e:
            raise RegistryError(f"Could not list sandboxes in bucket {bucket!r}: {e}") from e

        readers = {}
        for prefix in prefixes:
            version = prefix.rstrip("/")
            readers[version] = CachedObjectReader(store, bucket, version)

        registry = cls(readers)
        logger.info(
            f"Loaded {len(registry)} sandbox versions from {bucket!r} (latest: {registry.latest})"
        )
        return registry

    @property
    def readers(self) -> Mapping[str, CachedObjectReader]:
        return self._readers

    @property
    def versions(self) -> list[str]:
        return sorted(self._readers)

    @property
    def latest(self) -> Optional[str]:
        return self._latest

    def reader(self, version: str) -> Optional[CachedObjectReader]:
        return self._readers.get(version)

    def __contains__(self, version: str) -> bool:
        return version in self._readers

    def __len__(self) -> int:
        return len(self._readers)
