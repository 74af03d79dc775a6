"""Storage module for sandbox bundles."""

from .objects import FileContent, ObjectStore, ObjectStoreUnavailable, S3ObjectStore
from .registry import CachedObjectReader, RegistryError, SandboxRegistry, latest_version

__all__ = [
    "CachedObjectReader",
    "FileContent",
    "ObjectStore",
    "ObjectStoreUnavailable",
    "RegistryError",
    "S3ObjectStore",
    "SandboxRegistry",
    "latest_version",
]
