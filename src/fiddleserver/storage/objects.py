"""Object store access for published sandbox bundles."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class ObjectStoreUnavailable(Exception):
    """The object store could not be reached (transport failure, timeout)."""


@dataclass(frozen=True)
class FileContent:
    """A fetched object: body plus whatever metadata the store returned."""

    body: bytes
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


class ObjectStore(Protocol):
    """Minimal key/value blob store used by the registry."""

    def list_prefixes(self, bucket: str, delimiter: str = "/") -> list[str]:
        ...

    def get_object(self, bucket: str, key: str) -> Optional[FileContent]:
        ...


class S3ObjectStore:
    """S3-backed object store.

    Retries are disabled: a failed call is reported to the caller as-is.
    """

    def __init__(
        self,
        region: str,
        connect_timeout: int = 5,
        read_timeout: int = 10,
        client=None,
    ):
        self.region = region
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"total_max_attempts": 1},
            ),
        )

    def list_prefixes(self, bucket: str, delimiter: str = "/") -> list[str]:
        """List the top-level common prefixes under a bucket."""
        prefixes = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Delimiter=delimiter):
            for common in page.get("CommonPrefixes", []):
                prefixes.append(common["Prefix"])
        return prefixes

    def get_object(self, bucket: str, key: str) -> Optional[FileContent]:
        """Fetch an object, or None when the store reports an error for it.

        Raises:
            ObjectStoreUnavailable: the store could not be reached at all.
        """
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            body = response["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.debug(f"s3://{bucket}/{key}: {code}")
            return None
        except BotoCoreError as e:
            raise ObjectStoreUnavailable(f"s3://{bucket}/{key}: {e}") from e

        return FileContent(
            body=body,
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
        )
