"""Shared fixtures for fiddleserver tests."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from fiddleserver.storage import FileContent, ObjectStoreUnavailable, SandboxRegistry

INDEX_TEMPLATE = (
    b"<html><body data-version=\"{{sandbox-version}}\">"
    b"{{anti-forgery|safe}}"
    b"<script>var opts = {{opts|json|safe}};</script>"
    b"</body></html>"
)


class FakeObjectStore:
    """In-memory object store that records every request."""

    def __init__(self, objects: dict[str, FileContent], prefixes: Optional[list[str]] = None):
        self.objects = objects
        self.prefixes = prefixes
        self.get_calls: list[tuple[str, str]] = []
        self.unavailable = False

    def list_prefixes(self, bucket: str, delimiter: str = "/") -> list[str]:
        if self.prefixes is not None:
            return list(self.prefixes)
        tops = []
        for key in self.objects:
            top = key.split(delimiter, 1)[0] + delimiter
            if top not in tops:
                tops.append(top)
        return tops

    def get_object(self, bucket: str, key: str) -> Optional[FileContent]:
        self.get_calls.append((bucket, key))
        if self.unavailable:
            raise ObjectStoreUnavailable(key)
        return self.objects.get(key)


class FakeRequest:
    """Stand-in for a Starlette request; only ``state`` is used."""

    def __init__(self, token: Optional[str] = "test-token"):
        self.state = type("State", (), {})()
        if token is not None:
            self.state.anti_forgery_token = token


@pytest.fixture
def objects():
    """Two published versions with an index page and a script."""
    return {
        "1.0/index.html": FileContent(body=INDEX_TEMPLATE, content_type="text/html"),
        "1.0/js/main.js": FileContent(
            body=b"console.log('1.0');",
            content_type="application/javascript",
            content_length=19,
            last_modified=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            etag='"abc123"',
        ),
        "2.0/index.html": FileContent(body=INDEX_TEMPLATE, content_type="text/html"),
        "2.0/js/main.js": FileContent(body=b"console.log('2.0');"),
    }


@pytest.fixture
def store(objects):
    return FakeObjectStore(objects)


@pytest.fixture
def registry(store):
    return SandboxRegistry.from_store(store, "sandboxes")
