"""Tests for the HTTP routes."""

import httpx
import pytest
from fastapi.testclient import TestClient

from fiddleserver.config import FiddleConfig
from fiddleserver.server import build_context, create_app


def gist_api(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/gists/abc":
        return httpx.Response(200, json={"files": {
            "README.md": {"content": "# hi", "truncated": False, "raw_url": "https://x/r"},
            "core.cljs": {"content": "(ns core)", "truncated": False, "raw_url": "https://x/c"},
        }})
    return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def client(registry):
    config = FiddleConfig()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(gist_api))
    app = create_app(config, context=build_context(config, registry, http_client))
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
        test_client.portal.call(http_client.aclose)


class TestPages:
    """Tests for the page routes."""

    def test_root_renders_latest(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'data-version="2.0"' in response.text

    def test_sandbox_version(self, client):
        response = client.get("/sandbox/1.0")

        assert response.status_code == 200
        assert 'data-version="1.0"' in response.text

    def test_gist_page(self, client):
        response = client.get("/gist/abc")

        assert response.status_code == 200
        assert '"gist_id": "abc"' in response.text
        assert 'data-version="2.0"' in response.text

    def test_gist_page_with_version(self, client):
        response = client.get("/gist/1.0/abc")

        assert response.status_code == 200
        assert '"gist_id": "abc"' in response.text
        assert 'data-version="1.0"' in response.text

    def test_unknown_version(self, client):
        assert client.get("/sandbox/9.9").status_code == 404
        assert client.get("/gist/9.9/abc").status_code == 404

    def test_anti_forgery_cookie(self, client):
        """Test the page token matches the cookie handed to the browser."""
        response = client.get("/")

        token = response.cookies["anti-forgery-token"]
        assert f'value="{token}"' in response.text

    def test_anti_forgery_cookie_reused(self, client):
        client.cookies.set("anti-forgery-token", "existing")

        response = client.get("/")

        assert 'value="existing"' in response.text
        assert "anti-forgery-token" not in response.cookies


class TestAssets:
    """Tests for the asset route."""

    def test_serves_file_with_metadata(self, client):
        response = client.get("/sandbox/1.0/js/main.js")

        assert response.status_code == 200
        assert response.content == b"console.log('1.0');"
        assert response.headers["content-type"] == "application/javascript"
        assert response.headers["etag"] == '"abc123"'
        assert response.headers["last-modified"] == "Mon, 15 Jan 2024 10:30:00 GMT"

    def test_absent_metadata_not_emitted(self, client):
        response = client.get("/sandbox/2.0/js/main.js")

        assert response.status_code == 200
        assert "etag" not in response.headers
        assert "last-modified" not in response.headers

    def test_missing_file(self, client):
        assert client.get("/sandbox/1.0/nope.js").status_code == 404

    def test_unknown_version(self, client):
        assert client.get("/sandbox/9.9/js/main.js").status_code == 404


class TestGistApi:
    """Tests for the gist source route."""

    def test_returns_source(self, client):
        response = client.get("/api/v1/gist/abc")

        assert response.status_code == 200
        assert response.text == "(ns core)"
        assert response.headers["content-type"].startswith("text/plain")

    def test_upstream_status_propagated(self, client):
        response = client.get("/api/v1/gist/missing")

        assert response.status_code == 404
        assert response.content == b""


class TestSite:
    """Tests for site-wide behaviour."""

    def test_security_headers(self, client):
        response = client.get("/sandbox/1.0/js/main.js")

        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["x-content-type-options"] == "nosniff"

    def test_trailing_slash_redirect(self, client):
        response = client.get("/sandbox/1.0/?x=1")

        assert response.status_code == 301
        assert response.headers["location"].endswith("/sandbox/1.0?x=1")

    def test_unknown_path(self, client):
        assert client.get("/nope").status_code == 404

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "fiddleserver", "latest": "2.0"}
