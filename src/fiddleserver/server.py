"""HTTP application for fiddleserver."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool

from .config import FiddleConfig, get_config
from .handlers import AssetHandler, GistFetcher, TemplateRenderer
from .results import HandlerResult, NotFound, UpstreamError
from .security import SessionTokenProvider, add_site_middleware
from .storage import S3ObjectStore, SandboxRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    """Everything the route handlers need, built once at startup."""

    registry: SandboxRegistry
    assets: AssetHandler
    renderer: TemplateRenderer
    gists: GistFetcher


def build_context(
    config: FiddleConfig,
    registry: SandboxRegistry,
    http_client: httpx.AsyncClient,
) -> AppContext:
    """Wire the handlers around a registry and an outbound HTTP client."""
    return AppContext(
        registry=registry,
        assets=AssetHandler(registry),
        renderer=TemplateRenderer(registry, SessionTokenProvider()),
        gists=GistFetcher(http_client, config.gist),
    )


def load_registry(config: FiddleConfig) -> SandboxRegistry:
    """Connect to the object store and enumerate sandbox versions.

    Raises:
        ConfigError: storage settings are missing
        RegistryError: the bucket could not be listed
    """
    config.require_storage()
    store = S3ObjectStore(
        config.storage.region,
        connect_timeout=config.storage.connect_timeout,
        read_timeout=config.storage.read_timeout,
    )
    return SandboxRegistry.from_store(store, config.storage.bucket)


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the application context."""
    return request.app.state.context


def to_response(result: HandlerResult) -> Response:
    """Map a handler result onto an HTTP response."""
    if isinstance(result, NotFound):
        return Response(content=b"Not Found", status_code=404, media_type="text/plain")
    if isinstance(result, UpstreamError):
        return Response(content=b"", status_code=result.status_code)
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type=result.media_type,
    )


def create_app(
    config: FiddleConfig | None = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """Create the FastAPI application.

    When ``context`` is given it is used as-is; otherwise the registry and
    outbound HTTP client are built during startup.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context is not None:
            app.state.context = context
            yield
            return

        # Startup
        registry = await run_in_threadpool(load_registry, config)
        async with httpx.AsyncClient() as http_client:
            app.state.context = build_context(config, registry, http_client)
            logger.info(f"Serving {len(registry)} sandbox versions")
            yield
        # Shutdown: the outbound client is closed above

    app = FastAPI(
        title="fiddleserver",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    if context is not None:
        app.state.context = context

    add_site_middleware(app, config)

    @app.get("/health")
    async def health_check(ctx: AppContext = Depends(get_context)):
        """Health check endpoint."""
        return {"status": "healthy", "service": "fiddleserver", "latest": ctx.registry.latest}

    @app.get("/")
    def index(request: Request, ctx: AppContext = Depends(get_context)):
        """Latest sandbox."""
        return to_response(ctx.renderer.render(request))

    @app.get("/api/v1/gist/{gist_id}")
    async def load_gist(gist_id: str, ctx: AppContext = Depends(get_context)):
        """Source of a gist as plain text."""
        return to_response(await ctx.gists.fetch(gist_id))

    @app.get("/gist/{version}/{gist_id}")
    def gist_page_for_version(
        request: Request, version: str, gist_id: str, ctx: AppContext = Depends(get_context)
    ):
        """Sandbox at an explicit version with a gist pre-loaded."""
        return to_response(ctx.renderer.render(request, version=version, gist_id=gist_id))

    @app.get("/gist/{gist_id}")
    def gist_page(request: Request, gist_id: str, ctx: AppContext = Depends(get_context)):
        """Latest sandbox with a gist pre-loaded."""
        return to_response(ctx.renderer.render(request, gist_id=gist_id))

    @app.get("/sandbox/{version}")
    def sandbox_page(request: Request, version: str, ctx: AppContext = Depends(get_context)):
        """Sandbox at an explicit version."""
        return to_response(ctx.renderer.render(request, version=version))

    @app.get("/sandbox/{version}/{path:path}")
    def sandbox_asset(version: str, path: str, ctx: AppContext = Depends(get_context)):
        """A static file from a sandbox bundle."""
        return to_response(ctx.assets.serve(version, path))

    return app
