import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from shipping_quotes.adapters.implementations.yampi.client import YampiClient
from shipping_quotes.api.error_handlers import register_exception_handlers
from shipping_quotes.api.routes.admin import admin_router
from shipping_quotes.api.routes.auth import auth_router
from shipping_quotes.api.routes.health import health_router
from shipping_quotes.api.routes.proxy import build_proxy_router
from shipping_quotes.core.config import Settings, get_settings, load_env_file, validate_required_settings
from shipping_quotes.core.logging import configure_logging, get_logger, set_correlation_id
from shipping_quotes.infrastructure.auth.oauth import ShopifyOAuthHandler
from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache
from shipping_quotes.services.catalog_service import CatalogSynchronizer
from shipping_quotes.services.quote_service import QuoteService


# Environment and logging are set up before the app factory runs
load_env_file()
configure_logging()
logger = get_logger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the application and the state objects it owns.

    Args:
        settings: Settings to use instead of the environment
        transport: Optional transport for outbound HTTP calls

    Returns:
        FastAPI: Application ready to serve

    Raises:
        ConfigurationMissingError: If a required credential is not configured
    """
    settings = settings or get_settings()
    validate_required_settings(settings)

    http_client = httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS, transport=transport)
    yampi = YampiClient(
        alias=settings.YAMPI_ALIAS,
        user_token=settings.YAMPI_USER_TOKEN,
        secret_key=settings.YAMPI_SECRET_KEY,
        base_url=settings.YAMPI_BASE_URL,
        http_client=http_client,
    )
    catalog = CatalogSynchronizer(
        yampi,
        refresh_interval=settings.SKU_REFRESH_INTERVAL_SECONDS,
        page_limit=settings.CATALOG_PAGE_LIMIT,
        max_pages=settings.CATALOG_MAX_PAGES,
    )
    quote_cache = QuoteCache(
        ttl=settings.cache_ttl_seconds,
        max_entries=settings.QUOTE_CACHE_MAX_ENTRIES,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting up Shipping Quotes Proxy")
        await catalog.start(settings.SKU_SEED_FILE)
        yield
        logger.info("Shutting down Shipping Quotes Proxy")
        await catalog.shutdown()
        await http_client.aclose()

    app = FastAPI(title=settings.PROJECT_NAME, debug=settings.DEBUG, lifespan=lifespan)

    app.state.settings = settings
    app.state.catalog = catalog
    app.state.quote_cache = quote_cache
    app.state.quote_service = QuoteService(
        catalog=catalog,
        cache=quote_cache,
        client=yampi,
        shared_secret=settings.SHOPIFY_API_SECRET,
        verify_signatures=not settings.DISABLE_PROXY_SIGNATURE_CHECK,
        default_order_id=settings.QUOTE_ORDER_ID,
        allow_caller_order_id=settings.ALLOW_CALLER_ORDER_ID,
        origin=settings.QUOTE_ORIGIN,
    )
    app.state.oauth = ShopifyOAuthHandler(
        client_id=settings.SHOPIFY_API_KEY,
        client_secret=settings.SHOPIFY_API_SECRET,
        scope=settings.SCOPES,
        http_client=http_client,
    )

    configure_middleware(app, settings)
    register_exception_handlers(app)
    register_routers(app, settings)

    return app


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Add CORS and per-request correlation ids.

    Args:
        app: Application being built
        settings: Application settings
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next: Callable):
        corr_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        started = time.perf_counter()

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = corr_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "data": {
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                }
            }
        )
        return response


def register_routers(app: FastAPI, settings: Settings) -> None:
    """
    Mount health, App Proxy, install and admin routes.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """
    app.include_router(health_router, prefix="/health", tags=["Health"])
    app.include_router(build_proxy_router(settings.proxy_path), tags=["Shipping quotes"])
    app.include_router(auth_router, tags=["Install"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "shipping_quotes.main:create_application",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
