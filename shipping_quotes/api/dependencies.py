import secrets
from typing import Annotated, Optional

from fastapi import Header, Request

from shipping_quotes.core.config import Settings
from shipping_quotes.core.exceptions import AuthorizationError
from shipping_quotes.core.logging import get_logger
from shipping_quotes.infrastructure.auth.oauth import ShopifyOAuthHandler
from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache
from shipping_quotes.services.catalog_service import CatalogSynchronizer
from shipping_quotes.services.quote_service import QuoteService

# Initialize logger
logger = get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogSynchronizer:
    """Dependency for providing the SKU catalog synchronizer."""
    return request.app.state.catalog


def get_quote_cache(request: Request) -> QuoteCache:
    """Dependency for providing the quote cache."""
    return request.app.state.quote_cache


def get_quote_service(request: Request) -> QuoteService:
    """Dependency for providing the quote pipeline."""
    return request.app.state.quote_service


def get_oauth_handler(request: Request) -> ShopifyOAuthHandler:
    """Dependency for providing the Shopify install flow handler."""
    return request.app.state.oauth


async def require_admin(
    request: Request,
    x_admin_token: Annotated[Optional[str], Header()] = None
) -> None:
    """
    Check the ``X-Admin-Token`` header against ``ADMIN_TOKEN``.

    Raises:
        AuthorizationError: If no admin token is configured or it does not match
    """
    expected = get_app_settings(request).ADMIN_TOKEN
    if not expected or not x_admin_token or not secrets.compare_digest(expected, x_admin_token):
        logger.warning("Rejected admin request")
        raise AuthorizationError("Invalid admin token")
