from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from shipping_quotes import __version__
from shipping_quotes.api.dependencies import get_catalog, get_quote_cache
from shipping_quotes.core.logging import get_logger
from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache
from shipping_quotes.services.catalog_service import CatalogSynchronizer

health_router = APIRouter()
logger = get_logger(__name__)


class HealthStatus(BaseModel):
    """Liveness answer."""
    ok: bool = True


class CatalogStatus(BaseModel):
    """State of the SKU id mapping."""
    keys: int
    last_hydrated_at: Optional[datetime] = None
    last_hydrated_count: Optional[int] = None


class DetailedHealthStatus(HealthStatus):
    """Liveness plus the state of the SKU map and the quote cache."""
    version: str = __version__
    catalog: CatalogStatus
    cached_quotes: int


@health_router.get(
    "",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Basic health check"
)
async def get_health() -> HealthStatus:
    logger.debug("Liveness probe")
    return HealthStatus()


@health_router.get(
    "/detailed",
    response_model=DetailedHealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
    description="Returns catalog synchronization and quote cache state."
)
async def get_detailed_health(
    catalog: CatalogSynchronizer = Depends(get_catalog),
    cache: QuoteCache = Depends(get_quote_cache),
) -> DetailedHealthStatus:
    """Report SKU map size, the last completed hydration and cached quote count."""
    return DetailedHealthStatus(
        catalog=CatalogStatus(
            keys=catalog.size,
            last_hydrated_at=catalog.last_hydrated_at,
            last_hydrated_count=catalog.last_hydrated_count,
        ),
        cached_quotes=len(cache),
    )
