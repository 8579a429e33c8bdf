from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shipping_quotes.api.dependencies import get_catalog, require_admin
from shipping_quotes.core.logging import get_logger
from shipping_quotes.services.catalog_service import CatalogSynchronizer

admin_router = APIRouter(dependencies=[Depends(require_admin)])
logger = get_logger(__name__)


class RefreshResult(BaseModel):
    """Outcome of a manual catalog refresh."""
    count: int
    keys: int


@admin_router.post("/catalog/refresh", response_model=RefreshResult, summary="Refresh the SKU map now")
async def refresh_catalog(catalog: CatalogSynchronizer = Depends(get_catalog)) -> RefreshResult:
    """
    Run a catalog hydration on demand.

    Joins the scheduled scan instead of starting a second one when a scan is
    already running. A failed scan surfaces as a HydrationError response.
    """
    logger.info("Manual catalog refresh requested")
    count = await catalog.hydrate()
    return RefreshResult(count=count, keys=catalog.size)
