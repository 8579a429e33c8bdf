"""
SKU code to Yampi SKU id synchronization.

The mapping is filled from an optional local seed file and then kept current
by paginated scans of the Yampi catalog, repeated in the background for the
life of the process. A failed scan never removes entries: the mapping only
grows or gets overwritten key by key.
"""
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from shipping_quotes.adapters.implementations.yampi.client import YampiClient
from shipping_quotes.core.exceptions import APIException, HydrationError
from shipping_quotes.core.logging import get_logger
from shipping_quotes.domain.models.catalog import CatalogEntry, SeedLoadResult

logger = get_logger(__name__)

SeedSource = Union[str, Path, list, dict, None]


class CatalogSynchronizer:
    """Owns the SKU id mapping and the tasks that keep it fresh."""

    def __init__(
        self,
        client: Optional[YampiClient],
        refresh_interval: float = 15 * 60,
        page_limit: int = 100,
        max_pages: int = 1000
    ):
        self._client = client
        self.refresh_interval = refresh_interval
        self.page_limit = page_limit
        self.max_pages = max_pages

        self._ids: Dict[str, int] = {}
        self._inflight: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._initial_task: Optional[asyncio.Task] = None

        self.last_hydrated_at: Optional[datetime] = None
        self.last_hydrated_count: Optional[int] = None

    @property
    def size(self) -> int:
        """Number of normalized keys held."""
        return len(self._ids)

    def lookup(self, code: Any) -> Optional[int]:
        """
        Resolve a SKU code to its id.

        Tries the trimmed code as given, then upper-cased, then lower-cased.
        """
        if code is None:
            return None
        key = str(code).strip()
        if not key:
            return None
        for candidate in (key, key.upper(), key.lower()):
            sku_id = self._ids.get(candidate)
            if sku_id is not None:
                return sku_id
        return None

    def _store(self, entry: CatalogEntry) -> None:
        for key in entry.keys():
            self._ids[key] = entry.sku_id

    def load_seed(self, source: SeedSource) -> SeedLoadResult:
        """
        Bulk load entries from a local JSON file or already parsed data.

        Accepts a list of ``{"sku"|"code": ..., "id": ...}`` records or a
        ``{code: id}`` mapping. Problems are reported in the result and
        logged; nothing is raised.
        """
        result = SeedLoadResult(source=str(source) if isinstance(source, (str, Path)) else None)
        if source is None:
            return result

        data = source
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                result.error = f"seed file not found: {path}"
                logger.warning(f"[SKU MAP] {result.error}")
                return result
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                result.error = f"failed to read seed: {str(e)}"
                logger.warning(f"[SKU MAP] {result.error}")
                return result

        if isinstance(data, list):
            pairs: Iterable = (
                (record.get("sku", record.get("code")), record.get("id"))
                for record in data
                if isinstance(record, dict)
            )
            result.skipped += sum(1 for record in data if not isinstance(record, dict))
        elif isinstance(data, dict):
            pairs = data.items()
        else:
            result.error = f"unsupported seed format: {type(data).__name__}"
            logger.warning(f"[SKU MAP] {result.error}")
            return result

        for code, sku_id in pairs:
            entry = CatalogEntry.from_raw(code, sku_id)
            if entry is None:
                result.skipped += 1
                continue
            self._store(entry)
            result.loaded += 1

        logger.info(f"[SKU MAP] seed loaded ({result.loaded} items, {result.skipped} skipped)")
        return result

    async def hydrate(self) -> int:
        """
        Scan the whole upstream catalog and write every SKU found.

        Only one scan runs at a time; callers arriving while one is in flight
        wait for it and get its result.

        Returns:
            Number of SKU records written

        Raises:
            HydrationError: If any page request fails
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._hydrate_pages())
        # Shielded so a cancelled caller does not abort the scan for the others
        return await asyncio.shield(self._inflight)

    async def _hydrate_pages(self) -> int:
        if self._client is None:
            raise HydrationError("No Yampi client configured")

        page = 1
        pages_fetched = 0
        written = 0
        while True:
            try:
                response = await self._client.list_products(page=page, limit=self.page_limit)
            except APIException as e:
                logger.warning(f"[SKU MAP] page {page} failed after {written} SKUs: {e.detail}")
                raise HydrationError(
                    f"Catalog page {page} failed: {e.detail}", page=page, original_exception=e
                )
            pages_fetched += 1

            products = response.get("data") if isinstance(response, dict) else None
            if not isinstance(products, list):
                products = []
            for product in products:
                for record in self._sku_records(product):
                    entry = CatalogEntry.from_raw(record.get("sku"), record.get("id"))
                    if entry is not None:
                        self._store(entry)
                        written += 1

            total_pages = self._total_pages(response, default=page)
            if not products or page >= total_pages or pages_fetched >= self.max_pages:
                break
            page += 1

        self.last_hydrated_at = datetime.now(timezone.utc)
        self.last_hydrated_count = written
        return written

    @staticmethod
    def _sku_records(product: Any) -> list:
        if not isinstance(product, dict):
            return []
        skus = product.get("skus")
        if isinstance(skus, dict):
            skus = skus.get("data")
        if not isinstance(skus, list):
            return []
        return [s for s in skus if isinstance(s, dict)]

    @staticmethod
    def _total_pages(response: Any, default: int) -> int:
        try:
            value = response["meta"]["pagination"]["total_pages"]
        except (KeyError, TypeError):
            return default
        try:
            return int(value) or default
        except (TypeError, ValueError):
            return default

    async def _refresh_loop(self) -> None:
        logger.info(f"[SKU MAP] auto refresh started (interval={self.refresh_interval}s)")
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                count = await self.hydrate()
                logger.info(f"[SKU MAP] refreshed ({count} SKUs)")
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("[SKU MAP] refresh failed", exc_info=True)

    def start_auto_refresh(self) -> None:
        """Run ``hydrate`` every ``refresh_interval`` seconds until stopped."""
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def stop_auto_refresh(self) -> None:
        """Cancel the pending background refresh, if any."""
        task, self._refresh_task = self._refresh_task, None
        await _cancel(task)

    async def start(self, seed_source: SeedSource = None) -> SeedLoadResult:
        """
        Seed synchronously, then hydrate and start auto refresh in the background.

        Returns:
            Outcome of the seed load
        """
        seed_result = self.load_seed(seed_source)
        self._initial_task = asyncio.create_task(self._initial_hydration())
        return seed_result

    async def _initial_hydration(self) -> None:
        try:
            count = await self.hydrate()
            logger.info(f"[SKU MAP] initial hydration complete ({count} SKUs)")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("[SKU MAP] initial hydration failed", exc_info=True)
        self.start_auto_refresh()

    async def shutdown(self) -> None:
        """Cancel startup hydration, the refresh loop and any scan in flight."""
        initial, self._initial_task = self._initial_task, None
        await _cancel(initial)
        await self.stop_auto_refresh()
        inflight, self._inflight = self._inflight, None
        await _cancel(inflight)


async def _cancel(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
