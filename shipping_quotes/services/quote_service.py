"""
Shipping quote pipeline for App Proxy requests.

A request moves through: signature check, input normalization, SKU
resolution, cache lookup and, on a miss, one upstream quote call whose
result is cached. Any step may end the pipeline with an error response.
"""
import math
import re
from typing import Any, List, Optional

from shipping_quotes.adapters.implementations.yampi.client import YampiClient
from shipping_quotes.core.exceptions import APIException, InvalidInputError, InvalidSignatureError
from shipping_quotes.core.logging import get_logger
from shipping_quotes.domain.models.quote import ProxyRequest, ProxyResponse, QuoteRequest
from shipping_quotes.infrastructure.auth.signature import verify_proxy_signature
from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache
from shipping_quotes.services.catalog_service import CatalogSynchronizer

logger = get_logger(__name__)

NON_DIGITS = re.compile(r"[^0-9]")
NUMERIC_ID = re.compile(r"[0-9]+")
ZIPCODE_LENGTH = 8


def split_list(value: Any) -> List[str]:
    """Accept a list or a comma-separated string; trim and drop empty parts."""
    if value is None:
        return []
    parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
    return [str(p).strip() for p in parts if str(p).strip()]


class QuoteService:
    """Turns App Proxy requests into Yampi shipping quotes."""

    def __init__(
        self,
        catalog: CatalogSynchronizer,
        cache: QuoteCache,
        client: YampiClient,
        shared_secret: Optional[str],
        verify_signatures: bool = True,
        default_order_id: Optional[Any] = None,
        allow_caller_order_id: bool = False,
        origin: str = "cart_drawer"
    ):
        self.catalog = catalog
        self.cache = cache
        self.client = client
        self.shared_secret = shared_secret
        self.verify_signatures = verify_signatures
        self.default_order_id = default_order_id
        self.allow_caller_order_id = allow_caller_order_id
        self.origin = origin

    async def handle(self, request: ProxyRequest) -> ProxyResponse:
        """
        Run the full pipeline.

        Errors raised by any step are rendered into the response instead of
        propagating.
        """
        try:
            return await self.quote(request)
        except APIException as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(f"[shipping-quotes] {e.code}: {e.detail}")
            return ProxyResponse(status_code=e.status_code, body=e.to_dict())

    async def quote(self, request: ProxyRequest) -> ProxyResponse:
        self.verify(request)
        quote_request = self.normalize(request)

        key = quote_request.cache_key()
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Serving cached quote for {key}")
            return ProxyResponse.quotes(cached, cached=True)

        raw = await self.client.calculate_shipping(
            zipcode=quote_request.zipcode,
            skus_ids=quote_request.skus_ids,
            quantities=quote_request.quantities,
            total=quote_request.total,
            origin=self.origin,
            utm_email=quote_request.utm_email,
            order_id=quote_request.order_id,
        )
        data = self._as_list(raw)
        await self.cache.set(key, data)
        return ProxyResponse.quotes(data)

    def verify(self, request: ProxyRequest) -> None:
        """Raise InvalidSignatureError unless the query is signed or checks are off."""
        if not self.verify_signatures:
            return
        if not verify_proxy_signature(request.query, self.shared_secret):
            raise InvalidSignatureError()

    def normalize(self, request: ProxyRequest) -> QuoteRequest:
        """
        Validate inputs and resolve SKU codes.

        Raises:
            InvalidInputError: On a bad postal code, malformed item lists,
                a bad total or an unknown SKU code
        """
        params = request.merged()

        zipcode = NON_DIGITS.sub("", self._scalar(params.get("cep")) or "")
        if len(zipcode) != ZIPCODE_LENGTH:
            raise InvalidInputError("Invalid postal code", field="cep", value=params.get("cep"))

        skus = params.get("skus")
        codes = split_list(skus if skus is not None else params.get("skus_ids"))
        raw_quantities = split_list(params.get("quantities"))
        if not codes or len(codes) != len(raw_quantities):
            raise InvalidInputError(
                "Missing or malformed items",
                field="skus",
                value={"skus": codes, "quantities": raw_quantities},
            )
        quantities = [self._parse_quantity(q) for q in raw_quantities]

        total = self._parse_total(self._scalar(params.get("total")))
        skus_ids = [self.resolve(code) for code in codes]

        return QuoteRequest(
            zipcode=zipcode,
            skus_ids=skus_ids,
            quantities=quantities,
            total=total,
            order_id=self._order_id(params),
            utm_email=self._scalar(params.get("utm_email")) or None,
        )

    def resolve(self, code: str) -> int:
        """Numeric codes are already ids; anything else goes through the catalog."""
        if NUMERIC_ID.fullmatch(code):
            return int(code)
        sku_id = self.catalog.lookup(code)
        if sku_id is None:
            raise InvalidInputError(
                f"SKU without a Yampi id: {code}", code="unmapped_sku", field="skus", value=code
            )
        return sku_id

    def _order_id(self, params: dict) -> Optional[Any]:
        caller = self._scalar(params.get("order_id"))
        if self.allow_caller_order_id and caller:
            return int(caller) if NUMERIC_ID.fullmatch(caller) else caller
        return self.default_order_id

    @staticmethod
    def _scalar(value: Any) -> Optional[str]:
        # Repeated query keys arrive as lists; the last one wins
        if isinstance(value, (list, tuple)):
            value = value[-1] if value else None
        return None if value is None else str(value).strip()

    @staticmethod
    def _parse_quantity(value: str) -> int:
        try:
            return int(value)
        except ValueError:
            pass
        # JSON bodies may carry whole numbers as floats, e.g. 2.0
        try:
            number = float(value)
        except ValueError:
            number = math.nan
        if not math.isfinite(number) or not number.is_integer():
            raise InvalidInputError("Missing or malformed items", field="quantities", value=value)
        return int(number)

    @staticmethod
    def _parse_total(value: Optional[str]) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            total = float(value)
        except ValueError:
            total = None
        if total is None or not math.isfinite(total):
            raise InvalidInputError("Invalid total", field="total", value=value)
        return total

    @staticmethod
    def _as_list(raw: Any) -> List[Any]:
        if isinstance(raw, list):
            return raw
        if isinstance(raw, dict):
            return list(raw.values())
        return []
