import time
from typing import Any, Dict, List, Optional

import httpx

from shipping_quotes.adapters.interfaces.connector import APIConnector, HttpMethod
from shipping_quotes.core.exceptions import IntegrationException, UpstreamFailureError
from shipping_quotes.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.dooki.com.br/v2"


class YampiClient(APIConnector):
    """
    Client for the Yampi (Dooki) merchant API.

    Every call is made exactly once; bounding its duration is left to the
    timeout configured on the underlying ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        alias: Optional[str],
        user_token: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        """
        Initialize the Yampi client.

        Args:
            alias: Store alias, the first path segment of every endpoint
            user_token: Value for the ``User-Token`` header
            secret_key: Value for the ``User-Secret-Key`` header
            base_url: API base URL
            http_client: Optional shared HTTP client
            timeout: Timeout in seconds for a client created here
        """
        self.alias = alias
        self.base_url = base_url.rstrip('/')
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "User-Token": user_token or "",
            "User-Secret-Key": secret_key or "",
        }

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        url = self.build_url(self.base_url, path)
        headers = dict(self._headers)
        if json is not None:
            headers["Content-Type"] = "application/json"

        start_time = time.time()
        try:
            response = await self.http_client.request(
                method.value, url, params=params, json=json, headers=headers
            )
        except httpx.RequestError as e:
            logger.error(f"Request to Yampi failed: {method.value} {url}: {str(e)}")
            raise IntegrationException(
                detail=f"Yampi request failed: {str(e)}",
                code="upstream_unreachable",
                context={"url": url},
                original_exception=e
            )

        duration = time.time() - start_time
        logger.debug(
            f"Yampi {method.value} {path} -> {response.status_code} in {duration:.2f}s"
        )

        if not response.is_success:
            raise UpstreamFailureError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise IntegrationException(
                detail="Yampi returned a non-JSON response",
                code="upstream_invalid_response",
                context={"url": url, "status": response.status_code},
                original_exception=e
            )

    async def list_products(self, page: int, limit: int) -> Dict[str, Any]:
        """
        Fetch one page of the catalog with nested SKU listings.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            Response envelope ``{data: [...], meta: {pagination: {...}}}``
        """
        return await self.request(
            HttpMethod.GET,
            f"/{self.alias}/catalog/products",
            params={"include": "skus", "limit": limit, "page": page},
        )

    async def calculate_shipping(
        self,
        zipcode: str,
        skus_ids: List[int],
        quantities: List[int],
        total: Optional[float] = None,
        origin: str = "cart_drawer",
        utm_email: Optional[str] = None,
        order_id: Optional[Any] = None
    ) -> Any:
        """
        Request shipping quotes for a cart.

        Keys whose value is None are left out of the request body.

        Returns:
            The ``data`` member of the response, or the whole body when absent
        """
        body: Dict[str, Any] = {
            "zipcode": zipcode,
            "total": total,
            "origin": origin,
            "utm_email": utm_email,
            "skus_ids": skus_ids,
            "quantities": quantities,
        }
        if order_id is not None:
            body["order_id"] = order_id
        body = {k: v for k, v in body.items() if v is not None}

        logger.info(f"Requesting shipping costs for zipcode {zipcode} with {len(skus_ids)} item(s)")
        result = await self.request(
            HttpMethod.POST, f"/{self.alias}/logistics/shipping-costs", json=body
        )

        if isinstance(result, dict) and result.get("data") is not None:
            return result["data"]
        return result
