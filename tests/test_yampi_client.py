import json

import httpx
import pytest

from shipping_quotes.adapters.implementations.yampi.client import YampiClient
from shipping_quotes.core.exceptions import IntegrationException, UpstreamFailureError
from tests.yampi_stub import ALIAS, YAMPI_BASE

SHIPPING_PATH = "/logistics/shipping-costs"


@pytest.mark.asyncio
async def test_list_products_sends_credentials_and_paging(yampi_client, yampi_stub):
    await yampi_client.list_products(page=3, limit=100)

    request = yampi_stub.requests[-1]
    assert request.method == "GET"
    assert str(request.url).startswith(f"{YAMPI_BASE}/{ALIAS}/catalog/products?")
    assert request.url.params["include"] == "skus"
    assert request.url.params["limit"] == "100"
    assert request.url.params["page"] == "3"
    assert request.headers["User-Token"] == "user-token"
    assert request.headers["User-Secret-Key"] == "secret-key"


@pytest.mark.asyncio
async def test_calculate_shipping_body(yampi_client, yampi_stub):
    await yampi_client.calculate_shipping(
        zipcode="01001000", skus_ids=[501, 99], quantities=[2, 1], total=120.5,
        utm_email="buyer@example.com", order_id=129339217,
    )

    request = yampi_stub.calls(SHIPPING_PATH)[-1]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {
        "zipcode": "01001000",
        "total": 120.5,
        "origin": "cart_drawer",
        "utm_email": "buyer@example.com",
        "skus_ids": [501, 99],
        "quantities": [2, 1],
        "order_id": 129339217,
    }


@pytest.mark.asyncio
async def test_calculate_shipping_leaves_out_missing_values(yampi_client, yampi_stub):
    await yampi_client.calculate_shipping(zipcode="01001000", skus_ids=[1], quantities=[1])

    body = json.loads(yampi_stub.calls(SHIPPING_PATH)[-1].content)
    assert set(body) == {"zipcode", "origin", "skus_ids", "quantities"}


@pytest.mark.asyncio
async def test_calculate_shipping_unwraps_data(yampi_client):
    result = await yampi_client.calculate_shipping(zipcode="01001000", skus_ids=[1], quantities=[1])

    assert result == {"sedex": {"price": 25.9, "days": 3}}


@pytest.mark.asyncio
async def test_calculate_shipping_without_data_member(yampi_client, yampi_stub):
    yampi_stub.shipping = (200, [{"service": "pac", "price": 12.0}])
    assert await yampi_client.calculate_shipping("01001000", [1], [1]) == [{"service": "pac", "price": 12.0}]

    yampi_stub.shipping = (200, {"data": None, "services": []})
    assert await yampi_client.calculate_shipping("01001000", [1], [1]) == {"data": None, "services": []}


@pytest.mark.asyncio
async def test_non_success_status_raises_upstream_failure(yampi_client, yampi_stub):
    yampi_stub.shipping = (422, '{"message":"invalid zipcode"}')

    with pytest.raises(UpstreamFailureError) as exc_info:
        await yampi_client.calculate_shipping("01001000", [1], [1])

    error = exc_info.value
    assert error.status_code == 502
    assert error.upstream_status == 422
    assert error.detail == 'Yampi 422: {"message":"invalid zipcode"}'
    assert error.to_dict()["error"]["context"]["status"] == 422


@pytest.mark.asyncio
async def test_non_json_response(yampi_client, yampi_stub):
    yampi_stub.shipping = (200, "<html>maintenance</html>")

    with pytest.raises(IntegrationException) as exc_info:
        await yampi_client.calculate_shipping("01001000", [1], [1])

    assert exc_info.value.code == "upstream_invalid_response"


@pytest.mark.asyncio
async def test_transport_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = YampiClient(
        alias=ALIAS, base_url=YAMPI_BASE,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)),
    )

    with pytest.raises(IntegrationException) as exc_info:
        await client.list_products(page=1, limit=10)

    assert exc_info.value.code == "upstream_unreachable"
    assert exc_info.value.status_code == 502
