import json

import pytest

from shipping_quotes.domain.models.quote import ProxyRequest, QuoteRequest
from shipping_quotes.services.quote_service import QuoteService, split_list
from tests.yampi_stub import SECRET, sign_proxy

SHIPPING_PATH = "/logistics/shipping-costs"


@pytest.fixture
def service(catalog, quote_cache, yampi_client) -> QuoteService:
    catalog.load_seed({"SKU1": 501, "Camiseta-P": 777})
    return QuoteService(
        catalog=catalog,
        cache=quote_cache,
        client=yampi_client,
        shared_secret=SECRET,
        default_order_id=129339217,
    )


def signed(**params) -> ProxyRequest:
    return ProxyRequest(query=sign_proxy({"shop": "loja.myshopify.com", **params}))


def upstream_bodies(yampi_stub):
    return [json.loads(r.content) for r in yampi_stub.calls(SHIPPING_PATH)]


def test_split_list():
    assert split_list(" a, b ,,c ") == ["a", "b", "c"]
    assert split_list(["1", " 2 ", ""]) == ["1", "2"]
    assert split_list(None) == []
    assert split_list("") == []


def test_cache_key_keeps_positional_pairing():
    first = QuoteRequest(zipcode="01001000", skus_ids=[501, 99], quantities=[2, 1])
    second = QuoteRequest(zipcode="01001000", skus_ids=[99, 501], quantities=[1, 2])

    assert first.cache_key() != second.cache_key()
    assert first.cache_key() == QuoteRequest(
        zipcode="01001000", skus_ids=[501, 99], quantities=[2, 1], utm_email="x@example.com"
    ).cache_key()


@pytest.mark.asyncio
async def test_quote_resolves_codes_and_calls_upstream(service, yampi_stub):
    response = await service.handle(signed(cep="01001-000", skus="SKU1,99", quantities="2,1"))

    assert response.status_code == 200
    assert response.body == {"data": [{"price": 25.9, "days": 3}]}
    assert upstream_bodies(yampi_stub) == [{
        "zipcode": "01001000",
        "origin": "cart_drawer",
        "skus_ids": [501, 99],
        "quantities": [2, 1],
        "order_id": 129339217,
    }]


@pytest.mark.asyncio
async def test_codes_resolve_case_insensitively(service, yampi_stub):
    response = await service.handle(signed(cep="01001000", skus=" camiseta-p ", quantities="1"))

    assert response.status_code == 200
    assert upstream_bodies(yampi_stub)[0]["skus_ids"] == [777]


@pytest.mark.asyncio
async def test_short_postal_code_rejected_without_side_effects(service, quote_cache, yampi_stub):
    response = await service.handle(signed(cep="0100-100", skus="SKU1", quantities="1"))

    assert response.status_code == 400
    assert response.body["error"]["code"] == "invalid_input"
    assert response.body["error"]["context"]["field"] == "cep"
    assert yampi_stub.calls(SHIPPING_PATH) == []
    assert len(quote_cache) == 0


@pytest.mark.asyncio
async def test_length_mismatch_rejected_before_lookup(service, catalog, monkeypatch, yampi_stub):
    looked_up = []
    monkeypatch.setattr(catalog, "lookup", lambda code: looked_up.append(code))

    response = await service.handle(signed(cep="01001000", skus="SKU1,Camiseta-P", quantities="1"))

    assert response.status_code == 400
    assert looked_up == []
    assert yampi_stub.calls(SHIPPING_PATH) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    {"cep": "01001000", "quantities": "1"},
    {"cep": "01001000", "skus": "SKU1", "quantities": "x"},
    {"cep": "01001000", "skus": "SKU1", "quantities": "1.5"},
    {"cep": "01001000", "skus": "SKU1", "quantities": "1", "total": "abc"},
    {"cep": "01001000", "skus": "SKU1", "quantities": "1", "total": "nan"},
])
async def test_malformed_inputs_rejected(service, params, yampi_stub):
    response = await service.handle(signed(**params))

    assert response.status_code == 400
    assert yampi_stub.calls(SHIPPING_PATH) == []


@pytest.mark.asyncio
async def test_unmapped_code_rejected(service, yampi_stub, quote_cache):
    response = await service.handle(signed(cep="01001000", skus="SKU1,UNKNOWN", quantities="1,1"))

    assert response.status_code == 400
    assert response.body["error"]["code"] == "unmapped_sku"
    assert response.body["error"]["message"] == "SKU without a Yampi id: UNKNOWN"
    assert yampi_stub.calls(SHIPPING_PATH) == []
    assert len(quote_cache) == 0


@pytest.mark.asyncio
async def test_bad_signature_rejected(service, yampi_stub):
    request = signed(cep="01001000", skus="SKU1", quantities="1")
    request.query["cep"] = "02002000"

    response = await service.handle(request)

    assert response.status_code == 401
    assert response.body["error"]["message"] == "Invalid proxy signature"
    assert yampi_stub.calls(SHIPPING_PATH) == []


@pytest.mark.asyncio
async def test_unsigned_request_accepted_when_checks_disabled(service, yampi_stub):
    service.verify_signatures = False

    response = await service.handle(ProxyRequest(query={"cep": "01001000", "skus": "99", "quantities": "3"}))

    assert response.status_code == 200
    assert upstream_bodies(yampi_stub)[0]["skus_ids"] == [99]


@pytest.mark.asyncio
async def test_whole_float_quantities_accepted(service, yampi_stub):
    request = signed(cep="01001000")
    request.body = {"skus": ["SKU1", "42"], "quantities": [2.0, 1]}

    response = await service.handle(request)

    assert response.status_code == 200
    assert upstream_bodies(yampi_stub)[0]["quantities"] == [2, 1]


@pytest.mark.asyncio
async def test_body_parameters_override_query(service, yampi_stub):
    request = signed(cep="01001000", skus="SKU1", quantities="1")
    request.body = {"skus": ["SKU1", "42"], "quantities": [1, 4], "total": "99.90", "utm_email": "c@example.com"}

    response = await service.handle(request)

    assert response.status_code == 200
    body = upstream_bodies(yampi_stub)[0]
    assert body["skus_ids"] == [501, 42]
    assert body["quantities"] == [1, 4]
    assert body["total"] == 99.9
    assert body["utm_email"] == "c@example.com"


@pytest.mark.asyncio
async def test_skus_ids_accepted_as_alias(service, yampi_stub):
    response = await service.handle(signed(cep="01001000", skus_ids="10,20", quantities="1,2"))

    assert response.status_code == 200
    assert upstream_bodies(yampi_stub)[0]["skus_ids"] == [10, 20]


@pytest.mark.asyncio
async def test_repeat_request_served_from_cache(service, yampi_stub):
    request = signed(cep="01001000", skus="SKU1", quantities="2")

    first = await service.handle(request)
    second = await service.handle(request)

    assert "cached" not in first.body
    assert second.body == {"data": first.body["data"], "cached": True}
    assert len(yampi_stub.calls(SHIPPING_PATH)) == 1


@pytest.mark.asyncio
async def test_reordered_cart_is_a_separate_quote(service, yampi_stub):
    await service.handle(signed(cep="01001000", skus="501,99", quantities="2,1"))
    await service.handle(signed(cep="01001000", skus="99,501", quantities="1,2"))

    assert len(yampi_stub.calls(SHIPPING_PATH)) == 2


@pytest.mark.asyncio
async def test_expired_quote_is_fetched_again(service, yampi_stub, fake_clock):
    request = signed(cep="01001000", skus="SKU1", quantities="1")

    await service.handle(request)
    fake_clock.advance(300)
    response = await service.handle(request)

    assert "cached" not in response.body
    assert len(yampi_stub.calls(SHIPPING_PATH)) == 2


@pytest.mark.asyncio
async def test_upstream_failure_is_reported_and_not_cached(service, yampi_stub, quote_cache):
    yampi_stub.shipping = (500, "internal error")

    response = await service.handle(signed(cep="01001000", skus="SKU1", quantities="1"))

    assert response.status_code == 502
    assert response.body["error"]["code"] == "upstream_failure"
    assert response.body["error"]["message"] == "Yampi 500: internal error"
    assert len(quote_cache) == 0


@pytest.mark.asyncio
async def test_list_response_passed_through(service, yampi_stub):
    yampi_stub.shipping = (200, {"data": [{"service": "pac"}, {"service": "sedex"}]})

    response = await service.handle(signed(cep="01001000", skus="SKU1", quantities="1"))

    assert response.body["data"] == [{"service": "pac"}, {"service": "sedex"}]


@pytest.mark.asyncio
async def test_order_id_comes_from_configuration(service, yampi_stub):
    await service.handle(signed(cep="01001000", skus="SKU1", quantities="1", order_id="555"))

    assert upstream_bodies(yampi_stub)[0]["order_id"] == 129339217


@pytest.mark.asyncio
async def test_caller_order_id_when_allowed(service, yampi_stub):
    service.allow_caller_order_id = True

    await service.handle(signed(cep="01001000", skus="SKU1", quantities="1", order_id="555"))

    assert upstream_bodies(yampi_stub)[0]["order_id"] == 555


@pytest.mark.asyncio
async def test_no_order_id_when_unconfigured(service, yampi_stub):
    service.default_order_id = None

    await service.handle(signed(cep="01001000", skus="SKU1", quantities="1"))

    assert "order_id" not in upstream_bodies(yampi_stub)[0]
