from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shipping_quotes.api.dependencies import get_quote_service
from shipping_quotes.core.exceptions import InvalidInputError
from shipping_quotes.domain.models.quote import ProxyRequest
from shipping_quotes.services.quote_service import QuoteService


def _flatten(items) -> Dict[str, Any]:
    """Collapse a multi-dict: single values stay strings, repeated keys become lists."""
    params: Dict[str, Any] = {}
    for key, value in items:
        if key in params:
            existing = params[key]
            params[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            params[key] = value
    return params


async def read_proxy_request(request: Request) -> ProxyRequest:
    """
    Collect query and body parameters of an App Proxy call.

    The App Proxy may POST a form or JSON body on top of the signed query.
    """
    query = _flatten(request.query_params.multi_items())
    body: Dict[str, Any] = {}

    if request.method in ("POST", "PUT", "PATCH"):
        content_type = request.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                payload = await request.json()
            except ValueError:
                raise InvalidInputError("Request body is not valid JSON", field="body")
            if isinstance(payload, dict):
                body = payload
        elif "form" in content_type:
            form = await request.form()
            body = _flatten(form.multi_items())

    return ProxyRequest(query=query, body=body)


async def shipping_quotes(
    request: Request,
    quote_service: QuoteService = Depends(get_quote_service),
) -> JSONResponse:
    """Quote shipping for a storefront cart."""
    proxy_request = await read_proxy_request(request)
    result = await quote_service.handle(proxy_request)
    return JSONResponse(status_code=result.status_code, content=result.body)


def build_proxy_router(path: str) -> APIRouter:
    """Mount the quote endpoint on the configured App Proxy path."""
    router = APIRouter()
    router.add_api_route(
        path,
        shipping_quotes,
        methods=["GET", "POST"],
        summary="Shipping quotes through the App Proxy",
    )
    return router
