from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from shipping_quotes.api.dependencies import get_app_settings, get_oauth_handler
from shipping_quotes.core.config import Settings
from shipping_quotes.core.exceptions import APIException
from shipping_quotes.core.logging import get_logger
from shipping_quotes.infrastructure.auth.oauth import ShopifyOAuthHandler, is_shop_domain
from shipping_quotes.infrastructure.auth.signature import verify_oauth_hmac

auth_router = APIRouter()
logger = get_logger(__name__)


def _app_url(settings: Settings, path: str) -> str:
    return f"{(settings.APP_URL or '').rstrip('/')}{path}"


@auth_router.get("/install", summary="Start the app install flow")
async def install(
    shop: str = Query(""),
    settings: Settings = Depends(get_app_settings),
    oauth: ShopifyOAuthHandler = Depends(get_oauth_handler),
):
    shop = shop.lower()
    if not is_shop_domain(shop):
        return PlainTextResponse("Invalid shop parameter", status_code=400)

    url = oauth.build_authorization_url(shop, redirect_uri=_app_url(settings, "/auth/callback"))
    logger.info(f"Redirecting {shop} to authorization")
    return RedirectResponse(url, status_code=302)


@auth_router.get("/auth/callback", summary="Finish the app install flow")
async def auth_callback(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    oauth: ShopifyOAuthHandler = Depends(get_oauth_handler),
):
    params = dict(request.query_params)
    shop: Optional[str] = params.get("shop")
    if not shop or not params.get("code") or not params.get("hmac"):
        return PlainTextResponse("Invalid parameters", status_code=400)
    if not verify_oauth_hmac(params, settings.SHOPIFY_API_SECRET):
        return PlainTextResponse("Invalid hmac", status_code=401)
    if not oauth.state_matches(shop, params.get("state")):
        return PlainTextResponse("Invalid state", status_code=401)

    try:
        await oauth.exchange_code(shop, params["code"])
    except APIException:
        return PlainTextResponse("Failed to obtain token", status_code=500)

    oauth.discard_state(shop)
    return RedirectResponse(_app_url(settings, f"/installed?shop={quote(shop)}"), status_code=302)


@auth_router.get("/installed", response_class=HTMLResponse, summary="Install confirmation")
async def installed() -> str:
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\"><title>Installed</title></head>"
        "<body><h1>App installed</h1><p>Shipping quotes are now available for your store.</p>"
        "</body></html>"
    )
