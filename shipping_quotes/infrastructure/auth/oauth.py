import re
import secrets
import time
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from shipping_quotes.core.exceptions import AuthenticationError, IntegrationException
from shipping_quotes.core.logging import get_logger

logger = get_logger(__name__)

SHOP_DOMAIN = re.compile(r"^[a-z0-9][a-z0-9\-]*\.myshopify\.com$", re.IGNORECASE)

# Pending install states expire and are bounded in number
STATE_TTL_SECONDS = 600.0
MAX_PENDING_STATES = 1000


class OAuthToken(BaseModel):
    """Model representing a Shopify offline access token."""
    access_token: str
    scope: Optional[str] = None


def is_shop_domain(value: Optional[str]) -> bool:
    """Check that a value looks like ``<store>.myshopify.com``."""
    return bool(value) and bool(SHOP_DOMAIN.match(value))


class ShopifyOAuthHandler:
    """Handles the Shopify app install (authorization code) flow."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        scope: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        state_ttl: float = STATE_TTL_SECONDS,
        max_pending: int = MAX_PENDING_STATES,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the OAuth handler.

        Args:
            client_id: Shopify API key
            client_secret: Shopify API secret
            scope: Comma-separated access scopes
            http_client: Optional HTTP client for the token exchange
            state_ttl: Seconds an issued state stays usable
            max_pending: Most installs awaiting a callback at once
            clock: Monotonic time source in seconds
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.http_client = http_client or httpx.AsyncClient(timeout=10.0)
        self.state_ttl = state_ttl
        self.max_pending = max_pending
        self._clock = clock

        # shop -> (state, issued_at), oldest first
        self._states: Dict[str, Tuple[str, float]] = {}

    @property
    def pending(self) -> int:
        """Number of installs awaiting a callback."""
        return len(self._states)

    def _prune(self, now: float) -> None:
        expired = [shop for shop, (_, issued) in self._states.items() if now - issued >= self.state_ttl]
        for shop in expired:
            del self._states[shop]
        while len(self._states) >= self.max_pending:
            oldest = next(iter(self._states))
            del self._states[oldest]
            logger.warning(f"Dropped pending install state for {oldest}")

    def build_authorization_url(self, shop: str, redirect_uri: str) -> str:
        """
        Start an install for a shop and build the URL to send the merchant to.

        Args:
            shop: Shop domain
            redirect_uri: Callback URL registered for the app

        Returns:
            Authorization URL
        """
        now = self._clock()
        self._states.pop(shop, None)
        self._prune(now)
        state = secrets.token_hex(16)
        self._states[shop] = (state, now)

        params = {
            "client_id": self.client_id or "",
            "scope": self.scope or "",
            "redirect_uri": redirect_uri,
            "state": state,
        }
        return f"https://{shop}/admin/oauth/authorize?{urlencode(params)}"

    def state_matches(self, shop: str, state: Optional[str]) -> bool:
        """Check the callback state against the live one issued for the shop."""
        pending = self._states.get(shop)
        if not pending or not state:
            return False
        expected, issued = pending
        if self._clock() - issued >= self.state_ttl:
            del self._states[shop]
            return False
        return secrets.compare_digest(expected, state)

    def discard_state(self, shop: str) -> None:
        self._states.pop(shop, None)

    async def exchange_code(self, shop: str, code: str) -> OAuthToken:
        """
        Trade an authorization code for an access token.

        Raises:
            IntegrationException: If Shopify rejects the exchange or is unreachable
        """
        url = f"https://{shop}/admin/oauth/access_token"
        try:
            response = await self.http_client.post(
                url,
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                },
            )
            response.raise_for_status()
            token = OAuthToken(**response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during token exchange for {shop}: {str(e)}")
            raise IntegrationException(
                detail="Failed to obtain access token",
                code="token_exchange_failed",
                status_code=500,
                context={"shop": shop, "status": e.response.status_code},
            )
        except httpx.RequestError as e:
            logger.error(f"Request error during token exchange for {shop}: {str(e)}")
            raise IntegrationException(
                detail="Failed to obtain access token",
                code="token_exchange_failed",
                status_code=500,
                context={"shop": shop},
                original_exception=e,
            )
        except ValueError as e:
            logger.error(f"Invalid token response for {shop}: {str(e)}")
            raise AuthenticationError(f"Invalid token response: {str(e)}")

        logger.info(f"Successfully obtained access token for {shop}")
        return token
