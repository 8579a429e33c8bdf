"""Request signature verification and the Shopify install flow."""

from shipping_quotes.infrastructure.auth.oauth import OAuthToken, ShopifyOAuthHandler
from shipping_quotes.infrastructure.auth.signature import verify_oauth_hmac, verify_proxy_signature

__all__ = ["OAuthToken", "ShopifyOAuthHandler", "verify_oauth_hmac", "verify_proxy_signature"]
