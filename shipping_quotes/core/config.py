from functools import lru_cache
from typing import Annotated, Any, Optional
import json
import os

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from shipping_quotes.core.exceptions import ConfigurationMissingError


# Credentials the service cannot start without
REQUIRED_SETTINGS = ("SHOPIFY_API_SECRET", "APP_URL")


class Settings(BaseSettings):
    """Service configuration read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Service settings
    PROJECT_NAME: str = "Shipping Quotes Proxy"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # CORS settings
    BACKEND_CORS_ORIGINS: Annotated[list[str], NoDecode] = ["*"]

    # Logging settings
    LOG_LEVEL: str = "INFO"
    ENABLE_STRUCTURED_LOGGING: bool = True

    # Shopify app settings
    SHOPIFY_API_KEY: Optional[str] = None
    SHOPIFY_API_SECRET: Optional[str] = None
    SCOPES: str = ""
    APP_URL: Optional[str] = None
    SHOPIFY_APP_PROXY_PREFIX: str = "apps"
    SHOPIFY_APP_PROXY_SUBPATH: str = "shipping-quotes"
    DISABLE_PROXY_SIGNATURE_CHECK: bool = False

    # Yampi settings
    YAMPI_BASE_URL: str = "https://api.dooki.com.br/v2"
    YAMPI_ALIAS: Optional[str] = None
    YAMPI_USER_TOKEN: Optional[str] = None
    YAMPI_SECRET_KEY: Optional[str] = None
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    # Quote cache settings
    CACHE_TTL_MS: int = 300000
    QUOTE_CACHE_MAX_ENTRIES: Optional[int] = 10000

    # Catalog settings
    SKU_SEED_FILE: Optional[str] = None
    SKU_REFRESH_INTERVAL_SECONDS: int = 15 * 60
    CATALOG_PAGE_LIMIT: int = 100
    CATALOG_MAX_PAGES: int = 1000

    # Quote request settings
    QUOTE_ORDER_ID: Optional[int] = 129339217
    ALLOW_CALLER_ORDER_ID: bool = False
    QUOTE_ORIGIN: str = "cart_drawer"

    # Admin settings
    ADMIN_TOKEN: Optional[str] = None

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        """Accept a comma-separated string as well as a JSON list."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator(
        "SHOPIFY_API_SECRET", "APP_URL", "YAMPI_ALIAS", "ADMIN_TOKEN", "QUOTE_ORDER_ID",
        mode="before",
    )
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        """Treat empty environment values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def cache_ttl_seconds(self) -> float:
        """Quote cache TTL in seconds, falling back to five minutes."""
        return (self.CACHE_TTL_MS or 300000) / 1000.0

    @property
    def proxy_path(self) -> str:
        """Path the App Proxy forwards storefront requests to."""
        return f"/{self.SHOPIFY_APP_PROXY_PREFIX.strip('/')}/{self.SHOPIFY_APP_PROXY_SUBPATH.strip('/')}"


def validate_required_settings(settings: Settings) -> None:
    """
    Ensure the credentials needed at startup are present.

    Args:
        settings: Settings instance to check

    Raises:
        ConfigurationMissingError: If any required setting is empty
    """
    missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name)]
    if missing:
        raise ConfigurationMissingError(missing)


def load_env_file(env_file: str = ".env") -> None:
    """
    Export the variables of a .env file in the working directory, if present.

    Args:
        env_file: File name relative to the working directory
    """
    env_path = os.path.join(os.getcwd(), env_file)
    if os.path.exists(env_path):
        load_dotenv(env_path)


@lru_cache()
def get_settings() -> Settings:
    """
    Settings built once per process from the environment.

    Returns:
        Settings: Shared settings instance
    """
    return Settings()
