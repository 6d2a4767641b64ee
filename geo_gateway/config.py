from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from geo_gateway.models.request_models import Provider


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file.

    Every variable is prefixed with GEO_GATEWAY_, e.g. GEO_GATEWAY_IPSTACK_ACCESS_KEY.
    """

    model_config = SettingsConfigDict(env_prefix="GEO_GATEWAY_", env_file=".env", extra="ignore")

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False

    # Persistence
    database_url: str = "sqlite:///./geo_gateway.db"

    # Upstream provider
    provider: Provider = Provider.ipstack
    ipstack_base_url: str = "http://api.ipstack.com"
    ipstack_access_key: str = ""
    ip_api_com_base_url: str = "http://ip-api.com"
    provider_timeout_seconds: float = 5.0

    # Lookup policy
    freshness_window: timedelta = Field(
        default=timedelta(hours=24),
        description="Maximum age of a stored record before it is fetched again.",
    )
    bulk_lookup_concurrency: int = Field(default=5, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
