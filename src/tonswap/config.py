"""Application configuration using pydantic-settings.

Covers the DeDust and STON.fi backends, the settlement-layer constants used
by the payload builder, and the price subscription defaults.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3001, description="API server port")
    cors_origins: str = Field(
        default="*", description="Comma-separated list of allowed CORS origins"
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # DEX Backends
    # ======================
    dedust_api_url: str = Field(
        default="https://api.dedust.io/v2", description="DeDust API URL"
    )
    stonfi_api_url: str = Field(
        default="https://api.ston.fi/v1", description="STON.fi API URL"
    )
    backend_timeout: float = Field(
        default=15.0, description="Timeout in seconds for a single backend call"
    )
    default_backend: str = Field(
        default="dedust", description="Backend used when a build needs a fresh quote"
    )
    default_slippage: Decimal = Field(
        default=Decimal("0.5"), description="Default slippage tolerance in percent"
    )

    # ======================
    # Settlement layer (DeDust)
    # ======================
    dedust_vault_address: str = Field(
        default="EQDa4VOnTYlLvDJ0gZjNYm5PXfSmmtL6Vs6A_CZEtXCNICq_",
        description="DeDust native vault receiving TON-originated swaps",
    )
    dedust_factory_address: str = Field(
        default="EQBfBWT7X2BHg9tXAxzhz2aKiNTU1tpt5NsiK0uSDW_YAJ67",
        description="DeDust factory routing jetton-to-jetton swaps",
    )
    jetton_to_native_forward_value: int = Field(
        default=300_000_000, description="Attached TON (nano) for jetton -> TON swaps"
    )
    jetton_to_jetton_forward_value: int = Field(
        default=500_000_000, description="Attached TON (nano) for jetton -> jetton swaps"
    )

    # ======================
    # Price subscriptions
    # ======================
    price_interval_ms: int = Field(
        default=3000, description="Default refresh period for price subscriptions"
    )
    min_price_interval_ms: int = Field(
        default=500, description="Lower bound for a client-requested refresh period"
    )
    price_pool_limit: int = Field(
        default=20, description="Pools per backend considered by the bulk price view"
    )
    registry_lock_timeout: float = Field(
        default=5.0, description="Seconds to wait for the session registry lock"
    )

    # ======================
    # Catalog & proxy
    # ======================
    catalog_path: str = Field(
        default="catalog.json", description="Path to the dapp catalog JSON document"
    )
    proxy_upstream: str = Field(
        default="https://api.mytonwallet.org", description="Reverse proxy upstream host"
    )
    proxy_timeout: float = Field(default=30.0, description="Reverse proxy timeout in seconds")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def allowed_origins(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_safe_dict(self) -> dict:
        """Return settings dict suitable for the detailed health endpoint."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "dex": {
                "dedust": self.dedust_api_url,
                "stonfi": self.stonfi_api_url,
                "default_backend": self.default_backend,
                "slippage": str(self.default_slippage),
                "timeout": self.backend_timeout,
            },
            "settlement": {
                "vault": self.dedust_vault_address,
                "factory": self.dedust_factory_address,
                "jetton_to_native_value": str(self.jetton_to_native_forward_value),
                "jetton_to_jetton_value": str(self.jetton_to_jetton_forward_value),
            },
            "prices": {
                "interval_ms": self.price_interval_ms,
                "min_interval_ms": self.min_price_interval_ms,
                "pool_limit": self.price_pool_limit,
            },
            "proxy": {"upstream": self.proxy_upstream},
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
