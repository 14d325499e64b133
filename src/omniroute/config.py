"""Application configuration using pydantic-settings.

Controls the planner's numeric policy (safety multiplier, iteration cap),
provider timeouts and the credentials of the quote providers.
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
        env_prefix="OMNIROUTE_",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    dry_run: bool = Field(
        default=True, description="Use the simulated provider instead of live APIs"
    )

    # ======================
    # Planner
    # ======================
    canonical_currency: str = Field(
        default="USDC", description="Settlement currency every source is converted into"
    )
    safety_multiplier: Decimal = Field(
        default=Decimal("1.025"),
        gt=1,
        le=Decimal("1.5"),
        description="Scale factor applied when re-sizing a quote estimate",
    )
    max_convergence_iterations: int = Field(
        default=16, ge=1, description="Maximum re-quote attempts per sizing loop"
    )

    # ======================
    # Quote providers
    # ======================
    provider_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Per-provider timeout for one quote batch"
    )
    slippage_bps: int = Field(default=100, ge=0, description="Slippage tolerance in bps")

    lifi_api_url: str = Field(default="https://li.quest/v1", description="LI.FI API URL")
    lifi_api_key: str = Field(default="", description="LI.FI API key")

    zeroex_api_url: str = Field(default="https://api.0x.org", description="0x API URL")
    zeroex_api_key: str = Field(default="", description="0x API key")

    bebop_api_url: str = Field(default="https://api.bebop.xyz/router", description="Bebop router API URL")
    bebop_api_key: str = Field(default="", description="Bebop API key")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "planner": {
                "canonical_currency": self.canonical_currency,
                "safety_multiplier": str(self.safety_multiplier),
                "max_convergence_iterations": self.max_convergence_iterations,
            },
            "providers": {
                "timeout_seconds": self.provider_timeout_seconds,
                "slippage_bps": self.slippage_bps,
                "lifi": {"url": self.lifi_api_url, "api_key": "***" if self.lifi_api_key else "(not set)"},
                "zeroex": {"url": self.zeroex_api_url, "api_key": "***" if self.zeroex_api_key else "(not set)"},
                "bebop": {"url": self.bebop_api_url, "api_key": "***" if self.bebop_api_key else "(not set)"},
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
