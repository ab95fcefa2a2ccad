"""
Type-safe configuration for Suiquencer using Pydantic Settings.

This module provides a centralized, type-safe configuration system
that loads from environment variables (prefixed with ``SUIQUENCER_``) and
.env files.

Usage:
    from shared.config import config

    attempts = config.max_bridge_attempts
"""
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SuiquencerConfig(BaseSettings):
    """
    Central configuration for the sequence engine.

    All configuration is loaded from environment variables or .env file.
    Provides type safety and validation at startup.
    """
    model_config = SettingsConfigDict(
        env_prefix="SUIQUENCER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ============================================================================
    # Ledger (Sui) Connectivity
    # ============================================================================

    network: str = Field(default="mainnet", description="Sui network the engine targets")
    sui_rpc_url: str = Field(default="https://fullnode.mainnet.sui.io:443", description="Sui JSON-RPC endpoint")
    http_timeout_seconds: float = Field(default=20.0, description="Timeout for outbound HTTP calls")

    # ============================================================================
    # Cross-chain Routing (LI.FI)
    # ============================================================================

    lifi_api_url: str = Field(default="https://li.quest/v1", description="LI.FI REST API base URL")
    lifi_api_key: Optional[str] = Field(default=None, description="LI.FI API key (optional, raises rate limits)")
    lifi_integrator: str = Field(default="Suiquencer", description="Integrator tag sent with every route request")
    bridge_tracking_base_url: str = Field(default="https://scan.li.fi/tx/", description="Explorer prefix for bridge tracking links")
    max_bridge_attempts: int = Field(default=3, ge=1, description="Route attempts per bridge step before giving up")

    # ============================================================================
    # Sequence Compilation & Assembly
    # ============================================================================

    position_epsilon: float = Field(
        default=50.0,
        ge=0,
        description="Vertical band (px) inside which sibling nodes are ordered left to right",
    )
    comparison_tolerance: float = Field(default=1e-4, gt=0, description="Tolerance used by eq/ne branch comparisons")
    sui_gas_reserve: float = Field(default=0.01, ge=0, description="SUI kept back from native spends to pay gas")
    swap_slippage: float = Field(default=0.02, ge=0, lt=1, description="Slippage tolerance handed to the swap router")
    strict_branch_config: bool = Field(
        default=False,
        description="If True, an incompletely configured logic node is a validation error instead of evaluating to false",
    )

    # ============================================================================
    # Logging
    # ============================================================================

    log_level: str = Field(default="INFO", description="Default level for loggers created via shared.logger")
    log_propagate: bool = Field(default=False, description="Propagate engine logs to the root logger")

    # ============================================================================
    # Computed Properties
    # ============================================================================

    @computed_field
    @property
    def lifi_headers(self) -> dict[str, str]:
        """Headers attached to every LI.FI request."""
        headers = {"x-lifi-integrator": self.lifi_integrator}
        if self.lifi_api_key:
            headers["x-lifi-api-key"] = self.lifi_api_key
        return headers


# ============================================================================
# Global Config Instance
# ============================================================================

config = SuiquencerConfig()
