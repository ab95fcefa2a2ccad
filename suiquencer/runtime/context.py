"""
Container for the collaborators and knobs a sequence run depends on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from shared.config import SuiquencerConfig, config
from suiquencer.adapters import default_adapter_registry
from suiquencer.registry.adapter_registry import AdapterRegistry
from suiquencer.registry.tokens import TokenRegistry, default_token_registry
from suiquencer.runtime.services import (
    LedgerClient,
    NameResolver,
    PredicateFetcher,
    RouteService,
    Signer,
    SwapRouter,
)


@dataclass(frozen=True)
class RunSettings:
    position_epsilon: float
    comparison_tolerance: float
    sui_gas_reserve: float
    swap_slippage: float
    max_bridge_attempts: int
    bridge_tracking_base_url: str
    strict_branch_config: bool

    @classmethod
    def from_config(cls, settings: SuiquencerConfig = config) -> "RunSettings":
        return cls(
            position_epsilon=settings.position_epsilon,
            comparison_tolerance=settings.comparison_tolerance,
            sui_gas_reserve=settings.sui_gas_reserve,
            swap_slippage=settings.swap_slippage,
            max_bridge_attempts=settings.max_bridge_attempts,
            bridge_tracking_base_url=settings.bridge_tracking_base_url,
            strict_branch_config=settings.strict_branch_config,
        )


@dataclass(frozen=True)
class RunServices:
    ledger: LedgerClient
    signer: Signer
    predicates: Optional[PredicateFetcher] = None
    names: Optional[NameResolver] = None
    routes: Optional[RouteService] = None
    swap_router: Optional[SwapRouter] = None
    adapters: AdapterRegistry = field(default_factory=default_adapter_registry)
    tokens: TokenRegistry = field(default_factory=default_token_registry)
