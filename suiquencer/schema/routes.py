"""
Cross-chain route request/response shapes exchanged with the routing service.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RouteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    from_chain_id: int
    to_chain_id: int
    from_token_address: str
    to_token_address: str
    from_amount: str
    from_address: str
    to_address: str
    deny_bridges: List[str] = Field(default_factory=list)
    order: str = "RECOMMENDED"


class Route(BaseModel):
    """
    A quoted route. ``tool`` names the bridge provider that carries the
    cross-chain leg and is what gets denied when the route fails.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    tool: str = "unknown"
    to_address: Optional[str] = None
    from_amount: Optional[str] = None
    to_amount: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)
