"""
Models the engine hands back to the caller: live bridge status snapshots and
the summary of a finished run.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultModel(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class BridgePhase(str, Enum):
    signing = "signing"
    pending = "pending"
    bridging = "bridging"
    done = "done"
    failed = "failed"


class BridgeProcess(ResultModel):
    """One sub-process record reported by the routing service."""

    type: str = "UNKNOWN"
    status: str = "UNKNOWN"
    tx_hash: Optional[str] = None
    tx_link: Optional[str] = None


class BridgeStatus(ResultModel):
    phase: BridgePhase = BridgePhase.signing
    processes: List[BridgeProcess] = Field(default_factory=list)
    tool: Optional[str] = None
    from_asset: Optional[str] = None
    to_asset: Optional[str] = None
    from_chain: Optional[str] = None
    to_chain: Optional[str] = None
    error: Optional[str] = None
    tracking_url: Optional[str] = None


class BridgeResult(ResultModel):
    step_index: int
    node_id: str
    status: BridgeStatus
    source_tx_hash: Optional[str] = None
    attempts: int = 0
    route_requests: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status.phase in (BridgePhase.done, BridgePhase.bridging)


class ExecutionResult(ResultModel):
    same_chain_tx_id: Optional[str] = None
    bridge_results: List[BridgeResult] = Field(default_factory=list)
    step_count: int = 0
    message: str = ""

    @property
    def all_skipped(self) -> bool:
        return self.same_chain_tx_id is None and not self.bridge_results and self.step_count == 0

    @property
    def digest(self) -> str:
        """Identifier the success dialog links to."""
        if self.same_chain_tx_id:
            return self.same_chain_tx_id
        for result in self.bridge_results:
            if result.source_tx_hash:
                return result.source_tx_hash
        return "bridge-pending" if self.bridge_results else ""
