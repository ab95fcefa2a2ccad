from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from suiquencer.compiler.names import ResolvedNames
from suiquencer.compiler.sequence import Step
from suiquencer.errors import ExecutionError
from suiquencer.registry.tokens import TokenInfo, TokenRegistry
from suiquencer.runtime.ledger import Handle, LedgerTransaction
from suiquencer.runtime.resources import ExternalCoinSource, IntermediateResourcePool
from suiquencer.runtime.services import LedgerClient, SwapRouter


SUI_CLOCK = "0x0000000000000000000000000000000000000000000000000000000000000006"
SUI_SYSTEM_STATE = "0x5"


@dataclass(slots=True)
class AssemblyContext:
    """Everything an adapter may touch while appending one step to the transaction."""

    tx: LedgerTransaction
    step: Step
    signer_address: str
    tokens: TokenRegistry
    ledger: LedgerClient
    pool: IntermediateResourcePool
    external: ExternalCoinSource
    names: ResolvedNames
    swap_router: Optional[SwapRouter] = None
    slippage: float = 0.02

    @property
    def label(self) -> str:
        return self.step.label

    def token(self, symbol: Optional[str]) -> TokenInfo:
        token = self.tokens.maybe_get(symbol)
        if token is None:
            raise self.error(f"Asset '{symbol}' is not supported")
        return token

    async def acquire(self, token: TokenInfo, amount: int) -> Handle:
        """
        A coin of exactly ``amount`` base units. Pooled value from earlier
        steps is used first; a short pool is topped up from the wallet.
        """

        pooled = self.pool.available(token.coin_type)
        if pooled >= amount:
            return self.pool.withdraw(self.tx, token.coin_type, amount)

        if pooled:
            entry = self.pool.take(token.coin_type)
            top_up = await self.external.acquire(self.tx, token, amount - pooled, step_index=self.step.index)
            self.tx.merge_coins(entry.handle, [top_up])
            return entry.handle

        return await self.external.acquire(self.tx, token, amount, step_index=self.step.index)

    def produce(self, token: TokenInfo, handle: Handle, amount: int) -> None:
        """Register a coin this step outputs for later steps of the same transaction."""
        self.pool.deposit(self.tx, token.coin_type, handle, amount)

    def error(self, message: str) -> ExecutionError:
        return ExecutionError(message, step_index=self.step.index)


class StepAdapter(Protocol):
    """Interface implemented by protocol-specific step builders."""

    kind: str
    protocol: str

    async def build(self, ctx: AssemblyContext) -> None:
        """Append this step's commands to ``ctx.tx``."""
