"""
Stage 6: Fold every live same-chain step into one atomic transaction.

Steps are appended in compiled order. Branch steps add nothing, skipped steps
are left out, and bridge steps are collected for the orchestrator, which runs
them after the transaction is confirmed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from shared.config import config
from shared.logger import get_logger
from suiquencer.adapters.base import AssemblyContext
from suiquencer.compiler.names import ResolvedNames
from suiquencer.compiler.sequence import Step
from suiquencer.errors import ExecutionError, SequenceEngineError
from suiquencer.registry.adapter_registry import AdapterNotFoundError, AdapterRegistry
from suiquencer.registry.tokens import NATIVE_SYMBOL, TokenRegistry
from suiquencer.runtime.ledger import LedgerTransaction
from suiquencer.runtime.resources import ExternalCoinSource, IntermediateResource, IntermediateResourcePool
from suiquencer.runtime.services import LedgerClient, SwapRouter

logger = get_logger(__name__)


@dataclass
class AssemblyResult:
    transaction: Optional[LedgerTransaction]
    actual_step_count: int
    bridge_steps: List[Step] = field(default_factory=list)
    returned: List[IntermediateResource] = field(default_factory=list)


class TransactionAssembler:
    def __init__(
        self,
        *,
        adapters: AdapterRegistry,
        tokens: TokenRegistry,
        ledger: LedgerClient,
        swap_router: Optional[SwapRouter] = None,
        gas_reserve: float | None = None,
        slippage: float | None = None,
    ) -> None:
        self.adapters = adapters
        self.tokens = tokens
        self.ledger = ledger
        self.swap_router = swap_router
        self.gas_reserve = config.sui_gas_reserve if gas_reserve is None else gas_reserve
        self.slippage = config.swap_slippage if slippage is None else slippage

    async def assemble(
        self,
        steps: Sequence[Step],
        *,
        signer_address: str,
        names: ResolvedNames | None = None,
        pool: IntermediateResourcePool | None = None,
    ) -> AssemblyResult:
        tx = LedgerTransaction(sender=signer_address)
        pool = pool if pool is not None else IntermediateResourcePool()
        native = self.tokens.get(NATIVE_SYMBOL)
        external = ExternalCoinSource(
            ledger=self.ledger,
            owner=signer_address,
            gas_reserve=native.to_base_units(Decimal(str(self.gas_reserve))),
        )
        names = names or ResolvedNames()

        count = 0
        bridge_steps: List[Step] = []
        for step in steps:
            if step.skipped:
                logger.info("%s: skipped (logic condition not met)", step.label)
                continue
            if step.is_branch:
                continue
            if step.is_bridge:
                bridge_steps.append(step)
                continue

            ctx = AssemblyContext(
                tx=tx,
                step=step,
                signer_address=signer_address,
                tokens=self.tokens,
                ledger=self.ledger,
                pool=pool,
                external=external,
                names=names,
                swap_router=self.swap_router,
                slippage=self.slippage,
            )
            await self._build_step(ctx)
            count += 1

        returned = pool.drain()
        for resource in returned:
            tx.transfer_objects([resource.handle], signer_address)
            logger.debug("Returning %s unit(s) of %s to signer", resource.amount, resource.asset_key)

        if count == 0:
            logger.info("No same-chain operations to assemble")
            return AssemblyResult(transaction=None, actual_step_count=0, bridge_steps=bridge_steps)

        logger.info("Assembled %d operation(s) into %d command(s)", count, len(tx.operations))
        return AssemblyResult(
            transaction=tx,
            actual_step_count=count,
            bridge_steps=bridge_steps,
            returned=returned,
        )

    async def _build_step(self, ctx: AssemblyContext) -> None:
        step = ctx.step
        try:
            adapter = self.adapters.get(step.node.adapter_key())
        except AdapterNotFoundError as exc:
            raise ExecutionError(exc.args[0], step_index=step.index) from exc

        try:
            await adapter.build(ctx)
        except SequenceEngineError:
            raise
        except Exception as exc:
            raise ExecutionError(f"Failed to build {step.node.type} step: {exc}", step_index=step.index) from exc
