from __future__ import annotations

from shared.logger import get_logger
from suiquencer.adapters.base import AssemblyContext
from suiquencer.schema.models import TransferNode

logger = get_logger(__name__)


class NativeTransferAdapter:
    kind = "transfer"
    protocol = "native"

    async def build(self, ctx: AssemblyContext) -> None:
        node: TransferNode = ctx.step.node
        token = ctx.token(node.data.asset)
        amount = token.to_base_units(node.data.amount)
        if amount <= 0:
            raise ctx.error(f"Transfer amount {node.data.amount} {token.symbol} is below the smallest unit")

        recipient = ctx.names.lookup(node.data.recipient_address)
        coin = await ctx.acquire(token, amount)
        ctx.tx.transfer_objects([coin], recipient)
        logger.info("%s: transfer %s %s to %s...", ctx.label, node.data.amount, token.symbol, recipient[:10])
