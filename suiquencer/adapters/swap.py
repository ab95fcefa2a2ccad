from __future__ import annotations

from shared.logger import get_logger
from suiquencer.adapters.base import AssemblyContext
from suiquencer.schema.models import SwapNode

logger = get_logger(__name__)


class AggregatorSwapAdapter:
    """Same-chain swap through the injected DEX aggregator; output goes back to the signer."""

    kind = "swap"
    protocol = "aggregator"

    async def build(self, ctx: AssemblyContext) -> None:
        node: SwapNode = ctx.step.node
        if ctx.swap_router is None:
            raise ctx.error("Swaps are not available: no swap router configured")

        source = ctx.token(node.data.from_asset)
        target = ctx.token(node.data.to_asset)
        amount = source.to_base_units(node.data.amount)
        if amount <= 0:
            raise ctx.error(f"Swap amount {node.data.amount} {source.symbol} is below the smallest unit")

        logger.debug("%s: fetching swap route for %s %s -> %s", ctx.label, node.data.amount, source.symbol, target.symbol)
        quote = await ctx.swap_router.find_route(source.coin_type, target.coin_type, amount)
        if quote is None or quote.amount_out <= 0:
            raise ctx.error(
                f"No swap route found for {source.symbol} → {target.symbol}. Try a different amount or pair."
            )
        logger.info("%s: route found, %d hop(s), estimated output %s", ctx.label, quote.hops, quote.amount_out)

        input_coin = await ctx.acquire(source, amount)
        output = await ctx.swap_router.build_swap(ctx.tx, quote, input_coin, ctx.slippage)
        ctx.tx.transfer_objects([output], ctx.signer_address)
        logger.info("%s: swap %s %s -> %s", ctx.label, node.data.amount, source.symbol, target.symbol)
