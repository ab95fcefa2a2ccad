"""
Scallop lending.

Deposits mint sCoin (``MarketCoin<T>``) to the signer; withdrawals redeem it,
burning wrapped ``SCALLOP_*`` coins first when the signer holds enough of
them. Borrow and repay act on the signer's obligation, which is looked up
on-chain when the node does not name one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from shared.logger import get_logger
from suiquencer.adapters.base import SUI_CLOCK, AssemblyContext
from suiquencer.errors import ResourceError
from suiquencer.registry.tokens import TokenInfo
from suiquencer.runtime.ledger import Handle, LedgerTransaction, split_one
from suiquencer.runtime.services import CoinRecord
from suiquencer.schema.models import LendNode

logger = get_logger(__name__)


@dataclass(frozen=True)
class WrappedSCoin:
    coin_type: str
    treasury_id: str


@dataclass(frozen=True)
class ScallopObjects:
    protocol_pkg: str = "0xd384ded6b9e7f4d2c4c9007b0291ef88fbfed8e709bce83d2da69de2d79d013d"
    core_type_pkg: str = "0xefe8b36d5b2e43728cc323298626b83177803521d195cfb11e15b910e892fddf"
    converter_pkg: str = "0x80ca577876dec91ae6d22090e56c39bc60dce9086ab0729930c6900bc4162b4c"
    version: str = "0x07871c4b3c847a0f674510d4978d5cf6f960452795e8ff6f189fd2088a3f6ac7"
    market: str = "0xa757975255146dc9686aa823b7838b507f315d704f428cbadad2f4ea061939d9"
    wrapped_scoins: Dict[str, WrappedSCoin] = field(
        default_factory=lambda: {
            "SUI": WrappedSCoin(
                coin_type="0xaafc4f740de0dd0dde642a31148fb94517087052f19afb0f7bed1dc41a50c77b::scallop_sui::SCALLOP_SUI",
                treasury_id="0x5c1678c8261ac9eec024d4d630006a9f55c80dc0b1aa38a003fcb1d425818c6b",
            ),
        }
    )
    # Underlying per sCoin, used to size withdrawals.
    exchange_rates: Dict[str, Decimal] = field(
        default_factory=lambda: {
            "SUI": Decimal("1.0931"),
            "USDC": Decimal("1.0567"),
            "USDT": Decimal("1.0489"),
            "WAL": Decimal("1.0123"),
        }
    )

    def market_coin_type(self, token: TokenInfo) -> str:
        return f"{self.core_type_pkg}::reserve::MarketCoin<{token.coin_type}>"

    @property
    def obligation_type(self) -> str:
        return f"{self.core_type_pkg}::obligation::Obligation"

    @property
    def obligation_key_type(self) -> str:
        return f"{self.core_type_pkg}::obligation::ObligationKey"


SCALLOP = ScallopObjects()


class ScallopLendingAdapter:
    kind = "lend"
    protocol = "scallop"

    def __init__(self, objects: ScallopObjects = SCALLOP) -> None:
        self.objects = objects

    async def build(self, ctx: AssemblyContext) -> None:
        node: LendNode = ctx.step.node
        token = ctx.token(node.data.lend_asset)
        action = node.data.lend_action
        handlers = {
            "deposit": self._deposit,
            "withdraw": self._withdraw,
            "borrow": self._borrow,
            "repay": self._repay,
        }
        handler = handlers.get(action)
        if handler is None:
            raise ctx.error(f"Unsupported lending action '{action}'")
        await handler(ctx, node, token)

    async def _deposit(self, ctx: AssemblyContext, node: LendNode, token: TokenInfo) -> None:
        coin = await ctx.acquire(token, token.to_base_units(node.data.lend_amount))
        tx = ctx.tx
        tx.move_call(
            f"{self.objects.protocol_pkg}::mint::mint_entry",
            [tx.object(self.objects.version), tx.object(self.objects.market), coin, tx.object(SUI_CLOCK)],
            [token.coin_type],
        )
        logger.info("%s: Scallop deposit %s", ctx.label, token.symbol)

    async def _withdraw(self, ctx: AssemblyContext, node: LendNode, token: TokenInfo) -> None:
        market_coin_type = self.objects.market_coin_type(token)
        wrapped = self.objects.wrapped_scoins.get(token.symbol)

        wrapped_coins: List[CoinRecord] = []
        if wrapped is not None:
            wrapped_coins = await ctx.ledger.get_coins(ctx.signer_address, wrapped.coin_type)
        raw_coins = await ctx.ledger.get_coins(ctx.signer_address, market_coin_type)
        if not wrapped_coins and not raw_coins:
            raise ResourceError(
                f"No s{token.symbol} coins found in wallet. Deposit first to get sCoin tokens.",
                asset=f"s{token.symbol}",
                shortfall=node.data.lend_amount,
                step_index=ctx.step.index,
            )

        rate = self.objects.exchange_rates.get(token.symbol, Decimal(1))
        needed = math.ceil(node.data.lend_amount / rate * (Decimal(10) ** token.decimals))
        wrapped_total = sum(coin.balance for coin in wrapped_coins)
        raw_total = sum(coin.balance for coin in raw_coins)
        # Rounding of the rate must not make a full withdrawal impossible.
        needed = min(needed, wrapped_total + raw_total)

        tx = ctx.tx
        if wrapped is not None and wrapped_total >= needed:
            scoin = _select_and_split(tx, wrapped_coins, needed)
            market_coin = tx.move_call(
                f"{self.objects.converter_pkg}::s_coin_converter::burn_s_coin",
                [tx.object(wrapped.treasury_id), scoin],
                [wrapped.coin_type, token.coin_type],
            )
        elif raw_total >= needed:
            market_coin = _select_and_split(tx, raw_coins, needed)
        else:
            raise ResourceError(
                f"Insufficient s{token.symbol}. Need ~{token.from_base_units(needed):.4f} s{token.symbol}",
                asset=f"s{token.symbol}",
                shortfall=token.from_base_units(needed - max(wrapped_total, raw_total)),
                step_index=ctx.step.index,
            )

        tx.move_call(
            f"{self.objects.protocol_pkg}::redeem::redeem_entry",
            [tx.object(self.objects.version), tx.object(self.objects.market), market_coin, tx.object(SUI_CLOCK)],
            [token.coin_type],
        )
        logger.info("%s: Scallop withdraw %s %s (burning %s sCoin units)", ctx.label, node.data.lend_amount, token.symbol, needed)

    async def _borrow(self, ctx: AssemblyContext, node: LendNode, token: TokenInfo) -> None:
        obligation, key = await self._obligation(ctx, node, "borrow")
        tx = ctx.tx
        tx.move_call(
            f"{self.objects.protocol_pkg}::borrow::borrow_entry",
            [
                tx.object(self.objects.version),
                tx.object(obligation),
                tx.object(key),
                tx.object(self.objects.market),
                tx.pure(token.to_base_units(node.data.lend_amount), "u64"),
                tx.object(SUI_CLOCK),
            ],
            [token.coin_type],
        )
        logger.info("%s: Scallop borrow %s (obligation %s...)", ctx.label, token.symbol, obligation[:10])

    async def _repay(self, ctx: AssemblyContext, node: LendNode, token: TokenInfo) -> None:
        obligation, key = await self._obligation(ctx, node, "repay")
        coin = await ctx.acquire(token, token.to_base_units(node.data.lend_amount))
        tx = ctx.tx
        tx.move_call(
            f"{self.objects.protocol_pkg}::repay::repay_entry",
            [
                tx.object(self.objects.version),
                tx.object(obligation),
                tx.object(key),
                tx.object(self.objects.market),
                coin,
                tx.object(SUI_CLOCK),
            ],
            [token.coin_type],
        )
        logger.info("%s: Scallop repay %s (obligation %s...)", ctx.label, token.symbol, obligation[:10])

    async def _obligation(self, ctx: AssemblyContext, node: LendNode, action: str) -> Tuple[str, str]:
        obligation: Optional[str] = node.data.lend_obligation_id
        key: Optional[str] = node.data.lend_obligation_key_id
        if obligation and key:
            return obligation, key

        logger.debug("%s: auto-detecting Scallop obligation for %s", ctx.label, action)
        obligations = await ctx.ledger.get_owned_objects(ctx.signer_address, self.objects.obligation_type)
        if not obligations:
            raise ctx.error(f"No Scallop obligation found. You need an open position to {action}.")
        keys = await ctx.ledger.get_owned_objects(ctx.signer_address, self.objects.obligation_key_type)
        if not keys:
            raise ctx.error(f"No Scallop obligation key found. Cannot {action} without the key.")
        return obligations[0], keys[0]


def _select_and_split(tx: LedgerTransaction, coins: List[CoinRecord], needed: int) -> Handle:
    selected: List[str] = []
    remaining = needed
    for coin in coins:
        if remaining <= 0:
            break
        selected.append(coin.coin_object_id)
        remaining -= coin.balance

    primary = tx.object(selected[0])
    tx.merge_coins(primary, [tx.object(object_id) for object_id in selected[1:]])
    return split_one(tx, primary, needed)
