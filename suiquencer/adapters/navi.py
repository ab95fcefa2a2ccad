"""
Navi lending: deposit from the signer, withdraw and borrow into the
intermediate pool so later steps of the same transaction can spend the
proceeds. Repay is not supported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from shared.logger import get_logger
from suiquencer.adapters.base import SUI_CLOCK, SUI_SYSTEM_STATE, AssemblyContext
from suiquencer.registry.tokens import TokenInfo
from suiquencer.runtime.ledger import Handle
from suiquencer.schema.models import LendNode

logger = get_logger(__name__)


@dataclass(frozen=True)
class NaviObjects:
    package_id: str = "0xee0041239b89564ce870a7dec5ddc5d114367ab94a1137e90aa0633cb76518e0"
    storage: str = "0xbb4e2f4b6205c2e2a2db47aeb4f830796ec7c005f88537ee775986639bc442fe"
    price_oracle: str = "0x1568865ed9a0b5ec414220e8f79b3d04c77acc82358f6e5ae4635687392ffbef"
    incentive_v2: str = "0xf87a8acb8b81d14307894d12595541a73f19933f88e1326d5be349c7a6f7559c"
    incentive_v3: str = "0x62982dad27fb10bb314b3384d5de8d2ac2d72ab2dbeae5d801dbdb9efa816c80"
    # symbol -> (asset id, pool object)
    pools: Dict[str, Tuple[int, str]] = field(
        default_factory=lambda: {
            "SUI": (0, "0x96df0fce3c471489f4debaaa762cf960b3d97820bd1f3f025ff8190730e958c5"),
            "USDC": (10, "0xa3582097b4c57630046c0c49a88bfc6b202a3ec0a9db5597c31765f7563755a8"),
            "USDT": (19, "0xa3e0471746e5d35043801bce247d3b3784cc74329d39f7ed665446ddcf22a9e2"),
            "WAL": (24, "0xef76883525f5c2ff90cd97732940dbbdba0b391e29de839b10588cee8e4fe167"),
            "CETUS": (4, "0x3c376f857ec4247b8ee456c1db19e9c74e0154d4876915e54221b5052d5b1e2e"),
            "AUSD": (9, "0xc9208c1e75f990b2c814fa3a45f1bf0e85bb78404cfdb2ae6bb97de58bb30932"),
            "DEEP": (15, "0x08373c5efffd07f88eace1c76abe4777489d9ec044fd4cd567f982d9c169e946"),
            "BLUE": (17, "0xe2cfd1807f5b44b44d7cabff5376099e76c5f0e4b35a01bdc4b0ef465a23e32c"),
            "BUCK": (18, "0x98953e1c8af4af0cd8f59a52f9df6e60c9790b8143f556751f10949b40c76c50"),
        }
    )


NAVI = NaviObjects()


class NaviLendingAdapter:
    kind = "lend"
    protocol = "navi"

    def __init__(self, objects: NaviObjects = NAVI) -> None:
        self.objects = objects

    async def build(self, ctx: AssemblyContext) -> None:
        node: LendNode = ctx.step.node
        token = ctx.token(node.data.lend_asset)
        pool = self.objects.pools.get(token.symbol)
        if pool is None:
            raise ctx.error(f"Navi does not support {token.symbol}")
        amount = token.to_base_units(node.data.lend_amount)

        action = node.data.lend_action
        if action == "deposit":
            await self._deposit(ctx, token, pool, amount)
        elif action in ("withdraw", "borrow"):
            self._draw(ctx, token, pool, amount, action)
        elif action == "repay":
            raise ctx.error("Navi repay is not supported yet")
        else:
            raise ctx.error(f"Unsupported lending action '{action}'")

    async def _deposit(self, ctx: AssemblyContext, token: TokenInfo, pool: Tuple[int, str], amount: int) -> None:
        asset_id, pool_id = pool
        coin = await ctx.acquire(token, amount)
        tx = ctx.tx
        tx.move_call(
            f"{self.objects.package_id}::incentive_v3::entry_deposit",
            [
                tx.object(SUI_CLOCK),
                tx.object(self.objects.storage),
                tx.object(pool_id),
                tx.pure(asset_id, "u8"),
                coin,
                tx.pure(amount, "u64"),
                tx.object(self.objects.incentive_v2),
                tx.object(self.objects.incentive_v3),
            ],
            [token.coin_type],
        )
        logger.info("%s: Navi deposit %s", ctx.label, token.symbol)

    def _draw(self, ctx: AssemblyContext, token: TokenInfo, pool: Tuple[int, str], amount: int, action: str) -> None:
        asset_id, pool_id = pool
        tx = ctx.tx
        balance = tx.move_call(
            f"{self.objects.package_id}::incentive_v3::{action}_v2",
            [
                tx.object(SUI_CLOCK),
                tx.object(self.objects.price_oracle),
                tx.object(self.objects.storage),
                tx.object(pool_id),
                tx.pure(asset_id, "u8"),
                tx.pure(amount, "u64"),
                tx.object(self.objects.incentive_v2),
                tx.object(self.objects.incentive_v3),
                tx.object(SUI_SYSTEM_STATE),
            ],
            [token.coin_type],
        )
        coin: Handle = tx.move_call("0x2::coin::from_balance", [balance], [token.coin_type])
        ctx.produce(token, coin, amount)
        logger.info("%s: Navi %s %s (available to later steps)", ctx.label, action, token.symbol)
