"""
SUI staking: native delegation through the system object, or liquid staking
with Aftermath (afSUI) and Volo (vSUI). Liquid-staking receipts go back to the
signer.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.logger import get_logger
from suiquencer.adapters.base import SUI_SYSTEM_STATE, AssemblyContext
from suiquencer.registry.tokens import NATIVE_SYMBOL
from suiquencer.runtime.ledger import Handle
from suiquencer.schema.models import StakeNode

logger = get_logger(__name__)


@dataclass(frozen=True)
class AftermathObjects:
    package_id: str = "0x1575034d2729907aefca1ac757d6ccfcd3fc7e9e77927523c06007d8353ad836"
    staked_sui_vault: str = "0x2f8f6d5da7f13ea37daa397724280483ed062769813b6f31e9788e59cc88994d"
    safe: str = "0xeb685899830dd5837b47007809c76d91a098d52aabbf61e8ac467c59e5cc4610"
    referral_vault: str = "0x4ce9a19b594599536c53edb25d22532f82f18038dc8ef618afd00fbbfb9845ef"


@dataclass(frozen=True)
class VoloObjects:
    package_id: str = "0x68d22cf8bdbcd11ecba1e094922873e4080d4d11133e2443fddda0bfd11dae20"
    stake_pool: str = "0x2d914e23d82fedef1b5f56a32d5c64bdcc3087ccfea2b4d6ea51a71f587840e5"
    metadata: str = "0x680cd26af32b2bde8d3361e804c53ec1d1cfe24c7f039eb7f549e8dfde389a60"


AFTERMATH = AftermathObjects()
VOLO = VoloObjects()


async def _stake_input(ctx: AssemblyContext) -> Handle:
    node: StakeNode = ctx.step.node
    token = ctx.token(NATIVE_SYMBOL)
    amount = token.to_base_units(node.data.stake_amount)
    return await ctx.acquire(token, amount)


class NativeStakeAdapter:
    kind = "stake"
    protocol = "native"

    async def build(self, ctx: AssemblyContext) -> None:
        node: StakeNode = ctx.step.node
        validator = node.data.stake_validator
        if not validator:
            raise ctx.error("Please select a validator")

        coin = await _stake_input(ctx)
        ctx.tx.move_call(
            "0x3::sui_system::request_add_stake",
            [ctx.tx.object(SUI_SYSTEM_STATE), coin, ctx.tx.pure(validator, "address")],
        )
        logger.info("%s: native stake to validator %s...", ctx.label, validator[:10])


class AftermathStakeAdapter:
    kind = "stake"
    protocol = "aftermath"

    def __init__(self, objects: AftermathObjects = AFTERMATH) -> None:
        self.objects = objects

    async def build(self, ctx: AssemblyContext) -> None:
        node: StakeNode = ctx.step.node
        validator = node.data.stake_validator
        if not validator:
            validators = await ctx.ledger.get_active_validators()
            if not validators:
                raise ctx.error("No active validators found")
            validator = validators[0]

        coin = await _stake_input(ctx)
        af_sui = ctx.tx.move_call(
            f"{self.objects.package_id}::staked_sui_vault::request_stake",
            [
                ctx.tx.object(self.objects.staked_sui_vault),
                ctx.tx.object(self.objects.safe),
                ctx.tx.object(SUI_SYSTEM_STATE),
                ctx.tx.object(self.objects.referral_vault),
                coin,
                ctx.tx.pure(validator, "address"),
            ],
        )
        ctx.tx.transfer_objects([af_sui], ctx.signer_address)
        logger.info("%s: Aftermath stake for afSUI (validator %s...)", ctx.label, validator[:10])


class VoloStakeAdapter:
    kind = "stake"
    protocol = "volo"

    def __init__(self, objects: VoloObjects = VOLO) -> None:
        self.objects = objects

    async def build(self, ctx: AssemblyContext) -> None:
        coin = await _stake_input(ctx)
        v_sui = ctx.tx.move_call(
            f"{self.objects.package_id}::stake_pool::stake",
            [
                ctx.tx.object(self.objects.stake_pool),
                ctx.tx.object(self.objects.metadata),
                ctx.tx.object(SUI_SYSTEM_STATE),
                coin,
            ],
        )
        ctx.tx.transfer_objects([v_sui], ctx.signer_address)
        logger.info("%s: Volo stake for vSUI", ctx.label)
