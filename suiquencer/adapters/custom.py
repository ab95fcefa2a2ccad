"""
Arbitrary Move call. Arguments come from the editor as a JSON array and are
mapped onto transaction arguments by shape:

* ``true`` / ``false`` (bool or string) -> pure bool
* ``"0x..."`` -> object reference
* numbers and numeric strings -> a SUI coin of that many MIST, sourced like
  any other native spend
* any other string -> pure string
* anything else -> pure value as-is
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from shared.logger import get_logger
from suiquencer.adapters.base import AssemblyContext
from suiquencer.compiler.validate_steps import parse_json_array
from suiquencer.registry.tokens import NATIVE_SYMBOL
from suiquencer.runtime.ledger import Handle
from suiquencer.schema.models import CustomNode

logger = get_logger(__name__)


class MoveCallAdapter:
    kind = "custom"
    protocol = "move_call"

    async def build(self, ctx: AssemblyContext) -> None:
        node: CustomNode = ctx.step.node
        data = node.data
        target = f"{data.custom_package_id}::{data.custom_module}::{data.custom_function}"
        try:
            raw_args = parse_json_array(data.custom_arguments, "arguments")
            type_arguments = [str(arg) for arg in parse_json_array(data.custom_type_arguments, "type arguments")]
        except ValueError as exc:
            raise ctx.error(str(exc)) from exc
        arguments = [await to_argument(ctx, arg) for arg in raw_args]

        ctx.tx.move_call(target, arguments, type_arguments)
        suffix = f"<{', '.join(type_arguments)}>" if type_arguments else ""
        logger.info("%s: custom call %s%s", ctx.label, target, suffix)


async def to_argument(ctx: AssemblyContext, arg: Any) -> Handle:
    tx = ctx.tx
    if isinstance(arg, bool):
        return tx.pure(arg, "bool")
    if arg in ("true", "false"):
        return tx.pure(arg == "true", "bool")
    if isinstance(arg, str) and arg.startswith("0x"):
        return tx.object(arg)
    if isinstance(arg, (int, float)):
        return await _native_coin(ctx, int(arg))
    if isinstance(arg, str):
        amount = _numeric(arg)
        if amount is not None:
            return await _native_coin(ctx, amount)
        return tx.pure(arg, "string")
    return tx.pure(arg)


def _numeric(text: str) -> int | None:
    if not text.strip():
        return None
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        return None
    return int(value) if value.is_finite() else None


async def _native_coin(ctx: AssemblyContext, amount: int) -> Handle:
    if amount <= 0:
        raise ctx.error(f"Coin argument must be a positive amount of MIST, got {amount}")
    return await ctx.acquire(ctx.token(NATIVE_SYMBOL), amount)
