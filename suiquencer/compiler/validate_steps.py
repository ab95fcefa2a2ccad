"""
Stage 4: Pre-flight validation of every step's configuration.

Runs before any ledger call and stops at the first problem, reported with the
"Step N" label of the offending step. Skipped steps are still validated: skip
marks are only known after branch evaluation, which needs validated input.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from shared.logger import get_logger
from suiquencer.compiler.names import ResolvedNames, is_ens_name
from suiquencer.compiler.sequence import Step
from suiquencer.errors import ValidationPhaseError
from suiquencer.registry import chains
from suiquencer.registry.tokens import TokenRegistry
from suiquencer.schema.models import (
    BridgeNode,
    CustomNode,
    LendNode,
    LogicData,
    LogicNode,
    LogicType,
    StakeNode,
    SwapNode,
    TransferNode,
)

logger = get_logger(__name__)

LEND_PROTOCOLS = ("scallop", "navi")
LEND_ACTIONS = ("deposit", "withdraw", "borrow", "repay")
STAKE_PROTOCOLS = ("native", "aftermath", "volo")
MIN_NATIVE_STAKE = Decimal("1")


def parse_json_array(value: Any, what: str) -> List[Any]:
    """Editor fields holding Move arguments are JSON array strings or lists."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    text = str(value).strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid {what} format. Must be a valid JSON array.") from exc
    if not isinstance(parsed, list):
        raise ValueError(f"Invalid {what} format. Must be a valid JSON array.")
    return parsed


def missing_predicate_fields(data: LogicData) -> List[str]:
    if data.logic_type is None:
        return ["logic type"]
    if data.logic_type is LogicType.balance:
        checks = {
            "address": data.balance_address,
            "operator": data.comparison_operator,
            "compare value": data.compare_value,
        }
    else:
        checks = {
            "package": data.contract_package_id,
            "module": data.contract_module,
            "function": data.contract_function,
            "operator": data.contract_comparison_operator,
            "compare value": data.contract_compare_value,
        }
    return [name for name, value in checks.items() if value is None]


class StepValidator:
    def __init__(
        self,
        *,
        tokens: TokenRegistry,
        names: ResolvedNames,
        strict_branch_config: bool = False,
    ) -> None:
        self.tokens = tokens
        self.names = names
        self.strict_branch_config = strict_branch_config
        self._checks: Dict[Type[Any], Callable[[Any], None]] = {
            TransferNode: self._check_transfer,
            SwapNode: self._check_swap,
            LendNode: self._check_lend,
            StakeNode: self._check_stake,
            BridgeNode: self._check_bridge,
            CustomNode: self._check_custom,
            LogicNode: self._check_logic,
        }

    def validate(self, steps: Iterable[Step]) -> None:
        for step in steps:
            check = self._checks.get(type(step.node))
            if check is None:
                continue
            try:
                check(step.node)
            except ValueError as exc:
                raise ValidationPhaseError(str(exc), step_index=step.index) from exc
            logger.debug("%s: %s configuration ok", step.label, step.node.type)

    # -----------------------------
    # Per-kind checks
    # -----------------------------
    def _check_transfer(self, node: TransferNode) -> None:
        data = node.data
        if not data.recipient_address:
            raise ValueError("Recipient address is required")
        _require_positive(data.amount, "Transfer amount")
        self._require_token(data.asset)

    def _check_swap(self, node: SwapNode) -> None:
        data = node.data
        if not data.from_asset or not data.to_asset:
            raise ValueError("Swap requires both a source and a destination asset")
        self._require_token(data.from_asset)
        self._require_token(data.to_asset)
        if data.from_asset.upper() == data.to_asset.upper():
            raise ValueError(f"Cannot swap {data.from_asset} to itself")
        _require_positive(data.amount, "Swap amount")

    def _check_lend(self, node: LendNode) -> None:
        data = node.data
        _require_positive(data.lend_amount, "Lend amount")
        if data.lend_protocol not in LEND_PROTOCOLS:
            raise ValueError(f"Unsupported lending protocol '{data.lend_protocol}'")
        if data.lend_action not in LEND_ACTIONS:
            raise ValueError(f"Unsupported lending action '{data.lend_action}'")
        if data.lend_protocol == "navi" and data.lend_action == "repay":
            raise ValueError("Navi repay is not supported yet")
        self._require_token(data.lend_asset)

    def _check_stake(self, node: StakeNode) -> None:
        data = node.data
        _require_positive(data.stake_amount, "Stake amount")
        if data.stake_protocol not in STAKE_PROTOCOLS:
            raise ValueError(f"Unsupported staking protocol '{data.stake_protocol}'")
        if data.stake_protocol == "native":
            if data.stake_amount < MIN_NATIVE_STAKE:
                raise ValueError("Minimum stake amount is 1 SUI")
            if not data.stake_validator:
                raise ValueError("Please select a validator")

    def _check_bridge(self, node: BridgeNode) -> None:
        data = node.data
        if not data.bridge_asset:
            raise ValueError("Bridge source asset is required")
        if not data.bridge_output_asset:
            raise ValueError("Bridge destination asset is required")
        if not data.bridge_chain:
            raise ValueError("Bridge destination chain is required")
        _require_positive(data.bridge_amount, "Bridge amount")

        destination = data.ethereum_address
        if not destination:
            raise ValueError("Destination address is required")
        if not is_ens_name(destination) and not (destination.startswith("0x") and len(destination) == 42):
            raise ValueError("Invalid destination address. Use a 0x address or an ENS name (.eth)")
        if is_ens_name(destination) and destination not in self.names:
            raise ValueError(f"Could not resolve ENS name {destination}")

        chain_id = chains.dest_chain_id(data.bridge_chain)
        if chain_id is None:
            raise ValueError(f"Unsupported destination chain '{data.bridge_chain}'")
        if chains.source_token_address(data.bridge_asset) is None:
            raise ValueError(f"{data.bridge_asset} cannot be bridged from Sui")
        if chains.dest_token_address(data.bridge_output_asset, chain_id) is None:
            raise ValueError(f"{data.bridge_output_asset} is not available on {data.bridge_chain}")

    def _check_custom(self, node: CustomNode) -> None:
        data = node.data
        if not data.custom_package_id or not data.custom_module or not data.custom_function:
            raise ValueError("Custom call requires a package, module and function")
        parse_json_array(data.custom_arguments, "arguments")
        parse_json_array(data.custom_type_arguments, "type arguments")

    def _check_logic(self, node: LogicNode) -> None:
        data = node.data
        if data.logic_type is LogicType.contract:
            parse_json_array(data.contract_arguments, "contract arguments")
        elif data.logic_type is LogicType.balance and data.balance_asset:
            self._require_token(data.balance_asset)

        if not self.strict_branch_config:
            return
        missing = missing_predicate_fields(data)
        if missing:
            raise ValueError(f"Logic condition is incomplete: missing {', '.join(missing)}")

    def _require_token(self, symbol: Optional[str]) -> None:
        if self.tokens.maybe_get(symbol) is None:
            raise ValueError(f"Asset '{symbol}' is not supported")


def validate_steps(
    steps: Iterable[Step],
    *,
    tokens: TokenRegistry,
    names: ResolvedNames | None = None,
    strict_branch_config: bool = False,
) -> None:
    StepValidator(
        tokens=tokens,
        names=names or ResolvedNames(),
        strict_branch_config=strict_branch_config,
    ).validate(steps)


def _require_positive(amount: Optional[Decimal], what: str) -> None:
    if amount is None or amount <= 0:
        raise ValueError(f"{what} must be greater than zero")
