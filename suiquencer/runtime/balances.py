"""
Advisory "what will be left" figures the editor shows on each node.

The balance available at a node is the wallet balance minus what the steps
on the way to it spend. Nothing here touches the ledger.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from suiquencer.compiler.graph_view import GraphView
from suiquencer.compiler.sequence import Step, as_graph_view, compile_sequence
from suiquencer.registry.tokens import NATIVE_SYMBOL
from suiquencer.schema.models import BridgeNode, FlowGraph, LendNode, Node, StakeNode, SwapNode, TransferNode

_CONSUMING_LEND_ACTIONS = ("deposit", "repay")


def consumption(node: Node) -> Optional[Tuple[str, Decimal]]:
    """(asset, amount) a step spends from the wallet, if any."""

    if isinstance(node, TransferNode):
        asset, amount = node.data.asset, node.data.amount
    elif isinstance(node, SwapNode):
        asset, amount = node.data.from_asset, node.data.amount
    elif isinstance(node, LendNode):
        if node.data.lend_action not in _CONSUMING_LEND_ACTIONS:
            return None
        asset, amount = node.data.lend_asset, node.data.lend_amount
    elif isinstance(node, StakeNode):
        asset, amount = NATIVE_SYMBOL, node.data.stake_amount
    elif isinstance(node, BridgeNode):
        asset, amount = node.data.bridge_asset, node.data.bridge_amount
    else:
        return None

    if not asset or amount is None or amount <= 0:
        return None
    return asset.upper(), amount


class EffectiveBalanceEstimator:
    def __init__(
        self,
        graph: FlowGraph | GraphView,
        base_balances: Mapping[str, Decimal],
        *,
        position_epsilon: float | None = None,
    ) -> None:
        self.view = as_graph_view(graph, position_epsilon)
        self.base_balances: Dict[str, Decimal] = {
            symbol.upper(): Decimal(str(amount)) for symbol, amount in base_balances.items()
        }
        self.steps: List[Step] = compile_sequence(self.view)
        self._positions: Dict[str, int] = {step.node.id: step.index for step in self.steps}

    def estimate_at(self, node_id: str, asset: str) -> Decimal:
        asset = asset.upper()
        spent = sum(
            (amount for spent_asset, amount in self._upstream_consumption(node_id) if spent_asset == asset),
            Decimal(0),
        )
        return max(self.base_balances.get(asset, Decimal(0)) - spent, Decimal(0))

    def estimate_all(self, node_id: str) -> Dict[str, Decimal]:
        return {asset: self.estimate_at(node_id, asset) for asset in self.base_balances}

    def _upstream_consumption(self, node_id: str) -> List[Tuple[str, Decimal]]:
        ancestors = self.view.ancestors(node_id)
        position = self._positions.get(node_id)
        spent: List[Tuple[str, Decimal]] = []
        for step in self.steps:
            if step.node.id not in ancestors:
                continue
            if position is not None and step.index >= position:
                continue
            entry = consumption(step.node)
            if entry is not None:
                spent.append(entry)
        return spent
