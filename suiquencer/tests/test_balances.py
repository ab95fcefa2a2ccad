from __future__ import annotations

from decimal import Decimal

from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.runtime.balances import EffectiveBalanceEstimator, consumption
from suiquencer.schema.models import LendNode
from suiquencer.tests.fakes import RECIPIENT, VALIDATOR, edge, graph, node, wallet

BALANCES = {"SUI": Decimal("10"), "USDC": Decimal("100")}


def _transfer(node_id: str, y: float, amount: str, asset: str = "SUI"):
    return node(node_id, "transfer", y=y, recipientAddress=RECIPIENT, amount=amount, asset=asset)


def _estimator(nodes, edges) -> EffectiveBalanceEstimator:
    return EffectiveBalanceEstimator(parse_flow_graph(graph([wallet(), *nodes], edges)), BALANCES, position_epsilon=50)


def test_upstream_spends_are_subtracted_per_asset() -> None:
    estimator = _estimator(
        [
            _transfer("t1", 100, "2"),
            node("swap", "swap", y=200, fromAsset="USDC", toAsset="SUI", amount="30"),
            node("stake", "stake", y=300, stakeAmount="3", stakeValidator=VALIDATOR),
            _transfer("last", 400, "1"),
        ],
        [edge("wallet", "t1"), edge("t1", "swap"), edge("swap", "stake"), edge("stake", "last")],
    )

    assert estimator.estimate_all("last") == {"SUI": Decimal("5"), "USDC": Decimal("70")}
    # A node's own spend is not counted against itself.
    assert estimator.estimate_at("t1", "sui") == Decimal("10")


def test_sibling_branches_do_not_affect_each_other() -> None:
    estimator = _estimator(
        [_transfer("left", 100, "4"), _transfer("right", 200, "3"), _transfer("after_left", 300, "1")],
        [edge("wallet", "left"), edge("wallet", "right"), edge("left", "after_left")],
    )

    assert estimator.estimate_at("right", "SUI") == Decimal("10")
    assert estimator.estimate_at("after_left", "SUI") == Decimal("6")


def test_estimate_never_goes_negative() -> None:
    estimator = _estimator(
        [_transfer("big", 100, "25"), _transfer("next", 200, "1")],
        [edge("wallet", "big"), edge("big", "next")],
    )

    assert estimator.estimate_at("next", "SUI") == Decimal(0)
    assert estimator.estimate_at("next", "WAL") == Decimal(0)


def test_only_spending_lend_actions_consume() -> None:
    deposit = LendNode.model_validate({"id": "d", "type": "lend", "data": {"lendAction": "deposit", "lendAmount": "5"}})
    borrow = LendNode.model_validate({"id": "b", "type": "lend", "data": {"lendAction": "borrow", "lendAmount": "5"}})

    assert consumption(deposit) == ("SUI", Decimal("5"))
    assert consumption(borrow) is None
