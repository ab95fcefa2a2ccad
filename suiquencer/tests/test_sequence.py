from __future__ import annotations

import itertools

import pytest

from suiquencer.compiler.graph_view import GraphView
from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.compiler.sequence import build_sequence_plan, compile_sequence, sequence_map
from suiquencer.errors import ValidationPhaseError
from suiquencer.tests.fakes import RECIPIENT, edge, graph, node, wallet


def _transfer(node_id: str, x: float = 0, y: float = 0):
    return node(node_id, "transfer", x, y, recipientAddress=RECIPIENT, amount="1", asset="SUI")


def _ids(payload, **kwargs) -> list[str]:
    return [step.node.id for step in compile_sequence(parse_flow_graph(payload), **kwargs)]


def test_linear_chain_follows_edges_not_insertion_order() -> None:
    payload = graph(
        [_transfer("c", y=300), wallet(), _transfer("a", y=100), _transfer("b", y=200)],
        [edge("b", "c"), edge("wallet", "a"), edge("a", "b")],
    )

    assert _ids(payload) == ["a", "b", "c"]


def test_siblings_ordered_top_to_bottom() -> None:
    payload = graph(
        [wallet(), _transfer("low", y=400), _transfer("high", y=100)],
        [edge("wallet", "low"), edge("wallet", "high")],
    )

    assert _ids(payload) == ["high", "low"]


def test_siblings_within_epsilon_band_ordered_left_to_right() -> None:
    payload = graph(
        [wallet(), _transfer("right", x=500, y=100), _transfer("left", x=0, y=140)],
        [edge("wallet", "right"), edge("wallet", "left")],
    )

    assert _ids(payload, position_epsilon=50) == ["left", "right"]
    assert _ids(payload, position_epsilon=10) == ["right", "left"]


def test_sibling_order_ignores_edge_creation_order() -> None:
    # b is within the band of a, c is within the band of b but not of a.
    siblings = [_transfer("a", x=100, y=0), _transfer("b", x=50, y=40), _transfer("c", x=0, y=80)]

    orders = {
        tuple(_ids(graph([wallet(), *siblings], [edge("wallet", target) for target in targets]), position_epsilon=50))
        for targets in itertools.permutations(["a", "b", "c"])
    }

    assert orders == {("b", "a", "c")}


def test_depth_first_finishes_a_branch_before_its_sibling() -> None:
    payload = graph(
        [wallet(), _transfer("a", y=100), _transfer("a1", y=500), _transfer("b", y=200)],
        [edge("wallet", "a"), edge("wallet", "b"), edge("a", "a1")],
    )

    assert _ids(payload) == ["a", "a1", "b"]


def test_passthrough_nodes_are_not_emitted_and_branches_are() -> None:
    payload = graph(
        [
            wallet(),
            node("sel", "selector", y=100),
            node("cond", "logic", y=200),
            _transfer("t", y=300),
        ],
        [edge("wallet", "sel"), edge("sel", "cond"), edge("cond", "t")],
    )

    steps = compile_sequence(parse_flow_graph(payload))

    assert [step.node.id for step in steps] == ["cond", "t"]
    assert steps[0].is_branch
    assert [step.index for step in steps] == [0, 1]
    assert not any(step.skipped for step in steps)


def test_node_reached_by_two_paths_is_emitted_once() -> None:
    payload = graph(
        [wallet(), _transfer("a", y=100), _transfer("b", y=200), _transfer("join", y=300)],
        [edge("wallet", "a"), edge("wallet", "b"), edge("a", "join"), edge("b", "join"), edge("a", "join")],
    )

    assert _ids(payload) == ["a", "join", "b"]


def test_cycle_terminates() -> None:
    payload = graph(
        [wallet(), _transfer("a", y=100), _transfer("b", y=200)],
        [edge("wallet", "a"), edge("a", "b"), edge("b", "a")],
    )

    assert _ids(payload) == ["a", "b"]


def test_unreachable_nodes_are_not_emitted() -> None:
    payload = graph([wallet(), _transfer("a", y=100), _transfer("orphan", y=50)], [edge("wallet", "a")])

    assert _ids(payload) == ["a"]


def test_sequence_map_and_plan_lookup() -> None:
    payload = graph(
        [wallet(), _transfer("a", y=100), _transfer("b", y=200)],
        [edge("wallet", "a"), edge("a", "b")],
    )
    plan = build_sequence_plan(parse_flow_graph(payload))

    assert sequence_map(plan.steps) == {"a": 1, "b": 2}
    assert plan.step_for("b").label == "Step 2"
    assert plan.step_for("missing") is None
    assert len(plan.active_steps()) == 2


def test_graph_view_reachability() -> None:
    view = GraphView(
        parse_flow_graph(
            graph(
                [wallet(), _transfer("a", y=100), _transfer("b", y=200), _transfer("c", y=300)],
                [edge("wallet", "a"), edge("a", "b"), edge("b", "c")],
            )
        ),
        position_epsilon=50,
    )

    assert view.descendants("a") == {"b", "c"}
    assert view.ancestors("c") == {"wallet", "a", "b"}
    assert view.predecessors("b") == ["a"]


def test_parse_rejects_graph_without_single_wallet() -> None:
    with pytest.raises(ValidationPhaseError, match="exactly one wallet"):
        parse_flow_graph(graph([_transfer("a")], []))

    with pytest.raises(ValidationPhaseError, match="exactly one wallet"):
        parse_flow_graph(graph([wallet("w1"), wallet("w2")], []))


def test_parse_rejects_dangling_edges_and_bad_json() -> None:
    with pytest.raises(ValidationPhaseError, match="unknown node"):
        parse_flow_graph(graph([wallet()], [edge("wallet", "ghost")]))

    with pytest.raises(ValidationPhaseError, match="Invalid graph JSON"):
        parse_flow_graph("{not json")


def test_parse_accepts_editor_payload_shape() -> None:
    parsed = parse_flow_graph(
        {
            "nodes": [
                wallet(),
                node("t", "transfer", recipientAddress=RECIPIENT, amount="", asset="USDC", selected=True),
            ],
            "edges": [{"id": "e1", "sourceNodeId": "wallet", "targetNodeId": "t"}],
        }
    )

    transfer = parsed.nodes[1]
    assert transfer.data.recipient_address == RECIPIENT
    assert transfer.data.amount is None
    assert transfer.data.asset == "USDC"
    blank = parse_flow_graph(graph([wallet(), node("t", "transfer", asset=" ")], [])).nodes[1]
    assert blank.data.asset == "SUI"
    assert parsed.edges[0].source == "wallet"
