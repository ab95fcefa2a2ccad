"""
Stage 2: Linearize the graph into the ordered step list.

Depth-first from the wallet root. Passthrough nodes (wallet, selector) only
route the walk; branch nodes are emitted so the run summary can show them;
everything else is an operation step. A node reachable through several paths
is emitted once, where it is first reached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from shared.config import config
from shared.logger import get_logger
from suiquencer.compiler.graph_view import GraphView
from suiquencer.schema.models import BridgeNode, FlowGraph, LogicNode, Node

logger = get_logger(__name__)


@dataclass
class Step:
    index: int
    node: Node
    skipped: bool = False

    @property
    def label(self) -> str:
        return f"Step {self.index + 1}"

    @property
    def is_branch(self) -> bool:
        return isinstance(self.node, LogicNode)

    @property
    def is_bridge(self) -> bool:
        return isinstance(self.node, BridgeNode)

    def mark_skipped(self) -> None:
        # Skip marks only ever go one way within a run.
        self.skipped = True


@dataclass
class SequencePlan:
    steps: List[Step] = field(default_factory=list)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> Step:
        return self.steps[index]

    def step_for(self, node_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.node.id == node_id:
                return step
        return None

    def active_steps(self) -> List[Step]:
        return [step for step in self.steps if not step.skipped]


def compile_sequence(
    graph: FlowGraph | GraphView,
    *,
    position_epsilon: float | None = None,
) -> List[Step]:
    view = as_graph_view(graph, position_epsilon)
    steps: List[Step] = []
    visited: Set[str] = set()
    worklist: List[Node] = [view.root]

    while worklist:
        node = worklist.pop()
        if node.id in visited:
            continue
        visited.add(node.id)

        if not node.is_passthrough:
            steps.append(Step(index=len(steps), node=node))

        # Reversed so the first successor is popped first.
        for successor in reversed(view.successors(node.id)):
            if successor.id not in visited:
                worklist.append(successor)

    logger.debug(
        "Compiled %d step(s): %s",
        len(steps),
        " -> ".join(f"{step.node.type}:{step.node.id}" for step in steps),
    )
    return steps


def build_sequence_plan(graph: FlowGraph | GraphView, *, position_epsilon: float | None = None) -> SequencePlan:
    return SequencePlan(steps=compile_sequence(graph, position_epsilon=position_epsilon))


def sequence_map(steps: List[Step]) -> Dict[str, int]:
    """node id -> 1-based sequence number, as badged on the canvas."""
    return {step.node.id: step.index + 1 for step in steps}


def as_graph_view(graph: FlowGraph | GraphView, position_epsilon: float | None) -> GraphView:
    if isinstance(graph, GraphView):
        return graph
    epsilon = config.position_epsilon if position_epsilon is None else position_epsilon
    return GraphView(graph, position_epsilon=epsilon)
