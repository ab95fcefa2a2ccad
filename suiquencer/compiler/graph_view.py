"""
Typed, read-only access to a FlowGraph: node lookup, ordered successors and
reachability. Shared by the compiler, the condition evaluator and the
effective-balance estimator so all three walk the graph identically.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Set

from suiquencer.schema.models import FlowGraph, Node


class GraphView:
    def __init__(self, graph: FlowGraph, *, position_epsilon: float) -> None:
        self.graph = graph
        self.position_epsilon = position_epsilon
        self._nodes: Dict[str, Node] = {node.id: node for node in graph.nodes}
        self._outgoing: Dict[str, List[str]] = defaultdict(list)
        self._incoming: Dict[str, List[str]] = defaultdict(list)
        for edge in graph.edges:
            self._outgoing[edge.source].append(edge.target)
            self._incoming[edge.target].append(edge.source)

    @property
    def root(self) -> Node:
        return self.graph.root

    def node(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def predecessors(self, node_id: str) -> List[str]:
        return list(dict.fromkeys(self._incoming.get(node_id, [])))

    def successors(self, node_id: str) -> List[Node]:
        """
        Distinct targets of ``node_id``'s outgoing edges, top to bottom. Targets
        whose vertical positions fall within the epsilon band are ordered left
        to right; the node id breaks any remaining tie.
        """

        targets = [self._nodes[target] for target in dict.fromkeys(self._outgoing.get(node_id, []))]
        return order_by_position(targets, self.position_epsilon)

    def descendants(self, node_id: str) -> Set[str]:
        """Every node reachable from ``node_id`` through outgoing edges, excluding itself."""

        seen: Set[str] = set()
        stack = list(self._outgoing.get(node_id, []))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._outgoing.get(current, []))
        seen.discard(node_id)
        return seen

    def ancestors(self, node_id: str) -> Set[str]:
        seen: Set[str] = set()
        stack = list(self._incoming.get(node_id, []))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._incoming.get(current, []))
        seen.discard(node_id)
        return seen

    def __iter__(self) -> Iterator[Node]:
        return iter(self.graph.nodes)


def order_by_position(nodes: Iterable[Node], epsilon: float) -> List[Node]:
    """
    Top-to-bottom, left-to-right order. Nodes are grouped into bands: a band
    starts at its topmost node and takes every following node whose y is
    within ``epsilon`` of that start. Within a band x decides, then id.
    """

    by_y = sorted(nodes, key=lambda node: (node.position.y, node.position.x, node.id))
    keyed = []
    band, band_top = -1, None
    for node in by_y:
        if band_top is None or node.position.y - band_top > epsilon:
            band, band_top = band + 1, node.position.y
        keyed.append(((band, node.position.x, node.id), node))
    return [node for _, node in sorted(keyed, key=lambda item: item[0])]
