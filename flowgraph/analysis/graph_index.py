"""Read-only adjacency view over a flow snapshot."""

from collections import defaultdict
from collections.abc import Iterable

from flowgraph.models.flow_graph import Edge, FlowGraph, Node


class GraphIndex:
    """Indexes built once from a node list and an edge list.

    Adjacency lists keep the input edge order. Edges pointing at unknown
    node ids are indexed like any other; lookups for ids that have no
    edges return an empty list.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            # first occurrence wins, like a linear find over the list
            self._nodes.setdefault(node.id, node)

        self._edges: list[Edge] = list(edges)
        self._children: dict[str, list[str]] = defaultdict(list)
        self._parents: dict[str, list[str]] = defaultdict(list)
        self._edges_from: dict[str, list[Edge]] = defaultdict(list)
        self._edges_to: dict[str, list[Edge]] = defaultdict(list)

        for edge in self._edges:
            self._children[edge.source].append(edge.target)
            self._parents[edge.target].append(edge.source)
            self._edges_from[edge.source].append(edge)
            self._edges_to[edge.target].append(edge)

    @classmethod
    def from_graph(cls, graph: FlowGraph) -> "GraphIndex":
        return cls(graph.nodes, graph.edges)

    def node_by_id(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def adjacency(self, node_id: str) -> list[str]:
        """Target ids of the node's outgoing edges, in edge order."""
        return list(self._children.get(node_id, ()))

    def parents(self, node_id: str) -> list[str]:
        """Source ids of the node's incoming edges, in edge order."""
        return list(self._parents.get(node_id, ()))

    def edges_from(self, node_id: str) -> list[Edge]:
        return list(self._edges_from.get(node_id, ()))

    def edges_to(self, node_id: str) -> list[Edge]:
        return list(self._edges_to.get(node_id, ()))
