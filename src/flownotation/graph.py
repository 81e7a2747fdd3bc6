"""
Graph module for the flow-notation engine.

Provides a networkx view of a flow graph plus the traversal helpers the
generator, layout engine, validator and text renderers share.

Uses networkx for:
- Graph representation (MultiDiGraph keeps parallel edges)
- In-degree and successor queries
- Reachability
- Topological ordering
"""

from collections import deque
from typing import Dict, Iterable, List, Set, Tuple

import networkx as nx

from .models import FlowEdge, FlowNode, NodeType


def build_graph(nodes: List[FlowNode], edges: List[FlowEdge]) -> nx.MultiDiGraph:
    """
    Build a MultiDiGraph keyed by node id.

    Node attribute ``node`` holds the FlowNode and ``order`` its input index.
    Edge attribute ``edge`` holds the FlowEdge and ``order`` its input index.
    Edges referencing unknown nodes are ignored.
    """
    graph = nx.MultiDiGraph()
    for index, node in enumerate(nodes):
        graph.add_node(node.id, node=node, order=index)

    for index, edge in enumerate(edges):
        if edge.source not in graph or edge.target not in graph:
            continue
        graph.add_edge(edge.source, edge.target, key=index, edge=edge, order=index)

    return graph


def outgoing_edges(graph: nx.MultiDiGraph, node_id: str) -> List[FlowEdge]:
    """Return a node's outgoing edges in input order."""
    entries = graph.out_edges(node_id, data=True)
    return [data["edge"] for _, _, data in sorted(entries, key=lambda e: e[2]["order"])]


def successors(graph: nx.MultiDiGraph, node_id: str) -> List[str]:
    """Return target ids of a node's outgoing edges in input order."""
    return [edge.target for edge in outgoing_edges(graph, node_id)]


def ordered_nodes(graph: nx.MultiDiGraph) -> List[str]:
    """Return node ids in input order."""
    return sorted(graph.nodes, key=lambda n: graph.nodes[n]["order"])


def find_roots(graph: nx.MultiDiGraph) -> List[str]:
    """Return start-type and zero in-degree nodes in input order."""
    return [
        node_id
        for node_id in ordered_nodes(graph)
        if graph.nodes[node_id]["node"].type == NodeType.START
        or graph.in_degree(node_id) == 0
    ]


def bfs_layers(graph: nx.MultiDiGraph, roots: Iterable[str]) -> Dict[str, int]:
    """
    Breadth-first distance from the nearest root, first-reached wins.

    Nodes not reachable from any root are absent from the result.
    """
    layers: Dict[str, int] = {}
    queue = deque()
    for root in roots:
        if root not in layers:
            layers[root] = 0
            queue.append(root)

    while queue:
        current = queue.popleft()
        for target in successors(graph, current):
            if target not in layers:
                layers[target] = layers[current] + 1
                queue.append(target)

    return layers


def reachable_from(graph: nx.MultiDiGraph, roots: Iterable[str]) -> Set[str]:
    """Return the roots plus every node reachable from them."""
    reached: Set[str] = set()
    for root in roots:
        if root in reached:
            continue
        reached.add(root)
        reached.update(nx.descendants(graph, root))
    return reached


def find_back_edges(
    graph: nx.MultiDiGraph, roots: Iterable[str]
) -> Set[Tuple[str, str]]:
    """
    Find edges that close a cycle, via depth-first search from the roots.

    Uses an explicit stack so long chains do not hit the recursion limit.
    """
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    back_edges: Set[Tuple[str, str]] = set()

    for root in roots:
        if root in visited:
            continue

        visited.add(root)
        on_stack.add(root)
        stack = [(root, iter(successors(graph, root)))]

        while stack:
            node, children = stack[-1]
            advanced = False
            for child in children:
                if child in on_stack:
                    back_edges.add((node, child))
                elif child not in visited:
                    visited.add(child)
                    on_stack.add(child)
                    stack.append((child, iter(successors(graph, child))))
                    advanced = True
                    break
            if not advanced:
                on_stack.discard(node)
                stack.pop()

    return back_edges
