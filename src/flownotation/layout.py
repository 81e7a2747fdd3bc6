"""
Layout module using networkx for decision-aware canvas layout.

Computes pixel positions for the interactive editor. Unlike the ASCII
generator, which only stacks layers, this engine keeps the "yes" branch of
a decision straight below it and moves the "no" branch to a new column.

Pipeline:
1. Graph build: parents, yes/no slots and plain children per node
2. Row assignment: longest-path layering from the roots
3. Column assignment: depth-first, yes-branch inherits the parent column
4. Coordinates: per-column widths and per-row heights from node sizes
5. Normalization: keep everything inside the padding
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

import networkx as nx

from .graph import (
    bfs_layers,
    build_graph,
    find_back_edges,
    find_roots,
    ordered_nodes,
    outgoing_edges,
    reachable_from,
)
from .models import FlowEdge, FlowNode, FlowPosition, NodeType

logger = logging.getLogger(__name__)

# Bounding box (width, height) of each node type on the canvas
NODE_SIZES: Dict[NodeType, Tuple[int, int]] = {
    NodeType.START: (120, 45),
    NodeType.END: (120, 45),
    NodeType.ACTION: (200, 80),
    NodeType.DECISION: (120, 120),
}

PADDING = 80
COLUMN_GAP = 280
ROW_GAP = 160

YES_LABELS = frozenset({"si", "sí", "si/depende"})
NO_LABELS = frozenset({"no"})


class BranchKind(Enum):
    """Which branch of a decision an edge represents."""

    YES = "yes"
    NO = "no"
    UNCLASSIFIED = "unclassified"


def classify_branch(edge: FlowEdge) -> BranchKind:
    """
    Classify an edge leaving a decision node.

    YES when the handle is "yes" or the label is si / sí / si/depende,
    NO when the handle is "no" or the label is no (labels compared
    case-insensitively), UNCLASSIFIED otherwise.
    """
    label = (edge.label or "").strip().lower()
    if edge.source_handle == "yes" or label in YES_LABELS:
        return BranchKind.YES
    if edge.source_handle == "no" or label in NO_LABELS:
        return BranchKind.NO
    return BranchKind.UNCLASSIFIED


@dataclass
class LayoutNode:
    """Represents a node's layout information."""

    node: FlowNode
    row: int = 0
    col: int = 0
    w: int = 0
    h: int = 0
    x: int = 0  # Top-left canvas x
    y: int = 0  # Top-left canvas y
    parent_ids: List[str] = field(default_factory=list)
    yes_child_id: Optional[str] = None
    no_child_id: Optional[str] = None
    child_ids: List[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def is_decision(self) -> bool:
        return self.node.type == NodeType.DECISION


class FlowLayoutEngine:
    """
    Decision-aware layered layout.

    For every decision the "yes" child continues straight down in the same
    column and the "no" child opens the next free column to the right.
    Cycles are tolerated: edges closing a cycle are ignored for layering.
    """

    def __init__(
        self,
        padding: int = PADDING,
        column_gap: int = COLUMN_GAP,
        row_gap: int = ROW_GAP,
        node_sizes: Optional[Dict[NodeType, Tuple[int, int]]] = None,
    ):
        """
        Initialize the layout engine.

        Args:
            padding: Top and left margin of the layout, in pixels.
            column_gap: Horizontal space between columns.
            row_gap: Vertical space between rows.
            node_sizes: Overrides for the per-type bounding boxes.
        """
        if padding < 0 or column_gap < 0 or row_gap < 0:
            raise ValueError("padding and gaps must be non-negative")

        self.padding = padding
        self.column_gap = column_gap
        self.row_gap = row_gap
        self.node_sizes = dict(NODE_SIZES)
        if node_sizes:
            self.node_sizes.update(
                {NodeType(kind): size for kind, size in node_sizes.items()}
            )

    def layout(self, nodes: List[FlowNode], edges: List[FlowEdge]) -> List[FlowNode]:
        """
        Compute new positions for all nodes.

        Existing positions are ignored. The input nodes are not modified.

        Args:
            nodes: Flow nodes.
            edges: Flow edges; edges to unknown nodes are ignored.

        Returns:
            Copies of the nodes, in input order, with recomputed positions.
        """
        if not nodes:
            return []
        if len(nodes) == 1:
            return [
                replace(
                    nodes[0],
                    position=FlowPosition(self.padding, self.padding),
                    data=dict(nodes[0].data),
                )
            ]

        layout_nodes = self.compute(nodes, edges)
        placed = []
        for node in nodes:
            layout_node = layout_nodes[node.id]
            placed.append(
                replace(
                    node,
                    position=FlowPosition(layout_node.x, layout_node.y),
                    data=dict(node.data),
                )
            )
        return placed

    def compute(
        self, nodes: List[FlowNode], edges: List[FlowEdge]
    ) -> Dict[str, LayoutNode]:
        """Run the full pipeline and return the layout nodes keyed by id."""
        graph = build_graph(nodes, edges)
        layout_nodes = self._build_layout_nodes(graph)

        roots = find_roots(graph)
        if not roots:
            # Pure cycle: start anywhere
            roots = ordered_nodes(graph)[:1]

        self._assign_rows(graph, layout_nodes, roots)
        self._assign_columns(graph, layout_nodes, roots)
        self._assign_coordinates(layout_nodes)
        self._normalize(layout_nodes)

        logger.debug(
            "Laid out %d nodes in %d rows and %d columns",
            len(layout_nodes),
            max(n.row for n in layout_nodes.values()) + 1,
            max(n.col for n in layout_nodes.values()) + 1,
        )
        return layout_nodes

    def _build_layout_nodes(self, graph: nx.MultiDiGraph) -> Dict[str, LayoutNode]:
        layout_nodes: Dict[str, LayoutNode] = {}
        for node_id in ordered_nodes(graph):
            node = graph.nodes[node_id]["node"]
            width, height = self._size(node)
            layout_nodes[node_id] = LayoutNode(node=node, w=width, h=height)

        for node_id, layout_node in layout_nodes.items():
            edges = outgoing_edges(graph, node_id)
            for edge in edges:
                layout_nodes[edge.target].parent_ids.append(node_id)

            if not layout_node.is_decision:
                layout_node.child_ids.extend(edge.target for edge in edges)
                continue

            # Explicit yes/no edges claim their slots before unlabeled ones
            unclassified = []
            for edge in edges:
                kind = classify_branch(edge)
                if kind == BranchKind.YES and layout_node.yes_child_id is None:
                    layout_node.yes_child_id = edge.target
                elif kind == BranchKind.NO and layout_node.no_child_id is None:
                    layout_node.no_child_id = edge.target
                elif kind == BranchKind.UNCLASSIFIED:
                    unclassified.append(edge.target)
                else:
                    layout_node.child_ids.append(edge.target)

            for target in unclassified:
                if layout_node.yes_child_id is None:
                    layout_node.yes_child_id = target
                elif layout_node.no_child_id is None:
                    layout_node.no_child_id = target
                else:
                    layout_node.child_ids.append(target)

        return layout_nodes

    def _size(self, node: FlowNode) -> Tuple[int, int]:
        try:
            return self.node_sizes[NodeType(node.type)]
        except ValueError:
            return self.node_sizes[NodeType.ACTION]

    def _assign_rows(
        self,
        graph: nx.MultiDiGraph,
        layout_nodes: Dict[str, LayoutNode],
        roots: List[str],
    ) -> None:
        """
        Longest-path layering: a node sits one row below its lowest parent.

        Back edges and edges into roots are ignored; nodes not reachable from
        any root stay in row 0.
        """
        root_set = set(roots)
        reached = reachable_from(graph, roots)
        back_edges = find_back_edges(graph, roots)

        working_graph = nx.DiGraph()
        working_graph.add_nodes_from(reached)
        for source, target in graph.edges():
            if (
                source in reached
                and target not in root_set
                and (source, target) not in back_edges
            ):
                working_graph.add_edge(source, target)

        try:
            topo_order = list(nx.topological_sort(working_graph))
        except nx.NetworkXUnfeasible:
            # Still has cycles somehow, fall back to breadth-first distance
            for node_id, row in bfs_layers(graph, roots).items():
                layout_nodes[node_id].row = row
            return

        for node_id in topo_order:
            predecessors = list(working_graph.predecessors(node_id))
            if predecessors:
                layout_nodes[node_id].row = (
                    max(layout_nodes[p].row for p in predecessors) + 1
                )
            else:
                layout_nodes[node_id].row = 0

    def _assign_columns(
        self,
        graph: nx.MultiDiGraph,
        layout_nodes: Dict[str, LayoutNode],
        roots: List[str],
    ) -> None:
        """
        Depth-first column assignment with a shared next-free-column counter.

        A child either inherits its parent's column (decision "yes" child,
        or first child of any other node) or takes the next free column at
        the moment it is visited. The first column a node gets is final.
        """
        assigned: Dict[str, int] = {}
        next_free = 0

        reached = reachable_from(graph, roots)
        starts = list(roots) + [n for n in ordered_nodes(graph) if n not in reached]

        for start in starts:
            # Entries are (node id, inherited column or None for next free)
            stack: List[Tuple[str, Optional[int]]] = [(start, None)]
            while stack:
                node_id, inherited = stack.pop()
                if node_id in assigned:
                    continue

                col = next_free if inherited is None else inherited
                assigned[node_id] = col
                next_free = max(next_free, col + 1)

                layout_node = layout_nodes[node_id]
                layout_node.col = col

                pending: List[Tuple[str, Optional[int]]] = []
                if layout_node.is_decision:
                    if layout_node.yes_child_id is not None:
                        pending.append((layout_node.yes_child_id, col))
                    if layout_node.no_child_id is not None:
                        pending.append((layout_node.no_child_id, None))
                    pending.extend((child, None) for child in layout_node.child_ids)
                else:
                    pending.extend(
                        (child, col if index == 0 else None)
                        for index, child in enumerate(layout_node.child_ids)
                    )

                # Reversed so the first pending child is visited first
                stack.extend(reversed(pending))

    def _assign_coordinates(self, layout_nodes: Dict[str, LayoutNode]) -> None:
        col_widths: Dict[int, int] = {}
        row_heights: Dict[int, int] = {}
        for node in layout_nodes.values():
            col_widths[node.col] = max(col_widths.get(node.col, 0), node.w)
            row_heights[node.row] = max(row_heights.get(node.row, 0), node.h)

        col_centers = self._centers(col_widths, self.column_gap)
        row_centers = self._centers(row_heights, self.row_gap)

        for node in layout_nodes.values():
            node.x = col_centers[node.col] - node.w // 2
            node.y = row_centers[node.row] - node.h // 2

    def _centers(self, extents: Dict[int, int], gap: int) -> Dict[int, int]:
        """Center coordinate of each column (or row), packed from the padding."""
        centers: Dict[int, int] = {}
        cursor = self.padding
        for index in range(max(extents) + 1):
            extent = extents.get(index, 0)
            centers[index] = cursor + extent // 2
            cursor += extent + gap
        return centers

    def _normalize(self, layout_nodes: Dict[str, LayoutNode]) -> None:
        min_x = min(node.x for node in layout_nodes.values())
        min_y = min(node.y for node in layout_nodes.values())
        shift_x = self.padding - min_x if min_x < self.padding else 0
        shift_y = self.padding - min_y if min_y < self.padding else 0

        if shift_x or shift_y:
            for node in layout_nodes.values():
                node.x += shift_x
                node.y += shift_y


_default_engine = FlowLayoutEngine()


def auto_layout_flow(nodes: List[FlowNode], edges: List[FlowEdge]) -> List[FlowNode]:
    """
    Convenience function to auto-arrange a flow with default settings.

    Args:
        nodes: Flow nodes (positions are ignored).
        edges: Flow edges.

    Returns:
        New nodes with computed positions; [] for no nodes.
    """
    return _default_engine.layout(nodes, edges)
