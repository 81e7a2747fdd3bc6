"""
Generator module for the flow-notation engine.

Converts a FlowData graph into a readable ASCII diagram built from Unicode
box-drawing characters. The output is meant for round-tripping through a
prompt: it is deterministic and re-parseable, not a collision-free schematic.
Only straight drops from each source box to the next layer are drawn.
The parser strips quote characters from box labels, so a label such as
`Dice "hola"` comes back as `Dice hola` after a round trip.
"""

import logging
from typing import Dict, List

import networkx as nx

from .graph import build_graph, bfs_layers, find_roots, ordered_nodes, outgoing_edges
from .models import FlowData, FlowNode
from .renderer import BoxRenderer, Canvas, LineRenderer

logger = logging.getLogger(__name__)

MIN_BOX_WIDTH = 15
MAX_BOX_WIDTH = 40
HORIZONTAL_GAP = 4
CONNECTOR_HEIGHT = 2


class AsciiFlowGenerator:
    """
    Generate ASCII diagrams from flow graphs.

    Example:
        >>> generator = AsciiFlowGenerator()
        >>> print(generator.generate(flow))
        ┌─────────────┐
        │    Hola     │
        └─────────────┘
               │
               ▼ Si
        ┌─────────────┐
        │     Fin     │
        └─────────────┘
    """

    def __init__(
        self,
        min_box_width: int = MIN_BOX_WIDTH,
        max_box_width: int = MAX_BOX_WIDTH,
        horizontal_gap: int = HORIZONTAL_GAP,
    ):
        """
        Initialize the generator.

        Args:
            min_box_width: Minimum box width, borders included.
            max_box_width: Maximum box width; longer labels are truncated.
            horizontal_gap: Blank columns between boxes in one layer.
        """
        if min_box_width < 3:
            raise ValueError("min_box_width must be at least 3")
        if max_box_width < min_box_width:
            raise ValueError("max_box_width must not be smaller than min_box_width")
        if horizontal_gap < 0:
            raise ValueError("horizontal_gap must be non-negative")

        self.min_box_width = min_box_width
        self.max_box_width = max_box_width
        self.horizontal_gap = horizontal_gap

        self.box_renderer = BoxRenderer(min_width=min_box_width, max_width=max_box_width)
        self.line_renderer = LineRenderer()

    def generate(self, data: FlowData) -> str:
        """
        Generate an ASCII diagram.

        Args:
            data: Flow graph to render.

        Returns:
            The diagram with right-trimmed lines, or "" when there are no nodes.
        """
        if not data.nodes:
            return ""

        graph = build_graph(data.nodes, data.edges)
        layer_groups = self._group_layers(graph)
        widths = {
            node.id: self.box_renderer.calculate_box_width(node.label)
            for node in data.nodes
        }

        output: List[str] = []
        layer_indices = sorted(layer_groups)
        for position, layer in enumerate(layer_indices):
            group = layer_groups[layer]
            output.extend(self._render_box_row(group, widths))

            if position < len(layer_indices) - 1:
                next_group = layer_groups[layer_indices[position + 1]]
                output.extend(self._render_connectors(graph, group, next_group, widths))

        logger.debug("Rendered %d layers, %d lines", len(layer_indices), len(output))
        return "\n".join(line.rstrip() for line in output)

    def assign_layers(self, data: FlowData) -> Dict[int, List[FlowNode]]:
        """
        Group nodes into layers by breadth-first distance from the roots.

        Nodes unreachable from any root go to one extra layer below the
        deepest one. Within a layer nodes keep their canvas x order.
        """
        return self._group_layers(build_graph(data.nodes, data.edges))

    @staticmethod
    def _group_layers(graph: nx.MultiDiGraph) -> Dict[int, List[FlowNode]]:
        layers = bfs_layers(graph, find_roots(graph))

        overflow = max(layers.values(), default=0) + 1
        groups: Dict[int, List[FlowNode]] = {}
        for node_id in ordered_nodes(graph):
            layer = layers.get(node_id, overflow)
            groups.setdefault(layer, []).append(graph.nodes[node_id]["node"])

        for group in groups.values():
            group.sort(key=lambda node: node.position.x)

        return groups

    def _box_columns(self, group: List[FlowNode], widths: Dict[str, int]) -> List[int]:
        columns = []
        col = 0
        for node in group:
            columns.append(col)
            col += widths[node.id] + self.horizontal_gap
        return columns

    def _render_box_row(self, group: List[FlowNode], widths: Dict[str, int]) -> List[str]:
        columns = self._box_columns(group, widths)
        total = columns[-1] + widths[group[-1].id]

        canvas = Canvas(total, BoxRenderer.HEIGHT)
        for node, col in zip(group, columns):
            self.box_renderer.draw_box(canvas, col, 0, widths[node.id], node.label)
        return canvas.lines()

    def _render_connectors(
        self,
        graph: nx.MultiDiGraph,
        group: List[FlowNode],
        next_group: List[FlowNode],
        widths: Dict[str, int],
    ) -> List[str]:
        """Render one drop per source box with an edge into the next layer."""
        next_ids = {node.id for node in next_group}
        columns = self._box_columns(group, widths)

        drops = []
        for node, col in zip(group, columns):
            edges = [e for e in outgoing_edges(graph, node.id) if e.target in next_ids]
            if not edges:
                continue
            labels: List[str] = []
            for edge in edges:
                if edge.label and edge.label not in labels:
                    labels.append(edge.label)
            drops.append((col + widths[node.id] // 2, "/".join(labels)))

        if not drops:
            return [""] * CONNECTOR_HEIGHT

        width = max(col + 2 + len(label) for col, label in drops) + 1
        canvas = Canvas(width, CONNECTOR_HEIGHT)
        for col, label in drops:
            self.line_renderer.draw_drop(canvas, col, 0, label)
        return canvas.lines()


_default_generator = AsciiFlowGenerator()


def generate_ascii_flow(data: FlowData) -> str:
    """
    Convenience function to render a flow graph with default settings.

    Args:
        data: Flow graph.

    Returns:
        ASCII diagram, "" for an empty graph.
    """
    return _default_generator.generate(data)
