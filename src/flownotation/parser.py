"""
Parser module for the flow-notation engine.

Turns a block of ASCII/Unicode box art into a FlowData graph in four phases:

1. Box detection: find closed rectangles on the character grid.
2. Connection detection: find connector glyphs between pairs of boxes.
3. Type inference: classify boxes as start, action, decision or end.
4. Graph construction: lay the boxes out on the canvas and build edges.

Malformed or unterminated boxes are skipped silently; text without any box
yields None. The parser never raises for any input text.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from .detector import ARROW_CHARS
from .ids import IdFactory, IdSequence
from .models import (
    AsciiBox,
    Connection,
    FlowData,
    FlowEdge,
    FlowNode,
    FlowPosition,
    NodeType,
)

logger = logging.getLogger(__name__)

# Glyphs that count as a connector in the gap between two boxes
CONNECTOR_CHARS = set("│║|▼▲→←↓↑─═-")
VERTICAL_JUNCTIONS = set("┬┴┼")
HORIZONTAL_JUNCTIONS = set("├┤┼")

# Short branch words harvested from the gap between two boxes
LABEL_PATTERN = re.compile(
    r"[\[(]?\s*(?<!\w)"
    r"(si|sí|no|yes|true|false|ok|cancel|aceptar|rechazar|continuar|volver|1|2|a|b)"
    r"(?!\w)\s*[\])]?",
    re.IGNORECASE,
)

# Everything that is drawing rather than text
NON_LABEL_CHARS = re.compile(r"[│║|▼▲→←↓↑▸◂►◄⬇⬆⬅➡─═\-┬┴┼├┤\[\]()\s]")

QUOTE_CHARS = re.compile(r"[\"']")

START_KEYWORDS = ("inicio", "start", "cta", "trigger", "keyword")
END_KEYWORDS = ("fin", "end", "cierre", "escalado", "despedida")


@dataclass(frozen=True)
class BoxStyle:
    """Glyph sets that make up one box-drawing dialect."""

    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    horizontal: str
    vertical: str
    # Tees and crossings allowed on the left border of interior rows
    junctions: str
    # ASCII boxes must close exactly under the top-right corner
    exact_bottom: bool


UNICODE_STYLE = BoxStyle(
    top_left="┌╔",
    top_right="┐╗",
    bottom_left="└╚",
    bottom_right="┘╝",
    horizontal="─═",
    vertical="│║",
    junctions="├┤┼╟╢╠╣",
    exact_bottom=False,
)

ASCII_STYLE = BoxStyle(
    top_left="+",
    top_right="+",
    bottom_left="+",
    bottom_right="+",
    horizontal="-",
    vertical="|",
    junctions="+",
    exact_bottom=True,
)


class AsciiFlowParser:
    """
    Parses box diagrams into flow graphs.

    Example:
        >>> parser = AsciiFlowParser()
        >>> flow = parser.parse('''
        ... ┌───────┐
        ... │ Hola  │
        ... └───────┘
        ... ''')
        >>> flow.nodes[0].label
        'Hola'
    """

    def __init__(
        self,
        max_box_height: int = 10,
        min_box_width: int = 3,
        layer_tolerance: int = 3,
        adjacency_gap: int = 2,
        max_label_length: int = 15,
        base_x: int = 400,
        base_y: int = 50,
        horizontal_gap: int = 250,
        vertical_gap: int = 150,
        chain_fallback: bool = True,
        id_factory: Optional[IdFactory] = None,
    ):
        """
        Initialize the parser.

        Args:
            max_box_height: Lines scanned below a top border before the box
                is given up as unterminated.
            min_box_width: Narrower boxes are rejected.
            layer_tolerance: Boxes whose top rows differ by at most this many
                lines share a layer.
            adjacency_gap: Side-by-side boxes this close are connected even
                without a drawn connector.
            max_label_length: Residual gap text must be shorter than this to
                be used as an edge label.
            base_x: Canvas x of the layer center.
            base_y: Canvas y of the first layer.
            horizontal_gap: Canvas distance between neighbours in a layer.
            vertical_gap: Canvas distance between layers.
            chain_fallback: When no connector is recognised at all, chain the
                boxes in reading order.
            id_factory: Default id factory; a fresh IdSequence per parse is
                used when omitted.
        """
        if max_box_height < 2:
            raise ValueError("max_box_height must be at least 2")
        if min_box_width < 2:
            raise ValueError("min_box_width must be at least 2")
        if layer_tolerance < 0:
            raise ValueError("layer_tolerance must be non-negative")
        if adjacency_gap < 0:
            raise ValueError("adjacency_gap must be non-negative")
        if max_label_length < 1:
            raise ValueError("max_label_length must be positive")

        self.max_box_height = max_box_height
        self.min_box_width = min_box_width
        self.layer_tolerance = layer_tolerance
        self.adjacency_gap = adjacency_gap
        self.max_label_length = max_label_length
        self.base_x = base_x
        self.base_y = base_y
        self.horizontal_gap = horizontal_gap
        self.vertical_gap = vertical_gap
        self.chain_fallback = chain_fallback
        self.id_factory = id_factory

    def parse(
        self, text: str, id_factory: Optional[IdFactory] = None
    ) -> Optional[FlowData]:
        """
        Parse a diagram block into a flow graph.

        Args:
            text: Block of box art, lines separated by newlines.
            id_factory: Id factory for this call; overrides the instance one.

        Returns:
            FlowData, or None if no box could be detected.
        """
        if not text or not text.strip():
            return None

        lines = text.split("\n")

        boxes = self.detect_boxes(lines)
        if not boxes:
            logger.debug("No boxes found in %d lines", len(lines))
            return None

        connections = self.detect_connections(lines, boxes)
        node_types = self.infer_node_types(boxes, connections)

        factory = id_factory or self.id_factory or IdSequence()
        flow = self.build_flow_data(boxes, connections, node_types, factory)
        logger.debug(
            "Parsed %d boxes and %d connections", len(flow.nodes), len(flow.edges)
        )
        return flow

    # --- Phase 1: box detection ---

    def detect_boxes(self, lines: List[str]) -> List[AsciiBox]:
        """Find every closed, labelled box, scanning row-major."""
        boxes: List[AsciiBox] = []
        visited: Set[Tuple[int, int]] = set()

        for row, line in enumerate(lines):
            for col, char in enumerate(line):
                if (row, col) in visited:
                    continue

                box = None
                if char in UNICODE_STYLE.top_left:
                    box = self._extract_box(lines, row, col, UNICODE_STYLE)
                elif char == "+" and col + 2 < len(line) and line[col + 1] == "-":
                    box = self._extract_box(lines, row, col, ASCII_STYLE)

                if box is not None:
                    visited.add((row, col))
                    boxes.append(box)

        return boxes

    def _extract_box(
        self, lines: List[str], start_row: int, start_col: int, style: BoxStyle
    ) -> Optional[AsciiBox]:
        """Try to read a box whose top-left corner is at (start_row, start_col)."""
        top_line = lines[start_row]

        end_col = start_col + 1
        while end_col < len(top_line) and top_line[end_col] in style.horizontal:
            end_col += 1
        if end_col >= len(top_line) or top_line[end_col] not in style.top_right:
            return None

        width = end_col - start_col + 1
        if width < self.min_box_width:
            return None

        bottom_row = start_row + 1
        while bottom_row < len(lines):
            line = lines[bottom_row]
            if self._is_bottom_edge(line, start_col, end_col, style):
                break
            # Interior rows need a left border or a tee, otherwise this was not a box
            if start_col >= len(line) or line[start_col] not in (
                style.vertical + style.junctions
            ):
                return None
            bottom_row += 1
            if bottom_row - start_row > self.max_box_height:
                return None

        if bottom_row >= len(lines):
            return None

        label = self._extract_label(
            lines[start_row + 1 : bottom_row], start_col, end_col, style
        )
        if not label:
            return None

        return AsciiBox(
            label=label,
            row=start_row,
            col=start_col,
            width=width,
            height=bottom_row - start_row + 1,
        )

    @staticmethod
    def _is_bottom_edge(line: str, start_col: int, end_col: int, style: BoxStyle) -> bool:
        if start_col >= len(line) or line[start_col] not in style.bottom_left:
            return False

        col = start_col + 1
        while col < len(line) and line[col] in style.horizontal:
            col += 1
        if col >= len(line) or line[col] not in style.bottom_right:
            return False

        return col == end_col if style.exact_bottom else True

    @staticmethod
    def _extract_label(
        interior: List[str], start_col: int, end_col: int, style: BoxStyle
    ) -> str:
        border = re.escape(style.vertical)
        edges = re.compile(rf"^[{border}\s]+|[{border}\s]+$")
        divider = set(style.horizontal + style.junctions + style.vertical + " ")

        parts = []
        for line in interior:
            if start_col >= len(line):
                continue
            content = edges.sub("", line[start_col + 1 : end_col])
            # Divider rows split a box into sections and carry no text
            if content and not set(content) <= divider:
                parts.append(content)

        return QUOTE_CHARS.sub("", " ".join(parts)).strip()

    # --- Phase 2: connection detection ---

    def detect_connections(
        self, lines: List[str], boxes: List[AsciiBox]
    ) -> List[Connection]:
        """
        Find connections between every ordered pair of boxes.

        Falls back to chaining the boxes in reading order when nothing is
        found and ``chain_fallback`` is enabled.
        """
        connections: List[Connection] = []

        for i, source in enumerate(boxes):
            for j, target in enumerate(boxes):
                if i == j:
                    continue

                if (
                    source.bottom <= target.row
                    and abs(source.center_x - target.center_x)
                    < max(source.width, target.width)
                    and self._has_vertical_path(lines, source, target)
                    and not self._is_blocked(boxes, i, j, vertical=True)
                ):
                    label = self._extract_path_label(lines, source, target, True)
                    connections.append(Connection(i, j, label))
                    continue

                if (
                    source.right <= target.col
                    and abs(source.center_y - target.center_y)
                    < max(source.height, target.height)
                    and self._has_horizontal_path(lines, source, target)
                    and not self._is_blocked(boxes, i, j, vertical=False)
                ):
                    label = self._extract_path_label(lines, source, target, False)
                    connections.append(Connection(i, j, label))

        if not connections and len(boxes) > 1 and self.chain_fallback:
            logger.debug("No connectors recognised, chaining %d boxes", len(boxes))
            order = sorted(range(len(boxes)), key=lambda k: (boxes[k].row, boxes[k].col))
            for current, following in zip(order, order[1:]):
                connections.append(Connection(current, following))

        return connections

    @staticmethod
    def _has_vertical_path(lines: List[str], source: AsciiBox, target: AsciiBox) -> bool:
        col = source.center_x
        for row in range(source.bottom, min(target.row, len(lines))):
            line = lines[row]
            if col >= len(line):
                continue
            char = line[col]
            if (
                char in CONNECTOR_CHARS
                or char in VERTICAL_JUNCTIONS
                or ARROW_CHARS.match(char)
            ):
                return True
        return False

    def _has_horizontal_path(
        self, lines: List[str], source: AsciiBox, target: AsciiBox
    ) -> bool:
        if target.col - source.right <= self.adjacency_gap:
            return True

        if source.center_y >= len(lines):
            return False
        line = lines[source.center_y]

        for col in range(source.right, min(target.col, len(line))):
            char = line[col]
            if (
                char in CONNECTOR_CHARS
                or char in HORIZONTAL_JUNCTIONS
                or ARROW_CHARS.match(char)
            ):
                return True
        return False

    @staticmethod
    def _is_blocked(
        boxes: List[AsciiBox], source_idx: int, target_idx: int, vertical: bool
    ) -> bool:
        """True if another box sits on the straight path between two boxes."""
        source = boxes[source_idx]
        target = boxes[target_idx]

        for k, other in enumerate(boxes):
            if k in (source_idx, target_idx):
                continue
            if vertical:
                if (
                    other.row >= source.bottom
                    and other.bottom <= target.row
                    and other.col <= source.center_x < other.right
                ):
                    return True
            elif (
                other.col >= source.right
                and other.right <= target.col
                and other.row <= source.center_y < other.bottom
            ):
                return True

        return False

    def _extract_path_label(
        self, lines: List[str], source: AsciiBox, target: AsciiBox, vertical: bool
    ) -> Optional[str]:
        """Harvest a short label (Si/No/...) from the gap between two boxes."""
        if vertical:
            grid_width = max((len(line) for line in lines), default=0)
            row_range = range(source.bottom, target.row)
            col_start = max(0, min(source.center_x, target.center_x) - 5)
            col_end = min(grid_width, max(source.center_x, target.center_x) + 5)
        else:
            row_range = range(
                max(0, min(source.center_y, target.center_y) - 1),
                min(len(lines), max(source.center_y, target.center_y) + 2),
            )
            col_start = source.right
            col_end = target.col

        for row in row_range:
            if row >= len(lines):
                break
            segment = lines[row][col_start:col_end]

            match = LABEL_PATTERN.search(segment)
            if match:
                return match.group(1).strip()

            residue = NON_LABEL_CHARS.sub("", segment)
            if residue and len(residue) < self.max_label_length:
                return residue

        return None

    # --- Phase 3: type inference ---

    def infer_node_types(
        self, boxes: List[AsciiBox], connections: List[Connection]
    ) -> Dict[int, NodeType]:
        """Assign a NodeType to every box index."""
        has_incoming = {conn.to_idx for conn in connections}
        has_outgoing = {conn.from_idx for conn in connections}
        types: Dict[int, NodeType] = {}

        for idx, box in enumerate(boxes):
            label = box.label.lower()

            if any(word in label for word in START_KEYWORDS) and idx not in has_incoming:
                types[idx] = NodeType.START
            elif any(word in label for word in END_KEYWORDS) and idx not in has_outgoing:
                types[idx] = NodeType.END
            elif "?" in box.label:
                types[idx] = NodeType.DECISION
            elif idx not in has_incoming:
                types[idx] = NodeType.START
            elif idx not in has_outgoing:
                types[idx] = NodeType.END
            else:
                types[idx] = NodeType.ACTION

        if NodeType.START not in types.values():
            topmost = min(range(len(boxes)), key=lambda k: boxes[k].row)
            types[topmost] = NodeType.START

        if len(boxes) > 1 and NodeType.END not in types.values():
            candidates = [k for k in range(len(boxes)) if types[k] != NodeType.START]
            if candidates:
                bottommost = max(candidates, key=lambda k: (boxes[k].row, -k))
                types[bottommost] = NodeType.END

        return types

    # --- Phase 4: graph construction ---

    def group_into_layers(self, boxes: List[AsciiBox]) -> Dict[int, int]:
        """Map box index to layer, clustering rows within ``layer_tolerance``."""
        box_to_layer: Dict[int, int] = {}
        anchors: List[int] = []

        for idx in sorted(range(len(boxes)), key=lambda k: boxes[k].row):
            row = boxes[idx].row
            for layer, anchor in enumerate(anchors):
                if abs(row - anchor) <= self.layer_tolerance:
                    box_to_layer[idx] = layer
                    break
            else:
                box_to_layer[idx] = len(anchors)
                anchors.append(row)

        return box_to_layer

    def build_flow_data(
        self,
        boxes: List[AsciiBox],
        connections: List[Connection],
        node_types: Dict[int, NodeType],
        id_factory: IdFactory,
    ) -> FlowData:
        """Place boxes on the canvas and turn connections into edges."""
        layers = self.group_into_layers(boxes)

        offsets: Dict[int, int] = {}
        for layer in set(layers.values()):
            members = sorted(
                (idx for idx, value in layers.items() if value == layer),
                key=lambda k: boxes[k].col,
            )
            # Center the layer around x=0
            for position, idx in enumerate(members):
                offsets[idx] = position - len(members) // 2

        nodes: List[FlowNode] = []
        for idx, box in enumerate(boxes):
            nodes.append(
                FlowNode(
                    id=id_factory(),
                    type=node_types.get(idx, NodeType.ACTION),
                    label=box.label,
                    position=FlowPosition(
                        x=self.base_x + offsets[idx] * self.horizontal_gap,
                        y=self.base_y + layers[idx] * self.vertical_gap,
                    ),
                )
            )

        branch_rank: Dict[int, int] = {}
        outgoing_count: Dict[int, int] = {}
        for position, conn in enumerate(connections):
            branch_rank[position] = outgoing_count.get(conn.from_idx, 0)
            outgoing_count[conn.from_idx] = branch_rank[position] + 1

        edges: List[FlowEdge] = []
        for position, conn in enumerate(connections):
            edge = FlowEdge(
                id=f"e-{id_factory()}",
                source=nodes[conn.from_idx].id,
                target=nodes[conn.to_idx].id,
            )

            if (
                node_types.get(conn.from_idx) == NodeType.DECISION
                and outgoing_count[conn.from_idx] >= 2
            ):
                rank = branch_rank[position]
                if rank == 0:
                    edge.source_handle, edge.label = "yes", "Si"
                elif rank == 1:
                    edge.source_handle, edge.label = "no", "No"

            if conn.label:
                edge.label = conn.label

            edges.append(edge)

        return FlowData(nodes=nodes, edges=edges)


_default_parser = AsciiFlowParser()


def parse_ascii_flow(
    text: str, id_factory: Optional[IdFactory] = None
) -> Optional[FlowData]:
    """
    Convenience function to parse a diagram block with default settings.

    Args:
        text: Block of box art.
        id_factory: Optional id factory; each call gets a fresh IdSequence
            otherwise.

    Returns:
        FlowData or None.
    """
    return _default_parser.parse(text, id_factory=id_factory)
