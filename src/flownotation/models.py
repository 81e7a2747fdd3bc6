"""
Data models for the flow-notation engine.

This module contains the dataclasses shared by the detector, parser,
generator and layout engine. The public flow graph (FlowData) mirrors the
JSON shape the editor and external storage exchange; the remaining classes
are short-lived intermediates that never leave a single call.

Classes:
    NodeType: Kind of step in a conversation flow.
    FlowPosition: Canvas coordinates of a node.
    FlowNode: A step in the conversation flow.
    FlowEdge: A directed transition between two steps.
    FlowData: The complete flow graph (nodes plus edges).
    AsciiBox: A rectangle found on the character grid by the parser.
    Connection: A detected link between two AsciiBox entries.
    AsciiFlowDetection: Result of scanning free text for a diagram block.
    AsciiFlowBounds: Character offsets of a detected block.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FlowDataError(ValueError):
    """Raised when an interchange dict or JSON string is not a valid flow."""

    pass


class NodeType(str, Enum):
    """Kind of step in a conversation flow."""

    START = "start"
    ACTION = "action"
    DECISION = "decision"
    END = "end"


@dataclass
class FlowPosition:
    """Canvas coordinates in pixels, origin top-left."""

    x: float = 0
    y: float = 0


@dataclass
class FlowNode:
    """
    A step in the conversation flow.

    Attributes:
        id: Identifier, unique within its FlowData.
        type: Kind of step (start, action, decision or end).
        label: Short display text.
        position: Canvas coordinates of the node's top-left corner.
        data: Free-form metadata (description, condition, crossFlowRef...).
            Opaque to the engine and passed through untouched.
    """

    id: str
    type: NodeType
    label: str
    position: FlowPosition = field(default_factory=FlowPosition)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FlowEdge:
    """
    A directed transition between two nodes.

    Attributes:
        id: Identifier, unique within its FlowData.
        source: Id of the node the transition leaves.
        target: Id of the node the transition enters.
        source_handle: Branch discriminator ("yes" or "no") for decisions.
        label: Optional short text shown on the transition.
    """

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    label: Optional[str] = None


@dataclass
class FlowData:
    """A complete flow graph."""

    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)

    def node_ids(self) -> List[str]:
        """Return node ids in declaration order."""
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON interchange shape (camelCase keys)."""
        nodes = []
        for node in self.nodes:
            entry: Dict[str, Any] = {
                "id": node.id,
                "type": NodeType(node.type).value,
                "label": node.label,
                "position": {"x": node.position.x, "y": node.position.y},
            }
            if node.data:
                entry["data"] = dict(node.data)
            nodes.append(entry)

        edges = []
        for edge in self.edges:
            entry = {"id": edge.id, "source": edge.source, "target": edge.target}
            if edge.source_handle is not None:
                entry["sourceHandle"] = edge.source_handle
            if edge.label is not None:
                entry["label"] = edge.label
            edges.append(entry)

        return {"nodes": nodes, "edges": edges}

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FlowData":
        """
        Build a FlowData from the JSON interchange shape.

        Args:
            payload: Dict with "nodes" and "edges" lists.

        Returns:
            A new FlowData.

        Raises:
            FlowDataError: If the payload is malformed, a node id is
                duplicated, a node type is unknown or an edge references a
                node that does not exist.
        """
        if not isinstance(payload, dict):
            raise FlowDataError("Flow payload must be an object")

        raw_nodes = payload.get("nodes", [])
        raw_edges = payload.get("edges", [])
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise FlowDataError("'nodes' and 'edges' must be lists")

        nodes: List[FlowNode] = []
        seen = set()
        for index, raw in enumerate(raw_nodes):
            node = _node_from_dict(raw, index)
            if node.id in seen:
                raise FlowDataError(f"Duplicate node id: {node.id!r}")
            seen.add(node.id)
            nodes.append(node)

        edges: List[FlowEdge] = []
        for index, raw in enumerate(raw_edges):
            edge = _edge_from_dict(raw, index)
            if edge.source not in seen:
                raise FlowDataError(
                    f"Edge {edge.id!r} references unknown source {edge.source!r}"
                )
            if edge.target not in seen:
                raise FlowDataError(
                    f"Edge {edge.id!r} references unknown target {edge.target!r}"
                )
            edges.append(edge)

        return cls(nodes=nodes, edges=edges)

    @classmethod
    def from_json(cls, text: str) -> "FlowData":
        """Parse a JSON string; see from_dict for the errors raised."""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FlowDataError(f"Invalid flow JSON: {exc}") from exc
        return cls.from_dict(payload)


def _node_from_dict(raw: Any, index: int) -> FlowNode:
    if not isinstance(raw, dict):
        raise FlowDataError(f"Node #{index} must be an object")

    for key in ("id", "type", "label"):
        if not isinstance(raw.get(key), str):
            raise FlowDataError(f"Node #{index}: '{key}' must be a string")

    try:
        node_type = NodeType(raw["type"])
    except ValueError as exc:
        raise FlowDataError(
            f"Node {raw['id']!r}: unknown type {raw['type']!r}"
        ) from exc

    position = raw.get("position", {"x": 0, "y": 0})
    if not isinstance(position, dict):
        raise FlowDataError(f"Node {raw['id']!r}: 'position' must be an object")
    x, y = position.get("x"), position.get("y")
    if not _is_number(x) or not _is_number(y):
        raise FlowDataError(f"Node {raw['id']!r}: position must be numeric")

    data = raw.get("data") or {}
    if not isinstance(data, dict):
        raise FlowDataError(f"Node {raw['id']!r}: 'data' must be an object")

    return FlowNode(
        id=raw["id"],
        type=node_type,
        label=raw["label"],
        position=FlowPosition(x, y),
        data=dict(data),
    )


def _edge_from_dict(raw: Any, index: int) -> FlowEdge:
    if not isinstance(raw, dict):
        raise FlowDataError(f"Edge #{index} must be an object")

    for key in ("id", "source", "target"):
        if not isinstance(raw.get(key), str):
            raise FlowDataError(f"Edge #{index}: '{key}' must be a string")

    handle = raw.get("sourceHandle")
    label = raw.get("label")
    if handle is not None and not isinstance(handle, str):
        raise FlowDataError(f"Edge {raw['id']!r}: 'sourceHandle' must be a string")
    if label is not None and not isinstance(label, str):
        raise FlowDataError(f"Edge {raw['id']!r}: 'label' must be a string")

    return FlowEdge(
        id=raw["id"],
        source=raw["source"],
        target=raw["target"],
        source_handle=handle,
        label=label,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class AsciiBox:
    """
    A rectangle detected on the character grid.

    Attributes:
        label: Interior text collapsed to a single line.
        row: Line index of the top border.
        col: Column of the left border.
        width: Width in characters, borders included.
        height: Height in lines, borders included.
    """

    label: str
    row: int
    col: int
    width: int
    height: int

    @property
    def center_x(self) -> int:
        return self.col + self.width // 2

    @property
    def center_y(self) -> int:
        return self.row + self.height // 2

    @property
    def bottom(self) -> int:
        """First line below the box."""
        return self.row + self.height

    @property
    def right(self) -> int:
        """First column right of the box."""
        return self.col + self.width


@dataclass
class Connection:
    """A detected link between two boxes, by index into the box list."""

    from_idx: int
    to_idx: int
    label: Optional[str] = None


@dataclass
class AsciiFlowDetection:
    """
    A probable diagram block found inside free text.

    Attributes:
        confidence: Score in [0, 1].
        start_line: Index of the block's first line.
        end_line: Index of the block's last line (inclusive).
        raw_block: The block's lines joined with newlines.
    """

    confidence: float
    start_line: int
    end_line: int
    raw_block: str


@dataclass
class AsciiFlowBounds:
    """Character offsets of a detected block; end is exclusive."""

    start: int
    end: int
    block: str
