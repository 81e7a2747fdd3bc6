"""
Prompt splicing for flow graphs.

A prompt can carry its flow in two forms: a machine-readable ``<flow>`` tag
holding the FlowData JSON, or a human- and LLM-readable ASCII diagram
section. These helpers read, write, replace and remove either form.
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from .detector import detect_ascii_flow, get_ascii_flow_bounds
from .generator import generate_ascii_flow
from .models import (
    AsciiFlowBounds,
    FlowData,
    FlowDataError,
    FlowEdge,
    FlowNode,
    FlowPosition,
    NodeType,
)

logger = logging.getLogger(__name__)

FLOW_TAG_PATTERN = re.compile(r"<flow>\s*(.*?)\s*</flow>", re.IGNORECASE | re.DOTALL)

ASCII_SECTION_HEADER = "# FLUJO DE CONVERSACION"
FENCE = "```"


def serialize_flow_data(data: FlowData) -> str:
    """Serialize a flow to JSON wrapped in <flow> tags."""
    return f"<flow>\n{data.to_json(indent=2)}\n</flow>"


def has_flow_in_prompt(prompt: str) -> bool:
    """Check whether a prompt contains a <flow> tag."""
    if not prompt:
        return False
    return FLOW_TAG_PATTERN.search(prompt) is not None


def get_flow_tag_position(prompt: str) -> Optional[Tuple[int, int]]:
    """Return (start, end) offsets of the first <flow> tag, or None."""
    if not prompt:
        return None
    match = FLOW_TAG_PATTERN.search(prompt)
    if match is None:
        return None
    return match.start(), match.end()


def parse_flow_from_prompt(prompt: str) -> Optional[FlowData]:
    """
    Extract the flow stored in a prompt's <flow> tag.

    Malformed nodes and edges are dropped rather than rejected, as are
    edges pointing at dropped nodes.

    Returns:
        FlowData, or None when there is no tag or its JSON is invalid.
    """
    if not prompt:
        return None

    match = FLOW_TAG_PATTERN.search(prompt)
    if match is None or not match.group(1):
        return None

    try:
        payload = json.loads(match.group(1).strip())
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse flow data: %s", exc)
        return None

    if not isinstance(payload, dict):
        return None

    raw_nodes = payload.get("nodes") if isinstance(payload.get("nodes"), list) else []
    raw_edges = payload.get("edges") if isinstance(payload.get("edges"), list) else []

    nodes: List[FlowNode] = []
    for raw in raw_nodes:
        node = _sanitize_node(raw)
        if node is not None:
            nodes.append(node)

    known = {node.id for node in nodes}
    edges: List[FlowEdge] = []
    for raw in raw_edges:
        edge = _sanitize_edge(raw)
        if edge is not None and edge.source in known and edge.target in known:
            edges.append(edge)

    return FlowData(nodes=nodes, edges=edges)


def _sanitize_node(raw: Any) -> Optional[FlowNode]:
    if not isinstance(raw, dict):
        return None
    try:
        data = FlowData.from_dict({"nodes": [raw], "edges": []})
    except FlowDataError as exc:
        logger.debug("Dropping malformed node: %s", exc)
        return None
    return data.nodes[0]


def _sanitize_edge(raw: Any) -> Optional[FlowEdge]:
    if not isinstance(raw, dict):
        return None
    if not all(isinstance(raw.get(key), str) for key in ("id", "source", "target")):
        return None
    handle = raw.get("sourceHandle")
    label = raw.get("label")
    return FlowEdge(
        id=raw["id"],
        source=raw["source"],
        target=raw["target"],
        source_handle=handle if isinstance(handle, str) else None,
        label=label if isinstance(label, str) else None,
    )


def update_prompt_with_flow(prompt: str, data: FlowData) -> str:
    """Replace the prompt's <flow> tag, or append one after a blank line."""
    flow_tag = serialize_flow_data(data)

    if has_flow_in_prompt(prompt):
        return FLOW_TAG_PATTERN.sub(lambda _: flow_tag, prompt, count=1)

    trimmed = (prompt or "").strip()
    if trimmed:
        return f"{trimmed}\n\n{flow_tag}"
    return flow_tag


def remove_flow_from_prompt(prompt: str) -> str:
    """Remove the <flow> tag and collapse the blank lines it leaves."""
    if not prompt:
        return ""
    without_tag = FLOW_TAG_PATTERN.sub("", prompt, count=1)
    return re.sub(r"\n{3,}", "\n\n", without_tag).strip()


def has_ascii_flow_in_prompt(prompt: str) -> bool:
    """Check for an ASCII diagram in a prompt that has no <flow> tag."""
    if not prompt or has_flow_in_prompt(prompt):
        return False
    detection = detect_ascii_flow(prompt)
    return detection is not None and detection.confidence > 0.5


def is_flow_empty(data: Optional[FlowData]) -> bool:
    """True when there is no flow or it has no nodes."""
    return data is None or not data.nodes


def create_initial_flow() -> FlowData:
    """Create a new flow with only a start and an end node."""
    return FlowData(
        nodes=[
            FlowNode(
                id="start",
                type=NodeType.START,
                label="Inicio",
                position=FlowPosition(250, 50),
            ),
            FlowNode(
                id="end",
                type=NodeType.END,
                label="Fin",
                position=FlowPosition(250, 400),
            ),
        ],
        edges=[],
    )


def build_ascii_section(ascii_flow: str, header: str = ASCII_SECTION_HEADER) -> str:
    """Wrap a diagram in a fenced section with a heading."""
    return f"{header}\n{FENCE}\n{ascii_flow}\n{FENCE}"


def splice_ascii_flow(
    prompt: str,
    ascii_flow: str,
    bounds: Callable[[str], Optional[AsciiFlowBounds]] = get_ascii_flow_bounds,
) -> str:
    """
    Put an already generated diagram into a prompt.

    Any <flow> tag is removed. A diagram located by ``bounds`` is replaced
    in place; otherwise the section is appended at the end. An empty
    diagram leaves the prompt unchanged.
    """
    if not ascii_flow:
        return prompt

    section = build_ascii_section(ascii_flow)
    result = remove_flow_from_prompt(prompt)

    found = bounds(result)
    if found is not None:
        before = result[: found.start].rstrip()
        after = result[found.end :].lstrip()

        # Swallow the fence and heading of a previously inserted section
        if before.endswith(FENCE) and after.startswith(FENCE):
            before = before[: -len(FENCE)].rstrip()
            after = after[len(FENCE) :].lstrip()
            if before.endswith(ASCII_SECTION_HEADER):
                before = before[: -len(ASCII_SECTION_HEADER)].rstrip()

        return f"{before}\n\n{section}\n\n{after}".strip()

    return f"{result.rstrip()}\n\n{section}".lstrip()


def insert_ascii_flow_in_prompt(prompt: str, data: FlowData) -> str:
    """
    Insert a readable ASCII diagram of ``data`` into a prompt.

    Returns:
        The new prompt, or ``prompt`` unchanged when the flow is empty.
    """
    return splice_ascii_flow(prompt, generate_ascii_flow(data))
