"""
Plain-text renderings of a flow graph.

Two formats are produced for embedding a flow in a prompt: a numbered
step list ("structured") and a Mermaid ``graph TD`` block. Both list
nodes in breadth-first order from the roots, followed by any node the
traversal never reached.
"""

import re
from typing import Dict, List, Optional, Sequence

from .graph import bfs_layers, build_graph, find_roots, outgoing_edges
from .models import FlowData, FlowNode, NodeType

STRUCTURED = "structured"
MERMAID = "mermaid"
TEXT_FORMATS = (STRUCTURED, MERMAID)

TYPE_LABELS = {
    NodeType.START: "Inicio",
    NodeType.ACTION: "Accion",
    NodeType.DECISION: "Decision",
    NodeType.END: "Fin",
}

# Keys of node.data checked, in order, for a step description
DESCRIPTION_KEYS = ("description", "instructions", "condition")

MERMAID_STRIP = re.compile(r"[\[\]{}()]")


def step_order(data: FlowData) -> List[FlowNode]:
    """Return nodes in breadth-first order, unreached nodes last."""
    graph = build_graph(data.nodes, data.edges)
    # bfs_layers preserves visiting order
    visited = bfs_layers(graph, find_roots(graph))
    by_id = {node.id: node for node in data.nodes}
    ordered = [by_id[node_id] for node_id in visited]
    ordered.extend(node for node in data.nodes if node.id not in visited)
    return ordered


def node_description(node: FlowNode) -> Optional[str]:
    for key in DESCRIPTION_KEYS:
        value = node.data.get(key)
        if value:
            return str(value)
    return None


def cross_flow_name(
    node: FlowNode, available_flows: Optional[Sequence[Dict[str, str]]]
) -> Optional[str]:
    """Name of the flow an end node hands over to, if it is known."""
    if node.type != NodeType.END or not available_flows:
        return None
    ref = node.data.get("crossFlowRef")
    if not ref:
        return None
    for flow in available_flows:
        if flow.get("id") == ref:
            return flow.get("name")
    return None


def escape_mermaid_label(text: str) -> str:
    return MERMAID_STRIP.sub("", text.replace('"', "'"))


def mermaid_ids(ordered: List[FlowNode]) -> Dict[str, str]:
    """Readable Mermaid ids: start, action, action2, decision, ..."""
    counters: Dict[str, int] = {}
    ids: Dict[str, str] = {}
    for node in ordered:
        kind = NodeType(node.type).value
        counters[kind] = counters.get(kind, 0) + 1
        count = counters[kind]
        ids[node.id] = kind if count == 1 else f"{kind}{count}"
    return ids


def flow_to_structured_text(
    data: FlowData,
    name: str,
    available_flows: Optional[Sequence[Dict[str, str]]] = None,
) -> str:
    """
    Render a flow as a numbered list of steps.

    Example:
        ## VENTAS

        1. [Inicio] Saludo
        2. [Decision] Tiene interes?
           - Si → Paso 3
           - No → Paso 4
        3. [Accion] Agendar demo
        4. [Fin] Despedida

    Args:
        data: Flow graph.
        name: Heading of the section.
        available_flows: ``{"id", "name"}`` entries used to resolve the
            ``crossFlowRef`` of end nodes.

    Returns:
        The text, or "" for a flow without nodes.
    """
    if not data.nodes:
        return ""

    ordered = step_order(data)
    steps = {node.id: index + 1 for index, node in enumerate(ordered)}
    graph = build_graph(data.nodes, data.edges)

    lines = [f"## {name}", ""]
    for node in ordered:
        kind = TYPE_LABELS.get(NodeType(node.type), str(node.type))
        line = f"{steps[node.id]}. [{kind}] {node.label}"
        description = node_description(node)
        if description:
            line += f": {description}"
        lines.append(line)

        if node.type == NodeType.DECISION:
            for edge in outgoing_edges(graph, node.id):
                branch = edge.label or edge.source_handle or "→"
                lines.append(f"   - {branch} → Paso {steps[edge.target]}")

        target_flow = cross_flow_name(node, available_flows)
        if target_flow:
            lines.append(f"   → Continua en: {target_flow}")

    return "\n".join(lines)


def flow_to_mermaid(
    data: FlowData,
    name: str,
    available_flows: Optional[Sequence[Dict[str, str]]] = None,
) -> str:
    """Render a flow as a fenced Mermaid ``graph TD`` block under a heading."""
    if not data.nodes:
        return ""

    ordered = step_order(data)
    ids = mermaid_ids(ordered)

    lines = [f"## {name}", "", "```mermaid", "graph TD"]
    for node in ordered:
        label = escape_mermaid_label(node.label)
        description = node_description(node)
        if description:
            label += f": {escape_mermaid_label(description)}"
        target_flow = cross_flow_name(node, available_flows)
        if target_flow:
            label += f"\\n→ {escape_mermaid_label(target_flow)}"

        if node.type == NodeType.DECISION:
            lines.append(f'    {ids[node.id]}{{"{label}"}}')
        else:
            lines.append(f'    {ids[node.id]}["{label}"]')

    lines.append("")
    for edge in data.edges:
        source = ids.get(edge.source)
        target = ids.get(edge.target)
        if source is None or target is None:
            continue
        branch = edge.label or edge.source_handle
        if branch:
            lines.append(f"    {source} -- {escape_mermaid_label(branch)} --> {target}")
        else:
            lines.append(f"    {source} --> {target}")

    lines.append("```")
    return "\n".join(lines)


def flow_to_text(
    data: FlowData,
    name: str,
    fmt: str = STRUCTURED,
    available_flows: Optional[Sequence[Dict[str, str]]] = None,
) -> str:
    """
    Render a flow in the requested text format.

    Raises:
        ValueError: If ``fmt`` is not "structured" or "mermaid".
    """
    if fmt == MERMAID:
        return flow_to_mermaid(data, name, available_flows)
    if fmt == STRUCTURED:
        return flow_to_structured_text(data, name, available_flows)
    raise ValueError(f"Unknown text format: {fmt!r} (expected one of {TEXT_FORMATS})")
