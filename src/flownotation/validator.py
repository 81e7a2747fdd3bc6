"""
Validation of flow graphs.

Checks a FlowData for structural problems an editor should surface: missing
start or end steps, steps that can never be reached, dead ends, decisions
with fewer than two branches, self-loops and blank labels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .graph import build_graph, reachable_from
from .models import FlowData, NodeType


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationRule(str, Enum):
    MISSING_START = "missing-start"
    MISSING_END = "missing-end"
    UNREACHABLE_NODE = "unreachable-node"
    DEAD_END_NODE = "dead-end-node"
    DECISION_INSUFFICIENT_BRANCHES = "decision-insufficient-branches"
    SELF_LOOP = "self-loop"
    EMPTY_LABEL = "empty-label"


SEVERITY_ORDER = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass
class FlowValidationWarning:
    """A single validation finding."""

    id: str
    severity: Severity
    message: str
    rule: ValidationRule
    node_id: Optional[str] = None


def validate_flow(data: FlowData) -> List[FlowValidationWarning]:
    """
    Validate a flow graph.

    Args:
        data: Flow graph to check.

    Returns:
        Findings sorted errors first, then warnings, then info. An empty
        flow yields no findings.
    """
    warnings: List[FlowValidationWarning] = []
    if not data.nodes:
        return warnings

    graph = build_graph(data.nodes, data.edges)

    start_nodes = [n for n in data.nodes if n.type == NodeType.START]
    if not start_nodes:
        warnings.append(
            FlowValidationWarning(
                id="missing-start",
                severity=Severity.ERROR,
                message="El flujo no tiene nodo de inicio",
                rule=ValidationRule.MISSING_START,
            )
        )

    if not any(n.type == NodeType.END for n in data.nodes):
        warnings.append(
            FlowValidationWarning(
                id="missing-end",
                severity=Severity.ERROR,
                message="El flujo no tiene nodo de fin",
                rule=ValidationRule.MISSING_END,
            )
        )

    if start_nodes:
        reached = reachable_from(graph, [n.id for n in start_nodes])
        for node in data.nodes:
            if node.id not in reached and node.type != NodeType.START:
                warnings.append(
                    FlowValidationWarning(
                        id=f"unreachable-{node.id}",
                        severity=Severity.ERROR,
                        message=(
                            f'El nodo "{node.label}" no es alcanzable desde el inicio'
                        ),
                        rule=ValidationRule.UNREACHABLE_NODE,
                        node_id=node.id,
                    )
                )

    for node in data.nodes:
        if node.type == NodeType.END:
            continue
        if graph.out_degree(node.id) == 0:
            warnings.append(
                FlowValidationWarning(
                    id=f"dead-end-{node.id}",
                    severity=Severity.WARNING,
                    message=f'El nodo "{node.label}" no tiene conexiones de salida',
                    rule=ValidationRule.DEAD_END_NODE,
                    node_id=node.id,
                )
            )

    for node in data.nodes:
        if node.type == NodeType.DECISION and graph.out_degree(node.id) < 2:
            warnings.append(
                FlowValidationWarning(
                    id=f"decision-branches-{node.id}",
                    severity=Severity.WARNING,
                    message=(
                        f'El nodo de decision "{node.label}" '
                        "deberia tener al menos 2 ramas"
                    ),
                    rule=ValidationRule.DECISION_INSUFFICIENT_BRANCHES,
                    node_id=node.id,
                )
            )

    for edge in data.edges:
        if edge.source == edge.target:
            node = data.get_node(edge.source)
            name = node.label if node and node.label else edge.source
            warnings.append(
                FlowValidationWarning(
                    id=f"self-loop-{edge.id}",
                    severity=Severity.WARNING,
                    message=f'El nodo "{name}" se conecta a si mismo',
                    rule=ValidationRule.SELF_LOOP,
                    node_id=edge.source,
                )
            )

    for node in data.nodes:
        if not node.label or not node.label.strip():
            warnings.append(
                FlowValidationWarning(
                    id=f"empty-label-{node.id}",
                    severity=Severity.INFO,
                    message="Un nodo tiene una etiqueta vacia",
                    rule=ValidationRule.EMPTY_LABEL,
                    node_id=node.id,
                )
            )

    warnings.sort(key=lambda w: SEVERITY_ORDER[w.severity])
    return warnings


def is_flow_valid(data: FlowData) -> bool:
    """Return True if the flow has no error-level findings."""
    return not any(w.severity == Severity.ERROR for w in validate_flow(data))
