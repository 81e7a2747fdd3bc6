"""Pytest configuration and shared fixtures for flownotation tests."""

import pytest

from flownotation import (
    AsciiFlowDetector,
    AsciiFlowGenerator,
    AsciiFlowParser,
    FlowData,
    FlowEdge,
    FlowLayoutEngine,
    FlowNode,
    FlowPosition,
    NodeType,
)

HOLA_FIN_DIAGRAM = "\n".join(
    [
        "┌─────┐",
        "│ Hola │",
        "└─────┘",
        "   │",
        "   ▼",
        "┌─────┐",
        "│ Fin  │",
        "└─────┘",
    ]
)

DECISION_DIAGRAM = "\n".join(
    [
        "┌─────────┐",
        "│ Inicio  │",
        "└─────────┘",
        "     │",
        "     ▼",
        "┌─────────┐      ┌─────────┐",
        "│ Compra? │─────►│ Cierre  │",
        "└─────────┘      └─────────┘",
        "     │",
        "     ▼",
        "┌─────────┐",
        "│  Pagar  │",
        "└─────────┘",
    ]
)

ASCII_DIAGRAM = "\n".join(
    [
        "+------+",
        "| Hola |",
        "+------+",
        "    |",
        "    |",
        "+------+",
        "| Chao |",
        "+------+",
    ]
)


def node(node_id, node_type, label, x=0, y=0, **data):
    """Build a FlowNode with terse arguments."""
    return FlowNode(
        id=node_id,
        type=node_type,
        label=label,
        position=FlowPosition(x, y),
        data=dict(data),
    )


def edge(source, target, label=None, handle=None):
    """Build a FlowEdge whose id is derived from its endpoints."""
    return FlowEdge(
        id=f"{source}-{target}",
        source=source,
        target=target,
        source_handle=handle,
        label=label,
    )


@pytest.fixture
def hola_fin_diagram():
    """Two stacked boxes joined by a drop."""
    return HOLA_FIN_DIAGRAM


@pytest.fixture
def decision_diagram():
    """A start box, a decision with a right and a downward branch."""
    return DECISION_DIAGRAM


@pytest.fixture
def ascii_diagram():
    """Two stacked boxes in the plain +-| dialect."""
    return ASCII_DIAGRAM


@pytest.fixture
def linear_flow():
    """Start -> action -> end."""
    return FlowData(
        nodes=[
            node("s", NodeType.START, "Saludo"),
            node("a", NodeType.ACTION, "Preguntar nombre"),
            node("e", NodeType.END, "Despedida"),
        ],
        edges=[edge("s", "a"), edge("a", "e")],
    )


@pytest.fixture
def sales_flow():
    """A flow with a decision, metadata and a cross-flow hand-over."""
    return FlowData(
        nodes=[
            node("s", NodeType.START, "Saludo"),
            node(
                "q",
                NodeType.DECISION,
                "Tiene interes?",
                condition="pregunta presupuesto",
            ),
            node("a", NodeType.ACTION, "Agendar demo", x=0),
            node("e", NodeType.END, "Despedida", x=300, crossFlowRef="f2"),
        ],
        edges=[
            edge("s", "q"),
            edge("q", "a", label="Si", handle="yes"),
            edge("q", "e", handle="no"),
        ],
    )


@pytest.fixture
def diamond():
    """Nodes and edges of A -> B, A -> C, B -> D, C -> D."""
    nodes = [
        node("A", NodeType.START, "A"),
        node("B", NodeType.ACTION, "B"),
        node("C", NodeType.ACTION, "C"),
        node("D", NodeType.ACTION, "D"),
    ]
    edges = [edge("A", "B"), edge("A", "C"), edge("B", "D"), edge("C", "D")]
    return nodes, edges


@pytest.fixture
def detector():
    """Default AsciiFlowDetector instance."""
    return AsciiFlowDetector()


@pytest.fixture
def parser():
    """Default AsciiFlowParser instance."""
    return AsciiFlowParser()


@pytest.fixture
def generator():
    """Default AsciiFlowGenerator instance."""
    return AsciiFlowGenerator()


@pytest.fixture
def layout_engine():
    """Default FlowLayoutEngine instance."""
    return FlowLayoutEngine()


@pytest.fixture
def make_node():
    """Factory fixture for FlowNode."""
    return node


@pytest.fixture
def make_edge():
    """Factory fixture for FlowEdge."""
    return edge
