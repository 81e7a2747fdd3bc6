"""Integration tests for the text <-> graph round trip.

These tests drive detection, parsing, layout and generation together the
way an editor does when it syncs a prompt with its flow canvas.
"""

from flownotation import (
    FlowData,
    FlowNotationEngine,
    NodeType,
    auto_layout_flow,
    detect_ascii_flow,
    generate_ascii_flow,
    parse_ascii_flow,
)
from flownotation.layout import FlowLayoutEngine


class TestPromptToCanvas:
    """A diagram embedded in a prompt becomes a laid-out flow."""

    def test_hola_fin_end_to_end(self, hola_fin_diagram):
        """Test detect, parse, layout, generate and re-parse."""
        prompt = f"Eres un agente de ventas.\n\n{hola_fin_diagram}\n\nSe breve."

        detection = detect_ascii_flow(prompt)
        assert detection is not None
        assert detection.confidence >= 0.5

        flow = parse_ascii_flow(detection.raw_block)
        assert [(n.label, n.type) for n in flow.nodes] == [
            ("Hola", NodeType.START),
            ("Fin", NodeType.END),
        ]
        assert len(flow.edges) == 1

        layout_nodes = FlowLayoutEngine().compute(flow.nodes, flow.edges)
        start, end = (layout_nodes[n.id] for n in flow.nodes)
        assert (start.row, end.row) == (0, 1)
        assert start.col == end.col

        placed = FlowData(nodes=auto_layout_flow(flow.nodes, flow.edges), edges=flow.edges)
        diagram = generate_ascii_flow(placed)
        assert diagram.count("┌") == 2
        assert diagram.count("▼") == 1

        reparsed = parse_ascii_flow(diagram)
        assert [n.label for n in reparsed.nodes] == ["Hola", "Fin"]
        assert len(reparsed.edges) == 1

    def test_decision_diagram(self, decision_diagram):
        """Test a branching diagram keeps its yes/no split on the canvas."""
        engine = FlowNotationEngine()
        flow = engine.extract(f"Flujo:\n{decision_diagram}")

        by_label = {n.label: n for n in flow.nodes}
        layout_nodes = engine.layout_engine.compute(flow.nodes, flow.edges)
        decision = layout_nodes[by_label["Compra?"].id]
        yes = layout_nodes[by_label["Cierre"].id]
        no = layout_nodes[by_label["Pagar"].id]

        assert yes.col == decision.col
        assert no.col == decision.col + 1
        assert yes.row == no.row == decision.row + 1


class TestCanvasToPrompt:
    """A flow rendered to text parses back to the same steps."""

    def test_linear_round_trip(self, linear_flow):
        """Test node count and labels survive generate then parse."""
        reparsed = parse_ascii_flow(generate_ascii_flow(linear_flow))
        assert [n.label for n in reparsed.nodes] == [n.label for n in linear_flow.nodes]
        assert len(reparsed.edges) == 2

    def test_branching_round_trip(self, make_node, make_edge):
        """Test side-by-side boxes keep their labels through a round trip."""
        flow = FlowData(
            nodes=[
                make_node("s", NodeType.START, "Inicio"),
                make_node("a", NodeType.ACTION, "Cotizar", x=0),
                make_node("b", NodeType.ACTION, "Informar", x=300),
                make_node("e", NodeType.END, "Despedida"),
            ],
            edges=[
                make_edge("s", "a"),
                make_edge("s", "b"),
                make_edge("a", "e"),
                make_edge("b", "e"),
            ],
        )
        reparsed = parse_ascii_flow(generate_ascii_flow(flow))
        assert sorted(n.label for n in reparsed.nodes) == sorted(
            n.label for n in flow.nodes
        )

    def test_quotes_do_not_survive(self, make_node):
        """Test quote characters are dropped from labels by the parser."""
        flow = FlowData(nodes=[make_node("a", NodeType.ACTION, 'Dice "hola"')])
        reparsed = parse_ascii_flow(generate_ascii_flow(flow))
        assert [n.label for n in reparsed.nodes] == ["Dice hola"]

    def test_generated_diagram_is_detected(self, sales_flow):
        """Test generated output passes the detector."""
        detection = detect_ascii_flow(generate_ascii_flow(sales_flow))
        assert detection is not None
        assert detection.confidence == 0.7

    def test_empty_inputs(self):
        """Test empty inputs yield empty outputs at every stage."""
        assert generate_ascii_flow(FlowData()) == ""
        assert auto_layout_flow([], []) == []
        assert parse_ascii_flow("") is None
