"""Unit tests for the prompt splicing helpers."""

import json
import logging

from flownotation.models import FlowData, NodeType
from flownotation.serializer import (
    ASCII_SECTION_HEADER,
    create_initial_flow,
    get_flow_tag_position,
    has_ascii_flow_in_prompt,
    has_flow_in_prompt,
    insert_ascii_flow_in_prompt,
    is_flow_empty,
    parse_flow_from_prompt,
    remove_flow_from_prompt,
    serialize_flow_data,
    update_prompt_with_flow,
)


class TestFlowTag:
    """Tests for the <flow> JSON tag."""

    def test_serialize(self, linear_flow):
        """Test the tag wraps indented JSON on its own lines."""
        tag = serialize_flow_data(linear_flow)
        assert tag.startswith("<flow>\n{\n")
        assert tag.endswith("\n</flow>")
        assert json.loads(tag[len("<flow>") : -len("</flow>")]) == linear_flow.to_dict()

    def test_parse_round_trip(self, sales_flow):
        """Test a serialized flow parses back unchanged."""
        prompt = f"Eres un agente.\n\n{serialize_flow_data(sales_flow)}"
        assert parse_flow_from_prompt(prompt) == sales_flow

    def test_tag_is_case_insensitive(self, linear_flow):
        """Test upper-case tags are recognised."""
        prompt = f"<FLOW>{linear_flow.to_json()}</FLOW>"
        assert has_flow_in_prompt(prompt)
        assert parse_flow_from_prompt(prompt) == linear_flow

    def test_parse_without_tag(self):
        """Test prompts without a tag parse to None."""
        assert parse_flow_from_prompt("Eres un agente.") is None
        assert parse_flow_from_prompt("") is None

    def test_parse_invalid_json_logs_warning(self, caplog):
        """Test broken JSON parses to None and logs a warning."""
        with caplog.at_level(logging.WARNING, logger="flownotation.serializer"):
            assert parse_flow_from_prompt("<flow>{nope</flow>") is None
        assert "Failed to parse flow data" in caplog.text

    def test_parse_drops_malformed_entries(self):
        """Test bad nodes and the edges touching them are dropped."""
        payload = {
            "nodes": [
                {"id": "s", "type": "start", "label": "Hola"},
                {"id": "x", "type": "bogus", "label": "Roto"},
                {"id": "e", "type": "end", "label": "Fin", "position": {"x": 1, "y": 2}},
                "not a node",
            ],
            "edges": [
                {"id": "1", "source": "s", "target": "e", "sourceHandle": 7},
                {"id": "2", "source": "s", "target": "x"},
                {"id": "3", "source": "s"},
            ],
        }
        flow = parse_flow_from_prompt(f"<flow>{json.dumps(payload)}</flow>")

        assert flow.node_ids() == ["s", "e"]
        assert [(e.id, e.source_handle) for e in flow.edges] == [("1", None)]

    def test_parse_non_object(self):
        """Test a JSON array is not a flow."""
        assert parse_flow_from_prompt("<flow>[1, 2]</flow>") is None

    def test_tag_position(self, linear_flow):
        """Test the offsets span the whole tag."""
        tag = serialize_flow_data(linear_flow)
        prompt = f"Intro\n{tag}\nOutro"
        assert get_flow_tag_position(prompt) == (6, 6 + len(tag))
        assert get_flow_tag_position("Intro") is None


class TestUpdateAndRemove:
    """Tests for replacing and removing the tag."""

    def test_append_when_missing(self, linear_flow):
        """Test the tag is appended after a blank line."""
        result = update_prompt_with_flow("Eres un agente.\n", linear_flow)
        assert result == f"Eres un agente.\n\n{serialize_flow_data(linear_flow)}"

    def test_empty_prompt(self, linear_flow):
        """Test an empty prompt becomes just the tag."""
        assert update_prompt_with_flow("", linear_flow) == serialize_flow_data(
            linear_flow
        )

    def test_replace_existing(self, linear_flow, sales_flow):
        """Test an existing tag is replaced in place."""
        prompt = f"Antes\n{serialize_flow_data(linear_flow)}\nDespues"
        result = update_prompt_with_flow(prompt, sales_flow)
        assert result == f"Antes\n{serialize_flow_data(sales_flow)}\nDespues"

    def test_replacement_with_backslashes(self, make_node):
        """Test JSON escapes survive the replacement."""
        flow = FlowData(nodes=[make_node("a", NodeType.ACTION, 'di "hola" \\ ok')])
        result = update_prompt_with_flow("<flow>{}</flow>", flow)
        assert parse_flow_from_prompt(result) == flow

    def test_remove(self, linear_flow):
        """Test removal collapses the blank lines left behind."""
        prompt = f"Antes\n\n{serialize_flow_data(linear_flow)}\n\nDespues\n"
        assert remove_flow_from_prompt(prompt) == "Antes\n\nDespues"

    def test_remove_without_tag(self):
        """Test removal only trims when there is no tag."""
        assert remove_flow_from_prompt("  Hola  ") == "Hola"
        assert remove_flow_from_prompt("") == ""


class TestAsciiSection:
    """Tests for the ASCII diagram section."""

    def test_has_ascii_flow(self, hola_fin_diagram):
        """Test a diagram is found in a prompt without a tag."""
        assert has_ascii_flow_in_prompt(f"Eres un agente.\n{hola_fin_diagram}")

    def test_tag_takes_precedence(self, hola_fin_diagram, linear_flow):
        """Test a prompt with a tag never reports an ASCII flow."""
        prompt = f"{hola_fin_diagram}\n{serialize_flow_data(linear_flow)}"
        assert not has_ascii_flow_in_prompt(prompt)

    def test_bare_box_is_not_enough(self):
        """Test a confidence of exactly 0.5 does not count here."""
        assert not has_ascii_flow_in_prompt("┌──────┐\n│      │\n└──────┘")

    def test_insert_appends_section(self, linear_flow):
        """Test the section is appended with its heading and fences."""
        result = insert_ascii_flow_in_prompt("Eres un agente.", linear_flow)
        head, section = result.split("\n\n", 1)

        assert head == "Eres un agente."
        assert section.startswith(f"{ASCII_SECTION_HEADER}\n```\n┌")
        assert section.endswith("┘\n```")

    def test_insert_removes_tag(self, linear_flow):
        """Test the JSON tag is dropped in favour of the diagram."""
        prompt = f"Eres un agente.\n\n{serialize_flow_data(linear_flow)}"
        result = insert_ascii_flow_in_prompt(prompt, linear_flow)
        assert not has_flow_in_prompt(result)
        assert "Preguntar nombre" in result

    def test_insert_is_idempotent(self, linear_flow):
        """Test inserting twice replaces the first section."""
        once = insert_ascii_flow_in_prompt("Eres un agente.", linear_flow)
        assert insert_ascii_flow_in_prompt(once, linear_flow) == once

    def test_insert_replaces_bare_diagram_in_place(self, hola_fin_diagram, linear_flow):
        """Test a diagram in the middle of a prompt is replaced there."""
        prompt = f"Arriba\n\n{hola_fin_diagram}\n\nAbajo"
        result = insert_ascii_flow_in_prompt(prompt, linear_flow)

        assert result.startswith(f"Arriba\n\n{ASCII_SECTION_HEADER}\n```\n")
        assert result.endswith("```\n\nAbajo")
        assert "Hola" not in result

    def test_insert_empty_flow(self):
        """Test an empty flow leaves the prompt untouched."""
        assert insert_ascii_flow_in_prompt("  Hola ", FlowData()) == "  Hola "


class TestFlowHelpers:
    """Tests for small flow helpers."""

    def test_is_flow_empty(self, linear_flow):
        """Test None and node-less flows are empty."""
        assert is_flow_empty(None)
        assert is_flow_empty(FlowData())
        assert not is_flow_empty(linear_flow)

    def test_initial_flow(self):
        """Test the starter flow has Inicio and Fin and no edges."""
        flow = create_initial_flow()
        assert [(n.id, n.type, n.label) for n in flow.nodes] == [
            ("start", NodeType.START, "Inicio"),
            ("end", NodeType.END, "Fin"),
        ]
        assert [(n.position.x, n.position.y) for n in flow.nodes] == [
            (250, 50),
            (250, 400),
        ]
        assert flow.edges == []
