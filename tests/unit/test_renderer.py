"""Unit tests for the renderer module."""

import pytest

from flownotation.renderer import (
    ARROW_CHARS,
    BOX_CHARS,
    ELLIPSIS,
    BoxRenderer,
    Canvas,
    LineRenderer,
)


@pytest.fixture
def canvas():
    """A 10x5 canvas."""
    return Canvas(10, 5)


class TestCanvas:
    """Tests for Canvas."""

    def test_default_fill(self, canvas):
        """Test canvas is filled with spaces by default."""
        assert canvas.get(0, 0) == " "
        assert canvas.get(9, 4) == " "

    def test_set_and_get(self, canvas):
        """Test setting and getting characters."""
        canvas.set(5, 2, "X")
        assert canvas.get(5, 2) == "X"

    def test_out_of_bounds(self, canvas):
        """Test writes outside the grid are ignored and reads are blank."""
        canvas.set(-1, 0, "X")
        canvas.set(10, 0, "X")
        assert canvas.get(-1, 0) == " "
        assert canvas.lines()[0] == ""

    def test_draw_text_clips(self, canvas):
        """Test text past the right edge is clipped."""
        canvas.draw_text(7, 0, "Hola")
        assert canvas.lines()[0] == "       Hol"

    def test_lines_keep_blank_rows(self, canvas):
        """Test lines() keeps every row, blank ones included."""
        canvas.set(0, 1, "A")
        assert canvas.lines() == ["", "A", "", "", ""]


class TestBoxRenderer:
    """Tests for BoxRenderer."""

    @pytest.mark.parametrize(
        "label, width", [("", 15), ("Hola", 15), ("x" * 20, 24), ("x" * 60, 40)]
    )
    def test_width_clamp(self, label, width):
        """Test width is label plus padding, clamped to the limits."""
        assert BoxRenderer().calculate_box_width(label) == width

    def test_fit_label(self):
        """Test long labels end in an ellipsis."""
        assert BoxRenderer.fit_label("Hola", 10) == "Hola"
        assert BoxRenderer.fit_label("abcdefgh", 5) == "abcd" + ELLIPSIS

    def test_draw_box(self):
        """Test borders and a centered label with odd padding on the right."""
        canvas = Canvas(8, 3)
        BoxRenderer().draw_box(canvas, 0, 0, 8, "abc")
        assert canvas.lines() == [
            BOX_CHARS["top_left"] + "──────" + BOX_CHARS["top_right"],
            "│ abc  │",
            BOX_CHARS["bottom_left"] + "──────" + BOX_CHARS["bottom_right"],
        ]


class TestLineRenderer:
    """Tests for LineRenderer."""

    def test_drop(self):
        """Test a vertical line over a down arrow."""
        canvas = Canvas(5, 2)
        LineRenderer().draw_drop(canvas, 2, 0)
        assert canvas.lines() == ["  │", "  " + ARROW_CHARS["down"]]

    def test_label_after_arrow(self):
        """Test the label starts one space right of the arrow."""
        canvas = Canvas(10, 2)
        LineRenderer().draw_drop(canvas, 0, 0, "Si")
        assert canvas.lines()[1] == "▼ Si"

    def test_label_never_overwrites_drop(self):
        """Test a long label skips cells used by another drop."""
        canvas = Canvas(12, 2)
        renderer = LineRenderer()
        renderer.draw_drop(canvas, 4, 0)
        renderer.draw_drop(canvas, 0, 0, "abcdef")
        assert canvas.lines()[1] == "▼ ab▼def"
