"""Unit tests for the export module."""

import pytest
from PIL import Image

from flownotation.export import FlowExporter, load_monospace_font
from flownotation.generator import AsciiFlowGenerator, generate_ascii_flow
from flownotation.models import FlowData


@pytest.fixture
def exporter():
    """Default FlowExporter instance."""
    return FlowExporter()


class TestTextExport:
    """Tests for text and JSON export."""

    def test_save_txt(self, exporter, linear_flow, tmp_path):
        """Test the text file holds the generated diagram."""
        path = exporter.save_txt(linear_flow, tmp_path / "flow.txt")
        assert path.read_text(encoding="utf-8") == generate_ascii_flow(linear_flow)

    def test_save_txt_uses_custom_generator(self, linear_flow, tmp_path):
        """Test the exporter draws with the generator it was given."""
        generator = AsciiFlowGenerator(min_box_width=30)
        exporter = FlowExporter(generator=generator)
        path = exporter.save_txt(linear_flow, str(tmp_path / "flow.txt"))
        first_line = path.read_text(encoding="utf-8").split("\n")[0]
        assert len(first_line) == 30

    def test_save_json(self, exporter, sales_flow, tmp_path):
        """Test the JSON file loads back into the same flow."""
        path = exporter.save_json(sales_flow, tmp_path / "flow.json")
        assert FlowData.from_json(path.read_text(encoding="utf-8")) == sales_flow


class TestPngExport:
    """Tests for PNG export."""

    def test_save_png(self, exporter, linear_flow, tmp_path):
        """Test a PNG is written and is at least the minimum size."""
        path = exporter.save_png(linear_flow, tmp_path / "flow.png")
        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.width >= 200
            assert image.height >= 200

    def test_scale_grows_image(self, exporter, linear_flow, tmp_path):
        """Test a higher scale yields a larger image."""
        small = exporter.save_png(linear_flow, tmp_path / "small.png", scale=1)
        large = exporter.save_png(linear_flow, tmp_path / "large.png", scale=3)
        with Image.open(small) as a, Image.open(large) as b:
            assert b.width > a.width
            assert b.height > a.height

    def test_colors(self, exporter, linear_flow, tmp_path):
        """Test the background color fills the corners."""
        path = exporter.save_png(
            linear_flow, tmp_path / "flow.png", bg_color="#000000", fg_color="#FFFFFF"
        )
        with Image.open(path) as image:
            assert image.convert("RGB").getpixel((0, 0)) == (0, 0, 0)

    def test_unknown_font_falls_back(self, linear_flow, tmp_path):
        """Test a missing font name does not break export."""
        exporter = FlowExporter(default_font="No Such Font 123")
        path = exporter.save_png(linear_flow, tmp_path / "flow.png")
        assert path.exists()

    def test_empty_flow(self, exporter, tmp_path):
        """Test an empty flow still yields a minimum-size image."""
        path = exporter.save_png(FlowData(), tmp_path / "empty.png", scale=1)
        with Image.open(path) as image:
            assert image.size == (100, 100)

    @pytest.mark.parametrize("kwargs", [{"font_size": 0}, {"scale": 0}])
    def test_invalid_sizes(self, exporter, linear_flow, tmp_path, kwargs):
        """Test non-positive sizes raise ValueError."""
        with pytest.raises(ValueError):
            exporter.save_png(linear_flow, tmp_path / "flow.png", **kwargs)


def test_load_monospace_font_returns_font():
    """Test a usable font is always returned."""
    font = load_monospace_font(12, "No Such Font 123")
    assert font.getbbox("M")[2] > 0
