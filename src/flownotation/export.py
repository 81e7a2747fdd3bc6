"""
File export for flow graphs.

A flow can be written out as:
- Text (.txt): the ASCII diagram produced by the generator
- JSON (.json): the FlowData interchange document
- PNG: the ASCII diagram rasterized with a monospace font, via Pillow
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image, ImageDraw, ImageFont

from .generator import AsciiFlowGenerator
from .models import FlowData

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Tried in order after any explicitly requested font
MONOSPACE_FONTS = [
    "DejaVuSansMono",
    "DejaVu Sans Mono",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "Menlo",
    "/System/Library/Fonts/Menlo.ttc",
    "Consolas",
    "C:/Windows/Fonts/consola.ttf",
]

LINE_SPACING = 1.2
MIN_IMAGE_SIDE = 100


class FlowExporter:
    """
    Writes flow graphs to disk.

    Attributes:
        default_font: Font name or path preferred for PNG export.
        generator: Generator used to draw the diagram for text and PNG output.
    """

    def __init__(
        self,
        default_font: Optional[str] = None,
        generator: Optional[AsciiFlowGenerator] = None,
    ):
        self.default_font = default_font
        self.generator = generator or AsciiFlowGenerator()

    def save_txt(self, data: FlowData, filename: PathLike) -> Path:
        """Write the ASCII diagram of ``data`` to a UTF-8 text file."""
        output_path = Path(filename)
        output_path.write_text(self.generator.generate(data), encoding="utf-8")
        return output_path

    def save_json(self, data: FlowData, filename: PathLike, indent: int = 2) -> Path:
        """Write ``data`` as a FlowData JSON document."""
        output_path = Path(filename)
        output_path.write_text(data.to_json(indent=indent), encoding="utf-8")
        return output_path

    def save_png(
        self,
        data: FlowData,
        filename: PathLike,
        font_size: int = 16,
        bg_color: str = "#FFFFFF",
        fg_color: str = "#000000",
        padding: int = 20,
        font: Optional[str] = None,
        scale: int = 2,
    ) -> Path:
        """
        Rasterize the ASCII diagram of ``data`` to a PNG image.

        Args:
            data: Flow graph to draw.
            filename: Output path.
            font_size: Font size in points before scaling.
            bg_color: Background color, e.g. "#FFFFFF".
            fg_color: Text color, e.g. "#000000".
            padding: Margin around the diagram in unscaled pixels.
            font: Font name or path; overrides ``default_font``.
            scale: Resolution multiplier.

        Raises:
            ValueError: If ``font_size`` or ``scale`` is not positive.
        """
        if font_size <= 0 or scale <= 0:
            raise ValueError("font_size and scale must be positive")

        image = self.render_image(
            self.generator.generate(data).split("\n"),
            font_size=font_size * scale,
            padding=padding * scale,
            bg_color=bg_color,
            fg_color=fg_color,
            font=font or self.default_font,
            min_side=MIN_IMAGE_SIDE * scale,
        )

        output_path = Path(filename)
        image.save(output_path, "PNG")
        logger.debug("Wrote %dx%d PNG to %s", image.width, image.height, output_path)
        return output_path

    def render_image(
        self,
        lines: List[str],
        font_size: int,
        padding: int,
        bg_color: str,
        fg_color: str,
        font: Optional[str] = None,
        min_side: int = MIN_IMAGE_SIDE,
    ) -> Image.Image:
        """Draw text lines on a fresh RGB image sized to fit them."""
        loaded_font = load_monospace_font(font_size, font)

        # Cell size from a reference glyph
        left, top, right, bottom = loaded_font.getbbox("M")
        char_width = right - left
        line_height = int((bottom - top) * LINE_SPACING)

        longest = max((len(line) for line in lines), default=0)
        width = max(char_width * longest + padding * 2, min_side)
        height = max(line_height * len(lines) + padding * 2, min_side)

        image = Image.new("RGB", (width, height), bg_color)
        draw = ImageDraw.Draw(image)
        y = padding
        for line in lines:
            draw.text((padding, y), line, font=loaded_font, fill=fg_color)
            y += line_height
        return image


def load_monospace_font(font_size: int, font_name: Optional[str] = None):
    """
    Load the first available monospace font.

    Tries ``font_name``, then the common system fonts, then Pillow's
    built-in font.
    """
    candidates = ([font_name] if font_name else []) + MONOSPACE_FONTS
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, font_size)
        except OSError:
            continue

    logger.debug("No monospace font found, using Pillow's default font")
    try:
        return ImageFont.load_default(size=font_size)
    except TypeError:
        # Pillow < 10.1 has no size parameter
        return ImageFont.load_default()
