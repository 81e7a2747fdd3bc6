"""
ASCII renderer module for the flow-notation engine.

Handles drawing single-line boxes and straight connectors onto a character
canvas using Unicode box-drawing characters.
"""

from typing import List

# Unicode box-drawing characters
BOX_CHARS = {
    "top_left": "┌",
    "top_right": "┐",
    "bottom_left": "└",
    "bottom_right": "┘",
    "horizontal": "─",
    "vertical": "│",
}

# Arrow characters
ARROW_CHARS = {
    "down": "▼",
}

ELLIPSIS = "…"


class Canvas:
    """
    A 2D character canvas for drawing ASCII art.
    """

    def __init__(self, width: int, height: int, fill_char: str = " "):
        self.width = width
        self.height = height
        self.grid: List[List[str]] = [
            [fill_char for _ in range(width)] for _ in range(height)
        ]

    def set(self, x: int, y: int, char: str) -> None:
        """Set a character at position (x, y)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            self.grid[y][x] = char

    def get(self, x: int, y: int) -> str:
        """Get character at position (x, y)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.grid[y][x]
        return " "

    def draw_text(self, x: int, y: int, text: str) -> None:
        """Draw text starting at position (x, y)."""
        for i, char in enumerate(text):
            self.set(x + i, y, char)

    def lines(self) -> List[str]:
        """Return every row, right-trimmed, blank rows included."""
        return ["".join(row).rstrip() for row in self.grid]


class BoxRenderer:
    """
    Renders fixed-height, single-label boxes.

    Box structure (label centered, odd padding on the right):
    ┌─────────────┐
    │    Label    │
    └─────────────┘
    """

    HEIGHT = 3

    def __init__(self, min_width: int = 15, max_width: int = 40, padding: int = 2):
        self.min_width = min_width
        self.max_width = max_width
        self.padding = padding

    def calculate_box_width(self, label: str) -> int:
        """Width including borders: label plus padding, clamped."""
        return max(self.min_width, min(len(label) + 2 * self.padding, self.max_width))

    @staticmethod
    def fit_label(label: str, inner_width: int) -> str:
        """Truncate a label with an ellipsis so it fits inside the borders."""
        if len(label) <= inner_width:
            return label
        return label[: max(inner_width - 1, 0)] + ELLIPSIS

    def draw_box(self, canvas: Canvas, x: int, y: int, width: int, label: str) -> None:
        """Draw a box with its top-left corner at (x, y)."""
        inner_width = width - 2
        text = self.fit_label(label, inner_width)
        pad_left = (inner_width - len(text)) // 2

        canvas.set(x, y, BOX_CHARS["top_left"])
        canvas.set(x, y + 1, BOX_CHARS["vertical"])
        canvas.set(x, y + 2, BOX_CHARS["bottom_left"])
        for i in range(1, width - 1):
            canvas.set(x + i, y, BOX_CHARS["horizontal"])
            canvas.set(x + i, y + 2, BOX_CHARS["horizontal"])
        canvas.set(x + width - 1, y, BOX_CHARS["top_right"])
        canvas.set(x + width - 1, y + 1, BOX_CHARS["vertical"])
        canvas.set(x + width - 1, y + 2, BOX_CHARS["bottom_right"])

        canvas.draw_text(x + 1 + pad_left, y + 1, text)


class LineRenderer:
    """
    Renders straight downward connectors between box rows.
    """

    def draw_drop(self, canvas: Canvas, x: int, y: int, label: str = "") -> None:
        """
        Draw a two-line drop at column x: a vertical line over a down arrow,
        with the label one space right of the arrow.
        """
        canvas.set(x, y, BOX_CHARS["vertical"])
        canvas.set(x, y + 1, ARROW_CHARS["down"])
        if label:
            for i, char in enumerate(label):
                # Never overwrite another drop's glyphs
                if canvas.get(x + 2 + i, y + 1) == " ":
                    canvas.set(x + 2 + i, y + 1, char)
