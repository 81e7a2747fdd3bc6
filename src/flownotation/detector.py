"""
Detector module for the flow-notation engine.

Scans free-form text (typically an agent prompt) for a block of lines that
looks like an ASCII/Unicode box diagram and scores how likely it is to be a
flow. Finding nothing is a normal outcome and is reported as None so that
callers can fall back to other extraction strategies.
"""

import logging
import re
from typing import List, Optional

from .models import AsciiFlowBounds, AsciiFlowDetection

logger = logging.getLogger(__name__)

# Unicode box-drawing characters (single and double line)
UNICODE_BOX_CHARS = re.compile(r"[┌┐└┘│─├┤┬┴┼╔╗╚╝║═╠╣╦╩╬]")

# ASCII "+---+" top or bottom border
ASCII_BOX_TOP_PATTERN = re.compile(r"\+[-=]+\+")

# Arrow glyphs
ARROW_CHARS = re.compile(r"[▼▲→←↓↑▸◂►◄⬇⬆⬅➡]")

ASCII_BOX_SIDE = "|"

# Score contributed by each signal
UNICODE_SCORE = 0.4
ASCII_PATTERN_SCORE = 0.3
ARROW_SCORE = 0.2
DRAWING_LINES_SCORE = 0.1


def has_drawing_chars(line: str) -> bool:
    """Return True if a single line carries box-drawing or arrow glyphs."""
    return bool(
        UNICODE_BOX_CHARS.search(line)
        or ASCII_BOX_TOP_PATTERN.search(line)
        or ARROW_CHARS.search(line)
        or (ASCII_BOX_SIDE in line and ("+" in line or "─" in line))
    )


def score_block(lines: List[str], start: int, end: int) -> float:
    """
    Score lines[start..end] (inclusive) for diagram likelihood.

    Signals are additive:
        +0.4 any Unicode box-drawing glyph
        +0.3 an ASCII "+---+" border
        +0.2 any arrow glyph
        +0.1 at least 3 lines that are box-drawing or "+---+" lines

    Returns:
        Score capped at 1.0 and rounded to two decimals.
    """
    block_lines = lines[start : end + 1]
    block = "\n".join(block_lines)
    score = 0.0

    if UNICODE_BOX_CHARS.search(block):
        score += UNICODE_SCORE
    if ASCII_BOX_TOP_PATTERN.search(block):
        score += ASCII_PATTERN_SCORE
    if ARROW_CHARS.search(block):
        score += ARROW_SCORE

    drawing_lines = sum(
        1
        for line in block_lines
        if UNICODE_BOX_CHARS.search(line) or ASCII_BOX_TOP_PATTERN.search(line)
    )
    if drawing_lines >= 3:
        score += DRAWING_LINES_SCORE

    return round(min(score, 1.0), 2)


class AsciiFlowDetector:
    """
    Finds the most probable diagram block inside a text.

    A run of consecutive drawing lines (blank lines inside a run are
    tolerated) becomes a candidate once it reaches ``min_block_lines``
    drawing lines. The best-scoring candidate is returned when its score
    reaches ``threshold``.
    """

    def __init__(
        self,
        min_block_lines: int = 3,
        threshold: float = 0.5,
        min_text_length: int = 10,
    ):
        """
        Initialize the detector.

        Args:
            min_block_lines: Drawing lines needed before a run is scored.
            threshold: Minimum score (inclusive) for a block to be accepted.
            min_text_length: Shorter texts are rejected without scanning.
        """
        if min_block_lines < 1:
            raise ValueError("min_block_lines must be at least 1")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        if min_text_length < 0:
            raise ValueError("min_text_length must be non-negative")

        self.min_block_lines = min_block_lines
        self.threshold = threshold
        self.min_text_length = min_text_length

    def detect(self, text: str) -> Optional[AsciiFlowDetection]:
        """
        Detect a diagram block in ``text``.

        Args:
            text: Arbitrary text.

        Returns:
            AsciiFlowDetection for the best block, or None when the text is
            too short or no block scores at least ``threshold``.
        """
        if not text or len(text) < self.min_text_length:
            return None

        lines = text.split("\n")
        best_start = best_end = -1
        best_score = -1.0

        block_start = -1
        drawing_count = 0

        # A trailing sentinel closes a run that reaches the end of the text
        for i, line in enumerate(lines + [None]):
            if line is not None and has_drawing_chars(line):
                if block_start == -1:
                    block_start = i
                drawing_count += 1
                continue

            if line is not None and not line.strip() and block_start != -1:
                continue

            if drawing_count >= self.min_block_lines:
                score = score_block(lines, block_start, i - 1)
                logger.debug(
                    "Candidate block lines %d-%d scored %.2f",
                    block_start,
                    i - 1,
                    score,
                )
                if score > best_score:
                    best_start, best_end, best_score = block_start, i - 1, score

            block_start = -1
            drawing_count = 0

        if best_start == -1 or best_score < self.threshold:
            return None

        start, end = best_start, best_end
        while start <= end and not lines[start].strip():
            start += 1
        while end >= start and not lines[end].strip():
            end -= 1

        return AsciiFlowDetection(
            confidence=best_score,
            start_line=start,
            end_line=end,
            raw_block="\n".join(lines[start : end + 1]),
        )

    def bounds(self, text: str) -> Optional[AsciiFlowBounds]:
        """
        Locate the detected block as character offsets into ``text``.

        Returns:
            AsciiFlowBounds with ``text[start:end] == block``, or None.
        """
        detection = self.detect(text)
        if detection is None:
            return None

        lines = text.split("\n")
        start = sum(len(line) + 1 for line in lines[: detection.start_line])
        end = start + sum(
            len(line) + 1
            for line in lines[detection.start_line : detection.end_line + 1]
        )
        # Drop the newline counted after the last line
        end -= 1

        return AsciiFlowBounds(start=start, end=end, block=detection.raw_block)


_default_detector = AsciiFlowDetector()


def detect_ascii_flow(text: str) -> Optional[AsciiFlowDetection]:
    """
    Convenience function to detect a diagram block with default settings.

    Args:
        text: Arbitrary text.

    Returns:
        AsciiFlowDetection or None.
    """
    return _default_detector.detect(text)


def get_ascii_flow_bounds(text: str) -> Optional[AsciiFlowBounds]:
    """Convenience function returning the character bounds of the block."""
    return _default_detector.bounds(text)
