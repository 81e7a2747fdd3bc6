"""
Main engine module.

Combines detection, parsing, layout and generation so callers can move a
flow between free text and the structured graph in one step.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .detector import AsciiFlowDetector
from .generator import AsciiFlowGenerator
from .ids import IdFactory
from .layout import FlowLayoutEngine
from .models import FlowData
from .parser import AsciiFlowParser
from .serializer import splice_ascii_flow
from .validator import FlowValidationWarning, validate_flow

logger = logging.getLogger(__name__)


class FlowNotationEngine:
    """
    Round-trip flows between prompt text and FlowData.

    Example:
        >>> engine = FlowNotationEngine()
        >>> flow = engine.extract(prompt)
        >>> print(engine.render(flow))
    """

    def __init__(
        self,
        detector: Optional[AsciiFlowDetector] = None,
        parser: Optional[AsciiFlowParser] = None,
        generator: Optional[AsciiFlowGenerator] = None,
        layout_engine: Optional[FlowLayoutEngine] = None,
    ):
        """
        Initialize the engine.

        Args:
            detector: Diagram detector; a default one when omitted.
            parser: Diagram parser; a default one when omitted.
            generator: Diagram generator; a default one when omitted.
            layout_engine: Canvas layout engine; a default one when omitted.
        """
        self.detector = detector or AsciiFlowDetector()
        self.parser = parser or AsciiFlowParser()
        self.generator = generator or AsciiFlowGenerator()
        self.layout_engine = layout_engine or FlowLayoutEngine()

    def extract(
        self, text: str, id_factory: Optional[IdFactory] = None
    ) -> Optional[FlowData]:
        """
        Find a diagram in ``text`` and turn it into a laid-out flow.

        The detected block is parsed when there is one; otherwise the whole
        text is tried, so a bare diagram below the detection threshold still
        parses.

        Returns:
            FlowData with canvas positions, or None if no box was found.
        """
        detection = self.detector.detect(text)
        block = detection.raw_block if detection is not None else text
        if detection is None:
            logger.debug("No diagram detected, parsing the whole text")

        flow = self.parser.parse(block, id_factory=id_factory)
        if flow is None:
            return None
        return self.layout(flow)

    def layout(self, data: FlowData) -> FlowData:
        """Return a copy of ``data`` with auto-arranged node positions."""
        nodes = self.layout_engine.layout(data.nodes, data.edges)
        return FlowData(nodes=nodes, edges=[replace(edge) for edge in data.edges])

    def render(self, data: FlowData) -> str:
        """Render ``data`` as an ASCII diagram ("" when it has no nodes)."""
        return self.generator.generate(data)

    def insert_into_prompt(self, prompt: str, data: FlowData) -> str:
        """
        Put the ASCII diagram of ``data`` into ``prompt``.

        Removes any <flow> tag, then replaces the diagram already in the
        prompt or appends a new section. An empty flow leaves the prompt
        unchanged.
        """
        return splice_ascii_flow(prompt, self.render(data), bounds=self.detector.bounds)

    def validate(self, data: FlowData) -> List[FlowValidationWarning]:
        """Return the validation findings for ``data``."""
        return validate_flow(data)
