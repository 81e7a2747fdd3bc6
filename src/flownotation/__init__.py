"""
flownotation - box-diagram notation for conversation flows

A Python library that moves conversation flows between free text (agent
prompts containing ASCII/Unicode box diagrams) and a structured node/edge
graph, and lays the graph out for a visual editor.

Example:
    >>> from flownotation import FlowNotationEngine
    >>> engine = FlowNotationEngine()
    >>> flow = engine.extract('''
    ... ┌─────────┐
    ... │  Hola   │
    ... └─────────┘
    ...      │
    ...      ▼
    ... ┌─────────┐
    ... │   Fin   │
    ... └─────────┘
    ... ''')
    >>> print(engine.render(flow))
"""

import logging

from .detector import AsciiFlowDetector, detect_ascii_flow, get_ascii_flow_bounds
from .engine import FlowNotationEngine
from .export import FlowExporter
from .generator import AsciiFlowGenerator, generate_ascii_flow
from .ids import IdFactory, IdSequence
from .layout import BranchKind, FlowLayoutEngine, auto_layout_flow, classify_branch
from .models import (
    AsciiFlowBounds,
    AsciiFlowDetection,
    FlowData,
    FlowDataError,
    FlowEdge,
    FlowNode,
    FlowPosition,
    NodeType,
)
from .parser import AsciiFlowParser, parse_ascii_flow
from .serializer import (
    create_initial_flow,
    has_ascii_flow_in_prompt,
    has_flow_in_prompt,
    insert_ascii_flow_in_prompt,
    is_flow_empty,
    parse_flow_from_prompt,
    remove_flow_from_prompt,
    serialize_flow_data,
    update_prompt_with_flow,
)
from .text import flow_to_mermaid, flow_to_structured_text, flow_to_text
from .validator import (
    FlowValidationWarning,
    Severity,
    ValidationRule,
    is_flow_valid,
    validate_flow,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Main API
    "FlowNotationEngine",
    "detect_ascii_flow",
    "get_ascii_flow_bounds",
    "parse_ascii_flow",
    "generate_ascii_flow",
    "auto_layout_flow",
    # Components
    "AsciiFlowDetector",
    "AsciiFlowParser",
    "AsciiFlowGenerator",
    "FlowLayoutEngine",
    "FlowExporter",
    # Models
    "FlowData",
    "FlowDataError",
    "FlowNode",
    "FlowEdge",
    "FlowPosition",
    "NodeType",
    "AsciiFlowDetection",
    "AsciiFlowBounds",
    # Ids
    "IdFactory",
    "IdSequence",
    # Decision branches
    "BranchKind",
    "classify_branch",
    # Prompt splicing
    "serialize_flow_data",
    "parse_flow_from_prompt",
    "has_flow_in_prompt",
    "update_prompt_with_flow",
    "remove_flow_from_prompt",
    "has_ascii_flow_in_prompt",
    "insert_ascii_flow_in_prompt",
    "is_flow_empty",
    "create_initial_flow",
    # Text formats
    "flow_to_text",
    "flow_to_structured_text",
    "flow_to_mermaid",
    # Validation
    "validate_flow",
    "is_flow_valid",
    "FlowValidationWarning",
    "Severity",
    "ValidationRule",
]
