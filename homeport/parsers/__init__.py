"""Format parsers and the parser registry."""

from homeport.parsers.base import (
    Format,
    FormatParser,
    ParseOptions,
    ProgressEvent,
    apply_filters,
)
from homeport.parsers.defaults import create_default_registry, register_default_parsers
from homeport.parsers.registry import DetectionResult, ParserRegistry

__all__ = [
    "DetectionResult",
    "Format",
    "FormatParser",
    "ParseOptions",
    "ParserRegistry",
    "ProgressEvent",
    "apply_filters",
    "create_default_registry",
    "register_default_parsers",
]
