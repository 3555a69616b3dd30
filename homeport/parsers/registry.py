"""
Parser registry with confidence-scored auto-detection.

The registry is an ordinary object populated by explicit ``register``
calls. Registration order is significant: it breaks confidence ties.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from homeport.core.errors import (
    HomeportError,
    NoParserFoundError,
    UnsupportedFormatError,
)
from homeport.core.logging import log_operation
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Provider
from homeport.parsers.base import Format, FormatParser, ParseOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    """Confidence reported by one parser for one input."""

    parser: FormatParser
    confidence: float
    index: int


class ParserRegistry:
    """Holds format parsers and selects the best one for an input."""

    def __init__(self, max_probe_workers: int = 8):
        """
        Initialise an empty registry.

        Args:
            max_probe_workers: Upper bound on parallel auto-detect probes.

        """
        self._parsers: list[FormatParser] = []
        self._max_probe_workers = max(1, max_probe_workers)

    def __len__(self) -> int:
        return len(self._parsers)

    def register(self, parser: FormatParser) -> None:
        """
        Register a parser after all previously registered ones.

        Raises:
            ValueError: If this parser instance is already registered.

        """
        if any(existing is parser for existing in self._parsers):
            raise ValueError(f"Parser '{parser.name}' is already registered")
        self._parsers.append(parser)
        logger.debug("Registered parser %s", parser.name)

    def parsers(self) -> list[FormatParser]:
        """All parsers in registration order."""
        return list(self._parsers)

    def for_provider(self, provider: Provider) -> list[FormatParser]:
        """Parsers for one provider, in registration order."""
        return [p for p in self._parsers if p.provider is provider]

    def get_by_format(self, provider: Provider, fmt: Format) -> FormatParser:
        """
        Return the first parser for ``provider`` that handles ``fmt``.

        Raises:
            UnsupportedFormatError: If no registered parser matches.

        """
        for parser in self._parsers:
            if parser.provider is provider and fmt in parser.supported_formats:
                return parser
        raise UnsupportedFormatError(fmt.value, f"{provider.value} {fmt.value}")

    def _probe_all(self, path: str) -> list[DetectionResult]:
        """Run every parser's auto_detect, returning results by registration."""
        if not self._parsers:
            return []
        workers = min(self._max_probe_workers, len(self._parsers))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="homeport-probe"
        ) as pool:
            # map() yields in submission order whatever the completion order
            outcomes = list(pool.map(lambda p: p.auto_detect(path), self._parsers))
        return [
            DetectionResult(parser, confidence, index)
            for index, (parser, (_, confidence)) in enumerate(
                zip(self._parsers, outcomes, strict=True)
            )
        ]

    def detect_all(self, path: str) -> list[DetectionResult]:
        """
        Rank every parser that can handle ``path``.

        Returns:
            Results with confidence above zero, highest first; equal
            confidences keep registration order.

        """
        results = [r for r in self._probe_all(path) if r.confidence > 0.0]
        return sorted(results, key=lambda r: (-r.confidence, r.index))

    @log_operation("select_parser")
    def select_best(self, path: str) -> FormatParser:
        """
        Pick the parser with the highest confidence for ``path``.

        Ties go to the parser registered first. Ranked candidates are then
        passed through their cheap ``validate`` check and the first that
        accepts the input wins.

        Raises:
            NoParserFoundError: If no parser reports a confidence above zero
                or every candidate rejects the input.

        """
        ranked = self.detect_all(path)
        for result in ranked:
            try:
                result.parser.validate(path)
            except HomeportError as e:
                logger.debug(
                    "Parser %s rejected %s during validation: %s",
                    result.parser.name,
                    path,
                    e.message,
                )
                continue
            logger.info(
                "Selected parser %s (confidence %.2f)",
                result.parser.name,
                result.confidence,
            )
            return result.parser
        raise NoParserFoundError(path)

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """Auto-detect the parser for ``path`` and run it."""
        return self.select_best(path).parse(path, options)

    def get_registry_info(self) -> dict[str, Any]:
        """Describe the registered parsers."""
        return {
            "parsers": [p.get_metadata() for p in self._parsers],
            "providers": sorted({p.provider.value for p in self._parsers}),
        }
