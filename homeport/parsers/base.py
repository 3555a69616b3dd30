"""
Parser plugin interface.

Every format parser turns one input shape (state file, template tree,
source tree or live API) into an ``Infrastructure``. Parsers are registered
explicitly on a ``ParserRegistry``; nothing registers itself on import.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from homeport.config import HomeportSettings
from homeport.core.cancellation import CancellationToken, check_cancelled
from homeport.core.path_utils import DEFAULT_MAX_FILE_BYTES
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Category, Provider, ResourceType

logger = logging.getLogger(__name__)

_GCP_ZONE = re.compile(r"^([a-z]+-[a-z]+\d+)-[a-z]$")
_AWS_AZ = re.compile(r"^([a-z]{2}(?:-[a-z]+)+-\d+)[a-z]$")


class Format(str, Enum):
    """Input formats understood by the parsers."""

    TERRAFORM = "terraform"
    TFSTATE = "tfstate"
    CLOUDFORMATION = "cloudformation"
    DEPLOYMENT_MANAGER = "deployment_manager"
    API = "api"


@dataclass(frozen=True)
class ProgressEvent:
    """
    Structured progress notification emitted while parsing.

    ``kind`` is one of ``scan_started``, ``scan_completed``,
    ``scan_skipped``, ``scan_failed``, ``file_parsed`` or ``file_skipped``.
    ``category`` names the scan or the file concerned.
    """

    kind: str
    category: str
    message: str = ""
    count: int = 0


@dataclass
class ParseOptions:
    """Caller-supplied options shared by every parser."""

    filter_types: set[ResourceType] = field(default_factory=set)
    filter_categories: set[Category] = field(default_factory=set)
    regions: list[str] = field(default_factory=list)
    credentials: dict[str, str] = field(default_factory=dict)
    include_sensitive: bool = False
    ignore_errors: bool = False
    on_progress: Callable[[ProgressEvent], None] | None = None
    cancel_token: CancellationToken | None = None
    max_workers: int = 4
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES

    @classmethod
    def from_settings(
        cls, settings: HomeportSettings, **overrides: Any
    ) -> ParseOptions:
        """Build options seeded from process settings."""
        values: dict[str, Any] = {
            "max_workers": settings.max_scan_workers,
            "max_file_bytes": settings.max_file_bytes,
        }
        values.update(overrides)
        return cls(**values)

    def includes(self, resource_type: ResourceType) -> bool:
        """
        Decide whether a resource type passes the filters.

        A non-empty type filter decides alone and the category filter is
        then ignored entirely. Only when no types are given does the
        category filter apply. With neither, everything passes.
        """
        if self.filter_types:
            return resource_type in self.filter_types
        if self.filter_categories:
            return resource_type.category in self.filter_categories
        return True

    def includes_any(self, resource_types: Iterable[ResourceType]) -> bool:
        """True if at least one of ``resource_types`` passes the filters."""
        return any(self.includes(rt) for rt in resource_types)

    def default_region(self, fallback: str) -> str:
        """First configured region, or ``fallback``."""
        return self.regions[0] if self.regions else fallback

    def emit(self, kind: str, category: str, message: str = "", count: int = 0) -> None:
        """Invoke ``on_progress`` synchronously, if set."""
        if self.on_progress is not None:
            self.on_progress(ProgressEvent(kind, category, message, count))

    def check_cancelled(self, operation: str) -> None:
        """Raise OperationCancelledError if the cancel token is set."""
        check_cancelled(self.cancel_token, operation)


def apply_filters(infra: Infrastructure, options: ParseOptions) -> Infrastructure:
    """Return a new Infrastructure holding only resources that pass the filters."""
    return infra.filter(lambda resource: options.includes(resource.type))


def gcp_region_from_zone(value: str) -> str:
    """
    Derive a GCP region from a zone.

    ``us-central1-a`` becomes ``us-central1``. Zone self-links are reduced
    to their last path segment first. Values that are not zones (including
    regions and ``global``) are returned unchanged.
    """
    value = value.rstrip("/").rsplit("/", 1)[-1]
    match = _GCP_ZONE.match(value)
    return match.group(1) if match else value


def aws_region_from_zone(value: str) -> str:
    """Derive an AWS region from an availability zone (``us-east-1a``)."""
    match = _AWS_AZ.match(value)
    return match.group(1) if match else value


def last_segment(value: str) -> str:
    """Return the last ``/``-separated segment of a URL or resource path."""
    return value.rstrip("/").rsplit("/", 1)[-1] if value else value


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp, returning None for anything else."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class FormatParser(ABC):
    """Abstract base class for format parsers."""

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Provider whose resources this parser discovers."""

    @property
    @abstractmethod
    def supported_formats(self) -> list[Format]:
        """Input formats this parser understands."""

    @property
    def name(self) -> str:
        """Human-readable parser name used in logs."""
        return type(self).__name__

    @abstractmethod
    def validate(self, path: str) -> None:
        """
        Cheaply reject inputs that cannot possibly be this format.

        Must not touch the network or fully parse the input.

        Raises:
            InvalidPathError: If the path does not exist.
            UnsupportedFormatError: If the path is clearly another format.

        """

    @abstractmethod
    def detect_confidence(self, path: str) -> float:
        """Estimate how well this parser fits ``path``; 0 means not at all."""

    def auto_detect(self, path: str) -> tuple[bool, float]:
        """
        Probe an input without side effects.

        Any failure while probing means "cannot handle"; the confidence is
        always clamped into [0, 1].

        Args:
            path: File, directory or live-API target.

        Returns:
            Tuple of (can_handle, confidence).

        """
        try:
            confidence = float(self.detect_confidence(path))
        except Exception as e:  # noqa: BLE001 - probing must never raise
            logger.debug("%s could not probe %s: %s", self.name, path, e)
            return False, 0.0
        if confidence != confidence:  # NaN
            confidence = 0.0
        confidence = max(0.0, min(1.0, confidence))
        return confidence > 0.0, confidence

    @abstractmethod
    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Parse an input into an Infrastructure.

        Args:
            path: File, directory or live-API target.
            options: Filters, credentials and error policy.

        Returns:
            The discovered resource graph.

        """

    def get_metadata(self) -> dict[str, Any]:
        """Return descriptive information about this parser."""
        return {
            "name": self.name,
            "provider": self.provider.value,
            "formats": [fmt.value for fmt in self.supported_formats],
        }
