"""
Canonical resource model.

A Resource is one cloud object normalised into a provider-agnostic shape.
Its ``config`` stays an open attribute bag because provider schemas are
unbounded; read it through the defensive ``get_config_*`` accessors.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Provider(str, Enum):
    """Cloud providers that infrastructure can be discovered from."""

    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"

    @property
    def type_prefix(self) -> str:
        """Terraform-style prefix used by this provider's type names."""
        return _TYPE_PREFIXES[self]

    @classmethod
    def from_type_name(cls, type_name: str) -> Provider | None:
        """
        Derive the provider from a Terraform-style type name.

        Args:
            type_name: e.g. ``google_compute_instance``.

        Returns:
            The owning provider, or None if the prefix is unknown.

        """
        for provider, prefix in _TYPE_PREFIXES.items():
            if type_name.startswith(prefix):
                return provider
        return None


_TYPE_PREFIXES = {
    Provider.AWS: "aws_",
    Provider.GCP: "google_",
    Provider.AZURE: "azurerm_",
}


class Category(str, Enum):
    """Coarse functional category of a resource type."""

    COMPUTE = "compute"
    STORAGE = "storage"
    DATABASE = "database"
    NETWORKING = "networking"
    MESSAGING = "messaging"
    SECURITY = "security"
    IDENTITY = "identity"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ResourceType:
    """Immutable identifier of a resource kind."""

    name: str
    provider: Provider
    category: Category

    def __str__(self) -> str:
        return self.name

    @classmethod
    def of(cls, name: str) -> ResourceType:
        """
        Return the catalogued type called ``name``, or an opaque one.

        Opaque types take their provider from the name prefix (GCP when the
        prefix is unknown) and have category UNKNOWN.
        """
        from homeport.domain.catalog import resolve_type

        return resolve_type(name)


_MISSING = object()


@dataclass
class Resource:
    """A single discovered cloud resource."""

    id: str
    name: str
    type: ResourceType
    region: str = "global"
    external_ref: str | None = None
    config: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        deps = self.dependencies
        self.dependencies = []
        for dep in deps:
            self.add_dependency(dep)

    def add_dependency(self, resource_id: str) -> None:
        """
        Record a dependency on another resource.

        Duplicates, empty IDs and references to this resource itself are
        ignored so ``dependencies`` stays an ordered set without self loops.

        Args:
            resource_id: ID of the resource this one depends on.

        """
        if not resource_id or resource_id == self.id:
            return
        if resource_id not in self.dependencies:
            self.dependencies.append(resource_id)

    def get_config(self, path: str, default: Any = None) -> Any:
        """
        Read a config value by dotted path.

        Single-element lists are stepped through transparently, which is how
        Terraform state encodes nested blocks (``settings.tier`` resolves
        ``{"settings": [{"tier": ...}]}``). Numeric segments index lists.

        Args:
            path: Dotted key path.
            default: Value returned when the path does not resolve.

        Returns:
            The value found, or ``default``.

        """
        current: Any = self.config
        for segment in path.split("."):
            if isinstance(current, list):
                if segment.isdigit():
                    index = int(segment)
                    current = current[index] if index < len(current) else _MISSING
                    if current is _MISSING:
                        return default
                    continue
                if len(current) != 1:
                    return default
                current = current[0]
            if not isinstance(current, dict) or segment not in current:
                return default
            current = current[segment]
        if current is None:
            return default
        return current

    def get_config_str(self, path: str, default: str = "") -> str:
        """Return a config value as a string, or ``default``."""
        value = self.get_config(path)
        if value is None or isinstance(value, (dict, list)):
            return default
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def get_config_int(self, path: str, default: int = 0) -> int:
        """Return a config value as an int, or ``default``."""
        value = self.get_config(path)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(float(value.strip()))
            except ValueError:
                return default
        return default

    def get_config_bool(self, path: str, default: bool = False) -> bool:
        """Return a config value as a bool, or ``default``."""
        value = self.get_config(path)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes", "on"):
                return True
            if lowered in ("false", "0", "no", "off"):
                return False
        if isinstance(value, (int, float)):
            return value != 0
        return default

    def get_config_dict(self, path: str) -> dict[str, Any]:
        """Return a config mapping, or an empty dict."""
        value = self.get_config(path)
        if isinstance(value, list) and len(value) == 1:
            value = value[0]
        return value if isinstance(value, dict) else {}

    def get_config_list(self, path: str) -> list[Any]:
        """Return a config list, or an empty list."""
        value = self.get_config(path)
        return value if isinstance(value, list) else []

    def copy(self) -> Resource:
        """Return a deep copy that shares no mutable state with this one."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert the resource to a plain dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.name,
            "provider": self.type.provider.value,
            "category": self.type.category.value,
            "region": self.region,
            "external_ref": self.external_ref,
            "config": self.config,
            "tags": self.tags,
            "dependencies": list(self.dependencies),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
