"""Canonical resource model shared by every parser and mapper."""

from homeport.domain.catalog import lookup_type, opaque_type, resolve_type
from homeport.domain.infrastructure import Infrastructure, ValidationReport
from homeport.domain.resource import Category, Provider, Resource, ResourceType

__all__ = [
    "Category",
    "Infrastructure",
    "Provider",
    "Resource",
    "ResourceType",
    "ValidationReport",
    "lookup_type",
    "opaque_type",
    "resolve_type",
]
