"""Mapper framework: resource to self-hosted service translation."""

from homeport.mappers.base import BaseMapper, Mapper, sanitize_name
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.defaults import (
    create_default_mapper_registry,
    register_default_mappers,
)
from homeport.mappers.registry import BatchMappingReport, MapperRegistry
from homeport.mappers.result import (
    HealthCheck,
    MappingResult,
    ResourceLimits,
    ServiceDefinition,
    Volume,
)

__all__ = [
    "BaseMapper",
    "BatchMappingReport",
    "CredentialGenerator",
    "HealthCheck",
    "Mapper",
    "MapperRegistry",
    "MappingResult",
    "ResourceLimits",
    "ServiceDefinition",
    "Volume",
    "create_default_mapper_registry",
    "register_default_mappers",
    "sanitize_name",
]
