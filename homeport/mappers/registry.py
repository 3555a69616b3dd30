"""Mapper registry and batch dispatch."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from homeport.core.errors import HomeportError, MapperNotFoundError
from homeport.core.logging import log_operation
from homeport.domain.resource import Resource, ResourceType
from homeport.mappers.base import Mapper
from homeport.mappers.result import MappingResult

logger = logging.getLogger(__name__)


@dataclass
class BatchMappingReport:
    """Outcome of mapping many resources at once."""

    results: list[MappingResult] = field(default_factory=list)
    unmapped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


class MapperRegistry:
    """
    Registry of mappers keyed by resource type.

    Populated through explicit ``register`` calls; see
    ``homeport.mappers.defaults`` for the built-in set.
    """

    def __init__(self) -> None:
        """Initialise an empty registry."""
        self._mappers: dict[ResourceType, Mapper] = {}

    def __len__(self) -> int:
        return len(self._mappers)

    def register(self, mapper: Mapper) -> None:
        """
        Register a mapper for its resource type.

        Args:
            mapper: Mapper instance to add.

        Raises:
            ValueError: If a mapper for this type is already registered.

        """
        resource_type = mapper.resource_type
        if resource_type in self._mappers:
            raise ValueError(f"Mapper for {resource_type.name} already registered")
        self._mappers[resource_type] = mapper
        logger.debug("Registered mapper for %s", resource_type.name)

    def unregister(self, resource_type: ResourceType) -> bool:
        """Remove the mapper for a type; returns whether one was registered."""
        return self._mappers.pop(resource_type, None) is not None

    def clear(self) -> None:
        self._mappers.clear()

    def get(self, resource_type: ResourceType) -> Mapper:
        """
        Return the mapper for a resource type.

        Raises:
            MapperNotFoundError: If no mapper handles the type.

        """
        mapper = self._mappers.get(resource_type)
        if mapper is None:
            raise MapperNotFoundError(resource_type.name)
        return mapper

    def has_mapper(self, resource_type: ResourceType) -> bool:
        return resource_type in self._mappers

    def supported_types(self) -> list[ResourceType]:
        """Registered types, sorted by name."""
        return sorted(self._mappers, key=lambda t: t.name)

    def map(self, resource: Resource) -> MappingResult:
        """
        Map a resource with the mapper registered for its type.

        Raises:
            MapperNotFoundError: If no mapper handles the resource type.

        """
        return self.get(resource.type).map(resource)

    @log_operation("map_batch")
    def map_batch(self, resources: Iterable[Resource]) -> BatchMappingReport:
        """
        Map every resource that has a registered mapper.

        Resources without a mapper are listed in ``unmapped``. A mapper that
        fails on one resource adds a warning and the batch carries on.

        Args:
            resources: Resources to map, typically ``infra.topological_order()``.

        Returns:
            Results in input order plus unmapped IDs and warnings.

        """
        report = BatchMappingReport()
        for resource in resources:
            mapper = self._mappers.get(resource.type)
            if mapper is None:
                report.unmapped.append(resource.id)
                continue
            try:
                report.results.append(mapper.map(resource))
            except (HomeportError, ValueError, KeyError, TypeError) as e:
                logger.warning("Failed to map %s: %s", resource.id, e)
                report.warnings.append(f"Failed to map {resource.id}: {e}")
        logger.info(
            "Mapped %d resources (%d unmapped, %d failed)",
            len(report.results),
            len(report.unmapped),
            len(report.warnings),
        )
        return report
