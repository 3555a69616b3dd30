"""
Infrastructure aggregate: the resource graph produced by a parser.

Dependencies are stored as IDs on each Resource, so the graph is an
adjacency list keyed by string and stays serialisable even with cycles.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from homeport.core.errors import (
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateResourceError,
    NilResourceError,
    ResourceNotFoundError,
)
from homeport.domain.resource import Provider, Resource, ResourceType


class _Colour(Enum):
    WHITE = 0
    GREY = 1
    BLACK = 2


@dataclass
class ValidationReport:
    """Outcome of a successful ``Infrastructure.validate`` call."""

    resource_count: int
    dangling: list[tuple[str, str]] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        """Human-readable warnings for lenient-mode findings."""
        return [
            f"Resource '{src}' depends on unknown resource '{dst}'"
            for src, dst in self.dangling
        ]

    @property
    def ok(self) -> bool:
        """True when no findings were recorded."""
        return not self.dangling


class Infrastructure:
    """
    Aggregate root holding every resource discovered in one parse.

    Resources are owned exclusively by one Infrastructure. Filtering
    produces a new instance holding copies, leaving this one untouched.
    """

    def __init__(
        self,
        provider: Provider,
        metadata: dict[str, str] | None = None,
    ):
        """
        Initialise an empty infrastructure.

        Args:
            provider: Provider the resources were discovered from.
            metadata: Optional discovery context (project, tool versions).

        """
        self.provider = provider
        self.resources: dict[str, Resource] = {}
        self.metadata: dict[str, str] = dict(metadata or {})
        self._type_index: dict[ResourceType, list[Resource]] | None = None

    def __len__(self) -> int:
        return len(self.resources)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self.resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.resources.values())

    def __repr__(self) -> str:
        return (
            f"Infrastructure(provider={self.provider.value!r}, "
            f"resources={len(self.resources)})"
        )

    def add_resource(self, resource: Resource | None) -> None:
        """
        Add a resource to the graph.

        Args:
            resource: Resource to add.

        Raises:
            NilResourceError: If resource is None.
            DuplicateResourceError: If the ID is already present.

        """
        if resource is None:
            raise NilResourceError()
        if resource.id in self.resources:
            raise DuplicateResourceError(resource.id)
        self.resources[resource.id] = resource
        self._type_index = None

    def get_resource(self, resource_id: str) -> Resource:
        """
        Look up a resource by ID.

        Raises:
            ResourceNotFoundError: If no resource has this ID.

        """
        try:
            return self.resources[resource_id]
        except KeyError:
            raise ResourceNotFoundError(resource_id) from None

    def get_resources_by_type(self, resource_type: ResourceType) -> list[Resource]:
        """
        Return resources of one type in insertion order.

        The type index is built on first use and discarded whenever a
        resource is added.
        """
        if self._type_index is None:
            index: dict[ResourceType, list[Resource]] = {}
            for resource in self.resources.values():
                index.setdefault(resource.type, []).append(resource)
            self._type_index = index
        return list(self._type_index.get(resource_type, []))

    def resource_ids(self) -> list[str]:
        """Return all resource IDs in insertion order."""
        return list(self.resources)

    def dangling_dependencies(self) -> dict[str, list[str]]:
        """
        Find dependencies that reference unknown IDs.

        Returns:
            Mapping of resource ID to its missing dependency IDs.

        """
        missing: dict[str, list[str]] = {}
        for resource in self.resources.values():
            unknown = [d for d in resource.dependencies if d not in self.resources]
            if unknown:
                missing[resource.id] = unknown
        return missing

    def _find_cycle(self) -> list[str] | None:
        """Three-colour DFS; returns the first cycle found in traversal order."""
        colour = dict.fromkeys(self.resources, _Colour.WHITE)

        for root in self.resources:
            if colour[root] is not _Colour.WHITE:
                continue
            # Iterative DFS: each frame is (node, iterator over its deps)
            path: list[str] = [root]
            stack = [(root, iter(self.resources[root].dependencies))]
            colour[root] = _Colour.GREY
            while stack:
                node, deps = stack[-1]
                advanced = False
                for dep in deps:
                    state = colour.get(dep)
                    if state is None:
                        continue  # dangling, reported separately
                    if state is _Colour.GREY:
                        return path[path.index(dep) :]
                    if state is _Colour.WHITE:
                        colour[dep] = _Colour.GREY
                        path.append(dep)
                        stack.append((dep, iter(self.resources[dep].dependencies)))
                        advanced = True
                        break
                if not advanced:
                    colour[node] = _Colour.BLACK
                    path.pop()
                    stack.pop()
        return None

    def validate(self, strict: bool = True) -> ValidationReport:
        """
        Check dependency integrity without modifying the graph.

        Args:
            strict: Treat dangling dependencies as errors. When False they
                are returned as report warnings instead.

        Returns:
            ValidationReport with any lenient-mode findings.

        Raises:
            DanglingDependencyError: In strict mode, if any dependency
                references an unknown ID.
            DependencyCycleError: If the graph contains a cycle.

        """
        edges = [
            (src, dst)
            for src, missing in self.dangling_dependencies().items()
            for dst in missing
        ]
        if edges and strict:
            raise DanglingDependencyError(edges)

        cycle = self._find_cycle()
        if cycle is not None:
            raise DependencyCycleError(cycle)

        return ValidationReport(resource_count=len(self.resources), dangling=edges)

    def topological_order(self) -> list[Resource]:
        """
        Return resources ordered so dependencies come before dependants.

        Ties follow insertion order, so the result is deterministic.

        Raises:
            DependencyCycleError: If the graph contains a cycle.

        """
        cycle = self._find_cycle()
        if cycle is not None:
            raise DependencyCycleError(cycle)

        visited: set[str] = set()
        ordered: list[Resource] = []

        def visit(resource_id: str) -> None:
            if resource_id in visited or resource_id not in self.resources:
                return
            visited.add(resource_id)
            for dep in self.resources[resource_id].dependencies:
                visit(dep)
            ordered.append(self.resources[resource_id])

        for resource_id in self.resources:
            visit(resource_id)
        return ordered

    def filter(self, predicate: Callable[[Resource], bool]) -> Infrastructure:
        """
        Return a new Infrastructure holding copies of matching resources.

        Args:
            predicate: Called with each resource; keep it when True.

        Returns:
            A new Infrastructure with the same provider and metadata.

        """
        filtered = Infrastructure(self.provider, self.metadata)
        for resource in self.resources.values():
            if predicate(resource):
                filtered.add_resource(resource.copy())
        return filtered

    def to_dict(self) -> dict[str, Any]:
        """Convert the graph to a plain dictionary."""
        return {
            "provider": self.provider.value,
            "metadata": dict(self.metadata),
            "resources": [r.to_dict() for r in self.resources.values()],
        }
