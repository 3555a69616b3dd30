"""
Mapper plugin interface.

A mapper translates one canonical Resource into its self-hosted equivalent.
Mappers are registered explicitly on a ``MapperRegistry`` and hold no
mutable state beyond their credential generator.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from homeport.core.constants import DEFAULT_NETWORK, LABEL_PREFIX
from homeport.core.errors import NilResourceError, WrongResourceTypeError
from homeport.domain.resource import Resource, ResourceType
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult, ServiceDefinition

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9_-]+")
_REPEATED_DASHES = re.compile(r"-{2,}")


def sanitize_name(name: str, fallback: str = "service") -> str:
    """
    Turn a cloud resource name into a compose-safe service name.

    Lower-cases, replaces anything outside ``[a-z0-9_-]`` with a dash and
    trims leading and trailing separators.

    Args:
        name: Raw resource name.
        fallback: Returned when nothing usable remains.

    Returns:
        The sanitized name.

    """
    cleaned = _INVALID_NAME_CHARS.sub("-", name.strip().lower())
    cleaned = _REPEATED_DASHES.sub("-", cleaned).strip("-_")
    return cleaned or fallback


class Mapper(ABC):
    """Base class for resource mappers."""

    @property
    @abstractmethod
    def resource_type(self) -> ResourceType:
        """Return the resource type this mapper handles."""
        pass

    def validate(self, resource: Resource | None) -> Resource:
        """
        Check that ``resource`` can be mapped by this mapper.

        Args:
            resource: Resource about to be mapped.

        Returns:
            The same resource, narrowed to non-None.

        Raises:
            NilResourceError: If resource is None.
            WrongResourceTypeError: If the resource has another type.

        """
        if resource is None:
            raise NilResourceError()
        if resource.type != self.resource_type:
            raise WrongResourceTypeError(self.resource_type.name, resource.type.name)
        return resource

    @abstractmethod
    def map(self, resource: Resource) -> MappingResult:
        """
        Translate a resource into a mapping result.

        Args:
            resource: Resource of this mapper's type.

        Returns:
            Service definition plus generated artifacts.

        Raises:
            NilResourceError: If resource is None.
            WrongResourceTypeError: If the resource has another type.

        """
        pass


class BaseMapper(Mapper):
    """Mapper with the shared plumbing: type binding, credentials, naming."""

    def __init__(
        self,
        resource_type: ResourceType,
        credentials: CredentialGenerator | None = None,
    ):
        """
        Bind the mapper to a resource type.

        Args:
            resource_type: Type this mapper accepts.
            credentials: Source of generated usernames and passwords.

        """
        self._resource_type = resource_type
        self.credentials = credentials or CredentialGenerator()

    @property
    def resource_type(self) -> ResourceType:
        return self._resource_type

    def sanitize_name(self, name: str) -> str:
        return sanitize_name(name)

    def new_result(
        self, resource: Resource, name: str, image: str = ""
    ) -> MappingResult:
        """
        Start a result holding one service on the shared network.

        The service is labelled with its origin so the generated stack can
        be traced back to the cloud resource.
        """
        service = ServiceDefinition(
            name=self.sanitize_name(name),
            image=image,
            networks=[DEFAULT_NETWORK],
            labels={
                f"{LABEL_PREFIX}.source": resource.type.name,
                f"{LABEL_PREFIX}.resource": resource.name,
            },
        )
        result = MappingResult(
            service=service,
            source_resource_id=resource.id,
            source_type=resource.type.name,
        )
        result.add_network(DEFAULT_NETWORK)
        return result
