"""
Mapping results.

A MappingResult describes the self-hosted replacement for one resource: a
container service definition plus generated scripts, configuration files,
warnings and manual steps. Nothing here touches the filesystem; writers
persist the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from homeport.core.constants import DEFAULT_RESTART_POLICY


@dataclass(frozen=True)
class ResourceLimits:
    """CPU and memory caps in compose notation (``"2"``, ``"8G"``)."""

    cpus: str
    memory: str

    def to_dict(self) -> dict[str, str]:
        return {"cpus": self.cpus, "memory": self.memory}


@dataclass(frozen=True)
class HealthCheck:
    """Container health check; durations are compose strings such as ``30s``."""

    test: tuple[str, ...]
    interval: str = "30s"
    timeout: str = "5s"
    retries: int = 3
    start_period: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "test": list(self.test),
            "interval": self.interval,
            "timeout": self.timeout,
            "retries": self.retries,
        }
        if self.start_period:
            data["start_period"] = self.start_period
        return data


@dataclass
class Volume:
    """Named volume declared at the top level of a compose file."""

    name: str
    driver: str = "local"
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"driver": self.driver}
        if self.labels:
            data["labels"] = dict(self.labels)
        return data


@dataclass
class ServiceDefinition:
    """One container service."""

    name: str
    image: str = ""
    ports: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    command: list[str] = field(default_factory=list)
    entrypoint: list[str] = field(default_factory=list)
    limits: ResourceLimits | None = None
    health_check: HealthCheck | None = None
    volumes: list[str] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)
    restart: str = DEFAULT_RESTART_POLICY

    def to_dict(self) -> dict[str, Any]:
        """Render as a compose service mapping, omitting empty fields."""
        data: dict[str, Any] = {"image": self.image}
        if self.command:
            data["command"] = list(self.command)
        if self.entrypoint:
            data["entrypoint"] = list(self.entrypoint)
        if self.ports:
            data["ports"] = list(self.ports)
        if self.environment:
            data["environment"] = dict(sorted(self.environment.items()))
        if self.volumes:
            data["volumes"] = list(self.volumes)
        if self.networks:
            data["networks"] = list(self.networks)
        if self.labels:
            data["labels"] = dict(sorted(self.labels.items()))
        if self.depends_on:
            data["depends_on"] = list(self.depends_on)
        if self.health_check is not None:
            data["healthcheck"] = self.health_check.to_dict()
        if self.limits is not None:
            data["deploy"] = {"resources": {"limits": self.limits.to_dict()}}
        data["restart"] = self.restart
        return data


@dataclass
class MappingResult:
    """Everything produced by mapping a single resource."""

    service: ServiceDefinition | None
    source_resource_id: str = ""
    source_type: str = ""
    additional_services: list[ServiceDefinition] = field(default_factory=list)
    named_volumes: list[Volume] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    scripts: dict[str, str] = field(default_factory=dict)
    configs: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    manual_steps: list[str] = field(default_factory=list)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def add_manual_step(self, step: str) -> None:
        self.manual_steps.append(step)

    def add_script(self, name: str, content: str) -> None:
        self.scripts[name] = content

    def add_config(self, name: str, content: str) -> None:
        self.configs[name] = content

    def add_volume(self, volume: Volume) -> None:
        if all(v.name != volume.name for v in self.named_volumes):
            self.named_volumes.append(volume)

    def add_network(self, network: str) -> None:
        if network not in self.networks:
            self.networks.append(network)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_manual_steps(self) -> bool:
        return bool(self.manual_steps)

    def services(self) -> list[ServiceDefinition]:
        """The main service (if any) followed by additional services."""
        main = [self.service] if self.service is not None else []
        return main + list(self.additional_services)

    def to_dict(self) -> dict[str, Any]:
        """
        Render as a compose-style fragment plus the generated artifacts.

        Returns:
            Mapping with ``services``, ``volumes``, ``networks``, ``scripts``,
            ``configs``, ``warnings`` and ``manual_steps`` keys.

        """
        return {
            "source": {"id": self.source_resource_id, "type": self.source_type},
            "services": {svc.name: svc.to_dict() for svc in self.services()},
            "volumes": {v.name: v.to_dict() for v in self.named_volumes},
            "networks": {name: {"driver": "bridge"} for name in self.networks},
            "scripts": dict(self.scripts),
            "configs": dict(self.configs),
            "warnings": list(self.warnings),
            "manual_steps": list(self.manual_steps),
        }
