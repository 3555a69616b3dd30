"""Cloud Run service to a container routed through Traefik."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource, ResourceType
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult, ResourceLimits
from homeport.mappers.tables import cpu_quantity, health_check, memory_quantity

PLACEHOLDER_IMAGE = "gcr.io/cloudrun/placeholder"
DEFAULT_PORT = 8080

_MAX_SCALE_ANNOTATION = "autoscaling.knative.dev/maxScale"
_MIN_SCALE_ANNOTATION = "autoscaling.knative.dev/minScale"
_VPC_CONNECTOR_ANNOTATION = "run.googleapis.com/vpc-access-connector"


def _first_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


class CloudRunMapper(BaseMapper):
    """
    Maps Cloud Run services to a Traefik-routed container.

    Handles both the v1 shape (``template.spec.containers``) and the v2 shape
    (``template.containers``); register one instance per type.
    """

    def __init__(
        self,
        resource_type: ResourceType = catalog.CLOUD_RUN_V2_SERVICE,
        credentials: CredentialGenerator | None = None,
    ):
        super().__init__(resource_type, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        template = _first_dict(resource.get_config("template"))
        container = self._container(template)

        image = str(container.get("image") or "") or PLACEHOLDER_IMAGE
        result = self.new_result(resource, name, image)
        svc = result.service
        assert svc is not None

        port = self._port(container)
        svc.ports = [f"{port}:{port}"]
        svc.environment = self._environment(container)
        svc.environment["PORT"] = str(port)
        if isinstance(container.get("command"), list) and container["command"]:
            svc.entrypoint = [str(c) for c in container["command"]]
        if isinstance(container.get("args"), list) and container["args"]:
            svc.command = [str(a) for a in container["args"]]

        limits = _first_dict(container.get("resources")).get("limits")
        limits = limits if isinstance(limits, dict) else {}
        svc.limits = ResourceLimits(
            cpus=cpu_quantity(limits.get("cpu"), default="1"),
            memory=memory_quantity(limits.get("memory"), default="512M"),
        )

        router = svc.name
        svc.labels.update(
            {
                f"{LABEL_PREFIX}.service_name": name,
                "traefik.enable": "true",
                f"traefik.http.routers.{router}.rule": f"Host(`{router}.localhost`)",
                f"traefik.http.services.{router}.loadbalancer.server.port": str(port),
            }
        )
        svc.health_check = health_check("http", port=port)

        self._scaling_warning(resource, template, result)
        if resource.get_config_list("traffic"):
            result.add_warning(
                "Traffic splitting between revisions has no compose equivalent; "
                "only the latest image is deployed."
            )
            result.add_manual_step(
                "Configure Traefik weighted routing if traffic splitting is needed"
            )
        annotations = self._annotations(template)
        if template.get("vpc_access") or _VPC_CONNECTOR_ANNOTATION in annotations:
            result.add_warning(
                "Service uses a VPC access connector; attach the container to "
                "the networks of the services it reaches."
            )

        result.add_manual_step(
            f"Access the service at http://{router}.localhost (requires Traefik)"
        )
        result.add_manual_step("Replace placeholder environment values with real ones")
        return result

    @staticmethod
    def _container(template: dict[str, Any]) -> dict[str, Any]:
        containers = template.get("containers")
        if not containers:
            containers = _first_dict(template.get("spec")).get("containers")
        return _first_dict(containers)

    @staticmethod
    def _annotations(template: dict[str, Any]) -> dict[str, Any]:
        annotations = _first_dict(template.get("metadata")).get("annotations")
        return annotations if isinstance(annotations, dict) else {}

    @staticmethod
    def _port(container: dict[str, Any]) -> int:
        port = _first_dict(container.get("ports")).get("container_port")
        try:
            port = int(port)
        except (TypeError, ValueError):
            return DEFAULT_PORT
        return port if port > 0 else DEFAULT_PORT

    @staticmethod
    def _environment(container: dict[str, Any]) -> dict[str, str]:
        env: dict[str, str] = {}
        for entry in container.get("env") or []:
            if isinstance(entry, dict) and entry.get("name"):
                value = entry.get("value")
                env[str(entry["name"])] = "" if value is None else str(value)
        return env

    def _scaling_warning(
        self, resource: Resource, template: dict[str, Any], result: MappingResult
    ) -> None:
        scaling = _first_dict(template.get("scaling"))
        annotations = self._annotations(template)
        autoscaling = resource.get_config_dict("autoscaling")
        minimum = (
            scaling.get("min_instance_count")
            or annotations.get(_MIN_SCALE_ANNOTATION)
            or autoscaling.get("min_instance_count")
        )
        maximum = (
            scaling.get("max_instance_count")
            or annotations.get(_MAX_SCALE_ANNOTATION)
            or autoscaling.get("max_instance_count")
        )
        if not minimum and not maximum:
            return
        result.add_warning(
            f"Autoscaling is configured (min: {minimum or 0}, max: {maximum or 100}); "
            "compose runs a single replica."
        )
