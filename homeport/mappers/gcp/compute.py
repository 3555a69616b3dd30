"""Compute Engine instance to a plain container built from a generated Dockerfile."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import LABEL_PREFIX, REDACTED_VALUE
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import HealthCheck, MappingResult
from homeport.mappers.tables import gce_image_to_container, machine_type_limits

_DOCKERFILE = """FROM {image}

# Generated for Compute Engine instance: {name}

RUN apt-get update && apt-get install -y \\
    curl \\
    wget \\
    ca-certificates \\
    && rm -rf /var/lib/apt/lists/*

COPY scripts/startup-script.sh /docker-entrypoint.d/startup-script.sh
RUN chmod +x /docker-entrypoint.d/*.sh

WORKDIR /app

CMD ["/bin/bash"]
"""


class ComputeInstanceMapper(BaseMapper):
    """Maps ``google_compute_instance`` to a container service."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.GCE_INSTANCE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        image = gce_image_to_container(
            resource.get_config_str("boot_disk.initialize_params.image")
        )
        result = self.new_result(resource, name, image)
        svc = result.service
        assert svc is not None

        machine_type = resource.get_config_str("machine_type") or (
            resource.get_config_str("machineType")
        )
        svc.limits = machine_type_limits(machine_type)
        if machine_type:
            svc.labels[f"{LABEL_PREFIX}.machine_type"] = machine_type

        for tag in resource.get_config_list("tags"):
            if isinstance(tag, str) and tag:
                svc.labels[f"gcp.network.tag.{tag}"] = "true"

        self._map_startup_script(resource, result)
        self._map_disks(resource, result)

        if resource.get_config_list("service_account") or resource.get_config_dict(
            "service_account"
        ):
            result.add_warning(
                "Instance runs as a service account; provide equivalent "
                "credentials to the container."
            )

        svc.health_check = HealthCheck(test=("CMD-SHELL", "echo 'healthy' || exit 1"))
        result.add_config(
            f"Dockerfile.{svc.name}", _DOCKERFILE.format(image=image, name=name)
        )
        result.add_manual_step(
            "Review the generated Dockerfile and install your application in it"
        )
        result.add_manual_step("Configure environment variables as needed")
        return result

    @staticmethod
    def _map_startup_script(resource: Resource, result: MappingResult) -> None:
        script = resource.get_config_str("metadata.startup-script") or (
            resource.get_config_str("metadata_startup_script")
        )
        if not script:
            return
        if script == REDACTED_VALUE:
            result.add_manual_step(
                "The startup script was redacted during discovery; copy it "
                "into scripts/startup-script.sh by hand"
            )
            return
        result.add_script("startup-script.sh", script)
        result.add_manual_step(
            "Review startup-script.sh and fold it into the image or entrypoint"
        )

    @staticmethod
    def _map_disks(resource: Resource, result: MappingResult) -> None:
        svc = result.service
        assert svc is not None
        disks: list[Any] = resource.get_config_list("attached_disk")
        if not disks:
            return
        for index, disk in enumerate(disks):
            device = ""
            if isinstance(disk, dict):
                device = str(disk.get("device_name") or "")
            device = device or f"disk-{index}"
            svc.volumes.append(f"./data/{device}:/mnt/{device}")
        result.add_warning(
            f"{len(disks)} attached disk(s) mapped to bind mounts under ./data; "
            "copy their contents before starting the stack."
        )
