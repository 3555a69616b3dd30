"""Persistent disk to a named volume."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult, Volume

_RESTORE_SCRIPT = """#!/bin/bash
# Load a tarball of persistent disk {disk} into volume {volume}.
set -euo pipefail

ARCHIVE="${{1:?usage: $0 <archive.tar.gz>}}"

docker volume create {volume} > /dev/null
docker run --rm -v {volume}:/data -v "$(dirname "$ARCHIVE"):/backup" \\
  alpine:3.19 tar xzf "/backup/$(basename "$ARCHIVE")" -C /data
echo "Restored $ARCHIVE into volume {volume}"
"""


class PersistentDiskMapper(BaseMapper):
    """Maps ``google_compute_disk`` to a volume-only result with no service."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.GCE_DISK, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        disk = resource.get_config_str("name") or resource.name
        volume = self.sanitize_name(disk)

        labels = {
            f"{LABEL_PREFIX}.source": resource.type.name,
            f"{LABEL_PREFIX}.resource": resource.name,
        }
        size = resource.get_config_int("size") or resource.get_config_int("sizeGb")
        if size:
            labels[f"{LABEL_PREFIX}.size_gb"] = str(size)
        disk_type = resource.get_config_str("type").rstrip("/").rsplit("/", 1)[-1]
        if disk_type:
            labels[f"{LABEL_PREFIX}.disk_type"] = disk_type

        result = MappingResult(
            service=None,
            source_resource_id=resource.id,
            source_type=resource.type.name,
        )
        result.add_volume(Volume(name=volume, labels=labels))
        result.add_script(
            f"restore_{volume}.sh", _RESTORE_SCRIPT.format(disk=disk, volume=volume)
        )

        image = resource.get_config_str("image") or (
            resource.get_config_str("sourceImage")
        )
        if image:
            result.add_warning(
                f"Disk was created from image '{image}'; its OS files are not "
                "needed in a data volume."
            )
        snapshot = resource.get_config_str("snapshot") or (
            resource.get_config_str("sourceSnapshot")
        )
        if snapshot:
            result.add_warning(
                f"Disk was restored from snapshot '{snapshot}'; export that "
                "snapshot's data instead."
            )
        if resource.get_config_list("replica_zones") or (
            resource.get_config_list("replicaZones")
        ):
            result.add_warning(
                "Regional disk replication is lost; Docker volumes live on one host."
            )
        if resource.get_config_dict("disk_encryption_key"):
            result.add_warning(
                "Disk uses a customer-supplied key; encrypt the volume's backing "
                "storage on the host."
            )
        iops = resource.get_config_int("provisioned_iops")
        if iops:
            result.add_warning(
                f"Disk has {iops} provisioned IOPS; volume speed depends on the host."
            )

        result.add_manual_step(
            f"Archive the disk contents (tar czf) from an instance that mounts "
            f"{disk}, then run restore_{volume}.sh with the archive"
        )
        result.add_manual_step(
            f"Mount volume '{volume}' in the services that used the disk"
        )
        return result
