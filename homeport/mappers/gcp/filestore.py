"""Filestore instance to an NFS server container."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import HealthCheck, MappingResult

NFS_IMAGE = "itsthenetwork/nfs-server-alpine:12"
NFS_PORT = 2049
EXPORT_DIR = "/nfsshare"

_TIER_WARNINGS = {
    "BASIC_HDD": "Source tier is BASIC_HDD; throughput depends on host disks.",
    "BASIC_SSD": "Source tier is BASIC_SSD; keep the data directory on SSDs.",
    "HIGH_SCALE_SSD": (
        "Source tier is HIGH_SCALE_SSD; a single NFS container will not match "
        "its throughput."
    ),
    "ENTERPRISE": (
        "Source tier is ENTERPRISE; regional replication is not recreated."
    ),
}

_MOUNT_SCRIPT = """#!/bin/bash
# Mount the NFS export that replaces Filestore share {share}.
set -euo pipefail

NFS_HOST="${{NFS_HOST:-localhost}}"
MOUNT_POINT="${{1:-/mnt/{share}}}"

sudo mkdir -p "$MOUNT_POINT"
sudo mount -t nfs4 -o port={port} "$NFS_HOST:/" "$MOUNT_POINT"
echo "Mounted $NFS_HOST:/ on $MOUNT_POINT"
"""


class FilestoreMapper(BaseMapper):
    """Maps ``google_filestore_instance`` to an NFSv4 server."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.FILESTORE_INSTANCE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        result = self.new_result(resource, f"nfs-{name}", NFS_IMAGE)
        svc = result.service
        assert svc is not None

        share = (
            resource.get_config_str("file_shares.0.name")
            or resource.get_config_str("fileShares.0.name")
            or "share"
        )
        capacity = resource.get_config_int("file_shares.0.capacity_gb") or (
            resource.get_config_int("fileShares.0.capacityGb")
        )

        svc.environment = {"SHARED_DIRECTORY": EXPORT_DIR}
        svc.ports = [f"{NFS_PORT}:{NFS_PORT}"]
        svc.volumes = [f"./data/{svc.name}:{EXPORT_DIR}"]
        svc.health_check = HealthCheck(
            test=("CMD-SHELL", "pgrep rpc.mountd > /dev/null || exit 1")
        )
        svc.labels[f"{LABEL_PREFIX}.share"] = share
        if capacity:
            svc.labels[f"{LABEL_PREFIX}.capacity_gb"] = str(capacity)

        result.add_script(
            f"mount_{svc.name}.sh", _MOUNT_SCRIPT.format(share=share, port=NFS_PORT)
        )

        result.add_warning(
            "The NFS server needs the privileged flag and the nfsd kernel "
            "module on the Docker host."
        )
        tier = resource.get_config_str("tier").upper()
        if tier in _TIER_WARNINGS:
            result.add_warning(_TIER_WARNINGS[tier])
        if len(resource.get_config_list("file_shares")) > 1:
            result.add_warning("Only the first file share is exported.")
        if resource.get_config_str("kms_key_name"):
            result.add_warning(
                "The share is encrypted with a customer-managed key; encrypt "
                "the data directory on the host."
            )

        result.add_manual_step(
            f"Add 'privileged: true' to the {svc.name} service before starting it"
        )
        result.add_manual_step(
            f"Copy the share contents into ./data/{svc.name} (rsync from a "
            "mounted Filestore client works)"
        )
        result.add_manual_step(f"Mount the export on clients with mount_{svc.name}.sh")
        return result
