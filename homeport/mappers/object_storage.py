"""
Object storage buckets to MinIO.

Cloud Storage and S3 buckets both become a MinIO server; the provider
mappers only translate their bucket settings into ``BucketFeatures``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from homeport.core.constants import LABEL_PREFIX
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import health_check

MINIO_IMAGE = "minio/minio:latest"
MINIO_API_PORT = 9000
MINIO_CONSOLE_PORT = 9001


@dataclass(frozen=True)
class LifecycleRule:
    """Provider-neutral lifecycle rule; ``age_days`` None means no age condition."""

    action: str
    age_days: int | None = None
    storage_class: str = ""


@dataclass(frozen=True)
class CORSRule:
    origins: tuple[str, ...]
    methods: tuple[str, ...]
    headers: tuple[str, ...] = ()
    max_age_seconds: int = 0


@dataclass
class BucketFeatures:
    """Bucket settings that need warnings, scripts or configs after migration."""

    storage_class: str = ""
    versioning: bool = False
    lifecycle_rules: list[LifecycleRule] = field(default_factory=list)
    cors_rules: list[CORSRule] = field(default_factory=list)
    uniform_access: bool = False
    public_access_prevented: bool = False
    public: bool = False
    encryption: bool = False
    retention_days: int = 0
    website: bool = False
    logging: bool = False


_SETUP_SCRIPT = """#!/bin/bash
# Create bucket {bucket} on the local MinIO server.
set -euo pipefail

MINIO_URL="${{MINIO_URL:-http://localhost:{api_port}}}"

mc alias set local "$MINIO_URL" {user} {password}
mc mb --ignore-existing {region_flag}local/{bucket}
{versioning}
echo "Bucket '{bucket}' is ready. Console: http://localhost:{console_port}"
"""


def _lifecycle_script(bucket: str, rules: list[LifecycleRule]) -> str:
    lines = [
        "#!/bin/bash",
        f"# Lifecycle rules for bucket {bucket}.",
        "set -euo pipefail",
        "",
    ]
    for index, rule in enumerate(rules):
        if rule.action.lower() in ("delete", "expiration") and rule.age_days:
            lines.append(
                f"mc ilm rule add --expire-days {rule.age_days} local/{bucket}"
            )
        else:
            detail = f" after {rule.age_days} days" if rule.age_days else ""
            target = f" to {rule.storage_class}" if rule.storage_class else ""
            lines.append(
                f"# Rule {index}: {rule.action}{target}{detail} needs a manual "
                "'mc ilm' equivalent"
            )
    lines.append("")
    return "\n".join(lines)


def _cors_config(rules: list[CORSRule]) -> str:
    document = {
        "CORSRules": [
            {
                "AllowedOrigins": list(rule.origins),
                "AllowedMethods": list(rule.methods),
                "AllowedHeaders": list(rule.headers),
                "MaxAgeSeconds": rule.max_age_seconds,
            }
            for rule in rules
        ]
    }
    return json.dumps(document, indent=2) + "\n"


def minio_result(
    mapper: BaseMapper,
    resource: Resource,
    bucket: str,
    region: str,
    features: BucketFeatures,
) -> MappingResult:
    """
    Build the MinIO service and artifacts for one bucket.

    Args:
        mapper: Mapper whose credential generator and naming apply.
        resource: Source bucket resource.
        bucket: Bucket name.
        region: Region or location recorded in MinIO.
        features: Bucket settings to carry over or warn about.

    Returns:
        Result with the MinIO service, ``setup_minio.sh`` and any lifecycle
        script or CORS config.

    """
    result = mapper.new_result(resource, f"minio-{bucket}", MINIO_IMAGE)
    svc = result.service
    assert svc is not None

    user = mapper.credentials.username("minio")
    password = mapper.credentials.password()
    svc.environment = {"MINIO_ROOT_USER": user, "MINIO_ROOT_PASSWORD": password}
    if region:
        svc.environment["MINIO_REGION"] = region
    svc.ports = [
        f"{MINIO_API_PORT}:{MINIO_API_PORT}",
        f"{MINIO_CONSOLE_PORT}:{MINIO_CONSOLE_PORT}",
    ]
    svc.command = ["server", "/data", "--console-address", f":{MINIO_CONSOLE_PORT}"]
    svc.volumes = [f"./data/{svc.name}:/data"]
    svc.health_check = health_check("minio")
    svc.labels[f"{LABEL_PREFIX}.bucket"] = bucket

    versioning = f"mc version enable local/{bucket}" if features.versioning else ""
    region_flag = f"--region {region} " if region else ""
    result.add_script(
        "setup_minio.sh",
        _SETUP_SCRIPT.format(
            bucket=bucket,
            user=user,
            password=password,
            api_port=MINIO_API_PORT,
            console_port=MINIO_CONSOLE_PORT,
            region_flag=region_flag,
            versioning=versioning,
        ),
    )
    _add_feature_notes(result, bucket, features)
    result.add_manual_step(
        f"Copy objects into MinIO, e.g. with 'mc mirror' into local/{bucket}"
    )
    result.add_manual_step(
        "Switch applications to an S3-compatible client pointed at "
        f"http://localhost:{MINIO_API_PORT}"
    )
    return result


def _add_feature_notes(
    result: MappingResult, bucket: str, features: BucketFeatures
) -> None:
    if features.storage_class:
        result.add_warning(
            f"Storage class '{features.storage_class}' has no MinIO equivalent; "
            "all objects use the same tier."
        )
    if features.versioning:
        result.add_warning(
            "Object versioning is enabled; setup_minio.sh enables it on the "
            "MinIO bucket but existing object versions are not copied."
        )
    if features.lifecycle_rules:
        result.add_script(
            "configure_lifecycle.sh",
            _lifecycle_script(bucket, features.lifecycle_rules),
        )
        result.add_warning(
            "Lifecycle rules were partially translated; review "
            "configure_lifecycle.sh before running it."
        )
    if features.cors_rules:
        path = f"config/minio/{bucket}-cors.json"
        result.add_config(path, _cors_config(features.cors_rules))
        result.add_warning(f"CORS rules were exported to {path}.")
        result.add_manual_step(f"Apply the CORS rules in {path} to local/{bucket}")
    if features.uniform_access:
        result.add_warning(
            "Uniform bucket-level access is enabled; recreate access control "
            "as MinIO bucket policies."
        )
    if features.public_access_prevented:
        result.add_warning(
            "Public access prevention is enforced; keep the MinIO bucket private."
        )
    elif features.public:
        result.add_warning("Bucket allows public reads; confirm this is intended.")
        result.add_manual_step(
            f"Allow anonymous reads: mc anonymous set download local/{bucket}"
        )
    if features.encryption:
        result.add_warning(
            "Server-side encryption with managed keys is configured; enable "
            "MinIO encryption at rest with a KMS if required."
        )
    if features.retention_days:
        result.add_warning(
            f"A {features.retention_days}-day retention policy is configured; "
            "MinIO needs object locking enabled at bucket creation for this."
        )
        result.add_manual_step(
            f"Set retention: mc retention set --default GOVERNANCE "
            f"{features.retention_days}d local/{bucket}"
        )
    if features.website:
        result.add_warning("Static website hosting must be fronted by a web server.")
    if features.logging:
        result.add_warning("Access logging is configured; enable MinIO audit logging.")
