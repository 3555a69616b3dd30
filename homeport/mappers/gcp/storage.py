"""Cloud Storage bucket to MinIO."""

from __future__ import annotations

from typing import Any

from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.object_storage import (
    BucketFeatures,
    CORSRule,
    LifecycleRule,
    minio_result,
)
from homeport.mappers.result import MappingResult

_SECONDS_PER_DAY = 86400


def _block(value: Any) -> dict[str, Any]:
    """Unwrap a nested block that may be a dict or a one-element list."""
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value)


def lifecycle_rules(rules: list[Any]) -> list[LifecycleRule]:
    """Read lifecycle rules in either the REST or the Terraform shape."""
    parsed = []
    for rule in rules:
        if not isinstance(rule, dict):
            continue
        action = _block(rule.get("action"))
        condition = _block(rule.get("condition"))
        age = condition.get("age")
        if not isinstance(age, (int, float)) or age <= 0:
            age = None
        parsed.append(
            LifecycleRule(
                action=str(action.get("type") or "Unknown"),
                age_days=int(age) if age is not None else None,
                storage_class=str(
                    action.get("storage_class") or action.get("storageClass") or ""
                ),
            )
        )
    return parsed


def cors_rules(rules: list[Any]) -> list[CORSRule]:
    """Read CORS entries in either the REST or the Terraform shape."""
    parsed = []
    for rule in rules:
        if not isinstance(rule, dict):
            continue
        max_age = rule.get("max_age_seconds", rule.get("maxAgeSeconds")) or 0
        parsed.append(
            CORSRule(
                origins=_strings(rule.get("origin")),
                methods=_strings(rule.get("method")),
                headers=_strings(
                    rule.get("response_header", rule.get("responseHeader"))
                ),
                max_age_seconds=int(max_age),
            )
        )
    return parsed


class CloudStorageMapper(BaseMapper):
    """Maps ``google_storage_bucket`` to a MinIO server."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.GCS_BUCKET, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        bucket = resource.get_config_str("name") or resource.name
        storage_class = resource.get_config_str("storage_class").upper()
        retention_seconds = resource.get_config_int("retention_policy.retention_period")

        features = BucketFeatures(
            storage_class="" if storage_class in ("", "STANDARD") else storage_class,
            versioning=resource.get_config_bool("versioning.enabled"),
            lifecycle_rules=lifecycle_rules(resource.get_config_list("lifecycle_rule")),
            cors_rules=cors_rules(resource.get_config_list("cors")),
            uniform_access=resource.get_config_bool("uniform_bucket_level_access"),
            public_access_prevented=(
                resource.get_config_str("public_access_prevention").lower()
                == "enforced"
            ),
            encryption=bool(resource.get_config_str("encryption.default_kms_key_name")),
            retention_days=(
                max(1, retention_seconds // _SECONDS_PER_DAY)
                if retention_seconds
                else 0
            ),
            website=bool(resource.get_config_dict("website")),
            logging=bool(resource.get_config_dict("logging")),
        )
        region = resource.get_config_str("location").lower() or resource.region
        return minio_result(self, resource, bucket, region, features)
