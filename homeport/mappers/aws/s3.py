"""S3 bucket to MinIO."""

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

_PUBLIC_ACLS = ("public-read", "public-read-write", "PublicRead", "PublicReadWrite")


def _block(value: Any) -> dict[str, Any]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def _first(data: dict[str, Any], *keys: str) -> Any:
    """Return the first present key.

    Terraform spells keys in snake case, CloudFormation in Pascal case.
    """
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _strings(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value)


def lifecycle_rules(rules: list[Any]) -> list[LifecycleRule]:
    """Read S3 lifecycle rules from Terraform blocks or CloudFormation ``Rules``."""
    parsed = []
    for rule in rules:
        if not isinstance(rule, dict):
            continue
        status = str(_first(rule, "status", "Status") or "Enabled")
        if status.lower() == "disabled" or rule.get("enabled") is False:
            continue
        expiration = _block(rule.get("expiration"))
        days = _first(expiration, "days") or _first(rule, "ExpirationInDays")
        if days:
            parsed.append(LifecycleRule(action="Expiration", age_days=int(days)))
            continue
        transition = _block(_first(rule, "transition", "Transitions", "Transition"))
        transition_days = _first(transition, "days", "TransitionInDays")
        parsed.append(
            LifecycleRule(
                action="Transition",
                age_days=int(transition_days) if transition_days else None,
                storage_class=str(
                    _first(transition, "storage_class", "StorageClass") or ""
                ),
            )
        )
    return parsed


def cors_rules(rules: list[Any]) -> list[CORSRule]:
    """Read S3 CORS rules from Terraform blocks or CloudFormation ``CorsRules``."""
    parsed = []
    for rule in rules:
        if not isinstance(rule, dict):
            continue
        max_age = _first(rule, "max_age_seconds", "MaxAge") or 0
        parsed.append(
            CORSRule(
                origins=_strings(_first(rule, "allowed_origins", "AllowedOrigins")),
                methods=_strings(_first(rule, "allowed_methods", "AllowedMethods")),
                headers=_strings(_first(rule, "allowed_headers", "AllowedHeaders")),
                max_age_seconds=int(max_age),
            )
        )
    return parsed


class S3BucketMapper(BaseMapper):
    """
    Maps ``aws_s3_bucket`` to a MinIO server.

    Understands the inline blocks of Terraform state as well as the
    CloudFormation properties (``bucket_name``, ``versioning_configuration``,
    ``lifecycle_configuration``, ``cors_configuration``).
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.S3_BUCKET, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        bucket = (
            resource.get_config_str("bucket")
            or resource.get_config_str("bucket_name")
            or resource.name
        )
        versioning = resource.get_config_bool("versioning.enabled") or (
            resource.get_config_str("versioning_configuration.Status").lower()
            == "enabled"
        )
        retention = resource.get_config_int(
            "object_lock_configuration.rule.default_retention.days"
        ) or resource.get_config_int(
            "object_lock_configuration.Rule.DefaultRetention.Days"
        )
        features = BucketFeatures(
            versioning=versioning,
            lifecycle_rules=lifecycle_rules(
                resource.get_config_list("lifecycle_rule")
                or resource.get_config_list("lifecycle_configuration.Rules")
            ),
            cors_rules=cors_rules(
                resource.get_config_list("cors_rule")
                or resource.get_config_list("cors_configuration.CorsRules")
            ),
            public=resource.get_config_str("acl") in _PUBLIC_ACLS
            or resource.get_config_str("access_control") in _PUBLIC_ACLS,
            encryption=bool(
                resource.get_config_dict("server_side_encryption_configuration")
                or resource.get_config_dict("bucket_encryption")
            ),
            retention_days=retention,
            website=bool(
                resource.get_config_dict("website")
                or resource.get_config_dict("website_configuration")
            ),
            logging=bool(
                resource.get_config_dict("logging")
                or resource.get_config_dict("logging_configuration")
            ),
        )
        return minio_result(self, resource, bucket, resource.region, features)
