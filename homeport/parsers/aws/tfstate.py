"""Terraform state parser for AWS resources."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import DEFAULT_AWS_REGION
from homeport.domain.resource import Provider
from homeport.parsers.base import ParseOptions, aws_region_from_zone
from homeport.parsers.tfstate import TerraformStateParser


def region_from_arn(arn: str) -> str | None:
    """Return the region field of an ARN (``arn:aws:svc:region:acct:res``)."""
    parts = arn.split(":")
    if len(parts) >= 6 and parts[0] == "arn" and parts[3]:
        return parts[3]
    return None


class AWSTFStateParser(TerraformStateParser):
    """Reads ``aws_*`` resources from Terraform state."""

    @property
    def provider(self) -> Provider:
        return Provider.AWS

    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        region = attributes.get("region")
        if isinstance(region, str) and region:
            return region
        zone = attributes.get("availability_zone")
        if isinstance(zone, str) and zone:
            return aws_region_from_zone(zone)
        arn = attributes.get("arn")
        if isinstance(arn, str):
            from_arn = region_from_arn(arn)
            if from_arn:
                return from_arn
        return options.default_region(DEFAULT_AWS_REGION)

    def extract_external_ref(self, attributes: dict[str, Any]) -> str | None:
        for key in ("arn", "id"):
            value = attributes.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        tags = attributes.get("tags")
        if not isinstance(tags, dict):
            return {}
        return {str(k): str(v) for k, v in tags.items()}
