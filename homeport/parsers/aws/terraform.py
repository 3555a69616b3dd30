"""Terraform source parser for AWS resources."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import DEFAULT_AWS_REGION
from homeport.domain.resource import Provider
from homeport.parsers.base import ParseOptions, aws_region_from_zone
from homeport.parsers.hcl import HCLSourceParser


class AWSTerraformParser(HCLSourceParser):
    """Reads ``resource "aws_*"`` blocks from ``.tf`` files."""

    @property
    def provider(self) -> Provider:
        return Provider.AWS

    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        zone = attributes.get("availability_zone")
        if isinstance(zone, str) and zone and "${" not in zone:
            return aws_region_from_zone(zone)
        return options.default_region(DEFAULT_AWS_REGION)

    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        tags = attributes.get("tags")
        if isinstance(tags, list) and len(tags) == 1:
            tags = tags[0]
        if not isinstance(tags, dict):
            return {}
        return {str(k): str(v) for k, v in tags.items()}
