"""Terraform source parser for Google Cloud resources."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import GLOBAL_REGION
from homeport.domain.resource import Provider
from homeport.parsers.base import ParseOptions, gcp_region_from_zone
from homeport.parsers.hcl import HCLSourceParser


class GCPTerraformParser(HCLSourceParser):
    """Reads ``resource "google_*"`` blocks from ``.tf`` files."""

    @property
    def provider(self) -> Provider:
        return Provider.GCP

    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        for key in ("region", "zone", "location"):
            value = attributes.get(key)
            # Unresolved expressions cannot name a region
            if isinstance(value, str) and value and "${" not in value:
                return value if key == "region" else gcp_region_from_zone(value)
        return options.default_region(GLOBAL_REGION)

    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        labels = attributes.get("labels")
        if isinstance(labels, list) and len(labels) == 1:
            labels = labels[0]
        if not isinstance(labels, dict):
            return {}
        return {str(k): str(v) for k, v in labels.items()}
