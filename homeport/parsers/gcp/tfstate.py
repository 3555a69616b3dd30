"""Terraform state parser for Google Cloud resources."""

from __future__ import annotations

from typing import Any

from homeport.core.constants import GLOBAL_REGION
from homeport.domain.resource import Provider
from homeport.parsers.base import ParseOptions, gcp_region_from_zone
from homeport.parsers.tfstate import TerraformStateParser


class GCPTFStateParser(TerraformStateParser):
    """Reads ``google_*`` resources from Terraform state."""

    @property
    def provider(self) -> Provider:
        return Provider.GCP

    def extract_name(self, attributes: dict[str, Any], fallback: str) -> str:
        name = attributes.get("name")
        if isinstance(name, str) and name:
            return name
        labels = attributes.get("labels")
        if isinstance(labels, dict) and isinstance(labels.get("name"), str):
            return labels["name"]
        return fallback

    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        for key in ("region", "zone", "location"):
            value = attributes.get(key)
            if isinstance(value, str) and value:
                return gcp_region_from_zone(value) if key != "region" else value
        return options.default_region(GLOBAL_REGION)

    def extract_external_ref(self, attributes: dict[str, Any]) -> str | None:
        for key in ("self_link", "id"):
            value = attributes.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        labels = attributes.get("labels")
        if not isinstance(labels, dict):
            return {}
        return {str(k): str(v) for k, v in labels.items()}

    def extract_created_at(self, attributes: dict[str, Any]) -> Any:
        return attributes.get("creation_timestamp") or attributes.get("create_time")
