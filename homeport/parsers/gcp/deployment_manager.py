"""
Google Cloud Deployment Manager template parser.

Resources are read straight from the YAML configuration; templates are
never expanded or evaluated. References written as ``$(ref.<name>.<field>)``
anywhere inside a resource become dependencies on ``<name>``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from homeport.core.constants import (
    GLOBAL_REGION,
    METADATA_OUTPUT_PREFIX,
    REGEX_DM_REFERENCE,
    YAML_PATTERNS,
)
from homeport.core.errors import ParseError, UnsupportedFormatError
from homeport.core.logging import LogContext
from homeport.core.path_utils import (
    iter_files,
    peek_text,
    read_text_file,
    require_files,
    resolve_input_path,
)
from homeport.domain import catalog
from homeport.domain.catalog import opaque_type
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Provider, Resource, ResourceType
from homeport.parsers.base import (
    Format,
    FormatParser,
    ParseOptions,
    gcp_region_from_zone,
)

logger = logging.getLogger(__name__)

FILE_CONFIDENCE = 0.9
DIRECTORY_CONFIDENCE = 0.85

_REFERENCE = re.compile(REGEX_DM_REFERENCE)
_GCP_MARKERS = ("compute.v1", "storage.v1", "sqladmin.v1", "$(ref.", "gcp-types/")
_TYPE_PROVIDER = re.compile(r"^gcp-types/([a-z0-9]+)-([a-z0-9]+):(.+)$")

DM_TYPE_TABLE: dict[str, ResourceType] = {
    "compute.v1.instance": catalog.GCE_INSTANCE,
    "compute.beta.instance": catalog.GCE_INSTANCE,
    "compute.v1.instancetemplate": catalog.GCE_INSTANCE_TEMPLATE,
    "compute.v1.disk": catalog.GCE_DISK,
    "compute.v1.network": catalog.VPC_NETWORK,
    "compute.v1.subnetwork": catalog.VPC_SUBNETWORK,
    "compute.v1.firewall": catalog.FIREWALL,
    "compute.v1.globaladdress": catalog.GLOBAL_ADDRESS,
    "compute.v1.router": catalog.CLOUD_ROUTER,
    "compute.v1.backendservice": catalog.BACKEND_SERVICE,
    "compute.v1.urlmap": catalog.URL_MAP,
    "compute.v1.globalforwardingrule": catalog.FORWARDING_RULE,
    "storage.v1.bucket": catalog.GCS_BUCKET,
    "sqladmin.v1beta4.instance": catalog.CLOUD_SQL_INSTANCE,
    "sqladmin.v1beta4.database": catalog.CLOUD_SQL_DATABASE,
    "pubsub.v1.topic": catalog.PUBSUB_TOPIC,
    "pubsub.v1.subscription": catalog.PUBSUB_SUBSCRIPTION,
    "container.v1.cluster": catalog.GKE_CLUSTER,
    "container.v1.nodepool": catalog.GKE_NODE_POOL,
    "dns.v1.managedzone": catalog.CLOUD_DNS_ZONE,
    "iam.v1.serviceaccount": catalog.SERVICE_ACCOUNT,
    "cloudfunctions.v1.function": catalog.CLOUD_FUNCTION,
    "redis.v1.instance": catalog.MEMORYSTORE_REDIS,
    "secretmanager.v1.secret": catalog.SECRET_MANAGER_SECRET,
    "spanner.v1.instance": catalog.SPANNER_INSTANCE,
    "cloudkms.v1.keyring": catalog.KMS_KEY_RING,
    "run.v1.service": catalog.CLOUD_RUN_SERVICE,
}

# (api fragment, exact kind or "" for any, type); first match wins
DM_TYPE_FALLBACKS: list[tuple[str, str, ResourceType]] = [
    ("sqladmin", "database", catalog.CLOUD_SQL_DATABASE),
    ("sqladmin", "", catalog.CLOUD_SQL_INSTANCE),
    ("storage", "bucket", catalog.GCS_BUCKET),
    ("pubsub", "subscription", catalog.PUBSUB_SUBSCRIPTION),
    ("pubsub", "", catalog.PUBSUB_TOPIC),
    ("redis", "", catalog.MEMORYSTORE_REDIS),
    ("container", "nodepool", catalog.GKE_NODE_POOL),
    ("container", "", catalog.GKE_CLUSTER),
    ("cloudfunctions", "", catalog.CLOUD_FUNCTION),
    ("secretmanager", "", catalog.SECRET_MANAGER_SECRET),
    ("spanner", "", catalog.SPANNER_INSTANCE),
    ("cloudkms", "", catalog.KMS_KEY_RING),
    ("dns", "", catalog.CLOUD_DNS_ZONE),
    ("iam", "serviceaccount", catalog.SERVICE_ACCOUNT),
    ("run", "service", catalog.CLOUD_RUN_SERVICE),
    ("compute", "instancetemplate", catalog.GCE_INSTANCE_TEMPLATE),
    ("compute", "instance", catalog.GCE_INSTANCE),
    ("compute", "disk", catalog.GCE_DISK),
    ("compute", "subnetwork", catalog.VPC_SUBNETWORK),
    ("compute", "network", catalog.VPC_NETWORK),
    ("compute", "firewall", catalog.FIREWALL),
]


def _normalise_dm_type(dm_type: str) -> str:
    """
    Normalise DM type spellings to ``api.version.kind`` in lower case.

    ``gcp-types/compute-v1:instances`` becomes ``compute.v1.instance``.
    """
    match = _TYPE_PROVIDER.match(dm_type)
    if match:
        api, version, collection = match.groups()
        kind = collection.rsplit(".", 1)[-1]
        if kind.endswith("s"):
            kind = kind[:-1]
        return f"{api}.{version}.{kind}".lower()
    return dm_type.lower()


def map_dm_type(dm_type: str) -> ResourceType:
    """
    Map a Deployment Manager type onto a ResourceType.

    Unknown types (including template imports) pass through as opaque types.
    """
    normalised = _normalise_dm_type(dm_type)
    if normalised in DM_TYPE_TABLE:
        return DM_TYPE_TABLE[normalised]
    api = normalised.split(".", 1)[0]
    kind = normalised.rsplit(".", 1)[-1]
    for api_fragment, kind_fragment, resource_type in DM_TYPE_FALLBACKS:
        if api_fragment in api and kind_fragment in ("", kind):
            return resource_type
    return opaque_type(dm_type, Provider.GCP)


def extract_references(value: Any) -> list[str]:
    """
    Collect ``$(ref.<name>...)`` targets from a nested value.

    Maps and lists are walked recursively; duplicates are dropped while the
    order of first appearance is kept.
    """
    found: list[str] = []

    def walk(node: Any) -> None:
        if isinstance(node, str):
            for name in _REFERENCE.findall(node):
                if name not in found:
                    found.append(name)
        elif isinstance(node, dict):
            for item in node.values():
                walk(item)
        elif isinstance(node, list):
            for item in node:
                walk(item)

    walk(value)
    return found


def looks_like_deployment_manager(content: str) -> bool:
    """Cheap textual check for a DM configuration."""
    if "resources:" not in content:
        return False
    if "type: " not in content and "properties:" not in content:
        return False
    return any(marker in content for marker in _GCP_MARKERS)


def _labels(properties: dict[str, Any]) -> dict[str, str]:
    labels = properties.get("labels")
    if isinstance(labels, dict):
        return {str(k): str(v) for k, v in labels.items()}
    if isinstance(labels, list):
        # Some APIs take labels as [{key: ..., value: ...}]
        return {
            str(item["key"]): str(item.get("value", ""))
            for item in labels
            if isinstance(item, dict) and "key" in item
        }
    return {}


class DeploymentManagerParser(FormatParser):
    """Parses Deployment Manager YAML configurations."""

    @property
    def provider(self) -> Provider:
        return Provider.GCP

    @property
    def supported_formats(self) -> list[Format]:
        return [Format.DEPLOYMENT_MANAGER]

    def validate(self, path: str) -> None:
        resolved = resolve_input_path(path)
        if resolved.is_file() and resolved.suffix.lower() not in (".yaml", ".yml"):
            raise UnsupportedFormatError(path, "Deployment Manager YAML")

    def detect_confidence(self, path: str) -> float:
        root = Path(path)
        if root.is_file():
            if root.suffix.lower() not in (".yaml", ".yml"):
                return 0.0
            if looks_like_deployment_manager(peek_text(root)):
                return FILE_CONFIDENCE
            return 0.0
        if root.is_dir():
            for file_path in iter_files(root, YAML_PATTERNS):
                if looks_like_deployment_manager(peek_text(file_path)):
                    return DIRECTORY_CONFIDENCE
        return 0.0

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Parse a DM configuration file or every DM YAML file under a directory.

        YAML files that are not DM configurations are skipped.

        Raises:
            InvalidPathError: If the path does not exist.
            NoFilesFoundError: If a directory holds no YAML files.
            ParseError: If a DM file is malformed and ignore_errors is off.

        """
        opts = options or ParseOptions()
        root = resolve_input_path(path)
        files = (
            [root]
            if root.is_file()
            else require_files(
                root, YAML_PATTERNS, opts.include_patterns, opts.exclude_patterns
            )
        )
        base_dir = root.parent if root.is_file() else root

        with LogContext(operation="parse_deployment_manager", provider="gcp"):
            infra = Infrastructure(Provider.GCP)
            for file_path in files:
                opts.check_cancelled("parse_deployment_manager")
                try:
                    content = read_text_file(file_path, opts.max_file_bytes)
                    if not looks_like_deployment_manager(content):
                        logger.debug("Skipping non-DM YAML %s", file_path)
                        opts.emit("file_skipped", str(file_path), "not a DM config")
                        continue
                    document = self._load(file_path, content)
                except ParseError as e:
                    if not opts.ignore_errors:
                        raise
                    logger.warning("Skipping unreadable template: %s", e.message)
                    opts.emit("file_skipped", str(file_path), e.message)
                    continue

                source = file_path.relative_to(base_dir).as_posix()
                count = self._parse_document(infra, document, source, opts)
                opts.emit("file_parsed", str(file_path), count=count)

            logger.info("Parsed %d resources from Deployment Manager", len(infra))
            return infra

    @staticmethod
    def _load(file_path: Path, content: str) -> dict[str, Any]:
        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ParseError(file_path, f"invalid YAML: {e}") from e
        if not isinstance(document, dict):
            raise ParseError(file_path, "configuration must be a YAML mapping")
        return document

    def _parse_document(
        self,
        infra: Infrastructure,
        document: dict[str, Any],
        source: str,
        opts: ParseOptions,
    ) -> int:
        added = 0
        for entry in document.get("resources") or []:
            if not isinstance(entry, dict):
                continue
            resource = self._convert(entry, source, opts)
            if resource is None or not opts.includes(resource.type):
                continue
            infra.add_resource(resource)
            added += 1

        for output in document.get("outputs") or []:
            if isinstance(output, dict) and output.get("name"):
                infra.metadata[f"{METADATA_OUTPUT_PREFIX}{output['name']}"] = str(
                    output.get("value", "")
                )
        imports = [
            str(item.get("path"))
            for item in document.get("imports") or []
            if isinstance(item, dict) and item.get("path")
        ]
        if imports:
            existing = infra.metadata.get("imports")
            infra.metadata["imports"] = ",".join(
                filter(None, [existing, *imports])
            )
        return added

    @staticmethod
    def _convert(
        entry: dict[str, Any], source: str, opts: ParseOptions
    ) -> Resource | None:
        name = entry.get("name")
        dm_type = entry.get("type")
        if not isinstance(name, str) or not name or not isinstance(dm_type, str):
            logger.warning("Skipping DM resource without name or type in %s", source)
            return None

        properties = entry.get("properties")
        properties = dict(properties) if isinstance(properties, dict) else {}

        region = properties.get("region")
        if not isinstance(region, str) or not region:
            zone = properties.get("zone")
            region = (
                gcp_region_from_zone(zone)
                if isinstance(zone, str) and zone
                else opts.default_region(GLOBAL_REGION)
            )

        resource = Resource(
            id=name,
            name=str(properties.get("name") or name),
            type=map_dm_type(dm_type),
            region=region,
            config={**properties, "dm_type": dm_type, "source_file": source},
            tags=_labels(properties),
        )
        for reference in extract_references(entry):
            resource.add_dependency(reference)
        metadata = entry.get("metadata")
        if isinstance(metadata, dict):
            depends_on = metadata.get("dependsOn") or []
            if isinstance(depends_on, str):
                depends_on = [depends_on]
            if isinstance(depends_on, list):
                for dep in depends_on:
                    if isinstance(dep, str) and dep:
                        resource.add_dependency(dep)
        return resource
