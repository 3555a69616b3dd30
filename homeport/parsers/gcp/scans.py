"""
Category scans for live Google Cloud discovery.

Each scan lists one family of services and translates the raw API payloads
into Resources. Config keys follow the Terraform provider's attribute names
(``machine_type``, ``settings.tier``...) so mappers read the same shape no
matter how a resource was discovered.

Resource IDs are relative resource names (``projects/p/zones/z/instances/vm``);
references between resources use the same form, so the dependency graph
lines up without a lookup table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from homeport.core.cancellation import CancellationToken
from homeport.core.constants import GLOBAL_REGION, REDACTED_VALUE
from homeport.domain import catalog
from homeport.domain.resource import Resource, ResourceType
from homeport.parsers.base import (
    ParseOptions,
    gcp_region_from_zone,
    last_segment,
    parse_timestamp,
)
from homeport.parsers.gcp.client import GCPClient

logger = logging.getLogger(__name__)


@dataclass
class ScanContext:
    """Everything a scan needs; one instance is shared by all scans of a parse."""

    client: GCPClient
    project_id: str
    regions: list[str]
    options: ParseOptions
    cancel_token: CancellationToken

    def wants(self, resource_type: ResourceType) -> bool:
        """True if resources of this type pass the caller's filters."""
        return self.options.includes(resource_type)

    def check(self, operation: str) -> None:
        """Raise OperationCancelledError if the parse was cancelled."""
        self.cancel_token.raise_if_cancelled(operation)

    def list(self, service: str, region: str | None = None) -> list[dict[str, Any]]:
        """List raw items, observing cancellation."""
        self.check(f"list {service}")
        return self.client.list(service, region=region, cancel_token=self.cancel_token)

    def network_id(self, network: str) -> str:
        """Normalise a network name or link into a network resource ID."""
        if "/" in network:
            return relative_name(network)
        return f"projects/{self.project_id}/global/networks/{network}"


@dataclass(frozen=True)
class CategoryScan:
    """A named scan and the resource types it can produce."""

    name: str
    resource_types: tuple[ResourceType, ...]
    run: Callable[[ScanContext], list[Resource]] = field(compare=False)


def relative_name(link: str) -> str:
    """
    Reduce a self link to its relative resource name.

    ``https://www.googleapis.com/compute/v1/projects/p/global/networks/n``
    becomes ``projects/p/global/networks/n``.
    """
    if not link:
        return link
    index = link.find("projects/")
    return link[index:] if index >= 0 else link


def _labels(item: dict[str, Any]) -> dict[str, str]:
    labels = item.get("labels")
    if not isinstance(labels, dict):
        return {}
    return {str(k): str(v) for k, v in labels.items()}


def _env_entries(env: Any, include_sensitive: bool) -> list[dict[str, str]]:
    """Environment variables, keeping only names unless sensitive output is on."""
    entries = []
    for item in env or []:
        if not isinstance(item, dict) or "name" not in item:
            continue
        entry = {"name": str(item["name"])}
        if "value" in item:
            entry["value"] = str(item["value"]) if include_sensitive else REDACTED_VALUE
        entries.append(entry)
    return entries


def _redact_map(values: Any, include_sensitive: bool) -> dict[str, str]:
    if not isinstance(values, dict):
        return {}
    if include_sensitive:
        return {str(k): str(v) for k, v in values.items()}
    return dict.fromkeys((str(k) for k in values), REDACTED_VALUE)


# Compute


def instance_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource | None:
    """Translate a Compute Engine instance; terminated instances are skipped."""
    if item.get("status") == "TERMINATED":
        return None

    zone = last_segment(item.get("zone", ""))
    interfaces = []
    dependencies = []
    for nic in item.get("networkInterfaces") or []:
        access = [
            {"nat_ip": ac.get("natIP", "")} for ac in nic.get("accessConfigs") or []
        ]
        interfaces.append(
            {
                "network": last_segment(nic.get("network", "")),
                "subnetwork": last_segment(nic.get("subnetwork", "")),
                "network_ip": nic.get("networkIP", ""),
                "access_config": access,
            }
        )
        if nic.get("network"):
            dependencies.append(relative_name(nic["network"]))
        if nic.get("subnetwork"):
            dependencies.append(relative_name(nic["subnetwork"]))

    boot_disk: list[dict[str, Any]] = []
    attached: list[dict[str, Any]] = []
    for disk in item.get("disks") or []:
        licenses = [last_segment(lic) for lic in disk.get("licenses") or []]
        entry = {
            "device_name": disk.get("deviceName", ""),
            "source": last_segment(disk.get("source", "")),
            "initialize_params": [
                {
                    "image": licenses[0] if licenses else "",
                    "size": disk.get("diskSizeGb"),
                }
            ],
        }
        (boot_disk if disk.get("boot") else attached).append(entry)
        if disk.get("source"):
            dependencies.append(relative_name(disk["source"]))

    metadata_items = {
        str(entry.get("key")): entry.get("value", "")
        for entry in (item.get("metadata") or {}).get("items") or []
        if isinstance(entry, dict) and entry.get("key")
    }

    service_accounts = item.get("serviceAccounts") or []
    config = {
        "name": item.get("name", ""),
        "machine_type": last_segment(item.get("machineType", "")),
        "zone": zone,
        "status": item.get("status", ""),
        "network_interface": interfaces,
        "boot_disk": boot_disk,
        "attached_disk": attached,
        "metadata": _redact_map(metadata_items, ctx.options.include_sensitive),
        "tags": list((item.get("tags") or {}).get("items") or []),
        "can_ip_forward": bool(item.get("canIpForward", False)),
        "service_account": [
            {"email": sa.get("email", ""), "scopes": sa.get("scopes", [])}
            for sa in service_accounts
        ],
    }
    return Resource(
        id=relative_name(item.get("selfLink", "")) or item.get("name", ""),
        name=item.get("name", ""),
        type=catalog.GCE_INSTANCE,
        region=gcp_region_from_zone(zone) if zone else GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config=config,
        tags=_labels(item),
        dependencies=dependencies,
        created_at=parse_timestamp(item.get("creationTimestamp")),
    )


def disk_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a persistent disk."""
    zone = last_segment(item.get("zone", ""))
    return Resource(
        id=relative_name(item.get("selfLink", "")) or item.get("name", ""),
        name=item.get("name", ""),
        type=catalog.GCE_DISK,
        region=gcp_region_from_zone(zone) if zone else GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config={
            "name": item.get("name", ""),
            "zone": zone,
            "size": item.get("sizeGb"),
            "type": last_segment(item.get("type", "")),
            "image": last_segment(item.get("sourceImage", "")),
            "status": item.get("status", ""),
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("creationTimestamp")),
    )


def scan_compute(ctx: ScanContext) -> list[Resource]:
    """Compute Engine instances and persistent disks."""
    resources: list[Resource] = []
    if ctx.wants(catalog.GCE_INSTANCE):
        for item in ctx.list("compute.instances"):
            resource = instance_to_resource(item, ctx)
            if resource is not None:
                resources.append(resource)
    if ctx.wants(catalog.GCE_DISK):
        resources.extend(disk_to_resource(i, ctx) for i in ctx.list("compute.disks"))
    return resources


def cluster_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a GKE cluster."""
    location = item.get("location", "")
    dependencies = []
    if item.get("network"):
        dependencies.append(ctx.network_id(item["network"]))
    node_config = item.get("nodeConfig") or {}
    name = item.get("name", "")
    return Resource(
        id=f"projects/{ctx.project_id}/locations/{location}/clusters/{name}",
        name=name,
        type=catalog.GKE_CLUSTER,
        region=gcp_region_from_zone(location) if location else GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config={
            "name": item.get("name", ""),
            "location": location,
            "initial_node_count": item.get("currentNodeCount", 0),
            "min_master_version": item.get("currentMasterVersion", ""),
            "network": item.get("network", ""),
            "subnetwork": item.get("subnetwork", ""),
            "node_config": [{"machine_type": node_config.get("machineType", "")}],
            "node_pools": [p.get("name", "") for p in item.get("nodePools") or []],
            "status": item.get("status", ""),
        },
        tags=_labels({"labels": item.get("resourceLabels")}),
        dependencies=dependencies,
        created_at=parse_timestamp(item.get("createTime")),
    )


def scan_containers(ctx: ScanContext) -> list[Resource]:
    """GKE clusters."""
    return [cluster_to_resource(i, ctx) for i in ctx.list("container.clusters")]


# Serverless


def _cpu_memory(limits: Any) -> dict[str, str]:
    if not isinstance(limits, dict):
        return {}
    return {k: str(v) for k, v in limits.items() if k in ("cpu", "memory")}


def run_service_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud Run (v2 API) service."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    template = item.get("template") or {}
    containers = []
    for container in template.get("containers") or []:
        limits = (container.get("resources") or {}).get("limits")
        containers.append(
            {
                "image": container.get("image", ""),
                "command": container.get("command", []),
                "args": container.get("args", []),
                "ports": [
                    {"container_port": p.get("containerPort")}
                    for p in container.get("ports") or []
                ],
                "env": _env_entries(
                    container.get("env"), ctx.options.include_sensitive
                ),
                "resources": [{"limits": _cpu_memory(limits)}],
            }
        )
    scaling = template.get("scaling") or {}
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.CLOUD_RUN_V2_SERVICE,
        region=location or GLOBAL_REGION,
        external_ref=item.get("uri"),
        config={
            "name": last_segment(full_name),
            "location": location,
            "uri": item.get("uri", ""),
            "ingress": item.get("ingress", ""),
            "template": [
                {
                    "containers": containers,
                    "scaling": [
                        {
                            "min_instance_count": scaling.get("minInstanceCount", 0),
                            "max_instance_count": scaling.get("maxInstanceCount", 0),
                        }
                    ],
                    "service_account": template.get("serviceAccount", ""),
                }
            ],
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("createTime")),
    )


def function_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud Functions (v2 API) function."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    build = item.get("buildConfig") or {}
    service = item.get("serviceConfig") or {}
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.CLOUD_FUNCTION_V2,
        region=location or GLOBAL_REGION,
        external_ref=service.get("uri") or full_name,
        config={
            "name": last_segment(full_name),
            "location": location,
            "state": item.get("state", ""),
            "build_config": [
                {
                    "runtime": build.get("runtime", ""),
                    "entry_point": build.get("entryPoint", ""),
                }
            ],
            "service_config": [
                {
                    "available_memory": service.get("availableMemory", ""),
                    "timeout_seconds": service.get("timeoutSeconds", 0),
                    "max_instance_count": service.get("maxInstanceCount", 0),
                    "environment_variables": _redact_map(
                        service.get("environmentVariables"),
                        ctx.options.include_sensitive,
                    ),
                }
            ],
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("updateTime")),
    )


def scan_serverless(ctx: ScanContext) -> list[Resource]:
    """Cloud Run services (per region) and Cloud Functions."""
    resources: list[Resource] = []
    if ctx.wants(catalog.CLOUD_RUN_V2_SERVICE):
        for region in ctx.regions:
            items = ctx.list("run.services", region)
            resources.extend(run_service_to_resource(i, ctx) for i in items)
    if ctx.wants(catalog.CLOUD_FUNCTION_V2):
        resources.extend(
            function_to_resource(i, ctx) for i in ctx.list("cloudfunctions.functions")
        )
    return resources


# Storage


def bucket_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud Storage bucket."""
    name = item.get("name", "")
    iam = item.get("iamConfiguration") or {}
    lifecycle = (item.get("lifecycle") or {}).get("rule") or []
    retention = item.get("retentionPolicy")
    encryption = item.get("encryption")
    return Resource(
        id=f"projects/{ctx.project_id}/buckets/{name}",
        name=name,
        type=catalog.GCS_BUCKET,
        region=str(item.get("location", GLOBAL_REGION)).lower(),
        external_ref=item.get("selfLink"),
        config={
            "name": name,
            "location": item.get("location", ""),
            "storage_class": item.get("storageClass", ""),
            "versioning": [
                {"enabled": bool((item.get("versioning") or {}).get("enabled"))}
            ],
            "lifecycle_rule": lifecycle,
            "cors": item.get("cors") or [],
            "uniform_bucket_level_access": bool(
                (iam.get("uniformBucketLevelAccess") or {}).get("enabled")
            ),
            "retention_policy": (
                [{"retention_period": retention.get("retentionPeriod")}]
                if retention
                else []
            ),
            "encryption": (
                [{"default_kms_key_name": encryption.get("defaultKmsKeyName", "")}]
                if encryption
                else []
            ),
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("timeCreated")),
    )


def filestore_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Filestore instance."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    networks = item.get("networks") or []
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.FILESTORE_INSTANCE,
        region=gcp_region_from_zone(location) if location else GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "location": location,
            "tier": item.get("tier", ""),
            "file_shares": [
                {"name": s.get("name", ""), "capacity_gb": s.get("capacityGb")}
                for s in item.get("fileShares") or []
            ],
            "networks": [{"network": n.get("network", "")} for n in networks],
        },
        tags=_labels(item),
        dependencies=[
            ctx.network_id(n["network"]) for n in networks if n.get("network")
        ],
        created_at=parse_timestamp(item.get("createTime")),
    )


def scan_storage(ctx: ScanContext) -> list[Resource]:
    """Cloud Storage buckets and Filestore instances."""
    resources: list[Resource] = []
    if ctx.wants(catalog.GCS_BUCKET):
        buckets = ctx.list("storage.buckets")
        resources.extend(bucket_to_resource(i, ctx) for i in buckets)
    if ctx.wants(catalog.FILESTORE_INSTANCE):
        resources.extend(
            filestore_to_resource(i, ctx) for i in ctx.list("file.instances")
        )
    return resources


# Database


def sql_instance_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud SQL instance into Terraform-shaped settings."""
    name = item.get("name", "")
    settings = item.get("settings") or {}
    ip_config = settings.get("ipConfiguration") or {}
    backup = settings.get("backupConfiguration") or {}
    private_network = ip_config.get("privateNetwork", "")
    return Resource(
        id=f"projects/{ctx.project_id}/instances/{name}",
        name=name,
        type=catalog.CLOUD_SQL_INSTANCE,
        region=item.get("region", GLOBAL_REGION),
        external_ref=item.get("selfLink"),
        config={
            "name": name,
            "database_version": item.get("databaseVersion", ""),
            "region": item.get("region", ""),
            "connection_name": item.get("connectionName", ""),
            "state": item.get("state", ""),
            "replica_names": item.get("replicaNames", []),
            "settings": [
                {
                    "tier": settings.get("tier", ""),
                    "disk_size": settings.get("dataDiskSizeGb"),
                    "availability_type": settings.get("availabilityType", ""),
                    "backup_configuration": [
                        {
                            "enabled": bool(backup.get("enabled")),
                            "point_in_time_recovery_enabled": bool(
                                backup.get("pointInTimeRecoveryEnabled")
                            ),
                        }
                    ],
                    "ip_configuration": [
                        {
                            "ipv4_enabled": bool(ip_config.get("ipv4Enabled")),
                            "private_network": private_network,
                        }
                    ],
                    "user_labels": settings.get("userLabels") or {},
                }
            ],
        },
        tags=_labels({"labels": settings.get("userLabels")}),
        dependencies=[relative_name(private_network)] if private_network else [],
        created_at=parse_timestamp(item.get("createTime")),
    )


def redis_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Memorystore for Redis instance."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    network = item.get("authorizedNetwork", "")
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.MEMORYSTORE_REDIS,
        region=location or GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "region": location,
            "tier": item.get("tier", ""),
            "memory_size_gb": item.get("memorySizeGb", 1),
            "redis_version": item.get("redisVersion", ""),
            "authorized_network": network,
            "auth_enabled": bool(item.get("authEnabled")),
            "transit_encryption_mode": item.get("transitEncryptionMode", ""),
            "redis_configs": item.get("redisConfigs") or {},
            "host": item.get("host", ""),
            "port": item.get("port", 6379),
        },
        tags=_labels(item),
        dependencies=[ctx.network_id(network)] if network else [],
        created_at=parse_timestamp(item.get("createTime")),
    )


def spanner_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Spanner instance."""
    full_name = item.get("name", "")
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.SPANNER_INSTANCE,
        region=last_segment(item.get("config", "")) or GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "config": last_segment(item.get("config", "")),
            "display_name": item.get("displayName", ""),
            "num_nodes": item.get("nodeCount", 0),
            "processing_units": item.get("processingUnits", 0),
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("createTime")),
    )


def firestore_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Firestore database."""
    full_name = item.get("name", "")
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.FIRESTORE_DATABASE,
        region=item.get("locationId", GLOBAL_REGION),
        config={
            "name": last_segment(full_name),
            "location_id": item.get("locationId", ""),
            "type": item.get("type", ""),
            "concurrency_mode": item.get("concurrencyMode", ""),
        },
    )


def scan_database(ctx: ScanContext) -> list[Resource]:
    """Cloud SQL, Memorystore, Spanner and Firestore."""
    resources: list[Resource] = []
    if ctx.wants(catalog.CLOUD_SQL_INSTANCE):
        resources.extend(
            sql_instance_to_resource(i, ctx) for i in ctx.list("sqladmin.instances")
        )
    if ctx.wants(catalog.MEMORYSTORE_REDIS):
        resources.extend(redis_to_resource(i, ctx) for i in ctx.list("redis.instances"))
    if ctx.wants(catalog.SPANNER_INSTANCE):
        resources.extend(
            spanner_to_resource(i, ctx) for i in ctx.list("spanner.instances")
        )
    if ctx.wants(catalog.FIRESTORE_DATABASE):
        resources.extend(
            firestore_to_resource(i, ctx) for i in ctx.list("firestore.databases")
        )
    return resources


# Messaging


def topic_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Pub/Sub topic."""
    full_name = item.get("name", "")
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.PUBSUB_TOPIC,
        region=GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "kms_key_name": item.get("kmsKeyName", ""),
            "message_retention_duration": item.get("messageRetentionDuration", ""),
            "message_storage_policy": item.get("messageStoragePolicy") or {},
        },
        tags=_labels(item),
    )


def subscription_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Pub/Sub subscription; it depends on its topic."""
    full_name = item.get("name", "")
    topic = item.get("topic", "")
    dead_letter = item.get("deadLetterPolicy") or {}
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.PUBSUB_SUBSCRIPTION,
        region=GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "topic": topic,
            "ack_deadline_seconds": item.get("ackDeadlineSeconds", 10),
            "enable_message_ordering": bool(item.get("enableMessageOrdering")),
            "push_config": (
                [{"push_endpoint": item["pushConfig"].get("pushEndpoint", "")}]
                if (item.get("pushConfig") or {}).get("pushEndpoint")
                else []
            ),
            "dead_letter_policy": (
                [{"dead_letter_topic": dead_letter.get("deadLetterTopic", "")}]
                if dead_letter
                else []
            ),
        },
        tags=_labels(item),
        dependencies=[topic] if topic and topic != "_deleted-topic_" else [],
    )


def queue_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud Tasks queue."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.CLOUD_TASKS_QUEUE,
        region=location or GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "location": location,
            "state": item.get("state", ""),
            "rate_limits": [item.get("rateLimits") or {}],
            "retry_config": [item.get("retryConfig") or {}],
        },
    )


def scan_messaging(ctx: ScanContext) -> list[Resource]:
    """Pub/Sub topics and subscriptions, and Cloud Tasks queues per region."""
    resources: list[Resource] = []
    if ctx.wants(catalog.PUBSUB_TOPIC):
        resources.extend(topic_to_resource(i, ctx) for i in ctx.list("pubsub.topics"))
    if ctx.wants(catalog.PUBSUB_SUBSCRIPTION):
        resources.extend(
            subscription_to_resource(i, ctx) for i in ctx.list("pubsub.subscriptions")
        )
    if ctx.wants(catalog.CLOUD_TASKS_QUEUE):
        for region in ctx.regions:
            resources.extend(
                queue_to_resource(i, ctx) for i in ctx.list("cloudtasks.queues", region)
            )
    return resources


# Networking


def network_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a VPC network."""
    return Resource(
        id=relative_name(item.get("selfLink", ""))
        or ctx.network_id(item.get("name", "")),
        name=item.get("name", ""),
        type=catalog.VPC_NETWORK,
        region=GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config={
            "name": item.get("name", ""),
            "auto_create_subnetworks": bool(item.get("autoCreateSubnetworks")),
            "routing_mode": (item.get("routingConfig") or {}).get("routingMode", ""),
            "mtu": item.get("mtu", 0),
            "subnetworks": [last_segment(s) for s in item.get("subnetworks") or []],
        },
        created_at=parse_timestamp(item.get("creationTimestamp")),
    )


def subnetwork_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a subnetwork; it depends on its network."""
    network = item.get("network", "")
    return Resource(
        id=relative_name(item.get("selfLink", "")) or item.get("name", ""),
        name=item.get("name", ""),
        type=catalog.VPC_SUBNETWORK,
        region=last_segment(item.get("region", "")) or GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config={
            "name": item.get("name", ""),
            "ip_cidr_range": item.get("ipCidrRange", ""),
            "network": last_segment(network),
            "private_ip_google_access": bool(item.get("privateIpGoogleAccess")),
        },
        dependencies=[relative_name(network)] if network else [],
        created_at=parse_timestamp(item.get("creationTimestamp")),
    )


def firewall_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a firewall rule; it depends on its network."""
    network = item.get("network", "")
    return Resource(
        id=relative_name(item.get("selfLink", "")) or item.get("name", ""),
        name=item.get("name", ""),
        type=catalog.FIREWALL,
        region=GLOBAL_REGION,
        external_ref=item.get("selfLink"),
        config={
            "name": item.get("name", ""),
            "network": last_segment(network),
            "direction": item.get("direction", ""),
            "priority": item.get("priority", 1000),
            "allow": [
                {"protocol": a.get("IPProtocol", ""), "ports": a.get("ports", [])}
                for a in item.get("allowed") or []
            ],
            "deny": [
                {"protocol": d.get("IPProtocol", ""), "ports": d.get("ports", [])}
                for d in item.get("denied") or []
            ],
            "source_ranges": item.get("sourceRanges", []),
            "target_tags": item.get("targetTags", []),
        },
        dependencies=[relative_name(network)] if network else [],
        created_at=parse_timestamp(item.get("creationTimestamp")),
    )


def dns_zone_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud DNS managed zone."""
    name = item.get("name", "")
    return Resource(
        id=f"projects/{ctx.project_id}/managedZones/{name}",
        name=name,
        type=catalog.CLOUD_DNS_ZONE,
        region=GLOBAL_REGION,
        config={
            "name": name,
            "dns_name": item.get("dnsName", ""),
            "visibility": item.get("visibility", ""),
            "description": item.get("description", ""),
        },
        tags=_labels(item),
        created_at=parse_timestamp(item.get("creationTime")),
    )


def scan_networking(ctx: ScanContext) -> list[Resource]:
    """VPC networks, subnetworks, firewall rules and DNS zones."""
    resources: list[Resource] = []
    if ctx.wants(catalog.VPC_NETWORK):
        resources.extend(
            network_to_resource(i, ctx) for i in ctx.list("compute.networks")
        )
    if ctx.wants(catalog.VPC_SUBNETWORK):
        resources.extend(
            subnetwork_to_resource(i, ctx) for i in ctx.list("compute.subnetworks")
        )
    if ctx.wants(catalog.FIREWALL):
        resources.extend(
            firewall_to_resource(i, ctx) for i in ctx.list("compute.firewalls")
        )
    if ctx.wants(catalog.CLOUD_DNS_ZONE):
        resources.extend(
            dns_zone_to_resource(i, ctx) for i in ctx.list("dns.managedZones")
        )
    return resources


# Security


def secret_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """
    Translate a Secret Manager secret.

    Secret payloads are never fetched; only the name and metadata are kept.
    """
    full_name = item.get("name", "")
    replication = item.get("replication") or {}
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.SECRET_MANAGER_SECRET,
        region=GLOBAL_REGION,
        config={
            "secret_id": last_segment(full_name),
            "replication": [
                "automatic" if "automatic" in replication else "user_managed"
            ],
            "version_aliases": sorted((item.get("versionAliases") or {}).keys()),
        },
        tags=_redact_map(item.get("labels"), ctx.options.include_sensitive),
        created_at=parse_timestamp(item.get("createTime")),
    )


def key_ring_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud KMS key ring."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.KMS_KEY_RING,
        region=location or GLOBAL_REGION,
        config={"name": last_segment(full_name), "location": location},
        created_at=parse_timestamp(item.get("createTime")),
    )


def scan_security(ctx: ScanContext) -> list[Resource]:
    """Secret Manager secrets and KMS key rings per region."""
    resources: list[Resource] = []
    if ctx.wants(catalog.SECRET_MANAGER_SECRET):
        resources.extend(
            secret_to_resource(i, ctx) for i in ctx.list("secretmanager.secrets")
        )
    if ctx.wants(catalog.KMS_KEY_RING):
        for region in ctx.regions:
            rings = ctx.list("cloudkms.keyRings", region)
            resources.extend(key_ring_to_resource(i, ctx) for i in rings)
    return resources


# Identity


def service_account_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate an IAM service account."""
    email = item.get("email", "")
    return Resource(
        id=item.get("name", "") or f"projects/{ctx.project_id}/serviceAccounts/{email}",
        name=email.split("@", 1)[0] if email else item.get("displayName", ""),
        type=catalog.SERVICE_ACCOUNT,
        region=GLOBAL_REGION,
        config={
            "account_id": email.split("@", 1)[0],
            "email": email,
            "display_name": item.get("displayName", ""),
            "description": item.get("description", ""),
            "disabled": bool(item.get("disabled")),
        },
    )


def scan_identity(ctx: ScanContext) -> list[Resource]:
    """IAM service accounts."""
    return [
        service_account_to_resource(i, ctx) for i in ctx.list("iam.serviceAccounts")
    ]


# Scheduling


def scheduler_job_to_resource(item: dict[str, Any], ctx: ScanContext) -> Resource:
    """Translate a Cloud Scheduler job; Pub/Sub targets become dependencies."""
    full_name = item.get("name", "")
    parts = full_name.split("/")
    location = parts[3] if len(parts) > 3 else ""
    http_target = item.get("httpTarget") or {}
    pubsub_target = item.get("pubsubTarget") or {}
    topic = pubsub_target.get("topicName", "")
    return Resource(
        id=full_name,
        name=last_segment(full_name),
        type=catalog.CLOUD_SCHEDULER_JOB,
        region=location or GLOBAL_REGION,
        config={
            "name": last_segment(full_name),
            "schedule": item.get("schedule", ""),
            "time_zone": item.get("timeZone", "UTC"),
            "state": item.get("state", ""),
            "http_target": (
                [
                    {
                        "uri": http_target.get("uri", ""),
                        "http_method": http_target.get("httpMethod", "POST"),
                    }
                ]
                if http_target
                else []
            ),
            "pubsub_target": [{"topic_name": topic}] if topic else [],
        },
        dependencies=[topic] if topic else [],
    )


def scan_scheduling(ctx: ScanContext) -> list[Resource]:
    """Cloud Scheduler jobs per region."""
    resources: list[Resource] = []
    for region in ctx.regions:
        resources.extend(
            scheduler_job_to_resource(i, ctx)
            for i in ctx.list("cloudscheduler.jobs", region)
        )
    return resources


DEFAULT_SCANS: tuple[CategoryScan, ...] = (
    CategoryScan("compute", (catalog.GCE_INSTANCE, catalog.GCE_DISK), scan_compute),
    CategoryScan("containers", (catalog.GKE_CLUSTER,), scan_containers),
    CategoryScan(
        "serverless",
        (catalog.CLOUD_RUN_V2_SERVICE, catalog.CLOUD_FUNCTION_V2),
        scan_serverless,
    ),
    CategoryScan(
        "storage", (catalog.GCS_BUCKET, catalog.FILESTORE_INSTANCE), scan_storage
    ),
    CategoryScan(
        "database",
        (
            catalog.CLOUD_SQL_INSTANCE,
            catalog.MEMORYSTORE_REDIS,
            catalog.SPANNER_INSTANCE,
            catalog.FIRESTORE_DATABASE,
        ),
        scan_database,
    ),
    CategoryScan(
        "messaging",
        (catalog.PUBSUB_TOPIC, catalog.PUBSUB_SUBSCRIPTION, catalog.CLOUD_TASKS_QUEUE),
        scan_messaging,
    ),
    CategoryScan(
        "networking",
        (
            catalog.VPC_NETWORK,
            catalog.VPC_SUBNETWORK,
            catalog.FIREWALL,
            catalog.CLOUD_DNS_ZONE,
        ),
        scan_networking,
    ),
    CategoryScan(
        "security",
        (catalog.SECRET_MANAGER_SECRET, catalog.KMS_KEY_RING),
        scan_security,
    ),
    CategoryScan("identity", (catalog.SERVICE_ACCOUNT,), scan_identity),
    CategoryScan("scheduling", (catalog.CLOUD_SCHEDULER_JOB,), scan_scheduling),
)
