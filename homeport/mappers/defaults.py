"""Default mapper set."""

from __future__ import annotations

from homeport.domain import catalog
from homeport.mappers.aws import RDSInstanceMapper, S3BucketMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.gcp import (
    CloudDNSZoneMapper,
    CloudFunctionMapper,
    CloudRunMapper,
    CloudSQLMapper,
    CloudSchedulerJobMapper,
    CloudStorageMapper,
    CloudTasksQueueMapper,
    ComputeInstanceMapper,
    FilestoreMapper,
    GKEClusterMapper,
    MemorystoreRedisMapper,
    PersistentDiskMapper,
    PubSubSubscriptionMapper,
    PubSubTopicMapper,
    SecretManagerMapper,
    SpannerMapper,
    VPCNetworkMapper,
)
from homeport.mappers.registry import MapperRegistry


def register_default_mappers(
    registry: MapperRegistry, credentials: CredentialGenerator | None = None
) -> MapperRegistry:
    """
    Register the built-in mappers on ``registry``.

    Args:
        registry: Registry to populate.
        credentials: Generator shared by every mapper; pass one seeded with
            ``random.Random(seed)`` for reproducible output.

    Returns:
        The same registry, for chaining.

    """
    credentials = credentials or CredentialGenerator()
    for mapper in (
        ComputeInstanceMapper(credentials),
        PersistentDiskMapper(credentials),
        GKEClusterMapper(credentials),
        CloudRunMapper(catalog.CLOUD_RUN_SERVICE, credentials),
        CloudRunMapper(catalog.CLOUD_RUN_V2_SERVICE, credentials),
        CloudFunctionMapper(catalog.CLOUD_FUNCTION, credentials),
        CloudFunctionMapper(catalog.CLOUD_FUNCTION_V2, credentials),
        CloudSchedulerJobMapper(credentials),
        CloudSQLMapper(credentials),
        MemorystoreRedisMapper(credentials),
        SpannerMapper(credentials),
        CloudStorageMapper(credentials),
        FilestoreMapper(credentials),
        PubSubTopicMapper(credentials),
        PubSubSubscriptionMapper(credentials),
        CloudTasksQueueMapper(credentials),
        SecretManagerMapper(credentials),
        VPCNetworkMapper(credentials),
        CloudDNSZoneMapper(credentials),
        RDSInstanceMapper(credentials),
        S3BucketMapper(credentials),
    ):
        registry.register(mapper)
    return registry


def create_default_mapper_registry(
    credentials: CredentialGenerator | None = None,
) -> MapperRegistry:
    """Return a new registry holding the built-in mappers."""
    return register_default_mappers(MapperRegistry(), credentials)
