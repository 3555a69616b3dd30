"""Mappers for Google Cloud resource types."""

from homeport.mappers.gcp.cloudrun import CloudRunMapper
from homeport.mappers.gcp.cloudsql import CloudSQLMapper
from homeport.mappers.gcp.cloudtasks import CloudTasksQueueMapper
from homeport.mappers.gcp.compute import ComputeInstanceMapper
from homeport.mappers.gcp.disk import PersistentDiskMapper
from homeport.mappers.gcp.dns import CloudDNSZoneMapper
from homeport.mappers.gcp.filestore import FilestoreMapper
from homeport.mappers.gcp.functions import CloudFunctionMapper
from homeport.mappers.gcp.gke import GKEClusterMapper
from homeport.mappers.gcp.memorystore import MemorystoreRedisMapper
from homeport.mappers.gcp.pubsub import PubSubSubscriptionMapper, PubSubTopicMapper
from homeport.mappers.gcp.scheduler import CloudSchedulerJobMapper
from homeport.mappers.gcp.secret_manager import SecretManagerMapper
from homeport.mappers.gcp.spanner import SpannerMapper
from homeport.mappers.gcp.storage import CloudStorageMapper
from homeport.mappers.gcp.vpc import VPCNetworkMapper

__all__ = [
    "CloudDNSZoneMapper",
    "CloudFunctionMapper",
    "CloudRunMapper",
    "CloudSQLMapper",
    "CloudSchedulerJobMapper",
    "CloudStorageMapper",
    "CloudTasksQueueMapper",
    "ComputeInstanceMapper",
    "FilestoreMapper",
    "GKEClusterMapper",
    "MemorystoreRedisMapper",
    "PersistentDiskMapper",
    "PubSubSubscriptionMapper",
    "PubSubTopicMapper",
    "SecretManagerMapper",
    "SpannerMapper",
    "VPCNetworkMapper",
]
