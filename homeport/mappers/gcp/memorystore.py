"""Memorystore for Redis instance to a password-protected Redis container."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import (
    ENGINE_DATA_DIRS,
    ENGINE_PORTS,
    health_check,
    image_for,
    parse_redis_version,
)

_REDIS_CONF = """# Generated for Memorystore instance {name}
bind 0.0.0.0
port 6379
requirepass {password}
maxmemory {maxmemory}
maxmemory-policy {policy}
appendonly yes
appendfsync everysec
"""


class MemorystoreRedisMapper(BaseMapper):
    """Maps ``google_redis_instance`` to a Redis container."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.MEMORYSTORE_REDIS, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        version = parse_redis_version(resource.get_config_str("redis_version"))
        result = self.new_result(resource, name, image_for("redis", version))
        svc = result.service
        assert svc is not None

        password = self.credentials.password()
        memory_gb = resource.get_config_int("memory_size_gb", 1) or 1
        maxmemory = f"{memory_gb}gb"
        policy = (
            resource.get_config_str("redis_configs.maxmemory-policy") or "allkeys-lru"
        )

        port = ENGINE_PORTS["redis"]
        svc.ports = [f"{port}:{port}"]
        svc.command = ["redis-server", "/usr/local/etc/redis/redis.conf"]
        svc.volumes = [
            f"./data/{svc.name}:{ENGINE_DATA_DIRS['redis']}",
            "./config/redis/redis.conf:/usr/local/etc/redis/redis.conf:ro",
        ]
        svc.environment = {"REDIS_PASSWORD": password}
        svc.health_check = health_check("redis", password=password)
        svc.labels[f"{LABEL_PREFIX}.engine"] = "redis"
        svc.labels[f"{LABEL_PREFIX}.engine_version"] = version

        result.add_config(
            "config/redis/redis.conf",
            _REDIS_CONF.format(
                name=name, password=password, maxmemory=maxmemory, policy=policy
            ),
        )

        tier = resource.get_config_str("tier").upper()
        if tier == "STANDARD_HA":
            result.add_warning(
                "Instance uses the STANDARD_HA tier; the container is a single "
                "node without replication or failover."
            )
        if (
            resource.get_config_str("transit_encryption_mode").upper()
            == "SERVER_AUTHENTICATION"
        ):
            result.add_warning(
                "In-transit encryption is enabled; configure TLS on the Redis "
                "container if clients require it."
            )
        if resource.get_config_int("read_replicas_count") > 0:
            result.add_warning("Read replicas are not recreated locally.")
        result.add_manual_step(
            "Update clients to use the generated Redis password (AUTH)"
        )
        return result
