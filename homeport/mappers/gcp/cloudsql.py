"""Cloud SQL instance to a PostgreSQL, MySQL or SQL Server container."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.databases import (
    database_name,
    database_result,
    unsupported_engine_result,
)
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import (
    EngineVersion,
    cloudsql_tier_limits,
    parse_cloudsql_version,
)

_POSTGRES_MIGRATION = """#!/bin/bash
# Copy data from Cloud SQL instance {instance} into the local container.
set -euo pipefail

SOURCE_HOST="${{SOURCE_HOST:-127.0.0.1}}"
SOURCE_PORT="${{SOURCE_PORT:-5433}}"
SOURCE_USER="${{SOURCE_USER:-postgres}}"

echo "Start the Cloud SQL Auth Proxy first, e.g.:"
echo "  cloud-sql-proxy --port $SOURCE_PORT PROJECT:REGION:{instance}"

pg_dump -h "$SOURCE_HOST" -p "$SOURCE_PORT" -U "$SOURCE_USER" -d {database} -F c -f {database}.dump
docker compose exec -T {service} pg_restore -U {user} -d {database} --no-owner < {database}.dump
"""

_MYSQL_MIGRATION = """#!/bin/bash
# Copy data from Cloud SQL instance {instance} into the local container.
set -euo pipefail

SOURCE_HOST="${{SOURCE_HOST:-127.0.0.1}}"
SOURCE_PORT="${{SOURCE_PORT:-3307}}"
SOURCE_USER="${{SOURCE_USER:-root}}"

echo "Start the Cloud SQL Auth Proxy first, e.g.:"
echo "  cloud-sql-proxy --port $SOURCE_PORT PROJECT:REGION:{instance}"

mysqldump -h "$SOURCE_HOST" -P "$SOURCE_PORT" -u "$SOURCE_USER" -p --single-transaction {database} > {database}.sql
docker compose exec -T {service} mysql -u {user} -p{password} {database} < {database}.sql
"""

_MSSQL_MIGRATION = """#!/bin/bash
# Copy data from Cloud SQL instance {instance} into the local container.
set -euo pipefail

echo "Export a BAK file from Cloud SQL:"
echo "  gcloud sql export bak {instance} gs://BUCKET/{database}.bak --database={database}"
echo "Then restore it inside the container with sqlcmd RESTORE DATABASE."
"""


class CloudSQLMapper(BaseMapper):
    """
    Maps ``google_sql_database_instance`` to a database container.

    Deployment Manager properties keep their API spelling, so
    ``databaseVersion`` is accepted next to ``database_version``.
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.CLOUD_SQL_INSTANCE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        version = resource.get_config_str("database_version") or (
            resource.get_config_str("databaseVersion")
        )
        engine = parse_cloudsql_version(version)
        if engine is None:
            return unsupported_engine_result(self, resource, name, version)

        database = database_name(name)
        limits = cloudsql_tier_limits(resource.get_config_str("settings.tier"))
        result = database_result(self, resource, name, engine, database, limits)
        svc = result.service
        assert svc is not None
        svc.labels[f"{LABEL_PREFIX}.instance"] = name

        result.add_script(
            "migrate_cloudsql.sh",
            self._migration_script(result, engine, name, database),
        )
        self._add_warnings(resource, result)
        result.add_manual_step(
            "Run scripts/migrate_cloudsql.sh to copy data from Cloud SQL"
        )
        return result

    @staticmethod
    def _migration_script(
        result: MappingResult, engine: EngineVersion, instance: str, database: str
    ) -> str:
        svc = result.service
        assert svc is not None
        env = svc.environment
        if engine.engine == "postgres":
            return _POSTGRES_MIGRATION.format(
                instance=instance,
                database=database,
                service=svc.name,
                user=env["POSTGRES_USER"],
            )
        if engine.engine == "mysql":
            return _MYSQL_MIGRATION.format(
                instance=instance,
                database=database,
                service=svc.name,
                user=env["MYSQL_USER"],
                password=env["MYSQL_PASSWORD"],
            )
        return _MSSQL_MIGRATION.format(instance=instance, database=database)

    @staticmethod
    def _add_warnings(resource: Resource, result: MappingResult) -> None:
        if resource.get_config_str("settings.availability_type").upper() == "REGIONAL":
            result.add_warning(
                "Instance is highly available (REGIONAL); the container is a "
                "single node. Add replication if you need failover."
            )
        if resource.get_config_bool("settings.backup_configuration.enabled"):
            result.add_warning(
                "Automated backups are enabled; schedule dumps of the local "
                "database to keep equivalent protection."
            )
            result.add_manual_step("Set up a backup job for the database volume")
        if (
            resource.get_config_str("master_instance_name")
            or resource.get_config_list("replica_names")
            or resource.get_config_dict("replica_configuration")
        ):
            result.add_warning(
                "Read replicas are configured; they are not recreated locally."
            )
        if resource.get_config_bool("settings.ip_configuration.ipv4_enabled"):
            result.add_warning(
                "Instance has a public IP; the container port is published on "
                "the host, so restrict it with a firewall if that is not wanted."
            )
