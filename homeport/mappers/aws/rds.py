"""RDS instance to a PostgreSQL, MySQL or MariaDB container."""

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
from homeport.mappers.tables import parse_rds_engine, rds_class_limits

_BACKUP_SCRIPT = """#!/bin/bash
# Nightly dump of {database}; keeps {days} days of backups.
set -euo pipefail

BACKUP_DIR="${{BACKUP_DIR:-./backups/{service}}}"
mkdir -p "$BACKUP_DIR"
STAMP="$(date +%Y%m%d-%H%M%S)"

{dump} > "$BACKUP_DIR/{database}-$STAMP.sql"
find "$BACKUP_DIR" -name '{database}-*.sql' -mtime +{days} -delete
"""


class RDSInstanceMapper(BaseMapper):
    """
    Maps ``aws_db_instance`` to a database container.

    Reads both Terraform attribute names (``instance_class``, ``username``)
    and the snake-cased CloudFormation properties (``db_instance_class``,
    ``master_username``).
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.RDS_INSTANCE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = (
            resource.get_config_str("identifier")
            or resource.get_config_str("db_instance_identifier")
            or resource.name
        )
        engine_name = resource.get_config_str("engine")
        engine = parse_rds_engine(
            engine_name, resource.get_config_str("engine_version")
        )
        if engine is None:
            return unsupported_engine_result(self, resource, name, engine_name)

        database = database_name(
            resource.get_config_str("db_name")
            or resource.get_config_str("name")
            or resource.get_config_str("database_name")
            or name
        )
        instance_class = resource.get_config_str(
            "instance_class"
        ) or resource.get_config_str("db_instance_class")
        username = resource.get_config_str("username") or resource.get_config_str(
            "master_username"
        )
        result = database_result(
            self,
            resource,
            name,
            engine,
            database,
            rds_class_limits(instance_class),
            username=username,
        )
        svc = result.service
        assert svc is not None
        svc.labels[f"{LABEL_PREFIX}.database"] = database
        if instance_class:
            svc.labels[f"{LABEL_PREFIX}.instance_class"] = instance_class

        retention = resource.get_config_int("backup_retention_period")
        if retention > 0:
            script = self._backup_script(result, database, retention)
            result.add_script(f"backup_{svc.name}.sh", script)
            result.add_manual_step(
                f"Schedule scripts/backup_{svc.name}.sh daily to keep {retention} "
                "days of backups"
            )

        if resource.get_config_bool("multi_az"):
            result.add_warning(
                "Multi-AZ deployment is enabled; set up replication by hand if "
                "you need high availability."
            )
        if resource.get_config_bool("publicly_accessible"):
            result.add_warning(
                "Instance is publicly accessible; restrict the published port "
                "with host firewall rules."
            )
        if resource.get_config_bool("storage_encrypted"):
            result.add_warning(
                "Storage encryption is enabled; configure encryption at rest "
                "for the data volume."
            )
        parameter_group = resource.get_config_str(
            "parameter_group_name"
        ) or resource.get_config_str("db_parameter_group_name")
        if parameter_group:
            result.add_warning(
                f"Parameter group '{parameter_group}' is attached; apply its "
                "custom parameters to the container configuration."
            )
        result.add_manual_step("Import a dump of the RDS database into the container")
        return result

    @staticmethod
    def _backup_script(result: MappingResult, database: str, days: int) -> str:
        svc = result.service
        assert svc is not None
        env = svc.environment
        if "POSTGRES_USER" in env:
            dump = (
                f"docker compose exec -T {svc.name} pg_dump -U "
                f"{env['POSTGRES_USER']} {database}"
            )
        else:
            dump = (
                f"docker compose exec -T {svc.name} mysqldump -u "
                f"{env['MYSQL_USER']} -p{env['MYSQL_PASSWORD']} {database}"
            )
        return _BACKUP_SCRIPT.format(
            database=database, days=days, service=svc.name, dump=dump
        )
