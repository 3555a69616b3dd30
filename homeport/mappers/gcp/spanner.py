"""Spanner instance to a single-node CockroachDB container."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import HealthCheck, MappingResult

COCKROACH_IMAGE = "cockroachdb/cockroach:v23.2.4"
SQL_PORT = 26257
ADMIN_PORT = 8080

_MIGRATION_SCRIPT = """#!/bin/bash
# Export the Spanner schema of instance {instance} and create the database.
set -euo pipefail

DATABASE="${{1:?usage: $0 <spanner-database>}}"
COCKROACH_HOST="${{COCKROACH_HOST:-localhost}}"

gcloud spanner databases ddl describe "$DATABASE" --instance={instance} \\
  > "spanner_${{DATABASE}}_ddl.sql"
echo "Wrote spanner_${{DATABASE}}_ddl.sql; convert it before applying"

cockroach sql --insecure --host="$COCKROACH_HOST:{port}" \\
  -e "CREATE DATABASE IF NOT EXISTS \\"$DATABASE\\""
"""


class SpannerMapper(BaseMapper):
    """Maps ``google_spanner_instance`` to CockroachDB."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.SPANNER_INSTANCE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        instance = resource.get_config_str("name") or resource.name
        result = self.new_result(resource, f"cockroach-{instance}", COCKROACH_IMAGE)
        svc = result.service
        assert svc is not None

        svc.command = [
            "start-single-node",
            "--insecure",
            f"--listen-addr=:{SQL_PORT}",
            f"--http-addr=:{ADMIN_PORT}",
        ]
        svc.ports = [f"{SQL_PORT}:{SQL_PORT}", f"{ADMIN_PORT}:{ADMIN_PORT}"]
        svc.volumes = [f"./data/{svc.name}:/cockroach/cockroach-data"]
        svc.health_check = HealthCheck(
            test=(
                "CMD-SHELL",
                f"curl -f http://localhost:{ADMIN_PORT}/health?ready=1 || exit 1",
            ),
            interval="10s",
            retries=5,
            start_period="20s",
        )
        svc.labels[f"{LABEL_PREFIX}.engine"] = "cockroachdb"
        svc.environment = {
            "DATABASE_URL": (
                f"postgresql://root@{svc.name}:{SQL_PORT}/defaultdb?sslmode=disable"
            )
        }

        result.add_script(
            f"migrate_{svc.name}.sh",
            _MIGRATION_SCRIPT.format(instance=instance, port=SQL_PORT),
        )

        result.add_warning(
            "CockroachDB speaks the PostgreSQL dialect; GoogleSQL schemas and "
            "queries need converting."
        )
        result.add_warning(
            "Interleaved tables and commit timestamps have no direct equivalent."
        )
        result.add_warning(
            "The node runs in insecure mode; enable certificates before exposing it."
        )
        nodes = resource.get_config_int("num_nodes") or (
            resource.get_config_int("nodeCount")
        )
        units = resource.get_config_int("processing_units") or (
            resource.get_config_int("processingUnits")
        )
        if nodes > 1 or units > 1000:
            capacity = f"{nodes} node(s)" if nodes else f"{units} processing units"
            result.add_warning(
                f"The instance is sized at {capacity}; a single node replaces it."
            )

        result.add_manual_step(
            "Convert the exported DDL and apply it with 'cockroach sql'"
        )
        result.add_manual_step("Switch clients to a PostgreSQL driver and DATABASE_URL")
        result.add_manual_step(
            f"Open the admin UI at http://localhost:{ADMIN_PORT}"
        )
        return result
