"""
Shared construction of relational database containers.

Cloud SQL and RDS differ only in how engine, version and sizing are read;
the container they become is the same, so both mappers build it here.
"""

from __future__ import annotations

import re

from homeport.core.constants import LABEL_PREFIX
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.result import MappingResult, ResourceLimits
from homeport.mappers.tables import (
    ENGINE_DATA_DIRS,
    ENGINE_PORTS,
    EngineVersion,
    health_check,
    image_for,
)

GENERIC_IMAGE = "alpine:3.19"

_DATABASE_NAME = re.compile(r"[^a-z0-9_]+")


def database_name(name: str, fallback: str = "app") -> str:
    """Turn a resource name into a SQL-safe database name."""
    cleaned = _DATABASE_NAME.sub("_", name.lower()).strip("_")
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"{fallback}_{cleaned}" if cleaned else fallback
    return cleaned


def database_result(
    mapper: BaseMapper,
    resource: Resource,
    name: str,
    engine: EngineVersion,
    database: str,
    limits: ResourceLimits,
    username: str = "",
) -> MappingResult:
    """
    Build the container service for a relational database.

    Credentials are generated from the mapper's credential generator; a
    discovered ``username`` is kept when given.

    Args:
        mapper: Mapper whose generator and naming rules apply.
        resource: Source resource.
        name: Instance name used for the service.
        engine: Engine family and version.
        database: Initial database to create.
        limits: CPU and memory caps.
        username: Application user; generated when empty.

    Returns:
        A result holding one configured database service.

    """
    image = image_for(engine.engine, engine.version)
    result = mapper.new_result(resource, name, image)
    svc = result.service
    assert svc is not None

    credentials = mapper.credentials
    user = username or credentials.username(engine.engine)
    password = credentials.password()
    port = ENGINE_PORTS[engine.engine]

    if engine.engine == "postgres":
        svc.environment = {
            "POSTGRES_DB": database,
            "POSTGRES_USER": user,
            "POSTGRES_PASSWORD": password,
            "PGDATA": f"{ENGINE_DATA_DIRS['postgres']}/pgdata",
        }
        svc.health_check = health_check("postgres", user=user, database=database)
    elif engine.engine in ("mysql", "mariadb"):
        svc.environment = {
            "MYSQL_ROOT_PASSWORD": credentials.password(),
            "MYSQL_DATABASE": database,
            "MYSQL_USER": user,
            "MYSQL_PASSWORD": password,
        }
        svc.health_check = health_check(engine.engine, user=user, password=password)
    else:
        # SQL Server refuses SA passwords without mixed character classes
        password = f"{credentials.password(21)}Aa1"
        user = "sa"
        svc.environment = {
            "ACCEPT_EULA": "Y",
            "MSSQL_SA_PASSWORD": password,
            "MSSQL_PID": "Developer",
        }
        svc.health_check = health_check("mssql", password=password)

    svc.ports = [f"{port}:{port}"]
    svc.volumes = [f"./data/{svc.name}:{ENGINE_DATA_DIRS[engine.engine]}"]
    svc.limits = limits
    svc.labels[f"{LABEL_PREFIX}.engine"] = engine.engine
    svc.labels[f"{LABEL_PREFIX}.engine_version"] = engine.version
    result.add_manual_step(
        f"Store the generated {engine.engine} credentials for '{user}' in your "
        "secrets manager and update application connection strings"
    )
    return result


def unsupported_engine_result(
    mapper: BaseMapper, resource: Resource, name: str, engine: str
) -> MappingResult:
    """
    Build a placeholder service for an engine without a container image.

    The result carries a warning and a manual review step instead of failing
    so batch mapping can continue.
    """
    result = mapper.new_result(resource, name, GENERIC_IMAGE)
    svc = result.service
    assert svc is not None
    svc.command = ["sleep", "infinity"]
    svc.labels[f"{LABEL_PREFIX}.engine"] = engine or "unknown"
    result.add_warning(
        f"Database engine '{engine or 'unknown'}' has no self-hosted mapping; "
        "a placeholder service was generated."
    )
    result.add_manual_step(
        f"Review '{name}' by hand and choose a replacement for engine "
        f"'{engine or 'unknown'}'"
    )
    return result
