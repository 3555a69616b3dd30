"""
Transformation tables shared by the mappers.

Sizing lookups are exact-match tables; anything unknown falls back to
``DEFAULT_LIMITS`` instead of failing. Engine strings are split into a
family and an image tag, and each family has one health-check template.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from homeport.mappers.result import HealthCheck, ResourceLimits

DEFAULT_LIMITS = ResourceLimits(cpus="1", memory="2G")


def format_memory_mib(mib: int | float) -> str:
    """``4096`` becomes ``4G``; sizes that are not whole GiB stay in ``M``."""
    mib = int(mib)
    if mib >= 1024 and mib % 1024 == 0:
        return f"{mib // 1024}G"
    return f"{mib}M"


def _limits(cpus: str, memory_mib: int) -> ResourceLimits:
    return ResourceLimits(cpus=cpus, memory=format_memory_mib(memory_mib))


# Compute Engine machine types

GCE_MACHINE_TYPES: dict[str, ResourceLimits] = {
    "f1-micro": _limits("0.2", 614),
    "g1-small": _limits("0.5", 1740),
    "e2-micro": _limits("0.25", 1024),
    "e2-small": _limits("0.5", 2048),
    "e2-medium": _limits("1", 4096),
    "e2-standard-2": _limits("2", 8192),
    "e2-standard-4": _limits("4", 16384),
    "e2-standard-8": _limits("8", 32768),
    "e2-standard-16": _limits("16", 65536),
    "e2-highmem-2": _limits("2", 16384),
    "e2-highmem-4": _limits("4", 32768),
    "e2-highcpu-2": _limits("2", 2048),
    "e2-highcpu-4": _limits("4", 4096),
    "n1-standard-1": _limits("1", 3840),
    "n1-standard-2": _limits("2", 7680),
    "n1-standard-4": _limits("4", 15360),
    "n1-standard-8": _limits("8", 30720),
    "n1-highmem-2": _limits("2", 13312),
    "n1-highcpu-4": _limits("4", 3686),
    "n2-standard-2": _limits("2", 8192),
    "n2-standard-4": _limits("4", 16384),
    "n2-standard-8": _limits("8", 32768),
    "n2-highmem-2": _limits("2", 16384),
    "n2-highmem-4": _limits("4", 32768),
    "n2-highcpu-4": _limits("4", 4096),
    "n2d-standard-2": _limits("2", 8192),
    "c2-standard-4": _limits("4", 16384),
    "t2d-standard-1": _limits("1", 4096),
}

# custom-4-8192, e2-custom-2-4096, n2-custom-8-32768-ext
_CUSTOM_MACHINE = re.compile(r"^(?:[a-z0-9]+-)?custom-(\d+)-(\d+)(?:-ext)?$")


def machine_type_limits(machine_type: str) -> ResourceLimits:
    """
    Size a Compute Engine machine type.

    Accepts bare names or full machine-type URLs. Custom types encode their
    vCPU count and memory (MiB) in the name.
    """
    name = machine_type.rstrip("/").rsplit("/", 1)[-1] if machine_type else ""
    if name in GCE_MACHINE_TYPES:
        return GCE_MACHINE_TYPES[name]
    match = _CUSTOM_MACHINE.match(name)
    if match:
        return _limits(match.group(1), int(match.group(2)))
    return DEFAULT_LIMITS


# Cloud SQL tiers

CLOUD_SQL_TIERS: dict[str, ResourceLimits] = {
    "db-f1-micro": _limits("0.5", 614),
    "db-g1-small": _limits("0.5", 1740),
    "db-n1-standard-1": _limits("1", 3840),
    "db-n1-standard-2": _limits("2", 7680),
    "db-n1-standard-4": _limits("4", 15360),
    "db-n1-standard-8": _limits("8", 30720),
    "db-n1-highmem-2": _limits("2", 13312),
    "db-n1-highmem-4": _limits("4", 26624),
    "db-perf-optimized-N-2": _limits("2", 16384),
}

_CUSTOM_TIER = re.compile(r"^db-custom-(\d+)-(\d+)$")


def cloudsql_tier_limits(tier: str) -> ResourceLimits:
    """Size a Cloud SQL tier, including ``db-custom-<cpus>-<MiB>``."""
    if tier in CLOUD_SQL_TIERS:
        return CLOUD_SQL_TIERS[tier]
    match = _CUSTOM_TIER.match(tier or "")
    if match:
        return _limits(match.group(1), int(match.group(2)))
    return DEFAULT_LIMITS


# RDS instance classes

RDS_INSTANCE_CLASSES: dict[str, ResourceLimits] = {
    "db.t3.micro": _limits("2", 1024),
    "db.t3.small": _limits("2", 2048),
    "db.t3.medium": _limits("2", 4096),
    "db.t3.large": _limits("2", 8192),
    "db.t4g.micro": _limits("2", 1024),
    "db.t4g.small": _limits("2", 2048),
    "db.t4g.medium": _limits("2", 4096),
    "db.m5.large": _limits("2", 8192),
    "db.m5.xlarge": _limits("4", 16384),
    "db.m5.2xlarge": _limits("8", 32768),
    "db.m6g.large": _limits("2", 8192),
    "db.r5.large": _limits("2", 16384),
    "db.r5.xlarge": _limits("4", 32768),
    "db.r6g.large": _limits("2", 16384),
}


def rds_class_limits(instance_class: str) -> ResourceLimits:
    """Size an RDS instance class."""
    return RDS_INSTANCE_CLASSES.get(instance_class, DEFAULT_LIMITS)


# Kubernetes-style quantities (Cloud Run limits)

_CPU_QUANTITY = re.compile(r"^(\d+(?:\.\d+)?)(m?)$")
_MEMORY_QUANTITY = re.compile(r"^(\d+(?:\.\d+)?)(Ki|Mi|Gi|Ti|K|M|G|T|k)?$")
_MEMORY_FACTORS_MIB = {
    None: 1 / (1024 * 1024),
    "Ki": 1 / 1024,
    "K": 1000 / (1024 * 1024),
    "k": 1000 / (1024 * 1024),
    "Mi": 1,
    "M": 1_000_000 / (1024 * 1024),
    "Gi": 1024,
    "G": 1_000_000_000 / (1024 * 1024),
    "Ti": 1024 * 1024,
    "T": 1_000_000_000_000 / (1024 * 1024),
}


def _trim_number(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def cpu_quantity(value: Any, default: str = "1") -> str:
    """``1000m`` becomes ``1``; ``500m`` becomes ``0.5``; plain counts pass."""
    match = _CPU_QUANTITY.match(str(value).strip()) if value is not None else None
    if not match:
        return default
    number = float(match.group(1))
    if match.group(2) == "m":
        number /= 1000
    return _trim_number(number) if number > 0 else default


def memory_quantity(value: Any, default: str = "512M") -> str:
    """``512Mi`` becomes ``512M`` and ``2Gi`` becomes ``2G``; bytes convert to MiB."""
    match = _MEMORY_QUANTITY.match(str(value).strip()) if value is not None else None
    if not match:
        return default
    mib = float(match.group(1)) * _MEMORY_FACTORS_MIB[match.group(2)]
    if mib < 1:
        return default
    return format_memory_mib(round(mib))


# Engines and versions


@dataclass(frozen=True)
class EngineVersion:
    """Engine family (``postgres``, ``mysql``...) and image tag version."""

    engine: str
    version: str


DEFAULT_VERSIONS: dict[str, str] = {
    "postgres": "16",
    "mysql": "8.0",
    "mariadb": "11",
    "mssql": "2022",
    "redis": "7.2",
}

ENGINE_PORTS: dict[str, int] = {
    "postgres": 5432,
    "mysql": 3306,
    "mariadb": 3306,
    "mssql": 1433,
    "redis": 6379,
}

ENGINE_DATA_DIRS: dict[str, str] = {
    "postgres": "/var/lib/postgresql/data",
    "mysql": "/var/lib/mysql",
    "mariadb": "/var/lib/mysql",
    "mssql": "/var/opt/mssql",
    "redis": "/data",
}

_CLOUDSQL_VERSION = re.compile(r"^(POSTGRES|MYSQL|SQLSERVER)_(\d+)(?:_(\d+))?(?:_.*)?$")


def parse_cloudsql_version(database_version: str) -> EngineVersion | None:
    """
    Split a Cloud SQL ``database_version``.

    ``POSTGRES_15`` gives postgres 15, ``MYSQL_8_0`` gives mysql 8.0 and
    ``SQLSERVER_2019_STANDARD`` gives mssql 2019. Returns None for anything
    else.
    """
    match = _CLOUDSQL_VERSION.match((database_version or "").upper())
    if not match:
        return None
    family, major, minor = match.groups()
    if family == "POSTGRES":
        return EngineVersion("postgres", major)
    if family == "MYSQL":
        return EngineVersion("mysql", f"{major}.{minor}" if minor else major)
    return EngineVersion("mssql", major)


def parse_rds_engine(engine: str, engine_version: str = "") -> EngineVersion | None:
    """
    Split an RDS ``engine`` / ``engine_version`` pair.

    Postgres keeps the major version; MySQL and MariaDB keep major.minor.
    Aurora engines map onto their open-source family. Returns None for
    engines without a container equivalent (Oracle, SQL Server editions...).
    """
    engine = (engine or "").lower()
    if "postgres" in engine:
        family = "postgres"
    elif "mariadb" in engine:
        family = "mariadb"
    elif "mysql" in engine:
        family = "mysql"
    else:
        return None

    parts = [p for p in (engine_version or "").split(".") if p]
    if not parts:
        return EngineVersion(family, DEFAULT_VERSIONS[family])
    if family == "postgres" or len(parts) == 1:
        return EngineVersion(family, parts[0])
    return EngineVersion(family, f"{parts[0]}.{parts[1]}")


_REDIS_VERSION = re.compile(r"^REDIS_(\d+)(?:_(\d+))?$")


def parse_redis_version(redis_version: str) -> str:
    """``REDIS_7_0`` becomes ``7.0``; unknown spellings give the default."""
    match = _REDIS_VERSION.match((redis_version or "").upper())
    if not match:
        return DEFAULT_VERSIONS["redis"]
    major, minor = match.groups()
    return f"{major}.{minor}" if minor else major


def image_for(engine: str, version: str) -> str:
    """Container image for an engine family and version."""
    if engine == "postgres":
        return f"postgres:{version}-alpine"
    if engine == "mysql":
        return f"mysql:{version}"
    if engine == "mariadb":
        return f"mariadb:{version}"
    if engine == "mssql":
        return f"mcr.microsoft.com/mssql/server:{version}-latest"
    if engine == "redis":
        return f"redis:{version}-alpine"
    raise ValueError(f"No image for engine '{engine}'")


# Health checks


@dataclass(frozen=True)
class HealthCheckTemplate:
    """Health check whose command words are ``str.format`` templates."""

    test: tuple[str, ...]
    interval: str = "30s"
    timeout: str = "5s"
    retries: int = 3
    start_period: str = ""

    def render(self, **params: Any) -> HealthCheck:
        return HealthCheck(
            test=tuple(word.format(**params) for word in self.test),
            interval=self.interval,
            timeout=self.timeout,
            retries=self.retries,
            start_period=self.start_period,
        )


HEALTH_CHECKS: dict[str, HealthCheckTemplate] = {
    "postgres": HealthCheckTemplate(
        ("CMD-SHELL", "pg_isready -U {user} -d {database}"),
        interval="10s",
        retries=5,
    ),
    "mysql": HealthCheckTemplate(
        ("CMD-SHELL", "mysqladmin ping -h localhost -u {user} -p{password}"),
        interval="10s",
        retries=5,
    ),
    "mssql": HealthCheckTemplate(
        (
            "CMD-SHELL",
            "/opt/mssql-tools18/bin/sqlcmd -S localhost -U sa -P {password} "
            "-C -Q 'SELECT 1' || exit 1",
        ),
        interval="10s",
        retries=5,
        start_period="30s",
    ),
    "redis": HealthCheckTemplate(
        ("CMD-SHELL", "redis-cli -a {password} ping"), interval="10s", retries=5
    ),
    "minio": HealthCheckTemplate(
        ("CMD-SHELL", "curl -f http://localhost:9000/minio/health/live")
    ),
    "rabbitmq": HealthCheckTemplate(
        ("CMD", "rabbitmq-diagnostics", "-q", "ping"), timeout="10s", retries=5
    ),
    "vault": HealthCheckTemplate(
        ("CMD", "vault", "status", "-address=http://127.0.0.1:8200")
    ),
    "http": HealthCheckTemplate(
        ("CMD-SHELL", "curl -f http://localhost:{port}/ || exit 1")
    ),
}
HEALTH_CHECKS["mariadb"] = HEALTH_CHECKS["mysql"]


def health_check(family: str, **params: Any) -> HealthCheck:
    """
    Render the health check for an engine family.

    Raises:
        ValueError: If the family has no template.

    """
    template = HEALTH_CHECKS.get(family)
    if template is None:
        raise ValueError(f"No health check template for '{family}'")
    return template.render(**params)


# Compute Engine images

DEFAULT_BASE_IMAGE = "ubuntu:22.04"
_DEBIAN_RELEASES = {"10": "buster", "11": "bullseye", "12": "bookworm", "13": "trixie"}
_UBUNTU_RELEASE = re.compile(r"ubuntu[^/]*?(\d{2})\.?(04|10)")
_DEBIAN_RELEASE = re.compile(r"debian-(\d+)")


def gce_image_to_container(image: str) -> str:
    """
    Pick a container base image for a Compute Engine boot image.

    Matches on the OS family and release found in image names such as
    ``ubuntu-2204-lts`` or ``projects/debian-cloud/global/images/debian-12``.
    """
    name = (image or "").lower()
    if not name:
        return DEFAULT_BASE_IMAGE
    if "ubuntu" in name:
        match = _UBUNTU_RELEASE.search(name)
        return f"ubuntu:{match.group(1)}.{match.group(2)}" if match else "ubuntu:latest"
    if "debian" in name:
        for codename in _DEBIAN_RELEASES.values():
            if codename in name:
                return f"debian:{codename}"
        match = _DEBIAN_RELEASE.search(name)
        if match and match.group(1) in _DEBIAN_RELEASES:
            return f"debian:{_DEBIAN_RELEASES[match.group(1)]}"
        return "debian:latest"
    if "centos" in name:
        return "centos:7"
    if "rocky" in name:
        return "rockylinux:9"
    if "alpine" in name:
        return "alpine:latest"
    if "cos-" in name or "cos-cloud" in name or "container-optimized" in name:
        return "gcr.io/google-containers/toolbox:latest"
    return DEFAULT_BASE_IMAGE
