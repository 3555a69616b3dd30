"""Tests for the mapper transformation tables."""

import pytest

from homeport.mappers.result import ResourceLimits
from homeport.mappers.tables import (
    DEFAULT_BASE_IMAGE,
    DEFAULT_LIMITS,
    EngineVersion,
    cloudsql_tier_limits,
    cpu_quantity,
    format_memory_mib,
    gce_image_to_container,
    health_check,
    image_for,
    machine_type_limits,
    memory_quantity,
    parse_cloudsql_version,
    parse_rds_engine,
    parse_redis_version,
    rds_class_limits,
)


class TestSizing:
    """Test machine, tier and class lookups."""

    @pytest.mark.parametrize(
        ("mib", "expected"),
        [(4096, "4G"), (1024.0, "1G"), (614, "614M"), (1536, "1536M")],
    )
    def test_format_memory_mib(self, mib, expected):
        """Test whole GiB use G and the rest stay in M."""
        assert format_memory_mib(mib) == expected

    @pytest.mark.parametrize(
        ("machine_type", "expected"),
        [
            ("e2-medium", ResourceLimits("1", "4G")),
            (
                "zones/us-central1-a/machineTypes/n1-standard-1",
                ResourceLimits("1", "3840M"),
            ),
            ("custom-4-8192", ResourceLimits("4", "8G")),
            ("n2-custom-8-32768-ext", ResourceLimits("8", "32G")),
            ("e2-custom-2-5120", ResourceLimits("2", "5G")),
            ("a3-megagpu-8g", DEFAULT_LIMITS),
            ("", DEFAULT_LIMITS),
        ],
    )
    def test_machine_type_limits(self, machine_type, expected):
        """Test table, URL, custom and unknown machine types."""
        assert machine_type_limits(machine_type) == expected

    @pytest.mark.parametrize(
        ("tier", "expected"),
        [
            ("db-f1-micro", ResourceLimits("0.5", "614M")),
            ("db-custom-2-7680", ResourceLimits("2", "7680M")),
            ("db-custom-4-16384", ResourceLimits("4", "16G")),
            ("db-unknown", DEFAULT_LIMITS),
            (None, DEFAULT_LIMITS),
        ],
    )
    def test_cloudsql_tier_limits(self, tier, expected):
        """Test Cloud SQL tiers."""
        assert cloudsql_tier_limits(tier) == expected

    def test_rds_class_limits(self):
        """Test RDS classes and the fallback."""
        assert rds_class_limits("db.m5.xlarge") == ResourceLimits("4", "16G")
        assert rds_class_limits("db.x2g.16xlarge") == DEFAULT_LIMITS


class TestQuantities:
    """Test Kubernetes-style quantity conversion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1000m", "1"),
            ("500m", "0.5"),
            ("250m", "0.25"),
            ("2", "2"),
            (1.5, "1.5"),
            ("0", "1"),
            ("lots", "1"),
            (None, "1"),
        ],
    )
    def test_cpu_quantity(self, value, expected):
        """Test millicores, plain counts and fallbacks."""
        assert cpu_quantity(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("512Mi", "512M"),
            ("2Gi", "2G"),
            ("1.5Gi", "1536M"),
            ("1G", "954M"),
            ("536870912", "512M"),
            ("100", "512M"),
            ("plenty", "512M"),
            (None, "512M"),
        ],
    )
    def test_memory_quantity(self, value, expected):
        """Test binary, decimal and byte quantities."""
        assert memory_quantity(value) == expected

    def test_memory_quantity_custom_default(self):
        """Test the fallback can be overridden."""
        assert memory_quantity("", default="1G") == "1G"


class TestEngines:
    """Test engine and version parsing."""

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("POSTGRES_15", EngineVersion("postgres", "15")),
            ("postgres_14", EngineVersion("postgres", "14")),
            ("MYSQL_8_0", EngineVersion("mysql", "8.0")),
            ("MYSQL_8_0_31", EngineVersion("mysql", "8.0")),
            ("MYSQL_5_7", EngineVersion("mysql", "5.7")),
            ("SQLSERVER_2019_STANDARD", EngineVersion("mssql", "2019")),
            ("ORACLE_19", None),
            ("", None),
        ],
    )
    def test_parse_cloudsql_version(self, version, expected):
        """Test Cloud SQL database_version strings."""
        assert parse_cloudsql_version(version) == expected

    @pytest.mark.parametrize(
        ("engine", "version", "expected"),
        [
            ("postgres", "15.4", EngineVersion("postgres", "15")),
            ("aurora-postgresql", "14.6", EngineVersion("postgres", "14")),
            ("mysql", "8.0.35", EngineVersion("mysql", "8.0")),
            ("mysql", "8", EngineVersion("mysql", "8")),
            ("mariadb", "10.6.14", EngineVersion("mariadb", "10.6")),
            ("aurora-mysql", "", EngineVersion("mysql", "8.0")),
            ("postgres", "", EngineVersion("postgres", "16")),
            ("oracle-ee", "19.0", None),
            ("sqlserver-ex", "15.00", None),
        ],
    )
    def test_parse_rds_engine(self, engine, version, expected):
        """Test RDS engine families and version trimming."""
        assert parse_rds_engine(engine, version) == expected

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("REDIS_7_0", "7.0"),
            ("redis_6_2", "6.2"),
            ("REDIS_7", "7"),
            ("", "7.2"),
        ],
    )
    def test_parse_redis_version(self, version, expected):
        """Test Memorystore versions."""
        assert parse_redis_version(version) == expected

    @pytest.mark.parametrize(
        ("engine", "version", "image"),
        [
            ("postgres", "15", "postgres:15-alpine"),
            ("mysql", "8.0", "mysql:8.0"),
            ("mariadb", "10.6", "mariadb:10.6"),
            ("mssql", "2019", "mcr.microsoft.com/mssql/server:2019-latest"),
            ("redis", "7.0", "redis:7.0-alpine"),
        ],
    )
    def test_image_for(self, engine, version, image):
        """Test container images per engine."""
        assert image_for(engine, version) == image

    def test_image_for_unknown_engine(self):
        """Test unknown engines are rejected."""
        with pytest.raises(ValueError, match="No image"):
            image_for("oracle", "19")


class TestHealthChecks:
    """Test health-check rendering."""

    def test_postgres(self):
        """Test parameters are substituted into the command."""
        check = health_check("postgres", user="app", database="orders")
        assert check.test == ("CMD-SHELL", "pg_isready -U app -d orders")
        assert check.interval == "10s"
        assert check.retries == 5

    def test_mariadb_shares_mysql_template(self):
        """Test MariaDB uses the MySQL check."""
        mariadb = health_check("mariadb", user="u", password="p")
        assert mariadb == health_check("mysql", user="u", password="p")

    def test_static_templates(self):
        """Test templates without parameters."""
        check = health_check("rabbitmq")
        assert check.test == ("CMD", "rabbitmq-diagnostics", "-q", "ping")
        assert check.timeout == "10s"

    def test_mssql_start_period(self):
        """Test SQL Server waits before checking."""
        assert health_check("mssql", password="x").start_period == "30s"

    def test_unknown_family(self):
        """Test unknown families are rejected."""
        with pytest.raises(ValueError, match="No health check"):
            health_check("cassandra")


class TestImages:
    """Test boot image to container image selection."""

    @pytest.mark.parametrize(
        ("image", "expected"),
        [
            ("ubuntu-2204-lts", "ubuntu:22.04"),
            (
                "projects/ubuntu-os-cloud/global/images/ubuntu-2004-focal-v20240110",
                "ubuntu:20.04",
            ),
            ("ubuntu-minimal", "ubuntu:latest"),
            ("debian-12", "debian:bookworm"),
            ("debian-11-bullseye-v20240110", "debian:bullseye"),
            ("debian-9", "debian:latest"),
            ("centos-7", "centos:7"),
            ("rocky-linux-9", "rockylinux:9"),
            ("cos-stable-109", "gcr.io/google-containers/toolbox:latest"),
            ("windows-server-2019", DEFAULT_BASE_IMAGE),
            ("", DEFAULT_BASE_IMAGE),
        ],
    )
    def test_gce_image_to_container(self, image, expected):
        """Test OS family and release detection."""
        assert gce_image_to_container(image) == expected
