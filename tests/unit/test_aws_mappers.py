"""Tests for the AWS mappers."""

import json
import re

import pytest

from homeport.domain import catalog
from homeport.mappers.aws import RDSInstanceMapper, S3BucketMapper
from homeport.mappers.aws.s3 import cors_rules, lifecycle_rules
from homeport.mappers.object_storage import CORSRule, LifecycleRule
from homeport.mappers.result import ResourceLimits
from homeport.mappers.tables import DEFAULT_LIMITS


class TestS3Helpers:
    """Test S3 rule translation."""

    def test_terraform_lifecycle_rules(self):
        """Test inline Terraform lifecycle blocks."""
        rules = lifecycle_rules(
            [
                {"enabled": True, "expiration": [{"days": 30}]},
                {"enabled": False, "expiration": [{"days": 1}]},
                {"transition": [{"days": 60, "storage_class": "GLACIER"}]},
            ]
        )
        assert rules == [
            LifecycleRule("Expiration", 30),
            LifecycleRule("Transition", 60, "GLACIER"),
        ]

    def test_cloudformation_lifecycle_rules(self):
        """Test CloudFormation Rules with Status and Transitions."""
        rules = lifecycle_rules(
            [
                {"Status": "Enabled", "ExpirationInDays": 7},
                {"Status": "Disabled", "ExpirationInDays": 1},
                {
                    "Status": "Enabled",
                    "Transitions": [
                        {"TransitionInDays": 30, "StorageClass": "GLACIER"}
                    ],
                },
                {"Status": "Enabled"},
                "junk",
            ]
        )
        assert rules == [
            LifecycleRule("Expiration", 7),
            LifecycleRule("Transition", 30, "GLACIER"),
            LifecycleRule("Transition", None, ""),
        ]

    def test_cors_rules(self):
        """Test CORS rules in both spellings."""
        assert cors_rules(
            [
                {
                    "allowed_origins": ["*"],
                    "allowed_methods": ["GET", "PUT"],
                    "max_age_seconds": 300,
                },
                {
                    "AllowedOrigins": ["https://app.example"],
                    "AllowedMethods": ["GET"],
                    "AllowedHeaders": "*",
                    "MaxAge": 600,
                },
            ]
        ) == [
            CORSRule(("*",), ("GET", "PUT"), (), 300),
            CORSRule(("https://app.example",), ("GET",), ("*",), 600),
        ]


class TestS3BucketMapper:
    """Test S3 buckets."""

    @pytest.fixture
    def mapper(self, seeded_credentials):
        """Mapper with seeded credentials."""
        return S3BucketMapper(seeded_credentials)

    def test_terraform_bucket(self, mapper, make_resource):
        """Test a public, versioned bucket from Terraform."""
        resource = make_resource(
            "aws_s3_bucket.logs",
            catalog.S3_BUCKET,
            region="us-east-1",
            config={
                "bucket": "logs",
                "versioning": [{"enabled": True}],
                "lifecycle_rule": [{"enabled": True, "expiration": [{"days": 30}]}],
                "cors_rule": [{"allowed_origins": ["*"], "allowed_methods": ["GET"]}],
                "acl": "public-read",
                "server_side_encryption_configuration": [
                    {"rule": [{"apply_server_side_encryption_by_default": []}]}
                ],
            },
        )

        result = mapper.map(resource)
        svc = result.service

        assert svc.name == "minio-logs"
        assert svc.environment["MINIO_REGION"] == "us-east-1"
        assert re.fullmatch(r"minio_[a-z0-9]{6}", svc.environment["MINIO_ROOT_USER"])
        assert svc.command == ["server", "/data", "--console-address", ":9001"]
        assert svc.volumes == ["./data/minio-logs:/data"]
        assert "mc version enable local/logs" in result.scripts["setup_minio.sh"]
        lifecycle = result.scripts["configure_lifecycle.sh"]
        assert "mc ilm rule add --expire-days 30 local/logs" in lifecycle
        assert "config/minio/logs-cors.json" in result.configs
        assert any("public reads" in w for w in result.warnings)
        assert any("Server-side encryption" in w for w in result.warnings)
        assert "mc anonymous set download local/logs" in " ".join(result.manual_steps)

    def test_cloudformation_bucket(self, mapper, make_resource):
        """Test snake-cased CloudFormation properties."""
        resource = make_resource(
            "DataBucket",
            catalog.S3_BUCKET,
            region="us-west-2",
            config={
                "bucket_name": "data",
                "versioning_configuration": {"Status": "Enabled"},
                "lifecycle_configuration": {
                    "Rules": [{"Status": "Enabled", "ExpirationInDays": 7}]
                },
                "cors_configuration": {
                    "CorsRules": [{"AllowedOrigins": ["*"], "AllowedMethods": ["GET"]}]
                },
                "access_control": "PublicRead",
                "bucket_encryption": {"ServerSideEncryptionConfiguration": []},
                "object_lock_configuration": {
                    "Rule": {"DefaultRetention": {"Days": 14}}
                },
            },
        )

        result = mapper.map(resource)

        assert result.service.labels["homeport.bucket"] == "data"
        assert result.service.environment["MINIO_REGION"] == "us-west-2"
        assert "mc version enable local/data" in result.scripts["setup_minio.sh"]
        assert "--expire-days 7" in result.scripts["configure_lifecycle.sh"]
        cors = json.loads(result.configs["config/minio/data-cors.json"])
        assert cors["CORSRules"][0]["AllowedOrigins"] == ["*"]
        assert any("14-day retention" in w for w in result.warnings)
        assert any("public reads" in w for w in result.warnings)

    def test_private_bucket(self, mapper, make_resource):
        """Test a bucket with no extra settings."""
        result = mapper.map(
            make_resource("aws_s3_bucket.plain", catalog.S3_BUCKET, name="plain")
        )
        assert result.service.name == "minio-plain"
        assert list(result.scripts) == ["setup_minio.sh"]
        assert result.warnings == []


class TestRDSInstanceMapper:
    """Test RDS instances."""

    @pytest.fixture
    def mapper(self, seeded_credentials):
        """Mapper with seeded credentials."""
        return RDSInstanceMapper(seeded_credentials)

    def test_terraform_postgres(self, mapper, make_resource):
        """Test a Terraform PostgreSQL instance with every warning."""
        resource = make_resource(
            "aws_db_instance.orders",
            catalog.RDS_INSTANCE,
            region="us-east-1",
            config={
                "identifier": "orders",
                "engine": "postgres",
                "engine_version": "15.4",
                "db_name": "orders",
                "instance_class": "db.t3.small",
                "username": "app",
                "backup_retention_period": 7,
                "multi_az": True,
                "publicly_accessible": True,
                "storage_encrypted": True,
                "parameter_group_name": "custom-pg15",
            },
        )

        result = mapper.map(resource)
        svc = result.service

        assert svc.name == "orders"
        assert svc.image == "postgres:15-alpine"
        assert svc.environment["POSTGRES_USER"] == "app"
        assert svc.environment["POSTGRES_DB"] == "orders"
        assert svc.limits == ResourceLimits("2", "2G")
        assert svc.labels["homeport.database"] == "orders"
        assert svc.labels["homeport.instance_class"] == "db.t3.small"
        backup = result.scripts["backup_orders.sh"]
        assert "pg_dump -U app orders" in backup
        assert "-mtime +7" in backup
        assert len(result.warnings) == 4
        assert "custom-pg15" in result.warnings[3]
        assert result.manual_steps[1:] == [
            "Schedule scripts/backup_orders.sh daily to keep 7 days of backups",
            "Import a dump of the RDS database into the container",
        ]

    def test_cloudformation_mysql(self, mapper, make_resource):
        """Test CloudFormation property names and string numbers."""
        resource = make_resource(
            "LegacyDB",
            catalog.RDS_INSTANCE,
            config={
                "db_instance_identifier": "legacy",
                "engine": "mysql",
                "engine_version": "8.0.35",
                "db_instance_class": "db.m5.large",
                "master_username": "admin",
                "backup_retention_period": "3",
                "db_parameter_group_name": "mysql80-tuned",
            },
        )

        result = mapper.map(resource)
        svc = result.service
        env = svc.environment

        assert svc.name == "legacy"
        assert svc.image == "mysql:8.0"
        assert env["MYSQL_USER"] == "admin"
        assert env["MYSQL_DATABASE"] == "legacy"
        assert svc.limits == ResourceLimits("2", "8G")
        backup = result.scripts["backup_legacy.sh"]
        assert f"mysqldump -u admin -p{env['MYSQL_PASSWORD']} legacy" in backup
        assert result.warnings == [
            "Parameter group 'mysql80-tuned' is attached; apply its custom "
            "parameters to the container configuration."
        ]

    def test_mariadb_defaults(self, mapper, make_resource):
        """Test default version, sizing and generated username."""
        resource = make_resource(
            "aws_db_instance.catalog",
            catalog.RDS_INSTANCE,
            name="catalog",
            config={"engine": "mariadb"},
        )

        result = mapper.map(resource)
        svc = result.service

        assert svc.image == "mariadb:11"
        assert svc.limits == DEFAULT_LIMITS
        assert re.fullmatch(r"mariadb_[a-z0-9]{6}", svc.environment["MYSQL_USER"])
        assert "mysqladmin ping" in svc.health_check.test[1]
        assert "homeport.instance_class" not in svc.labels
        assert result.scripts == {}
        assert result.manual_steps[-1] == (
            "Import a dump of the RDS database into the container"
        )

    def test_database_name_sanitized(self, mapper, make_resource):
        """Test database names are made SQL-safe."""
        resource = make_resource(
            "db",
            catalog.RDS_INSTANCE,
            config={"identifier": "2024-reports", "engine": "postgres"},
        )
        result = mapper.map(resource)
        assert result.service.environment["POSTGRES_DB"] == "app_2024_reports"

    def test_unsupported_engine(self, mapper, make_resource):
        """Test engines without a container image get a placeholder."""
        resource = make_resource(
            "erp",
            catalog.RDS_INSTANCE,
            config={"identifier": "erp", "engine": "oracle-ee"},
        )

        result = mapper.map(resource)

        assert result.service.image == "alpine:3.19"
        assert result.service.labels["homeport.engine"] == "oracle-ee"
        assert result.warnings == [
            "Database engine 'oracle-ee' has no self-hosted mapping; "
            "a placeholder service was generated."
        ]
        assert "'oracle-ee'" in result.manual_steps[0]
