"""Tests for the canonical resource model."""

from datetime import datetime, timezone

import pytest

from homeport.domain import catalog
from homeport.domain.resource import Category, Provider, Resource, ResourceType


class TestProvider:
    """Test provider helpers."""

    @pytest.mark.parametrize(
        ("provider", "prefix"),
        [
            (Provider.AWS, "aws_"),
            (Provider.GCP, "google_"),
            (Provider.AZURE, "azurerm_"),
        ],
    )
    def test_type_prefix(self, provider, prefix):
        """Test the Terraform prefix of each provider."""
        assert provider.type_prefix == prefix

    def test_from_type_name(self):
        """Test provider detection from type names."""
        assert Provider.from_type_name("google_storage_bucket") is Provider.GCP
        assert Provider.from_type_name("aws_s3_bucket") is Provider.AWS
        assert Provider.from_type_name("azurerm_key_vault") is Provider.AZURE
        assert Provider.from_type_name("kubernetes_deployment") is None

    def test_values_are_strings(self):
        """Test enums compare equal to their values."""
        assert Provider.GCP == "gcp"
        assert Category.DATABASE == "database"


class TestResourceType:
    """Test resource type identity."""

    def test_str_is_name(self):
        """Test string conversion."""
        assert str(catalog.GCS_BUCKET) == "google_storage_bucket"

    def test_equality_by_value(self):
        """Test types with the same fields are equal and hashable."""
        first = ResourceType("x_thing", Provider.GCP, Category.UNKNOWN)
        second = ResourceType("x_thing", Provider.GCP, Category.UNKNOWN)
        assert first == second
        assert len({first, second}) == 1

    def test_frozen(self):
        """Test that types are immutable."""
        with pytest.raises(AttributeError):
            catalog.GCS_BUCKET.name = "other"

    def test_of_known_and_opaque(self):
        """Test lookup through ResourceType.of."""
        assert ResourceType.of("aws_sqs_queue") is catalog.SQS_QUEUE
        opaque = ResourceType.of("aws_glue_job")
        assert opaque.provider is Provider.AWS
        assert opaque.category is Category.UNKNOWN


class TestResourceDependencies:
    """Test dependency bookkeeping."""

    def test_constructor_deduplicates(self):
        """Test duplicates, self references and blanks are dropped."""
        resource = Resource(
            id="a",
            name="a",
            type=catalog.GCE_INSTANCE,
            dependencies=["b", "a", "", "b", "c"],
        )
        assert resource.dependencies == ["b", "c"]

    def test_add_dependency(self):
        """Test adding dependencies keeps order and ignores repeats."""
        resource = Resource(id="a", name="a", type=catalog.GCE_INSTANCE)
        resource.add_dependency("net")
        resource.add_dependency("disk")
        resource.add_dependency("net")
        resource.add_dependency("a")
        assert resource.dependencies == ["net", "disk"]

    def test_defaults(self):
        """Test default field values."""
        resource = Resource(id="a", name="a", type=catalog.GCS_BUCKET)
        assert resource.region == "global"
        assert resource.external_ref is None
        assert resource.config == {}
        assert resource.tags == {}
        assert resource.created_at is None


class TestResourceConfig:
    """Test defensive config accessors."""

    @pytest.fixture
    def resource(self):
        """Resource with Terraform-shaped nested config."""
        return Resource(
            id="db",
            name="db",
            type=catalog.CLOUD_SQL_INSTANCE,
            config={
                "database_version": "POSTGRES_15",
                "settings": [
                    {
                        "tier": "db-custom-2-7680",
                        "disk_size": "20",
                        "backup_configuration": [{"enabled": True}],
                        "ip_configuration": [{"ipv4_enabled": "false"}],
                    }
                ],
                "replicas": ["r1", "r2"],
                "port": 5432.0,
                "empty": None,
                "flag": 1,
                "labels": {"env": "prod"},
            },
        )

    def test_get_config_steps_through_single_lists(self, resource):
        """Test nested block traversal."""
        assert resource.get_config("settings.tier") == "db-custom-2-7680"
        assert resource.get_config("settings.backup_configuration.enabled") is True

    def test_get_config_numeric_index(self, resource):
        """Test list indexing by numeric segment."""
        assert resource.get_config("replicas.1") == "r2"
        assert resource.get_config("replicas.5", "none") == "none"

    def test_get_config_multi_element_list_needs_index(self, resource):
        """Test that named segments do not guess into longer lists."""
        assert resource.get_config("replicas.name", "x") == "x"

    def test_get_config_missing_and_none(self, resource):
        """Test defaults for missing paths and None values."""
        assert resource.get_config("nope", 7) == 7
        assert resource.get_config("empty", "d") == "d"
        assert resource.get_config("database_version.more") is None

    def test_get_config_str(self, resource):
        """Test string conversion rules."""
        assert resource.get_config_str("database_version") == "POSTGRES_15"
        assert resource.get_config_str("port") == "5432.0"
        backup = "settings.backup_configuration.enabled"
        assert resource.get_config_str(backup) == "true"
        assert resource.get_config_str("labels", "none") == "none"
        assert resource.get_config_str("missing") == ""

    def test_get_config_int(self, resource):
        """Test integer conversion rules."""
        assert resource.get_config_int("settings.disk_size") == 20
        assert resource.get_config_int("port") == 5432
        assert resource.get_config_int("settings.backup_configuration.enabled") == 1
        assert resource.get_config_int("database_version", -1) == -1
        assert resource.get_config_int("labels", 3) == 3

    def test_get_config_bool(self, resource):
        """Test boolean conversion rules."""
        ipv4 = "settings.ip_configuration.ipv4_enabled"
        assert resource.get_config_bool(ipv4) is False
        assert resource.get_config_bool("flag") is True
        assert resource.get_config_bool("database_version", True) is True
        assert resource.get_config_bool("missing") is False

    def test_get_config_dict(self, resource):
        """Test mapping access unwraps single-element lists."""
        assert resource.get_config_dict("settings")["tier"] == "db-custom-2-7680"
        assert resource.get_config_dict("labels") == {"env": "prod"}
        assert resource.get_config_dict("database_version") == {}

    def test_get_config_list(self, resource):
        """Test list access."""
        assert resource.get_config_list("replicas") == ["r1", "r2"]
        assert resource.get_config_list("labels") == []


class TestResourceCopyAndSerialise:
    """Test copying and dictionary conversion."""

    def test_copy_is_deep(self):
        """Test that copies share no mutable state."""
        original = Resource(
            id="a",
            name="a",
            type=catalog.GCS_BUCKET,
            config={"cors": [{"origin": ["*"]}]},
            tags={"env": "prod"},
            dependencies=["b"],
        )
        clone = original.copy()
        clone.config["cors"][0]["origin"].append("x")
        clone.tags["env"] = "dev"
        clone.add_dependency("c")

        assert original.config == {"cors": [{"origin": ["*"]}]}
        assert original.tags == {"env": "prod"}
        assert original.dependencies == ["b"]
        assert clone.type == catalog.GCS_BUCKET

    def test_to_dict(self):
        """Test serialised fields."""
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        resource = Resource(
            id="google_storage_bucket.assets",
            name="assets",
            type=catalog.GCS_BUCKET,
            region="us",
            external_ref="projects/p/buckets/assets",
            config={"location": "US"},
            tags={"env": "prod"},
            dependencies=["x"],
            created_at=created,
        )
        assert resource.to_dict() == {
            "id": "google_storage_bucket.assets",
            "name": "assets",
            "type": "google_storage_bucket",
            "provider": "gcp",
            "category": "storage",
            "region": "us",
            "external_ref": "projects/p/buckets/assets",
            "config": {"location": "US"},
            "tags": {"env": "prod"},
            "dependencies": ["x"],
            "created_at": "2024-01-02T03:04:05+00:00",
        }

    def test_to_dict_without_timestamp(self):
        """Test that a missing timestamp serialises as None."""
        resource = Resource(id="a", name="a", type=catalog.GCS_BUCKET)
        assert resource.to_dict()["created_at"] is None
