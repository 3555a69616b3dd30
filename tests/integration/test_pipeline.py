"""End-to-end tests: detect, parse, validate and map the sample inputs."""

from unittest.mock import MagicMock

import pytest

from homeport.domain.resource import Provider
from homeport.mappers.defaults import create_default_mapper_registry
from homeport.parsers.base import Format
from homeport.parsers.defaults import create_default_registry, register_default_parsers
from homeport.parsers.gcp.credentials import ResolvedCredentials
from homeport.parsers.registry import ParserRegistry

pytestmark = pytest.mark.integration


@pytest.fixture
def parsers():
    """Registry holding every built-in parser."""
    return create_default_registry()


@pytest.fixture
def mappers(seeded_credentials):
    """Registry holding every built-in mapper."""
    return create_default_mapper_registry(seeded_credentials)


def assert_dependencies_first(infra):
    """Check the graph validates and orders dependencies before dependents."""
    assert infra.validate().ok
    ordered = [r.id for r in infra.topological_order()]
    assert sorted(ordered) == sorted(infra.resource_ids())
    for resource in infra:
        for dep in resource.dependencies:
            assert ordered.index(dep) < ordered.index(resource.id)


def images(report):
    """Main service image per source resource ID."""
    return {
        r.source_resource_id: r.service.image if r.service else ""
        for r in report.results
    }


class TestTerraformState:
    """Test Terraform state through the whole pipeline."""

    def test_gcp_state(self, parsers, mappers, gcp_tfstate):
        """Test a Google state file maps everything but the instance group."""
        parser = parsers.select_best(str(gcp_tfstate))
        assert parser.provider is Provider.GCP
        assert Format.TFSTATE in parser.supported_formats

        infra = parsers.parse(str(gcp_tfstate))
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        assert len(report.results) == 4
        assert report.unmapped == ["google_compute_instance_group.web_group"]
        assert report.ok
        db = images(report)["database.google_sql_database_instance.primary"]
        assert db == "postgres:15-alpine"

    def test_aws_state(self, parsers, mappers, aws_tfstate):
        """Test an AWS state file maps the database and the bucket."""
        infra = parsers.parse(str(aws_tfstate))
        assert infra.provider is Provider.AWS
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        assert {r.source_resource_id for r in report.results} == {
            "aws_db_instance.orders",
            "aws_s3_bucket.assets",
        }
        assert report.unmapped == ["aws_security_group.db"]
        by_id = {r.source_resource_id: r for r in report.results}
        db = by_id["aws_db_instance.orders"]
        svc = db.service
        assert svc.name == "orders-db"
        assert svc.image == "postgres:15-alpine"
        assert svc.environment["POSTGRES_USER"] == "orders_app"
        assert svc.limits.cpus == "2"
        assert svc.limits.memory == "4G"
        assert "backup_orders-db.sh" in db.scripts


class TestDeploymentManager:
    """Test a Deployment Manager config through the whole pipeline."""

    def test_pipeline(self, parsers, mappers, dm_config):
        """Test camelCase properties reach the mappers."""
        infra = parsers.parse(str(dm_config))
        assert infra.provider is Provider.GCP
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        mapped = images(report)
        assert set(mapped) == {"app-network", "app-vm", "app-bucket", "app-db"}
        assert mapped["app-db"] == "mysql:8.0"
        assert report.unmapped == ["helper"]


class TestTerraformSource:
    """Test Terraform HCL through the whole pipeline."""

    def test_gcp_configuration(self, parsers, mappers, gcp_terraform):
        """Test every Google block maps."""
        infra = parsers.parse(str(gcp_terraform))
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        assert len(report.results) == 3
        assert report.unmapped == []

    def test_aws_configuration(self, parsers, mappers, aws_terraform):
        """Test AWS blocks map when the AWS parser is chosen explicitly."""
        parser = parsers.get_by_format(Provider.AWS, Format.TERRAFORM)
        infra = parser.parse(str(aws_terraform))
        assert infra.provider is Provider.AWS
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        assert [r.source_resource_id for r in report.results] == [
            "aws_s3_bucket.logs",
            "aws_db_instance.main",
        ]
        assert images(report)["aws_db_instance.main"] == "mysql:8.0"


class TestCloudFormation:
    """Test a CloudFormation template through the whole pipeline."""

    def test_pipeline(self, parsers, mappers, cfn_template):
        """Test the bucket and database map and the rest is reported."""
        infra = parsers.parse(str(cfn_template))
        assert infra.provider is Provider.AWS
        assert_dependencies_first(infra)

        report = mappers.map_batch(infra.topological_order())

        assert set(images(report)) == {"DataBucket", "OrdersDB"}
        assert sorted(report.unmapped) == [
            "Custom",
            "DBSecret",
            "DeadLetterQueue",
            "Queue",
        ]
        db = next(r for r in report.results if r.source_resource_id == "OrdersDB")
        assert db.service.name == "orders-db"
        assert db.service.environment["POSTGRES_USER"] == "orders"
        assert db.service.labels["homeport.instance_class"] == "db.t3.small"


class FakeResolver:
    """Resolver that always succeeds for the target project."""

    def resolve(self, credentials=None, project_hint=None):
        return ResolvedCredentials(MagicMock(), project_hint or "acme-prod", "explicit")


class TestLiveDiscovery:
    """Test live discovery through the registry with a fake client."""

    def test_pipeline(self, mappers, fake_gcp_client):
        """Test a gcp:// target is routed to the API parser and mapped."""
        compute = "https://www.googleapis.com/compute/v1/projects/acme-prod"
        network = {"name": "default", "selfLink": f"{compute}/global/networks/default"}
        client = fake_gcp_client(
            {
                "compute.networks": [network],
                "compute.instances": [
                    {
                        "name": "web-1",
                        "selfLink": f"{compute}/zones/us-central1-a/instances/web-1",
                        "zone": f"{compute}/zones/us-central1-a",
                        "machineType": (
                            f"{compute}/zones/us-central1-a/machineTypes/e2-small"
                        ),
                        "networkInterfaces": [{"network": network["selfLink"]}],
                    }
                ],
                "storage.buckets": [{"name": "assets", "location": "US"}],
            }
        )
        registry = register_default_parsers(
            ParserRegistry(),
            gcp_client_factory=lambda resolved: client,
            gcp_credential_resolver=FakeResolver(),
        )

        infra = registry.parse("gcp://acme-prod")
        assert_dependencies_first(infra)
        report = mappers.map_batch(infra.topological_order())

        assert len(report.results) == 3
        assert report.unmapped == []
        assert client.closed
