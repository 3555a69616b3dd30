"""Tests for the infrastructure aggregate and its validation."""

import pytest

from homeport.core.errors import (
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateResourceError,
    NilResourceError,
    ResourceNotFoundError,
)
from homeport.domain import catalog
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Category, Provider


@pytest.fixture
def infra(make_resource):
    """Small graph: instance and database both depend on the network."""
    graph = Infrastructure(Provider.GCP, {"project_id": "acme"})
    graph.add_resource(
        make_resource("web", catalog.GCE_INSTANCE, dependencies=["net"])
    )
    graph.add_resource(make_resource("net", catalog.VPC_NETWORK))
    graph.add_resource(
        make_resource("db", catalog.CLOUD_SQL_INSTANCE, dependencies=["net"])
    )
    return graph


class TestInfrastructureContainer:
    """Test basic container behaviour."""

    def test_len_contains_iter(self, infra):
        """Test container protocol."""
        assert len(infra) == 3
        assert "web" in infra
        assert "nope" not in infra
        assert [r.id for r in infra] == ["web", "net", "db"]

    def test_repr(self, infra):
        """Test the short representation."""
        assert repr(infra) == "Infrastructure(provider='gcp', resources=3)"

    def test_metadata_is_copied(self):
        """Test the constructor copies metadata."""
        metadata = {"project_id": "acme"}
        graph = Infrastructure(Provider.GCP, metadata)
        graph.metadata["extra"] = "x"
        assert metadata == {"project_id": "acme"}

    def test_add_none(self):
        """Test adding None raises."""
        with pytest.raises(NilResourceError):
            Infrastructure(Provider.GCP).add_resource(None)

    def test_add_duplicate(self, infra, make_resource):
        """Test duplicate IDs are rejected and the original kept."""
        with pytest.raises(DuplicateResourceError) as exc_info:
            infra.add_resource(make_resource("web", catalog.GCS_BUCKET))
        assert exc_info.value.resource_id == "web"
        assert infra.get_resource("web").type is catalog.GCE_INSTANCE

    def test_get_resource_missing(self, infra):
        """Test looking up an unknown ID."""
        with pytest.raises(ResourceNotFoundError):
            infra.get_resource("missing")

    def test_get_resources_by_type(self, infra, make_resource):
        """Test type queries see resources added after the first query."""
        assert [r.id for r in infra.get_resources_by_type(catalog.GCE_INSTANCE)] == [
            "web"
        ]
        infra.add_resource(make_resource("api", catalog.GCE_INSTANCE))
        assert [r.id for r in infra.get_resources_by_type(catalog.GCE_INSTANCE)] == [
            "web",
            "api",
        ]
        assert infra.get_resources_by_type(catalog.GCS_BUCKET) == []

    def test_resource_ids(self, infra):
        """Test IDs in insertion order."""
        assert infra.resource_ids() == ["web", "net", "db"]


class TestValidation:
    """Test dependency validation."""

    def test_valid_graph(self, infra):
        """Test a clean graph validates."""
        report = infra.validate()
        assert report.ok
        assert report.resource_count == 3
        assert report.warnings == []

    def test_dangling_strict(self, infra, make_resource):
        """Test strict mode rejects unknown dependencies."""
        infra.add_resource(make_resource("app", dependencies=["ghost", "net"]))
        with pytest.raises(DanglingDependencyError) as exc_info:
            infra.validate()
        assert exc_info.value.edges == [("app", "ghost")]

    def test_dangling_lenient(self, infra, make_resource):
        """Test lenient mode reports unknown dependencies as warnings."""
        infra.add_resource(make_resource("app", dependencies=["ghost"]))
        report = infra.validate(strict=False)
        assert not report.ok
        assert report.dangling == [("app", "ghost")]
        assert report.warnings == ["Resource 'app' depends on unknown resource 'ghost'"]

    def test_dangling_dependencies_mapping(self, infra, make_resource):
        """Test the raw dangling mapping."""
        infra.add_resource(make_resource("app", dependencies=["x", "y"]))
        assert infra.dangling_dependencies() == {"app": ["x", "y"]}

    def test_cycle_detected(self, make_resource):
        """Test cycles are rejected with the cycle path."""
        graph = Infrastructure(Provider.GCP)
        graph.add_resource(make_resource("a", dependencies=["b"]))
        graph.add_resource(make_resource("b", dependencies=["c"]))
        graph.add_resource(make_resource("c", dependencies=["a"]))
        with pytest.raises(DependencyCycleError) as exc_info:
            graph.validate(strict=False)
        assert exc_info.value.cycle == ["a", "b", "c"]

    def test_cycle_detected_past_acyclic_prefix(self, make_resource):
        """Test the reported cycle excludes nodes leading into it."""
        graph = Infrastructure(Provider.GCP)
        graph.add_resource(make_resource("entry", dependencies=["a"]))
        graph.add_resource(make_resource("a", dependencies=["b"]))
        graph.add_resource(make_resource("b", dependencies=["a"]))
        with pytest.raises(DependencyCycleError) as exc_info:
            graph.validate()
        assert exc_info.value.cycle == ["a", "b"]

    def test_validate_does_not_modify(self, infra, make_resource):
        """Test validation leaves the graph untouched."""
        infra.add_resource(make_resource("app", dependencies=["ghost"]))
        infra.validate(strict=False)
        assert infra.get_resource("app").dependencies == ["ghost"]
        assert len(infra) == 4


class TestTopologicalOrder:
    """Test dependency ordering."""

    def test_dependencies_first(self, infra):
        """Test dependencies precede dependants, ties by insertion."""
        assert [r.id for r in infra.topological_order()] == ["net", "web", "db"]

    def test_dangling_ignored(self, make_resource):
        """Test unknown dependencies do not break ordering."""
        graph = Infrastructure(Provider.GCP)
        graph.add_resource(make_resource("a", dependencies=["ghost"]))
        assert [r.id for r in graph.topological_order()] == ["a"]

    def test_cycle_raises(self, make_resource):
        """Test ordering a cyclic graph raises."""
        graph = Infrastructure(Provider.GCP)
        graph.add_resource(make_resource("a", dependencies=["b"]))
        graph.add_resource(make_resource("b", dependencies=["a"]))
        with pytest.raises(DependencyCycleError):
            graph.topological_order()


class TestFilterAndSerialise:
    """Test filtering and dictionary conversion."""

    def test_filter_returns_copies(self, infra):
        """Test filtering keeps provider and metadata but copies resources."""
        filtered = infra.filter(lambda r: r.type.category is Category.NETWORKING)
        assert filtered.resource_ids() == ["net"]
        assert filtered.provider is Provider.GCP
        assert filtered.metadata == {"project_id": "acme"}

        filtered.get_resource("net").config["mtu"] = 1500
        assert "mtu" not in infra.get_resource("net").config

    def test_to_dict(self, infra):
        """Test serialised structure."""
        data = infra.to_dict()
        assert data["provider"] == "gcp"
        assert data["metadata"] == {"project_id": "acme"}
        assert [r["id"] for r in data["resources"]] == ["web", "net", "db"]
