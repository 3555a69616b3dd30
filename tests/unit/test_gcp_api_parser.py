"""Tests for live Google Cloud discovery."""

from collections import Counter
from unittest.mock import MagicMock

import pytest

from homeport.core.cancellation import CancellationToken
from homeport.core.errors import (
    CategoryScanError,
    CredentialResolutionError,
    OperationCancelledError,
    UnsupportedFormatError,
)
from homeport.domain import catalog
from homeport.domain.resource import Provider
from homeport.parsers.base import ParseOptions
from homeport.parsers.gcp.api import GCPAPIParser, parse_target
from homeport.parsers.gcp.credentials import ResolvedCredentials
from homeport.parsers.gcp.scans import CategoryScan

COMPUTE = "https://www.googleapis.com/compute/v1/projects/acme-prod"

NETWORK = {
    "name": "default",
    "selfLink": f"{COMPUTE}/global/networks/default",
    "autoCreateSubnetworks": True,
}
INSTANCE = {
    "name": "web-1",
    "selfLink": f"{COMPUTE}/zones/us-central1-a/instances/web-1",
    "zone": f"{COMPUTE}/zones/us-central1-a",
    "machineType": f"{COMPUTE}/zones/us-central1-a/machineTypes/e2-medium",
    "status": "RUNNING",
    "networkInterfaces": [{"network": NETWORK["selfLink"]}],
    "labels": {"env": "prod"},
}
BUCKET = {"name": "assets", "location": "US"}


class FakeResolver:
    """Credential resolver that records its calls."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def resolve(self, credentials=None, project_hint=None):
        self.calls.append((credentials, project_hint))
        if self.error is not None:
            raise self.error
        return ResolvedCredentials(MagicMock(), project_hint or "acme-prod", "explicit")


@pytest.fixture
def client(fake_gcp_client):
    """Fake client holding a network, an instance and a bucket."""
    return fake_gcp_client(
        {
            "compute.networks": [NETWORK],
            "compute.instances": [INSTANCE],
            "storage.buckets": [BUCKET],
        }
    )


@pytest.fixture
def resolver():
    """Recording resolver."""
    return FakeResolver()


@pytest.fixture
def parser(client, resolver):
    """API parser wired to the fakes."""
    return GCPAPIParser(
        client_factory=lambda resolved: client, credential_resolver=resolver
    )


class TestTargets:
    """Test target parsing, detection and validation."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("gcp://acme-prod", "acme-prod"),
            ("gcp://acme-prod/", "acme-prod"),
            ("gcp://", ""),
            ("./terraform.tfstate", None),
            ("aws://123456789012", None),
        ],
    )
    def test_parse_target(self, path, expected):
        """Test project extraction from targets."""
        assert parse_target(path) == expected

    def test_detect_confidence(self):
        """Test only gcp:// targets are claimed."""
        parser = GCPAPIParser(credential_resolver=FakeResolver())
        assert parser.detect_confidence("gcp://acme") == 0.95
        assert parser.detect_confidence("main.tf") == 0.0

    def test_validate(self):
        """Test file paths are rejected."""
        with pytest.raises(UnsupportedFormatError):
            GCPAPIParser(credential_resolver=FakeResolver()).validate("main.tf")

    def test_parse_rejects_file_paths(self, parser, resolver):
        """Test parse validates before resolving credentials."""
        with pytest.raises(UnsupportedFormatError):
            parser.parse("state.tfstate")
        assert resolver.calls == []


class TestDiscovery:
    """Test a full discovery run against the fake client."""

    def test_resources_and_graph(self, parser, client):
        """Test scans produce a valid, linked graph."""
        infra = parser.parse("gcp://")

        assert infra.provider is Provider.GCP
        assert set(infra.resource_ids()) == {
            "projects/acme-prod/global/networks/default",
            "projects/acme-prod/zones/us-central1-a/instances/web-1",
            "projects/acme-prod/buckets/assets",
        }
        web = infra.get_resource(
            "projects/acme-prod/zones/us-central1-a/instances/web-1"
        )
        assert web.dependencies == ["projects/acme-prod/global/networks/default"]
        assert web.region == "us-central1"
        assert infra.validate().ok
        assert client.closed

    def test_metadata(self, parser):
        """Test project, regions, credential source and scan counts."""
        infra = parser.parse("gcp://")
        assert infra.metadata["project_id"] == "acme-prod"
        assert infra.metadata["scanned_regions"] == "us-central1"
        assert infra.metadata["credential_source"] == "explicit"
        assert infra.metadata["scan.compute.count"] == "1"
        assert infra.metadata["scan.identity.count"] == "0"

    def test_project_hint(self, parser, resolver):
        """Test the target project is passed to the resolver."""
        credentials = {"credentials_file": "/keys/sa.json"}
        infra = parser.parse("gcp://other", ParseOptions(credentials=credentials))
        assert resolver.calls == [(credentials, "other")]
        assert infra.metadata["project_id"] == "other"

    def test_bare_target_has_no_hint(self, parser, resolver):
        """Test bare targets leave the project to the resolver."""
        parser.parse("gcp://")
        assert resolver.calls == [({}, None)]

    def test_progress_events(self, parser):
        """Test each scan reports start and completion."""
        events = []
        parser.parse("gcp://", ParseOptions(on_progress=events.append))
        kinds = Counter(e.kind for e in events)
        assert kinds == {"scan_started": 10, "scan_completed": 10}
        completed = {e.category: e.count for e in events if e.kind == "scan_completed"}
        assert completed["storage"] == 1

    def test_filters_skip_scans(self, parser, client):
        """Test scans with no wanted types never call the API."""
        events = []
        infra = parser.parse(
            "gcp://",
            ParseOptions(filter_types={catalog.GCS_BUCKET}, on_progress=events.append),
        )
        assert infra.resource_ids() == ["projects/acme-prod/buckets/assets"]
        assert client.calls == [("storage.buckets", None)]
        skipped = [e.category for e in events if e.kind == "scan_skipped"]
        assert len(skipped) == 9
        assert "storage" not in skipped

    def test_regional_scans(self, fake_gcp_client, resolver):
        """Test regional services are listed once per configured region."""
        service = "projects/acme-prod/locations/europe-west1/services/api"
        client = fake_gcp_client(
            {("run.services", "europe-west1"): [{"name": service}]}
        )
        parser = GCPAPIParser(
            client_factory=lambda resolved: client, credential_resolver=resolver
        )

        infra = parser.parse(
            "gcp://",
            ParseOptions(
                regions=["europe-west1", "us-east1"],
                filter_types={catalog.CLOUD_RUN_V2_SERVICE},
            ),
        )

        assert client.calls == [
            ("run.services", "europe-west1"),
            ("run.services", "us-east1"),
        ]
        assert infra.get_resource(service).region == "europe-west1"
        assert infra.metadata["scanned_regions"] == "europe-west1,us-east1"


class TestDiscoveryFailures:
    """Test error policy, credentials and cancellation."""

    @pytest.fixture
    def failing_client(self, fake_gcp_client):
        """Client whose Cloud SQL listing fails."""
        return fake_gcp_client(
            {
                "storage.buckets": [BUCKET],
                "sqladmin.instances": RuntimeError("API disabled"),
            }
        )

    def test_scan_failure_aborts(self, failing_client, resolver):
        """Test a failing scan aborts the parse by default."""
        parser = GCPAPIParser(
            client_factory=lambda resolved: failing_client,
            credential_resolver=resolver,
        )
        with pytest.raises(CategoryScanError) as exc_info:
            parser.parse("gcp://")
        assert exc_info.value.scan == "database"
        assert "API disabled" in exc_info.value.message
        assert failing_client.closed

    def test_scan_failure_ignored(self, failing_client, resolver):
        """Test failing scans are skipped when errors are ignored."""
        parser = GCPAPIParser(
            client_factory=lambda resolved: failing_client,
            credential_resolver=resolver,
        )
        events = []

        infra = parser.parse(
            "gcp://", ParseOptions(ignore_errors=True, on_progress=events.append)
        )

        assert infra.resource_ids() == ["projects/acme-prod/buckets/assets"]
        failed = [e for e in events if e.kind == "scan_failed"]
        assert [(e.category, e.message) for e in failed] == [
            ("database", "API disabled")
        ]
        assert "scan.database.count" not in infra.metadata

    def test_credential_errors_are_never_ignored(self, fake_gcp_client, resolver):
        """Test credential failures inside scans always propagate."""

        def expired(ctx):
            raise CredentialResolutionError("gcp", "token refresh failed")

        parser = GCPAPIParser(
            client_factory=lambda resolved: fake_gcp_client(),
            credential_resolver=resolver,
            scans=[CategoryScan("storage", (catalog.GCS_BUCKET,), expired)],
        )
        with pytest.raises(CredentialResolutionError):
            parser.parse("gcp://", ParseOptions(ignore_errors=True))

    def test_resolver_failure(self, client):
        """Test resolution errors stop the parse before any client is built."""
        factory = MagicMock(return_value=client)
        parser = GCPAPIParser(
            client_factory=factory,
            credential_resolver=FakeResolver(
                CredentialResolutionError("gcp", "no project ID found")
            ),
        )
        with pytest.raises(CredentialResolutionError):
            parser.parse("gcp://")
        factory.assert_not_called()

    def test_cancelled_before_start(self, parser, resolver):
        """Test an already cancelled token stops the parse immediately."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            parser.parse("gcp://", ParseOptions(cancel_token=token))
        assert resolver.calls == []

    def test_cancelled_during_scans(self, fake_gcp_client, resolver):
        """Test cancellation mid-run surfaces after the scans stop."""
        token = CancellationToken()
        client = fake_gcp_client()

        def cancel(ctx):
            token.cancel()
            return []

        parser = GCPAPIParser(
            client_factory=lambda resolved: client,
            credential_resolver=resolver,
            scans=[CategoryScan("storage", (catalog.GCS_BUCKET,), cancel)],
        )
        with pytest.raises(OperationCancelledError):
            parser.parse("gcp://", ParseOptions(cancel_token=token, max_workers=1))
        assert client.closed

    def test_scan_list(self):
        """Test the default scan set."""
        names = [s.name for s in GCPAPIParser(credential_resolver=FakeResolver()).scans]
        assert names == [
            "compute",
            "containers",
            "serverless",
            "storage",
            "database",
            "messaging",
            "networking",
            "security",
            "identity",
            "scheduling",
        ]
