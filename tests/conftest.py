"""Pytest configuration and fixtures for Homeport tests."""

import os
import random
from pathlib import Path

import pytest

from homeport.core.logging import clear_context
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.credentials import CredentialGenerator

FIXTURES_DIR = Path(__file__).parent / "fixtures"

_ENV_PREFIXES = ("HOMEPORT_", "GOOGLE_", "GCLOUD_", "GCP_")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """
    Isolate tests from the developer's environment.

    Credentials pointers and Homeport settings on the host must never leak
    into discovery or error formatting.
    """
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    yield
    clear_context()


@pytest.fixture
def fixtures_dir():
    """Root of the on-disk input fixtures."""
    return FIXTURES_DIR


@pytest.fixture
def gcp_tfstate():
    """Terraform state holding Google resources."""
    return FIXTURES_DIR / "gcp" / "terraform.tfstate"


@pytest.fixture
def aws_tfstate():
    """Terraform state holding AWS resources."""
    return FIXTURES_DIR / "aws" / "terraform.tfstate"


@pytest.fixture
def dm_config():
    """Deployment Manager configuration."""
    return FIXTURES_DIR / "gcp" / "deployment.yaml"


@pytest.fixture
def gcp_terraform():
    """Terraform source declaring Google resources."""
    return FIXTURES_DIR / "gcp" / "main.tf"


@pytest.fixture
def aws_terraform():
    """Terraform source declaring AWS resources."""
    return FIXTURES_DIR / "aws" / "main.tf"


@pytest.fixture
def cfn_template():
    """CloudFormation template using short-form intrinsics."""
    return FIXTURES_DIR / "aws" / "template.yaml"


@pytest.fixture
def seeded_credentials():
    """Credential generator with reproducible output."""
    return CredentialGenerator(random.Random(42))


@pytest.fixture
def make_resource():
    """Factory for resources with sensible defaults."""

    def _make(
        resource_id="res",
        resource_type=catalog.GCE_INSTANCE,
        name=None,
        config=None,
        dependencies=None,
        region="us-central1",
    ):
        return Resource(
            id=resource_id,
            name=name or resource_id,
            type=resource_type,
            region=region,
            config=config or {},
            dependencies=list(dependencies or []),
        )

    return _make


class FakeGCPClient:
    """In-memory stand-in for GCPRestClient."""

    def __init__(self, items=None, project_id="acme-prod"):
        self.project_id = project_id
        self.items = dict(items or {})
        self.calls = []
        self.closed = False

    def list(self, service, region=None, cancel_token=None):
        self.calls.append((service, region))
        payload = self.items.get((service, region), self.items.get(service, []))
        if isinstance(payload, Exception):
            raise payload
        return [dict(item) for item in payload]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_gcp_client():
    """Factory for fake Google Cloud clients keyed by service name."""
    return FakeGCPClient
