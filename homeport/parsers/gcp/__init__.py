"""Google Cloud parsers."""

from homeport.parsers.gcp.api import GCPAPIParser, parse_target
from homeport.parsers.gcp.client import GCPClient, GCPRestClient
from homeport.parsers.gcp.credentials import (
    GCPCredentialResolver,
    ResolvedCredentials,
    TokenProvider,
)
from homeport.parsers.gcp.deployment_manager import DeploymentManagerParser
from homeport.parsers.gcp.scans import DEFAULT_SCANS, CategoryScan, ScanContext
from homeport.parsers.gcp.terraform import GCPTerraformParser
from homeport.parsers.gcp.tfstate import GCPTFStateParser

__all__ = [
    "DEFAULT_SCANS",
    "CategoryScan",
    "DeploymentManagerParser",
    "GCPAPIParser",
    "GCPClient",
    "GCPCredentialResolver",
    "GCPRestClient",
    "GCPTFStateParser",
    "GCPTerraformParser",
    "ResolvedCredentials",
    "ScanContext",
    "TokenProvider",
    "parse_target",
]
