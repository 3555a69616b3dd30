"""Default parser set."""

from __future__ import annotations

from homeport.parsers.aws import (
    AWSTerraformParser,
    AWSTFStateParser,
    CloudFormationParser,
)
from homeport.parsers.gcp import (
    DeploymentManagerParser,
    GCPAPIParser,
    GCPTerraformParser,
    GCPTFStateParser,
)
from homeport.parsers.gcp.api import ClientFactory
from homeport.parsers.gcp.credentials import GCPCredentialResolver
from homeport.parsers.registry import ParserRegistry


def register_default_parsers(
    registry: ParserRegistry,
    gcp_client_factory: ClientFactory | None = None,
    gcp_credential_resolver: GCPCredentialResolver | None = None,
) -> ParserRegistry:
    """
    Register the built-in parsers on ``registry``.

    GCP parsers come first, so they win confidence ties.

    Args:
        registry: Registry to populate.
        gcp_client_factory: Optional client factory for the live-API parser.
        gcp_credential_resolver: Optional resolver for the live-API parser.

    Returns:
        The same registry, for chaining.

    """
    registry.register(
        GCPAPIParser(
            client_factory=gcp_client_factory,
            credential_resolver=gcp_credential_resolver,
        )
    )
    registry.register(GCPTFStateParser())
    registry.register(DeploymentManagerParser())
    registry.register(GCPTerraformParser())
    registry.register(AWSTFStateParser())
    registry.register(CloudFormationParser())
    registry.register(AWSTerraformParser())
    return registry


def create_default_registry(max_probe_workers: int = 8) -> ParserRegistry:
    """Return a new registry holding the built-in parsers."""
    return register_default_parsers(ParserRegistry(max_probe_workers=max_probe_workers))
