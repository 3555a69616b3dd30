"""VPC network to a compose bridge network."""

from __future__ import annotations

from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult


class VPCNetworkMapper(BaseMapper):
    """Maps ``google_compute_network`` to a network-only result with no service."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.VPC_NETWORK, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        result = MappingResult(
            service=None,
            source_resource_id=resource.id,
            source_type=resource.type.name,
        )
        result.add_network(self.sanitize_name(name))

        if resource.get_config_bool("auto_create_subnetworks"):
            result.add_warning(
                "Network auto-creates a subnet per region; a single bridge "
                "network replaces all of them."
            )
        mtu = resource.get_config_int("mtu")
        if mtu > 0:
            result.add_warning(
                f"Custom MTU {mtu} is set; configure the bridge driver's "
                "com.docker.network.driver.mtu option if it matters."
            )
        if resource.get_config_str("routing_mode").upper() == "GLOBAL":
            result.add_warning("Global dynamic routing has no local equivalent.")
        if resource.get_config_list("peering"):
            result.add_warning(
                "Network peerings exist; attach services that talk across "
                "networks to both bridge networks."
            )
        result.add_manual_step(
            "Recreate firewall rules for this network as host firewall rules"
        )
        return result
