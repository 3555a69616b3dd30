"""Cloud DNS managed zone to a CoreDNS container serving a zone file."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import HealthCheck, MappingResult

COREDNS_IMAGE = "coredns/coredns:1.11.1"
HEALTH_PORT = 8080

_COREFILE = """# Generated for Cloud DNS zone {zone}
{origin} {{
    file /etc/coredns/{zone_file}
    log
    errors
}}

. {{
    forward . 8.8.8.8 1.1.1.1
    cache 30
    health :{health_port}
    errors
}}
"""

_ZONE_FILE = """; Generated for Cloud DNS zone {zone}
$ORIGIN {origin}
$TTL 300
@   IN SOA ns1.{origin} hostmaster.{origin} (
        {serial} ; serial
        3600       ; refresh
        600        ; retry
        604800     ; expire
        300 )      ; minimum
@   IN NS  ns1.{origin}
ns1 IN A   127.0.0.1
"""

_EXPORT_SCRIPT = """#!/bin/bash
# Export the records of Cloud DNS zone {zone} in zone-file format.
set -euo pipefail

gcloud dns record-sets export ./config/coredns/{zone_file}.export \\
  --zone={zone} --zone-file-format
echo "Merge ./config/coredns/{zone_file}.export into ./config/coredns/{zone_file}"
"""


def zone_origin(dns_name: str) -> str:
    """``example.com`` and ``example.com.`` both give ``example.com.``."""
    name = dns_name.strip().lower()
    if not name:
        raise ValueError("Zone has no DNS name")
    return name if name.endswith(".") else f"{name}."


class CloudDNSZoneMapper(BaseMapper):
    """Maps ``google_dns_managed_zone`` to CoreDNS."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.CLOUD_DNS_ZONE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        zone = resource.get_config_str("name") or resource.name
        origin = zone_origin(
            resource.get_config_str("dns_name") or resource.get_config_str("dnsName")
        )
        zone_file = f"{origin.rstrip('.')}.zone"
        result = self.new_result(resource, f"coredns-{zone}", COREDNS_IMAGE)
        svc = result.service
        assert svc is not None

        svc.command = ["-conf", "/etc/coredns/Corefile"]
        svc.ports = ["53:53/udp", "53:53/tcp"]
        svc.volumes = ["./config/coredns:/etc/coredns:ro"]
        svc.health_check = HealthCheck(
            test=("CMD", "wget", "-qO-", f"http://localhost:{HEALTH_PORT}/health")
        )
        svc.labels[f"{LABEL_PREFIX}.dns_name"] = origin

        result.add_config(
            "config/coredns/Corefile",
            _COREFILE.format(
                zone=zone, origin=origin, zone_file=zone_file, health_port=HEALTH_PORT
            ),
        )
        result.add_config(
            f"config/coredns/{zone_file}",
            _ZONE_FILE.format(zone=zone, origin=origin, serial=1),
        )
        result.add_script(
            f"export_{self.sanitize_name(zone)}_records.sh",
            _EXPORT_SCRIPT.format(zone=zone, zone_file=zone_file),
        )

        if resource.get_config_str("visibility").lower() == "private":
            result.add_warning(
                "The zone is private; keep port 53 off public interfaces."
            )
        if resource.get_config_str("dnssec_config.state").lower() == "on":
            result.add_warning("DNSSEC is enabled; CoreDNS serves the zone unsigned.")
            result.add_manual_step("Sign the zone with the CoreDNS dnssec plugin")
        if resource.get_config_dict("forwarding_config") or (
            resource.get_config_dict("peering_config")
        ):
            result.add_warning(
                "Forwarding or peering settings are replaced by the default "
                "upstream resolvers in the Corefile."
            )

        result.add_manual_step(
            f"Merge the exported records into config/coredns/{zone_file}"
        )
        result.add_manual_step(f"Check resolution: dig @localhost {origin} SOA")
        result.add_manual_step("Delegate the domain to this server once verified")
        return result
