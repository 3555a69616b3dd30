"""GKE cluster to a k3s migration plan."""

from __future__ import annotations

import re

from homeport.core.constants import DEFAULT_NETWORK
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult

DEFAULT_K3S_VERSION = "v1.29.4+k3s1"

_GKE_VERSION = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?")

_SETUP_SCRIPT = """#!/bin/bash
# Start a single-node k3s server standing in for GKE cluster {cluster}.
set -euo pipefail

K3S_TOKEN="${{K3S_TOKEN:-{token}}}"
mkdir -p ./data/{name} ./kubeconfig

docker run -d --name {name} --privileged --restart unless-stopped \\
  --network {network} \\
  -p 6443:6443 -p 80:80 -p 443:443 \\
  -e K3S_TOKEN="$K3S_TOKEN" \\
  -e K3S_KUBECONFIG_OUTPUT=/output/kubeconfig.yaml \\
  -e K3S_KUBECONFIG_MODE=644 \\
  -v "$(pwd)/data/{name}:/var/lib/rancher/k3s" \\
  -v "$(pwd)/kubeconfig:/output" \\
  rancher/k3s:{image_tag} server

until [ -f ./kubeconfig/kubeconfig.yaml ]; do
  echo "Waiting for k3s..."
  sleep 5
done
echo "export KUBECONFIG=$(pwd)/kubeconfig/kubeconfig.yaml"
"""

_EXPORT_SCRIPT = """#!/bin/bash
# Export workloads from GKE cluster {cluster} for re-applying on k3s.
set -euo pipefail

mkdir -p ./k8s-export
for kind in deployments statefulsets daemonsets services configmaps ingresses cronjobs; do
  kubectl --context "${{GKE_CONTEXT:?set GKE_CONTEXT}}" get "$kind" \\
    --all-namespaces -o yaml > "./k8s-export/$kind.yaml"
done
echo "Review ./k8s-export before applying it to k3s"
"""


def k3s_version(gke_version: str) -> str:
    """
    Pick the k3s release matching a GKE master version.

    ``1.29.4-gke.1043002`` gives ``v1.29.4+k3s1``; a bare ``1.28`` gives
    ``v1.28.0+k3s1``. Unparseable versions give the default release.
    """
    match = _GKE_VERSION.match(gke_version or "")
    if not match:
        return DEFAULT_K3S_VERSION
    major, minor, patch = match.groups()
    return f"v{major}.{minor}.{patch or 0}+k3s1"


class GKEClusterMapper(BaseMapper):
    """
    Maps ``google_container_cluster`` to a k3s migration plan.

    k3s needs a privileged container, which the service model does not
    express, so the result carries setup and export scripts plus manual
    steps instead of a service.
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.GKE_CLUSTER, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        cluster = resource.get_config_str("name") or resource.name
        name = self.sanitize_name(f"k3s-{cluster}")
        version = k3s_version(
            resource.get_config_str("min_master_version")
            or resource.get_config_str("currentMasterVersion")
        )

        result = MappingResult(
            service=None,
            source_resource_id=resource.id,
            source_type=resource.type.name,
        )
        result.add_network(DEFAULT_NETWORK)
        result.add_script(
            f"setup_{name}.sh",
            _SETUP_SCRIPT.format(
                cluster=cluster,
                name=name,
                network=DEFAULT_NETWORK,
                token=self.credentials.token(),
                image_tag=version.replace("+", "-"),
            ),
        )
        result.add_script(
            f"export_{name}_workloads.sh", _EXPORT_SCRIPT.format(cluster=cluster)
        )

        result.add_warning(
            "GKE clusters are not recreated as compose services; a single-node "
            f"k3s {version} server is started by setup_{name}.sh."
        )
        self._node_warnings(resource, result)
        if resource.get_config_dict("private_cluster_config"):
            result.add_warning(
                "The cluster is private; k3s is reachable on the host ports."
            )
        if resource.get_config_dict("workload_identity_config"):
            result.add_warning(
                "Workload Identity bindings are lost; give pods credentials "
                "through Kubernetes secrets."
            )
        if resource.get_config_str("network_policy.enabled") == "true":
            result.add_warning(
                "Network policies are enforced by k3s's embedded controller."
            )

        result.add_manual_step(f"Run setup_{name}.sh on the Docker host")
        result.add_manual_step(
            f"Run export_{name}_workloads.sh against the GKE cluster"
        )
        result.add_manual_step(
            "Replace GKE-specific objects (BackendConfig, ManagedCertificate, "
            "GCE ingress classes) before applying the export"
        )
        result.add_manual_step("Apply the export with kubectl and check the pods")
        return result

    @staticmethod
    def _node_warnings(resource: Resource, result: MappingResult) -> None:
        nodes = resource.get_config_int("initial_node_count") or (
            resource.get_config_int("currentNodeCount")
        )
        pools = resource.get_config_list("node_pools") or (
            resource.get_config_list("node_pool")
        )
        pools = [p for p in pools if p]
        if nodes > 1:
            result.add_warning(
                f"The cluster runs {nodes} nodes; add k3s agents for more than one."
            )
        if pools:
            result.add_warning(
                f"{len(pools)} node pool(s) are flattened into one k3s node."
            )
        machine_type = resource.get_config_str("node_config.machine_type")
        if machine_type:
            result.add_warning(
                f"Nodes use {machine_type}; size the Docker host accordingly."
            )
