"""Secret Manager secret to a Vault KV entry."""

from __future__ import annotations

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import health_check

VAULT_IMAGE = "hashicorp/vault:1.15"
VAULT_PORT = 8200

_SETUP_SCRIPT = """#!/bin/bash
# Create the Vault path for secret {secret}. The value is never exported.
set -euo pipefail

export VAULT_ADDR="${{VAULT_ADDR:-http://localhost:{port}}}"
export VAULT_TOKEN="${{VAULT_TOKEN:-{token}}}"

read -r -s -p "Value for {secret}: " SECRET_VALUE
echo
vault kv put secret/{secret} value="$SECRET_VALUE"
"""


class SecretManagerMapper(BaseMapper):
    """
    Maps ``google_secret_manager_secret`` to a Vault dev server.

    Only the secret's name is carried over; the payload is never read, so
    copying the value is always a manual step.
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.SECRET_MANAGER_SECRET, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        secret = (
            resource.get_config_str("secret_id")
            or resource.get_config_str("name")
            or resource.name
        )
        result = self.new_result(resource, "vault", VAULT_IMAGE)
        svc = result.service
        assert svc is not None

        token = self.credentials.token()
        svc.environment = {
            "VAULT_DEV_ROOT_TOKEN_ID": token,
            "VAULT_DEV_LISTEN_ADDRESS": f"0.0.0.0:{VAULT_PORT}",
        }
        svc.ports = [f"{VAULT_PORT}:{VAULT_PORT}"]
        svc.command = ["server", "-dev"]
        svc.health_check = health_check("vault")
        svc.labels[f"{LABEL_PREFIX}.secret"] = secret

        result.add_script(
            f"setup_vault_{self.sanitize_name(secret)}.sh",
            _SETUP_SCRIPT.format(secret=secret, port=VAULT_PORT, token=token),
        )
        result.add_warning(
            "Vault runs in dev mode with in-memory storage; configure a storage "
            "backend and unseal keys before relying on it."
        )
        result.add_manual_step(
            f"Copy the current value of secret '{secret}' into Vault at "
            f"secret/{secret}"
        )
        if resource.get_config_list("rotation") or resource.get_config_dict("rotation"):
            result.add_warning(
                "Secret rotation is configured; Vault KV does not rotate."
            )
        return result
