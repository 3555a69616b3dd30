"""Cloud Functions (1st and 2nd gen) to a functions-framework container."""

from __future__ import annotations

import re

from homeport.core.constants import LABEL_PREFIX, REDACTED_VALUE
from homeport.domain import catalog
from homeport.domain.resource import Resource, ResourceType
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult, ResourceLimits
from homeport.mappers.tables import format_memory_mib, health_check, memory_quantity

FUNCTION_PORT = 8080
DEFAULT_MEMORY = "256M"

_RUNTIME = re.compile(r"^([a-z]+?)(\d+)$")

_DOCKERFILES = {
    "python": """FROM python:{version}-slim

# Generated for Cloud Function: {name}

WORKDIR /app
COPY functions/{name}/ /app/
RUN pip install --no-cache-dir functions-framework \\
    && if [ -f requirements.txt ]; then pip install --no-cache-dir -r requirements.txt; fi

ENV PORT={port}
CMD ["functions-framework", "--target={entry_point}", "--port={port}"]
""",
    "nodejs": """FROM node:{version}-slim

# Generated for Cloud Function: {name}

WORKDIR /app
COPY functions/{name}/ /app/
RUN npm install --omit=dev && npm install @google-cloud/functions-framework

ENV PORT={port}
CMD ["npx", "functions-framework", "--target={entry_point}", "--port={port}"]
""",
}


def runtime_base(runtime: str) -> tuple[str, str] | None:
    """
    Split a runtime identifier into language and image version.

    ``python311`` gives ``("python", "3.11")`` and ``nodejs20`` gives
    ``("nodejs", "20")``. Languages without a generated Dockerfile give None.
    """
    match = _RUNTIME.match((runtime or "").lower())
    if not match:
        return None
    language, digits = match.groups()
    if language == "python" and len(digits) >= 2:
        return language, f"{digits[0]}.{digits[1:]}"
    if language == "nodejs":
        return language, digits
    return None


class CloudFunctionMapper(BaseMapper):
    """
    Maps Cloud Functions to a locally built container on port 8080.

    1st gen keeps runtime settings at the top level; 2nd gen nests them in
    ``build_config`` and ``service_config``. Register one instance per type.
    """

    def __init__(
        self,
        resource_type: ResourceType = catalog.CLOUD_FUNCTION_V2,
        credentials: CredentialGenerator | None = None,
    ):
        super().__init__(resource_type, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        name = resource.get_config_str("name") or resource.name
        service_name = self.sanitize_name(name)
        result = self.new_result(resource, name, f"{service_name}:latest")
        svc = result.service
        assert svc is not None

        runtime = resource.get_config_str("build_config.runtime") or (
            resource.get_config_str("runtime")
        )
        entry_point = (
            resource.get_config_str("build_config.entry_point")
            or resource.get_config_str("entry_point")
            or resource.get_config_str("entryPoint")
            or name
        )

        svc.ports = [f"{FUNCTION_PORT}:{FUNCTION_PORT}"]
        svc.environment = self._environment(resource, result)
        svc.environment["PORT"] = str(FUNCTION_PORT)
        svc.limits = ResourceLimits(cpus="1", memory=self._memory(resource))
        svc.health_check = health_check("http", port=FUNCTION_PORT)
        svc.labels.update(
            {
                f"{LABEL_PREFIX}.runtime": runtime or "unknown",
                "traefik.enable": "true",
                f"traefik.http.routers.{service_name}.rule": (
                    f"Host(`{service_name}.localhost`)"
                ),
                f"traefik.http.services.{service_name}.loadbalancer.server.port": (
                    str(FUNCTION_PORT)
                ),
            }
        )

        base = runtime_base(runtime)
        if base is None:
            result.add_warning(
                f"No Dockerfile template for runtime '{runtime or 'unknown'}'; "
                "write one that serves the function on port 8080."
            )
        else:
            language, version = base
            result.add_config(
                f"functions/{name}/Dockerfile",
                _DOCKERFILES[language].format(
                    name=name,
                    version=version,
                    entry_point=entry_point,
                    port=FUNCTION_PORT,
                ),
            )

        self._add_warnings(resource, result)
        result.add_manual_step(
            f"Copy the function source into functions/{name}/ and build it: "
            f"docker build -t {svc.image} -f functions/{name}/Dockerfile ."
        )
        result.add_manual_step(
            f"Invoke the function at http://{service_name}.localhost "
            "(requires Traefik)"
        )
        return result

    @staticmethod
    def _environment(resource: Resource, result: MappingResult) -> dict[str, str]:
        values = resource.get_config_dict(
            "service_config.environment_variables"
        ) or resource.get_config_dict("environment_variables")
        env = {str(k): "" if v is None else str(v) for k, v in values.items()}
        if REDACTED_VALUE in env.values():
            result.add_manual_step(
                "Fill in the environment values redacted during discovery"
            )
        secrets = resource.get_config_list(
            "service_config.secret_environment_variables"
        ) or resource.get_config_list("secret_environment_variables")
        if secrets:
            result.add_warning(
                f"{len(secrets)} secret environment variable(s) come from Secret "
                "Manager; supply them from Vault or an env file."
            )
        return env

    @staticmethod
    def _memory(resource: Resource) -> str:
        megabytes = resource.get_config_int("available_memory_mb")
        if megabytes > 0:
            return format_memory_mib(megabytes)
        return memory_quantity(
            resource.get_config_str("service_config.available_memory") or None,
            default=DEFAULT_MEMORY,
        )

    @staticmethod
    def _add_warnings(resource: Resource, result: MappingResult) -> None:
        event_type = resource.get_config_str(
            "event_trigger.event_type"
        ) or resource.get_config_str("eventTrigger.eventType")
        if event_type:
            result.add_warning(
                f"Function is triggered by '{event_type}' events; only HTTP "
                "invocation is wired up."
            )
            result.add_manual_step(
                "Invoke the function from a queue consumer to replace its event "
                "trigger"
            )
        max_instances = resource.get_config_int(
            "service_config.max_instance_count"
        ) or resource.get_config_int("max_instances")
        if max_instances > 1:
            result.add_warning(
                f"Function scales to {max_instances} instances; compose runs one."
            )
        if resource.get_config_str("service_config.vpc_connector") or (
            resource.get_config_str("vpc_connector")
        ):
            result.add_warning(
                "Function uses a VPC connector; attach the container to the "
                "networks of the services it reaches."
            )
