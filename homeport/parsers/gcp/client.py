"""
Google Cloud REST client used by the live-API parser.

The parser only depends on the small ``GCPClient`` protocol, so tests (and
callers with their own transport) can substitute any object that lists
resources by service name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from homeport.core.cancellation import CancellationToken
from homeport.core.errors import HomeportError
from homeport.core.http_client import HTTPClient

logger = logging.getLogger(__name__)


class GCPClient(Protocol):
    """Lists raw resource payloads for one project."""

    project_id: str

    def list(
        self,
        service: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        """Return every item of ``service``, following pagination."""
        ...

    def close(self) -> None:
        """Release any transport resources."""
        ...


@dataclass(frozen=True)
class Endpoint:
    """
    How to list one kind of resource.

    ``items_key`` names the list in each page. Aggregated compute endpoints
    return ``items`` as a map of scope to ``{items_key: [...]}``. Regional
    endpoints need a region substituted into the URL.
    """

    url: str
    items_key: str
    aggregated: bool = False
    regional: bool = False
    project_param: bool = False


ENDPOINTS: dict[str, Endpoint] = {
    "compute.instances": Endpoint(
        "https://compute.googleapis.com/compute/v1/projects/{project}/aggregated/instances",
        "instances",
        aggregated=True,
    ),
    "compute.disks": Endpoint(
        "https://compute.googleapis.com/compute/v1/projects/{project}/aggregated/disks",
        "disks",
        aggregated=True,
    ),
    "compute.networks": Endpoint(
        "https://compute.googleapis.com/compute/v1/projects/{project}/global/networks",
        "items",
    ),
    "compute.subnetworks": Endpoint(
        "https://compute.googleapis.com/compute/v1/projects/{project}/aggregated/subnetworks",
        "subnetworks",
        aggregated=True,
    ),
    "compute.firewalls": Endpoint(
        "https://compute.googleapis.com/compute/v1/projects/{project}/global/firewalls",
        "items",
    ),
    "container.clusters": Endpoint(
        "https://container.googleapis.com/v1/projects/{project}/locations/-/clusters",
        "clusters",
    ),
    "run.services": Endpoint(
        "https://run.googleapis.com/v2/projects/{project}/locations/{region}/services",
        "services",
        regional=True,
    ),
    "cloudfunctions.functions": Endpoint(
        "https://cloudfunctions.googleapis.com/v2/projects/{project}/locations/-/functions",
        "functions",
    ),
    "storage.buckets": Endpoint(
        "https://storage.googleapis.com/storage/v1/b",
        "items",
        project_param=True,
    ),
    "file.instances": Endpoint(
        "https://file.googleapis.com/v1/projects/{project}/locations/-/instances",
        "instances",
    ),
    "sqladmin.instances": Endpoint(
        "https://sqladmin.googleapis.com/v1/projects/{project}/instances",
        "items",
    ),
    "redis.instances": Endpoint(
        "https://redis.googleapis.com/v1/projects/{project}/locations/-/instances",
        "instances",
    ),
    "spanner.instances": Endpoint(
        "https://spanner.googleapis.com/v1/projects/{project}/instances",
        "instances",
    ),
    "firestore.databases": Endpoint(
        "https://firestore.googleapis.com/v1/projects/{project}/databases",
        "databases",
    ),
    "pubsub.topics": Endpoint(
        "https://pubsub.googleapis.com/v1/projects/{project}/topics",
        "topics",
    ),
    "pubsub.subscriptions": Endpoint(
        "https://pubsub.googleapis.com/v1/projects/{project}/subscriptions",
        "subscriptions",
    ),
    "cloudtasks.queues": Endpoint(
        "https://cloudtasks.googleapis.com/v2/projects/{project}/locations/{region}/queues",
        "queues",
        regional=True,
    ),
    "dns.managedZones": Endpoint(
        "https://dns.googleapis.com/dns/v1/projects/{project}/managedZones",
        "managedZones",
    ),
    "secretmanager.secrets": Endpoint(
        "https://secretmanager.googleapis.com/v1/projects/{project}/secrets",
        "secrets",
    ),
    "cloudkms.keyRings": Endpoint(
        "https://cloudkms.googleapis.com/v1/projects/{project}/locations/{region}/keyRings",
        "keyRings",
        regional=True,
    ),
    "iam.serviceAccounts": Endpoint(
        "https://iam.googleapis.com/v1/projects/{project}/serviceAccounts",
        "accounts",
    ),
    "cloudscheduler.jobs": Endpoint(
        "https://cloudscheduler.googleapis.com/v1/projects/{project}/locations/{region}/jobs",
        "jobs",
        regional=True,
    ),
}


class GCPRestClient:
    """``GCPClient`` implementation over the public REST APIs."""

    def __init__(
        self,
        project_id: str,
        token_provider: Callable[[], str | None] | None = None,
        http_client: HTTPClient | None = None,
        timeout: int = 60,
        max_retries: int = 3,
    ):
        """
        Initialise the client.

        Args:
            project_id: Project every list call is scoped to.
            token_provider: Callable returning a bearer token.
            http_client: Pre-built HTTP client; one is created if omitted.
            timeout: Per-request timeout in seconds.
            max_retries: Retry budget for transient failures.

        """
        self.project_id = project_id
        self._http = http_client or HTTPClient(
            token_provider=token_provider,
            timeout=timeout,
            max_retries=max_retries,
            user_agent="Homeport/1.0 (gcp-discovery)",
        )

    def list(
        self,
        service: str,
        region: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        """
        List every item of one service.

        Args:
            service: Key into ``ENDPOINTS``, e.g. ``compute.instances``.
            region: Region for regional endpoints.
            cancel_token: Checked before each page request.

        Returns:
            Raw API payloads.

        Raises:
            HomeportError: If the service is unknown or a regional endpoint
                is called without a region.
            HTTPError: If the API call fails.

        """
        endpoint = ENDPOINTS.get(service)
        if endpoint is None:
            raise HomeportError(f"Unknown GCP service '{service}'")
        if endpoint.regional and not region:
            raise HomeportError(f"GCP service '{service}' requires a region")

        url = endpoint.url.format(project=self.project_id, region=region or "")
        params = {"project": self.project_id} if endpoint.project_param else None

        items: list[dict[str, Any]] = []
        for page in self._http.paginate(url, params=params, cancel_token=cancel_token):
            if endpoint.aggregated:
                for scoped in (page.get("items") or {}).values():
                    if isinstance(scoped, dict):
                        items.extend(scoped.get(endpoint.items_key) or [])
            else:
                items.extend(page.get(endpoint.items_key) or [])
        logger.debug("Listed %d items from %s", len(items), service)
        return items

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._http.close()
