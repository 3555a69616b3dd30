"""
Live discovery of Google Cloud resources.

Targets look like ``gcp://<project>`` (or bare ``gcp://`` to take the project
from credentials or the environment). Category scans run on a bounded thread
pool; each scan is independent and every write to the shared Infrastructure
is serialised by a lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait

from homeport.core.cancellation import CancellationToken
from homeport.core.constants import DEFAULT_GCP_REGION, GCP_API_SCHEME
from homeport.core.errors import (
    CategoryScanError,
    CredentialResolutionError,
    OperationCancelledError,
    UnsupportedFormatError,
)
from homeport.core.logging import LogContext
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Provider, Resource
from homeport.parsers.base import Format, FormatParser, ParseOptions
from homeport.parsers.gcp.client import GCPClient, GCPRestClient
from homeport.parsers.gcp.credentials import (
    GCPCredentialResolver,
    ResolvedCredentials,
    TokenProvider,
)
from homeport.parsers.gcp.scans import DEFAULT_SCANS, CategoryScan, ScanContext

logger = logging.getLogger(__name__)

API_CONFIDENCE = 0.95

ClientFactory = Callable[[ResolvedCredentials], GCPClient]


def parse_target(path: str) -> str | None:
    """
    Return the project named by a ``gcp://`` target.

    Returns None for non-API paths and an empty string for a bare
    ``gcp://``.
    """
    if not path.startswith(GCP_API_SCHEME):
        return None
    return path[len(GCP_API_SCHEME) :].strip("/")


def _default_client_factory(resolved: ResolvedCredentials) -> GCPClient:
    return GCPRestClient(
        resolved.project_id, token_provider=TokenProvider(resolved.credentials)
    )


class GCPAPIParser(FormatParser):
    """Discovers resources by calling Google Cloud APIs."""

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        credential_resolver: GCPCredentialResolver | None = None,
        scans: Sequence[CategoryScan] = DEFAULT_SCANS,
    ):
        """
        Initialise the parser.

        Args:
            client_factory: Builds a client from resolved credentials.
            credential_resolver: Resolves credentials and the project.
            scans: Category scans to run.

        """
        self._client_factory = client_factory or _default_client_factory
        self._resolver = credential_resolver or GCPCredentialResolver()
        self._scans = tuple(scans)

    @property
    def provider(self) -> Provider:
        return Provider.GCP

    @property
    def supported_formats(self) -> list[Format]:
        return [Format.API]

    @property
    def scans(self) -> tuple[CategoryScan, ...]:
        """Category scans this parser runs."""
        return self._scans

    def validate(self, path: str) -> None:
        """
        Accept only ``gcp://`` targets.

        Raises:
            UnsupportedFormatError: For anything else.

        """
        if parse_target(path) is None:
            raise UnsupportedFormatError(path, f"{GCP_API_SCHEME}<project> target")

    def detect_confidence(self, path: str) -> float:
        return API_CONFIDENCE if parse_target(path) is not None else 0.0

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Discover every resource reachable with the resolved credentials.

        Args:
            path: ``gcp://<project>`` target.
            options: Filters, regions, credentials and error policy.

        Returns:
            The discovered resource graph.

        Raises:
            UnsupportedFormatError: If the target is not ``gcp://``.
            CredentialResolutionError: If credentials cannot be resolved.
            CategoryScanError: If a scan fails and ignore_errors is off.
            OperationCancelledError: If the cancel token fires.

        """
        self.validate(path)
        opts = options or ParseOptions()
        opts.check_cancelled("parse_gcp_api")

        with LogContext(operation="parse_gcp_api", provider=self.provider.value):
            resolved = self._resolver.resolve(
                opts.credentials, parse_target(path) or None
            )
            regions = list(opts.regions) or [DEFAULT_GCP_REGION]

            infra = Infrastructure(
                self.provider,
                metadata={
                    "project_id": resolved.project_id,
                    "scanned_regions": ",".join(regions),
                    "credential_source": resolved.source,
                },
            )

            parent = opts.cancel_token or CancellationToken()
            token = parent.child()
            client = self._client_factory(resolved)
            try:
                ctx = ScanContext(
                    client=client,
                    project_id=resolved.project_id,
                    regions=regions,
                    options=opts,
                    cancel_token=token,
                )
                self._run_scans(ctx, infra)
                token.raise_if_cancelled("parse_gcp_api")
            finally:
                token.cancel()
                client.close()

            logger.info(
                "Discovered %d resources in project %s",
                len(infra),
                resolved.project_id,
            )
            return infra

    def _run_scans(self, ctx: ScanContext, infra: Infrastructure) -> None:
        opts = ctx.options
        lock = threading.Lock()

        active: list[CategoryScan] = []
        for scan in self._scans:
            if opts.includes_any(scan.resource_types):
                active.append(scan)
            else:
                logger.debug("Skipping scan %s: filtered out", scan.name)
                opts.emit("scan_skipped", scan.name, "excluded by filters")

        if not active:
            return

        def run(scan: CategoryScan) -> None:
            ctx.check(f"scan {scan.name}")
            opts.emit("scan_started", scan.name)
            try:
                found = scan.run(ctx)
            except (OperationCancelledError, CredentialResolutionError):
                raise
            except Exception as e:
                if not opts.ignore_errors:
                    raise CategoryScanError(scan.name, e) from e
                logger.warning("Scan %s failed, skipping: %s", scan.name, e)
                opts.emit("scan_failed", scan.name, str(e))
                return

            kept = self._store(infra, found, lock)
            with lock:
                infra.metadata[f"scan.{scan.name}.count"] = str(kept)
            opts.emit("scan_completed", scan.name, count=kept)

        workers = max(1, min(opts.max_workers, len(active)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="gcp-scan"
        ) as executor:
            futures: list[Future[None]] = [executor.submit(run, s) for s in active]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in done if f.exception() is not None]
            if failed:
                ctx.cancel_token.cancel()
                for future in pending:
                    future.cancel()
                wait(pending)
                raise self._first_error(failed)

    @staticmethod
    def _first_error(failed: list[Future[None]]) -> BaseException:
        """Prefer a scan failure over the cancellations it triggered."""
        errors = [e for e in (f.exception() for f in failed) if e is not None]
        return next(
            (e for e in errors if not isinstance(e, OperationCancelledError)), errors[0]
        )

    @staticmethod
    def _store(
        infra: Infrastructure, found: list[Resource], lock: threading.Lock
    ) -> int:
        with lock:
            for resource in found:
                infra.add_resource(resource)
        return len(found)

