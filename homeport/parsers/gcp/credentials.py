"""
Google Cloud credential and project resolution.

Sources are tried in priority order: explicit credentials passed in
``ParseOptions.credentials``, then the GOOGLE_APPLICATION_CREDENTIALS
pointer, then application-default credentials.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import google.auth
from google.auth.credentials import Credentials
from google.auth.exceptions import (
    DefaultCredentialsError,
    GoogleAuthError,
    RefreshError,
)
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from homeport.core.errors import CredentialResolutionError

logger = logging.getLogger(__name__)

READ_ONLY_SCOPES = ("https://www.googleapis.com/auth/cloud-platform.read-only",)

# Keys accepted in ParseOptions.credentials
CREDENTIALS_FILE_KEY = "credentials_file"
CREDENTIALS_JSON_KEY = "credentials_json"
PROJECT_KEY = "project"

PROJECT_ENV_VARS = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT", "GCP_PROJECT")


@dataclass
class ResolvedCredentials:
    """Credentials plus the project they will be used against."""

    credentials: Credentials
    project_id: str
    source: str


class TokenProvider:
    """Thread-safe bearer token source that refreshes expired credentials."""

    def __init__(self, credentials: Credentials):
        """
        Initialise with google-auth credentials.

        Args:
            credentials: Credentials to mint access tokens from.

        """
        self._credentials = credentials
        self._lock = threading.Lock()

    def __call__(self) -> str | None:
        with self._lock:
            if not self._credentials.valid:
                try:
                    self._credentials.refresh(Request())
                except RefreshError as e:
                    raise CredentialResolutionError(
                        "gcp", f"token refresh failed: {e}"
                    ) from e
            return self._credentials.token


class GCPCredentialResolver:
    """Resolves credentials and the target project for live discovery."""

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        scopes: tuple[str, ...] = READ_ONLY_SCOPES,
    ):
        """
        Initialise the resolver.

        Args:
            env: Optional environment mapping for testing.
            scopes: OAuth scopes requested for the credentials.

        """
        self._env = env if env is not None else os.environ
        self._scopes = list(scopes)

    def resolve(
        self,
        credentials: Mapping[str, str] | None = None,
        project_hint: str | None = None,
    ) -> ResolvedCredentials:
        """
        Resolve credentials and project.

        The project is taken from, in order: ``credentials["project"]``,
        ``project_hint``, the credentials file, the project environment
        variables, and the application-default project.

        Args:
            credentials: Provider-specific credential settings.
            project_hint: Project named in the discovery target, if any.

        Returns:
            ResolvedCredentials.

        Raises:
            CredentialResolutionError: If no credentials or project are found.

        """
        settings = dict(credentials or {})

        creds, loaded_project, source = self._load_credentials(settings)
        if source == "default":
            file_project, adc_project = None, loaded_project
        else:
            file_project, adc_project = loaded_project, None

        project = (
            settings.get(PROJECT_KEY)
            or project_hint
            or file_project
            or next((self._env[v] for v in PROJECT_ENV_VARS if self._env.get(v)), None)
            or adc_project
        )
        if not project:
            raise CredentialResolutionError(
                "gcp",
                "no project ID found in credentials, target or environment",
            )
        logger.debug("Resolved GCP credentials from %s for project %s", source, project)
        return ResolvedCredentials(credentials=creds, project_id=project, source=source)

    def _load_credentials(
        self, settings: dict[str, str]
    ) -> tuple[Credentials, str | None, str]:
        if settings.get(CREDENTIALS_JSON_KEY):
            return (*self._from_json(settings[CREDENTIALS_JSON_KEY]), "explicit")
        if settings.get(CREDENTIALS_FILE_KEY):
            return (*self._from_file(settings[CREDENTIALS_FILE_KEY]), "explicit")

        env_file = self._env.get("GOOGLE_APPLICATION_CREDENTIALS")
        if env_file:
            return (*self._from_file(env_file), "environment")

        try:
            creds, project = google.auth.default(scopes=self._scopes)
        except DefaultCredentialsError as e:
            raise CredentialResolutionError("gcp", str(e)) from e
        return creds, project, "default"

    def _from_file(self, path: str) -> tuple[Credentials, str | None]:
        try:
            creds, project = google.auth.load_credentials_from_file(
                path, scopes=self._scopes
            )
        except (DefaultCredentialsError, OSError) as e:
            raise CredentialResolutionError(
                "gcp", f"cannot load credentials file: {e}"
            ) from e
        return creds, project

    def _from_json(self, payload: str) -> tuple[Credentials, str | None]:
        try:
            info: dict[str, Any] = json.loads(payload)
            creds = service_account.Credentials.from_service_account_info(
                info, scopes=self._scopes
            )
        except (ValueError, GoogleAuthError) as e:
            raise CredentialResolutionError(
                "gcp", f"invalid service account JSON: {e}"
            ) from e
        return creds, info.get("project_id")
