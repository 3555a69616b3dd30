"""Error types with actionable messages and recovery suggestions."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from pathlib import Path


def _is_debug_mode() -> bool:
    """
    Check if application is in debug mode.

    Debug mode is enabled when HOMEPORT_DEBUG is set to any of:
    - "1", "true", "yes", "on" (case-insensitive)

    Returns:
        True if debug mode is enabled, False otherwise.

    """
    debug_value = os.getenv("HOMEPORT_DEBUG", "").lower()
    return debug_value in ("1", "true", "yes", "on")


def _sanitize_path(path: str | Path) -> str:
    """
    Sanitize a path for error messages in production mode.

    In debug mode the full path is returned. Otherwise the path is made
    relative to the working directory, and anything that cannot be shown
    safely is replaced with a placeholder.

    Args:
        path: The file path to sanitize.

    Returns:
        Sanitized path string safe for user display.

    """
    path_str = str(path)
    if _is_debug_mode():
        return path_str

    if "\n" in path_str or "\r" in path_str or path_str.startswith(("{", "[")):
        return "<resource>"

    # Live API targets are not filesystem paths but are safe to display
    if path_str.startswith(("gcp://", "aws://")):
        return path_str

    try:
        return str(Path(path_str).relative_to(Path.cwd()))
    except ValueError:
        return Path(path_str).name or "<file>"


class HomeportError(Exception):
    """Base exception for Homeport with enhanced error messages."""

    def __init__(self, message: str, suggestion: str | None = None):
        """
        Initialise with message and optional recovery suggestion.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional suggestion for how to fix the error.

        """
        self.message = message
        self.suggestion = suggestion
        full_message = message
        if suggestion:
            full_message = f"{message}\n\nSuggestion: {suggestion}"
        super().__init__(full_message)


class InvalidPathError(HomeportError):
    """Raised when an input path does not exist or cannot be read."""

    def __init__(self, path: str | Path, reason: str = "path does not exist"):
        """
        Initialise invalid path error.

        Args:
            path: The offending path.
            reason: Why the path is unusable.

        """
        self.path = str(path)
        message = f"Invalid input path {_sanitize_path(path)}: {reason}"
        suggestion = "Check that the path exists and you have read permissions."
        if _is_debug_mode():
            suggestion += f"\n\nDebug: Full path attempted: {path}"
        super().__init__(message, suggestion)


class NoFilesFoundError(HomeportError):
    """Raised when a directory contains no files of the expected format."""

    def __init__(self, path: str | Path, patterns: Sequence[str]):
        """
        Initialise no files found error.

        Args:
            path: The directory that was searched.
            patterns: File patterns that were looked for.

        """
        self.path = str(path)
        self.patterns = list(patterns)
        message = (
            f"No matching files found in {_sanitize_path(path)} "
            f"(looked for {', '.join(patterns)})"
        )
        suggestion = (
            "Point the parser at the directory holding the files, or check "
            "that your include/exclude patterns are not hiding them."
        )
        super().__init__(message, suggestion)


class UnsupportedFormatError(HomeportError):
    """Raised when an input cannot be handled by the requested parser."""

    def __init__(self, path: str | Path, expected: str):
        """
        Initialise unsupported format error.

        Args:
            path: The input that was rejected.
            expected: Human-readable description of the expected format.

        """
        self.path = str(path)
        message = f"{_sanitize_path(path)} is not a valid {expected} input"
        suggestion = (
            "Let the registry auto-detect the format, or choose the parser "
            "that matches this input."
        )
        super().__init__(message, suggestion)


class NoParserFoundError(HomeportError):
    """Raised when no registered parser can handle an input."""

    def __init__(self, path: str | Path):
        """
        Initialise no parser found error.

        Args:
            path: The input no parser accepted.

        """
        self.path = str(path)
        message = f"No registered parser can handle {_sanitize_path(path)}"
        suggestion = (
            "Supported inputs are Terraform state (.tfstate), Terraform "
            "source (.tf), Deployment Manager or CloudFormation templates, "
            "and live API targets such as gcp://<project>."
        )
        super().__init__(message, suggestion)


class ParseError(HomeportError):
    """Raised when an input file is malformed."""

    def __init__(self, file_path: str | Path, detail: str = ""):
        """
        Initialise parse error.

        Args:
            file_path: The file that failed to parse.
            detail: Additional detail about the parse failure.

        """
        self.file_path = str(file_path)
        message = f"Failed to parse {_sanitize_path(file_path)}"
        if detail:
            message += f": {detail}"
        suggestion = (
            "Check that the file is complete and was exported by a supported "
            "tool version. Set ignore_errors to skip unreadable files."
        )
        if _is_debug_mode():
            suggestion += f"\n\nDebug: Full path: {file_path}"
        super().__init__(message, suggestion)


class CredentialResolutionError(HomeportError):
    """Raised when cloud credentials or the target project cannot be found."""

    def __init__(self, provider: str, reason: str):
        """
        Initialise credential resolution error.

        Args:
            provider: Provider whose credentials failed to resolve.
            reason: Why resolution failed.

        """
        self.provider = provider
        message = f"Could not resolve {provider} credentials: {reason}"
        suggestion = (
            "Pass credentials explicitly, set GOOGLE_APPLICATION_CREDENTIALS, "
            "or run 'gcloud auth application-default login'."
        )
        super().__init__(message, suggestion)


class CategoryScanError(HomeportError):
    """Raised when a single live-API category scan fails."""

    def __init__(self, scan: str, cause: Exception | str):
        """
        Initialise category scan error.

        Args:
            scan: Name of the scan that failed.
            cause: Underlying failure.

        """
        self.scan = scan
        message = f"Failed to scan {scan}: {cause}"
        suggestion = (
            "Check that the API is enabled and the credentials have list "
            "permissions, or set ignore_errors to skip failing categories."
        )
        super().__init__(message, suggestion)


class DuplicateResourceError(HomeportError):
    """Raised when a resource ID is added to an infrastructure twice."""

    def __init__(self, resource_id: str):
        """
        Initialise duplicate resource error.

        Args:
            resource_id: The repeated ID.

        """
        self.resource_id = resource_id
        super().__init__(
            f"Resource '{resource_id}' already exists in this infrastructure",
            "Resource IDs must be unique; check for duplicated declarations.",
        )


class ResourceNotFoundError(HomeportError):
    """Raised when a resource ID is not present in an infrastructure."""

    def __init__(self, resource_id: str):
        """
        Initialise resource not found error.

        Args:
            resource_id: The ID that was looked up.

        """
        self.resource_id = resource_id
        super().__init__(f"Resource '{resource_id}' not found")


class DanglingDependencyError(HomeportError):
    """Raised by strict validation when dependencies point at unknown IDs."""

    def __init__(self, edges: Iterable[tuple[str, str]]):
        """
        Initialise dangling dependency error.

        Args:
            edges: (resource_id, missing_dependency_id) pairs.

        """
        self.edges = list(edges)
        issue_list = "\n  - ".join(f"{src} -> {dst}" for src, dst in self.edges)
        message = f"Dangling dependencies found:\n  - {issue_list}"
        suggestion = (
            "Include the referenced files or modules in the parse, or "
            "validate in lenient mode to treat these as warnings."
        )
        super().__init__(message, suggestion)


class DependencyCycleError(HomeportError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]):
        """
        Initialise dependency cycle error.

        Args:
            cycle: Resource IDs forming the cycle, in traversal order.

        """
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        super().__init__(
            f"Dependency cycle detected: {path}",
            "Break the cycle by removing one of the references.",
        )


class WrongResourceTypeError(HomeportError):
    """Raised when a mapper is given a resource of another type."""

    def __init__(self, expected: str, actual: str):
        """
        Initialise wrong resource type error.

        Args:
            expected: Type name the mapper accepts.
            actual: Type name it received.

        """
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Mapper for '{expected}' cannot map resource of type '{actual}'",
            "Dispatch through the mapper registry to pick the right mapper.",
        )


class NilResourceError(HomeportError):
    """Raised when None is passed where a resource is required."""

    def __init__(self) -> None:
        """Initialise nil resource error."""
        super().__init__("Resource must not be None")


class MapperNotFoundError(HomeportError):
    """Raised when no mapper is registered for a resource type."""

    def __init__(self, type_name: str):
        """
        Initialise mapper not found error.

        Args:
            type_name: The unmapped resource type.

        """
        self.type_name = type_name
        super().__init__(
            f"No mapper registered for resource type '{type_name}'",
            "This resource needs manual migration or a custom mapper.",
        )


class OperationCancelledError(HomeportError):
    """Raised when an operation is cancelled by the caller."""

    def __init__(self, operation: str = "operation"):
        """
        Initialise cancellation error.

        Args:
            operation: Name of the cancelled operation.

        """
        self.operation = operation
        super().__init__(f"{operation} was cancelled")


def format_error_with_context(
    error: Exception, operation: str, file_path: str | None = None
) -> str:
    """
    Format an error message with operation context.

    Args:
        error: The exception that occurred.
        operation: Description of the operation that failed.
        file_path: Optional path to the file being processed.

    Returns:
        Formatted error message with context and suggestions.

    """
    if isinstance(error, HomeportError):
        return str(error)

    context = f"Error during {operation}"
    if file_path:
        context += f" for {_sanitize_path(file_path)}"

    if isinstance(error, FileNotFoundError):
        return str(InvalidPathError(file_path or "unknown"))
    if isinstance(error, PermissionError):
        return (
            f"{context}: Permission denied\n\nSuggestion: Check file and "
            "directory permissions and ensure you have read access."
        )
    debug_info = f"\n\nDebug: {error!r}" if _is_debug_mode() else ""
    return f"{context}: {error}{debug_info}"
