"""Shared infrastructure: errors, logging, file access, HTTP and cancellation."""

from homeport.core.cancellation import CancellationToken
from homeport.core.errors import (
    CategoryScanError,
    CredentialResolutionError,
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateResourceError,
    HomeportError,
    InvalidPathError,
    MapperNotFoundError,
    NilResourceError,
    NoFilesFoundError,
    NoParserFoundError,
    OperationCancelledError,
    ParseError,
    ResourceNotFoundError,
    UnsupportedFormatError,
    WrongResourceTypeError,
)

__all__ = [
    "CancellationToken",
    "CategoryScanError",
    "CredentialResolutionError",
    "DanglingDependencyError",
    "DependencyCycleError",
    "DuplicateResourceError",
    "HomeportError",
    "InvalidPathError",
    "MapperNotFoundError",
    "NilResourceError",
    "NoFilesFoundError",
    "NoParserFoundError",
    "OperationCancelledError",
    "ParseError",
    "ResourceNotFoundError",
    "UnsupportedFormatError",
    "WrongResourceTypeError",
]
