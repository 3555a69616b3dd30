"""Path utility functions for read-only discovery of input files."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from homeport.core.constants import IGNORED_DIRECTORIES
from homeport.core.errors import InvalidPathError, NoFilesFoundError, ParseError

DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024
PEEK_BYTES = 64 * 1024


def resolve_input_path(path: str | Path) -> Path:
    """
    Resolve a caller-supplied input path.

    Args:
        path: File or directory to read.

    Returns:
        The resolved Path.

    Raises:
        InvalidPathError: If the path is empty or does not exist.

    """
    if not str(path).strip():
        raise InvalidPathError(path, "path is empty")
    if "\x00" in str(path):
        raise InvalidPathError("<invalid>", "path contains a null byte")

    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise InvalidPathError(path)
    return resolved


def _matches_any(relative: str, name: str, patterns: Iterable[str]) -> bool:
    return any(
        fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in patterns
    )


def iter_files(
    root: Path,
    patterns: Sequence[str],
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
) -> list[Path]:
    """
    Recursively list files under ``root`` matching ``patterns``.

    Hidden tool directories (.git, .terraform, ...) are never descended
    into. Results are sorted so repeated calls return the same order.

    Args:
        root: Directory to walk, or a single file.
        patterns: Glob patterns on the file name, e.g. ``*.tf``.
        include_patterns: If non-empty, relative paths must match one.
        exclude_patterns: Relative paths matching any of these are dropped.

    Returns:
        Sorted list of matching files.

    """
    if root.is_file():
        return [root] if _matches_any(root.name, root.name, patterns) else []

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
        for filename in filenames:
            if not _matches_any(filename, filename, patterns):
                continue
            file_path = Path(dirpath) / filename
            relative = file_path.relative_to(root).as_posix()
            if include_patterns and not _matches_any(
                relative, filename, include_patterns
            ):
                continue
            if exclude_patterns and _matches_any(relative, filename, exclude_patterns):
                continue
            found.append(file_path)
    return sorted(found)


def require_files(
    root: Path,
    patterns: Sequence[str],
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
) -> list[Path]:
    """
    Like ``iter_files`` but fail when nothing matches.

    Raises:
        NoFilesFoundError: If no file matches.

    """
    files = iter_files(root, patterns, include_patterns, exclude_patterns)
    if not files:
        raise NoFilesFoundError(root, patterns)
    return files


def read_text_file(path: Path, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> str:
    """
    Read a UTF-8 text file with a size limit.

    Args:
        path: File to read.
        max_bytes: Largest accepted file size.

    Returns:
        File content.

    Raises:
        ParseError: If the file is too large, unreadable or not UTF-8.

    """
    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise ParseError(path, f"file is {size} bytes, limit is {max_bytes}")
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(path, "file is not valid UTF-8") from e
    except OSError as e:
        raise ParseError(path, str(e)) from e


def peek_text(path: Path, limit: int = PEEK_BYTES) -> str:
    """
    Read the beginning of a file for format sniffing.

    Unreadable files yield an empty string so auto-detection never raises.
    """
    try:
        with path.open("rb") as handle:
            return handle.read(limit).decode("utf-8", errors="ignore")
    except OSError:
        return ""


def file_contains(path: Path, needle: str, chunk_size: int = PEEK_BYTES) -> bool:
    """
    Stream a file looking for ``needle``.

    Chunks overlap by the needle length so matches across chunk borders are
    found. Unreadable files contain nothing.
    """
    target = needle.encode("utf-8")
    overlap = max(len(target) - 1, 0)
    tail = b""
    try:
        with path.open("rb") as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                window = tail + chunk
                if target in window:
                    return True
                tail = window[-overlap:] if overlap else b""
    except OSError:
        return False
    return False
