"""
Terraform source (HCL) reader shared by the provider-specific parsers.

Source files are parsed with python-hcl2 and never evaluated. A
``resource "<type>" "<name>"`` block becomes a Resource when its type carries
this provider's prefix; every other block type or foreign provider is
skipped without complaint so mixed-provider directories parse cleanly.
"""

from __future__ import annotations

import json
import logging
import re
from abc import abstractmethod
from pathlib import Path
from typing import Any

import hcl2

from homeport.core.constants import (
    METADATA_OUTPUT_PREFIX,
    METADATA_VARIABLE_PREFIX,
    TERRAFORM_PATTERNS,
)
from homeport.core.errors import ParseError, UnsupportedFormatError
from homeport.core.logging import LogContext
from homeport.core.path_utils import (
    file_contains,
    iter_files,
    read_text_file,
    require_files,
    resolve_input_path,
)
from homeport.domain.catalog import resolve_type
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Resource
from homeport.parsers.base import Format, FormatParser, ParseOptions

logger = logging.getLogger(__name__)

FILE_CONFIDENCE = 0.85
DIRECTORY_SCALE = 0.9

# type.name references not preceded by "data." or another identifier
_REFERENCE = re.compile(
    r"(?<![\w.])((?:aws|google|azurerm)_[a-z0-9_]+)\.([A-Za-z_][\w-]*)"
)
_VARIABLE = re.compile(r"^\$\{var\.([A-Za-z_][\w-]*)\}$")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def normalise_hcl(value: Any) -> Any:
    """
    Normalise python-hcl2 output across library versions.

    Strips the literal quotes some versions keep around strings and keys,
    and drops internal ``__...__`` marker keys.
    """
    if isinstance(value, str):
        return _unquote(value)
    if isinstance(value, dict):
        return {
            _unquote(str(k)): normalise_hcl(v)
            for k, v in value.items()
            if not str(k).startswith("__")
        }
    if isinstance(value, list):
        return [normalise_hcl(v) for v in value]
    return value


def _blocks(document: dict[str, Any], kind: str) -> list[dict[str, Any]]:
    """Return the list of ``kind`` blocks, whichever container shape is used."""
    blocks = document.get(kind) or []
    if isinstance(blocks, dict):
        blocks = [blocks]
    return [b for b in blocks if isinstance(b, dict)]


def _walk_strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [s for item in value.values() for s in _walk_strings(item)]
    if isinstance(value, list):
        return [s for item in value for s in _walk_strings(item)]
    return []


class HCLSourceParser(FormatParser):
    """Base class for parsers reading ``*.tf`` source trees."""

    @property
    def supported_formats(self) -> list[Format]:
        return [Format.TERRAFORM]

    @abstractmethod
    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        """Derive the region from block attributes."""

    @abstractmethod
    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        """Return labels or tags declared on the block."""

    def owns_type(self, type_name: str) -> bool:
        """True if a declared type belongs to this parser's provider."""
        return type_name.startswith(self.provider.type_prefix)

    def _declares_own_resource(self, file_path: Path) -> bool:
        return file_contains(file_path, f'resource "{self.provider.type_prefix}')

    def validate(self, path: str) -> None:
        resolved = resolve_input_path(path)
        if resolved.is_file() and resolved.suffix != ".tf":
            raise UnsupportedFormatError(path, "Terraform source (.tf)")

    def detect_confidence(self, path: str) -> float:
        """
        Score a single file at 0.85 if it declares one of our resources;
        score a directory by the share of ``.tf`` files that do, times 0.9.
        """
        root = Path(path)
        if root.is_file():
            if root.suffix != ".tf":
                return 0.0
            if self._declares_own_resource(root):
                return FILE_CONFIDENCE
            return 0.0
        if not root.is_dir():
            return 0.0
        files = iter_files(root, TERRAFORM_PATTERNS)
        if not files:
            return 0.0
        owned = sum(1 for f in files if self._declares_own_resource(f))
        return (owned / len(files)) * DIRECTORY_SCALE

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Parse one ``.tf`` file or every ``.tf`` file under a directory.

        Raises:
            InvalidPathError: If the path does not exist.
            NoFilesFoundError: If a directory holds no ``.tf`` files.
            ParseError: If a file is not valid HCL and ignore_errors is off.

        """
        opts = options or ParseOptions()
        root = resolve_input_path(path)
        files = (
            [root]
            if root.is_file()
            else require_files(
                root, TERRAFORM_PATTERNS, opts.include_patterns, opts.exclude_patterns
            )
        )

        with LogContext(operation="parse_terraform", provider=self.provider.value):
            documents: list[tuple[Path, dict[str, Any]]] = []
            for file_path in files:
                opts.check_cancelled("parse_terraform")
                try:
                    documents.append((file_path, self._load(file_path, opts)))
                except ParseError as e:
                    if not opts.ignore_errors:
                        raise
                    logger.warning("Skipping unreadable Terraform file: %s", e.message)
                    opts.emit("file_skipped", str(file_path), e.message)

            infra = Infrastructure(self.provider)
            # Variables first so resource attributes can use their defaults
            variables: dict[str, Any] = {}
            for _, document in documents:
                variables.update(self._collect_variables(document))
            for name, default in variables.items():
                key = f"{METADATA_VARIABLE_PREFIX}{name}"
                infra.metadata[key] = _stringify(default)

            for file_path, document in documents:
                count = 0
                for resource in self._convert_document(document, variables, opts):
                    infra.add_resource(resource)
                    count += 1
                for block in _blocks(document, "output"):
                    for name, body in block.items():
                        value = body.get("value") if isinstance(body, dict) else body
                        infra.metadata[f"{METADATA_OUTPUT_PREFIX}{name}"] = _stringify(
                            value
                        )
                opts.emit("file_parsed", str(file_path), count=count)

            logger.info(
                "Parsed %d %s resources from Terraform source",
                len(infra),
                self.provider.value,
            )
            return infra

    @staticmethod
    def _load(file_path: Path, opts: ParseOptions) -> dict[str, Any]:
        content = read_text_file(file_path, opts.max_file_bytes)
        try:
            document = hcl2.loads(content)
        except Exception as e:  # noqa: BLE001 - hcl2 surfaces lark parser errors
            raise ParseError(file_path, f"invalid HCL: {e}") from e
        return normalise_hcl(document)

    @staticmethod
    def _collect_variables(document: dict[str, Any]) -> dict[str, Any]:
        variables: dict[str, Any] = {}
        for block in _blocks(document, "variable"):
            for name, body in block.items():
                if isinstance(body, dict):
                    variables[name] = body.get("default")
                else:
                    variables[name] = None
        return variables

    def _convert_document(
        self,
        document: dict[str, Any],
        variables: dict[str, Any],
        opts: ParseOptions,
    ) -> list[Resource]:
        resources: list[Resource] = []
        for block in _blocks(document, "resource"):
            for type_name, instances in block.items():
                if not self.owns_type(type_name) or not isinstance(instances, dict):
                    continue
                resource_type = resolve_type(type_name, self.provider)
                if not opts.includes(resource_type):
                    continue
                for local_name, body in instances.items():
                    attributes = body if isinstance(body, dict) else {}
                    resources.append(
                        self._convert_block(
                            type_name, local_name, attributes, variables, opts
                        )
                    )
        return resources

    def _convert_block(
        self,
        type_name: str,
        local_name: str,
        attributes: dict[str, Any],
        variables: dict[str, Any],
        opts: ParseOptions,
    ) -> Resource:
        resource_id = f"{type_name}.{local_name}"
        resolved = {
            key: self._resolve_variable(value, variables)
            for key, value in attributes.items()
        }

        name = resolved.get("name")
        resource = Resource(
            id=resource_id,
            name=name if isinstance(name, str) and "${" not in name else local_name,
            type=resolve_type(type_name, self.provider),
            region=self.extract_region(resolved, opts),
            config=resolved,
            tags=self.extract_tags(resolved),
        )

        for text in _walk_strings(attributes):
            for ref_type, ref_name in _REFERENCE.findall(text):
                if self.owns_type(ref_type):
                    resource.add_dependency(f"{ref_type}.{ref_name}")
        return resource

    @staticmethod
    def _resolve_variable(value: Any, variables: dict[str, Any]) -> Any:
        """Substitute ``${var.x}`` with the variable's default when it has one."""
        if isinstance(value, str):
            match = _VARIABLE.match(value)
            if match and variables.get(match.group(1)) is not None:
                return variables[match.group(1)]
        return value


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)
