"""
Terraform state reader shared by the provider-specific state parsers.

Only ``managed`` entries are converted; ``data`` entries are read-only
lookups and never become resources. Provider subclasses decide how names,
regions, locators and tags are pulled out of the instance attributes.
"""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from pathlib import Path
from typing import Any

from homeport.core.constants import (
    METADATA_OUTPUT_PREFIX,
    REDACTED_VALUE,
    TERRAFORM_MODULE_PREFIX,
    TFSTATE_MODE_MANAGED,
    TFSTATE_PATTERNS,
    TFSTATE_SUPPORTED_VERSIONS,
)
from homeport.core.errors import (
    HomeportError,
    ParseError,
    UnsupportedFormatError,
)
from homeport.core.logging import LogContext
from homeport.core.path_utils import (
    DEFAULT_MAX_FILE_BYTES,
    iter_files,
    peek_text,
    read_text_file,
    require_files,
    resolve_input_path,
)
from homeport.domain.catalog import resolve_type
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Resource
from homeport.parsers.base import Format, FormatParser, ParseOptions, parse_timestamp

logger = logging.getLogger(__name__)

# Confidence ceilings: near-pure state files are unambiguous, mixed ones scale
HIGH_RATIO_THRESHOLD = 0.9
HIGH_RATIO_CONFIDENCE = 0.95
RATIO_SCALE = 0.85

_MODULE_MARKER = TERRAFORM_MODULE_PREFIX.rstrip(".")


def strip_module_prefix(address: str) -> str:
    """
    Remove ``module.`` markers from a Terraform address.

    ``module.net.module.vpc.google_compute_network.main`` becomes
    ``net.vpc.google_compute_network.main``.
    """
    parts = address.split(".")
    kept: list[str] = []
    while len(parts) >= 2 and parts[0] == _MODULE_MARKER:
        kept.append(parts[1])
        parts = parts[2:]
    return ".".join(kept + parts)


def _format_index_key(index_key: Any) -> str:
    if isinstance(index_key, str):
        return f'["{index_key}"]'
    return f"[{index_key}]"


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def _dicts(value: Any) -> list[dict[str, Any]]:
    """Dict items of a JSON list; anything else yields nothing."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _sensitive_keys(instance: dict[str, Any]) -> set[str]:
    """Top-level attribute names Terraform marked sensitive."""
    keys: set[str] = set()
    for path in instance.get("sensitive_attributes") or []:
        if isinstance(path, list) and path:
            step = path[0]
            if isinstance(step, dict) and step.get("type") == "get_attr":
                keys.add(str(step.get("value")))
    return keys


class TerraformStateParser(FormatParser):
    """Base class for Terraform state parsers (state versions 3 and 4)."""

    @property
    def supported_formats(self) -> list[Format]:
        return [Format.TFSTATE]

    # Provider hooks

    @abstractmethod
    def extract_region(self, attributes: dict[str, Any], options: ParseOptions) -> str:
        """Derive the resource region from state attributes."""

    @abstractmethod
    def extract_external_ref(self, attributes: dict[str, Any]) -> str | None:
        """Return the provider-native locator, if present."""

    @abstractmethod
    def extract_tags(self, attributes: dict[str, Any]) -> dict[str, str]:
        """Return provider labels or tags as a string map."""

    def extract_name(self, attributes: dict[str, Any], fallback: str) -> str:
        """Return a display name; subclasses may look in provider fields."""
        name = attributes.get("name")
        return name if isinstance(name, str) and name else fallback

    def extract_created_at(self, attributes: dict[str, Any]) -> Any:
        """Return the creation timestamp, if the provider records one."""
        return None

    def owns_type(self, type_name: str) -> bool:
        """True if a raw Terraform type belongs to this parser's provider."""
        return type_name.startswith(self.provider.type_prefix)

    # Validation and detection

    def validate(self, path: str) -> None:
        """
        Reject paths that cannot hold Terraform state.

        Raises:
            InvalidPathError: If the path does not exist.
            UnsupportedFormatError: If a file does not look like state.

        """
        resolved = resolve_input_path(path)
        if resolved.is_dir():
            return
        head = peek_text(resolved, 4096)
        if '"terraform_version"' not in head and '"version"' not in head:
            raise UnsupportedFormatError(path, "Terraform state")

    def _state_files(
        self, root: Path, options: ParseOptions | None = None
    ) -> list[Path]:
        if root.is_file():
            return [root]
        opts = options or ParseOptions()
        return require_files(
            root, TFSTATE_PATTERNS, opts.include_patterns, opts.exclude_patterns
        )

    def detect_confidence(self, path: str) -> float:
        """
        Score by the share of managed resources owned by this provider.

        A share above 0.9 scores 0.95; anything lower scales by 0.85.
        """
        root = Path(path)
        if root.is_dir():
            files = iter_files(root, TFSTATE_PATTERNS)
        elif root.is_file() and root.suffix in (".tfstate", ".json"):
            files = [root]
        else:
            return 0.0

        owned = total = 0
        for file_path in files:
            try:
                state = self._load_state(file_path)
            except HomeportError:
                continue
            for type_name, mode in self._iter_declared_types(state):
                if mode != TFSTATE_MODE_MANAGED:
                    continue
                total += 1
                if self.owns_type(type_name):
                    owned += 1

        if total == 0 or owned == 0:
            return 0.0
        ratio = owned / total
        if ratio > HIGH_RATIO_THRESHOLD:
            return HIGH_RATIO_CONFIDENCE
        return ratio * RATIO_SCALE

    # Loading

    def _load_state(
        self, file_path: Path, max_bytes: int = DEFAULT_MAX_FILE_BYTES
    ) -> dict[str, Any]:
        content = read_text_file(file_path, max_bytes)
        try:
            state = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(file_path, f"invalid JSON at line {e.lineno}") from e
        if not isinstance(state, dict):
            raise ParseError(file_path, "state must be a JSON object")
        version = state.get("version")
        if version not in TFSTATE_SUPPORTED_VERSIONS:
            raise ParseError(
                file_path,
                f"unsupported state version {version!r}; "
                f"expected one of {TFSTATE_SUPPORTED_VERSIONS}",
            )
        return state

    @staticmethod
    def _iter_declared_types(state: dict[str, Any]) -> list[tuple[str, str]]:
        """(type, mode) pairs for every entry, regardless of state version."""
        if state.get("version") == 3:
            pairs = []
            for module in _dicts(state.get("modules")):
                resources = module.get("resources")
                if not isinstance(resources, dict):
                    continue
                for key, entry in resources.items():
                    if not isinstance(entry, dict):
                        continue
                    mode = "data" if key.startswith("data.") else TFSTATE_MODE_MANAGED
                    pairs.append((str(entry.get("type", "")), mode))
            return pairs
        return [
            (str(entry.get("type", "")), str(entry.get("mode", TFSTATE_MODE_MANAGED)))
            for entry in _dicts(state.get("resources"))
        ]

    # Parsing

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Parse one state file, or every ``*.tfstate`` under a directory.

        Raises:
            InvalidPathError: If the path does not exist.
            NoFilesFoundError: If a directory holds no state files.
            ParseError: If a file is malformed and ignore_errors is off.

        """
        opts = options or ParseOptions()
        root = resolve_input_path(path)

        with LogContext(operation="parse_tfstate", provider=self.provider.value):
            infra = Infrastructure(self.provider)
            for file_path in self._state_files(root, opts):
                opts.check_cancelled("parse_tfstate")
                try:
                    state = self._load_state(file_path, opts.max_file_bytes)
                except ParseError as e:
                    if not opts.ignore_errors:
                        raise
                    logger.warning("Skipping unreadable state file: %s", e.message)
                    opts.emit("file_skipped", str(file_path), e.message)
                    continue

                before = len(infra)
                self._merge_metadata(infra, state, opts)
                for resource in self._convert_state(state, opts):
                    infra.add_resource(resource)
                opts.emit("file_parsed", str(file_path), count=len(infra) - before)

            self._link_indexed_dependencies(infra)
            logger.info(
                "Parsed %d %s resources from Terraform state",
                len(infra),
                self.provider.value,
            )
            return infra

    @staticmethod
    def _merge_metadata(
        infra: Infrastructure, state: dict[str, Any], opts: ParseOptions
    ) -> None:
        if state.get("terraform_version"):
            infra.metadata["terraform_version"] = str(state["terraform_version"])
        infra.metadata["state_version"] = str(state.get("version"))
        for key in ("serial", "lineage"):
            if state.get(key) is not None:
                infra.metadata[key] = str(state[key])

        outputs = state.get("outputs") or {}
        if not isinstance(outputs, dict):
            logger.warning("Ignoring outputs that are not a mapping")
            return
        for name, output in outputs.items():
            if not isinstance(output, dict):
                continue
            if output.get("sensitive") and not opts.include_sensitive:
                value = REDACTED_VALUE
            else:
                value = _stringify(output.get("value"))
            infra.metadata[f"{METADATA_OUTPUT_PREFIX}{name}"] = value

    def _convert_state(
        self, state: dict[str, Any], opts: ParseOptions
    ) -> list[Resource]:
        if state.get("version") == 3:
            return self._convert_v3(state, opts)
        return self._convert_v4(state, opts)

    def _convert_v4(self, state: dict[str, Any], opts: ParseOptions) -> list[Resource]:
        resources: list[Resource] = []
        for entry in _dicts(state.get("resources")):
            if entry.get("mode", TFSTATE_MODE_MANAGED) != TFSTATE_MODE_MANAGED:
                continue
            type_name = str(entry.get("type", ""))
            if not self.owns_type(type_name):
                continue
            resource_type = resolve_type(type_name, self.provider)
            if not opts.includes(resource_type):
                continue

            local_name = str(entry.get("name", ""))
            module = strip_module_prefix(str(entry.get("module", "")))
            base_id = f"{type_name}.{local_name}"
            if module:
                base_id = f"{module}.{base_id}"

            for instance in entry.get("instances") or []:
                if not isinstance(instance, dict):
                    continue
                resource_id = base_id
                if "index_key" in instance:
                    resource_id += _format_index_key(instance["index_key"])

                attributes = dict(instance.get("attributes") or {})
                if not opts.include_sensitive:
                    for key in _sensitive_keys(instance) & attributes.keys():
                        attributes[key] = REDACTED_VALUE

                resources.append(
                    Resource(
                        id=resource_id,
                        name=self.extract_name(attributes, local_name),
                        type=resource_type,
                        region=self.extract_region(attributes, opts),
                        external_ref=self.extract_external_ref(attributes),
                        config=attributes,
                        tags=self.extract_tags(attributes),
                        dependencies=[
                            strip_module_prefix(str(dep))
                            for dep in instance.get("dependencies") or []
                        ],
                        created_at=parse_timestamp(self.extract_created_at(attributes)),
                    )
                )
        return resources

    def _convert_v3(self, state: dict[str, Any], opts: ParseOptions) -> list[Resource]:
        """Legacy format: flat ``primary.attributes`` keyed by dotted paths."""
        resources: list[Resource] = []
        for module in _dicts(state.get("modules")):
            module_path = [p for p in module.get("path") or [] if p != "root"]
            declared = module.get("resources")
            if not isinstance(declared, dict):
                continue
            for key, entry in declared.items():
                if key.startswith("data.") or not isinstance(entry, dict):
                    continue
                type_name = str(entry.get("type", ""))
                if not self.owns_type(type_name):
                    continue
                resource_type = resolve_type(type_name, self.provider)
                if not opts.includes(resource_type):
                    continue

                flat = dict((entry.get("primary") or {}).get("attributes") or {})
                attributes: dict[str, Any] = {
                    k: v for k, v in flat.items() if "." not in k
                }
                labels = {
                    k.split(".", 1)[1]: str(v)
                    for k, v in flat.items()
                    if k.startswith(("labels.", "tags.")) and not k.endswith(".%")
                }
                if labels:
                    attributes.setdefault("labels", labels)
                    attributes.setdefault("tags", labels)

                resource_id = ".".join([*module_path, key])
                local_name = key.rsplit(".", 1)[-1]
                resources.append(
                    Resource(
                        id=resource_id,
                        name=self.extract_name(attributes, local_name),
                        type=resource_type,
                        region=self.extract_region(attributes, opts),
                        external_ref=self.extract_external_ref(attributes),
                        config=attributes,
                        tags=self.extract_tags(attributes),
                        dependencies=[
                            strip_module_prefix(str(dep))
                            for dep in entry.get("depends_on") or []
                        ],
                    )
                )
        return resources

    @staticmethod
    def _link_indexed_dependencies(infra: Infrastructure) -> None:
        """
        Point dependencies on counted resources at their instances.

        State records ``google_compute_instance.web`` while the instances
        are stored as ``google_compute_instance.web[0]`` and so on.
        """
        ids = infra.resource_ids()
        for resource in infra:
            expanded: list[str] = []
            for dep in resource.dependencies:
                if dep in infra:
                    expanded.append(dep)
                    continue
                instances = [i for i in ids if i.startswith(f"{dep}[")]
                expanded.extend(instances or [dep])
            resource.dependencies = []
            for dep in expanded:
                resource.add_dependency(dep)

