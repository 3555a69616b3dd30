"""
Property-based tests using Hypothesis.

Covers the pure helpers whose invariants hold for any input: name
sanitising, quantity conversion, region derivation, config path lookup,
dependency ordering, filter precedence and format detection.
"""

from __future__ import annotations

import json
import random
import re
import tempfile
from pathlib import Path
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from homeport.core.errors import DependencyCycleError
from homeport.domain import catalog
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Category, Provider, Resource
from homeport.mappers.base import sanitize_name
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.databases import database_name
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import (
    cpu_quantity,
    format_memory_mib,
    memory_quantity,
)
from homeport.parsers.base import (
    ParseOptions,
    aws_region_from_zone,
    gcp_region_from_zone,
)
from homeport.parsers.defaults import create_default_registry
from homeport.parsers.tfstate import strip_module_prefix

key_strategy = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12)
gcp_region_strategy = st.from_regex(r"\A[a-z]{2,8}-[a-z]{2,10}[1-9]\Z")
aws_region_strategy = st.from_regex(r"\A[a-z]{2}-[a-z]{4,9}-[1-9]\Z")
zone_letter_strategy = st.sampled_from("abcdef")


class TestNames:
    """Property-based tests for generated names."""

    @given(st.text(max_size=60))
    @settings(max_examples=200)
    def test_sanitize_name_is_compose_safe(self, name: str) -> None:
        """Test sanitized names only use safe characters and no edge separators."""
        cleaned = sanitize_name(name)
        assert re.fullmatch(r"[a-z0-9_-]+", cleaned)
        assert "--" not in cleaned
        assert cleaned[0] not in "-_"
        assert cleaned[-1] not in "-_"

    @given(st.text(max_size=60))
    @settings(max_examples=100)
    def test_sanitize_name_is_idempotent(self, name: str) -> None:
        """Test sanitizing twice changes nothing."""
        once = sanitize_name(name)
        assert sanitize_name(once) == once

    @given(st.text(max_size=60))
    @settings(max_examples=200)
    def test_database_name_is_sql_safe(self, name: str) -> None:
        """Test database names are identifiers that never start with a digit."""
        cleaned = database_name(name)
        assert re.fullmatch(r"[a-z_][a-z0-9_]*", cleaned)
        assert database_name(cleaned) == cleaned


class TestQuantities:
    """Property-based tests for quantity conversion."""

    @given(st.integers(min_value=1, max_value=10_000_000))
    @settings(max_examples=100)
    def test_mebibytes_pass_through(self, mib: int) -> None:
        """Test ``<n>Mi`` always renders like the MiB formatter."""
        assert memory_quantity(f"{mib}Mi") == format_memory_mib(mib)

    @given(st.integers(min_value=1, max_value=1024))
    @settings(max_examples=50)
    def test_gibibytes_render_as_gigabytes(self, gib: int) -> None:
        """Test whole GiB quantities keep their unit."""
        assert memory_quantity(f"{gib}Gi") == f"{gib}G"

    @given(st.integers(min_value=1, max_value=64_000))
    @settings(max_examples=100)
    def test_millicores(self, millis: int) -> None:
        """Test millicores convert to fractional CPUs."""
        assert float(cpu_quantity(f"{millis}m")) == millis / 1000

    @given(st.text(alphabet="xyz!?", min_size=1, max_size=10))
    @settings(max_examples=50)
    def test_garbage_falls_back(self, value: str) -> None:
        """Test unparseable quantities give the defaults."""
        assert cpu_quantity(value) == "1"
        assert memory_quantity(value) == "512M"


class TestRegions:
    """Property-based tests for zone to region derivation."""

    @given(gcp_region_strategy, zone_letter_strategy)
    @settings(max_examples=100)
    def test_gcp_zone_to_region(self, region: str, letter: str) -> None:
        """Test zones and zone links reduce to their region."""
        assert gcp_region_from_zone(f"{region}-{letter}") == region
        link = f"https://compute.googleapis.com/compute/v1/zones/{region}-{letter}"
        assert gcp_region_from_zone(link) == region
        assert gcp_region_from_zone(region) == region

    @given(aws_region_strategy, zone_letter_strategy)
    @settings(max_examples=100)
    def test_aws_zone_to_region(self, region: str, letter: str) -> None:
        """Test availability zones reduce to their region."""
        assert aws_region_from_zone(f"{region}{letter}") == region
        assert aws_region_from_zone(region) == region

    @given(st.lists(key_strategy, max_size=4), key_strategy, key_strategy)
    @settings(max_examples=100)
    def test_strip_module_prefix(
        self, modules: list[str], type_suffix: str, name: str
    ) -> None:
        """Test module markers are removed and module names kept in order."""
        type_name = f"google_{type_suffix}"
        address = ".".join([f"module.{m}" for m in modules] + [type_name, name])
        assert strip_module_prefix(address) == ".".join(modules + [type_name, name])


class TestConfigPaths:
    """Property-based tests for dotted config lookup."""

    @given(st.lists(key_strategy, min_size=1, max_size=6), st.integers())
    @settings(max_examples=100)
    def test_nested_dicts(self, keys: list[str], value: int) -> None:
        """Test a dotted path reaches a value nested under dicts."""
        config: Any = value
        for key in reversed(keys):
            config = {key: config}
        resource = Resource(id="r", name="r", type=catalog.GCE_INSTANCE, config=config)
        assert resource.get_config(".".join(keys)) == value

    @given(st.lists(key_strategy, min_size=2, max_size=6), st.integers())
    @settings(max_examples=100)
    def test_single_element_lists_are_transparent(
        self, keys: list[str], value: int
    ) -> None:
        """Test Terraform-style one-element block lists are stepped through."""
        config: Any = value
        for depth in range(len(keys) - 1, -1, -1):
            config = {keys[depth]: config}
            if depth > 0:
                config = [config]
        resource = Resource(id="r", name="r", type=catalog.GCE_INSTANCE, config=config)
        assert resource.get_config(".".join(keys)) == value


class TestGraphOrdering:
    """Property-based tests for dependency ordering."""

    @given(st.data())
    @settings(max_examples=50)
    def test_dependencies_come_first(self, data: st.DataObject) -> None:
        """Test every resource appears after the resources it depends on."""
        count = data.draw(st.integers(min_value=1, max_value=15))
        ids = [f"r{i}" for i in range(count)]
        insertion = data.draw(st.permutations(ids))
        infra = Infrastructure(Provider.GCP)
        for resource_id in insertion:
            index = ids.index(resource_id)
            deps = []
            if index:
                deps = data.draw(st.lists(st.sampled_from(ids[:index]), unique=True))
            infra.add_resource(
                Resource(
                    id=resource_id,
                    name=resource_id,
                    type=catalog.GCS_BUCKET,
                    dependencies=deps,
                )
            )

        ordered = [r.id for r in infra.topological_order()]

        assert sorted(ordered) == sorted(ids)
        position = {resource_id: i for i, resource_id in enumerate(ordered)}
        for resource in infra:
            for dep in resource.dependencies:
                assert position[dep] < position[resource.id]
        assert infra.validate().ok


class TestGeneratedValues:
    """Property-based tests for generated credentials and results."""

    @given(st.integers(min_value=0, max_value=2**32), st.integers(1, 64))
    @settings(max_examples=50)
    def test_password_alphabet(self, seed: int, length: int) -> None:
        """Test passwords have the requested length and stay alphanumeric."""
        password = CredentialGenerator(random.Random(seed)).password(length)
        assert len(password) == length
        assert password.isascii() and password.isalnum()

    @given(st.lists(st.sampled_from(["homeport", "backend", "frontend", "db"])))
    @settings(max_examples=50)
    def test_networks_keep_first_seen_order(self, networks: list[str]) -> None:
        """Test added networks are unique and keep first-seen order."""
        result = MappingResult(service=None)
        for network in networks:
            result.add_network(network)
        assert result.networks == list(dict.fromkeys(networks))


json_strategy = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=10),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=20,
)
content_strategy = st.one_of(
    st.binary(max_size=256),
    json_strategy.map(lambda v: json.dumps(v).encode()),
    st.fixed_dictionaries(
        {
            "version": st.sampled_from([3, 4]),
            "resources": json_strategy,
            "modules": json_strategy,
        }
    ).map(lambda v: json.dumps(v).encode()),
    json_strategy.map(lambda v: f"Resources: {json.dumps(v)}\n".encode()),
    st.text(max_size=200).map(lambda v: f"resources:\n{v}".encode()),
)
suffix_strategy = st.sampled_from([".tfstate", ".json", ".tf", ".yaml", ".yml", ".txt"])
name_strategy = st.text(
    alphabet=st.characters(
        exclude_categories=("Cs",), exclude_characters="\x00/\\."
    ),
    min_size=1,
    max_size=30,
)
all_types = [
    t
    for provider in (Provider.GCP, Provider.AWS, Provider.AZURE)
    for t in catalog.types_for_provider(provider)
]


class TestDetection:
    """Property-based tests for format detection on arbitrary input."""

    @pytest.fixture(scope="class")
    def parsers(self):
        """Every built-in parser."""
        return create_default_registry().parsers()

    @given(content=content_strategy, suffix=suffix_strategy)
    @settings(max_examples=150, deadline=None)
    def test_confidence_is_bounded_for_files(
        self, parsers: list[Any], content: bytes, suffix: str
    ) -> None:
        """Test every parser scores arbitrary file content within [0, 1]."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / f"input{suffix}"
            path.write_bytes(content)
            for parser in parsers:
                assert 0.0 <= parser.detect_confidence(str(path)) <= 1.0
                assert 0.0 <= parser.detect_confidence(tmp) <= 1.0

    @given(name=name_strategy, api=st.booleans())
    @settings(max_examples=100, deadline=None)
    def test_confidence_is_bounded_for_missing_paths(
        self, parsers: list[Any], name: str, api: bool
    ) -> None:
        """Test missing paths and arbitrary targets never raise."""
        with tempfile.TemporaryDirectory() as tmp:
            path = f"gcp://{name}" if api else str(Path(tmp) / name)
            for parser in parsers:
                assert 0.0 <= parser.detect_confidence(path) <= 1.0


class TestFilters:
    """Property-based tests for parse filters."""

    @given(st.sampled_from(all_types), st.sampled_from(all_types))
    @settings(max_examples=100)
    def test_type_filter_shadows_category_filter(
        self, wanted: Any, other: Any
    ) -> None:
        """Test a type filter decides alone even when categories are given."""
        opts = ParseOptions(filter_types={wanted}, filter_categories={other.category})
        assert opts.includes(wanted)
        assert opts.includes(other) is (other == wanted)

    @given(
        st.sampled_from(all_types),
        st.sets(st.sampled_from(list(Category)), min_size=1),
    )
    @settings(max_examples=100)
    def test_category_filter(
        self, resource_type: Any, categories: set[Category]
    ) -> None:
        """Test categories apply when no types are given."""
        opts = ParseOptions(filter_categories=categories)
        assert opts.includes(resource_type) is (resource_type.category in categories)
        assert ParseOptions().includes(resource_type)


class TestDependencies:
    """Property-based tests for dependency bookkeeping and cycles."""

    @given(st.lists(st.sampled_from(["", "self", "a", "b", "c"]), max_size=12))
    @settings(max_examples=100)
    def test_dependencies_are_an_ordered_set(self, deps: list[str]) -> None:
        """Test duplicates, empty IDs and self references are dropped."""
        resource = Resource(
            id="self", name="self", type=catalog.GCS_BUCKET, dependencies=deps
        )
        expected = list(dict.fromkeys(d for d in deps if d and d != "self"))
        assert resource.dependencies == expected

    @given(st.lists(key_strategy, min_size=2, max_size=8, unique=True))
    @settings(max_examples=100)
    def test_rings_are_reported_as_cycles(self, ids: list[str]) -> None:
        """Test a ring of dependencies is detected and named."""
        infra = Infrastructure(Provider.GCP)
        for i, resource_id in enumerate(ids):
            infra.add_resource(
                Resource(
                    id=resource_id,
                    name=resource_id,
                    type=catalog.GCS_BUCKET,
                    dependencies=[ids[(i + 1) % len(ids)]],
                )
            )

        with pytest.raises(DependencyCycleError) as exc_info:
            infra.validate()
        assert sorted(exc_info.value.cycle) == sorted(ids)
        with pytest.raises(DependencyCycleError):
            infra.topological_order()
