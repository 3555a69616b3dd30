"""Tests for the parser registry and auto-detection."""

import pytest

from homeport.core.errors import (
    NoParserFoundError,
    UnsupportedFormatError,
)
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Provider
from homeport.parsers.base import Format, FormatParser
from homeport.parsers.defaults import create_default_registry
from homeport.parsers.registry import ParserRegistry


class FakeParser(FormatParser):
    """Parser with a scripted confidence."""

    def __init__(
        self,
        label,
        confidence,
        provider=Provider.GCP,
        formats=(Format.TFSTATE,),
        reject=False,
    ):
        self.label = label
        self.confidence = confidence
        self._provider = provider
        self._formats = list(formats)
        self.reject = reject
        self.parsed = []

    @property
    def provider(self):
        return self._provider

    @property
    def supported_formats(self):
        return self._formats

    @property
    def name(self):
        return self.label

    def validate(self, path):
        if self.reject:
            raise UnsupportedFormatError(path, self.label)

    def detect_confidence(self, path):
        if isinstance(self.confidence, Exception):
            raise self.confidence
        return self.confidence

    def parse(self, path, options=None):
        self.parsed.append(path)
        return Infrastructure(self._provider, {"parser": self.label})


class TestAutoDetect:
    """Test the detection wrapper on FormatParser."""

    @pytest.mark.parametrize(
        ("confidence", "expected"),
        [
            (0.7, (True, 0.7)),
            (0.0, (False, 0.0)),
            (1.5, (True, 1.0)),
            (-0.2, (False, 0.0)),
            (float("nan"), (False, 0.0)),
        ],
    )
    def test_confidence_is_clamped(self, confidence, expected):
        """Test clamping and NaN handling."""
        assert FakeParser("p", confidence).auto_detect("x") == expected

    def test_probe_errors_mean_no_match(self):
        """Test exceptions while probing are swallowed as no match."""
        parser = FakeParser("p", OSError("unreadable"))
        assert parser.auto_detect("x") == (False, 0.0)

    def test_metadata(self):
        """Test descriptive metadata."""
        parser = FakeParser("p", 0.5, Provider.AWS, (Format.TERRAFORM,))
        assert parser.get_metadata() == {
            "name": "p",
            "provider": "aws",
            "formats": ["terraform"],
        }


class TestRegistration:
    """Test registering and listing parsers."""

    def test_register_keeps_order(self):
        """Test parsers are listed in registration order."""
        registry = ParserRegistry()
        first, second = FakeParser("a", 0.1), FakeParser("b", 0.1)
        registry.register(first)
        registry.register(second)
        assert registry.parsers() == [first, second]
        assert len(registry) == 2

    def test_register_same_instance_twice(self):
        """Test double registration is rejected."""
        registry = ParserRegistry()
        parser = FakeParser("a", 0.1)
        registry.register(parser)
        with pytest.raises(ValueError, match="already registered"):
            registry.register(parser)

    def test_for_provider(self):
        """Test provider filtering."""
        registry = ParserRegistry()
        gcp = FakeParser("gcp", 0.1, Provider.GCP)
        aws = FakeParser("aws", 0.1, Provider.AWS)
        registry.register(gcp)
        registry.register(aws)
        assert registry.for_provider(Provider.AWS) == [aws]

    def test_get_by_format(self):
        """Test lookup by provider and format."""
        registry = ParserRegistry()
        hcl = FakeParser("hcl", 0.1, Provider.AWS, (Format.TERRAFORM,))
        registry.register(FakeParser("state", 0.1, Provider.AWS))
        registry.register(hcl)
        assert registry.get_by_format(Provider.AWS, Format.TERRAFORM) is hcl

    def test_get_by_format_missing(self):
        """Test lookup of an unregistered combination."""
        registry = ParserRegistry()
        registry.register(FakeParser("state", 0.1, Provider.AWS))
        with pytest.raises(UnsupportedFormatError):
            registry.get_by_format(Provider.GCP, Format.TFSTATE)

    def test_registry_info(self):
        """Test registry description."""
        registry = ParserRegistry()
        registry.register(FakeParser("b", 0.1, Provider.GCP))
        registry.register(FakeParser("a", 0.1, Provider.AWS))
        info = registry.get_registry_info()
        assert [p["name"] for p in info["parsers"]] == ["b", "a"]
        assert info["providers"] == ["aws", "gcp"]


class TestSelection:
    """Test confidence ranking and selection."""

    def test_highest_confidence_wins(self):
        """Test the best-scoring parser is selected."""
        registry = ParserRegistry()
        low, high = FakeParser("low", 0.4), FakeParser("high", 0.9)
        registry.register(low)
        registry.register(high)
        assert registry.select_best("input") is high

    def test_ties_go_to_first_registered(self):
        """Test registration order breaks ties."""
        registry = ParserRegistry(max_probe_workers=4)
        parsers = [FakeParser(f"p{i}", 0.8) for i in range(6)]
        for parser in parsers:
            registry.register(parser)
        assert registry.select_best("input") is parsers[0]

    def test_detect_all_ranking(self):
        """Test ranking drops zero scores and orders ties by index."""
        registry = ParserRegistry()
        for label, confidence in [("a", 0.5), ("b", 0.0), ("c", 0.9), ("d", 0.5)]:
            registry.register(FakeParser(label, confidence))
        ranked = registry.detect_all("input")
        assert [r.parser.name for r in ranked] == ["c", "a", "d"]
        assert [r.index for r in ranked] == [2, 0, 3]

    def test_rejected_candidate_falls_through(self):
        """Test a candidate failing validation yields to the next."""
        registry = ParserRegistry()
        picky = FakeParser("picky", 0.9, reject=True)
        fallback = FakeParser("fallback", 0.3)
        registry.register(picky)
        registry.register(fallback)
        assert registry.select_best("input") is fallback

    def test_no_parser_found(self):
        """Test failure when nothing matches."""
        registry = ParserRegistry()
        registry.register(FakeParser("none", 0.0))
        registry.register(FakeParser("broken", RuntimeError("x")))
        with pytest.raises(NoParserFoundError):
            registry.select_best("input")

    def test_empty_registry(self):
        """Test an empty registry finds nothing."""
        with pytest.raises(NoParserFoundError):
            ParserRegistry().select_best("input")

    def test_parse_delegates(self):
        """Test parse runs the selected parser."""
        registry = ParserRegistry()
        parser = FakeParser("only", 0.6)
        registry.register(parser)
        infra = registry.parse("input")
        assert parser.parsed == ["input"]
        assert infra.metadata == {"parser": "only"}


class TestDefaultRegistry:
    """Test the built-in parser set."""

    def test_registration_order(self):
        """Test GCP parsers are registered before AWS ones."""
        names = [p.name for p in create_default_registry().parsers()]
        assert names == [
            "GCPAPIParser",
            "GCPTFStateParser",
            "DeploymentManagerParser",
            "GCPTerraformParser",
            "AWSTFStateParser",
            "CloudFormationParser",
            "AWSTerraformParser",
        ]

    def test_providers(self):
        """Test both providers are covered."""
        info = create_default_registry().get_registry_info()
        assert info["providers"] == ["aws", "gcp"]

    def test_unknown_input(self, tmp_path):
        """Test plain text is not claimed by any parser."""
        notes = tmp_path / "notes.txt"
        notes.write_text("shopping list\n")
        with pytest.raises(NoParserFoundError):
            create_default_registry().select_best(str(notes))
