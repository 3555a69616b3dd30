"""Tests for parse options and shared parser helpers."""

from datetime import datetime, timezone

import pytest

from homeport.config import load_settings
from homeport.core.cancellation import CancellationToken
from homeport.core.errors import OperationCancelledError
from homeport.domain import catalog
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Category, Provider
from homeport.parsers.base import (
    ParseOptions,
    ProgressEvent,
    apply_filters,
    aws_region_from_zone,
    gcp_region_from_zone,
    last_segment,
    parse_timestamp,
)


class TestParseOptionsFilters:
    """Test type and category filtering."""

    def test_no_filters_include_everything(self):
        """Test that empty filters pass every type."""
        options = ParseOptions()
        assert options.includes(catalog.GCS_BUCKET)
        assert options.includes(catalog.opaque_type("google_new_thing"))

    def test_type_filter(self):
        """Test that a type filter selects exact types."""
        options = ParseOptions(filter_types={catalog.GCS_BUCKET})
        assert options.includes(catalog.GCS_BUCKET)
        assert not options.includes(catalog.GCE_DISK)

    def test_category_filter(self):
        """Test that a category filter selects by category."""
        options = ParseOptions(filter_categories={Category.DATABASE})
        assert options.includes(catalog.CLOUD_SQL_INSTANCE)
        assert not options.includes(catalog.GCS_BUCKET)

    def test_type_filter_overrides_categories(self):
        """Test that categories are ignored once types are given."""
        options = ParseOptions(
            filter_types={catalog.GCS_BUCKET},
            filter_categories={Category.DATABASE},
        )
        assert options.includes(catalog.GCS_BUCKET)
        assert not options.includes(catalog.CLOUD_SQL_INSTANCE)

    def test_includes_any(self):
        """Test the any-of helper used to skip whole scans."""
        options = ParseOptions(filter_categories={Category.MESSAGING})
        assert options.includes_any([catalog.GCS_BUCKET, catalog.PUBSUB_TOPIC])
        assert not options.includes_any([catalog.GCS_BUCKET, catalog.GCE_DISK])
        assert not options.includes_any([])

    def test_apply_filters(self, make_resource):
        """Test filtering an infrastructure by options."""
        infra = Infrastructure(Provider.GCP, {"project_id": "acme"})
        infra.add_resource(make_resource("bucket", catalog.GCS_BUCKET))
        infra.add_resource(make_resource("vm", catalog.GCE_INSTANCE))

        filtered = apply_filters(
            infra, ParseOptions(filter_categories={Category.STORAGE})
        )

        assert filtered.resource_ids() == ["bucket"]
        assert filtered.metadata == {"project_id": "acme"}
        assert len(infra) == 2


class TestParseOptionsHelpers:
    """Test the remaining option helpers."""

    def test_default_region(self):
        """Test the first configured region wins."""
        assert ParseOptions().default_region("global") == "global"
        options = ParseOptions(regions=["europe-west1", "us-east1"])
        assert options.default_region("global") == "europe-west1"

    def test_emit_calls_callback(self):
        """Test progress events reach the callback."""
        events = []
        options = ParseOptions(on_progress=events.append)
        options.emit("scan_completed", "storage", "done", 3)
        assert events == [ProgressEvent("scan_completed", "storage", "done", 3)]

    def test_emit_without_callback(self):
        """Test emitting with no callback is a no-op."""
        ParseOptions().emit("file_parsed", "main.tf")

    def test_check_cancelled(self):
        """Test cancellation through options."""
        token = CancellationToken()
        options = ParseOptions(cancel_token=token)
        options.check_cancelled("parse")
        token.cancel()
        with pytest.raises(OperationCancelledError):
            options.check_cancelled("parse")

    def test_from_settings(self):
        """Test options seeded from settings with overrides."""
        settings = load_settings(
            {"HOMEPORT_MAX_SCAN_WORKERS": "9", "HOMEPORT_MAX_FILE_BYTES": "4096"}
        )
        options = ParseOptions.from_settings(settings, ignore_errors=True)
        assert options.max_workers == 9
        assert options.max_file_bytes == 4096
        assert options.ignore_errors is True

    def test_from_settings_override_wins(self):
        """Test explicit overrides replace settings values."""
        options = ParseOptions.from_settings(load_settings({}), max_workers=1)
        assert options.max_workers == 1


class TestRegionHelpers:
    """Test zone to region conversion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("us-central1-a", "us-central1"),
            ("europe-west1-b", "europe-west1"),
            ("northamerica-northeast1-c", "northamerica-northeast1"),
            ("us-central1", "us-central1"),
            ("global", "global"),
            (
                "https://www.googleapis.com/compute/v1/projects/p/zones/asia-east1-a",
                "asia-east1",
            ),
        ],
    )
    def test_gcp_region_from_zone(self, value, expected):
        """Test GCP zones, regions and self-links."""
        assert gcp_region_from_zone(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("us-east-1a", "us-east-1"),
            ("eu-west-1c", "eu-west-1"),
            ("us-gov-west-1b", "us-gov-west-1"),
            ("us-east-1", "us-east-1"),
        ],
    )
    def test_aws_region_from_zone(self, value, expected):
        """Test AWS availability zones and regions."""
        assert aws_region_from_zone(value) == expected


class TestMiscHelpers:
    """Test small parsing helpers."""

    def test_last_segment(self):
        """Test URL and path tails."""
        assert last_segment("projects/p/zones/us-central1-a/") == "us-central1-a"
        assert last_segment("e2-medium") == "e2-medium"
        assert last_segment("") == ""

    def test_parse_timestamp(self):
        """Test RFC 3339 parsing."""
        assert parse_timestamp("2024-03-01T10:00:00Z") == datetime(
            2024, 3, 1, 10, 0, tzinfo=timezone.utc
        )
        assert parse_timestamp("2024-03-01T10:00:00.123-07:00").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "yesterday", 1700000000])
    def test_parse_timestamp_invalid(self, value):
        """Test non-timestamps yield None."""
        assert parse_timestamp(value) is None
