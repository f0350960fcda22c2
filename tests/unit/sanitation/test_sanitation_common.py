"""Unit tests for shared sanitation helpers."""

from __future__ import annotations

import pytest

from cdfutils.bulk import ErrorType, Identity, ResourceType, SanitationMode
from cdfutils.bulk.sanitation import (
    DistinctResource,
    clean_request,
    limit_utf8_byte_count,
    sanitize_metadata,
    truncate,
    verify_metadata,
)

SAMPLES = ["", "abc", "æøå", "a€b", "😀x😀", "日本語テキスト"]


class TestLimitUtf8ByteCount:
    """Test byte-safe truncation."""

    @pytest.mark.parametrize("value", SAMPLES)
    def test_longest_valid_prefix(self, value):
        """Test that every cut is the longest prefix fitting the byte budget."""
        size = len(value.encode("utf-8"))
        for n in range(size + 2):
            result = limit_utf8_byte_count(value, n)
            assert value.startswith(result)
            assert len(result.encode("utf-8")) <= n
            if result != value:
                # One more code point would not fit
                assert len(value[: len(result) + 1].encode("utf-8")) > n

    def test_fits_returns_input(self):
        """Test that a fitting value is returned as is."""
        assert limit_utf8_byte_count("abc", 3) == "abc"
        assert limit_utf8_byte_count(None, 3) is None

    def test_drops_split_code_point(self):
        """Test that a partially included multi-byte character is dropped."""
        assert limit_utf8_byte_count("a€", 3) == "a"


class TestTruncate:
    """Test character truncation."""

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc"
        assert truncate("ab", 3) == "ab"
        assert truncate(None, 3) is None


class TestMetadata:
    """Test metadata budgets."""

    def test_sanitized_metadata_verifies(self):
        """Test that sanitized metadata passes verification with the same limits."""
        data = {f"key{i}": "x" * 50 for i in range(20)}
        data["long" * 10] = "y" * 500

        result, total = sanitize_metadata(data, 16, 10, 100, 600)
        ok, _ = verify_metadata(result, 16, 10, 100, 600)

        assert ok
        assert len(result) <= 10
        assert total <= 600

    def test_none_value_becomes_empty(self):
        """Test that None values are replaced."""
        result, _ = sanitize_metadata({"a": None}, 10, 10, 10, 100)

        assert result == {"a": ""}
        assert verify_metadata({"a": None}, 10, 10, 10, 100) == (False, 0)

    def test_none_stays_none(self):
        assert sanitize_metadata(None, 1, 1, 1, 1) == (None, 0)


def _distinct():
    return [
        DistinctResource[dict](
            "Duplicate keys",
            ResourceType.EXTERNAL_ID,
            lambda item: Identity.of(item["key"]) if item["key"] is not None else None,
        )
    ]


def _verify(item: dict) -> ResourceType | None:
    return ResourceType.NAME if len(item["name"]) > 3 else None


def _sanitize(item: dict) -> None:
    item["name"] = item["name"][:3]


class TestCleanRequest:
    """Test the generic clean pipeline."""

    def test_only_accepted_records_reserve_keys(self):
        """Test that a rejected record does not push out a later valid duplicate."""
        items = [{"key": "a", "name": "toolong"}, {"key": "a", "name": "ok"}, {"key": "a", "name": "ok2"}]

        accepted, errors = clean_request(_distinct(), items, _verify, _sanitize, SanitationMode.REMOVE)

        assert accepted == [items[1]]
        by_type = {error.type: error for error in errors}
        assert by_type[ErrorType.SANITATION_FAILED].skipped == [items[0]]
        assert by_type[ErrorType.SANITATION_FAILED].resource is ResourceType.NAME
        assert by_type[ErrorType.ITEM_DUPLICATED].skipped == [items[2]]
        assert by_type[ErrorType.ITEM_DUPLICATED].values == [Identity.of("a")]

    def test_clean_repairs_in_place(self):
        """Test that CLEAN mode sanitizes before verifying."""
        items = [{"key": "a", "name": "toolong"}]

        accepted, errors = clean_request(_distinct(), items, _verify, _sanitize, SanitationMode.CLEAN)

        assert errors == []
        assert accepted[0]["name"] == "too"

    def test_none_mode_passes_through(self):
        """Test that NONE mode does nothing."""
        items = [{"key": "a", "name": "toolong"}, {"key": "a", "name": "toolong"}]

        accepted, errors = clean_request(_distinct(), items, _verify, _sanitize, SanitationMode.NONE)

        assert accepted == items
        assert errors == []

    def test_records_without_key_are_not_checked(self):
        items = [{"key": None, "name": "a"}, {"key": None, "name": "b"}]

        accepted, _ = clean_request(_distinct(), items, _verify, _sanitize, SanitationMode.REMOVE)

        assert accepted == items

    def test_none_items_raise(self):
        with pytest.raises(TypeError):
            clean_request(_distinct(), None, _verify, _sanitize, SanitationMode.CLEAN)
