"""Unit tests for failure classification."""

from __future__ import annotations

import pytest

from cdfutils.bulk import ErrorType, Identity, RequestType, ResourceType, ResponseError, TransportError
from cdfutils.bulk.results.classifier import classify, classify_failure


class TestClassifyFailure:
    """Test the rules shared by every request kind."""

    def test_transport_error_is_fatal(self):
        error = classify_failure(TransportError("timeout"))

        assert error.is_fatal
        assert error.message == "timeout"

    def test_server_error_is_fatal(self):
        error = classify_failure(ResponseError("Internal", 503))

        assert error.is_fatal
        assert error.status == 503

    @pytest.mark.parametrize("status", [400, 409, 422])
    def test_item_level_statuses(self, status):
        """Test that client errors are not fatal and name no values."""
        error = classify_failure(ResponseError("Bad", status))

        assert error.type is ErrorType.ILLEGAL_ITEM
        assert error.values is None

    def test_none_raises(self):
        with pytest.raises(TypeError):
            classify_failure(None)


class TestClassifyCreateAssets:
    """Test asset create classification."""

    def test_duplicated(self):
        exc = ResponseError("Duplicated", 409, duplicated=[{"externalId": "a"}, {"externalId": "b"}])

        error = classify(exc, RequestType.CREATE_ASSETS)

        assert error.type is ErrorType.ITEM_EXISTS
        assert error.resource is ResourceType.EXTERNAL_ID
        assert error.values == [Identity.of("a"), Identity.of("b")]

    def test_unknown_parent_needs_completion(self):
        exc = ResponseError("Reference to unknown parent with externalId root", 400)

        error = classify(exc, RequestType.CREATE_ASSETS)

        assert error.resource is ResourceType.PARENT_EXTERNAL_ID
        assert error.values == [Identity.of("root")]
        assert not error.complete

    def test_invalid_data_set_ids(self):
        exc = ResponseError("Invalid dataSetIds: [12, 34]", 400)

        error = classify(exc, RequestType.CREATE_ASSETS)

        assert error.type is ErrorType.ITEM_MISSING
        assert error.resource is ResourceType.DATA_SET_ID
        assert error.values == [Identity.of(12), Identity.of(34)]

    def test_missing_labels(self):
        exc = ResponseError("Labels not found", 400, missing=[{"externalId": "lbl"}])

        error = classify(exc, RequestType.CREATE_ASSETS)

        assert error.resource is ResourceType.LABELS


class TestClassifyOtherKinds:
    """Test classification of the remaining request kinds."""

    def test_update_assets_missing_ids(self):
        exc = ResponseError("Asset ids not found", 400, missing=[{"id": 4}])

        error = classify(exc, RequestType.UPDATE_ASSETS)

        assert error.resource is ResourceType.ID
        assert error.values == [Identity.of(4)]

    def test_update_assets_hierarchy_violation(self):
        exc = ResponseError("Asset must stay within same asset hierarchy", 400)

        error = classify(exc, RequestType.UPDATE_ASSETS)

        assert error.type is ErrorType.ILLEGAL_ITEM
        assert error.resource is ResourceType.PARENT_ID
        assert not error.complete

    def test_events_missing_asset_ids(self):
        exc = ResponseError("Asset ids not found", 400, missing=[{"id": 9}])

        error = classify(exc, RequestType.CREATE_EVENTS)

        assert error.resource is ResourceType.ASSET_ID
        assert error.values == [Identity.of(9)]

    def test_time_series_legacy_name(self):
        exc = ResponseError("Duplicated", 409, duplicated=[{"legacyName": "old"}])

        error = classify(exc, RequestType.CREATE_TIME_SERIES)

        assert error.resource is ResourceType.LEGACY_NAME
        assert error.values == [Identity(external_id="old")]

    def test_datapoint_mismatch(self):
        error = classify(ResponseError("Expected string value for datapoint", 400), RequestType.CREATE_DATAPOINTS)

        assert error.type is ErrorType.MISMATCHED_TYPE
        assert error.resource is ResourceType.DATA_POINT_VALUE
        assert not error.complete

    def test_datapoint_missing_instance_id(self):
        exc = ResponseError("Not found", 400, missing=[{"instanceId": {"space": "s", "externalId": "n"}}])

        error = classify(exc, RequestType.CREATE_DATAPOINTS)

        assert error.values[0].instance_id.space == "s"

    def test_unrecognized_stays_illegal_item(self):
        """Test that an unknown 400 message names no values."""
        error = classify(ResponseError("Something odd", 400), RequestType.CREATE_EVENTS)

        assert error.type is ErrorType.ILLEGAL_ITEM
        assert error.values is None
        assert error.complete
