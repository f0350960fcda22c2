"""Unit tests for error attribution against working sets."""

from __future__ import annotations

from cdfutils.bulk import (
    Asset,
    AssetCreate,
    AssetUpdate,
    AssetUpdateItem,
    CogniteError,
    Datapoint,
    ErrorType,
    Identity,
    ResourceType,
)
from cdfutils.bulk.models.base import SetPatch
from cdfutils.bulk.results.handlers import (
    apply_found_parents,
    asset_create_affected,
    clean_datapoints_from_error,
    clean_from_error,
    external_identity,
    find_bad_asset_parents,
    parent_lookup_candidates,
)


def _assets(*xids: str) -> list[AssetCreate]:
    return [AssetCreate(external_id=xid, name=xid) for xid in xids]


class TestCleanFromError:
    """Test the generic cleaner."""

    def test_removes_matching(self):
        items = _assets("a", "b", "c")
        error = CogniteError(type=ErrorType.ITEM_EXISTS, resource=ResourceType.EXTERNAL_ID, values=[Identity.of("b")])

        remaining = clean_from_error(error, items, asset_create_affected, external_identity)

        assert remaining == [items[0], items[2]]
        assert error.skipped == [items[1]]

    def test_no_values_implicates_all(self):
        items = _assets("a", "b")
        error = CogniteError(type=ErrorType.ILLEGAL_ITEM)

        remaining = clean_from_error(error, items, asset_create_affected, external_identity)

        assert remaining == []
        assert error.skipped == items
        assert error.values == [Identity.of("a"), Identity.of("b")]

    def test_unmatched_values_implicate_all(self):
        """Test that a working set always shrinks."""
        items = _assets("a")
        error = CogniteError(type=ErrorType.ITEM_EXISTS, resource=ResourceType.EXTERNAL_ID, values=[Identity.of("z")])

        assert clean_from_error(error, items, asset_create_affected, external_identity) == []
        assert error.skipped == items

    def test_pre_attributed_skipped(self):
        items = _assets("a", "b")
        error = CogniteError(skipped=[items[0]])

        assert clean_from_error(error, items, asset_create_affected, external_identity) == [items[1]]


class TestParentCompletion:
    """Test completion helpers for unknown parents."""

    def test_candidates_skip_known_and_in_request(self):
        items = [
            AssetCreate(external_id="a", name="a", parent_external_id="p1"),
            AssetCreate(external_id="b", name="b", parent_external_id="a"),
            AssetCreate(external_id="c", name="c", parent_external_id="p2"),
        ]
        error = CogniteError(values=[Identity.of("p1")])

        assert parent_lookup_candidates(error, items) == [Identity.of("p2")]

    def test_apply_found_parents(self):
        error = CogniteError(values=[Identity.of("p1")], complete=False)

        apply_found_parents(error, [Identity.of("p2"), Identity.of("p3")], [Asset(id=1, external_id="p3")])

        assert error.values == [Identity.of("p2"), Identity.of("p1")]
        assert error.complete


class TestFindBadAssetParents:
    """Test parent change verification."""

    def test_missing_and_illegal(self):
        missing = AssetUpdateItem(id=1, update=AssetUpdate(parent_id=SetPatch[int](set=99)))
        illegal = AssetUpdateItem(id=2, update=AssetUpdate(parent_external_id=SetPatch[str](set="other")))
        fine = AssetUpdateItem(id=3, update=AssetUpdate(parent_id=SetPatch[int](set=10)))
        assets = [
            Asset(id=2, root_id=10),
            Asset(id=3, root_id=10),
            Asset(id=10, root_id=10),
            Asset(id=20, external_id="other", root_id=20),
        ]

        errors = find_bad_asset_parents([missing, illegal, fine], assets)

        by_type = {error.type: error for error in errors}
        assert by_type[ErrorType.ITEM_MISSING].skipped == [missing]
        assert by_type[ErrorType.ITEM_MISSING].values == [Identity.of(99)]
        assert by_type[ErrorType.ILLEGAL_ITEM].skipped == [illegal]


class TestCleanDatapoints:
    """Test the data point cleaner."""

    def test_removes_series(self):
        a, b = Identity.of("a"), Identity.of("b")
        points = {a: [Datapoint.numeric(0, 1.0)], b: [Datapoint.numeric(0, 2.0)]}
        error = CogniteError(type=ErrorType.ITEM_MISSING, resource=ResourceType.ID, values=[b])

        remaining = clean_datapoints_from_error(error, points)

        assert list(remaining) == [a]
        assert error.skipped[0].identity == b
        assert list(points) == [a, b]
