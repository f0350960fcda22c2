"""Remove the records implicated by a classified error from a working set.

Architecture:
    ``clean_from_error`` is the generic step used for every list-shaped
    request. Each record kind supplies an ``is_affected`` predicate mapping
    an error's (type, resource, values) onto a record's fields. Data points
    and sequence rows have their own cleaners because their working sets
    are keyed by time series or sequence, and skipped entries are
    DatapointInsertError / SequenceRowError.

    The ``find_*`` functions are the pure halves of the completion
    lookups: given records already fetched from the server they work out
    which parts of the working set are at fault.

Design Decisions:
    - An error with no values implicates the whole working set
    - An error whose values match nothing also implicates the whole set,
      so every call strictly shrinks or empties the working set
    - An error that already carries skipped records was attributed by a
      completion lookup; only those records are removed
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from ..core.enums import ErrorType, ResourceType
from ..core.identity import Identity
from ..models.assets import Asset, AssetCreate, AssetUpdateItem
from ..models.datapoints import Datapoint, DatapointInsertError
from ..models.events import EventCreate
from ..models.sequences import (
    RowValue,
    Sequence as SequenceRecord,
    SequenceCreate,
    SequenceDataCreate,
    SequenceRowError,
)
from ..models.timeseries import TimeSeries, TimeSeriesCreate, TimeSeriesUpdateItem
from .error import CogniteError, unique_identities

T = TypeVar("T")

IsAffected = Callable[[T, CogniteError, set[Identity]], bool]
DatapointSet = dict[Identity, list[Datapoint]]


def clean_from_error(
    error: CogniteError,
    items: Iterable[T],
    is_affected: IsAffected[T],
    get_identity: Callable[[T], Identity | None],
) -> list[T]:
    """Split ``items`` into survivors and records skipped because of ``error``.

    ``error.skipped`` is set to the removed records. When every record is
    implicated, ``error.values`` is filled with their identities.

    Args:
        error: Classified error
        items: Current working set
        is_affected: Predicate telling whether a record matches the error
        get_identity: Identity of a record, used to fill values

    Returns:
        Records to send in the next attempt
    """
    records = list(items)
    if error.skipped:
        attributed = {id(item) for item in error.skipped}
        return [item for item in records if id(item) not in attributed]

    if not error.values:
        _skip_all(error, records, get_identity)
        return []

    bad = set(error.values)
    keep: list[T] = []
    skipped: list[T] = []
    for item in records:
        (skipped if is_affected(item, error, bad) else keep).append(item)

    if not skipped:
        error.skipped = records
        return []
    error.skipped = skipped
    return keep


def _skip_all(error: CogniteError, records: list[T], get_identity: Callable[[T], Identity | None]) -> None:
    error.skipped = records
    error.values = unique_identities(idt for idt in map(get_identity, records) if idt is not None)


def _id_in(value: int | None, bad: set[Identity]) -> bool:
    return value is not None and Identity(id=value) in bad


def _xid_in(value: str | None, bad: set[Identity]) -> bool:
    return value is not None and Identity(external_id=value) in bad


def external_identity(item: AssetCreate | EventCreate | TimeSeriesCreate | SequenceCreate) -> Identity | None:
    return Identity.from_item(None, item.external_id)


# Assets


def asset_create_affected(item: AssetCreate, error: CogniteError, bad: set[Identity]) -> bool:
    resource = error.resource
    if resource is ResourceType.DATA_SET_ID:
        return _id_in(item.data_set_id, bad)
    if resource is ResourceType.EXTERNAL_ID:
        return _xid_in(item.external_id, bad)
    if resource is ResourceType.PARENT_EXTERNAL_ID:
        return _xid_in(item.parent_external_id, bad)
    if resource is ResourceType.PARENT_ID:
        return _id_in(item.parent_id, bad)
    if resource is ResourceType.LABELS:
        return any(_xid_in(label.external_id, bad) for label in item.labels or [])
    return False


def asset_update_affected(item: AssetUpdateItem, error: CogniteError, bad: set[Identity]) -> bool:
    update = item.update
    resource = error.resource
    if resource is ResourceType.ID:
        return item.identity in bad
    if resource is ResourceType.DATA_SET_ID:
        return update.data_set_id is not None and _id_in(update.data_set_id.set, bad)
    if resource is ResourceType.EXTERNAL_ID:
        new_xid = update.external_id.set if update.external_id else None
        if error.type is ErrorType.ITEM_EXISTS:
            return _xid_in(new_xid, bad)
        parent_xid = update.parent_external_id.set if update.parent_external_id else None
        return _xid_in(new_xid, bad) or _xid_in(item.external_id, bad) or _xid_in(parent_xid, bad)
    if resource is ResourceType.PARENT_ID:
        if error.type is ErrorType.ILLEGAL_ITEM:
            return _xid_in(item.external_id, bad) or _id_in(item.id, bad)
        parent_id = update.parent_id.set if update.parent_id else None
        parent_xid = update.parent_external_id.set if update.parent_external_id else None
        return _id_in(parent_id, bad) or _xid_in(parent_xid, bad)
    if resource is ResourceType.LABELS:
        labels = (update.labels.add or []) + (update.labels.set or []) if update.labels else []
        return any(_xid_in(label.external_id, bad) for label in labels)
    return False


def asset_update_identity(item: AssetUpdateItem) -> Identity | None:
    return item.identity


def parent_lookup_candidates(error: CogniteError, items: Sequence[AssetCreate]) -> list[Identity]:
    """Parent external ids worth looking up to complete a ParentExternalId error.

    Parents already named by the error and parents created in the same
    request are left out.
    """
    known = set(error.values or [])
    known.update(Identity(external_id=item.external_id) for item in items if item.external_id is not None)
    parents = unique_identities(
        Identity(external_id=item.parent_external_id) for item in items if item.parent_external_id is not None
    )
    return [idt for idt in parents if idt not in known]


def apply_found_parents(error: CogniteError, candidates: Sequence[Identity], found: Iterable[Asset]) -> None:
    """Add the candidates missing from ``found`` to the error values and mark it complete."""
    existing = {Identity(external_id=asset.external_id) for asset in found if asset.external_id is not None}
    missing = [idt for idt in candidates if idt not in existing]
    error.values = unique_identities([*missing, *(error.values or [])])
    error.complete = True


def find_bad_asset_parents(
    items: Sequence[AssetUpdateItem],
    assets: Iterable[Asset],
) -> list[CogniteError]:
    """Check parent changes of ``items`` against assets fetched from the server.

    ``assets`` must contain the new parents and the updated assets
    themselves, as far as they exist. Updates whose new parent is missing
    give an ItemMissing error; moves into another hierarchy or to or from
    root give an IllegalItem error.

    Returns:
        Errors with values and skipped already attributed
    """
    by_id: dict[int, Asset] = {}
    by_xid: dict[str, Asset] = {}
    for asset in assets:
        by_id[asset.id] = asset
        if asset.external_id is not None:
            by_xid[asset.external_id] = asset

    missing: list[tuple[Identity, AssetUpdateItem]] = []
    illegal: list[AssetUpdateItem] = []
    for item in items:
        update = item.update
        parent: Asset | None = None
        if update.parent_id is not None and update.parent_id.set is not None:
            parent = by_id.get(update.parent_id.set)
            if parent is None:
                missing.append((Identity(id=update.parent_id.set), item))
                continue
        elif update.parent_external_id is not None and update.parent_external_id.set is not None:
            parent = by_xid.get(update.parent_external_id.set)
            if parent is None:
                missing.append((Identity(external_id=update.parent_external_id.set), item))
                continue
        if parent is None:
            continue

        current = by_id.get(item.id) if item.id is not None else by_xid.get(item.external_id or "")
        if current is not None and current.root_id != parent.root_id:
            illegal.append(item)

    errors: list[CogniteError] = []
    if missing:
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_MISSING,
                resource=ResourceType.PARENT_ID,
                values=unique_identities(parent for parent, _ in missing),
                skipped=[item for _, item in missing],
                message="Missing asset parents",
            )
        )
    if illegal:
        errors.append(
            CogniteError(
                type=ErrorType.ILLEGAL_ITEM,
                resource=ResourceType.PARENT_ID,
                values=unique_identities(item.identity for item in illegal if item.identity is not None),
                skipped=illegal,
                message="Changing from/to being root is not allowed",
            )
        )
    return errors


# Events, time series and sequences


def event_affected(item: EventCreate, error: CogniteError, bad: set[Identity]) -> bool:
    resource = error.resource
    if resource is ResourceType.DATA_SET_ID:
        return _id_in(item.data_set_id, bad)
    if resource is ResourceType.EXTERNAL_ID:
        return _xid_in(item.external_id, bad)
    if resource is ResourceType.ASSET_ID:
        return any(_id_in(asset_id, bad) for asset_id in item.asset_ids or [])
    return False


def time_series_create_affected(item: TimeSeriesCreate, error: CogniteError, bad: set[Identity]) -> bool:
    resource = error.resource
    if resource is ResourceType.DATA_SET_ID:
        return _id_in(item.data_set_id, bad)
    if resource is ResourceType.EXTERNAL_ID:
        return _xid_in(item.external_id, bad)
    if resource is ResourceType.ASSET_ID:
        return _id_in(item.asset_id, bad)
    if resource is ResourceType.LEGACY_NAME:
        return _xid_in(item.legacy_name, bad)
    return False


def time_series_update_affected(item: TimeSeriesUpdateItem, error: CogniteError, bad: set[Identity]) -> bool:
    update = item.update
    resource = error.resource
    if resource is ResourceType.ID:
        return item.identity in bad
    if resource is ResourceType.DATA_SET_ID:
        return update.data_set_id is not None and _id_in(update.data_set_id.set, bad)
    if resource is ResourceType.EXTERNAL_ID:
        return update.external_id is not None and _xid_in(update.external_id.set, bad)
    if resource is ResourceType.ASSET_ID:
        return update.asset_id is not None and _id_in(update.asset_id.set, bad)
    return False


def time_series_update_identity(item: TimeSeriesUpdateItem) -> Identity | None:
    return item.identity


def sequence_affected(item: SequenceCreate, error: CogniteError, bad: set[Identity]) -> bool:
    resource = error.resource
    if resource is ResourceType.DATA_SET_ID:
        return _id_in(item.data_set_id, bad)
    if resource is ResourceType.EXTERNAL_ID:
        return _xid_in(item.external_id, bad)
    if resource is ResourceType.ASSET_ID:
        return _id_in(item.asset_id, bad)
    return False


# Sequence rows


def clean_sequence_rows_from_error(
    error: CogniteError,
    items: Iterable[SequenceDataCreate],
) -> list[SequenceDataCreate]:
    """Remove sequences implicated by ``error``. Skipped entries are SequenceRowError."""
    records = list(items)
    if error.skipped:
        return records

    def as_row_error(item: SequenceDataCreate) -> SequenceRowError:
        return SequenceRowError(item.identity, list(item.rows or []))

    if error.values:
        bad = set(error.values)
        affected = [item for item in records if item.identity in bad]
        if affected:
            error.skipped = [as_row_error(item) for item in affected]
            return [item for item in records if item.identity not in bad]

    error.skipped = [as_row_error(item) for item in records]
    error.values = unique_identities(item.identity for item in records if item.identity is not None)
    return []


def _row_value_matches(value: RowValue, value_type: str) -> bool:
    if value is None:
        return True
    kind = value_type.upper()
    if kind == "STRING":
        return isinstance(value, str)
    if isinstance(value, bool) or isinstance(value, str):
        return False
    if kind == "LONG":
        return isinstance(value, int)
    return isinstance(value, (int, float))


def find_mismatched_rows(
    error: CogniteError,
    items: Sequence[SequenceDataCreate],
    sequences: Iterable[SequenceRecord],
) -> tuple[CogniteError, list[SequenceDataCreate]]:
    """Check rows against the column definitions of the target sequences.

    Columns unknown to the server remove the whole sequence from the
    request. Rows with a value of the wrong type are removed individually.
    Sequences the server did not return are left for the next attempt.

    Returns:
        Tuple of (error with skipped attributed, remaining working set)
    """
    by_id: dict[Identity, SequenceRecord] = {}
    for seq in sequences:
        by_id[Identity(id=seq.id)] = seq
        if seq.external_id is not None:
            by_id[Identity(external_id=seq.external_id)] = seq

    skipped: list[SequenceRowError] = []
    remaining: list[SequenceDataCreate] = []
    for item in items:
        seq = by_id.get(item.identity) if item.identity is not None else None
        if seq is None:
            remaining.append(item)
            continue
        types = {column.external_id: column.value_type for column in seq.columns or []}
        columns = list(item.columns or [])
        unknown = [column for column in columns if column not in types]
        if unknown:
            skipped.append(SequenceRowError(item.identity, list(item.rows or []), unknown))  # type: ignore[arg-type]
            continue

        good = []
        bad = []
        for row in item.rows or []:
            values = row.values or []
            ok = len(values) == len(columns) and all(
                _row_value_matches(value, types[column])  # type: ignore[index]
                for value, column in zip(values, columns)
            )
            (good if ok else bad).append(row)
        if bad:
            skipped.append(SequenceRowError(item.identity, bad))
        if good:
            remaining.append(item.model_copy(update={"rows": good}) if bad else item)

    if skipped:
        error.type = ErrorType.MISMATCHED_TYPE
        error.resource = ResourceType.SEQUENCE_ROW_VALUES
        error.skipped = skipped
        error.values = unique_identities(entry.identity for entry in skipped if entry.identity is not None)
    return error, remaining


# Data points


def clean_datapoints_from_error(error: CogniteError, points: DatapointSet) -> DatapointSet:
    """Remove the time series implicated by ``error`` from ``points``.

    Skipped entries are DatapointInsertError. Returns a new mapping.
    """
    if error.skipped:
        return dict(points)

    if error.values:
        affected = [idt for idt in error.values if idt in points]
        if affected:
            error.skipped = [DatapointInsertError(idt, points[idt]) for idt in affected]
            gone = set(affected)
            return {idt: dps for idt, dps in points.items() if idt not in gone}

    error.skipped = [DatapointInsertError(idt, dps) for idt, dps in points.items()]
    error.values = list(points)
    return {}


def find_mismatched_datapoints(
    error: CogniteError,
    points: DatapointSet,
    time_series: Iterable[TimeSeries],
) -> tuple[CogniteError, DatapointSet]:
    """Split points by whether their value kind matches their time series.

    Points of time series the server did not return stay in the working
    set for the next attempt.

    Returns:
        Tuple of (error with skipped attributed when anything mismatched,
        points that still match)
    """
    is_string: dict[Identity, bool] = {}
    for ts in time_series:
        is_string[Identity(id=ts.id)] = ts.is_string
        if ts.external_id is not None:
            is_string[Identity(external_id=ts.external_id)] = ts.is_string

    bad_entries: list[DatapointInsertError] = []
    result: DatapointSet = {}
    for idt, dps in points.items():
        expected = is_string.get(idt)
        if expected is None:
            result[idt] = dps
            continue
        good = [dp for dp in dps if dp.is_string == expected]
        bad = [dp for dp in dps if dp.is_string != expected]
        if bad:
            bad_entries.append(DatapointInsertError(idt, bad))
        if good:
            result[idt] = good

    if bad_entries:
        error.type = ErrorType.MISMATCHED_TYPE
        error.resource = ResourceType.DATA_POINT_VALUE
        error.skipped = bad_entries
        error.values = [entry.identity for entry in bad_entries]
    return error, result
