"""Sanitation rules for data point inserts."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence

from ..core.enums import ErrorType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..models.datapoints import Datapoint, DatapointInsertError
from ..results.error import CogniteError, unique_identities
from .common import (
    NUMERIC_VALUE_MAX,
    NUMERIC_VALUE_MIN,
    STRING_LENGTH_MAX,
    TIMESTAMP_MAX,
    TIMESTAMP_MIN,
    clamp,
    truncate,
)

DatapointInput = (
    Mapping[Identity, Sequence[Datapoint]] | Iterable[tuple[Identity, Sequence[Datapoint]]]
)


def sanitize_datapoint(point: Datapoint, non_finite_replacement: float | None = None) -> Datapoint:
    """Return a repaired copy of ``point``, or ``point`` itself if nothing changed.

    Strings are truncated, finite numbers are clamped into the allowed range
    and non-finite numbers are replaced when a replacement is given.
    Timestamps are never changed.
    """
    if point.string_value is not None:
        if len(point.string_value) > STRING_LENGTH_MAX:
            return Datapoint.string(point.timestamp, truncate(point.string_value, STRING_LENGTH_MAX))
        return point
    value = point.numeric_value
    if value is None:
        raise ValueError("Datapoint has neither a numeric nor a string value")
    if math.isfinite(value):
        clamped = clamp(value)
        return point if clamped == value else Datapoint.numeric(point.timestamp, clamped)
    if non_finite_replacement is not None:
        return Datapoint.numeric(point.timestamp, non_finite_replacement)
    return point


def verify_datapoint(point: Datapoint) -> ResourceType | None:
    if point.string_value is not None and len(point.string_value) > STRING_LENGTH_MAX:
        return ResourceType.DATA_POINT_VALUE
    value = point.numeric_value
    if value is not None and (
        not math.isfinite(value) or value > NUMERIC_VALUE_MAX or value < NUMERIC_VALUE_MIN
    ):
        return ResourceType.DATA_POINT_VALUE
    if point.timestamp > TIMESTAMP_MAX or point.timestamp < TIMESTAMP_MIN:
        return ResourceType.DATA_POINT_TIMESTAMP
    return None


def _pairs(points: DatapointInput) -> Iterable[tuple[Identity, Sequence[Datapoint]]]:
    if isinstance(points, Mapping):
        return points.items()
    return points


def clean_datapoints_request(
    points: DatapointInput,
    mode: SanitationMode,
    non_finite_replacement: float | None = None,
) -> tuple[dict[Identity, list[Datapoint]], list[CogniteError]]:
    """Sanitize or verify data points per time series.

    Accepts a mapping or a sequence of ``(identity, points)`` pairs. With
    pairs, a repeated identity is reported as ItemDuplicated and its later
    occurrences are skipped. Failing points are removed individually and
    reported in SanitationFailed errors grouped by failed field; a time
    series left without points is dropped from the request.

    Args:
        points: Data points per time series identity
        mode: Sanitation mode
        non_finite_replacement: Value used in place of NaN and infinities
            in CLEAN mode

    Returns:
        Tuple of (points to insert, errors)

    Raises:
        TypeError: If points is None
    """
    if points is None:
        raise TypeError("points cannot be None")
    if mode is SanitationMode.NONE:
        result: dict[Identity, list[Datapoint]] = {}
        for idt, dps in _pairs(points):
            result.setdefault(idt, []).extend(dps)
        return result, []

    result = {}
    seen: set[Identity] = set()
    duplicated: list[DatapointInsertError] = []
    bad: dict[ResourceType, list[DatapointInsertError]] = {}

    for idt, dps in _pairs(points):
        if idt in seen:
            duplicated.append(DatapointInsertError(idt, list(dps)))
            continue
        seen.add(idt)

        clean: list[Datapoint] = []
        failed_by_type: dict[ResourceType, list[Datapoint]] = {}
        for dp in dps:
            candidate = sanitize_datapoint(dp, non_finite_replacement) if mode is SanitationMode.CLEAN else dp
            failed = verify_datapoint(candidate)
            if failed is None:
                clean.append(candidate)
            else:
                failed_by_type.setdefault(failed, []).append(dp)

        if clean:
            result[idt] = clean
        for failed, failing in failed_by_type.items():
            bad.setdefault(failed, []).append(DatapointInsertError(idt, failing))

    errors: list[CogniteError] = []
    if duplicated:
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_DUPLICATED,
                resource=ResourceType.ID,
                values=unique_identities(err.identity for err in duplicated),
                skipped=duplicated,
                message="Conflicting identifiers",
                status=409,
            )
        )
    for resource, skipped in bad.items():
        errors.append(
            CogniteError(
                type=ErrorType.SANITATION_FAILED,
                resource=resource,
                skipped=skipped,
                message="Sanitation failed",
                status=400,
            )
        )
    return result, errors
