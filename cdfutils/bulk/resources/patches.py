"""Field diffs used by upsert to turn a create record into an update patch."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Any, TypeVar

from ..models.base import DictPatch, ListPatch, SetPatch

T = TypeVar("T")


def scalar_patches(
    record: Any,
    existing: Any,
    fields: Mapping[str, type],
    set_null: bool,
) -> dict[str, SetPatch[Any]]:
    """SetPatch per field whose value differs between ``record`` and ``existing``.

    A None in ``record`` clears the field only when ``set_null`` is True.
    """
    patches: dict[str, SetPatch[Any]] = {}
    for name, kind in fields.items():
        new, old = getattr(record, name), getattr(existing, name)
        if new == old or (new is None and not set_null):
            continue
        patches[name] = SetPatch[kind].of(new)  # type: ignore[valid-type]
    return patches


def metadata_patch(
    new: Mapping[str, str | None] | None,
    old: Mapping[str, str] | None,
    replace: bool,
    set_null: bool,
) -> DictPatch | None:
    """Replace the whole map, or add the keys whose values changed."""
    old = old or {}
    if replace:
        if new is None:
            return DictPatch(set={}) if set_null and old else None
        return DictPatch(set=dict(new)) if dict(new) != dict(old) else None
    changed = {key: value for key, value in (new or {}).items() if old.get(key) != value}
    return DictPatch(add=changed) if changed else None


def list_patch(
    kind: type,
    new: Sequence[T] | None,
    old: Sequence[T] | None,
    replace: bool,
    set_null: bool,
    key: Callable[[T], Hashable] = lambda value: value,  # type: ignore[assignment,return-value]
) -> ListPatch[Any] | None:
    """Replace the list, or add the entries ``old`` lacks. Entries compare by ``key``."""
    old_keys = {key(value) for value in old or []}
    if replace:
        if new is None and not set_null:
            return None
        new_keys = {key(value) for value in new or []}
        if new_keys == old_keys:
            return None
        return ListPatch[kind](set=list(new or []))  # type: ignore[valid-type]
    added = [value for value in new or [] if key(value) not in old_keys]
    return ListPatch[kind](add=added) if added else None  # type: ignore[valid-type]
