"""Aggregated outcome of a bulk operation and its merge algebra.

Architecture:
    Every batch produces a CogniteResult. Batches finish in any order, so
    merging must be associative and commutative on content: successes are
    concatenated and errors with the same (type, resource) are folded into
    one error carrying the union of values and skipped records.

Design Decisions:
    - Fatal errors are never folded; each one describes a separate failed call
    - A folded error with no skipped records is dropped, it removed nothing
    - Skipped records are compared by object identity since write models
      are mutable and unhashable
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..core.enums import ErrorType, ResourceType
from ..core.exceptions import ResultError
from ..core.identity import Identity
from .error import CogniteError, unique_identities

T = TypeVar("T")


@dataclass
class CogniteResult(Generic[T]):
    """Succeeded records plus every error met on the way.

    A non-empty ``results`` does not imply full success; always check
    ``errors``. Records that appear in neither list were not attempted,
    which only happens when the operation was cancelled.
    """

    results: list[T] | None = None
    errors: list[CogniteError] = field(default_factory=list)

    @property
    def is_all_good(self) -> bool:
        return not self.errors

    def merge(self, *others: CogniteResult[T] | None) -> CogniteResult[T]:
        return CogniteResult.merge_all([self, *others])

    @classmethod
    def merge_all(cls, results: Iterable[CogniteResult[T] | None]) -> CogniteResult[T]:
        """Merge results in order. ``None`` entries are ignored.

        Args:
            results: Results to merge

        Returns:
            New result; the inputs are left untouched
        """
        merged: list[T] | None = None
        fatal: list[CogniteError] = []
        groups: dict[tuple[ErrorType, ResourceType], CogniteError] = {}

        for result in results:
            if result is None:
                continue
            if result.results is not None:
                merged = (merged or []) + list(result.results)
            for error in result.errors:
                if error.is_fatal:
                    fatal.append(error)
                    continue
                key = (error.type, error.resource)
                group = groups.get(key)
                if group is None:
                    groups[key] = error.replace_skipped(lambda item: item)
                    continue
                _fold_into(group, error)

        errors = fatal + [group for group in groups.values() if group.skipped]
        return cls(results=merged, errors=errors)

    def throw_on_fatal(self) -> None:
        """Raise ResultError if any error is fatal."""
        fatal = [error for error in self.errors if error.is_fatal]
        if fatal:
            raise ResultError(_describe(fatal), fatal)

    def throw(self) -> None:
        """Raise ResultError if there are any errors at all."""
        if self.errors:
            raise ResultError(_describe(self.errors), list(self.errors))

    def all_skipped(self) -> list[Any]:
        """Every skipped record across all errors, each listed once."""
        seen: dict[int, Any] = {}
        for error in self.errors:
            for item in error.skipped or []:
                seen.setdefault(id(item), item)
        return list(seen.values())

    def errors_by_skipped(self) -> list[tuple[Any, list[CogniteError]]]:
        """Pair each skipped record with the errors that skipped it."""
        by_item: dict[int, tuple[Any, list[CogniteError]]] = {}
        for error in self.errors:
            for item in error.skipped or []:
                by_item.setdefault(id(item), (item, []))[1].append(error)
        return list(by_item.values())

    def replace(self, mapper: Callable[[Any], Any]) -> CogniteResult[Any]:
        """Copy of this result with skipped records mapped through ``mapper``."""
        return CogniteResult(
            results=None if self.results is None else list(self.results),
            errors=[error.replace_skipped(mapper) for error in self.errors],
        )

    def order_by(
        self,
        keys: Iterable[Identity | None],
        get_identity: Callable[[T], Identity | None],
    ) -> CogniteResult[T]:
        """Re-project successes onto the order of ``keys``.

        Records whose identity is not among ``keys`` keep their relative
        order after the projected ones.
        """
        if self.results is None:
            return self
        by_key: dict[Identity, T] = {}
        rest: list[T] = []
        for item in self.results:
            idt = get_identity(item)
            if idt is None or idt in by_key:
                rest.append(item)
            else:
                by_key[idt] = item
        ordered: list[T] = []
        for key in keys:
            if key is not None and key in by_key:
                ordered.append(by_key.pop(key))
        ordered.extend(by_key.values())
        ordered.extend(rest)
        return CogniteResult(results=ordered, errors=self.errors)


def _fold_into(group: CogniteError, error: CogniteError) -> None:
    if error.values:
        group.values = unique_identities([*(group.values or []), *error.values])
    if error.skipped:
        existing = {id(item) for item in group.skipped or []}
        group.skipped = [
            *(group.skipped or []),
            *(item for item in error.skipped if id(item) not in existing),
        ]
    group.complete = group.complete and error.complete
    if group.message is None:
        group.message = error.message
    if group.status is None:
        group.status = error.status


def _describe(errors: list[CogniteError]) -> str:
    first = errors[0]
    message = first.message or first.type.value
    if len(errors) == 1:
        return f"{first.type.value} on {first.resource.value}: {message}"
    return f"{len(errors)} errors, first: {first.type.value} on {first.resource.value}: {message}"
