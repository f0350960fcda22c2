"""Partitioning of large inputs into request-sized groups.

This module provides the pure functions that decide how a caller's
collection is split before dispatch: flat chunks, keyed chunks bounded
both by key count and by total value count, and hierarchy-aware chunks
that create parents before children.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def chunk_by(items: Iterable[T], size: int) -> list[list[T]]:
    """Split ``items`` into ordered groups of at most ``size``.

    Args:
        items: Items to split
        size: Maximum group size

    Returns:
        ceil(N / size) groups; concatenated they equal the input

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    groups: list[list[T]] = []
    current: list[T] = []
    for item in items:
        current.append(item)
        if len(current) == size:
            groups.append(current)
            current = []
    if current:
        groups.append(current)
    return groups


def chunk_by_keys(
    mapping: Mapping[K, Sequence[V]],
    max_values: int,
    max_keys: int,
) -> list[dict[K, list[V]]]:
    """Split a key -> values mapping into groups bounded by keys and values.

    A key's values stay together in one group unless they alone exceed
    ``max_values``; such a key is split into single-key groups of at most
    ``max_values`` each. Keys with no values are left out.

    Args:
        mapping: Values per key, e.g. data points per time series
        max_values: Maximum total number of values per group
        max_keys: Maximum number of keys per group

    Returns:
        Groups in key order

    Raises:
        ValueError: If either limit is not positive
    """
    if max_values <= 0:
        raise ValueError(f"max_values must be positive, got {max_values}")
    if max_keys <= 0:
        raise ValueError(f"max_keys must be positive, got {max_keys}")

    groups: list[dict[K, list[V]]] = []
    current: dict[K, list[V]] = {}
    count = 0
    for key, values in mapping.items():
        if not values:
            continue
        if len(values) > max_values:
            if current:
                groups.append(current)
                current, count = {}, 0
            groups.extend({key: part} for part in chunk_by(values, max_values))
            continue
        if current and (len(current) >= max_keys or count + len(values) > max_values):
            groups.append(current)
            current, count = {}, 0
        current[key] = list(values)
        count += len(values)
    if current:
        groups.append(current)
    return groups


def partition_hierarchy(
    items: Iterable[T],
    get_id: Callable[[T], Hashable | None],
    get_parent_id: Callable[[T], Hashable | None],
) -> tuple[list[list[T]], list[T], list[T]]:
    """Split tree nodes into depth levels and the nodes that cannot be placed.

    Only parents present in the input count; a node whose parent is absent
    is placed in the first level. Input order is kept within a level.

    Returns:
        Tuple of (levels, duplicates, unreachable). ``duplicates`` repeat
        an id seen earlier in the input. ``unreachable`` are on a parent
        cycle or below one, so no root leads to them.
    """
    nodes: list[T] = []
    duplicates: list[T] = []
    ids: set[Hashable] = set()
    for node in items:
        node_id = get_id(node)
        if node_id is not None:
            if node_id in ids:
                duplicates.append(node)
                continue
            ids.add(node_id)
        nodes.append(node)

    layer: list[T] = []
    children: dict[Hashable, list[T]] = {}
    for node in nodes:
        parent_id = get_parent_id(node)
        if parent_id is None or parent_id not in ids:
            layer.append(node)
        else:
            children.setdefault(parent_id, []).append(node)

    # Ids are unique here, so every node is reached at most once
    levels: list[list[T]] = []
    placed: set[int] = set()
    while layer:
        levels.append(layer)
        placed.update(id(node) for node in layer)
        next_layer: list[T] = []
        for node in layer:
            node_id = get_id(node)
            if node_id is not None:
                next_layer.extend(children.get(node_id, []))
        layer = next_layer

    unreachable = [node for node in nodes if id(node) not in placed]
    return levels, duplicates, unreachable


def hierarchy_levels(
    items: Iterable[T],
    get_id: Callable[[T], Hashable | None],
    get_parent_id: Callable[[T], Hashable | None],
) -> list[list[T]]:
    """Split tree nodes into depth levels.

    Raises:
        ValueError: If the input contains duplicate ids or a cycle
    """
    levels, duplicates, unreachable = partition_hierarchy(items, get_id, get_parent_id)
    if duplicates or unreachable:
        raise ValueError("Input is not a tree")
    return levels


def chunk_by_hierarchy(
    items: Iterable[T],
    max_size: int,
    get_id: Callable[[T], Hashable | None],
    get_parent_id: Callable[[T], Hashable | None],
) -> list[list[T]]:
    """Group tree nodes so that parents come in earlier groups than children.

    Each level from ``hierarchy_levels`` is split into groups of at most
    ``max_size``; a group never mixes levels.

    Args:
        items: Nodes to group
        max_size: Maximum group size
        get_id: Id of a node; None means it cannot be a parent
        get_parent_id: Parent id of a node, or None for roots

    Returns:
        Ordered groups, each of at most ``max_size`` nodes

    Raises:
        ValueError: If max_size is not positive, or the input contains
            duplicate ids or a cycle
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    levels = hierarchy_levels(items, get_id, get_parent_id)
    return [group for level in levels for group in chunk_by(level, max_size)]
