"""Sanitation rules for asset creates and asset updates."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.enums import ResourceType, SanitationMode
from ..core.identity import Identity
from ..models.assets import AssetCreate, AssetUpdateItem
from ..results.error import CogniteError
from .common import (
    EXTERNAL_ID_MAX,
    DistinctResource,
    check_length,
    clean_request,
    positive_or_none,
    sanitize_metadata,
    truncate,
    verify_metadata,
)

ASSET_NAME_MAX = 140
ASSET_DESCRIPTION_MAX = 500
ASSET_METADATA_MAX_BYTES = 10240
ASSET_METADATA_MAX_PER_KEY = 128
ASSET_METADATA_MAX_PER_VALUE = 10240
ASSET_METADATA_MAX_PAIRS = 256
ASSET_SOURCE_MAX = 128
ASSET_LABELS_MAX = 10


def _sanitize_asset_metadata(metadata):
    result, _ = sanitize_metadata(
        metadata,
        ASSET_METADATA_MAX_PER_KEY,
        ASSET_METADATA_MAX_PAIRS,
        ASSET_METADATA_MAX_PER_VALUE,
        ASSET_METADATA_MAX_BYTES,
    )
    return result


def _verify_asset_metadata(metadata) -> bool:
    ok, _ = verify_metadata(
        metadata,
        ASSET_METADATA_MAX_PER_KEY,
        ASSET_METADATA_MAX_PAIRS,
        ASSET_METADATA_MAX_PER_VALUE,
        ASSET_METADATA_MAX_BYTES,
    )
    return ok


def sanitize_asset(asset: AssetCreate) -> None:
    """Repair an asset create in place so it passes ``verify_asset``."""
    asset.external_id = truncate(asset.external_id, EXTERNAL_ID_MAX)
    asset.name = truncate(asset.name, ASSET_NAME_MAX)
    asset.parent_id = positive_or_none(asset.parent_id)
    asset.parent_external_id = truncate(asset.parent_external_id, EXTERNAL_ID_MAX)
    asset.description = truncate(asset.description, ASSET_DESCRIPTION_MAX)
    asset.data_set_id = positive_or_none(asset.data_set_id)
    asset.metadata = _sanitize_asset_metadata(asset.metadata)
    asset.source = truncate(asset.source, ASSET_SOURCE_MAX)
    if asset.labels is not None:
        labels = [label for label in asset.labels if label.external_id]
        asset.labels = labels[:ASSET_LABELS_MAX]


def verify_asset(asset: AssetCreate) -> ResourceType | None:
    """Return the first field of ``asset`` breaking a limit, or None."""
    if not check_length(asset.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if not asset.name or not check_length(asset.name, ASSET_NAME_MAX):
        return ResourceType.NAME
    if asset.parent_id is not None and asset.parent_id < 1:
        return ResourceType.PARENT_ID
    if not check_length(asset.parent_external_id, EXTERNAL_ID_MAX):
        return ResourceType.PARENT_EXTERNAL_ID
    if not check_length(asset.description, ASSET_DESCRIPTION_MAX):
        return ResourceType.DESCRIPTION
    if asset.data_set_id is not None and asset.data_set_id < 1:
        return ResourceType.DATA_SET_ID
    if not _verify_asset_metadata(asset.metadata):
        return ResourceType.METADATA
    if not check_length(asset.source, ASSET_SOURCE_MAX):
        return ResourceType.SOURCE
    if asset.labels is not None and (
        len(asset.labels) > ASSET_LABELS_MAX
        or any(not label.external_id for label in asset.labels)
    ):
        return ResourceType.LABELS
    return None


_ASSET_DISTINCT = [
    DistinctResource[AssetCreate](
        "Duplicate external ids",
        ResourceType.EXTERNAL_ID,
        lambda asset: Identity.of(asset.external_id) if asset.external_id is not None else None,
    )
]


def clean_asset_request(
    assets: Iterable[AssetCreate], mode: SanitationMode
) -> tuple[list[AssetCreate], list[CogniteError]]:
    """Clean a list of asset creates. See ``clean_request``."""
    return clean_request(_ASSET_DISTINCT, assets, verify_asset, sanitize_asset, mode)


def sanitize_asset_update(item: AssetUpdateItem) -> None:
    """Repair an asset update in place so it passes ``verify_asset_update``."""
    if item.id is None:
        item.external_id = truncate(item.external_id, EXTERNAL_ID_MAX)
    update = item.update
    if update.external_id is not None:
        update.external_id.set = truncate(update.external_id.set, EXTERNAL_ID_MAX)
    if update.name is not None:
        update.name.set = truncate(update.name.set, ASSET_NAME_MAX)
    if update.description is not None:
        update.description.set = truncate(update.description.set, ASSET_DESCRIPTION_MAX)
    if update.data_set_id is not None and update.data_set_id.set is not None and update.data_set_id.set < 1:
        update.data_set_id = None
    if update.metadata is not None:
        update.metadata.set = _sanitize_asset_metadata(update.metadata.set)
        update.metadata.add = _sanitize_asset_metadata(update.metadata.add)
    if update.source is not None:
        update.source.set = truncate(update.source.set, ASSET_SOURCE_MAX)
    if update.parent_id is not None and update.parent_id.set is not None and update.parent_id.set < 1:
        update.parent_id = None
    if update.parent_external_id is not None:
        update.parent_external_id.set = truncate(update.parent_external_id.set, EXTERNAL_ID_MAX)
    if update.labels is not None:
        if update.labels.add is not None:
            update.labels.add = update.labels.add[:ASSET_LABELS_MAX]
        if update.labels.set is not None:
            update.labels.set = update.labels.set[:ASSET_LABELS_MAX]


def verify_asset_update(item: AssetUpdateItem) -> ResourceType | None:
    """Return the first field of an asset update breaking a limit, or None."""
    if not check_length(item.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if item.id is not None and item.id < 1:
        return ResourceType.ID
    if (item.id is None) == (item.external_id is None):
        return ResourceType.ID

    update = item.update
    if update.is_empty():
        return ResourceType.UPDATE
    if update.external_id is not None and not check_length(update.external_id.set, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if update.name is not None and not check_length(update.name.set, ASSET_NAME_MAX):
        return ResourceType.NAME
    if update.description is not None and not check_length(
        update.description.set, ASSET_DESCRIPTION_MAX
    ):
        return ResourceType.DESCRIPTION
    if update.data_set_id is not None and update.data_set_id.set is not None and update.data_set_id.set < 1:
        return ResourceType.DATA_SET_ID
    if update.metadata is not None and not (
        _verify_asset_metadata(update.metadata.set) and _verify_asset_metadata(update.metadata.add)
    ):
        return ResourceType.METADATA
    if update.source is not None and not check_length(update.source.set, ASSET_SOURCE_MAX):
        return ResourceType.SOURCE
    if update.parent_id is not None and update.parent_id.set is not None and update.parent_id.set < 1:
        return ResourceType.PARENT_ID
    if update.parent_external_id is not None and not check_length(
        update.parent_external_id.set, EXTERNAL_ID_MAX
    ):
        return ResourceType.PARENT_EXTERNAL_ID
    if update.labels is not None and (
        len(update.labels.add or []) > ASSET_LABELS_MAX
        or len(update.labels.set or []) > ASSET_LABELS_MAX
    ):
        return ResourceType.LABELS
    return None


_ASSET_UPDATE_DISTINCT = [
    DistinctResource[AssetUpdateItem]("Duplicate ids", ResourceType.ID, lambda item: item.identity)
]


def clean_asset_update_request(
    items: Iterable[AssetUpdateItem], mode: SanitationMode
) -> tuple[list[AssetUpdateItem], list[CogniteError]]:
    """Clean a list of asset updates. See ``clean_request``."""
    return clean_request(
        _ASSET_UPDATE_DISTINCT, items, verify_asset_update, sanitize_asset_update, mode
    )
