"""Asset operations.

Assets form hierarchies through ``parent_external_id``. Creates are
batched so that parents are sent in earlier requests than their children,
and parent errors the server reports vaguely are completed with lookups.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..core.enums import ErrorType, RequestType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..core.policy import RetryPolicy, UpsertOptions
from ..models.assets import Asset, AssetCreate, AssetUpdate, AssetUpdateItem
from ..models.base import Label
from ..results.error import CogniteError, unique_identities
from ..results.handlers import (
    apply_found_parents,
    asset_create_affected,
    asset_update_affected,
    asset_update_identity,
    find_bad_asset_parents,
    parent_lookup_candidates,
)
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..runtime.chunking import chunk_by, hierarchy_levels, partition_hierarchy
from ..runtime.retry import Completion
from ..sanitation import clean_asset_request, clean_asset_update_request
from .base import CreatableResource
from .patches import list_patch, metadata_patch, scalar_patches

_SCALAR_FIELDS = {"name": str, "description": str, "data_set_id": int, "source": str}


def _external_id(asset: AssetCreate) -> str | None:
    return asset.external_id


def _parent_external_id(asset: AssetCreate) -> str | None:
    return asset.parent_external_id


class AssetsResource(CreatableResource[AssetCreate, Asset, AssetUpdateItem]):
    """Bulk writes for assets.

    Example:
        result = await writer.assets.ensure_exists(
            [AssetCreate(external_id="root", name="Root"),
             AssetCreate(external_id="pump", name="Pump", parent_external_id="root")]
        )
        result.throw_on_fatal()
    """

    kind = "assets"
    create_endpoint = "assets/create"
    byids_endpoint = "assets/byids"
    create_request_type = RequestType.CREATE_ASSETS
    read_model = Asset
    clean_request = staticmethod(clean_asset_request)
    is_affected = staticmethod(asset_create_affected)

    update_endpoint = "assets/update"
    update_request_type = RequestType.UPDATE_ASSETS
    clean_update_request = staticmethod(clean_asset_update_request)
    update_affected = staticmethod(asset_update_affected)
    update_identity = staticmethod(asset_update_identity)

    def _create_batches(self, records: list[AssetCreate], chunk_size: int) -> list[list[list[AssetCreate]]]:
        # One wave per hierarchy level, so parents exist before their children are sent
        levels = hierarchy_levels(records, _external_id, _parent_external_id)
        return [chunk_by(level, chunk_size) for level in levels]

    def _place(self, records: list[AssetCreate]) -> tuple[list[AssetCreate], list[CogniteError]]:
        """Remove assets that repeat an external id or sit on a parent cycle."""
        _, duplicates, unreachable = partition_hierarchy(records, _external_id, _parent_external_id)
        errors: list[CogniteError] = []
        if duplicates:
            errors.append(
                CogniteError(
                    type=ErrorType.ITEM_DUPLICATED,
                    resource=ResourceType.EXTERNAL_ID,
                    values=unique_identities(Identity(external_id=asset.external_id) for asset in duplicates),  # type: ignore[arg-type]
                    skipped=duplicates,
                    message="Duplicated external ids in request",
                    status=409,
                )
            )
        if unreachable:
            errors.append(
                CogniteError(
                    type=ErrorType.ILLEGAL_ITEM,
                    resource=ResourceType.PARENT_EXTERNAL_ID,
                    values=unique_identities(
                        Identity(external_id=asset.parent_external_id)
                        for asset in unreachable
                        if asset.parent_external_id is not None
                    ),
                    skipped=unreachable,
                    message="Asset parents form a cycle",
                )
            )
        if not errors:
            return records, []
        bad = {id(asset) for error in errors for asset in error.skipped or []}
        return [asset for asset in records if id(asset) not in bad], errors

    def _ensure_groups(self, records: list[AssetCreate]) -> list[list[AssetCreate]]:
        return hierarchy_levels(records, _external_id, _parent_external_id)

    def _create_completion(self, token: CancellationToken | None) -> Completion[list[AssetCreate]]:
        async def complete_asset_error(
            error: CogniteError, working: list[AssetCreate]
        ) -> tuple[list[CogniteError], list[AssetCreate]]:
            if error.resource is not ResourceType.PARENT_EXTERNAL_ID:
                return [error], working
            candidates = parent_lookup_candidates(error, working)
            found = await self._retrieve(self.byids_endpoint, candidates, self._parse, token=token)
            apply_found_parents(error, candidates, found)
            return [error], working

        return complete_asset_error

    def _update_completion(self, token: CancellationToken | None) -> Completion[list[AssetUpdateItem]]:
        async def verify_asset_update_parents(
            error: CogniteError, working: list[AssetUpdateItem]
        ) -> tuple[list[CogniteError], list[AssetUpdateItem]]:
            if error.resource is not ResourceType.PARENT_ID:
                return [error], working
            lookup: list[Identity] = [item.identity for item in working if item.identity is not None]
            for item in working:
                parent_id, parent_xid = item.update.parent_id, item.update.parent_external_id
                if parent_id is not None and parent_id.set is not None:
                    lookup.append(Identity(id=parent_id.set))
                elif parent_xid is not None and parent_xid.set is not None:
                    lookup.append(Identity(external_id=parent_xid.set))
            assets = await self._retrieve(self.byids_endpoint, lookup, self._parse, token=token)
            return find_bad_asset_parents(working, assets), working

        return verify_asset_update_parents

    def to_update(self, record: AssetCreate, existing: Asset, options: UpsertOptions) -> AssetUpdateItem | None:
        patches: dict[str, object] = dict(scalar_patches(record, existing, _SCALAR_FIELDS, options.set_null))
        # A parent can be changed but never removed, that would make a new root
        if record.parent_id is not None and record.parent_id != existing.parent_id:
            patches["parent_id"] = {"set": record.parent_id}
        elif record.parent_external_id is not None and record.parent_external_id != existing.parent_external_id:
            patches["parent_external_id"] = {"set": record.parent_external_id}

        metadata = metadata_patch(record.metadata, existing.metadata, options.replace_metadata, options.set_null)
        if metadata is not None:
            patches["metadata"] = metadata
        labels = list_patch(
            Label,
            record.labels,
            existing.labels,
            options.replace_labels,
            options.set_null,
            key=lambda label: label.external_id,
        )
        if labels is not None:
            patches["labels"] = labels

        if not patches:
            return None
        return AssetUpdateItem(id=existing.id, update=AssetUpdate.model_validate(patches))

    async def update(
        self,
        items: Iterable[AssetUpdateItem],
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[Asset]:
        """Apply field patches to existing assets.

        Parent changes the server rejects are checked against the current
        hierarchy to find exactly which updates are at fault.

        Returns:
            Updated assets plus errors
        """
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        result = await self._update(items, opts, token)
        self._log_result("assets.update", result)
        return result

    async def upsert(
        self,
        assets: Iterable[AssetCreate],
        options: UpsertOptions | None = None,
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[Asset]:
        """Create missing assets and update the ones that differ.

        Args:
            assets: Assets to write, identified by external id
            options: How existing metadata and labels are patched

        Returns:
            Written assets in input order, plus errors. Skipped update
            patches are reported as the AssetCreate they came from.
        """
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        result = await self._upsert(assets, options or UpsertOptions(), opts, token)
        self._log_result("assets.upsert", result)
        return result
