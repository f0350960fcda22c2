"""In-memory transport emulating the resource API for resource tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from typing import Any

import pytest

from cdfutils.bulk import BulkConfig, BulkWriter, ResponseError

Hook = Callable[[str, dict[str, Any]], None]


class FakeTransport:
    """Minimal server: stores records per kind and answers like the real API.

    Creates fail with 409 and a ``duplicated`` list when an external id is
    taken. Lookups honor ``ignoreUnknownIds``. Data point inserts fail when
    the value kind does not match the time series.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.stores: dict[str, dict[int, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, list[Exception]] = defaultdict(list)
        self.hooks: list[Hook] = []
        self.sequence_rows: dict[int, list[dict[str, Any]]] = defaultdict(list)
        self.datapoints: dict[int, list[dict[str, Any]]] = defaultdict(list)
        self.raw: dict[tuple[str, str], dict[str, dict[str, Any]]] = defaultdict(dict)
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self._next_id = 1

    # Test helpers

    def seed(self, kind: str, **fields: Any) -> dict[str, Any]:
        item = {**fields, "id": self._next_id}
        self._next_id += 1
        if kind == "assets":
            parent = self._find(kind, {"externalId": item.get("parentExternalId")})
            item["rootId"] = parent["rootId"] if parent else item["id"]
            if parent:
                item["parentId"] = parent["id"]
        self.stores[kind][item["id"]] = item
        return item

    def fail(self, endpoint: str, *errors: Exception) -> None:
        self.failures[endpoint].extend(errors)

    def calls_to(self, endpoint: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.calls if name == endpoint]

    def external_ids(self, kind: str) -> set[str]:
        return {item["externalId"] for item in self.stores[kind].values() if "externalId" in item}

    # WriteTransport

    async def invoke(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append((endpoint, payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            for hook in self.hooks:
                hook(endpoint, payload)
            if self.failures[endpoint]:
                raise self.failures[endpoint].pop(0)
            return self._handle(endpoint, payload, path or {})
        finally:
            self.in_flight -= 1

    async def fetch_page(
        self,
        endpoint: str,
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        self.calls.append((endpoint, dict(query or {})))
        if self.failures[endpoint]:
            raise self.failures[endpoint].pop(0)
        path = path or {}
        query = query or {}
        rows = sorted(self.raw[(path["db"], path["table"])].items())
        start = int(query.get("cursor") or 0)
        end = start + int(query["limit"])
        page = [{"key": key, "columns": columns} for key, columns in rows[start:end]]
        return page, str(end) if end < len(rows) else None

    async def close(self) -> None:
        self.closed = True

    # Server behavior

    def _find(self, kind: str, key: dict[str, Any]) -> dict[str, Any] | None:
        if key.get("id") is not None:
            return self.stores[kind].get(key["id"])
        xid = key.get("externalId")
        if xid is None:
            return None
        return next((item for item in self.stores[kind].values() if item.get("externalId") == xid), None)

    def _handle(self, endpoint: str, payload: dict[str, Any], path: dict[str, str]) -> list[dict[str, Any]]:
        if endpoint.startswith("raw/"):
            return self._raw(endpoint, payload, path)
        kind, _, action = endpoint.partition("/")
        if kind == "datapoints":
            return self._insert_datapoints(payload)
        if action == "create":
            return self._create(kind, payload["items"])
        if action == "byids":
            return self._byids(kind, payload["items"], payload.get("ignoreUnknownIds", False))
        if action == "update":
            return self._update(kind, payload["items"])
        if action == "rows/insert":
            return self._insert_rows(payload["items"])
        raise AssertionError(f"unexpected endpoint {endpoint}")

    def _create(self, kind: str, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        taken = self.external_ids(kind)
        duplicated = [{"externalId": item["externalId"]} for item in items if item.get("externalId") in taken]
        if duplicated:
            raise ResponseError("Duplicated externalIds", 409, duplicated=duplicated)
        if kind == "assets":
            in_request = {item.get("externalId") for item in items}
            for item in items:
                parent = item.get("parentExternalId")
                if parent is not None and parent not in taken and parent not in in_request:
                    raise ResponseError(f"Reference to unknown parent with externalId {parent}", 400)
        return [self.seed(kind, **item) for item in items]

    def _byids(self, kind: str, keys: list[dict[str, Any]], ignore_unknown: bool) -> list[dict[str, Any]]:
        found, missing = [], []
        for key in keys:
            item = self._find(kind, key)
            if item is None:
                missing.append(key)
            else:
                found.append(dict(item))
        if missing and not ignore_unknown:
            raise ResponseError("Ids not found", 400, missing=missing)
        return found

    def _update(self, kind: str, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        missing = [{k: v for k, v in item.items() if k != "update"} for item in items if self._find(kind, item) is None]
        if missing:
            message = "Time series ids not found" if kind == "timeseries" else "Asset ids not found"
            raise ResponseError(message, 400, missing=missing)
        updated = []
        for item in items:
            stored = self._find(kind, item)
            assert stored is not None
            for field, patch in item["update"].items():
                if "set" in patch:
                    stored[field] = patch["set"]
                elif patch.get("setNull"):
                    stored.pop(field, None)
                elif "add" in patch:
                    if isinstance(patch["add"], dict):
                        stored[field] = {**stored.get(field, {}), **patch["add"]}
                    else:
                        stored[field] = [*stored.get(field, []), *patch["add"]]
            updated.append(dict(stored))
        return updated

    def _insert_rows(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        missing = [{k: item[k] for k in ("id", "externalId") if k in item} for item in items if self._find("sequences", item) is None]
        if missing:
            raise ResponseError("Sequences not found", 400, missing=missing)
        for item in items:
            seq = self._find("sequences", item)
            assert seq is not None
            types = {col["externalId"]: col.get("valueType", "DOUBLE") for col in seq.get("columns", [])}
            for row in item["rows"]:
                for column, value in zip(item["columns"], row["values"]):
                    if column not in types or (types[column] == "STRING") != isinstance(value, str):
                        raise ResponseError(f"Expected column {column} to match its value type", 400)
            self.sequence_rows[seq["id"]].extend(item["rows"])
        return []

    def _insert_datapoints(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        items = payload["items"]
        missing = [{k: item[k] for k in ("id", "externalId") if k in item} for item in items if self._find("timeseries", item) is None]
        if missing:
            raise ResponseError("Time series not found", 400, missing=missing)
        for item in items:
            ts = self._find("timeseries", item)
            assert ts is not None
            for dp in item["datapoints"]:
                if ts.get("isString", False) != isinstance(dp["value"], str):
                    message = "Expected string value for datapoint" if ts.get("isString") else "Expected numeric value for datapoint"
                    raise ResponseError(message, 400)
            self.datapoints[ts["id"]].extend(item["datapoints"])
        return []

    def _raw(self, endpoint: str, payload: dict[str, Any], path: dict[str, str]) -> list[dict[str, Any]]:
        table = self.raw[(path["db"], path["table"])]
        if endpoint == "raw/rows/insert":
            for row in payload["items"]:
                table[row["key"]] = row["columns"]
        elif endpoint == "raw/rows/delete":
            for row in payload["items"]:
                table.pop(row["key"], None)
        return []


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def writer(transport: FakeTransport) -> BulkWriter:
    return BulkWriter(transport, BulkConfig(fatal_retry_delay=0.0, duplicate_backoff_base=0.0))
