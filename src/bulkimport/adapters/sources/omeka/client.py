"""Source records read from a remote Omeka S site through its JSON API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final, Self, cast

import httpx
from pydantic import ValidationError

from bulkimport.adapters.http_resilience import ResilientClient
from bulkimport.domain.errors import StructuralError
from bulkimport.domain.model import SourceRecord

from .schema import ApiContextResponse, ErrorResponse, ResourcePayload

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from bulkimport.config.http_resilience import ResilienceConfig
    from bulkimport.config.omeka import OmekaSourceConfig

log = getLogger(__name__)

TOTAL_RESULTS_HEADER: Final = "Omeka-S-Total-Results"
API_CONTEXT_PATH: Final = "api-context"
RESOURCE_NAMES: Final = frozenset({"items", "item_sets", "media"})


class OmekaApiError(StructuralError):
    """Raised when the Omeka S API is unreachable or answers with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class OmekaPage:
    records: list[SourceRecord]
    size: int
    total: int | None


@dataclass(slots=True)
class OmekaApiSource:
    """Restartable iterator over one resource name of an Omeka S API.

    The object type is the API resource name (``items``, ``item_sets`` or
    ``media``). Filters are passed as query parameters, the order as
    ``sort_by``/``sort_order``. Each page is fetched on demand.
    """

    config: OmekaSourceConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    object_type: str | None = None
    filters: Mapping[str, object] = field(default_factory=dict[str, object])
    order_field: str | None = None
    descending: bool = False

    def __iter__(self) -> Iterator[SourceRecord]:
        page = 1
        fetched = 0
        while True:
            result = asyncio.run(self._fetch_page(page, self.config.per_page))
            yield from result.records
            fetched += result.size
            # A short page is the last one, with or without a total header.
            if result.size < self.config.per_page:
                return
            if result.total is not None and fetched >= result.total:
                return
            page += 1

    def set_object_type(self, object_type: str | None) -> None:
        if object_type is not None and object_type not in RESOURCE_NAMES:
            raise OmekaApiError(
                f'Unknown Omeka resource "{object_type}"; '
                f"expected one of {', '.join(sorted(RESOURCE_NAMES))}."
            )
        self.object_type = object_type

    def set_filters(self, filters: Mapping[str, object]) -> None:
        self.filters = dict(filters)

    def set_order(self, field: str | None, *, descending: bool = False) -> None:
        self.order_field = field
        self.descending = descending

    def clone(self) -> Self:
        return replace(self, filters=dict(self.filters))

    def count(self) -> int:
        total = asyncio.run(self._fetch_page(1, 1)).total
        return total if total is not None else sum(1 for _ in self)

    def check_endpoint(self) -> None:
        """Fail early when the endpoint does not serve an Omeka S API."""

        asyncio.run(self._check_endpoint())

    async def _check_endpoint(self) -> None:
        async with self.client_factory(self.config.resilience) as client:
            response = await self._get(client, API_CONTEXT_PATH, {})
        try:
            ApiContextResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OmekaApiError(
                f"{self.config.endpoint} does not look like an Omeka S API endpoint."
            ) from exc
        log.info("Omeka S API endpoint %s is available.", self.config.endpoint)

    async def _fetch_page(self, page: int, per_page: int) -> OmekaPage:
        resource = self._resource()
        params = self._params(page, per_page)
        async with self.client_factory(self.config.resilience) as client:
            response = await self._get(client, resource, params)

        payload = response.json()
        if not isinstance(payload, list):
            raise OmekaApiError(f"Unexpected payload for {resource}, page {page}.")
        records: list[SourceRecord] = []
        offset = (page - 1) * per_page
        for position, entry in enumerate(cast("list[object]", payload), start=offset + 1):
            try:
                resource_payload = ResourcePayload.model_validate(entry)
            except ValidationError as exc:
                log.warning("Index #%s: invalid %s payload skipped: %s", position, resource, exc)
                continue
            records.append(SourceRecord(index=position, fields=resource_payload.to_fields()))

        total = _total_results(response)
        log.debug("Fetched page %d of %s: %d records of %s", page, resource, len(records), total)
        return OmekaPage(records=records, size=len(payload), total=total)

    async def _get(
        self, client: ResilientClient, path: str, params: dict[str, str | int]
    ) -> httpx.Response:
        query = httpx.QueryParams({**params, **self.config.credentials()})
        try:
            response = await client.get(path, params=query)
        except httpx.HTTPError as exc:
            raise OmekaApiError(f"Cannot reach {self.config.endpoint}: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            log.error("Omeka S API error on %s: %s", path, message)
            raise OmekaApiError(message, status_code=response.status_code)
        return response

    def _resource(self) -> str:
        if self.object_type is None:
            raise OmekaApiError("An Omeka resource name is required to read the API.")
        return self.object_type

    def _params(self, page: int, per_page: int) -> dict[str, str | int]:
        params: dict[str, str | int] = {
            str(key): str(value) for key, value in self.filters.items()
        }
        params["page"] = page
        params["per_page"] = per_page
        if self.order_field is not None:
            params["sort_by"] = self.order_field
            params["sort_order"] = "desc" if self.descending else "asc"
        return params


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message
    except ValueError:
        return f"HTTP {response.status_code}"


def _total_results(response: httpx.Response) -> int | None:
    raw = response.headers.get(TOTAL_RESULTS_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        log.warning("Invalid %s header: %r", TOTAL_RESULTS_HEADER, raw)
        return None
