from __future__ import annotations

import asyncio
from typing import Any, cast

import httpx
import pytest

from bulkimport.adapters.http_resilience import (
    ResilientClient,
    _build_cache_components,  # type: ignore[reportPrivateUsage]
    _ShouldCacheResponseFilter,  # type: ignore[reportPrivateUsage]
    build_retry,
)
from bulkimport.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)


def _client(
    transport: httpx.MockTransport, *, ratelimit: RateLimit | None = None
) -> ResilientClient:
    client = ResilientClient(ResilienceConfig(name="test", cache=None, ratelimit=ratelimit))
    client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        base_url="https://source.example/", transport=transport
    )
    return client


def test_build_retry_follows_the_policy() -> None:
    retry = build_retry(RetryPolicy(total=2, status_forcelist=frozenset({503})))

    assert retry.total == 2
    assert retry.is_retryable_status_code(503)
    assert not retry.is_retryable_status_code(404)


def test_get_json_decodes_and_raises_on_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok":
            return httpx.Response(200, json={"rows": [1, 2]})
        return httpx.Response(404, json={"errors": {"error": "missing"}})

    async def scenario() -> object:
        async with _client(httpx.MockTransport(handler)) as client:
            payload = await client.get_json("ok")
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_json("missing")
            return payload

    assert asyncio.run(scenario()) == {"rows": [1, 2]}


def test_rate_limited_client_still_sends_every_request() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["page"])
        return httpx.Response(200, json=[])

    async def scenario() -> None:
        async with _client(
            httpx.MockTransport(handler), ratelimit=RateLimit(max_calls=10, per_seconds=1.0)
        ) as client:
            for page in range(3):
                await client.get("items", params={"page": page})

    asyncio.run(scenario())

    assert seen == ["0", "1", "2"]


def test_cache_components_follow_the_config() -> None:
    assert _build_cache_components(None) == (None, None)
    assert _build_cache_components(CacheConfig(enabled=False)) == (None, None)

    storage, policy = _build_cache_components(CacheConfig(backend="memory"))
    assert storage is not None
    assert policy is None

    with pytest.raises(ValueError, match="Unsupported cache backend"):
        _build_cache_components(CacheConfig(backend=cast("Any", "redis")))


def test_should_cache_filter_delegates_to_the_predicate() -> None:
    response_filter = _ShouldCacheResponseFilter(
        lambda payload: isinstance(payload, list) and bool(payload)
    )
    item = cast("Any", None)

    assert response_filter.needs_body()
    assert response_filter.apply(item, b"[1]")
    assert not response_filter.apply(item, b"[]")
    assert response_filter.apply(item, b"not json")
    assert response_filter.apply(item, None)


def test_default_headers_are_sent_with_every_request() -> None:
    client = ResilientClient(
        ResilienceConfig(name="test", cache=None, default_headers={"Accept": "application/json"})
    )

    headers = client._client.headers  # noqa: SLF001  # type: ignore[reportPrivateUsage]

    assert headers["Accept"] == "application/json"
    asyncio.run(client.aclose())
