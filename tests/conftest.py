"""
Shared fixtures: an in-memory HTTP backend, provider registry and catalog.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from geocat_svc.catalog.loader import CatalogLoader
from geocat_svc.catalog.node import CatalogGroup, CatalogItem
from geocat_svc.catalog.registry import CatalogRegistry
from geocat_svc.catalog.types import LoadResult
from geocat_svc.providers import default_providers
from geocat_svc.providers.base import LoadContext, ProviderAdapter
from geocat_svc.transport import HttpTransport


# ============================================================================
# HTTP
# ============================================================================

class FakeHttp:
    """Routes keyed by (method, URL without query) answering canned responses."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, body: Any = None, status: int = 200, method: str = "GET") -> None:
        """``body`` may be JSON, a str (sent as text) or a callable taking the request."""
        self.routes[(method, url)] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url).split("?")[0])
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = self.routes[key]
        if callable(body):
            body = body(request)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def transport(fake_http) -> HttpTransport:
    return HttpTransport(timeout=5.0, client=fake_http.client())


# ============================================================================
# Test adapters
# ============================================================================

class CountingAdapter(ProviderAdapter):
    """Counts loads; can be held open with ``gate`` or made to fail with ``error``."""
    types = ("counting",)

    def __init__(self):
        self.calls = 0
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None
        self.children: Callable[[], list] | None = None

    async def load(self, node, context) -> LoadResult:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        children = tuple(self.children()) if self.children is not None else ()
        return LoadResult(children=children)


class CountingGroupAdapter(CountingAdapter):
    types = ("counting-group",)
    is_group = True
    influencing_fields = ("url", "blacklist")


@pytest.fixture
def counting() -> CountingAdapter:
    return CountingAdapter()


@pytest.fixture
def counting_group() -> CountingGroupAdapter:
    adapter = CountingGroupAdapter()
    adapter.children = lambda: [
        CatalogItem(name="First", type="csv"),
        CatalogItem(name="Second", type="csv"),
    ]
    return adapter


# ============================================================================
# Catalog
# ============================================================================

@pytest.fixture
def providers(counting, counting_group):
    registry = default_providers()
    registry.register(counting)
    registry.register(counting_group)
    return registry


@pytest.fixture
def context(transport) -> LoadContext:
    return LoadContext(transport=transport, app_name="GeoCat", support_email="help@example.com")


@pytest.fixture
def registry(providers, context) -> CatalogRegistry:
    return CatalogRegistry(providers=providers, context=context)


@pytest.fixture
def loader(providers) -> CatalogLoader:
    return CatalogLoader(providers)


BASE_CATALOG = {
    "catalog": [
        {
            "id": "g",
            "name": "G",
            "type": "group",
            "items": [
                {"id": "g/i", "name": "I", "type": "csv", "url": "https://data.example.com/i.csv"},
                {"id": "g/j", "name": "J", "type": "csv", "url": "https://data.example.com/j.csv"},
            ],
        },
        {
            "id": "a",
            "name": "A",
            "type": "group",
            "items": [
                {
                    "id": "a/b",
                    "name": "B",
                    "type": "group",
                    "items": [
                        {"id": "a/b/c", "name": "C", "type": "group", "items": [
                            {"id": "a/b/c/d", "name": "D", "type": "csv"},
                        ]},
                    ],
                },
            ],
        },
    ]
}


@pytest.fixture
def build_catalog(providers, context):
    """Build a fresh registry (and its loader) from a catalog definition."""

    def build(data: dict | list | None = None) -> tuple[CatalogRegistry, CatalogLoader]:
        registry = CatalogRegistry(providers=providers, context=context)
        loader = CatalogLoader(providers)
        loader.load_dict(data if data is not None else BASE_CATALOG, registry)
        return registry, loader

    return build


def group(registry: CatalogRegistry, node_id: str) -> CatalogGroup:
    node = registry.get(node_id)
    assert isinstance(node, CatalogGroup)
    return node
