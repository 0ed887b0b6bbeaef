"""
Catalog functions backed by a JSON web service.
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from geocat_svc.catalog.node import CatalogItem
from geocat_svc.errors import LoadFormatError, LoadTransportError
from geocat_svc.providers.json_function import FunctionInvoker, FunctionParameter, add_query
from geocat_svc.share.document import ShareDocument
from geocat_svc.share.replay import ShareReplayer
from geocat_svc.view.types import ViewState

FUNCTION_URL = "https://fn.example.com/nearby"

INPUTS = [
    {"id": "point", "name": "Location", "type": "point"},
    {"id": "radius", "name": "Radius (m)", "type": "number", "value": 500},
    {"id": "detailed", "name": "Detailed", "type": "boolean"},
]


@pytest.fixture
def function(build_catalog):
    registry, loader = build_catalog()
    node = registry.root.add(CatalogItem(
        id="nearby", name="Nearby", type="json-function", url=FUNCTION_URL, options={"inputs": INPUTS},
    ), 0)
    view = ViewState.default()
    replayer = ShareReplayer(registry, view, loader, registry.context.transport)
    return node, registry, view, FunctionInvoker(registry, loader, replayer)


# ============================================================================
# Parameters
# ============================================================================

class TestParameters:

    @pytest.mark.parametrize("data,expected", [
        ({"id": "p", "type": "point", "value": {"longitude": 151.2, "latitude": -33.9}}, "151.2,-33.9"),
        ({"id": "p", "type": "point", "value": [151.2, -33.9]}, "151.2,-33.9"),
        ({"id": "b", "type": "boolean", "value": True}, "true"),
        ({"id": "n", "type": "number", "value": 12.5}, "12.5"),
    ])
    def test_format_for_service(self, data, expected):
        assert FunctionParameter.from_dict(data).format_for_service() == expected

    def test_unset_value_displays_dash(self):
        parameter = FunctionParameter.from_dict({"id": "q"})

        assert parameter.name == "q"
        assert not parameter.has_value
        assert parameter.format_value_as_string() == "-"

    def test_add_query_keeps_existing(self):
        assert add_query("https://x/f?key=1", {"radius": "5"}) == "https://x/f?key=1&radius=5"
        assert add_query("https://x/f", {}) == "https://x/f"


# ============================================================================
# Invocation
# ============================================================================

class TestInvoke:

    async def test_single_member_goes_into_results_group(self, function, fake_http):
        node, registry, _, invoker = function
        fake_http.add(FUNCTION_URL, {"type": "csv", "url": "https://fn.example.com/out.csv"})

        added = await invoker.invoke(node, {"point": [151.2, -33.9], "detailed": False})

        query = parse_qs(urlsplit(str(fake_http.requests[0].url)).query)
        assert query == {"point": ["151.2,-33.9"], "radius": ["500"], "detailed": ["false"]}

        results = registry.get("nearby-results")
        assert registry.root.items[1] is results
        assert results.name == "Nearby Results"
        assert added == results.items
        member = added[0]
        assert member.name.startswith("Nearby ")
        assert "Radius (m): 500" in member.description
        assert member.is_user_supplied
        assert member.is_enabled

    async def test_member_list_reuses_results_group(self, function, fake_http):
        node, registry, _, invoker = function
        fake_http.add(FUNCTION_URL, [
            {"name": "Schools", "type": "csv", "isEnabled": False},
            {"name": "Parks", "type": "csv"},
        ])

        await invoker.invoke(node)
        await invoker.invoke(node)

        results = registry.get("nearby-results")
        assert [m.name for m in results.items] == ["Schools", "Parks"]
        assert not results.items[0].is_enabled
        assert results.items[1].is_enabled

    async def test_catalog_file_is_merged(self, function, fake_http):
        node, registry, _, invoker = function
        fake_http.add(FUNCTION_URL, {"catalog": [{"name": "Merged", "type": "csv"}]})

        added = await invoker.invoke(node)

        assert added == []
        assert registry.get("Merged") is not None
        assert "nearby-results" not in registry

    async def test_share_document_is_replayed(self, function, fake_http):
        node, registry, view, invoker = function
        fake_http.add(FUNCTION_URL, ShareDocument(init_sources=[
            {"sharedCatalogMembers": {"g/i": {"isEnabled": True}}},
            {"baseMapName": "Voyager"},
        ]).to_dict())

        await invoker.invoke(node)

        assert registry.get("g/i").is_enabled
        assert view.base_map_name == "Voyager"

    async def test_service_failure(self, function, fake_http):
        node, _, _, invoker = function
        fake_http.add(FUNCTION_URL, {"error": "down"}, status=502)

        with pytest.raises(LoadTransportError):
            await invoker.invoke(node)

    async def test_unexpected_response(self, function, fake_http):
        node, _, _, invoker = function
        fake_http.add(FUNCTION_URL, [1, 2, 3])

        with pytest.raises(LoadFormatError):
            await invoker.invoke(node)

    async def test_malformed_inputs_fail_load(self, function):
        node, _, _, _ = function
        node.update(options={"inputs": [{"name": "no id"}]})

        with pytest.raises(LoadFormatError):
            await node.load()
