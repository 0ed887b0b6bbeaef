"""Catalog functions that call a JSON web service and add its results to the catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, TYPE_CHECKING
from urllib.parse import urlencode, urlsplit, urlunsplit

from ..catalog.node import CatalogGroup, CatalogNode
from ..catalog.types import LoadResult
from ..errors import LoadFormatError, LoadTransportError, ResponseFormatError, TransportError
from ..share.document import ShareDocument, is_share_data
from .base import LoadContext, ProviderAdapter

if TYPE_CHECKING:
    from ..catalog.loader import CatalogLoader
    from ..catalog.registry import CatalogRegistry


logger = logging.getLogger(__name__)


@dataclass
class FunctionParameter:
    """One input of a catalog function."""
    id: str
    name: str = ""
    type: str = "string"
    description: str = ""
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FunctionParameter:
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            type=data.get("type", "string"),
            description=data.get("description", ""),
            value=data.get("value"),
        )

    def to_dict(self) -> dict[str, Any]:
        d = {"id": self.id, "name": self.name, "type": self.type}
        if self.description:
            d["description"] = self.description
        if self.value is not None:
            d["value"] = self.value
        return d

    @property
    def has_value(self) -> bool:
        return self.value is not None and self.value != ""

    def format_for_service(self) -> str:
        value = self.value
        if self.type == "point":
            if isinstance(value, dict):
                return f"{value['longitude']},{value['latitude']}"
            lon, lat = value[0], value[1]
            return f"{lon},{lat}"
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def format_value_as_string(self) -> str:
        if not self.has_value:
            return "-"
        return self.format_for_service()


class JsonFunctionAdapter(ProviderAdapter):
    """``json-function``: nothing to load, the work happens in ``FunctionInvoker``."""
    types = ("json-function",)

    async def load(self, node, context: LoadContext | None) -> LoadResult:
        inputs = node.options.get("inputs", [])
        if not isinstance(inputs, list) or not all(isinstance(p, dict) and "id" in p for p in inputs):
            raise LoadFormatError("Invalid function", f"'{node.name}' has malformed inputs.", sender_id=node.id)
        return LoadResult()


class ShareReplay(Protocol):
    async def replay(self, document: ShareDocument) -> None: ...

    async def apply_fragment(self, fragment: dict[str, Any]) -> None: ...


def parameters_for(node: CatalogNode, values: dict[str, Any] | None = None) -> list[FunctionParameter]:
    parameters = [FunctionParameter.from_dict(p) for p in node.options.get("inputs", [])]
    for parameter in parameters:
        if values and parameter.id in values:
            parameter.value = values[parameter.id]
    return parameters


def add_query(url: str, query: dict[str, str]) -> str:
    if not query:
        return url
    parts = urlsplit(url)
    combined = "&".join(q for q in (parts.query, urlencode(query)) if q)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, combined, parts.fragment))


class FunctionInvoker:
    """
    Invokes ``json-function`` members.

    The service answers with one of:
      1. a single catalog member, added to the catalog and enabled;
      2. a list of catalog members, handled the same way;
      3. a catalog file (``{"catalog": [...]}``), merged into the catalog;
      4. a share document, replayed against the current session.

    Members from cases 1 and 2 go into a ``<function id>-results`` group
    placed right after the function in its parent.
    """

    def __init__(
        self,
        registry: CatalogRegistry,
        loader: CatalogLoader,
        replayer: ShareReplay,
    ):
        self.registry = registry
        self.loader = loader
        self.replayer = replayer

    async def invoke(self, node: CatalogNode, values: dict[str, Any] | None = None) -> list[CatalogNode]:
        context = self.registry.context
        if context is None or context.transport is None:
            raise LoadTransportError("No transport", "No HTTP transport is configured.", sender_id=node.id)

        now = datetime.now()
        timestamp = now.strftime("%Y-%m-%dT%H:%M:%S")
        result_name = f"{node.name} {timestamp}"
        parameters = parameters_for(node, values)
        result_description = (
            f"This is the result of invoking the {node.name} process or service at {timestamp} "
            "with the input parameters below.\n\n"
            + "\n".join(f"{p.name}: {p.format_value_as_string()}" for p in parameters)
        )

        query = {p.id: p.format_for_service() for p in parameters if p.has_value}
        url = context.proxy_url(node, add_query(node.url or "", query), "1d")
        logger.info("Invoking %s", node.id)

        try:
            response = await context.transport.fetch_json(url)
        except TransportError as e:
            raise LoadTransportError(
                "Function failed",
                f"'{node.name}' could not be invoked: {e.reason}",
                hint="Check the service URL and try again.",
                sender_id=node.id,
            ) from e
        except ResponseFormatError as e:
            raise LoadFormatError("Function failed", f"'{node.name}': {e.reason}", sender_id=node.id) from e

        if is_share_data(response):
            await self.replayer.replay(ShareDocument.from_dict(response))
            return []
        if isinstance(response, dict) and isinstance(response.get("catalog"), list):
            await self.replayer.apply_fragment(response)
            return []

        members = response if isinstance(response, list) else [response]
        prepared = []
        for member in members:
            if not isinstance(member, dict):
                raise LoadFormatError("Function failed", f"'{node.name}' returned an unexpected response.", sender_id=node.id)
            member = dict(member)
            member.setdefault("isEnabled", True)
            member["name"] = member.get("name") or result_name
            member["description"] = member.get("description") or result_description
            prepared.append(member)

        results = self._results_group(node)
        added = self.loader.merge_members(results, prepared, isUserSupplied=True)
        await self.loader.activate_pending()
        logger.info("%s produced %d members", node.id, len(added))
        return added

    def _results_group(self, node: CatalogNode) -> CatalogGroup:
        results_id = f"{node.id}-results"
        existing = self.registry.get(results_id)
        if isinstance(existing, CatalogGroup):
            return existing

        parent = node.parent or self.registry.root
        index = parent.items.index(node) + 1 if node in parent.items else len(parent.items)
        group = CatalogGroup(id=results_id, name=f"{node.name} Results")
        parent.add(group, index)
        return group
