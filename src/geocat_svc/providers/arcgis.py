"""ArcGIS Server adapters - REST services directories and map/feature services."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit, urlunsplit

from ..catalog.node import CatalogGroup, CatalogItem, CatalogNode
from ..catalog.types import LoadResult
from ..errors import LoadFormatError, LoadTransportError, ResponseFormatError, TransportError
from .base import LoadContext, ProviderAdapter


logger = logging.getLogger(__name__)

MAP_SERVER_SUFFIX = re.compile(r"/MapServer/?$", re.IGNORECASE)
FEATURE_SERVER_SUFFIX = re.compile(r"/FeatureServer/?$", re.IGNORECASE)
_BASE_PATH = re.compile(r"rest/services/(.*)", re.IGNORECASE)

# Service type in a directory listing -> member type of the group created for it.
SERVICE_GROUP_TYPES = {
    "MapServer": "esri-mapServer-group",
    "FeatureServer": "esri-featureServer-group",
}
# Group type -> member type of the layers it lists.
LAYER_ITEM_TYPES = {
    "esri-mapServer-group": "esri-mapServer",
    "esri-featureServer-group": "esri-featureServer",
}

REST = "rest"
MAP_SERVER = "map_server"
FEATURE_SERVER = "feature_server"


def select_loader(url: str | None) -> str:
    """
    Pick the loader for an ArcGIS URL from its suffix alone.

    A services directory can point straight at a MapServer or
    FeatureServer, in which case it behaves like the specific group type.
    """
    if url and MAP_SERVER_SUFFIX.search(url):
        return MAP_SERVER
    if url and FEATURE_SERVER_SUFFIX.search(url):
        return FEATURE_SERVER
    return REST


def get_base_path(url: str | None) -> str:
    """The part of the URL after ``rest/services/``, without trailing slashes."""
    match = _BASE_PATH.search(url or "")
    if match:
        return match.group(1).strip("/")
    return ""


def remove_path_from_name(base_path: str, name: str) -> str:
    """Strip the parent's own path from a name listed by the services directory."""
    if not base_path:
        return name
    if name.startswith(base_path + "/"):
        return name[len(base_path) + 1:]
    return name


def display_name(local_name: str) -> str:
    return local_name.replace("_", " ")


def append_segments(url: str, *segments: str) -> str:
    """Append path segments to a URL, keeping its query string."""
    parts = urlsplit(url)
    path = "/".join([parts.path.rstrip("/"), *[s.strip("/") for s in segments]])
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def clean_url(url: str) -> str:
    """The URL with its query string and fragment removed."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class _ArcGisAdapter(ProviderAdapter):
    """Shared fetch and error handling."""
    is_group = True
    influencing_fields = ("url", "blacklist")

    async def _fetch_service_json(self, node: CatalogNode, context: LoadContext | None) -> dict:
        if context is None or context.transport is None:
            raise LoadTransportError("No transport", "No HTTP transport is configured.", sender_id=node.id)

        url = context.proxy_url(node, clean_url(node.url or ""), "1d") + "?f=json"
        try:
            data = await context.transport.fetch_json(url)
        except (TransportError, ResponseFormatError) as e:
            raise LoadTransportError(
                "Group is not available",
                f"An error occurred while invoking the ArcGIS REST service at {node.url}.",
                hint=(
                    "If you entered the link manually, verify that it is correct. "
                    "The server may not support CORS; contact its administrator or email "
                    f"{context.support_email} to ask for it to be proxied by {context.app_name}. "
                    "If the problem persists, try opening the group again later."
                ),
                sender_id=node.id,
            ) from e

        if not isinstance(data, dict):
            raise self._invalid(node, context)
        return data

    @staticmethod
    def _invalid(node: CatalogNode, context: LoadContext) -> LoadFormatError:
        return LoadFormatError(
            "Invalid ArcGIS Server",
            "The server's response does not appear to be a valid ArcGIS REST document.",
            hint=(
                "If you entered the link manually, verify that it is correct. "
                f"If the problem persists, please report it to {context.support_email}."
            ),
            sender_id=node.id,
        )

    async def _load_layers(self, node: CatalogNode, context: LoadContext | None, item_type: str) -> LoadResult:
        data = await self._fetch_service_json(node, context)
        layers = data.get("layers")
        if not isinstance(layers, list):
            raise self._invalid(node, context)

        children: list[CatalogNode] = []
        for layer in layers:
            if not isinstance(layer, dict) or "id" not in layer:
                continue
            children.append(CatalogItem(
                name=str(layer.get("name") or layer["id"]),
                type=item_type,
                url=append_segments(node.url or "", str(layer["id"])),
                description=layer.get("description") or "",
            ))
        logger.debug("%s lists %d layers", node.url, len(children))
        return LoadResult(children=tuple(children))


class ArcGisCatalogGroupAdapter(_ArcGisAdapter):
    """``esri-group``: an ArcGIS REST services directory."""
    types = ("esri-group",)

    async def load(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        loader = select_loader(node.url)
        if loader == MAP_SERVER:
            return await self._load_layers(node, context, "esri-mapServer")
        if loader == FEATURE_SERVER:
            return await self._load_layers(node, context, "esri-featureServer")
        return await self._load_rest(node, context)

    async def _load_rest(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        data = await self._fetch_service_json(node, context)
        folders = data.get("folders")
        services = data.get("services")
        if not folders and not services:
            raise self._invalid(node, context)

        base_path = get_base_path(node.url)
        children: list[CatalogNode] = []

        for folder in folders or []:
            local_name = remove_path_from_name(base_path, str(folder))
            children.append(self._child_group(node, "esri-group", local_name, append_segments(node.url, local_name)))

        for service in services or []:
            group_type = SERVICE_GROUP_TYPES.get(service.get("type")) if isinstance(service, dict) else None
            if group_type is None:
                continue
            local_name = remove_path_from_name(base_path, str(service.get("name", "")))
            url = append_segments(node.url, local_name, service["type"])
            children.append(self._child_group(node, group_type, local_name, url))

        return LoadResult(children=tuple(children))

    @staticmethod
    def _child_group(parent: CatalogNode, type_name: str, local_name: str, url: str) -> CatalogGroup:
        return CatalogGroup(
            name=display_name(local_name),
            type=type_name,
            url=url,
            blacklist=dict(parent.blacklist) if getattr(parent, "blacklist", None) else None,
            data_custodian=getattr(parent, "data_custodian", None),
            item_properties=dict(parent.item_properties) if getattr(parent, "item_properties", None) else None,
        )


class ArcGisMapServerGroupAdapter(_ArcGisAdapter):
    types = ("esri-mapServer-group",)

    async def load(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        return await self._load_layers(node, context, LAYER_ITEM_TYPES[self.types[0]])


class ArcGisFeatureServerGroupAdapter(_ArcGisAdapter):
    types = ("esri-featureServer-group",)

    async def load(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        return await self._load_layers(node, context, LAYER_ITEM_TYPES[self.types[0]])


class ArcGisLayerAdapter(ProviderAdapter):
    """Single map-service or feature-service layers, drawn by the rendering engine."""
    types = ("esri-mapServer", "esri-featureServer")

    async def load(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        return LoadResult()
