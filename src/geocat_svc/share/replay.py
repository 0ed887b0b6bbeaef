"""Replays share documents against the live catalog and view state."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ..catalog.node import CatalogGroup
from ..errors import GeoCatError, LoadError, ReplayUnknownFragmentError, ResponseFormatError, TransportError
from ..view.geodesy import cartographic_to_cartesian
from ..view.types import CameraView, JulianDate, LocationMarker, PickRequest, ViewerMode, ViewState
from .document import SHARE_VERSION, ShareDocument, parse_version

if TYPE_CHECKING:
    from ..catalog.loader import CatalogLoader
    from ..catalog.registry import CatalogRegistry
    from ..transport import HttpTransport


logger = logging.getLogger(__name__)

VIEW_KEYS = frozenset({
    "initialCamera",
    "homeCamera",
    "baseMapName",
    "viewerMode",
    "currentTime",
    "showSplitter",
    "splitPosition",
})
KNOWN_KEYS = VIEW_KEYS | {"catalog", "sharedCatalogMembers", "pickedFeatures", "locationMarker"}


class ShareReplayer:
    """
    Applies a share document's init fragments, in order.

    Each fragment key has one handler. Fragments made only of keys this
    build does not know are skipped, so documents written by newer builds
    still open. Failures of individual members are reported through the
    registry's error channel and do not stop the replay.
    """

    def __init__(
        self,
        registry: CatalogRegistry,
        view: ViewState,
        loader: CatalogLoader,
        transport: HttpTransport | None = None,
    ):
        self.registry = registry
        self.view = view
        self.loader = loader
        self.transport = transport

    async def replay(self, document: ShareDocument) -> None:
        if parse_version(document.version)[:2] > parse_version(SHARE_VERSION)[:2]:
            logger.warning(
                "Share document version %s is newer than %s; applying what this build understands",
                document.version,
                SHARE_VERSION,
            )

        for source in document.init_sources:
            try:
                await self.apply_fragment(source)
            except ReplayUnknownFragmentError as e:
                logger.debug("Ignoring init fragment with unknown keys: %s", e.keys)

    async def apply_fragment(self, fragment: dict[str, Any] | str) -> None:
        """Apply one init fragment; a string names an init file to fetch first."""
        if isinstance(fragment, str):
            fetched = await self._fetch_init_file(fragment)
            if fetched is None:
                return
            fragment = fetched

        if not isinstance(fragment, dict):
            raise ReplayUnknownFragmentError([type(fragment).__name__])

        unknown = [key for key in fragment if key not in KNOWN_KEYS]
        if len(unknown) == len(fragment):
            raise ReplayUnknownFragmentError(unknown)
        if unknown:
            logger.debug("Ignoring unknown init keys: %s", unknown)

        if "catalog" in fragment:
            await self.apply_catalog(fragment["catalog"])
        if "sharedCatalogMembers" in fragment:
            await self.apply_shared_members(fragment["sharedCatalogMembers"])
        if VIEW_KEYS.intersection(fragment):
            self.apply_view_settings(fragment)
        if "pickedFeatures" in fragment:
            self.apply_picked_features(fragment["pickedFeatures"])
        if "locationMarker" in fragment:
            self.apply_location_marker(fragment["locationMarker"])

    async def _fetch_init_file(self, url: str) -> dict[str, Any] | None:
        if self.transport is None:
            logger.warning("Cannot fetch init file %s: no transport configured", url)
            return None
        try:
            data = await self.transport.fetch_json(url)
        except (TransportError, ResponseFormatError) as e:
            self.registry.report_error(GeoCatError(
                "Could not load init file",
                f"{url}: {e}",
                hint="Check that the file exists and is valid JSON.",
            ))
            return None
        if not isinstance(data, dict):
            logger.warning("Init file %s is not a JSON object", url)
            return None
        return data

    # ---- Catalog ----

    async def apply_catalog(self, members: list[dict[str, Any]]) -> None:
        if not isinstance(members, list):
            logger.warning("Ignoring catalog fragment that is not a list")
            return
        self.loader.merge_members(self.registry.root, members)
        await self.loader.activate_pending()

    async def apply_shared_members(self, members: dict[str, Any]) -> None:
        if not isinstance(members, dict):
            logger.warning("Ignoring sharedCatalogMembers fragment that is not an object")
            return

        for node_id, properties in members.items():
            if not isinstance(properties, dict):
                continue

            node = self.registry.get(node_id)
            if node is None:
                # Members created by loading a group only exist once it has loaded.
                await self._load_parents(properties.get("parents") or [])
                node = self.registry.get(node_id)
            if node is None:
                logger.warning("Shared catalog member '%s' is not in the catalog", node_id)
                continue

            try:
                self.loader.update_node(node, properties)
            except (TypeError, ValueError, AttributeError) as e:
                self.registry.report_error(GeoCatError(
                    "Could not restore catalog member",
                    f"'{node_id}': {e}",
                    sender_id=node_id,
                ))

        await self.loader.activate_pending()

    async def _load_parents(self, parent_ids: list[str]) -> None:
        for parent_id in parent_ids:
            parent = self.registry.get(parent_id)
            if not isinstance(parent, CatalogGroup):
                return
            try:
                await parent.load()
            except LoadError as e:
                logger.debug("Parent '%s' did not load: %s", parent_id, e)
                return

    # ---- View ----

    def apply_view_settings(self, settings: dict[str, Any]) -> None:
        view = self.view
        try:
            if settings.get("initialCamera"):
                view.camera = CameraView.from_dict(settings["initialCamera"])
            if settings.get("homeCamera"):
                view.home_camera = CameraView.from_dict(settings["homeCamera"])
            if settings.get("currentTime"):
                view.clock = JulianDate.from_dict(settings["currentTime"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed view settings: %s", e)

        if isinstance(settings.get("baseMapName"), str):
            view.base_map_name = settings["baseMapName"]
        if "viewerMode" in settings:
            try:
                view.viewer_mode = ViewerMode(settings["viewerMode"])
            except ValueError:
                logger.warning("Unknown viewer mode '%s'", settings["viewerMode"])
            else:
                self.registry.map_context.viewer_mode = view.viewer_mode

        if "showSplitter" in settings:
            view.show_splitter = bool(settings["showSplitter"])
        if "splitPosition" in settings:
            try:
                view.split_position = float(settings["splitPosition"])
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed split position '%s'", settings["splitPosition"])

    def apply_picked_features(self, picked: dict[str, Any]) -> None:
        """Queue the pick; the rendering engine re-runs it and matches entities by hash."""
        self.view.pending_pick = PickRequest(
            provider_coords=dict(picked.get("providerCoords") or {}),
            pick_coords=dict(picked.get("pickCoords") or {}),
            current=picked.get("current"),
            entities=tuple(picked.get("entities") or ()),
        )

    def apply_location_marker(self, marker: dict[str, Any]) -> None:
        try:
            position = cartographic_to_cartesian(float(marker["longitude"]), float(marker["latitude"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed location marker: %s", e)
            return
        self.view.location_marker = LocationMarker(name=marker.get("name", ""), position=position)
