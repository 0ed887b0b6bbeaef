"""
MCP Server for GeoCat - exposes the geospatial catalog and session
sharing over the Model Context Protocol.

Transport: Streamable HTTP (network-accessible), SSE or stdio.
State:     One catalog session per server process, built from
           GEOCAT_CONFIG on first use.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

# ---------------------------------------------------------------------------
# Path setup - import geocat_svc from the parent repo's src/ when not installed
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parent.parent
_SRC = _REPO_ROOT / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from geocat_svc import _bootstrap as bs
from geocat_svc.errors import GeoCatError
from geocat_svc.service import GeoCatService, describe_node

logging.basicConfig(level=logging.INFO, force=True)
logger = logging.getLogger("mcp-geocat")
logger.setLevel(logging.INFO)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MCP_PORT = int(os.environ.get("MCP_PORT", "8061"))
MCP_HOST = os.environ.get("MCP_HOST", "0.0.0.0")
CONFIG_YAML = os.environ.get("GEOCAT_CONFIG", str(_REPO_ROOT / "config.yaml"))


# ---------------------------------------------------------------------------
# Shared state - built lazily on the server's event loop, since catalog
# loading is asynchronous.
# ---------------------------------------------------------------------------

_service: GeoCatService | None = None
_service_lock = asyncio.Lock()


async def _require_service() -> GeoCatService:
    global _service
    async with _service_lock:
        if _service is None:
            _service = await bs.build_service(CONFIG_YAML)
            logger.info(f"GeoCat session ready: {_service.registry.count()} catalog members")
    return _service


def _error(e: GeoCatError) -> str:
    return json.dumps({"error": e.to_dict()}, indent=2)


# ---------------------------------------------------------------------------
# Create the FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    name="geocat",
    instructions=(
        "GeoCat MCP Server - browse a catalog of geospatial data layers, put layers "
        "on the map and share the resulting session as a link.\n\n"

        "## The Catalog\n"
        "The catalog is a tree of groups and items. Every member has an id; members of "
        "top-level groups have ids like `Group/Member`. Groups backed by a remote "
        "service (ArcGIS Server, for example) only list their members once loaded.\n\n"

        "## Working with the Catalog\n"
        "  - Call `get_catalog_tree()` for the full tree\n"
        "  - Call `open_group('Boundaries')` to expand and load a group\n"
        "  - Call `enable_item('Boundaries/Suburbs')` to show an item on the map\n"
        "  - Call `invoke_function(id, values)` to run a catalog function\n\n"

        "## Sharing\n"
        "  - Call `build_share_link(short=True)` for a link to the current session\n"
        "  - Call `open_share_link(url)` to restore a session from a link"
    ),
    host=MCP_HOST,
    port=MCP_PORT,
)


# ===================================================================
# CATALOG TOOLS
# ===================================================================

@mcp.tool(
    name="get_catalog_tree",
    description="Return the catalog tree with load state, open and enabled flags for every member.",
)
async def get_catalog_tree() -> str:
    service = await _require_service()
    return json.dumps({"items": service.describe_tree()}, indent=2)


@mcp.tool(
    name="describe_member",
    description="Describe one catalog member by id, including its members if it is a group.",
)
async def describe_member(member_id: str) -> str:
    service = await _require_service()
    try:
        return json.dumps(describe_node(service.get_node(member_id), recursive=True), indent=2)
    except GeoCatError as e:
        return _error(e)


@mcp.tool(
    name="open_group",
    description="Expand a catalog group and load its members. Example: open_group('National Map')",
)
async def open_group(group_id: str) -> str:
    service = await _require_service()
    try:
        return json.dumps(describe_node(await service.open(group_id), recursive=True), indent=2)
    except GeoCatError as e:
        return _error(e)


@mcp.tool(name="enable_item", description="Load a catalog item if needed and show it on the map.")
async def enable_item(item_id: str) -> str:
    service = await _require_service()
    try:
        return json.dumps(describe_node(await service.enable(item_id)), indent=2)
    except GeoCatError as e:
        return _error(e)


@mcp.tool(name="disable_item", description="Remove a catalog item from the map.")
async def disable_item(item_id: str) -> str:
    service = await _require_service()
    try:
        return json.dumps(describe_node(await service.disable(item_id)), indent=2)
    except GeoCatError as e:
        return _error(e)


@mcp.tool(
    name="invoke_function",
    description=(
        "Run a json-function catalog member with the given parameter values. "
        "Results are added to a '<id>-results' group and enabled."
    ),
)
async def invoke_function(function_id: str, values: dict[str, Any] | None = None) -> str:
    service = await _require_service()
    try:
        added = await service.invoke_function(function_id, values)
    except GeoCatError as e:
        return _error(e)
    return json.dumps({"added": [describe_node(node) for node in added]}, indent=2)


# ===================================================================
# SHARE TOOLS
# ===================================================================

@mcp.tool(
    name="get_share_document",
    description="Return the share document for the current session and any members left out of it.",
)
async def get_share_document() -> str:
    service = await _require_service()
    build = service.build_share_document()
    return json.dumps({
        "document": build.document.to_dict(),
        "rejections": [node.id for node in build.rejections],
    }, indent=2)


@mcp.tool(
    name="build_share_link",
    description="Return a link to the current session. With short=True a token link is used when available.",
)
async def build_share_link(short: bool = False) -> str:
    service = await _require_service()
    try:
        return await service.build_share_link(short=short)
    except GeoCatError as e:
        return _error(e)


@mcp.tool(name="open_share_link", description="Restore catalog and view state from a share link.")
async def open_share_link(url: str) -> str:
    service = await _require_service()
    try:
        document = await service.open_share_link(url)
    except GeoCatError as e:
        return _error(e)
    return json.dumps({
        "initSources": len(document.init_sources),
        "enabled": service.registry.map_context.attached_ids(),
    }, indent=2)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="MCP Server for GeoCat")
    parser.add_argument("--host", default=MCP_HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=MCP_PORT, help="Port")
    parser.add_argument("--transport", choices=["stdio", "sse", "streamable-http"], default="streamable-http")
    args = parser.parse_args()

    mcp.settings.host = args.host
    mcp.settings.port = args.port
    mcp.run(transport=args.transport)
