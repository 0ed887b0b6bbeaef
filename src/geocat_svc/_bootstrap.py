"""Shared initialisation helpers.

Each function constructs exactly one component from the service stack.
share_app.py, the MCP server and the CLI scripts call these so all entry
points stay in sync.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def load_config(config_path: str | None = None):
    """Load config from file or fall back to defaults.

    Returns ``(config, resolved_config_path)`` where *resolved_config_path*
    is the string that was actually used (needed to resolve relative paths
    such as ``catalog.definition_file``).
    """
    from .config import Config

    config_path = config_path or os.environ.get("GEOCAT_CONFIG", "config.yaml")
    if Path(config_path).exists():
        config = Config.from_yaml(config_path)
        logger.info("Loaded config from %s", config_path)
    else:
        config = Config()
        logger.info("Using default config (no file at %s)", config_path)
    return config, config_path


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

def build_transport(config, client=None):
    """Build the HTTP transport. ``client`` lets tests inject an httpx client."""
    from .transport import HttpTransport

    return HttpTransport(timeout=config.transport.timeout_seconds, client=client)


def build_load_context(config, transport):
    """Collaborators handed to provider adapters."""
    from .providers.base import LoadContext
    from .transport import UrlProxy

    proxy = UrlProxy(config.proxy)
    if config.proxy.enabled:
        logger.info("Proxying requests for %s through %s", config.proxy.proxyable_domains, config.proxy.base_url)
    return LoadContext(
        transport=transport,
        proxy=proxy,
        app_name=config.app_name,
        support_email=config.support_email,
        ion=config.ion,
    )


# ---------------------------------------------------------------------------
# Provider registry
# ---------------------------------------------------------------------------

def build_provider_registry():
    """Build and register all provider adapters."""
    from .providers import default_providers

    registry = default_providers()
    logger.info("Registered provider types: %s", registry.all_types())
    return registry


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def build_catalog_registry(config, config_path: str, providers, context):
    """Build the catalog tree from the configured definition file.

    Returns ``(registry, loader)``. The loader still holds the open/enable
    requests from the definition; run ``loader.activate_pending()`` once an
    event loop is available.
    """
    from .catalog.loader import CatalogLoader
    from .catalog.registry import CatalogRegistry

    registry = CatalogRegistry(root_name=config.catalog.root_name, providers=providers, context=context)
    loader = CatalogLoader(providers)

    if config.catalog.definition_file:
        config_dir = Path(config_path).parent.resolve()
        definition_path = (config_dir / config.catalog.definition_file).resolve()
        logger.info("Loading catalog from: %s", definition_path)
        if definition_path.is_dir():
            loader.load_directory(definition_path, registry)
        else:
            loader.load_file(definition_path, registry)
    else:
        logger.info("Starting with an empty catalog (no definition_file configured)")

    logger.info("Catalog loaded with %d members", registry.count())
    return registry, loader


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

def build_share_codec(config, transport):
    """Build the share-link codec with the configured short-link backend."""
    from .share.codec import ShareLinkCodec
    from .share.shortener import create_backend

    backend = create_backend(config.share.short_link, transport)
    if backend is not None:
        logger.info("Short links via %s (usable=%s)", type(backend).__name__, backend.is_usable)
    return ShareLinkCodec(
        app_url=config.share.app_url,
        whitelist=config.share.user_property_whitelist,
        backend=backend,
    )


# ---------------------------------------------------------------------------
# GeoCatService
# ---------------------------------------------------------------------------

async def build_service(config_path: str | None = None, client=None, config=None):
    """Construct the whole stack and return a ready ``GeoCatService``.

    A ready-made *config* skips the config file; relative paths in it are
    then resolved against the current directory.
    """
    from .service import GeoCatService

    if config is None:
        config, config_path = load_config(config_path)
    else:
        config_path = config_path or str(Path.cwd() / "config.yaml")
    transport = build_transport(config, client)
    context = build_load_context(config, transport)
    providers = build_provider_registry()
    registry, loader = build_catalog_registry(config, config_path, providers, context)
    codec = build_share_codec(config, transport)

    service = GeoCatService(
        config=config,
        registry=registry,
        loader=loader,
        transport=transport,
        codec=codec,
    )
    await loader.activate_pending()
    return service
