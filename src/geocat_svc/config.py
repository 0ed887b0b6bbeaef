"""Service configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


DEFAULT_USER_PROPERTY_WHITELIST = ["hideExplorerPanel", "activeTabId"]


@dataclass
class CatalogConfig:
    """Where the base catalog definition lives."""
    definition_file: str | None = None  # YAML/JSON file or directory, relative to the config file
    root_name: str = "Root Group"


@dataclass
class ProxyConfig:
    """Caching proxy used for cross-origin requests."""
    enabled: bool = False
    base_url: str = "/proxy/"
    proxyable_domains: list[str] = field(default_factory=list)
    default_cache_duration: str = "2d"


@dataclass
class ShortLinkConfig:
    """Short-link backend selection."""
    enabled: bool = True
    backend: str | None = None  # "share-data-service" | "url-shortener"
    url: str | None = None


@dataclass
class ShareConfig:
    """Share-link generation settings."""
    app_url: str = "http://localhost:3001/"
    init_sources: list[str] = field(default_factory=list)
    user_property_whitelist: list[str] = field(
        default_factory=lambda: list(DEFAULT_USER_PROPERTY_WHITELIST)
    )
    short_link: ShortLinkConfig = field(default_factory=ShortLinkConfig)
    store_max_size: int = 10000  # tokens kept by the in-process share store

    @classmethod
    def from_dict(cls, data: dict) -> ShareConfig:
        short_data = data.get("short_link", {}) or {}
        return cls(
            app_url=data.get("app_url", cls.app_url),
            init_sources=list(data.get("init_sources", [])),
            user_property_whitelist=list(
                data.get("user_property_whitelist", DEFAULT_USER_PROPERTY_WHITELIST)
            ),
            short_link=ShortLinkConfig(**short_data),
            store_max_size=data.get("store_max_size", cls.store_max_size),
        )


@dataclass
class TransportConfig:
    timeout_seconds: float = 30.0


@dataclass
class FeedbackConfig:
    url: str | None = None


@dataclass
class IonConfig:
    """Cesium ion defaults for 3D tiles items."""
    access_token: str | None = None
    server: str | None = None


@dataclass
class Config:
    """Top-level configuration."""
    app_name: str = "GeoCat"
    support_email: str = "support@example.com"
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    ion: IonConfig = field(default_factory=IonConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from dictionary."""
        return cls(
            app_name=data.get("app_name", cls.app_name),
            support_email=data.get("support_email", cls.support_email),
            catalog=CatalogConfig(**data.get("catalog", {})),
            proxy=ProxyConfig(**data.get("proxy", {})),
            share=ShareConfig.from_dict(data.get("share", {})),
            transport=TransportConfig(**data.get("transport", {})),
            feedback=FeedbackConfig(**data.get("feedback", {})),
            ion=IonConfig(**data.get("ion", {})),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> Config:
        """Load config from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})
