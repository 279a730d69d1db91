"""Branded web app manifest per request host.

A tenant's site is reached either through its custom domain or through a
subdomain of the platform base domain; the manifest returned for that host
carries the tenant's company name and primary color so installed apps are
branded.
"""

from __future__ import annotations

import copy
from typing import Any

import structlog

from realtyhost.core.config import PlatformConfig
from realtyhost.domains.names import host_from_header, platform_subdomain
from realtyhost.domains.storage import TenantStore

logger = structlog.get_logger()

MANIFEST_CONTENT_TYPE = "application/manifest+json"

SHORT_NAME_LENGTH = 12


def default_manifest(platform: PlatformConfig) -> dict[str, Any]:
    return {
        "name": platform.app_name,
        "short_name": platform.app_short_name,
        "description": platform.app_description,
        "theme_color": platform.theme_color,
        "background_color": platform.background_color,
        "display": "standalone",
        "start_url": "/",
        "icons": [
            {"src": "/pwa-192x192.png", "sizes": "192x192", "type": "image/png"},
            {"src": "/pwa-512x512.png", "sizes": "512x512", "type": "image/png"},
        ],
    }


def apply_branding(manifest: dict[str, Any], branding: dict[str, Any]) -> dict[str, Any]:
    """Overlay tenant branding on a manifest. Missing fields keep the defaults."""
    branded = copy.deepcopy(manifest)
    company = branding.get("companyName")
    if company:
        branded["name"] = company
        branded["short_name"] = company[:SHORT_NAME_LENGTH]
    if branding.get("primaryColor"):
        branded["theme_color"] = branding["primaryColor"]
    return branded


class ManifestService:
    """Resolves the tenant behind a Host header and renders its manifest."""

    def __init__(self, store: TenantStore, platform: PlatformConfig) -> None:
        self.store = store
        self.platform = platform

    async def find_tenant(self, host: str) -> dict[str, Any] | None:
        """Find the tenant document serving a normalized host."""
        # Custom domains are usually stored with their www. label.
        for candidate in (host, f"www.{host}"):
            match = await self.store.find_by_custom_domain(candidate)
            if match:
                return match[1]

        subdomain = platform_subdomain(host, self.platform.base_domain)
        if subdomain:
            match = await self.store.find_by_subdomain(subdomain)
            if match:
                return match[1]
        return None

    async def manifest_for_host(self, host: str | None) -> tuple[int, dict[str, Any]]:
        """Return (http_status, manifest) for a request Host header.

        Unknown hosts get the platform manifest. A store failure is logged and
        also answered with the platform manifest, with status 500.
        """
        manifest = default_manifest(self.platform)
        name = host_from_header(host or "")
        if not name:
            return 200, manifest

        try:
            tenant = await self.find_tenant(name)
        except Exception:
            logger.exception("Error serving manifest", host=name)
            return 500, manifest

        branding = (tenant or {}).get("branding")
        if isinstance(branding, dict):
            return 200, apply_branding(manifest, branding)
        return 200, manifest
