"""Configuration types with environment variable support.

All settings can be configured via environment variables with the REALTYHOST_ prefix.
Example: REALTYHOST_DNS_ZONE_ID=abc123 sets the system zone used for custom hostnames.

The DNS and hosting settings also honour the variable names used by the
serverless deployment (CLOUDFLARE_API_TOKEN, CLOUDFLARE_ZONE_ID, GCLOUD_PROJECT).
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from realtyhost.core.exceptions import FailedPreconditionError

ENV_PREFIX = "REALTYHOST_"


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


def flatten_config(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in config.items():
        full_key = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten_config(value, full_key))
        else:
            result[full_key] = value
    return result


def export_file_config(file_config: dict[str, Any]) -> list[str]:
    """Expose flattened file settings as REALTYHOST_* environment variables.

    Values already present in the environment win over the file.

    Returns:
        The environment variable names that were set.
    """
    exported = []
    for key, value in file_config.items():
        name = f"{ENV_PREFIX}{key.upper()}"
        if name in os.environ or value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        elif isinstance(value, list):
            value = ",".join(str(v) for v in value)
        os.environ[name] = str(value)
        exported.append(name)
    clear_config()
    return exported


class DNSProviderConfig(BaseSettings):
    """DNS provider (Cloudflare for SaaS) settings.

    Environment Variables:
        REALTYHOST_DNS_API_TOKEN / CLOUDFLARE_API_TOKEN: API bearer token
        REALTYHOST_DNS_ZONE_ID / CLOUDFLARE_ZONE_ID: the platform's own zone,
            which owns every tenant custom hostname
        REALTYHOST_DNS_API_URL: API base URL
        REALTYHOST_DNS_TIMEOUT: per-request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix=f"{ENV_PREFIX}DNS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_token: str | None = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices(f"{ENV_PREFIX}DNS_API_TOKEN", "CLOUDFLARE_API_TOKEN"),
        description="Bearer token for the DNS provider API.",
    )
    zone_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(f"{ENV_PREFIX}DNS_ZONE_ID", "CLOUDFLARE_ZONE_ID"),
        description="System zone that owns the custom hostnames.",
    )
    api_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="DNS provider API base URL.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for each DNS provider request.",
    )

    @property
    def configured(self) -> bool:
        return bool(self.api_token and self.zone_id)

    def require_credentials(self) -> tuple[str, str]:
        """Return (api_token, zone_id) or fail when either is missing."""
        if not self.api_token or not self.zone_id:
            raise FailedPreconditionError("DNS provider token or zone id not configured.")
        return self.api_token, self.zone_id


class HostingConfig(BaseSettings):
    """Hosting registrar (Firebase Hosting) settings.

    Either a service account key file or a pre-issued access token is used
    for authentication. The site id defaults to the project id.
    """

    model_config = SettingsConfigDict(
        env_prefix=f"{ENV_PREFIX}HOSTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(f"{ENV_PREFIX}HOSTING_PROJECT_ID", "GCLOUD_PROJECT"),
        description="Cloud project that owns the hosting site.",
    )
    site_id: str | None = Field(
        default=None,
        description="Hosting site id. Defaults to the project id.",
    )
    api_url: str = Field(
        default="https://firebasehosting.googleapis.com/v1beta1",
        description="Hosting API base URL.",
    )
    credentials_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            f"{ENV_PREFIX}HOSTING_CREDENTIALS_FILE", "GOOGLE_APPLICATION_CREDENTIALS"
        ),
        description="Path to a service account JSON key.",
    )
    access_token: str | None = Field(
        default=None,
        repr=False,
        description="Pre-issued OAuth2 access token. Takes precedence over credentials_file.",
    )
    token_uri: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth2 token endpoint used for the JWT bearer grant.",
    )
    scope: str = Field(
        default="https://www.googleapis.com/auth/cloud-platform",
        description="OAuth2 scope requested for hosting calls.",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for each hosting API request.",
    )

    @property
    def effective_site_id(self) -> str | None:
        return self.site_id or self.project_id


class PlatformConfig(BaseSettings):
    """Platform-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="KynguyenRealAI", description="Default web app name.")
    app_short_name: str = Field(default="KNRealAI - BDS", description="Default short name.")
    app_description: str = Field(
        default="Real-estate management and transaction platform",
        description="Default web app description.",
    )
    theme_color: str = Field(default="#4E342E", description="Default theme color.")
    background_color: str = Field(default="#F8FBFB", description="Default background color.")
    base_domain: str = Field(
        default="kynguyenrealai.com",
        description="Platform base domain. Tenant subdomains live under it.",
    )
    fallback_origin_template: str = Field(
        default="{tenant_id}.{base_domain}",
        description="CNAME target for tenant domains. Placeholders: tenant_id, base_domain.",
    )
    tenant_store_path: str = Field(
        default="tenants.json",
        description="Path to the JSON file holding tenant documents.",
    )
    api_tokens: str = Field(
        default="",
        repr=False,
        description="Comma-separated bearer tokens accepted by the callable API.",
    )
    host: str = Field(default="0.0.0.0", description="API bind host.")
    port: int = Field(default=8080, description="API bind port.")
    log_level: str = Field(default="info", description="Log level.")
    log_json: bool = Field(default=False, description="Render logs as JSON lines.")

    def get_api_tokens(self) -> set[str]:
        """Parse api_tokens string into a set."""
        return {t.strip() for t in self.api_tokens.split(",") if t.strip()}

    def fallback_origin(self, tenant_id: str) -> str:
        return self.fallback_origin_template.format(
            tenant_id=tenant_id,
            base_domain=self.base_domain,
        )


class RealtyHostConfig(BaseSettings):
    """Master configuration combining all settings.

    Use get_config() to get a cached instance.

    Example:
        config = get_config()
        print(config.dns.zone_id)
        print(config.platform.fallback_origin("tenant-42"))
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def dns(self) -> DNSProviderConfig:
        """Get DNS provider configuration."""
        return DNSProviderConfig()

    @property
    def hosting(self) -> HostingConfig:
        """Get hosting registrar configuration."""
        return HostingConfig()

    @property
    def platform(self) -> PlatformConfig:
        """Get platform configuration."""
        return PlatformConfig()

    def to_display_dict(self) -> dict[str, Any]:
        """Export current configuration as a nested dictionary for display.

        Secrets are reported only as set/unset.
        """
        dns = self.dns
        hosting = self.hosting
        platform = self.platform
        return {
            "dns": {
                "api_url": dns.api_url,
                "zone_id": dns.zone_id,
                "api_token": "set" if dns.api_token else "unset",
                "timeout": dns.timeout,
            },
            "hosting": {
                "api_url": hosting.api_url,
                "project_id": hosting.project_id,
                "site_id": hosting.effective_site_id,
                "credentials_file": hosting.credentials_file,
                "access_token": "set" if hosting.access_token else "unset",
                "timeout": hosting.timeout,
            },
            "platform": {
                "base_domain": platform.base_domain,
                "fallback_origin_template": platform.fallback_origin_template,
                "tenant_store_path": platform.tenant_store_path,
                "api_tokens": len(platform.get_api_tokens()),
                "log_level": platform.log_level,
            },
        }


_config: RealtyHostConfig | None = None


def get_config() -> RealtyHostConfig:
    """Get the global configuration instance.

    The instance is created once and cached for the lifetime of the process.
    To reload config (e.g., in tests), call clear_config() first.
    """
    global _config
    if _config is None:
        _config = RealtyHostConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration."""
    global _config
    _config = None
