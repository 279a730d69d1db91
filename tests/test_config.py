"""Tests for configuration loading from environment variables and files."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from realtyhost.core.config import (
    DNSProviderConfig,
    HostingConfig,
    PlatformConfig,
    RealtyHostConfig,
    clear_config,
    export_file_config,
    flatten_config,
    get_config,
    load_config_from_file,
)
from realtyhost.core.exceptions import FailedPreconditionError

LEGACY_VARS = (
    "CLOUDFLARE_API_TOKEN",
    "CLOUDFLARE_ZONE_ID",
    "GCLOUD_PROJECT",
    "GOOGLE_APPLICATION_CREDENTIALS",
)


@pytest.fixture
def clean_env():
    """Run with no REALTYHOST_* or legacy provider variables set."""
    env = {
        k: v
        for k, v in os.environ.items()
        if not k.startswith("REALTYHOST_") and k not in LEGACY_VARS
    }
    with patch.dict(os.environ, env, clear=True):
        clear_config()
        yield
    clear_config()


class TestDNSProviderConfig:
    """Test DNSProviderConfig settings."""

    def test_default_values(self, clean_env) -> None:
        """Test default values."""
        config = DNSProviderConfig()
        assert config.api_token is None
        assert config.zone_id is None
        assert config.api_url == "https://api.cloudflare.com/client/v4"
        assert config.timeout == 30.0
        assert config.configured is False

    def test_env_override(self, clean_env) -> None:
        """Test REALTYHOST_DNS_* env vars."""
        with patch.dict(
            os.environ,
            {
                "REALTYHOST_DNS_API_TOKEN": "tok",
                "REALTYHOST_DNS_ZONE_ID": "zone",
                "REALTYHOST_DNS_TIMEOUT": "5",
            },
        ):
            config = DNSProviderConfig()
            assert config.api_token == "tok"
            assert config.zone_id == "zone"
            assert config.timeout == 5.0
            assert config.configured is True

    def test_legacy_env_names(self, clean_env) -> None:
        """Test the serverless deployment's variable names are honoured."""
        with patch.dict(os.environ, {"CLOUDFLARE_API_TOKEN": "tok", "CLOUDFLARE_ZONE_ID": "zone"}):
            config = DNSProviderConfig()
            assert config.require_credentials() == ("tok", "zone")

    def test_require_credentials_missing(self, clean_env) -> None:
        """Test missing credentials fail the precondition."""
        with patch.dict(os.environ, {"REALTYHOST_DNS_API_TOKEN": "tok"}):
            with pytest.raises(FailedPreconditionError):
                DNSProviderConfig().require_credentials()

    def test_token_not_in_repr(self, clean_env) -> None:
        """Test the API token is kept out of repr."""
        config = DNSProviderConfig(api_token="super-secret", zone_id="zone")
        assert "super-secret" not in repr(config)

    def test_invalid_timeout(self, clean_env) -> None:
        """Test the timeout must be positive."""
        with patch.dict(os.environ, {"REALTYHOST_DNS_TIMEOUT": "0"}):
            with pytest.raises(ValueError):
                DNSProviderConfig()


class TestHostingConfig:
    """Test HostingConfig settings."""

    def test_default_values(self, clean_env) -> None:
        config = HostingConfig()
        assert config.api_url == "https://firebasehosting.googleapis.com/v1beta1"
        assert config.timeout == 60.0
        assert config.scope == "https://www.googleapis.com/auth/cloud-platform"
        assert config.effective_site_id is None

    def test_site_defaults_to_project(self, clean_env) -> None:
        """Test GCLOUD_PROJECT provides the site id."""
        with patch.dict(os.environ, {"GCLOUD_PROJECT": "proj"}):
            config = HostingConfig()
            assert config.project_id == "proj"
            assert config.effective_site_id == "proj"

    def test_explicit_site(self, clean_env) -> None:
        with patch.dict(
            os.environ,
            {"REALTYHOST_HOSTING_PROJECT_ID": "proj", "REALTYHOST_HOSTING_SITE_ID": "proj-web"},
        ):
            assert HostingConfig().effective_site_id == "proj-web"

    def test_credentials_file_env(self, clean_env) -> None:
        with patch.dict(os.environ, {"GOOGLE_APPLICATION_CREDENTIALS": "/keys/sa.json"}):
            assert HostingConfig().credentials_file == "/keys/sa.json"


class TestPlatformConfig:
    """Test PlatformConfig settings."""

    def test_default_values(self, clean_env) -> None:
        config = PlatformConfig()
        assert config.base_domain == "kynguyenrealai.com"
        assert config.app_name == "KynguyenRealAI"
        assert config.theme_color == "#4E342E"
        assert config.port == 8080
        assert config.get_api_tokens() == set()

    def test_fallback_origin(self, clean_env) -> None:
        """Test the CNAME target template."""
        config = PlatformConfig()
        assert config.fallback_origin("tenant-42") == "tenant-42.kynguyenrealai.com"

        with patch.dict(os.environ, {"REALTYHOST_FALLBACK_ORIGIN_TEMPLATE": "origin.{base_domain}"}):
            assert PlatformConfig().fallback_origin("tenant-42") == "origin.kynguyenrealai.com"

    def test_api_tokens(self, clean_env) -> None:
        with patch.dict(os.environ, {"REALTYHOST_API_TOKENS": "a, b,,c "}):
            assert PlatformConfig().get_api_tokens() == {"a", "b", "c"}


class TestGetConfig:
    """Test the cached aggregate configuration."""

    def test_cached(self, clean_env) -> None:
        assert get_config() is get_config()

    def test_clear_config(self, clean_env) -> None:
        first = get_config()
        clear_config()
        assert get_config() is not first

    def test_sections(self, clean_env) -> None:
        with patch.dict(os.environ, {"REALTYHOST_DNS_ZONE_ID": "zone"}):
            config = RealtyHostConfig()
            assert config.dns.zone_id == "zone"
            assert isinstance(config.hosting, HostingConfig)
            assert config.platform.base_domain == "kynguyenrealai.com"

    def test_display_dict_hides_secrets(self, clean_env) -> None:
        with patch.dict(
            os.environ,
            {"REALTYHOST_DNS_API_TOKEN": "secret", "REALTYHOST_API_TOKENS": "t1,t2"},
        ):
            display = RealtyHostConfig().to_display_dict()

        assert display["dns"]["api_token"] == "set"
        assert display["hosting"]["access_token"] == "unset"
        assert display["platform"]["api_tokens"] == 2
        assert "secret" not in str(display)


class TestConfigFiles:
    """Test YAML/TOML config file loading."""

    def test_load_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("dns:\n  zone_id: zone\nbase_domain: example.net\n")

        assert load_config_from_file(path) == {
            "dns": {"zone_id": "zone"},
            "base_domain": "example.net",
        }

    def test_load_toml(self, tmp_path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[hosting]\nproject_id = "proj"\n')

        assert load_config_from_file(path) == {"hosting": {"project_id": "proj"}}

    def test_empty_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("")

        assert load_config_from_file(path) == {}

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_from_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("dns: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_from_file(path)

    def test_unsupported_format(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{}")

        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config_from_file(path)

    def test_flatten(self) -> None:
        assert flatten_config({"dns": {"zone_id": "z", "timeout": 5}, "port": 1}) == {
            "dns_zone_id": "z",
            "dns_timeout": 5,
            "port": 1,
        }

    def test_export_does_not_override_env(self, clean_env) -> None:
        """Test file values never replace variables already in the environment."""
        with patch.dict(os.environ, {"REALTYHOST_DNS_ZONE_ID": "from-env"}):
            exported = export_file_config(
                {"dns_zone_id": "from-file", "base_domain": "example.net", "log_json": True}
            )

            assert os.environ["REALTYHOST_DNS_ZONE_ID"] == "from-env"
            assert os.environ["REALTYHOST_BASE_DOMAIN"] == "example.net"
            assert os.environ["REALTYHOST_LOG_JSON"] == "true"
            assert "REALTYHOST_DNS_ZONE_ID" not in exported
            assert get_config().platform.base_domain == "example.net"
