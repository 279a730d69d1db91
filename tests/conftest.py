"""Shared fixtures: in-memory provider APIs served through httpx.MockTransport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from realtyhost.core.auth import AuthContext
from realtyhost.core.config import DNSProviderConfig, HostingConfig, PlatformConfig
from realtyhost.domains.dns_provider import DNSProviderClient
from realtyhost.domains.manager import DomainManager
from realtyhost.domains.registrar import HostingRegistrarClient
from realtyhost.domains.storage import JsonTenantStore

DNS_BASE_URL = "https://dns.test"
HOSTING_BASE_URL = "https://hosting.test"
SYSTEM_ZONE = "system-zone"


def cf_ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "errors": [], "result": result})


def cf_error(status: int, code: int, message: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"success": False, "errors": [{"code": code, "message": message}], "result": None},
    )


class FakeDNSProvider:
    """Minimal DNS provider: zones, DNS records and custom hostnames."""

    def __init__(self) -> None:
        self.zones: dict[str, str] = {}
        self.dns_records: list[dict[str, Any]] = []
        self.hostnames: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.overrides: dict[tuple[str, str], httpx.Response] = {}

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        return [
            (r.method, r.url.path)
            for r in self.requests
            if method is None or r.method == method
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        if (method, path) in self.overrides:
            return self.overrides[(method, path)]

        parts = path.strip("/").split("/")
        if parts == ["zones"] and method == "GET":
            name = request.url.params.get("name")
            zone_id = self.zones.get(name)
            return cf_ok([{"id": zone_id, "name": name}] if zone_id else [])

        if len(parts) >= 3 and parts[0] == "zones":
            zone_id, resource = parts[1], parts[2]
            if resource == "dns_records":
                return self._dns_records(request, zone_id)
            if resource == "custom_hostnames":
                return self._custom_hostnames(request, parts[3] if len(parts) > 3 else None)

        return cf_error(404, 7003, "Could not route to the requested resource")

    def _dns_records(self, request: httpx.Request, zone_id: str) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            for record in self.dns_records:
                if record["zone_id"] == zone_id and record["name"] == body["name"]:
                    return cf_error(
                        400, 81053, "An A, AAAA, or CNAME record with that host already exists."
                    )
            record = {"id": f"rec-{len(self.dns_records) + 1}", "zone_id": zone_id, **body}
            self.dns_records.append(record)
            return cf_ok(record)

        name = request.url.params.get("name")
        return cf_ok(
            [r for r in self.dns_records if r["zone_id"] == zone_id and r["name"] == name]
        )

    def _custom_hostnames(self, request: httpx.Request, hostname_id: str | None) -> httpx.Response:
        if hostname_id is None and request.method == "POST":
            body = json.loads(request.content)
            hostname = body["hostname"]
            if any(h["hostname"] == hostname for h in self.hostnames.values()):
                return cf_error(409, 1406, "Duplicate custom hostname found.")
            hostname_id = f"ch-{len(self.hostnames) + 1}"
            self.hostnames[hostname_id] = {
                "id": hostname_id,
                "hostname": hostname,
                "status": "pending",
                "ssl": {
                    "status": "pending_validation",
                    "method": body["ssl"]["method"],
                    "type": body["ssl"]["type"],
                    "validation_records": [
                        {"txt_name": f"_acme-challenge.{hostname}", "txt_value": "acme-token"}
                    ],
                },
                "ownership_verification": {
                    "type": "txt",
                    "name": f"_cf-custom-hostname.{hostname}",
                    "value": "owner-token",
                },
            }
            return cf_ok(self.hostnames[hostname_id])

        if hostname_id is None:
            name = request.url.params.get("hostname")
            return cf_ok([h for h in self.hostnames.values() if h["hostname"] == name])

        if hostname_id not in self.hostnames:
            return cf_error(404, 1436, "The custom hostname was not found.")
        if request.method == "DELETE":
            del self.hostnames[hostname_id]
            return cf_ok({"id": hostname_id})
        return cf_ok(self.hostnames[hostname_id])


class FakeHostingAPI:
    """Minimal hosting custom domains API for a single site."""

    def __init__(self, site: str = "proj") -> None:
        self.site = site
        self.domains: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.overrides: dict[tuple[str, str], httpx.Response] = {}

    @property
    def prefix(self) -> str:
        return f"/sites/{self.site}/customDomains"

    def resource(self, domain: str) -> dict[str, Any]:
        return {
            "name": f"projects/proj/sites/{self.site}/customDomains/{domain}",
            "hostState": "HOST_UNHOSTED",
            "ownershipState": "OWNERSHIP_MISSING",
            "requiredDnsUpdates": {
                "desired": [
                    {
                        "domainName": domain,
                        "records": [
                            {
                                "domainName": domain,
                                "type": "TXT",
                                "rdata": f"hosting-site={self.site}",
                                "requiredAction": "ADD",
                            }
                        ],
                    }
                ]
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        if (method, path) in self.overrides:
            return self.overrides[(method, path)]

        if method == "POST" and path == self.prefix:
            domain = request.url.params["customDomainId"]
            if domain in self.domains:
                return httpx.Response(
                    409,
                    json={"error": {"code": 409, "message": "Custom domain already exists."}},
                )
            self.domains[domain] = self.resource(domain)
            return httpx.Response(
                200,
                json={"name": "projects/proj/operations/op-1", "metadata": self.domains[domain]},
            )

        if method == "GET" and path.startswith(self.prefix + "/"):
            domain = path[len(self.prefix) + 1:]
            if domain in self.domains:
                return httpx.Response(200, json=self.domains[domain])
            return httpx.Response(404, json={"error": {"code": 404, "message": "Not found."}})

        return httpx.Response(404, json={"error": {"code": 404, "message": "No route."}})


def seed_tenants(path: Path, tenants: dict[str, dict[str, Any]]) -> None:
    path.write_text(json.dumps({"tenants": tenants}))


@pytest.fixture
def dns_api() -> FakeDNSProvider:
    return FakeDNSProvider()


@pytest.fixture
def hosting_api() -> FakeHostingAPI:
    return FakeHostingAPI()


@pytest.fixture
def dns_config() -> DNSProviderConfig:
    return DNSProviderConfig(api_token="cf-token", zone_id=SYSTEM_ZONE, api_url=DNS_BASE_URL)


@pytest.fixture
def hosting_config() -> HostingConfig:
    return HostingConfig(project_id="proj", access_token="gcp-token", api_url=HOSTING_BASE_URL)


@pytest.fixture
def platform(tmp_path) -> PlatformConfig:
    return PlatformConfig(
        base_domain="kynguyenrealai.com",
        api_tokens="secret-token",
        tenant_store_path=str(tmp_path / "tenants.json"),
    )


@pytest.fixture
def store_path(tmp_path) -> Path:
    path = tmp_path / "tenants.json"
    seed_tenants(
        path,
        {
            "tenant-42": {
                "subdomain": "acme",
                "branding": {"companyName": "Acme Realty Group", "primaryColor": "#123456"},
            },
            "tenant-7": {"subdomain": "plain"},
        },
    )
    return path


@pytest.fixture
def store(store_path) -> JsonTenantStore:
    return JsonTenantStore(store_path)


@pytest.fixture
def dns_client(dns_api, dns_config) -> DNSProviderClient:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(dns_api.handler), base_url=DNS_BASE_URL
    )
    return DNSProviderClient(dns_config, http_client=http_client)


@pytest.fixture
def registrar(hosting_api, hosting_config) -> HostingRegistrarClient:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(hosting_api.handler),
        base_url=HOSTING_BASE_URL,
        headers={"Authorization": "Bearer gcp-token"},
    )
    return HostingRegistrarClient(hosting_config, http_client=http_client)


@pytest.fixture
def manager(store, dns_client, registrar, dns_config, platform) -> DomainManager:
    return DomainManager(
        store=store,
        dns=dns_client,
        registrar=registrar,
        dns_config=dns_config,
        platform=platform,
    )


@pytest.fixture
def auth() -> AuthContext:
    return AuthContext(uid="user-1")
