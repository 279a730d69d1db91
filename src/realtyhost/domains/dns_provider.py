"""DNS provider client (Cloudflare for SaaS API).

Covers the three resources custom domain provisioning touches:

    GET    /zones?name=<domain>                         zone lookup
    POST   /zones/{zone}/dns_records                    CNAME creation
    GET    /zones/{zone}/dns_records?type=CNAME&name=   existing CNAME lookup
    POST   /zones/{zone}/custom_hostnames               hostname + DV certificate
    GET    /zones/{zone}/custom_hostnames?hostname=     existing hostname lookup
    GET    /zones/{zone}/custom_hostnames/{id}          status polling
    DELETE /zones/{zone}/custom_hostnames/{id}          teardown

Responses use the envelope ``{"success": bool, "errors": [{"code", "message"}],
"result": ...}``. Conflicts are classified here, once, into ConflictError so
callers never inspect provider messages.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from realtyhost.core.config import DNSProviderConfig
from realtyhost.core.exceptions import AbortedError, ConflictError, DNSProviderError
from realtyhost.domains.models import Ok, Outcome, Skipped
from realtyhost.domains.names import root_domain
from realtyhost.observability.metrics import (
    BEST_EFFORT_SKIPS,
    PROVIDER_REQUEST_DURATION,
    PROVIDER_REQUESTS,
)

logger = structlog.get_logger()

# 81053: host already has an A/AAAA/CNAME, 81057/81058: record already exists,
# 1406: duplicate custom hostname.
CONFLICT_ERROR_CODES = frozenset({81053, 81057, 81058, 1406})

# Only consulted when the provider omits an error code.
_CONFLICT_MARKERS = ("already exists", "duplicate custom hostname")

CUSTOM_HOSTNAME_SSL = {
    "method": "txt",
    "type": "dv",
    "settings": {
        "http2": "on",
        "min_tls_version": "1.2",
        "tls_1_3": "on",
    },
}


def classify_error(status_code: int, body: Any) -> DNSProviderError:
    """Build the exception for a failed provider response."""
    errors = body.get("errors") if isinstance(body, dict) else None
    errors = [e for e in errors or [] if isinstance(e, dict)]
    message = errors[0].get("message") if errors else None
    message = message or f"HTTP {status_code}"

    error = DNSProviderError(message, status_code=status_code, errors=errors)
    codes = error.error_codes
    if status_code == 409 or codes & CONFLICT_ERROR_CODES:
        return ConflictError(message, status_code=status_code, errors=errors)
    if not codes and any(marker in message.lower() for marker in _CONFLICT_MARKERS):
        return ConflictError(message, status_code=status_code, errors=errors)
    return error


class DNSProviderClient:
    """Async client for the DNS provider API.

    The underlying httpx client is created lazily and reused across calls;
    pass ``http_client`` to share a pool or to inject a mock transport.
    """

    def __init__(
        self,
        config: DNSProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=httpx.Timeout(self.config.timeout),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> DNSProviderClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and unwrap the ``result`` member of the envelope.

        Raises:
            ConflictError: If the resource already exists.
            DNSProviderError: For any other failure, including transport errors.
        """
        headers = {}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"

        start = time.monotonic()
        try:
            response = await self._get_client().request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            PROVIDER_REQUESTS.labels(provider="dns", status="timeout").inc()
            raise DNSProviderError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            PROVIDER_REQUESTS.labels(provider="dns", status="error").inc()
            raise DNSProviderError(f"Request failed: {e}") from e
        finally:
            PROVIDER_REQUEST_DURATION.labels(provider="dns").observe(time.monotonic() - start)

        PROVIDER_REQUESTS.labels(provider="dns", status=str(response.status_code)).inc()

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success and (not isinstance(body, dict) or body.get("success", True)):
            return body.get("result") if isinstance(body, dict) else body

        raise classify_error(response.status_code, body)

    async def find_zone_for_domain(self, domain: str) -> str | None:
        """Find the zone owning a domain in this account.

        Tries an exact name match first, then the two-label root for
        subdomains. A miss is normal when the domain lives in another
        account, so lookup failures are logged and reported as None.

        Args:
            domain: Normalized domain, e.g. www.example.com.

        Returns:
            Zone id, or None if no zone matches.
        """
        candidates = [domain]
        root = root_domain(domain)
        if root:
            candidates.append(root)

        for name in candidates:
            try:
                zones = await self._request("GET", "/zones", params={"name": name})
            except DNSProviderError as e:
                logger.warning("Zone lookup failed", domain=domain, name=name, error=e.message)
                return None
            if zones:
                return zones[0]["id"]

        return None

    async def create_cname(self, zone_id: str, name: str, target: str) -> Outcome[dict[str, Any]]:
        """Create a proxied CNAME, or return the one that already exists.

        This step is an enhancement only: any failure is logged and reported
        as Skipped so the rest of provisioning can proceed.
        """
        logger.info("Creating CNAME record", zone_id=zone_id, name=name, target=target)
        try:
            record = await self._request(
                "POST",
                f"/zones/{zone_id}/dns_records",
                json={
                    "type": "CNAME",
                    "name": name,
                    "content": target,
                    "proxied": True,
                    "ttl": 1,
                },
            )
            logger.info("CNAME record created", zone_id=zone_id, record_id=(record or {}).get("id"))
            return Ok(record)
        except ConflictError:
            logger.info("CNAME record already exists, fetching details", name=name)
            try:
                existing = await self._request(
                    "GET",
                    f"/zones/{zone_id}/dns_records",
                    params={"type": "CNAME", "name": name},
                )
            except DNSProviderError as e:
                reason = f"existing CNAME lookup failed: {e.message}"
            else:
                if existing:
                    return Ok(existing[0])
                reason = "CNAME reported as existing but was not found"
        except DNSProviderError as e:
            reason = e.message

        logger.warning("Proceeding without CNAME record", name=name, reason=reason)
        BEST_EFFORT_SKIPS.labels(step="cname").inc()
        return Skipped(reason)

    async def create_custom_hostname(self, zone_id: str, hostname: str) -> dict[str, Any]:
        """Register a hostname for DV certificate issuance via TXT validation.

        A duplicate hostname is recovered by returning the existing object.

        Raises:
            AbortedError: If a duplicate was reported but cannot be fetched.
            DNSProviderError: For any other provider failure.
        """
        logger.info("Adding custom hostname", zone_id=zone_id, hostname=hostname)
        try:
            return await self._request(
                "POST",
                f"/zones/{zone_id}/custom_hostnames",
                json={"hostname": hostname, "ssl": CUSTOM_HOSTNAME_SSL},
            )
        except ConflictError:
            logger.info("Custom hostname exists, fetching details", hostname=hostname)
            existing = await self.find_custom_hostname(zone_id, hostname)
            if existing is None:
                raise AbortedError("Domain exists but could not be retrieved.") from None
            return existing

    async def find_custom_hostname(self, zone_id: str, hostname: str) -> dict[str, Any] | None:
        results = await self._request(
            "GET",
            f"/zones/{zone_id}/custom_hostnames",
            params={"hostname": hostname},
        )
        return results[0] if results else None

    async def get_custom_hostname(self, zone_id: str, hostname_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/zones/{zone_id}/custom_hostnames/{hostname_id}")

    async def delete_custom_hostname(self, zone_id: str, hostname_id: str) -> Outcome[None]:
        """Delete a custom hostname, ignoring every failure.

        A hostname that is already gone is the common case after a partial
        teardown, so nothing here is allowed to raise.
        """
        logger.info("Deleting custom hostname", zone_id=zone_id, hostname_id=hostname_id)
        try:
            await self._request("DELETE", f"/zones/{zone_id}/custom_hostnames/{hostname_id}")
        except DNSProviderError as e:
            logger.warning(
                "Error deleting custom hostname (ignoring)",
                hostname_id=hostname_id,
                status_code=e.status_code,
                error=e.message,
            )
            BEST_EFFORT_SKIPS.labels(step="delete_hostname").inc()
            return Skipped(e.message)
        return Ok(None)
