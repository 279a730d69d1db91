"""Hosting registrar client (Firebase Hosting custom domains API).

Attaching the domain to the hosting site lets it serve the tenant's pages
once DNS and TLS are in place. Registration is best-effort: every failure
is reported as Skipped so it never blocks the DNS-side provisioning.

Authentication is an OAuth2 bearer token for the cloud-platform scope,
minted from a service account key with the JWT bearer grant, or a
pre-issued access token.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

import httpx
import structlog
from authlib.common.errors import AuthlibBaseError

from realtyhost.core.config import HostingConfig
from realtyhost.core.exceptions import RegistrarConflictError, RegistrarError
from realtyhost.domains.models import Ok, Outcome, Skipped, ValidationRecord
from realtyhost.observability.metrics import (
    BEST_EFFORT_SKIPS,
    PROVIDER_REQUEST_DURATION,
    PROVIDER_REQUESTS,
)

logger = structlog.get_logger()


def ownership_verification(payload: dict[str, Any] | None) -> ValidationRecord | None:
    """Extract the ownership proof record from a custom domain payload.

    Prefers an explicit ``ownershipVerification`` object, then the first
    TXT record the API asks to be added under ``requiredDnsUpdates.desired``.
    """
    if not payload:
        return None

    record = ValidationRecord.from_dict(payload.get("ownershipVerification") or {})
    if record:
        return record

    updates = payload.get("requiredDnsUpdates") or {}
    for record_set in updates.get("desired") or []:
        for candidate in record_set.get("records") or []:
            if candidate.get("type") != "TXT":
                continue
            if candidate.get("requiredAction", "ADD") != "ADD":
                continue
            record = ValidationRecord.from_dict(candidate)
            if record:
                return record

    # Create calls answer with a long-running operation wrapping the domain.
    for nested in ("response", "metadata"):
        if isinstance(payload.get(nested), dict):
            record = ownership_verification(payload[nested])
            if record:
                return record
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return f"HTTP {response.status_code}"


class HostingRegistrarClient:
    """Async client for the hosting site's custom domains."""

    def __init__(
        self,
        config: HostingConfig,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the registrar client.

        Args:
            config: Hosting settings.
            http_client: Ready-made client to use instead of building one.
            transport: Transport for the client built from ``config``,
                including the service account token exchange.
        """
        self.config = config
        self._http_client = http_client
        self._transport = transport
        self._owns_client = http_client is None

    def _build_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self.config.timeout)

        if self.config.access_token:
            return httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=timeout,
                headers={"Authorization": f"Bearer {self.config.access_token}"},
                transport=self._transport,
            )

        if not self.config.credentials_file:
            raise RegistrarError("No hosting credentials configured")

        try:
            info = json.loads(Path(self.config.credentials_file).read_text(encoding="utf-8"))
            issuer = info["client_email"]
            private_key = info["private_key"]
        except (OSError, ValueError, KeyError) as e:
            raise RegistrarError(f"Invalid service account key: {e}") from e

        from authlib.integrations.httpx_client import AsyncAssertionClient

        token_uri = info.get("token_uri") or self.config.token_uri
        return AsyncAssertionClient(
            token_endpoint=token_uri,
            issuer=issuer,
            subject=None,
            audience=token_uri,
            grant_type=AsyncAssertionClient.JWT_BEARER_GRANT_TYPE,
            claims={"scope": self.config.scope},
            key=private_key,
            header={"alg": "RS256", "kid": info.get("private_key_id")},
            base_url=self.config.api_url,
            timeout=timeout,
            transport=self._transport,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = self._build_client()
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> HostingRegistrarClient:
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
    ) -> dict[str, Any]:
        start = time.monotonic()
        try:
            response = await self._get_client().request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            PROVIDER_REQUESTS.labels(provider="registrar", status="timeout").inc()
            raise RegistrarError(f"Request timed out: {method} {path}") from e
        except (httpx.RequestError, AuthlibBaseError) as e:
            PROVIDER_REQUESTS.labels(provider="registrar", status="error").inc()
            raise RegistrarError(f"Request failed: {e}") from e
        finally:
            PROVIDER_REQUEST_DURATION.labels(provider="registrar").observe(
                time.monotonic() - start
            )

        PROVIDER_REQUESTS.labels(provider="registrar", status=str(response.status_code)).inc()

        if response.status_code == 409:
            raise RegistrarConflictError(_error_message(response), status_code=409)
        if not response.is_success:
            raise RegistrarError(_error_message(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            return {}

    async def get_domain(self, domain: str) -> dict[str, Any]:
        site = self.config.effective_site_id
        return await self._request("GET", f"/sites/{site}/customDomains/{domain}")

    async def add_domain(self, domain: str) -> Outcome[dict[str, Any]]:
        """Attach a domain to the hosting site.

        A 409 means the domain is already attached; the existing resource is
        fetched so its verification payload is not lost.

        Returns:
            Ok with the custom domain (or long-running operation) payload,
            or Skipped with the reason registration did not happen.
        """
        site = self.config.effective_site_id
        if not site:
            return self._skip(domain, "hosting project id not configured")

        logger.info("Adding domain to hosting site", domain=domain, site=site)
        try:
            payload = await self._request(
                "POST",
                f"/sites/{site}/customDomains",
                params={"customDomainId": domain},
                json={"certPreference": "GROUPED"},
            )
        except RegistrarConflictError:
            logger.info("Domain already exists on hosting site", domain=domain)
            try:
                payload = await self.get_domain(domain)
            except RegistrarError as e:
                return self._skip(domain, f"existing domain lookup failed: {e.message}")
            return Ok(payload)
        except RegistrarError as e:
            return self._skip(domain, e.message)

        logger.info("Domain added to hosting site", domain=domain)
        return Ok(payload)

    def _skip(self, domain: str, reason: str) -> Skipped:
        logger.warning("Hosting registration skipped", domain=domain, reason=reason)
        BEST_EFFORT_SKIPS.labels(step="hosting_registration").inc()
        return Skipped(reason)
