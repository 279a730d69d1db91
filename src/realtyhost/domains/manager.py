"""Domain manager for the tenant custom domain lifecycle.

This module coordinates the DNS provider, the hosting registrar and the
tenant store:
- provision: zone lookup + CNAME, hosting registration, custom hostname,
  then one overwrite of the tenant's ``customDomain``
- check_status: poll the custom hostname and recompute the overall status
- deprovision: best-effort remote delete, then always clear local state

Only the custom hostname step is required; every other remote step
degrades to a logged skip, because the tenant's DNS zone is often held in
another account and the owner can still publish records by hand.

Usage:
    manager = DomainManager.from_config(get_config())

    record = await manager.provision("tenant-42", "www.example.com", auth)
    report = await manager.check_status("tenant-42", auth)
    await manager.deprovision("tenant-42", auth)
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import Any

import structlog

from realtyhost.core.auth import AuthContext
from realtyhost.core.config import DNSProviderConfig, PlatformConfig, RealtyHostConfig
from realtyhost.core.exceptions import (
    DNSProviderError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    RealtyHostError,
    UnauthenticatedError,
)
from realtyhost.domains.dns_provider import DNSProviderClient
from realtyhost.domains.models import (
    DomainRecord,
    DomainStatus,
    Ok,
    StatusReport,
    ValidationRecord,
    compute_status,
    stored_hostname_id,
)
from realtyhost.domains.names import normalize_domain, validate_domain
from realtyhost.domains.registrar import HostingRegistrarClient, ownership_verification
from realtyhost.domains.storage import CUSTOM_DOMAIN_FIELD, JsonTenantStore, TenantStore
from realtyhost.observability.metrics import DOMAIN_OPERATIONS

logger = structlog.get_logger()


def _require_auth(auth: AuthContext | None) -> None:
    if auth is None:
        raise UnauthenticatedError()


@contextlib.contextmanager
def _track(operation: str) -> Iterator[None]:
    try:
        yield
    except RealtyHostError as e:
        DOMAIN_OPERATIONS.labels(operation=operation, outcome=e.code.lower()).inc()
        raise
    except Exception:
        DOMAIN_OPERATIONS.labels(operation=operation, outcome="internal").inc()
        raise
    else:
        DOMAIN_OPERATIONS.labels(operation=operation, outcome="ok").inc()


def _validation_records(ssl: dict[str, Any]) -> list[ValidationRecord]:
    records = (ValidationRecord.from_dict(r) for r in ssl.get("validation_records") or [])
    return [r for r in records if r is not None]


def merge_domain_record(
    domain: str,
    hostname: dict[str, Any],
    hosting_verification: ValidationRecord | None,
) -> DomainRecord:
    """Build the stored record from the custom hostname and the hosting proof.

    The single most actionable record is the DNS provider's ownership TXT,
    then the hosting registrar's proof, then the first SSL validation record.
    """
    ssl = hostname.get("ssl") or {}
    ssl_records = _validation_records(ssl)
    ownership = ValidationRecord.from_dict(hostname.get("ownership_verification") or {})

    verification = ownership or hosting_verification
    if verification is None and ssl_records:
        verification = ssl_records[0]

    return DomainRecord(
        domain=domain,
        provider_hostname_id=str(hostname["id"]),
        status=DomainStatus.PENDING,
        hostname_status=hostname.get("status") or "pending",
        ssl_status=ssl.get("status") or "pending",
        ssl_validation_records=ssl_records,
        verification_record=verification,
        firebase_verification=hosting_verification,
    )


class DomainManager:
    """Provisions, reconciles and tears down tenant custom domains.

    The clients are constructed once per process and shared by every call;
    the manager itself keeps no per-request state.
    """

    def __init__(
        self,
        store: TenantStore,
        dns: DNSProviderClient,
        registrar: HostingRegistrarClient,
        dns_config: DNSProviderConfig,
        platform: PlatformConfig,
    ) -> None:
        """Initialize domain manager.

        Args:
            store: Tenant document store.
            dns: DNS provider client.
            registrar: Hosting registrar client.
            dns_config: DNS provider settings (credentials and system zone).
            platform: Platform settings (fallback origin for CNAMEs).
        """
        self.store = store
        self.dns = dns
        self.registrar = registrar
        self.dns_config = dns_config
        self.platform = platform

    @classmethod
    def from_config(
        cls,
        config: RealtyHostConfig,
        store: TenantStore | None = None,
    ) -> DomainManager:
        dns_config = config.dns
        platform = config.platform
        return cls(
            store=store or JsonTenantStore(platform.tenant_store_path),
            dns=DNSProviderClient(dns_config),
            registrar=HostingRegistrarClient(config.hosting),
            dns_config=dns_config,
            platform=platform,
        )

    async def aclose(self) -> None:
        await self.dns.aclose()
        await self.registrar.aclose()

    async def provision(
        self,
        tenant_id: str,
        domain: str,
        auth: AuthContext | None,
    ) -> DomainRecord | None:
        """Attach a custom domain to a tenant.

        Safe to call repeatedly for the same (tenant, domain): every remote
        step upserts or recovers an existing resource, and the stored record
        is overwritten rather than appended.

        Args:
            tenant_id: Tenant whose site the domain should serve.
            domain: The custom domain requested by the tenant operator.
            auth: Verified caller identity.

        Returns:
            The persisted DomainRecord, or None if the provider returned no
            hostname or one without an id (nothing is stored in that case).

        Raises:
            UnauthenticatedError: If no caller identity is given.
            InvalidArgumentError: If domain or tenant_id is missing or malformed.
            FailedPreconditionError: If DNS provider credentials are missing.
            AbortedError: If a duplicate hostname could not be retrieved.
            InternalError: If the custom hostname could not be created.
            NotFoundError: If the tenant document does not exist. Checked
                before any remote call.
        """
        with _track("provision"):
            _require_auth(auth)
            tenant_id = (tenant_id or "").strip()
            domain = normalize_domain(domain or "")
            if not domain or not tenant_id:
                raise InvalidArgumentError("Missing domain or tenantId.")

            valid, error = validate_domain(domain)
            if not valid:
                raise InvalidArgumentError(f"Invalid domain {domain}: {error}")

            _, system_zone_id = self.dns_config.require_credentials()
            if not await self.store.exists(tenant_id):
                raise NotFoundError("Tenant not found")

            log = logger.bind(tenant_id=tenant_id, domain=domain)
            log.info("Provisioning custom domain")

            await self._ensure_cname(tenant_id, domain)

            hosting = await self.registrar.add_domain(domain)
            hosting_verification = None
            if isinstance(hosting, Ok):
                hosting_verification = ownership_verification(hosting.value)

            try:
                hostname = await self.dns.create_custom_hostname(system_zone_id, domain)
            except DNSProviderError as e:
                log.error("Custom hostname creation failed", error=e.message)
                raise InternalError(f"DNS provider error: {e.message}") from e

            if not hostname or not hostname.get("id"):
                log.warning("Provider returned no custom hostname id, nothing stored")
                return None

            record = merge_domain_record(domain, hostname, hosting_verification)
            await self.store.set_custom_domain(tenant_id, record)
            log.info(
                "Custom domain stored",
                provider_hostname_id=record.provider_hostname_id,
                ssl_status=record.ssl_status,
            )
            return record

    async def _ensure_cname(self, tenant_id: str, domain: str) -> None:
        zone_id = await self.dns.find_zone_for_domain(domain)
        if zone_id is None:
            logger.info(
                "No zone for domain in this account, skipping CNAME",
                tenant_id=tenant_id,
                domain=domain,
            )
            return

        target = self.platform.fallback_origin(tenant_id)
        await self.dns.create_cname(zone_id, domain, target)

    async def check_status(self, tenant_id: str, auth: AuthContext | None) -> StatusReport:
        """Poll the custom hostname and advance the stored status.

        Raises:
            UnauthenticatedError: If no caller identity is given.
            InvalidArgumentError: If tenant_id is missing.
            NotFoundError: If the tenant has no stored provider hostname id.
            FailedPreconditionError: If DNS provider credentials are missing.
            InternalError: If the provider call fails. The store is untouched.
        """
        with _track("check_status"):
            _require_auth(auth)
            if not tenant_id:
                raise InvalidArgumentError("Missing data: tenantId")

            document = await self.store.get(tenant_id) or {}
            current = document.get(CUSTOM_DOMAIN_FIELD) or {}
            hostname_id = stored_hostname_id(current)
            if not hostname_id:
                raise NotFoundError("Tenant has no custom domain pending.")

            _, zone_id = self.dns_config.require_credentials()

            try:
                result = await self.dns.get_custom_hostname(zone_id, hostname_id)
            except DNSProviderError as e:
                logger.error(
                    "Status check failed",
                    tenant_id=tenant_id,
                    hostname_id=hostname_id,
                    error=e.message,
                )
                raise InternalError("Failed to check status.") from e
            if not isinstance(result, dict):
                raise InternalError("Failed to check status.")

            ssl = result.get("ssl") or {}
            ssl_status = ssl.get("status")
            hostname_status = result.get("status")
            status = compute_status(ssl_status, hostname_status)

            if status.value != current.get("status") or ssl:
                await self.store.update_custom_domain(
                    tenant_id,
                    {
                        "status": status.value,
                        "hostnameStatus": hostname_status,
                        "sslStatus": ssl_status,
                        "sslValidationRecords": [r.to_dict() for r in _validation_records(ssl)],
                    },
                )

            logger.info(
                "Custom domain status checked",
                tenant_id=tenant_id,
                status=status.value,
                ssl_status=ssl_status,
                hostname_status=hostname_status,
            )
            return StatusReport(status=status, details=result)

    async def deprovision(self, tenant_id: str, auth: AuthContext | None) -> None:
        """Remove a tenant's custom domain.

        The remote hostname delete is best-effort; the local record is
        cleared regardless of its outcome so the tenant can always retry.

        Raises:
            UnauthenticatedError: If no caller identity is given.
            InvalidArgumentError: If tenant_id is missing.
            NotFoundError: If the tenant does not exist.
            FailedPreconditionError: If a hostname is stored but DNS provider
                credentials are missing.
        """
        with _track("deprovision"):
            _require_auth(auth)
            if not tenant_id:
                raise InvalidArgumentError("Missing data: tenantId")

            document = await self.store.get(tenant_id)
            if document is None:
                raise NotFoundError("Tenant not found")

            hostname_id = stored_hostname_id(document.get(CUSTOM_DOMAIN_FIELD) or {})
            if hostname_id:
                _, zone_id = self.dns_config.require_credentials()
                await self.dns.delete_custom_hostname(zone_id, hostname_id)
            else:
                logger.info(
                    "No provider hostname id stored, only cleaning up local record",
                    tenant_id=tenant_id,
                )

            await self.store.clear_custom_domain(tenant_id)
            logger.info("Custom domain removed", tenant_id=tenant_id)

    async def get_domain(self, tenant_id: str) -> DomainRecord | None:
        return await self.store.get_custom_domain(tenant_id)
