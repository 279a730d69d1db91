"""Tenant custom domain management.

Lets a tenant serve their real-estate site from their own domain
(e.g., www.acme-realty.com) instead of a platform subdomain.

Features:
- Custom hostname registration with the DNS provider (DV certificate, TXT validation)
- Best-effort proxied CNAME when the domain's zone lives in the platform account
- Best-effort registration with the hosting site
- Status reconciliation from the provider's SSL and hostname states
- JSON file storage of tenant documents

Usage:
    from realtyhost.domains import DomainManager

    manager = DomainManager.from_config(get_config())
    record = await manager.provision("tenant-42", "www.acme-realty.com", auth)
    report = await manager.check_status("tenant-42", auth)
"""

from realtyhost.domains.dns_provider import DNSProviderClient
from realtyhost.domains.manager import DomainManager, merge_domain_record
from realtyhost.domains.models import (
    DomainRecord,
    DomainStatus,
    Ok,
    Outcome,
    Skipped,
    StatusReport,
    ValidationRecord,
    compute_status,
)
from realtyhost.domains.names import normalize_domain, validate_domain
from realtyhost.domains.registrar import HostingRegistrarClient
from realtyhost.domains.storage import JsonTenantStore, TenantStore

__all__ = [
    "DomainManager",
    "merge_domain_record",
    "DNSProviderClient",
    "HostingRegistrarClient",
    "TenantStore",
    "JsonTenantStore",
    "DomainRecord",
    "DomainStatus",
    "StatusReport",
    "ValidationRecord",
    "compute_status",
    "Ok",
    "Skipped",
    "Outcome",
    "normalize_domain",
    "validate_domain",
]
