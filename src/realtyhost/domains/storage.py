"""Tenant document storage.

Domain provisioning only ever reads and writes the ``customDomain`` field of
a tenant document; the rest of the document belongs to other parts of the
platform and is passed through untouched.

Storage file format (tenants.json):
    {
        "tenants": {
            "tenant-42": {
                "subdomain": "acme",
                "branding": {"companyName": "Acme Realty", "primaryColor": "#123456"},
                "customDomain": {
                    "domain": "www.acme.com",
                    "status": "pending",
                    "providerHostnameId": "0b2c...",
                    ...
                }
            }
        }
    }
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import structlog

from realtyhost.core.exceptions import InternalError, NotFoundError
from realtyhost.domains.models import DomainRecord

logger = structlog.get_logger()

CUSTOM_DOMAIN_FIELD = "customDomain"


class TenantStore(ABC):
    """Abstract tenant document store."""

    @abstractmethod
    async def get(self, tenant_id: str) -> dict[str, Any] | None:
        """Get a copy of a tenant document, or None if it does not exist."""

    @abstractmethod
    async def save_tenant(self, tenant_id: str, document: dict[str, Any]) -> None:
        """Create or replace a whole tenant document."""

    @abstractmethod
    async def set_custom_domain(self, tenant_id: str, record: DomainRecord) -> None:
        """Overwrite the tenant's custom domain.

        Raises:
            NotFoundError: If the tenant does not exist.
        """

    @abstractmethod
    async def update_custom_domain(self, tenant_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into the tenant's custom domain, leaving the others intact.

        Raises:
            NotFoundError: If the tenant does not exist.
        """

    @abstractmethod
    async def clear_custom_domain(self, tenant_id: str) -> None:
        """Remove the tenant's custom domain.

        Raises:
            NotFoundError: If the tenant does not exist.
        """

    @abstractmethod
    async def find_by_custom_domain(self, domain: str) -> tuple[str, dict[str, Any]] | None:
        """Find the tenant whose custom domain is ``domain``."""

    @abstractmethod
    async def find_by_subdomain(self, subdomain: str) -> tuple[str, dict[str, Any]] | None:
        """Find the tenant owning a platform subdomain."""

    async def exists(self, tenant_id: str) -> bool:
        return await self.get(tenant_id) is not None

    async def get_custom_domain(self, tenant_id: str) -> DomainRecord | None:
        """Get the tenant's custom domain, or None if unset or the tenant is missing."""
        document = await self.get(tenant_id)
        if not document:
            return None
        data = document.get(CUSTOM_DOMAIN_FIELD)
        if not isinstance(data, dict) or not data.get("domain"):
            return None
        return DomainRecord.from_dict(data)


class JsonTenantStore(TenantStore):
    """JSON file-based tenant store.

    Thread-safe via asyncio locks. The CLI and the server may share one file:
    reads reload it when its mtime or size changes, every write re-reads it
    under the lock, and the file is replaced atomically. Suitable for
    self-hosted deployments and local development; production deployments
    back TenantStore with the platform's document database.
    """

    def __init__(self, storage_path: str | Path = "tenants.json") -> None:
        """Initialize tenant store.

        Args:
            storage_path: Path to the JSON storage file.
        """
        self.storage_path = Path(storage_path)
        self._lock = asyncio.Lock()
        self._cache: dict[str, dict[str, Any]] | None = None
        self._signature: tuple[int, int] | None = None

    def _file_signature(self) -> tuple[int, int] | None:
        try:
            stat = self.storage_path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _unreadable(self, reason: str) -> InternalError:
        logger.error("Tenant store file is unreadable", path=str(self.storage_path), error=reason)
        return InternalError(f"Tenant store {self.storage_path} is unreadable: {reason}")

    async def _load(self, fresh: bool = False) -> dict[str, dict[str, Any]]:
        """Load tenants from storage file.

        Raises:
            InternalError: If the file exists but is not a valid tenants document.
        """
        signature = await asyncio.to_thread(self._file_signature)
        if not fresh and self._cache is not None and signature == self._signature:
            return self._cache

        if signature is None:
            self._cache, self._signature = {}, None
            return self._cache

        content = await asyncio.to_thread(self.storage_path.read_text, encoding="utf-8")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise self._unreadable(str(e)) from e

        tenants = data.get("tenants", {}) if isinstance(data, dict) else None
        if not isinstance(tenants, dict):
            raise self._unreadable("expected an object with a 'tenants' mapping")

        self._cache, self._signature = tenants, signature
        return self._cache

    def _write_file(self, content: str) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=self.storage_path.parent,
            prefix=f".{self.storage_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            f.write(content)
        try:
            os.replace(f.name, self.storage_path)
        except OSError:
            Path(f.name).unlink(missing_ok=True)
            raise

    async def _save(self, tenants: dict[str, dict[str, Any]]) -> None:
        """Save tenants to storage file."""
        # Drop the cache first; a failed write must not leave unsaved edits visible.
        self._cache = None
        content = json.dumps({"tenants": tenants}, indent=2, default=str)
        await asyncio.to_thread(self._write_file, content)
        self._cache = tenants
        self._signature = await asyncio.to_thread(self._file_signature)

    async def _require(self, tenant_id: str) -> tuple[dict[str, dict[str, Any]], dict[str, Any]]:
        tenants = await self._load(fresh=True)
        document = tenants.get(tenant_id)
        if document is None:
            raise NotFoundError("Tenant not found")
        return tenants, document

    async def get(self, tenant_id: str) -> dict[str, Any] | None:
        async with self._lock:
            tenants = await self._load()
            document = tenants.get(tenant_id)
            return copy.deepcopy(document) if document is not None else None

    async def save_tenant(self, tenant_id: str, document: dict[str, Any]) -> None:
        async with self._lock:
            tenants = await self._load(fresh=True)
            tenants[tenant_id] = copy.deepcopy(document)
            await self._save(tenants)

    async def set_custom_domain(self, tenant_id: str, record: DomainRecord) -> None:
        async with self._lock:
            tenants, document = await self._require(tenant_id)
            document[CUSTOM_DOMAIN_FIELD] = record.to_dict()
            await self._save(tenants)

    async def update_custom_domain(self, tenant_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            tenants, document = await self._require(tenant_id)
            current = document.get(CUSTOM_DOMAIN_FIELD)
            if not isinstance(current, dict):
                current = {}
            current.update(copy.deepcopy(fields))
            document[CUSTOM_DOMAIN_FIELD] = current
            await self._save(tenants)

    async def clear_custom_domain(self, tenant_id: str) -> None:
        async with self._lock:
            tenants, document = await self._require(tenant_id)
            document.pop(CUSTOM_DOMAIN_FIELD, None)
            await self._save(tenants)

    async def find_by_custom_domain(self, domain: str) -> tuple[str, dict[str, Any]] | None:
        async with self._lock:
            tenants = await self._load()
            for tenant_id, document in tenants.items():
                custom = document.get(CUSTOM_DOMAIN_FIELD)
                if isinstance(custom, dict) and custom.get("domain") == domain:
                    return tenant_id, copy.deepcopy(document)
            return None

    async def find_by_subdomain(self, subdomain: str) -> tuple[str, dict[str, Any]] | None:
        async with self._lock:
            tenants = await self._load()
            for tenant_id, document in tenants.items():
                if document.get("subdomain") == subdomain:
                    return tenant_id, copy.deepcopy(document)
            return None

    async def list_all(self) -> dict[str, dict[str, Any]]:
        """Get copies of all tenant documents keyed by tenant id."""
        async with self._lock:
            return copy.deepcopy(await self._load())

    def invalidate_cache(self) -> None:
        """Force the next read to reload the storage file."""
        self._cache = None
        self._signature = None
