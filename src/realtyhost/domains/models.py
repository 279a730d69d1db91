"""Data model for tenant custom domains.

A tenant document embeds at most one custom domain under ``customDomain``:

    {
        "customDomain": {
            "domain": "www.example.com",
            "status": "pending",
            "providerHostnameId": "0b2c...",
            "hostnameStatus": "pending",
            "sslStatus": "pending_validation",
            "sslValidationRecords": [{"type": "TXT", "name": "...", "value": "..."}],
            "verificationRecord": {"type": "TXT", "name": "...", "value": "..."},
            "firebaseVerification": {"type": "TXT", "name": "...", "value": "..."},
            "verificationStart": "2024-01-15T10:00:00+00:00"
        }
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class DomainStatus(str, Enum):
    """Overall servability of a custom domain."""

    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"


def compute_status(ssl_status: str | None, hostname_status: str | None) -> DomainStatus:
    """Derive the overall status from the provider's raw SSL and hostname states."""
    if ssl_status == "active" and hostname_status == "active":
        return DomainStatus.ACTIVE
    if ssl_status == "validation_timed_out":
        return DomainStatus.ERROR
    return DomainStatus.PENDING


# Provider spellings of (name, value) pairs, in lookup order.
_RECORD_KEY_PAIRS = (
    ("name", "value", None),
    ("txt_name", "txt_value", "TXT"),
    ("cname", "cname_target", "CNAME"),
    ("http_url", "http_body", "HTTP"),
    ("domainName", "rdata", None),
)


@dataclass
class ValidationRecord:
    """A DNS record the domain owner must publish.

    Consumed by the UI as-is. Keys the provider sent that are not part of
    the normalized ``type/name/value`` triple are kept in ``extra``.
    """

    type: str
    name: str
    value: str
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({"type": self.type, "name": self.name, "value": self.value})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationRecord | None:
        """Normalize a provider or stored payload. Returns None if it carries no record."""
        if not data:
            return None

        for name_key, value_key, implied_type in _RECORD_KEY_PAIRS:
            if data.get(name_key) and data.get(value_key) is not None:
                record_type = str(data.get("type") or implied_type or "TXT").upper()
                extra = {
                    k: v
                    for k, v in data.items()
                    if k not in ("type", "name", "value")
                }
                return cls(
                    type=record_type,
                    name=str(data[name_key]),
                    value=str(data[value_key]),
                    extra=extra,
                )
        return None


def stored_hostname_id(data: dict[str, Any]) -> str | None:
    """Return the provider hostname id of a stored custom domain.

    Records written before the provider-neutral field name used ``cloudflareId``.
    """
    hostname_id = data.get("providerHostnameId") or data.get("cloudflareId")
    return str(hostname_id) if hostname_id else None


def _record_to_dict(record: ValidationRecord | None) -> dict[str, Any] | None:
    return record.to_dict() if record else None


def _record_from_dict(data: dict[str, Any] | None) -> ValidationRecord | None:
    return ValidationRecord.from_dict(data) if data else None


@dataclass
class DomainRecord:
    """The custom domain embedded in a tenant document."""

    domain: str
    provider_hostname_id: str
    status: DomainStatus = DomainStatus.PENDING
    hostname_status: str = "pending"
    ssl_status: str = "pending"
    ssl_validation_records: list[ValidationRecord] = field(default_factory=list)
    verification_record: ValidationRecord | None = None
    firebase_verification: ValidationRecord | None = None
    verification_start: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored document shape."""
        return {
            "domain": self.domain,
            "status": self.status.value,
            "providerHostnameId": self.provider_hostname_id,
            "hostnameStatus": self.hostname_status,
            "sslStatus": self.ssl_status,
            "sslValidationRecords": [r.to_dict() for r in self.ssl_validation_records],
            "verificationRecord": _record_to_dict(self.verification_record),
            "firebaseVerification": _record_to_dict(self.firebase_verification),
            "verificationStart": self.verification_start.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainRecord:
        """Create from the stored document shape."""
        records = [ValidationRecord.from_dict(r) for r in data.get("sslValidationRecords") or []]
        return cls(
            domain=data["domain"],
            provider_hostname_id=stored_hostname_id(data) or "",
            status=DomainStatus(data.get("status") or DomainStatus.PENDING.value),
            hostname_status=data.get("hostnameStatus") or "pending",
            ssl_status=data.get("sslStatus") or "pending",
            ssl_validation_records=[r for r in records if r is not None],
            verification_record=_record_from_dict(data.get("verificationRecord")),
            firebase_verification=_record_from_dict(data.get("firebaseVerification")),
            verification_start=datetime.fromisoformat(data["verificationStart"])
            if data.get("verificationStart")
            else _utc_now(),
        )


@dataclass
class StatusReport:
    """Result of a reconciliation pass."""

    status: DomainStatus
    details: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "details": self.details}


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A best-effort step that produced a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Skipped:
    """A best-effort step that did not run to completion, and why."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


Outcome = Ok[T] | Skipped
