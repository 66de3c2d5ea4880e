"""
Data models for the custom domain system.

This module defines the DNS instruction records, the registrar's verification
payload, check results, cache values and the tenant record shape consumed
from the tenant store.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .enums import DnsRecordType, DomainState


@dataclass(frozen=True)
class DnsRecord:
    """A DNS record the user must create at their DNS provider."""

    type: DnsRecordType
    name: str
    value: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "name": self.name, "value": self.value}


@dataclass(frozen=True)
class VerificationChallenge:
    """A single ownership challenge returned by the registrar."""

    type: str
    domain: str
    value: str
    reason: Optional[str] = None


@dataclass
class DomainVerificationData:
    """
    Verification payload returned by the registrar when a domain is added.

    Owned by the tenant record and passed through unmodified. ``is_apex`` is
    stored alongside so removal can reproduce the www handling.
    """

    verification: list[VerificationChallenge] = field(default_factory=list)
    is_apex: Optional[bool] = None

    @classmethod
    def from_registrar(cls, payload: Any, is_apex: Optional[bool] = None) -> "DomainVerificationData":
        """Build from a raw registrar response body, ignoring unknown fields."""
        challenges = []
        raw = payload.get("verification") if isinstance(payload, dict) else None
        if isinstance(raw, list):
            for item in raw:
                if not isinstance(item, dict):
                    continue
                challenges.append(VerificationChallenge(
                    type=str(item.get("type", "")),
                    domain=str(item.get("domain", "")),
                    value=str(item.get("value", "")),
                    reason=item.get("reason"),
                ))
        return cls(verification=challenges, is_apex=is_apex)

    def to_dict(self) -> dict:
        return {
            "verification": [
                {
                    "type": c.type,
                    "domain": c.domain,
                    "value": c.value,
                    "reason": c.reason,
                }
                for c in self.verification
            ],
            "is_apex": self.is_apex,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["DomainVerificationData"]:
        if data is None:
            return None
        return cls.from_registrar(data, is_apex=data.get("is_apex"))


@dataclass
class DnsCheckResult:
    """Outcome of one verification pass."""

    configured: bool
    verified: bool
    errors: list[str] = field(default_factory=list)
    misconfigured: bool = False


@dataclass(frozen=True)
class CachedDomainMapping:
    """What the public router needs to serve a custom domain."""

    slug: str
    tenant_id: str


@dataclass(frozen=True)
class CacheHit:
    """A positive cache entry."""

    mapping: CachedDomainMapping


@dataclass(frozen=True)
class CacheNegative:
    """Looked up recently and resolved to nothing."""


@dataclass(frozen=True)
class CacheMiss:
    """No recent lookup; consult the tenant store."""


CacheLookup = Union[CacheHit, CacheNegative, CacheMiss]


@dataclass
class TenantDomainRecord:
    """Domain fields of a tenant record, as returned by the tenant store."""

    tenant_id: str
    slug: str
    custom_domain: Optional[str] = None
    domain_state: DomainState = DomainState.UNCONFIGURED
    verification_data: Optional[DomainVerificationData] = None
    published: bool = True

    @property
    def is_apex(self) -> Optional[bool]:
        if self.verification_data is None:
            return None
        return self.verification_data.is_apex


@dataclass
class ProvisionResult:
    """Result of registering a hostname at the registrar."""

    verification_data: DomainVerificationData
    warnings: list[str] = field(default_factory=list)


@dataclass
class CheckAndInstructions:
    """A verification pass together with the records the user should configure."""

    check: DnsCheckResult
    records: list[DnsRecord]


@dataclass
class DomainStatus:
    """Current domain state of a tenant, for display."""

    tenant_id: str
    domain: Optional[str]
    state: DomainState
    verified: bool
    records: list[DnsRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
