"""
Tenant Store: the source of truth for tenant domain fields.

Defines the narrow async capability the domain workflows and the resolver
need, plus two implementations: an in-memory store for tests and embedding,
and an HMAC-protected JSON file store for the command line tool.
"""

import asyncio
import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .enums import DomainState
from .exceptions import (
    DomainConflictError,
    PersistenceError,
    TamperingError,
    TenantNotFoundError,
)
from .models import DomainVerificationData, TenantDomainRecord


class TenantStore(ABC):
    """Read and update the domain fields of tenant records."""

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[TenantDomainRecord]:
        ...

    @abstractmethod
    async def get_tenant_by_hostname(self, hostname: str) -> Optional[TenantDomainRecord]:
        ...

    @abstractmethod
    async def update_tenant_domain_state(
        self,
        tenant_id: str,
        new_state: DomainState,
        custom_domain: Optional[str] = None,
        verification_data: Optional[DomainVerificationData] = None,
    ) -> TenantDomainRecord:
        """
        Persist a lifecycle transition.

        Moving to UNCONFIGURED clears the domain and its verification data.

        Raises:
            TenantNotFoundError: If tenant_id is unknown
        """

    @abstractmethod
    async def create_tenant(
        self,
        tenant_id: str,
        slug: str,
        published: bool = True,
    ) -> TenantDomainRecord:
        """
        Add a tenant without a custom domain.

        Raises:
            DomainConflictError: If tenant_id already exists
        """

    @abstractmethod
    async def set_published(self, tenant_id: str, published: bool) -> TenantDomainRecord:
        """
        Publish or unpublish a tenant's site.

        Raises:
            TenantNotFoundError: If tenant_id is unknown
        """

    async def is_domain_taken(self, hostname: str, exclude_tenant_id: Optional[str] = None) -> bool:
        """True if another tenant already holds hostname."""
        holder = await self.get_tenant_by_hostname(hostname)
        return holder is not None and holder.tenant_id != exclude_tenant_id


def apply_transition(
    record: TenantDomainRecord,
    new_state: DomainState,
    custom_domain: Optional[str],
    verification_data: Optional[DomainVerificationData],
) -> TenantDomainRecord:
    """Return record with the new lifecycle state applied."""
    if new_state == DomainState.UNCONFIGURED:
        return replace(
            record,
            domain_state=new_state,
            custom_domain=None,
            verification_data=None,
        )
    return replace(
        record,
        domain_state=new_state,
        custom_domain=(custom_domain or record.custom_domain),
        verification_data=(verification_data or record.verification_data),
    )


def _not_found(tenant_id: str) -> TenantNotFoundError:
    return TenantNotFoundError(
        code="tenant_not_found",
        message=f"Tenant {tenant_id} not found",
        details={"tenant_id": tenant_id},
    )


def _already_exists(tenant_id: str) -> DomainConflictError:
    return DomainConflictError(
        code="tenant_exists",
        message=f"Tenant {tenant_id} already exists",
        details={"tenant_id": tenant_id},
    )


class InMemoryTenantStore(TenantStore):
    """Dictionary-backed store."""

    def __init__(self, records: Optional[list[TenantDomainRecord]] = None) -> None:
        self._records: dict[str, TenantDomainRecord] = {}
        self.lookups = 0
        for record in records or []:
            self._records[record.tenant_id] = record

    async def get_tenant(self, tenant_id: str) -> Optional[TenantDomainRecord]:
        return self._records.get(tenant_id)

    async def get_tenant_by_hostname(self, hostname: str) -> Optional[TenantDomainRecord]:
        self.lookups += 1
        hostname = hostname.lower()
        for record in self._records.values():
            if record.custom_domain == hostname:
                return record
        return None

    async def update_tenant_domain_state(
        self,
        tenant_id: str,
        new_state: DomainState,
        custom_domain: Optional[str] = None,
        verification_data: Optional[DomainVerificationData] = None,
    ) -> TenantDomainRecord:
        record = self._records.get(tenant_id)
        if record is None:
            raise _not_found(tenant_id)
        updated = apply_transition(record, new_state, custom_domain, verification_data)
        self._records[tenant_id] = updated
        return updated

    async def create_tenant(
        self,
        tenant_id: str,
        slug: str,
        published: bool = True,
    ) -> TenantDomainRecord:
        if tenant_id in self._records:
            raise _already_exists(tenant_id)
        record = TenantDomainRecord(tenant_id=tenant_id, slug=slug, published=published)
        self._records[tenant_id] = record
        return record

    async def set_published(self, tenant_id: str, published: bool) -> TenantDomainRecord:
        record = self._records.get(tenant_id)
        if record is None:
            raise _not_found(tenant_id)
        updated = replace(record, published=published)
        self._records[tenant_id] = updated
        return updated


class JsonFileTenantStore(TenantStore):
    """
    Tenant records in a JSON file with HMAC protection.

    The file is read lazily on first access and rewritten after every
    update. A file whose HMAC does not match raises TamperingError.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Args:
            file_path: Path to the tenant file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._records: Optional[dict[str, TenantDomainRecord]] = None
        self._lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> dict[str, TenantDomainRecord]:
        """
        Load tenant records from file and validate the HMAC.

        Returns:
            Records keyed by tenant id (empty if the file does not exist)

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            self._records = {}
            return self._records

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse tenant file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read tenant file: {e}",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        computed_hmac = self.compute_hmac({
            "version": raw_data.get("version"),
            "tenants": raw_data.get("tenants", {}),
            "last_updated": raw_data.get("last_updated"),
        })
        if not hmac.compare_digest(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - tenant file may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        records = {}
        try:
            for tenant_id, data in raw_data.get("tenants", {}).items():
                records[tenant_id] = TenantDomainRecord(
                    tenant_id=tenant_id,
                    slug=data["slug"],
                    custom_domain=data.get("custom_domain"),
                    domain_state=DomainState(data.get("domain_state", DomainState.UNCONFIGURED.value)),
                    verification_data=DomainVerificationData.from_dict(data.get("verification_data")),
                    published=data.get("published", True),
                )
        except (KeyError, ValueError) as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Invalid tenant record: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._records = records
        return records

    def save(self) -> None:
        """
        Write all records to file with a fresh HMAC.

        Raises:
            PersistenceError: If the file cannot be written
        """
        records = self._records or {}
        now = datetime.now(timezone.utc).isoformat()
        tenants = {
            tenant_id: {
                "slug": record.slug,
                "custom_domain": record.custom_domain,
                "domain_state": record.domain_state.value,
                "verification_data": (
                    record.verification_data.to_dict() if record.verification_data else None
                ),
                "published": record.published,
            }
            for tenant_id, record in records.items()
        }
        output_data = {
            "version": self.VERSION,
            "tenants": tenants,
            "last_updated": now,
        }
        output_data["hmac"] = self.compute_hmac(dict(output_data))

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write tenant file: {e}",
                details={"file_path": str(self._file_path)},
            )

    def compute_hmac(self, data: dict) -> str:
        """HMAC-SHA256 over the canonical JSON serialization of data."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _loaded(self) -> dict[str, TenantDomainRecord]:
        if self._records is None:
            return self.load()
        return self._records

    async def get_tenant(self, tenant_id: str) -> Optional[TenantDomainRecord]:
        return self._loaded().get(tenant_id)

    async def get_tenant_by_hostname(self, hostname: str) -> Optional[TenantDomainRecord]:
        hostname = hostname.lower()
        for record in self._loaded().values():
            if record.custom_domain == hostname:
                return record
        return None

    async def list_tenants(self) -> list[TenantDomainRecord]:
        return sorted(self._loaded().values(), key=lambda r: r.tenant_id)

    async def update_tenant_domain_state(
        self,
        tenant_id: str,
        new_state: DomainState,
        custom_domain: Optional[str] = None,
        verification_data: Optional[DomainVerificationData] = None,
    ) -> TenantDomainRecord:
        async with self._lock:
            record = self._loaded().get(tenant_id)
            if record is None:
                raise _not_found(tenant_id)
            return self._commit(apply_transition(record, new_state, custom_domain, verification_data))

    async def create_tenant(
        self,
        tenant_id: str,
        slug: str,
        published: bool = True,
    ) -> TenantDomainRecord:
        async with self._lock:
            if tenant_id in self._loaded():
                raise _already_exists(tenant_id)
            return self._commit(TenantDomainRecord(tenant_id=tenant_id, slug=slug, published=published))

    async def set_published(self, tenant_id: str, published: bool) -> TenantDomainRecord:
        async with self._lock:
            record = self._loaded().get(tenant_id)
            if record is None:
                raise _not_found(tenant_id)
            return self._commit(replace(record, published=published))

    def _commit(self, record: TenantDomainRecord) -> TenantDomainRecord:
        # A failed write leaves memory as it was before the call.
        records = self._loaded()
        previous = records.get(record.tenant_id)
        records[record.tenant_id] = record
        try:
            self.save()
        except PersistenceError:
            if previous is None:
                del records[record.tenant_id]
            else:
                records[record.tenant_id] = previous
            raise
        return record
