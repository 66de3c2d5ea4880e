"""
Custom Domain Service: the facade the dashboard and the CLI talk to.

Wires the validator, the registrar client, the verification orchestrator,
the resolution cache and the tenant store together. Every operation that
changes what a hostname resolves to invalidates the cache for it.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .config import PollingConfig, SystemConfig
from .domain_validator import DomainValidationResult, DomainValidator
from .enums import DomainState
from .exceptions import (
    ConfigurationError,
    DomainConflictError,
    NoDomainError,
    RegistrarError,
    TenantNotFoundError,
    ValidationError,
)
from .models import (
    CheckAndInstructions,
    DnsCheckResult,
    DomainStatus,
    DomainVerificationData,
    ProvisionResult,
    TenantDomainRecord,
)
from .registrar_client import RegistrarClient
from .resolution_cache import ResolutionCache
from .tenant_store import TenantStore
from .verification import VerificationOrchestrator


class CustomDomainService:
    """Validation, provisioning, verification and removal of custom domains."""

    COMPONENT = "CustomDomainService"

    def __init__(
        self,
        validator: DomainValidator,
        registrar: RegistrarClient,
        verifier: VerificationOrchestrator,
        cache: ResolutionCache,
        tenant_store: Optional[TenantStore] = None,
        polling: Optional[PollingConfig] = None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._validator = validator
        self._registrar = registrar
        self._verifier = verifier
        self._cache = cache
        self._tenant_store = tenant_store
        self._polling = polling or PollingConfig()
        self._logger = logger
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        registrar: RegistrarClient,
        cache: ResolutionCache,
        tenant_store: Optional[TenantStore] = None,
        logger: Optional[AuditLogger] = None,
    ) -> "CustomDomainService":
        return cls(
            validator=DomainValidator(config.validation.blocked_domains),
            registrar=registrar,
            verifier=VerificationOrchestrator(registrar, config.dns_targets, logger),
            cache=cache,
            tenant_store=tenant_store,
            polling=config.polling,
            logger=logger,
        )

    @property
    def verifier(self) -> VerificationOrchestrator:
        return self._verifier

    # Hostname-level operations

    def validate_domain(self, raw: str) -> DomainValidationResult:
        return self._validator.validate(raw)

    async def provision_domain(self, hostname: str, is_apex: bool) -> ProvisionResult:
        """
        Register hostname at the registrar.

        Raises:
            RegistrarError: If the registrar rejects the primary hostname
        """
        result = await self._registrar.add_domain(hostname, is_apex)
        await self._cache.invalidate(hostname)
        if result.error is not None:
            raise RegistrarError(
                code=result.error.code.value,
                message=f"Failed to add domain: {result.error.message}",
                details={"domain": hostname, "http_status_code": result.error.http_status_code},
            )
        return ProvisionResult(
            verification_data=result.verification_data or DomainVerificationData(is_apex=is_apex),
            warnings=list(result.warnings),
        )

    async def check_and_instructions(
        self,
        hostname: str,
        is_apex: bool,
        verification_data: Optional[DomainVerificationData] = None,
    ) -> CheckAndInstructions:
        """Run a verification pass and build the records the user should create."""
        check = await self._verifier.check_dns(hostname)
        records = self._verifier.build_dns_instructions(hostname, is_apex, verification_data)
        return CheckAndInstructions(check=check, records=records)

    async def remove_domain(self, hostname: str, is_apex: bool) -> None:
        """
        Remove hostname from the registrar.

        Raises:
            RegistrarError: If the registrar refuses the removal
        """
        result = await self._registrar.remove_domain(hostname, is_apex)
        await self._cache.invalidate(hostname)
        if result.error is not None:
            raise RegistrarError(
                code=result.error.code.value,
                message=f"Failed to remove domain: {result.error.message}",
                details={"domain": hostname, "http_status_code": result.error.http_status_code},
            )

    # Tenant workflows

    async def connect_domain(self, tenant_id: str, raw_domain: str) -> DomainStatus:
        """
        Attach a domain to a tenant and return the setup instructions.

        Raises:
            ValidationError: If the domain is malformed or blocked
            DomainConflictError: If another tenant holds the domain
            TenantNotFoundError: If the tenant does not exist
            RegistrarError: If the registrar rejects the domain
        """
        store = self._require_store()
        validation = self.validate_domain(raw_domain)
        if not validation.valid:
            raise ValidationError(
                code=validation.code.value if validation.code else "invalid_domain",
                message=validation.error or "Invalid domain name",
                details={"domain": raw_domain},
            )
        hostname = validation.hostname
        is_apex = bool(validation.is_apex)

        tenant = await self._get_tenant(tenant_id)
        if await store.is_domain_taken(hostname, exclude_tenant_id=tenant_id):
            raise DomainConflictError(
                code="domain_taken",
                message="This domain is already connected to another account",
                details={"domain": hostname},
            )

        if tenant.custom_domain and tenant.custom_domain != hostname:
            await self._detach_previous(tenant)

        provisioned = await self.provision_domain(hostname, is_apex)
        verification_data = provisioned.verification_data
        verification_data.is_apex = is_apex

        await store.update_tenant_domain_state(
            tenant_id,
            DomainState.PENDING,
            custom_domain=hostname,
            verification_data=verification_data,
        )
        await self._cache.invalidate(hostname)

        self._log_info(f"Connected {hostname} to tenant {tenant_id}", {
            "tenant_id": tenant_id,
            "domain": hostname,
            "is_apex": is_apex,
        })
        return DomainStatus(
            tenant_id=tenant_id,
            domain=hostname,
            state=DomainState.PENDING,
            verified=False,
            records=self._verifier.build_dns_instructions(hostname, is_apex, verification_data),
            warnings=provisioned.warnings,
        )

    async def verify_tenant_domain(self, tenant_id: str) -> DnsCheckResult:
        """
        Run one verification pass for the tenant's domain and record the outcome.

        A verified result moves the tenant to VERIFIED, a misconfigured one to
        MISCONFIGURED; any other failure leaves the state unchanged.
        """
        store = self._require_store()
        tenant = await self._get_tenant(tenant_id)
        hostname = self._require_domain(tenant)

        check = await self._verifier.check_dns(hostname)
        new_state = None
        if check.verified:
            new_state = DomainState.VERIFIED
        elif check.misconfigured:
            new_state = DomainState.MISCONFIGURED

        if new_state is not None and new_state != tenant.domain_state:
            await store.update_tenant_domain_state(tenant_id, new_state, custom_domain=hostname)
            self._log_info(f"{hostname} is now {new_state.value}", {
                "tenant_id": tenant_id,
                "domain": hostname,
                "previous_state": tenant.domain_state.value,
            })
        await self._cache.invalidate(hostname)
        return check

    async def wait_for_verification(self, tenant_id: str) -> DnsCheckResult:
        """
        Poll verification with exponential backoff until verified or out of attempts.

        Returns:
            The last DnsCheckResult
        """
        attempts = max(1, self._polling.max_attempts)
        check = await self.verify_tenant_domain(tenant_id)
        for attempt in range(attempts - 1):
            if check.verified:
                break
            await self._sleep(self.backoff_delay(attempt))
            check = await self.verify_tenant_domain(tenant_id)
        return check

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the next poll: base * 2^attempt, capped at max."""
        delay = self._polling.base_delay_seconds * (2 ** attempt)
        return min(delay, self._polling.max_delay_seconds)

    async def disconnect_domain(self, tenant_id: str) -> None:
        """
        Remove the tenant's domain from the registrar and clear it.

        Raises:
            NoDomainError: If the tenant has no domain
            RegistrarError: If the registrar refuses; the record is kept
        """
        store = self._require_store()
        tenant = await self._get_tenant(tenant_id)
        hostname = self._require_domain(tenant)

        await self.remove_domain(hostname, self._is_apex(tenant))
        await store.update_tenant_domain_state(tenant_id, DomainState.UNCONFIGURED)
        await self._cache.invalidate(hostname)
        self._log_info(f"Disconnected {hostname} from tenant {tenant_id}", {
            "tenant_id": tenant_id,
            "domain": hostname,
        })

    async def set_published(self, tenant_id: str, published: bool) -> TenantDomainRecord:
        """
        Publish or unpublish the tenant's site and drop its cached mapping.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        store = self._require_store()
        record = await store.set_published(tenant_id, published)
        if record.custom_domain:
            await self._cache.invalidate(record.custom_domain)
        self._log_info(f"Tenant {tenant_id} {'published' if published else 'unpublished'}", {
            "tenant_id": tenant_id,
            "domain": record.custom_domain,
        })
        return record

    async def get_domain_status(self, tenant_id: str) -> DomainStatus:
        """Current domain state and the DNS records to show; no registrar calls."""
        tenant = await self._get_tenant(tenant_id)
        if not tenant.custom_domain:
            return DomainStatus(
                tenant_id=tenant_id,
                domain=None,
                state=DomainState.UNCONFIGURED,
                verified=False,
            )
        hostname = tenant.custom_domain
        return DomainStatus(
            tenant_id=tenant_id,
            domain=hostname,
            state=tenant.domain_state,
            verified=tenant.domain_state == DomainState.VERIFIED,
            records=self._verifier.build_dns_instructions(
                hostname, self._is_apex(tenant), tenant.verification_data
            ),
        )

    async def _detach_previous(self, tenant: TenantDomainRecord) -> None:
        previous = tenant.custom_domain
        try:
            await self.remove_domain(previous, self._is_apex(tenant))
        except RegistrarError as e:
            self._log_warn(f"Could not remove previous domain {previous}: {e.message}", {
                "tenant_id": tenant.tenant_id,
                "domain": previous,
            })

    def _is_apex(self, tenant: TenantDomainRecord) -> bool:
        if tenant.is_apex is not None:
            return tenant.is_apex
        return self._validator.is_apex_domain(tenant.custom_domain or "")

    def _require_store(self) -> TenantStore:
        if self._tenant_store is None:
            raise ConfigurationError(
                code="no_tenant_store",
                message="No tenant store configured",
            )
        return self._tenant_store

    async def _get_tenant(self, tenant_id: str) -> TenantDomainRecord:
        tenant = await self._require_store().get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(
                code="tenant_not_found",
                message=f"Tenant {tenant_id} not found",
                details={"tenant_id": tenant_id},
            )
        return tenant

    @staticmethod
    def _require_domain(tenant: TenantDomainRecord) -> str:
        if not tenant.custom_domain:
            raise NoDomainError(
                code="no_domain",
                message="No custom domain configured",
                details={"tenant_id": tenant.tenant_id},
            )
        return tenant.custom_domain

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(self.COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(self.COMPONENT, message, data)
