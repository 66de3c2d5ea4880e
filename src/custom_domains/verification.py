"""
Verification Orchestrator for custom domains.

Combines the registrar's config probe and verify call into one DnsCheckResult
and produces the DNS records a user has to create.

The check is a two-stage pipeline: each registrar call returns a result
object, and every stage either short-circuits with a finished
DnsCheckResult or hands over to the next one. Anything a call raises
becomes a failed result as well.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .config import DnsTargetConfig
from .enums import DnsRecordType
from .models import DnsCheckResult, DnsRecord, DomainVerificationData
from .registrar_client import (
    DomainConfigResult,
    RegistrarClient,
    VerifyDomainResult,
)


MISCONFIGURED_MESSAGE = "DNS records are misconfigured"
VERIFICATION_FAILED_MESSAGE = "Verification failed"
DNS_CHECK_FAILED_MESSAGE = "DNS check failed"


def build_dns_instructions(
    hostname: str,
    is_apex: bool,
    verification_data: Optional[DomainVerificationData] = None,
    dns_targets: Optional[DnsTargetConfig] = None,
) -> list[DnsRecord]:
    """
    Build the DNS records the user needs to configure.

    TXT verification records come first, in the order the registrar sent
    them, followed by the routing records: an A record on ``@`` plus a
    ``www`` CNAME for apex domains, or a single CNAME on the first label for
    subdomains.
    """
    targets = dns_targets or DnsTargetConfig()
    records: list[DnsRecord] = []

    if verification_data is not None:
        for challenge in verification_data.verification:
            if challenge.type.upper() == DnsRecordType.TXT.value:
                records.append(DnsRecord(
                    type=DnsRecordType.TXT,
                    name=challenge.domain,
                    value=challenge.value,
                ))

    if is_apex:
        records.append(DnsRecord(type=DnsRecordType.A, name="@", value=targets.apex_ip))
        records.append(DnsRecord(type=DnsRecordType.CNAME, name="www", value=targets.cname_target))
    else:
        records.append(DnsRecord(
            type=DnsRecordType.CNAME,
            name=hostname.split(".")[0],
            value=targets.cname_target,
        ))

    return records


def _failed(message: str, misconfigured: bool = False) -> DnsCheckResult:
    return DnsCheckResult(
        configured=False,
        verified=False,
        errors=[message],
        misconfigured=misconfigured,
    )


def evaluate_config(config: DomainConfigResult) -> Optional[DnsCheckResult]:
    """Stage 1: a finished result if the config probe rules out verification."""
    if config.error is not None:
        return _failed(config.error.message or DNS_CHECK_FAILED_MESSAGE)
    if config.misconfigured:
        return _failed(MISCONFIGURED_MESSAGE, misconfigured=True)
    return None


def evaluate_verification(verify: VerifyDomainResult) -> DnsCheckResult:
    """Stage 2: turn the verify call into the final result."""
    if verify.verified:
        return DnsCheckResult(configured=True, verified=True, errors=[])
    message = verify.error.message if verify.error is not None else None
    return _failed(message or VERIFICATION_FAILED_MESSAGE)


class VerificationOrchestrator:
    """
    Runs verification passes against the registrar.

    ``check_dns`` calls the registrar sequentially (verify only after a clean
    config probe) and always returns a DnsCheckResult.
    """

    COMPONENT = "VerificationOrchestrator"

    def __init__(
        self,
        registrar: RegistrarClient,
        dns_targets: Optional[DnsTargetConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._registrar = registrar
        self._dns_targets = dns_targets or DnsTargetConfig()
        self._logger = logger

    async def check_dns(self, hostname: str) -> DnsCheckResult:
        """
        Check DNS configuration and verification state of hostname.

        Never raises: registrar errors, timeouts and unexpected failures of
        either call end up as the single entry of ``errors``.
        """
        try:
            stage: Optional[DnsCheckResult] = evaluate_config(
                await self._registrar.get_domain_config(hostname)
            )
            if stage is None:
                stage = evaluate_verification(await self._registrar.verify_domain(hostname))
        except Exception as e:
            stage = _failed(str(e) or DNS_CHECK_FAILED_MESSAGE)
            if self._logger:
                self._logger.error(self.COMPONENT, f"DNS check for {hostname} failed", {
                    "domain": hostname,
                    "error_type": type(e).__name__,
                    "error": str(e),
                })
            return stage

        if self._logger:
            self._logger.info(self.COMPONENT, f"DNS check for {hostname}", {
                "domain": hostname,
                "verified": stage.verified,
                "misconfigured": stage.misconfigured,
                "errors": stage.errors,
            })
        return stage

    def build_dns_instructions(
        self,
        hostname: str,
        is_apex: bool,
        verification_data: Optional[DomainVerificationData] = None,
    ) -> list[DnsRecord]:
        return build_dns_instructions(hostname, is_apex, verification_data, self._dns_targets)
