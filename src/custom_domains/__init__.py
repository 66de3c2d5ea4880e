"""
Custom Domains - bring-your-own-domain support for hosted tenant sites.

This package validates user-supplied domains, provisions them at the hosting
platform's registrar API, derives the DNS records users must create, tracks
verification and resolves incoming hostnames to tenants through a
positive/negative cache.
"""

__version__ = "0.1.0"
__author__ = "Custom Domains Team"

from custom_domains.exceptions import (
    CustomDomainError,
    ValidationError,
    RegistrarError,
    DomainConflictError,
    TenantNotFoundError,
    NoDomainError,
    ConfigurationError,
    PersistenceError,
    TamperingError,
)
from custom_domains.enums import (
    DnsRecordType,
    DomainState,
    LogLevel,
    RegistrarErrorCode,
    ValidationErrorCode,
)
from custom_domains.config import (
    CacheConfig,
    DnsTargetConfig,
    LoggingConfig,
    PersistenceConfig,
    PollingConfig,
    RegistrarConfig,
    SystemConfig,
    ValidationConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from custom_domains.models import (
    CachedDomainMapping,
    CacheHit,
    CacheLookup,
    CacheMiss,
    CacheNegative,
    CheckAndInstructions,
    DnsCheckResult,
    DnsRecord,
    DomainStatus,
    DomainVerificationData,
    ProvisionResult,
    TenantDomainRecord,
    VerificationChallenge,
)
from custom_domains.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    normalize_hostname,
)
from custom_domains.registrar_client import (
    RegistrarClient,
    RegistrarFailure,
    AddDomainResult,
    RemoveDomainResult,
    DomainConfigResult,
    VerifyDomainResult,
)
from custom_domains.verification import (
    VerificationOrchestrator,
    build_dns_instructions,
)
from custom_domains.cache_backend import (
    CacheBackend,
    MemoryCacheBackend,
    NullCacheBackend,
    RedisCacheBackend,
    create_cache_backend,
)
from custom_domains.resolution_cache import ResolutionCache
from custom_domains.tenant_store import (
    TenantStore,
    InMemoryTenantStore,
    JsonFileTenantStore,
)
from custom_domains.resolver import DomainResolver
from custom_domains.service import CustomDomainService
from custom_domains.audit_logger import (
    AuditLogger,
    LogEntry,
)
from custom_domains.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "CustomDomainError",
    "ValidationError",
    "RegistrarError",
    "DomainConflictError",
    "TenantNotFoundError",
    "NoDomainError",
    "ConfigurationError",
    "PersistenceError",
    "TamperingError",
    # Enums
    "DnsRecordType",
    "DomainState",
    "LogLevel",
    "RegistrarErrorCode",
    "ValidationErrorCode",
    # Configuration
    "CacheConfig",
    "DnsTargetConfig",
    "LoggingConfig",
    "PersistenceConfig",
    "PollingConfig",
    "RegistrarConfig",
    "SystemConfig",
    "ValidationConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "CachedDomainMapping",
    "CacheHit",
    "CacheLookup",
    "CacheMiss",
    "CacheNegative",
    "CheckAndInstructions",
    "DnsCheckResult",
    "DnsRecord",
    "DomainStatus",
    "DomainVerificationData",
    "ProvisionResult",
    "TenantDomainRecord",
    "VerificationChallenge",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "normalize_hostname",
    # Registrar Client
    "RegistrarClient",
    "RegistrarFailure",
    "AddDomainResult",
    "RemoveDomainResult",
    "DomainConfigResult",
    "VerifyDomainResult",
    # Verification
    "VerificationOrchestrator",
    "build_dns_instructions",
    # Cache
    "CacheBackend",
    "MemoryCacheBackend",
    "NullCacheBackend",
    "RedisCacheBackend",
    "create_cache_backend",
    "ResolutionCache",
    # Tenant Store
    "TenantStore",
    "InMemoryTenantStore",
    "JsonFileTenantStore",
    # Resolver
    "DomainResolver",
    # Service
    "CustomDomainService",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # CLI
    "cli_main",
    "create_parser",
]
