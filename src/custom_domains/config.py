"""
Configuration dataclasses for the custom domain system.

This module defines the registrar credentials and endpoints, the DNS targets
shown to users, the validator blocklist, the resolution cache, tenant
persistence, polling and logging settings. Environment loading goes through
python-dotenv so a local ``.env`` file works the same as real variables.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError


DEFAULT_BLOCKED_DOMAINS = [
    "localhost",
    "vercel.app",
    "vercel.dev",
    "now.sh",
    "netlify.app",
    "herokuapp.com",
    "guestbook.sh",
    "supabase.co",
    "supabase.com",
]

REDIS_URL_SCHEMES = ("redis://", "rediss://", "unix://")


@dataclass
class RegistrarConfig:
    """Credentials and endpoints of the hosting platform's domain API."""

    token: str
    project_id: str
    team_id: Optional[str] = None
    api_url: str = "https://api.vercel.com"
    timeout_seconds: float = 10.0
    add_path: str = "/v10/projects/{project_id}/domains"
    domain_path: str = "/v9/projects/{project_id}/domains/{name}"
    config_path: str = "/v6/domains/{name}/config"
    verify_path: str = "/v9/projects/{project_id}/domains/{name}/verify"

    @property
    def team_scope(self) -> Optional[str]:
        """Team id to send, or None when unscoped ('#' is a placeholder)."""
        if not self.team_id or self.team_id == "#":
            return None
        return self.team_id


@dataclass
class DnsTargetConfig:
    """Fixed routing targets of the hosting platform."""

    apex_ip: str = "76.76.21.21"
    cname_target: str = "cname.vercel-dns.com"


@dataclass
class ValidationConfig:
    """Domain policy configuration."""

    blocked_domains: list[str] = field(
        default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS)
    )


@dataclass
class CacheConfig:
    """Resolution cache configuration."""

    redis_url: Optional[str] = None
    key_prefix: str = "domain:"
    positive_ttl_seconds: int = 3600
    negative_ttl_seconds: int = 60

    def __post_init__(self) -> None:
        if self.negative_ttl_seconds >= self.positive_ttl_seconds:
            raise ConfigurationError(
                code="invalid_cache_ttl",
                message="Negative cache TTL must be shorter than positive cache TTL",
                details={
                    "positive_ttl_seconds": self.positive_ttl_seconds,
                    "negative_ttl_seconds": self.negative_ttl_seconds,
                },
            )

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_url) and self.redis_url.startswith(REDIS_URL_SCHEMES)


@dataclass
class PersistenceConfig:
    """File-backed tenant store configuration."""

    tenant_file_path: Path
    hmac_secret: str


@dataclass
class PollingConfig:
    """Backoff settings for user-triggered verification polling."""

    max_attempts: int = 5
    base_delay_seconds: float = 5.0
    max_delay_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    registrar: RegistrarConfig
    dns_targets: DnsTargetConfig = field(default_factory=DnsTargetConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    persistence: Optional[PersistenceConfig] = None
    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_tenant_file() -> Path:
    return Path.home() / ".custom_domains" / "tenants.json"


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _split_list(value: str) -> list[str]:
    return [
        part.strip().lower()
        for part in value.replace(";", ",").split(",")
        if part.strip()
    ]


def load_config_from_env(env_file: Optional[Path] = None) -> SystemConfig:
    """
    Build configuration from the process environment.

    Values from ``env_file`` (or a ``.env`` in the working directory) are
    loaded first but never override variables that are already set.

    Raises:
        ConfigurationError: If cache TTLs are inconsistent
    """
    load_dotenv(dotenv_path=env_file, override=False)

    registrar = RegistrarConfig(
        token=os.getenv("REGISTRAR_TOKEN", "").strip(),
        project_id=os.getenv("REGISTRAR_PROJECT_ID", "").strip(),
        team_id=os.getenv("REGISTRAR_TEAM_ID", "").strip() or None,
        api_url=os.getenv("REGISTRAR_API_URL", "https://api.vercel.com").strip(),
        timeout_seconds=_float_env("REGISTRAR_TIMEOUT", 10.0),
    )

    blocked = list(DEFAULT_BLOCKED_DOMAINS)
    for extra in _split_list(os.getenv("BLOCKED_DOMAINS", "")):
        if extra not in blocked:
            blocked.append(extra)

    cache = CacheConfig(
        redis_url=os.getenv("REDIS_URL", "").strip() or None,
        key_prefix=os.getenv("DOMAIN_CACHE_PREFIX", "domain:"),
        positive_ttl_seconds=_int_env("DOMAIN_CACHE_TTL", 3600),
        negative_ttl_seconds=_int_env("DOMAIN_NEGATIVE_CACHE_TTL", 60),
    )

    tenant_path = os.getenv("TENANT_STORE_PATH", "").strip()
    persistence = PersistenceConfig(
        tenant_file_path=Path(tenant_path) if tenant_path else default_tenant_file(),
        hmac_secret=os.getenv("TENANT_STORE_SECRET", "default-secret-change-me"),
    )

    return SystemConfig(
        registrar=registrar,
        dns_targets=DnsTargetConfig(
            apex_ip=os.getenv("DNS_APEX_IP", "76.76.21.21"),
            cname_target=os.getenv("DNS_CNAME_TARGET", "cname.vercel-dns.com"),
        ),
        validation=ValidationConfig(blocked_domains=blocked),
        cache=cache,
        persistence=persistence,
        logging=LoggingConfig(
            level=os.getenv("LOG_LEVEL", "info").lower(),
            output_format=os.getenv("LOG_FORMAT", "text").lower(),
        ),
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Returns:
        SystemConfig if successful, None if the file is missing or invalid
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        registrar_data = data.get("registrar", {})
        registrar = RegistrarConfig(
            token=registrar_data.get("token", ""),
            project_id=registrar_data.get("project_id", ""),
            team_id=registrar_data.get("team_id"),
            api_url=registrar_data.get("api_url", "https://api.vercel.com"),
            timeout_seconds=registrar_data.get("timeout_seconds", 10.0),
        )

        targets_data = data.get("dns_targets", {})
        dns_targets = DnsTargetConfig(
            apex_ip=targets_data.get("apex_ip", "76.76.21.21"),
            cname_target=targets_data.get("cname_target", "cname.vercel-dns.com"),
        )

        validation = ValidationConfig(
            blocked_domains=data.get("validation", {}).get(
                "blocked_domains", list(DEFAULT_BLOCKED_DOMAINS)
            ),
        )

        cache_data = data.get("cache", {})
        cache = CacheConfig(
            redis_url=cache_data.get("redis_url"),
            key_prefix=cache_data.get("key_prefix", "domain:"),
            positive_ttl_seconds=cache_data.get("positive_ttl_seconds", 3600),
            negative_ttl_seconds=cache_data.get("negative_ttl_seconds", 60),
        )

        persistence_data = data.get("persistence", {})
        tenant_file = persistence_data.get("tenant_file_path")
        persistence = PersistenceConfig(
            tenant_file_path=Path(tenant_file) if tenant_file else default_tenant_file(),
            hmac_secret=persistence_data.get("hmac_secret", "default-secret-change-me"),
        )

        polling_data = data.get("polling", {})
        polling = PollingConfig(
            max_attempts=polling_data.get("max_attempts", 5),
            base_delay_seconds=polling_data.get("base_delay_seconds", 5.0),
            max_delay_seconds=polling_data.get("max_delay_seconds", 60.0),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            audit_mode=logging_data.get("audit_mode", False),
            audit_signing_key=logging_data.get("audit_signing_key"),
            output_format=logging_data.get("output_format", "text"),
        )

        return SystemConfig(
            registrar=registrar,
            dns_targets=dns_targets,
            validation=validation,
            cache=cache,
            persistence=persistence,
            polling=polling,
            logging=logging_config,
        )

    except (json.JSONDecodeError, KeyError, TypeError, ConfigurationError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "registrar": {
                "token": config.registrar.token,
                "project_id": config.registrar.project_id,
                "team_id": config.registrar.team_id,
                "api_url": config.registrar.api_url,
                "timeout_seconds": config.registrar.timeout_seconds,
            },
            "dns_targets": {
                "apex_ip": config.dns_targets.apex_ip,
                "cname_target": config.dns_targets.cname_target,
            },
            "validation": {
                "blocked_domains": config.validation.blocked_domains,
            },
            "cache": {
                "redis_url": config.cache.redis_url,
                "key_prefix": config.cache.key_prefix,
                "positive_ttl_seconds": config.cache.positive_ttl_seconds,
                "negative_ttl_seconds": config.cache.negative_ttl_seconds,
            },
            "persistence": {
                "tenant_file_path": str(config.persistence.tenant_file_path),
                "hmac_secret": config.persistence.hmac_secret,
            } if config.persistence else {},
            "polling": {
                "max_attempts": config.polling.max_attempts,
                "base_delay_seconds": config.polling.base_delay_seconds,
                "max_delay_seconds": config.polling.max_delay_seconds,
            },
            "logging": {
                "level": config.logging.level,
                "audit_mode": config.logging.audit_mode,
                "audit_signing_key": config.logging.audit_signing_key,
                "output_format": config.logging.output_format,
            },
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False
