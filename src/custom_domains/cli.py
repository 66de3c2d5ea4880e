"""
Command-line interface for the custom domain system.

This module provides the main CLI entry point with commands for:
- validate / instructions: Check a domain and show the DNS records it needs
- add / verify / status / remove: Manage a tenant's custom domain
- resolve: Resolve a Host header the way the public router does
- tenant: Tenant record management
- config: Configuration management

Exit codes: 0 success, 1 failure or invalid input, 2 verification pending.
"""

import argparse
import asyncio
import json
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from . import __version__
from .audit_logger import AuditLogger
from .cache_backend import create_cache_backend
from .config import (
    PersistenceConfig,
    SystemConfig,
    default_tenant_file,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from .domain_validator import DomainValidator
from .exceptions import CustomDomainError
from .models import DnsCheckResult, DnsRecord, DomainStatus
from .registrar_client import RegistrarClient
from .resolution_cache import ResolutionCache
from .resolver import DomainResolver
from .service import CustomDomainService
from .tenant_store import JsonFileTenantStore
from .verification import build_dns_instructions


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PENDING = 2

DEFAULT_CONFIG_PATH = Path.home() / ".custom_domains" / "config.json"


@dataclass
class Runtime:
    """Components shared by the tenant commands."""

    config: SystemConfig
    service: CustomDomainService
    tenant_store: JsonFileTenantStore
    cache: ResolutionCache


def load_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load config from --config if given, otherwise from the environment."""
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
        return config
    return load_config_from_env()


def create_logger(config: SystemConfig, verbose: bool) -> Optional[AuditLogger]:
    if not verbose:
        return None
    return AuditLogger.from_config(config.logging)


def create_tenant_store(config: SystemConfig) -> JsonFileTenantStore:
    persistence = config.persistence or PersistenceConfig(
        tenant_file_path=default_tenant_file(),
        hmac_secret="default-secret-change-me",
    )
    return JsonFileTenantStore(persistence.tenant_file_path, persistence.hmac_secret)


@asynccontextmanager
async def open_runtime(config: SystemConfig, logger: Optional[AuditLogger]) -> AsyncIterator[Runtime]:
    """Build the service stack and close its network clients on exit."""
    backend = create_cache_backend(config.cache)
    cache = ResolutionCache(backend, config.cache, logger)
    tenant_store = create_tenant_store(config)
    try:
        async with RegistrarClient(config.registrar, logger=logger) as registrar:
            service = CustomDomainService.from_config(
                config,
                registrar=registrar,
                cache=cache,
                tenant_store=tenant_store,
                logger=logger,
            )
            yield Runtime(config=config, service=service, tenant_store=tenant_store, cache=cache)
    finally:
        await backend.close()


def print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def print_records(records: list[DnsRecord]) -> None:
    print("DNS records to configure:")
    for record in records:
        print(f"  {record.type.value:<6} {record.name:<30} {record.value}")


def status_to_dict(status: DomainStatus) -> dict:
    return {
        "tenant_id": status.tenant_id,
        "domain": status.domain,
        "state": status.state.value,
        "verified": status.verified,
        "records": [r.to_dict() for r in status.records],
        "warnings": status.warnings,
    }


def check_to_dict(check: DnsCheckResult) -> dict:
    return {
        "configured": check.configured,
        "verified": check.verified,
        "misconfigured": check.misconfigured,
        "errors": check.errors,
    }


def cmd_validate(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'validate' command."""
    result = DomainValidator(config.validation.blocked_domains).validate(args.domain)
    if args.json:
        print_json({
            "valid": result.valid,
            "hostname": result.hostname,
            "is_apex": result.is_apex,
            "error": result.error,
            "code": result.code.value if result.code else None,
        })
    elif result.valid:
        kind = "apex domain" if result.is_apex else "subdomain"
        print(f"✓ {result.hostname} ({kind})")
    else:
        print(f"✗ {result.error}")
    return EXIT_OK if result.valid else EXIT_FAILURE


def cmd_instructions(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'instructions' command."""
    result = DomainValidator(config.validation.blocked_domains).validate(args.domain)
    if not result.valid:
        print(f"Error: {result.error}", file=sys.stderr)
        return EXIT_FAILURE

    records = build_dns_instructions(result.hostname, bool(result.is_apex), None, config.dns_targets)
    if args.json:
        print_json({"domain": result.hostname, "records": [r.to_dict() for r in records]})
    else:
        print_records(records)
    return EXIT_OK


async def run_add(args: argparse.Namespace, config: SystemConfig, logger: Optional[AuditLogger]) -> int:
    async with open_runtime(config, logger) as runtime:
        status = await runtime.service.connect_domain(args.tenant, args.domain)

    if args.json:
        print_json(status_to_dict(status))
        return EXIT_PENDING

    print(f"Added {status.domain} to tenant {status.tenant_id}")
    for warning in status.warnings:
        print(f"  Warning: {warning}")
    print_records(status.records)
    print("Run 'verify' once the records are in place.")
    return EXIT_PENDING


async def run_verify(args: argparse.Namespace, config: SystemConfig, logger: Optional[AuditLogger]) -> int:
    async with open_runtime(config, logger) as runtime:
        if args.wait:
            check = await runtime.service.wait_for_verification(args.tenant)
        else:
            check = await runtime.service.verify_tenant_domain(args.tenant)
        status = await runtime.service.get_domain_status(args.tenant)

    if args.json:
        payload = status_to_dict(status)
        payload["check"] = check_to_dict(check)
        print_json(payload)
    elif check.verified:
        print(f"✓ {status.domain} is verified")
    else:
        print(f"✗ {status.domain} is not verified yet ({status.state.value})")
        for error in check.errors:
            print(f"  - {error}")
        print_records(status.records)

    return EXIT_OK if check.verified else EXIT_PENDING


async def run_status(args: argparse.Namespace, config: SystemConfig, logger: Optional[AuditLogger]) -> int:
    async with open_runtime(config, logger) as runtime:
        status = await runtime.service.get_domain_status(args.tenant)

    if args.json:
        print_json(status_to_dict(status))
    elif status.domain is None:
        print(f"Tenant {status.tenant_id} has no custom domain")
    else:
        print(f"Domain: {status.domain}")
        print(f"State:  {status.state.value}")
        if not status.verified:
            print_records(status.records)
    return EXIT_OK


async def run_remove(args: argparse.Namespace, config: SystemConfig, logger: Optional[AuditLogger]) -> int:
    async with open_runtime(config, logger) as runtime:
        status = await runtime.service.get_domain_status(args.tenant)
        await runtime.service.disconnect_domain(args.tenant)

    if args.json:
        print_json({"tenant_id": args.tenant, "removed": status.domain})
    else:
        print(f"Removed {status.domain} from tenant {args.tenant}")
    return EXIT_OK


async def run_resolve(args: argparse.Namespace, config: SystemConfig, logger: Optional[AuditLogger]) -> int:
    backend = create_cache_backend(config.cache)
    try:
        resolver = DomainResolver(
            ResolutionCache(backend, config.cache, logger),
            create_tenant_store(config),
            logger,
        )
        mapping = await resolver.resolve(args.host)
    finally:
        await backend.close()

    if args.json:
        print_json({
            "host": args.host,
            "slug": mapping.slug if mapping else None,
            "tenant_id": mapping.tenant_id if mapping else None,
        })
    elif mapping is None:
        print(f"{args.host} does not resolve to a tenant")
    else:
        print(f"{args.host} -> {mapping.slug} (tenant {mapping.tenant_id})")
    return EXIT_OK if mapping else EXIT_FAILURE


async def run_tenant_create(args: argparse.Namespace, config: SystemConfig) -> int:
    store = create_tenant_store(config)
    record = await store.create_tenant(args.tenant_id, args.slug, published=not args.unpublished)
    if args.json:
        print_json({"tenant_id": record.tenant_id, "slug": record.slug, "published": record.published})
    else:
        print(f"Created tenant {record.tenant_id} ({record.slug})")
    return EXIT_OK


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return EXIT_FAILURE

        print(f"Configuration from: {config_path}")
        print(f"  Registrar API: {config.registrar.api_url}")
        print(f"  Project: {config.registrar.project_id or '(not set)'}")
        print(f"  Team: {config.registrar.team_scope or '(none)'}")
        print(f"  Token: {'set' if config.registrar.token else '(not set)'}")
        print(f"  Cache: {'redis' if config.cache.redis_enabled else 'disabled'}")
        if config.persistence:
            print(f"  Tenant file: {config.persistence.tenant_file_path}")
        print(f"  Log level: {config.logging.level}")
        return EXIT_OK

    if args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return EXIT_FAILURE

        config = load_config_from_env()
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return EXIT_OK
        return EXIT_FAILURE

    return EXIT_FAILURE


def dispatch(args: argparse.Namespace) -> int:
    if args.command == "config":
        return cmd_config(args)

    config = load_config(args)
    if config is None:
        return EXIT_FAILURE

    if args.command == "validate":
        return cmd_validate(args, config)
    if args.command == "instructions":
        return cmd_instructions(args, config)
    if args.command == "tenant":
        return asyncio.run(run_tenant_create(args, config))

    logger = create_logger(config, args.verbose)
    handlers = {
        "add": run_add,
        "verify": run_verify,
        "status": run_status,
        "remove": run_remove,
        "resolve": run_resolve,
    }
    return asyncio.run(handlers[args.command](args, config, logger))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        help="Path to configuration file (defaults to environment / .env)",
    )
    common.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser = argparse.ArgumentParser(
        prog="custom-domains",
        description="Custom domain management for hosted tenant sites",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", parents=[common], help="Validate a domain")
    validate_parser.add_argument("domain", help="Domain to validate (e.g., example.com)")

    instructions_parser = subparsers.add_parser(
        "instructions",
        parents=[common],
        help="Show the DNS records a domain needs",
    )
    instructions_parser.add_argument("domain", help="Domain to show records for")

    add_parser = subparsers.add_parser("add", parents=[common], help="Connect a domain to a tenant")
    add_parser.add_argument("tenant", help="Tenant id")
    add_parser.add_argument("domain", help="Domain to connect")

    verify_parser = subparsers.add_parser("verify", parents=[common], help="Verify a tenant's domain")
    verify_parser.add_argument("tenant", help="Tenant id")
    verify_parser.add_argument(
        "--wait", "-w",
        action="store_true",
        help="Keep polling with backoff until verified or out of attempts",
    )

    status_parser = subparsers.add_parser("status", parents=[common], help="Show a tenant's domain state")
    status_parser.add_argument("tenant", help="Tenant id")

    remove_parser = subparsers.add_parser("remove", parents=[common], help="Disconnect a tenant's domain")
    remove_parser.add_argument("tenant", help="Tenant id")

    resolve_parser = subparsers.add_parser("resolve", parents=[common], help="Resolve a Host header")
    resolve_parser.add_argument("host", help="Host header value (port allowed)")

    tenant_parser = subparsers.add_parser("tenant", help="Tenant record management")
    tenant_sub = tenant_parser.add_subparsers(dest="tenant_action", required=True)
    tenant_create = tenant_sub.add_parser("create", parents=[common], help="Create a tenant record")
    tenant_create.add_argument("tenant_id", help="Tenant id")
    tenant_create.add_argument("slug", help="Tenant slug used for routing")
    tenant_create.add_argument(
        "--unpublished",
        action="store_true",
        help="Create the tenant unpublished",
    )

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "action",
        choices=["show", "init"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return dispatch(args)
    except CustomDomainError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
