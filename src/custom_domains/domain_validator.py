"""
Domain validation and normalization module.

Turns raw user input into a canonical hostname, checks it against the public
suffix list and the platform blocklist, enforces DNS length and character
rules and decides whether the hostname is an apex domain. No network I/O.
"""

import re
from dataclasses import dataclass
from typing import Optional

import idna
import tldextract

from .config import DEFAULT_BLOCKED_DOMAINS
from .enums import ValidationErrorCode


MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63

SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://")
LABEL_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

# Bundled public suffix snapshot only, ICANN section only.
_DEFAULT_EXTRACTOR = tldextract.TLDExtract(
    cache_dir=None,
    suffix_list_urls=(),
    include_psl_private_domains=False,
)


@dataclass(frozen=True)
class DomainValidationResult:
    """Result of domain validation."""

    valid: bool
    hostname: Optional[str] = None
    is_apex: Optional[bool] = None
    error: Optional[str] = None
    code: Optional[ValidationErrorCode] = None


def normalize_hostname(raw: str) -> str:
    """Lowercase, drop scheme, path, port and trailing dot, trim whitespace."""
    hostname = raw.strip().lower()
    hostname = SCHEME_PATTERN.sub("", hostname)
    hostname = hostname.split("/", 1)[0]
    host, _, port = hostname.rpartition(":")
    if port.isascii() and port.isdigit() and host and ":" not in host:
        hostname = host
    return hostname.strip().rstrip(".")


class DomainValidator:
    """
    Validates custom domains submitted by users.

    Handles:
    - Normalization to a lowercase hostname (IDNA A-label for international input)
    - Public suffix parsing into registrable domain and subdomain
    - Rejection of platform-owned and free-hosting suffixes
    - RFC 1035 length and label character limits
    """

    def __init__(
        self,
        blocked_domains: Optional[list[str]] = None,
        extractor: Optional[tldextract.TLDExtract] = None,
    ) -> None:
        """
        Args:
            blocked_domains: Suffixes that may not be connected (exact or any subdomain)
            extractor: Public suffix extractor; defaults to the offline snapshot
        """
        if blocked_domains is None:
            blocked_domains = DEFAULT_BLOCKED_DOMAINS
        self._blocked_domains = [d.strip().lower() for d in blocked_domains if d.strip()]
        self._extractor = extractor or _DEFAULT_EXTRACTOR

    @property
    def blocked_domains(self) -> list[str]:
        return list(self._blocked_domains)

    def validate(self, raw_domain: str) -> DomainValidationResult:
        """
        Validate and normalize a domain string.

        Args:
            raw_domain: Domain as typed by the user, possibly with scheme or path

        Returns:
            DomainValidationResult with the canonical hostname or an error
        """
        hostname = normalize_hostname(raw_domain or "")

        if not hostname:
            return self._reject(ValidationErrorCode.EMPTY_INPUT, "Domain is required")

        if not hostname.isascii():
            try:
                hostname = idna.encode(hostname, uts46=True).decode("ascii")
            except idna.IDNAError:
                return self._reject(ValidationErrorCode.INVALID_DOMAIN, "Invalid domain name")

        parsed = self._extractor(hostname)
        if not parsed.domain or not parsed.suffix:
            return self._reject(ValidationErrorCode.INVALID_DOMAIN, "Invalid domain name")

        blocked = self.find_blocked_suffix(hostname)
        if blocked is not None:
            return self._reject(
                ValidationErrorCode.BLOCKED_DOMAIN,
                f"{blocked} domains are not allowed",
            )

        if len(hostname) > MAX_HOSTNAME_LENGTH:
            return self._reject(ValidationErrorCode.TOO_LONG, "Domain name is too long")

        for label in hostname.split("."):
            if len(label) > MAX_LABEL_LENGTH:
                return self._reject(
                    ValidationErrorCode.LABEL_TOO_LONG,
                    "Domain label exceeds 63 characters",
                )
            if not LABEL_PATTERN.match(label):
                return self._reject(
                    ValidationErrorCode.INVALID_CHARACTERS,
                    "Domain contains invalid characters",
                )

        return DomainValidationResult(
            valid=True,
            hostname=hostname,
            is_apex=not parsed.subdomain,
        )

    def find_blocked_suffix(self, hostname: str) -> Optional[str]:
        """Return the blocklist entry matching hostname, if any."""
        for blocked in self._blocked_domains:
            if hostname == blocked or hostname.endswith(f".{blocked}"):
                return blocked
        return None

    def is_apex_domain(self, hostname: str) -> bool:
        """True when hostname is a registrable domain without subdomain labels."""
        parsed = self._extractor(normalize_hostname(hostname))
        return bool(parsed.domain and parsed.suffix and not parsed.subdomain)

    @staticmethod
    def _reject(code: ValidationErrorCode, message: str) -> DomainValidationResult:
        return DomainValidationResult(valid=False, error=message, code=code)
