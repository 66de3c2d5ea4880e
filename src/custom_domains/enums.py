"""
Enumeration types for the custom domain system.
"""

from enum import Enum


class DnsRecordType(Enum):
    """DNS record types shown to the user as setup instructions."""

    A = "A"
    CNAME = "CNAME"
    TXT = "TXT"


class DomainState(Enum):
    """
    Lifecycle of a custom domain, held on the tenant record.

    UNCONFIGURED -> PENDING -> VERIFIED, PENDING -> MISCONFIGURED on DNS
    errors, and any state -> UNCONFIGURED on removal.
    """

    UNCONFIGURED = "none"
    PENDING = "pending_dns"
    VERIFIED = "verified"
    MISCONFIGURED = "misconfigured"


class ValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    EMPTY_INPUT = "empty_input"
    INVALID_DOMAIN = "invalid_domain"
    BLOCKED_DOMAIN = "blocked_domain"
    TOO_LONG = "too_long"
    LABEL_TOO_LONG = "label_too_long"
    INVALID_CHARACTERS = "invalid_characters"


class RegistrarErrorCode(Enum):
    """Error codes for registrar client operations."""

    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"
    ALREADY_EXISTS = "domain_already_exists"
    NOT_FOUND = "not_found"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
