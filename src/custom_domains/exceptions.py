"""
Exception classes for the custom domain system.

All exceptions inherit from CustomDomainError and carry a machine-readable
code, a user-facing message and optional details.
"""

from typing import Optional


class CustomDomainError(Exception):
    """Base exception for all custom domain errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(CustomDomainError):
    """Raised when a domain is malformed or blocked."""

    pass


class RegistrarError(CustomDomainError):
    """Raised when adding or removing a domain at the registrar fails."""

    pass


class DomainConflictError(CustomDomainError):
    """Raised when a hostname is already connected to another tenant."""

    pass


class TenantNotFoundError(CustomDomainError):
    """Raised when the tenant store has no record for a tenant id."""

    pass


class NoDomainError(CustomDomainError):
    """Raised when a tenant operation needs a connected domain and there is none."""

    pass


class ConfigurationError(CustomDomainError):
    """Raised when required configuration is missing or invalid."""

    pass


class PersistenceError(CustomDomainError):
    """Raised when tenant store persistence fails (file I/O, parsing)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation of the tenant file fails."""

    pass
