"""
Registrar Client for the hosting platform's custom domain API.

Thin async wrapper over four calls: add, remove, config probe and verify.
Every call is bounded by a timeout and never raises for HTTP or network
failures; each returns a result object whose ``error`` carries a uniform
RegistrarFailure. This client does not retry; retrying is the caller's call.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .audit_logger import AuditLogger
from .config import RegistrarConfig
from .enums import RegistrarErrorCode
from .exceptions import ConfigurationError
from .models import DomainVerificationData


WWW_REDIRECT_STATUS = 308


@dataclass
class RegistrarFailure:
    """Uniform error shape for registrar failures."""

    code: RegistrarErrorCode
    message: str
    http_status_code: Optional[int] = None


@dataclass
class AddDomainResult:
    verification_data: Optional[DomainVerificationData] = None
    error: Optional[RegistrarFailure] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class RemoveDomainResult:
    error: Optional[RegistrarFailure] = None


@dataclass
class DomainConfigResult:
    misconfigured: bool = False
    raw: dict = field(default_factory=dict)
    error: Optional[RegistrarFailure] = None


@dataclass
class VerifyDomainResult:
    verified: bool = False
    raw: dict = field(default_factory=dict)
    error: Optional[RegistrarFailure] = None


@dataclass
class _Reply:
    """Raw outcome of one HTTP exchange."""

    status_code: int
    body: Any
    failure: Optional[RegistrarFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and 200 <= self.status_code < 300


def extract_error(body: Any) -> tuple[Optional[str], Optional[str]]:
    """Pull (code, message) out of a registrar error body, if present."""
    if not isinstance(body, dict):
        return None, None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("code"), error.get("message")
    message = body.get("message")
    return None, message if isinstance(message, str) else None


class RegistrarClient:
    """
    Async client for the registrar API.

    Authentication and team scoping come from RegistrarConfig; callers only
    pass hostnames.
    """

    COMPONENT = "RegistrarClient"

    def __init__(
        self,
        config: RegistrarConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Args:
            config: Registrar credentials, endpoints and timeout
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            logger: Optional audit logger

        Raises:
            ConfigurationError: If the token or project id is missing
        """
        if not config.token or not config.project_id:
            raise ConfigurationError(
                code="registrar_not_configured",
                message="Registrar token and project id are required",
                details={"has_token": bool(config.token), "project_id": config.project_id},
            )
        self._config = config
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RegistrarClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.api_url.rstrip("/"),
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers={
                    "Authorization": f"Bearer {self._config.token}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _path(self, template: str, name: str = "") -> str:
        return template.format(
            project_id=quote(self._config.project_id, safe=""),
            name=quote(name, safe=""),
        )

    def _params(self) -> dict:
        team = self._config.team_scope
        return {"teamId": team} if team else {}

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> _Reply:
        client = self._ensure_client()
        start_time = time.perf_counter()
        try:
            response = await client.request(method, path, params=self._params(), json=payload)
        except httpx.TimeoutException:
            return _Reply(0, None, RegistrarFailure(
                code=RegistrarErrorCode.TIMEOUT,
                message=f"Registrar request timed out after {self._config.timeout_seconds}s",
            ))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return _Reply(0, None, RegistrarFailure(
                code=RegistrarErrorCode.NETWORK_ERROR,
                message=f"Connection error: {e}",
            ))

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = None

        self._log_debug(
            f"{method} {path} -> {response.status_code}",
            {"elapsed_ms": round((time.perf_counter() - start_time) * 1000, 1)},
        )

        if 200 <= response.status_code < 300 and body is None:
            return _Reply(response.status_code, None, RegistrarFailure(
                code=RegistrarErrorCode.PARSE_ERROR,
                message="Registrar returned a malformed response",
                http_status_code=response.status_code,
            ))
        return _Reply(response.status_code, body)

    @staticmethod
    def _failure(reply: _Reply, default_message: str) -> RegistrarFailure:
        """Map a non-2xx reply (or a transport failure) to RegistrarFailure."""
        if reply.failure is not None:
            return reply.failure
        code, message = extract_error(reply.body)
        if code == RegistrarErrorCode.ALREADY_EXISTS.value:
            error_code = RegistrarErrorCode.ALREADY_EXISTS
        elif reply.status_code == 404:
            error_code = RegistrarErrorCode.NOT_FOUND
        else:
            error_code = RegistrarErrorCode.HTTP_ERROR
        return RegistrarFailure(
            code=error_code,
            message=message or default_message,
            http_status_code=reply.status_code,
        )

    async def add_domain(self, hostname: str, is_apex: bool) -> AddDomainResult:
        """
        Register hostname on the project.

        An "already exists" answer counts as success. For apex domains a
        ``www.`` alias redirecting (308) to the apex is registered too; its
        failure is logged and reported as a warning only.
        """
        reply = await self._request("POST", self._path(self._config.add_path), {"name": hostname})

        if not reply.ok:
            failure = self._failure(reply, "Failed to add domain to registrar")
            if failure.code != RegistrarErrorCode.ALREADY_EXISTS:
                self._log_error(f"Adding {hostname} failed: {failure.message}", {
                    "domain": hostname,
                    "http_status_code": failure.http_status_code,
                })
                return AddDomainResult(error=failure)
            self._log_info(f"{hostname} already registered", {"domain": hostname})

        result = AddDomainResult(
            verification_data=DomainVerificationData.from_registrar(reply.body, is_apex=is_apex),
        )

        if is_apex:
            www = f"www.{hostname}"
            www_reply = await self._request("POST", self._path(self._config.add_path), {
                "name": www,
                "redirect": hostname,
                "redirectStatusCode": WWW_REDIRECT_STATUS,
            })
            if not www_reply.ok:
                www_failure = self._failure(www_reply, "Failed to add www redirect")
                if www_failure.code != RegistrarErrorCode.ALREADY_EXISTS:
                    self._log_warn(f"Could not register {www}: {www_failure.message}", {
                        "domain": www,
                        "http_status_code": www_failure.http_status_code,
                    })
                    result.warnings.append(
                        f"Could not register {www} redirect: {www_failure.message}"
                    )

        self._log_info(f"Added {hostname}", {"domain": hostname, "is_apex": is_apex})
        return result

    async def remove_domain(self, hostname: str, is_apex: bool) -> RemoveDomainResult:
        """
        Remove hostname from the project.

        For apex domains the ``www.`` alias goes first, since the platform
        refuses to drop an apex that still has its alias. The alias removal
        is best-effort; only the primary removal decides the result. A 404
        for the primary means it is already gone.
        """
        if is_apex:
            www = f"www.{hostname}"
            www_reply = await self._request("DELETE", self._path(self._config.domain_path, www))
            if not www_reply.ok and www_reply.status_code != 404:
                www_failure = self._failure(www_reply, "Failed to remove www redirect")
                self._log_warn(f"Could not remove {www}: {www_failure.message}", {"domain": www})

        reply = await self._request("DELETE", self._path(self._config.domain_path, hostname))
        if reply.ok or (reply.failure is None and reply.status_code == 404):
            self._log_info(f"Removed {hostname}", {"domain": hostname, "is_apex": is_apex})
            return RemoveDomainResult()

        failure = self._failure(reply, "Failed to remove domain")
        self._log_error(f"Removing {hostname} failed: {failure.message}", {
            "domain": hostname,
            "http_status_code": failure.http_status_code,
        })
        return RemoveDomainResult(error=failure)

    async def get_domain_config(self, hostname: str) -> DomainConfigResult:
        """Read-only DNS configuration probe."""
        reply = await self._request("GET", self._path(self._config.config_path, hostname))
        if not reply.ok:
            return DomainConfigResult(error=self._failure(reply, "Failed to read domain configuration"))
        body = reply.body if isinstance(reply.body, dict) else {}
        return DomainConfigResult(misconfigured=bool(body.get("misconfigured", False)), raw=body)

    async def verify_domain(self, hostname: str) -> VerifyDomainResult:
        """Ask the platform to attempt verification now."""
        reply = await self._request("POST", self._path(self._config.verify_path, hostname))
        if not reply.ok:
            return VerifyDomainResult(
                raw=reply.body if isinstance(reply.body, dict) else {},
                error=self._failure(reply, "Verification failed"),
            )
        body = reply.body if isinstance(reply.body, dict) else {}
        return VerifyDomainResult(verified=body.get("verified") is True, raw=body)

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug(self.COMPONENT, message, data)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(self.COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(self.COMPONENT, message, data)

    def _log_error(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.error(self.COMPONENT, message, data)
