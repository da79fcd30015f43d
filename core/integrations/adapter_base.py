"""
Dashboard Adapter Framework.

Every HTTP integration with an external system inherits from AdapterBase.
Provides:
- Per-identity credentials (API key, bearer token, custom headers)
- Standardized request/response envelope
- Health tracking (latency, errors, auth failures)

Adapters never retry on their own: requests that mutate remote state are
not safe to repeat without a store-side nonce, so retry is the caller's
decision.
"""
from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import time

import httpx


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class AuthType(str, Enum):
    NONE = "none"
    API_KEY = "api_key"
    BEARER = "bearer"
    CUSTOM = "custom"


@dataclass
class AuthCredentials:
    """Credentials one caller identity presents to an adapter."""
    identity: str
    adapter_name: str
    auth_type: AuthType = AuthType.NONE
    api_key: str | None = None
    api_key_header: str = "X-API-Key"
    bearer_token: str | None = None
    custom_headers: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response envelope
# ---------------------------------------------------------------------------

@dataclass
class AdapterRequest:
    """Standardized outbound request."""
    method: str  # GET, POST, PUT, PATCH, DELETE
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0


@dataclass
class AdapterResponse:
    """Standardized inbound response."""
    status_code: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0
    adapter_name: str = ""
    identity: str | None = None
    error: str | None = None
    transport_error: bool = False

    @property
    def ok(self) -> bool:
        return not self.transport_error and 200 <= self.status_code < 300


# ---------------------------------------------------------------------------
# Health tracking
# ---------------------------------------------------------------------------

@dataclass
class IntegrationHealth:
    """Health metrics for an adapter."""
    adapter_name: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    auth_failures: int = 0
    avg_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.failed_requests / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter_name": self.adapter_name,
            "total_requests": self.total_requests,
            "successful": self.successful_requests,
            "failed": self.failed_requests,
            "auth_failures": self.auth_failures,
            "error_rate": round(self.error_rate, 4),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
        }


# ---------------------------------------------------------------------------
# AdapterBase
# ---------------------------------------------------------------------------

class AdapterBase(ABC):
    """
    Base class for HTTP adapters.

    Subclasses must set:
        name: str      — adapter identifier
        base_url: str  — API root URL (may be overridden per instance)
    """

    name: str = ""
    base_url: str = ""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if base_url:
            self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._credentials: dict[str, AuthCredentials] = {}  # identity -> creds
        self._health = IntegrationHealth(adapter_name=self.name)
        self._latencies: list[float] = []

    # --- Credentials ---

    def set_credentials(self, creds: AuthCredentials) -> None:
        """Store credentials for an identity."""
        self._credentials[creds.identity] = creds

    def get_credentials(self, identity: str) -> AuthCredentials | None:
        return self._credentials.get(identity)

    def get_auth_headers(self, identity: str | None) -> dict[str, str]:
        """Build auth headers for the given identity. Empty when anonymous."""
        if identity is None:
            return {}
        creds = self._credentials.get(identity)
        if not creds:
            return {}

        if creds.auth_type == AuthType.API_KEY and creds.api_key:
            return {creds.api_key_header: creds.api_key}

        if creds.auth_type == AuthType.BEARER and creds.bearer_token:
            return {"Authorization": f"Bearer {creds.bearer_token}"}

        if creds.auth_type == AuthType.CUSTOM:
            return dict(creds.custom_headers)

        return {}

    # --- Health ---

    def _update_health(self, latency_ms: float, success: bool, error: str | None = None) -> None:
        self._health.total_requests += 1
        self._latencies.append(latency_ms)
        if len(self._latencies) > 1000:
            self._latencies = self._latencies[-500:]

        now = datetime.now(timezone.utc)
        if success:
            self._health.successful_requests += 1
            self._health.last_success = now
        else:
            self._health.failed_requests += 1
            self._health.last_failure = now
            self._health.last_error = error

        self._health.avg_latency_ms = sum(self._latencies) / len(self._latencies)
        sorted_lats = sorted(self._latencies)
        p95_idx = int(len(sorted_lats) * 0.95)
        self._health.p95_latency_ms = sorted_lats[min(p95_idx, len(sorted_lats) - 1)]

    def get_health(self) -> IntegrationHealth:
        return self._health

    # --- Core request ---

    async def request(
        self,
        req: AdapterRequest,
        identity: str | None,
    ) -> AdapterResponse:
        """
        Execute a single request: Auth → Send → Health.
        Transport failures come back as a response with ``transport_error`` set.
        """
        url = f"{self.base_url.rstrip('/')}/{req.path.lstrip('/')}"
        headers = {**self.get_auth_headers(identity), **req.headers}

        start = time.time()
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.request(
                    method=req.method,
                    url=url,
                    params=req.params or None,
                    json=req.body,
                    headers=headers,
                    timeout=req.timeout,
                )
        except httpx.HTTPError as exc:
            latency = (time.time() - start) * 1000
            error = f"{type(exc).__name__}: {exc}"
            self._update_health(latency, False, error)
            return AdapterResponse(
                status_code=503,
                error=error,
                latency_ms=latency,
                adapter_name=self.name,
                identity=identity,
                transport_error=True,
            )

        latency = (time.time() - start) * 1000
        success = resp.status_code < 400
        if resp.status_code in (401, 403):
            self._health.auth_failures += 1
        self._update_health(
            latency, success, None if success else f"HTTP {resp.status_code}: {resp.text[:200]}"
        )

        data: Any = resp.text
        error = None
        if resp.headers.get("content-type", "").startswith("application/json"):
            try:
                data = resp.json()
            except ValueError as exc:
                # Body stays raw text; callers see no JSON envelope
                error = f"malformed JSON body: {exc}"

        return AdapterResponse(
            status_code=resp.status_code,
            data=data,
            headers=dict(resp.headers),
            latency_ms=latency,
            adapter_name=self.name,
            identity=identity,
            error=error,
        )
