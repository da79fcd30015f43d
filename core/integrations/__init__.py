"""
Dashboard Core Integrations — HTTP Adapter Framework.

Provides the shared plumbing for talking to external services:
- AdapterBase: HTTP adapter with per-identity credentials and health tracking
- AdapterRequest / AdapterResponse: request/response envelope
"""
from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AdapterResponse,
    AuthCredentials,
    AuthType,
    IntegrationHealth,
)

__all__ = [
    "AdapterBase",
    "AdapterRequest",
    "AdapterResponse",
    "AuthCredentials",
    "AuthType",
    "IntegrationHealth",
]
