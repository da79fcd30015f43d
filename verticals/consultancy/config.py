"""Consultancy vertical configuration.

Re-exports DashboardConfig from the patterns module and wires a
DashboardClient from it. Logging is left to the embedding application:
call ``setup_logging(settings.log_level)`` once at startup.
"""

from typing import Optional

from core.sync import QueryCache
from patterns.domain_config import DashboardConfig
from verticals.consultancy.http_store import HttpStore
from verticals.consultancy.models.schemas import Identity
from verticals.consultancy.synchronizer import DashboardClient

# Default configuration instance
config = DashboardConfig.default()


def build_client(
    identity: Optional[Identity],
    token: Optional[str] = None,
    settings: Optional[DashboardConfig] = None,
    transport=None,
) -> DashboardClient:
    """Create a DashboardClient talking to the configured HTTP store."""
    settings = settings or DashboardConfig.from_env()

    store = HttpStore(settings.remote, transport=transport)
    if identity is not None and token is not None:
        store.register_identity(identity, token)

    cache = QueryCache(max_age_seconds=settings.cache.max_age_seconds)
    return DashboardClient(store, identity, cache)
