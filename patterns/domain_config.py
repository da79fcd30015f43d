"""Dataclass-based domain configuration pattern.

Each concern defines its endpoints, limits and switches as a frozen
dataclass. This gives you:
- Type safety (IDE autocompletion, mypy checking)
- Default values (sensible out-of-the-box)
- Immutability (frozen=True prevents accidental mutation)
- Easy overrides (from env vars)

Example domain: the consultancy dashboard's store connection and cache.
"""

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteConfig:
    """Connection to the authoritative store."""

    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class CacheConfig:
    """Query cache behaviour."""

    # None: entries only go stale when a related mutation succeeds
    max_age_seconds: float | None = None


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DashboardConfig:
    """Complete configuration for the dashboard core.

    Usage::

        config = DashboardConfig.from_env()
        store = HttpStore(config.remote)
        client = DashboardClient(store, identity, cache=QueryCache(config.cache.max_age_seconds))
    """

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log_level: str = "INFO"

    @classmethod
    def default(cls) -> "DashboardConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "DASHBOARD_") -> "DashboardConfig":
        """Create config from environment variables.

        Example: DASHBOARD_BASE_URL=https://store.example.com
        """
        remote_overrides = {}
        base_url = os.getenv(f"{prefix}BASE_URL")
        if base_url:
            remote_overrides["base_url"] = base_url
        timeout = os.getenv(f"{prefix}TIMEOUT_SECONDS")
        if timeout:
            remote_overrides["timeout_seconds"] = float(timeout)

        cache_overrides = {}
        max_age = os.getenv(f"{prefix}CACHE_MAX_AGE_SECONDS")
        if max_age:
            cache_overrides["max_age_seconds"] = float(max_age)

        overrides = {}
        log_level = os.getenv(f"{prefix}LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.upper()

        return cls(
            remote=RemoteConfig(**remote_overrides),
            cache=CacheConfig(**cache_overrides),
            **overrides,
        )
