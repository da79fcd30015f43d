"""Consultancy vertical — dashboard data layer for clients, proposals and tasks.

Brings the shared patterns together for one domain:
- Pydantic entity and command-input models
- Remote access contract with in-memory and HTTP stores
- Advisory status state machines
- Pure-function role policy
- Cached, tag-invalidated DashboardClient
- Derived analytics
- Dataclass configuration
"""
