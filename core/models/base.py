"""Base model for all domain entities.

Provides:
- DomainModel: frozen pydantic base for entities read from the store
- now_ns: current time as integer nanoseconds since the Unix epoch

Entities are owned by the authoritative store. The client only ever holds
read-only copies, so every model is frozen and compared by value.
"""

import time

from pydantic import BaseModel, ConfigDict


def now_ns() -> int:
    """Current wall-clock time in nanoseconds since the epoch."""
    return time.time_ns()


class DomainModel(BaseModel):
    """Declarative base for all dashboard entities."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    def to_dict(self) -> dict:
        """Wire representation (camelCase aliases, enums as values)."""
        return self.model_dump(mode="json", by_alias=True)
