"""Policy store protocol — per-user rescue policy records."""
from typing import Protocol


class PolicyStore(Protocol):
    """Abstract interface for reading raw policy records by name.

    Returns ``None`` (or an empty map) when the name has no record.
    """

    async def read_raw(self, name: str) -> dict[str, str] | None: ...
