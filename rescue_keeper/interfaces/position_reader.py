"""Position reader protocol — lending protocol account data."""
from typing import Protocol

from ..models import RawAccountData


class PositionReader(Protocol):
    """Abstract interface for reading a user's raw account data from a pool."""

    async def read(self, pool: str, user: str) -> RawAccountData: ...
