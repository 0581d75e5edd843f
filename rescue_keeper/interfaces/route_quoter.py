"""Route quoter protocol — execution quote acquisition."""
from typing import Protocol

from ..models import Quote, QuoteRequest


class RouteQuoter(Protocol):
    """Abstract interface for fetching an execution quote."""

    async def quote(self, request: QuoteRequest) -> Quote | None: ...
