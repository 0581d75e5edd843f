"""Transaction submitter protocol — rescue execution."""
from typing import Protocol

from ..models import Quote, SubmitResult, VerifiedStablecoin


class TransactionSubmitter(Protocol):
    """Abstract interface for submitting a prepared rescue.

    Implementations never raise; failures come back as a ``SubmitResult``.
    """

    async def submit(
        self,
        user: str,
        token: VerifiedStablecoin,
        amount: int,
        quote: Quote,
    ) -> SubmitResult: ...


class CooldownReader(Protocol):
    """Abstract interface for the last rescue time recorded for a user."""

    async def last_rescue_time(self, user: str) -> int: ...
