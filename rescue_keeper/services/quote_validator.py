"""Quote acquisition and execution-target validation.

Routing responses are untrusted: calldata from a quote is only usable once
``is_trusted_target`` accepts its target for the operating chain.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Mapping

from ..interfaces.route_quoter import RouteQuoter
from ..models import Quote, QuoteRequest

logger = logging.getLogger(__name__)


class QuoteValidator:
    """Fetch quotes and check their targets against a per-chain allow-list."""

    def __init__(
        self,
        quoter: RouteQuoter,
        trusted_targets: Mapping[int, frozenset[str]],
        timeout: float = 15.0,
    ) -> None:
        self._quoter = quoter
        self._trusted = {
            int(chain_id): frozenset(addr.lower() for addr in addrs)
            for chain_id, addrs in trusted_targets.items()
        }
        self._timeout = timeout

    def trusted_targets(self, chain_id: int) -> frozenset[str]:
        return self._trusted.get(chain_id, frozenset())

    def is_trusted_target(self, chain_id: int, target: str | None) -> bool:
        if not target:
            return False
        return target.strip().lower() in self.trusted_targets(chain_id)

    async def get_execution_quote(self, request: QuoteRequest) -> Quote | None:
        """Return a quote, or ``None`` when none could be obtained."""
        try:
            quote = await asyncio.wait_for(self._quoter.quote(request), self._timeout)
        except asyncio.TimeoutError:
            logger.error("Quote request timed out after %.1fs", self._timeout)
            return None
        except Exception as e:
            logger.error("Quote request failed: %s", e)
            return None

        if quote is None:
            logger.error("Quoter returned no route")
            return None
        if not quote.target or not quote.call_data:
            logger.error("Quote is missing target or calldata")
            return None

        logger.debug(
            "Quote received — target=%s value=%d estimatedOutput=%s",
            quote.target,
            quote.value,
            quote.estimated_output,
        )
        return quote
