"""Aave V3 position reader over JSON-RPC."""
from __future__ import annotations

import logging

from ...models import RawAccountData
from ...rpc import EthRpcClient
from . import parser

logger = logging.getLogger(__name__)


class AavePositionReader:
    """Read ``getUserAccountData`` from an Aave V3 pool."""

    def __init__(self, client: EthRpcClient) -> None:
        self._client = client

    async def read(self, pool: str, user: str) -> RawAccountData:
        data = parser.encode_get_user_account_data(user)
        result = await self._client.eth_call(pool, data)
        raw = parser.decode_user_account_data(result)
        logger.debug(
            "getUserAccountData — user=%s collateralBase=%d debtBase=%d lt=%d hf=%d",
            user,
            raw.total_collateral_base,
            raw.total_debt_base,
            raw.current_liquidation_threshold,
            raw.health_factor,
        )
        return raw
