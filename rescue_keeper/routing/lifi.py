"""LI.FI contract-calls quoter.

The quote bridges/swaps the rescue token and then calls Aave ``supply`` on
behalf of the user. The response is untrusted; callers must validate the
execution target before using its calldata.
"""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import LiFiConfig
from ..models import Quote, QuoteRequest
from ..protocols.aave.parser import encode_supply

logger = logging.getLogger(__name__)

# Conservative gas limit for the destination Aave supply call.
SUPPLY_GAS_LIMIT = "500000"


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text)


def build_contract_calls_request(request: QuoteRequest, integrator: str) -> dict[str, Any]:
    """Request body for ``POST /quote/contractCalls``."""
    amount = str(request.from_amount)
    return {
        "fromChain": request.from_chain,
        "fromToken": request.from_token,
        "fromAddress": request.from_address,
        "toChain": request.to_chain,
        "toToken": request.to_token,
        "toAmount": amount,
        "integrator": integrator,
        "contractCalls": [
            {
                "fromAmount": amount,
                "fromTokenAddress": request.to_token,
                "toContractAddress": request.pool_address,
                "toContractCallData": encode_supply(
                    request.to_token, request.from_amount, request.beneficiary
                ),
                "toContractGasLimit": SUPPLY_GAS_LIMIT,
                "toApprovalAddress": request.pool_address,
            }
        ],
    }


def parse_quote(data: dict[str, Any]) -> Quote | None:
    """Extract the executable part of a LI.FI quote response."""
    tx = data.get("transactionRequest") or {}
    target = tx.get("to")
    call_data = tx.get("data")
    if not target or not call_data:
        return None
    return Quote(
        target=str(target),
        call_data=str(call_data),
        value=_to_int(tx.get("value")),
        estimated_output=str((data.get("estimate") or {}).get("toAmount", "")),
    )


class LiFiQuoter:
    """Fetch execution quotes from the LI.FI API."""

    def __init__(self, config: LiFiConfig) -> None:
        self.api_url = config.api_url
        self.integrator = config.integrator
        self.api_key = config.api_key
        self.timeout = config.timeout

    async def quote(self, request: QuoteRequest) -> Quote | None:
        url = f"{self.api_url}/quote/contractCalls"
        payload = build_contract_calls_request(request, self.integrator)
        headers = {"x-lifi-api-key": self.api_key} if self.api_key else {}

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                url,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.error(
                        "LI.FI quote failed: HTTP %s %s", response.status, body[:200]
                    )
                    return None
                data = await response.json()

        quote = parse_quote(data)
        if quote is None:
            logger.error("LI.FI response has no transactionRequest")
        return quote
