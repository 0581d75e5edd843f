"""Chain registry: Aave pools, stablecoin addresses and trusted execution targets."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .constants import STABLECOIN_DECIMALS, is_stablecoin
from .models import RescuePolicy, VerifiedStablecoin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    aave_pool: str
    explorer: str


MAINNET = 1
OPTIMISM = 10
BASE = 8453
ARBITRUM = 42161

CHAINS: dict[int, ChainInfo] = {
    MAINNET: ChainInfo(
        MAINNET, "Ethereum Mainnet",
        "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2", "https://etherscan.io",
    ),
    OPTIMISM: ChainInfo(
        OPTIMISM, "Optimism",
        "0x794a61358D6845594F94dc1DB02A252b5b4814aD", "https://optimistic.etherscan.io",
    ),
    BASE: ChainInfo(
        BASE, "Base",
        "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5", "https://basescan.org",
    ),
    ARBITRUM: ChainInfo(
        ARBITRUM, "Arbitrum One",
        "0x794a61358D6845594F94dc1DB02A252b5b4814aD", "https://arbiscan.io",
    ),
}

TOKEN_ADDRESSES: dict[int, dict[str, str]] = {
    MAINNET: {
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "DAI": "0x6B175474E89094C44Da98b954EedeBC5D44d93dD",
    },
    OPTIMISM: {
        "USDC": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        "USDT": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
        "DAI": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
    },
    BASE: {
        "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "DAI": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
    },
    ARBITRUM: {
        "USDC": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "USDT": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
        "DAI": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
    },
}

# LI.FI diamond; the only contract quote calldata may be sent to by default.
LIFI_DIAMOND = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"

DEFAULT_TRUSTED_TARGETS: dict[int, tuple[str, ...]] = {
    MAINNET: (LIFI_DIAMOND,),
    OPTIMISM: (LIFI_DIAMOND,),
    BASE: (LIFI_DIAMOND,),
    ARBITRUM: (LIFI_DIAMOND,),
}


def get_chain(chain_id: int) -> ChainInfo:
    try:
        return CHAINS[chain_id]
    except KeyError:
        raise ValueError(f"Unsupported chain: {chain_id}") from None


def is_chain_supported(chain_id: int) -> bool:
    return chain_id in CHAINS


def get_token_address(chain_id: int, symbol: str) -> str | None:
    return TOKEN_ADDRESSES.get(chain_id, {}).get(symbol.strip().upper())


def build_trusted_targets(
    extra: Mapping[int, Iterable[str]] | None = None,
) -> dict[int, frozenset[str]]:
    """Merge the default allow-list with configured additions, lower-cased."""
    merged: dict[int, set[str]] = {
        chain_id: {addr.lower() for addr in addrs}
        for chain_id, addrs in DEFAULT_TRUSTED_TARGETS.items()
    }
    for chain_id, addrs in (extra or {}).items():
        merged.setdefault(int(chain_id), set()).update(a.strip().lower() for a in addrs if a)
    return {chain_id: frozenset(addrs) for chain_id, addrs in merged.items()}


def select_stablecoin(policy: RescuePolicy, chain_id: int) -> VerifiedStablecoin | None:
    """First policy token that is a known stablecoin deployed on ``chain_id``."""
    for symbol in policy.allowed_tokens:
        if not is_stablecoin(symbol):
            logger.warning("Non-stablecoin %s in policy, skipping", symbol)
            continue
        address = get_token_address(chain_id, symbol)
        if not address:
            logger.debug("Token %s not deployed on chain %d", symbol, chain_id)
            continue
        decimals = STABLECOIN_DECIMALS.get(symbol.upper())
        if decimals is None:
            logger.warning("Unknown decimals for stablecoin %s, skipping", symbol)
            continue
        return VerifiedStablecoin(
            symbol=symbol.upper(), address=address, decimals=decimals, chain_id=chain_id
        )
    return None
