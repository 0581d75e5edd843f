"""Pure ABI encoding/decoding for the Aave V3 pool — no I/O."""
from __future__ import annotations

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from ...models import RawAccountData

GET_USER_ACCOUNT_DATA = "getUserAccountData(address)"
SUPPLY = "supply(address,uint256,address,uint16)"

_ACCOUNT_DATA_TYPES = ["uint256"] * 6


def _selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def encode_get_user_account_data(user: str) -> str:
    """Calldata for ``getUserAccountData(user)``."""
    args = encode(["address"], [to_checksum_address(user)])
    return "0x" + (_selector(GET_USER_ACCOUNT_DATA) + args).hex()


def decode_user_account_data(result: str) -> RawAccountData:
    """Decode the six uint256 words returned by ``getUserAccountData``.

    Raises:
        ValueError: when the return data is empty or malformed.
    """
    payload = bytes.fromhex(result[2:] if result.startswith("0x") else result)
    if len(payload) < 32 * 6:
        raise ValueError(f"Unexpected getUserAccountData return length {len(payload)}")
    (
        total_collateral_base,
        total_debt_base,
        available_borrows_base,
        current_liquidation_threshold,
        ltv,
        health_factor,
    ) = decode(_ACCOUNT_DATA_TYPES, payload)
    return RawAccountData(
        total_collateral_base=total_collateral_base,
        total_debt_base=total_debt_base,
        available_borrows_base=available_borrows_base,
        current_liquidation_threshold=current_liquidation_threshold,
        ltv=ltv,
        health_factor=health_factor,
    )


def encode_supply(asset: str, amount: int, on_behalf_of: str) -> str:
    """Calldata for ``supply(asset, amount, onBehalfOf, 0)``."""
    args = encode(
        ["address", "uint256", "address", "uint16"],
        [to_checksum_address(asset), amount, to_checksum_address(on_behalf_of), 0],
    )
    return "0x" + (_selector(SUPPLY) + args).hex()
