"""Injective address helpers.

An ``inj1…`` bech32 address wraps the same 20 bytes as the account's
Ethereum-style address. Sub-account ids append a 12-byte, zero-padded
sub-account index to that address.
"""

from __future__ import annotations

from bech32 import bech32_decode, convertbits

from core.errors import InvalidAddressError

INJECTIVE_HRP = "inj"
ADDRESS_BYTES = 20
SUBACCOUNT_INDEX_HEX_LEN = 24


def to_ethereum_address(address: str) -> str:
    """Decode an ``inj1…`` address to its lower-case ``0x`` hex form.

    Raises:
        InvalidAddressError: If the address is not a valid Injective bech32 address
    """
    hrp, data = bech32_decode(address)
    if hrp is None or data is None:
        raise InvalidAddressError(f"Invalid Injective address: {address}")
    if hrp != INJECTIVE_HRP:
        raise InvalidAddressError(f"Unexpected address prefix '{hrp}' in {address}")

    decoded = convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != ADDRESS_BYTES:
        raise InvalidAddressError(f"Invalid Injective address payload: {address}")

    return "0x" + bytes(decoded).hex()


def subaccount_id(address: str, index: int = 0) -> str:
    """Derive the sub-account id for ``address`` at ``index`` (default sub-account is 0).

    Raises:
        InvalidAddressError: If the address cannot be decoded
    """
    if index < 0:
        raise ValueError(f"subaccount index must be non-negative, got {index}")
    return to_ethereum_address(address) + format(index, "x").zfill(SUBACCOUNT_INDEX_HEX_LEN)
