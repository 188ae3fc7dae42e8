"""Denom resolution and base-unit formatting.

Maps opaque Injective denoms (``peggy0x…``, ``ibc/…``, ``factory/…``) to
human-readable token metadata. Resolution is a fixed fallback chain:

1. exact match in the static table of well-known denoms
2. ``factory/<creator>/<label>`` tokenfactory denoms
3. ``peggy0x<address>`` Ethereum-bridged ERC20 denoms
4. ``ibc/<hash>`` IBC vouchers
5. anything else, used verbatim
"""

from __future__ import annotations

from core.types import DenomMeta

USDT_DENOM = "peggy0xdAC17F958D2ee523a2206206994597C13D831ec7"
USDC_DENOM = "peggy0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI_DENOM = "peggy0x6B175474E89094C44Da98b954EedeAC495271d0F"

DEFAULT_DECIMALS = 18
IBC_DECIMALS = 6

KNOWN_DENOMS: dict[str, DenomMeta] = {
    "inj": DenomMeta(
        symbol="INJ",
        name="Injective",
        decimals=18,
        logo="https://static.alchemyapi.io/images/assets/7226.png",
    ),
    USDT_DENOM: DenomMeta(
        symbol="USDT",
        name="Tether USD",
        decimals=6,
        logo="https://static.alchemyapi.io/images/assets/825.png",
    ),
    USDC_DENOM: DenomMeta(
        symbol="USDC",
        name="USD Coin",
        decimals=6,
        logo="https://static.alchemyapi.io/images/assets/3408.png",
    ),
    "peggy0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2": DenomMeta(
        symbol="WETH",
        name="Wrapped Ether",
        decimals=18,
        logo="https://static.alchemyapi.io/images/assets/2396.png",
    ),
    "peggy0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599": DenomMeta(
        symbol="WBTC",
        name="Wrapped Bitcoin",
        decimals=8,
        logo="https://static.alchemyapi.io/images/assets/3717.png",
    ),
    "peggy0x514910771AF9Ca656af840dff83E8264EcF986CA": DenomMeta(symbol="LINK", name="Chainlink", decimals=18),
    "peggy0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984": DenomMeta(symbol="UNI", name="Uniswap", decimals=18),
    "peggy0x7D1AfA7B718fb893dB30A3aBc0Cfc608AaCfeBB0": DenomMeta(symbol="MATIC", name="Polygon", decimals=18),
    DAI_DENOM: DenomMeta(symbol="DAI", name="Dai Stablecoin", decimals=18),
    # IBC vouchers
    "ibc/C4CFF46FD6DE35CA4CF4CE031E643C8FDC9BA4B99AE598E9B0ED98FE3A2319F9": DenomMeta(
        symbol="ATOM",
        name="Cosmos Hub",
        decimals=6,
    ),
    "ibc/DD648F5D3CDA56D0D8D8820CF703D246B9FC4007725D8B38D23A21FF1A1477E3": DenomMeta(
        symbol="stINJ",
        name="Stride Staked INJ",
        decimals=18,
    ),
}


def resolve_denom(denom: str) -> DenomMeta:
    """Resolve a denom to its symbol, name and decimals.

    Never raises: unknown denoms fall through to a generic entry derived
    from the denom string itself.

    Args:
        denom: Raw denom string (e.g. ``peggy0xdAC17F958D2ee523a2206206994597C13D831ec7``)

    Returns:
        DenomMeta for the denom
    """
    known = KNOWN_DENOMS.get(denom)
    if known is not None:
        return known

    if denom.startswith("factory/"):
        label = denom.split("/")[-1]
        return DenomMeta(symbol=label.upper(), name=label, decimals=DEFAULT_DECIMALS)

    if denom.startswith("peggy0x"):
        address = denom[len("peggy"):]
        return DenomMeta(
            symbol=f"ERC20-{address[:6]}",
            name=f"ERC20 Token ({address[:10]}...)",
            decimals=DEFAULT_DECIMALS,
        )

    if denom.startswith("ibc/"):
        ibc_hash = denom[len("ibc/"):]
        return DenomMeta(
            symbol=f"IBC-{ibc_hash[:6]}",
            name=f"IBC Token ({ibc_hash[:10]}...)",
            decimals=IBC_DECIMALS,
        )

    return DenomMeta(symbol=denom.upper(), name=denom, decimals=DEFAULT_DECIMALS)


def to_human_amount(amount: str, decimals: int) -> str:
    """Convert an integer amount in base units to a decimal string.

    Pure string arithmetic: on-chain amounts routinely exceed the precision
    of a float.

    Args:
        amount: Integer string in base units (e.g. ``"1500000"``)
        decimals: Token decimals (e.g. 6)

    Returns:
        Decimal string without trailing fractional zeros (e.g. ``"1.5"``)

    Raises:
        ValueError: If decimals is negative
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    if not amount or amount == "0":
        return "0"
    if decimals == 0:
        return amount

    padded = amount.rjust(decimals + 1, "0")
    int_part = padded[:-decimals] or "0"
    frac_part = padded[-decimals:].rstrip("0")
    return f"{int_part}.{frac_part}" if frac_part else int_part
