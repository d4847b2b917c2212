"""
metawallet.vault.math — integer share accounting.

All conversions are float-free and use a virtual offset of one share and one
asset unit on both sides of the ratio:

    shares = assets * (supply + 1) // (total + 1)
    assets = shares * (total + 1) // (supply + 1)

The offset keeps an empty vault at a 1:1 price and makes a donation to an
empty vault unable to round later depositors down to zero shares. Mints and
payouts round down (in favour of the vault); the `*_up` variants round up and
are used when the caller names the output side (mint, withdraw).
"""

from __future__ import annotations

from metawallet.config import BPS_DENOMINATOR
from metawallet.errors import InvalidAmount

U256_MAX = 2**256 - 1


def require_u256(value: object, what: str = "amount") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not (0 <= value <= U256_MAX):
        raise InvalidAmount(what, value)
    return value


def mul_div(a: int, b: int, d: int, *, round_up: bool = False) -> int:
    if d <= 0:
        raise ZeroDivisionError("mul_div by zero")
    q, r = divmod(a * b, d)
    return q + 1 if (round_up and r) else q


def convert_to_shares(assets: int, total_assets: int, total_supply: int, *, round_up: bool = False) -> int:
    return mul_div(assets, total_supply + 1, total_assets + 1, round_up=round_up)


def convert_to_assets(shares: int, total_assets: int, total_supply: int, *, round_up: bool = False) -> int:
    return mul_div(shares, total_assets + 1, total_supply + 1, round_up=round_up)


def delta_bps(current: int, proposed: int) -> int:
    """|proposed - current| * 10000 // current  (current must be > 0)."""
    if current <= 0:
        raise ZeroDivisionError("delta_bps undefined for a zero current total")
    return abs(proposed - current) * BPS_DENOMINATOR // current


__all__ = [
    "U256_MAX",
    "require_u256",
    "mul_div",
    "convert_to_shares",
    "convert_to_assets",
    "delta_bps",
]
