"""
Liquidity share kernel (v1 semantics).

Liquidity units are denominated in quote units contributed. A deposit adds both
sides to the reserves and mints `quote_amount` units. A withdrawal of
`lp_share` units pays out the proportional slice of both reserves:

    quote_share = floor(quote_reserve * lp_share / total_liquidity_units)
    asset_share = floor(asset_reserve * lp_share / total_liquidity_units)

It is written as a small set of pure functions with explicit rounding rules.
"""

from __future__ import annotations

from dataclasses import dataclass

from ...errors import InsufficientLiquidity, InvalidAmount
from .u64 import checked_add, checked_div, checked_mul, checked_sub, require_u64


BPS_DENOM = 10_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class DepositResult:
    units_minted: int
    new_quote_reserve: int
    new_asset_reserve: int
    new_total_liquidity_units: int


@dataclass(frozen=True)
class WithdrawResult:
    quote_share: int
    asset_share: int
    new_quote_reserve: int
    new_asset_reserve: int
    new_total_liquidity_units: int


def deposit(
    *,
    quote_reserve: int,
    asset_reserve: int,
    total_liquidity_units: int,
    quote_amount: int,
    asset_amount: int,
) -> DepositResult:
    """Both sides are required; the deposit ratio is not enforced here."""
    for name, v in (
        ("quote_reserve", quote_reserve),
        ("asset_reserve", asset_reserve),
        ("total_liquidity_units", total_liquidity_units),
        ("quote_amount", quote_amount),
        ("asset_amount", asset_amount),
    ):
        _require_int(name, v)
    if quote_amount <= 0 or asset_amount <= 0:
        raise InvalidAmount(f"deposit amounts must be positive: ({quote_amount}, {asset_amount})")
    for name, v in (
        ("quote_reserve", quote_reserve),
        ("asset_reserve", asset_reserve),
        ("total_liquidity_units", total_liquidity_units),
        ("quote_amount", quote_amount),
        ("asset_amount", asset_amount),
    ):
        require_u64(name, v)

    return DepositResult(
        units_minted=quote_amount,
        new_quote_reserve=checked_add(quote_reserve, quote_amount, what="quote_reserve"),
        new_asset_reserve=checked_add(asset_reserve, asset_amount, what="asset_reserve"),
        new_total_liquidity_units=checked_add(
            total_liquidity_units, quote_amount, what="total_liquidity_units"
        ),
    )


def ratio_deviation_ok(
    *,
    quote_reserve: int,
    asset_reserve: int,
    quote_amount: int,
    asset_amount: int,
    max_deviation_bps: int,
) -> bool:
    """
    True when the deposit ratio is within `max_deviation_bps` of the pool ratio.

    Uses cross-multiplication to avoid division:
    ``|qa * ar - aa * qr| * 10000 <= max_bps * qa * ar``.
    An empty side on the pool accepts any ratio.
    """
    if quote_reserve == 0 or asset_reserve == 0:
        return True
    lhs = quote_amount * asset_reserve
    rhs = asset_amount * quote_reserve
    diff = lhs - rhs if lhs >= rhs else rhs - lhs
    return diff * BPS_DENOM <= max_deviation_bps * lhs


def withdraw(
    *,
    quote_reserve: int,
    asset_reserve: int,
    total_liquidity_units: int,
    lp_share: int,
) -> WithdrawResult:
    """
    Proportional withdrawal quote + post-state.

    Raises InvalidAmount (lp_share <= 0), InsufficientLiquidity (lp_share above
    the outstanding units) and MathOverflow (u64 multiply).
    """
    for name, v in (
        ("quote_reserve", quote_reserve),
        ("asset_reserve", asset_reserve),
        ("total_liquidity_units", total_liquidity_units),
        ("lp_share", lp_share),
    ):
        _require_int(name, v)
    if lp_share <= 0:
        raise InvalidAmount(f"lp_share must be positive: {lp_share}")
    if lp_share > total_liquidity_units:
        raise InsufficientLiquidity(
            f"lp_share {lp_share} exceeds total_liquidity_units {total_liquidity_units}"
        )
    for name, v in (
        ("quote_reserve", quote_reserve),
        ("asset_reserve", asset_reserve),
        ("total_liquidity_units", total_liquidity_units),
        ("lp_share", lp_share),
    ):
        require_u64(name, v)

    quote_share = checked_div(
        checked_mul(quote_reserve, lp_share, what="quote_share"), total_liquidity_units, what="quote_share"
    )
    asset_share = checked_div(
        checked_mul(asset_reserve, lp_share, what="asset_share"), total_liquidity_units, what="asset_share"
    )

    return WithdrawResult(
        quote_share=quote_share,
        asset_share=asset_share,
        new_quote_reserve=checked_sub(
            quote_reserve, quote_share, what="quote_reserve", error=InsufficientLiquidity
        ),
        new_asset_reserve=checked_sub(
            asset_reserve, asset_share, what="asset_reserve", error=InsufficientLiquidity
        ),
        new_total_liquidity_units=checked_sub(
            total_liquidity_units, lp_share, what="total_liquidity_units", error=InsufficientLiquidity
        ),
    )
