"""
Bonding-curve pricing over a `ReserveState` snapshot.

This module is stateless: every function reads one immutable reserve record
and returns a typed quote carrying the post-trade reserves, so the caller can
commit exactly what was priced without re-reading anything.

Algorithm Design:
- Type: Constant product (x * y = k), u64-checked integer arithmetic
- Time Complexity: O(1) per quote
- Invariant: k_after >= k_before (STRICT), k_after > k_before - divisor (COMPAT)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..kernels.python.curve_swap_v1 import FeeTiming
from ..kernels.python.curve_swap_v1 import buy_exact_in as _kernel_buy_exact_in
from ..kernels.python.curve_swap_v1 import sell_exact_in as _kernel_sell_exact_in
from ..state.balances import Amount
from ..state.reserves import ReserveState
from .fees import BPS_DENOM, PLATFORM_FEE_BPS


PRICE_SCALE = 1_000_000_000  # quote per asset unit, 1e9 fixed point


@dataclass(frozen=True)
class BuyQuote:
    asset_out: Amount
    platform_fee: Amount
    quote_to_curve: Amount
    quote_amount: Amount
    new_quote_reserve: Amount
    new_asset_reserve: Amount
    spot_price_e9: int
    price_impact_bps: int
    k_before: int
    k_after: int


@dataclass(frozen=True)
class SellQuote:
    quote_out: Amount
    platform_fee: Amount
    quote_to_seller: Amount
    asset_amount: Amount
    new_quote_reserve: Amount
    new_asset_reserve: Amount
    spot_price_e9: int
    price_impact_bps: int
    k_before: int
    k_after: int


def spot_price_e9(quote_reserve: Amount, asset_reserve: Amount) -> int:
    """Marginal price in quote per asset unit, scaled by 1e9 (0 for an empty asset side)."""
    if asset_reserve == 0:
        return 0
    return (quote_reserve * PRICE_SCALE) // asset_reserve


def buy_price_impact_bps(quote_reserve: Amount, asset_reserve: Amount, quote_in: Amount, asset_out: Amount) -> int:
    """
    Execution price premium over spot, in bps: ``(qin/aout - q/a) / (q/a)``.

    Cross-multiplied: ``(qin * a - q * aout) * 10000 / (q * aout)``, floored at 0.
    """
    denominator = quote_reserve * asset_out
    if denominator == 0:
        return 0
    numerator = quote_in * asset_reserve - quote_reserve * asset_out
    return max(0, (numerator * BPS_DENOM) // denominator)


def sell_price_impact_bps(quote_reserve: Amount, asset_reserve: Amount, asset_in: Amount, quote_out: Amount) -> int:
    """Execution price discount under spot, in bps: ``(q/a - qout/ain) / (q/a)``."""
    denominator = quote_reserve * asset_in
    if denominator == 0:
        return 0
    numerator = quote_reserve * asset_in - quote_out * asset_reserve
    return max(0, (numerator * BPS_DENOM) // denominator)


def quote_buy(
    reserve: ReserveState,
    quote_amount: Amount,
    min_asset_out: Amount = 0,
    *,
    fee_bps: int = PLATFORM_FEE_BPS,
    fee_timing: FeeTiming = FeeTiming.COMPAT,
) -> BuyQuote:
    """
    Price a buy of `quote_amount` against `reserve`.

    Args:
        reserve: Pool snapshot read at the start of the invocation
        quote_amount: Quote units the buyer pays (fee included)
        min_asset_out: Slippage floor
        fee_bps: Platform fee in basis points
        fee_timing: Whether the fee is removed before (STRICT) or after (COMPAT) pricing

    Raises:
        InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded
    """
    res = _kernel_buy_exact_in(
        quote_reserve=reserve.quote_reserve,
        asset_reserve=reserve.asset_reserve,
        quote_amount=quote_amount,
        min_asset_out=min_asset_out,
        fee_bps=fee_bps,
        fee_timing=fee_timing,
    )
    return BuyQuote(
        asset_out=res.asset_out,
        platform_fee=res.platform_fee,
        quote_to_curve=res.quote_to_curve,
        quote_amount=res.gross_in,
        new_quote_reserve=res.new_quote_reserve,
        new_asset_reserve=res.new_asset_reserve,
        spot_price_e9=spot_price_e9(reserve.quote_reserve, reserve.asset_reserve),
        price_impact_bps=buy_price_impact_bps(
            reserve.quote_reserve, reserve.asset_reserve, res.gross_in, res.asset_out
        ),
        k_before=res.k_before,
        k_after=res.k_after,
    )


def quote_sell(
    reserve: ReserveState,
    asset_amount: Amount,
    min_quote_out: Amount = 0,
    *,
    fee_bps: int = PLATFORM_FEE_BPS,
    fee_timing: FeeTiming = FeeTiming.COMPAT,
) -> SellQuote:
    """
    Price a sell of `asset_amount` against `reserve`.

    The slippage floor applies to `quote_to_seller` (after the fee).

    Raises:
        InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded
    """
    res = _kernel_sell_exact_in(
        quote_reserve=reserve.quote_reserve,
        asset_reserve=reserve.asset_reserve,
        asset_amount=asset_amount,
        min_quote_out=min_quote_out,
        fee_bps=fee_bps,
        fee_timing=fee_timing,
    )
    return SellQuote(
        quote_out=res.quote_out,
        platform_fee=res.platform_fee,
        quote_to_seller=res.quote_to_seller,
        asset_amount=res.asset_in,
        new_quote_reserve=res.new_quote_reserve,
        new_asset_reserve=res.new_asset_reserve,
        spot_price_e9=spot_price_e9(reserve.quote_reserve, reserve.asset_reserve),
        price_impact_bps=sell_price_impact_bps(
            reserve.quote_reserve, reserve.asset_reserve, res.asset_in, res.quote_out
        ),
        k_before=res.k_before,
        k_after=res.k_after,
    )
