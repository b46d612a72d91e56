"""
Constant-product bonding-curve swap kernel (v1 semantics).

Buy (quote in, asset out) and sell (asset in, quote out) against a two-sided
reserve, with a platform fee in basis points and u64-checked arithmetic:

    k                = quote_reserve * asset_reserve
    buy:  new_quote  = quote_reserve + curve_in
          new_asset  = k / new_quote
          asset_out  = asset_reserve - new_asset
    sell: new_asset  = asset_reserve + asset_amount
          new_quote  = k / new_asset
          quote_out  = quote_reserve - new_quote
          fee        = floor(quote_out * fee_bps / 10_000)

Fee timing (buy side):
- COMPAT: `curve_in` is the full quote amount and the fee is computed after
  pricing, floor division. This is the deployed program's behavior; the
  recorded quote reserve grows by the full amount even though only the post-fee
  amount reaches custody.
- STRICT: the fee is removed first, `curve_in` is the post-fee amount, and the
  new opposite-side reserve is rounded up so `k` never decreases.

Check order follows the deployed program so the same input is rejected with
the same error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from ...errors import InsufficientLiquidity, InvalidAmount, InvariantViolation, SlippageExceeded
from .u64 import (
    checked_add,
    checked_div,
    checked_div_ceil,
    checked_mul,
    checked_sub,
    require_u64,
)


BPS_DENOM = 10_000


@unique
class FeeTiming(Enum):
    COMPAT = "compat"
    STRICT = "strict"


@dataclass(frozen=True)
class BuyResult:
    asset_out: int
    platform_fee: int
    quote_to_curve: int
    gross_in: int
    new_quote_reserve: int
    new_asset_reserve: int
    k_before: int
    k_after: int


@dataclass(frozen=True)
class SellResult:
    quote_out: int
    platform_fee: int
    quote_to_seller: int
    asset_in: int
    new_quote_reserve: int
    new_asset_reserve: int
    k_before: int
    k_after: int


def _require_positive_amount(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value <= 0:
        raise InvalidAmount(f"{name} must be positive: {value}")
    return require_u64(name, value)


def _require_floor(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative: {value}")
    return require_u64(name, value)


def _require_fee_bps(fee_bps: int) -> None:
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool):
        raise TypeError("fee_bps must be an int")
    if not (0 <= fee_bps <= BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")


def compute_platform_fee(*, amount: int, fee_bps: int) -> int:
    """
    Compute `fee = floor(amount * fee_bps / 10_000)` with a checked multiply.
    """
    require_u64("amount", amount)
    _require_fee_bps(fee_bps)
    return checked_div(checked_mul(amount, fee_bps, what="fee"), BPS_DENOM, what="fee")


def _divide(k: int, divisor: int, fee_timing: FeeTiming, *, what: str) -> int:
    if fee_timing is FeeTiming.STRICT:
        return checked_div_ceil(k, divisor, what=what)
    return checked_div(k, divisor, what=what)


def _check_k(k_before: int, k_after: int, divisor: int, fee_timing: FeeTiming) -> None:
    if fee_timing is FeeTiming.STRICT:
        ok = k_after >= k_before
    else:
        # Floor division may shave strictly less than one divisor off k.
        ok = k_after + divisor > k_before
    if not ok:
        raise InvariantViolation(["k_non_decreasing"])


def buy_exact_in(
    *,
    quote_reserve: int,
    asset_reserve: int,
    quote_amount: int,
    min_asset_out: int,
    fee_bps: int,
    fee_timing: FeeTiming = FeeTiming.COMPAT,
) -> BuyResult:
    """
    Exact-in buy quote + post-state.

    Raises InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded.
    """
    _require_positive_amount("quote_amount", quote_amount)
    _require_floor("min_asset_out", min_asset_out)
    require_u64("quote_reserve", quote_reserve)
    require_u64("asset_reserve", asset_reserve)
    _require_fee_bps(fee_bps)
    if quote_reserve == 0 or asset_reserve == 0:
        raise InsufficientLiquidity("cannot swap against an empty reserve")

    k_before = checked_mul(quote_reserve, asset_reserve, what="k")

    if fee_timing is FeeTiming.STRICT:
        platform_fee = compute_platform_fee(amount=quote_amount, fee_bps=fee_bps)
        quote_to_curve = checked_sub(quote_amount, platform_fee, what="quote_to_curve")
        if quote_to_curve == 0:
            raise InvalidAmount("quote_amount is zero after fees")
        curve_in = quote_to_curve
    else:
        curve_in = quote_amount

    new_quote_reserve = checked_add(quote_reserve, curve_in, what="new_quote_reserve")
    new_asset_reserve = _divide(k_before, new_quote_reserve, fee_timing, what="new_asset_reserve")
    asset_out = checked_sub(
        asset_reserve, new_asset_reserve, what="asset_out", error=InsufficientLiquidity
    )

    if asset_out == 0:
        raise InvalidAmount("asset_out is zero (trade too small)")
    if asset_out < min_asset_out:
        raise SlippageExceeded(f"asset_out {asset_out} < min_asset_out {min_asset_out}")
    if asset_out > asset_reserve:
        raise InsufficientLiquidity("asset_out exceeds asset_reserve")

    if fee_timing is FeeTiming.COMPAT:
        platform_fee = compute_platform_fee(amount=quote_amount, fee_bps=fee_bps)
        quote_to_curve = checked_sub(quote_amount, platform_fee, what="quote_to_curve")

    k_after = new_quote_reserve * new_asset_reserve
    _check_k(k_before, k_after, new_quote_reserve, fee_timing)

    return BuyResult(
        asset_out=asset_out,
        platform_fee=platform_fee,
        quote_to_curve=quote_to_curve,
        gross_in=quote_amount,
        new_quote_reserve=new_quote_reserve,
        new_asset_reserve=new_asset_reserve,
        k_before=k_before,
        k_after=k_after,
    )


def sell_exact_in(
    *,
    quote_reserve: int,
    asset_reserve: int,
    asset_amount: int,
    min_quote_out: int,
    fee_bps: int,
    fee_timing: FeeTiming = FeeTiming.COMPAT,
) -> SellResult:
    """
    Exact-in sell quote + post-state. The fee is always taken from `quote_out`.

    Raises InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded.
    """
    _require_positive_amount("asset_amount", asset_amount)
    _require_floor("min_quote_out", min_quote_out)
    require_u64("quote_reserve", quote_reserve)
    require_u64("asset_reserve", asset_reserve)
    _require_fee_bps(fee_bps)
    if quote_reserve == 0 or asset_reserve == 0:
        raise InsufficientLiquidity("cannot swap against an empty reserve")

    k_before = checked_mul(quote_reserve, asset_reserve, what="k")
    new_asset_reserve = checked_add(asset_reserve, asset_amount, what="new_asset_reserve")
    new_quote_reserve = _divide(k_before, new_asset_reserve, fee_timing, what="new_quote_reserve")
    quote_out = checked_sub(
        quote_reserve, new_quote_reserve, what="quote_out", error=InsufficientLiquidity
    )

    if quote_out == 0:
        raise InvalidAmount("quote_out is zero (trade too small)")
    if quote_out > quote_reserve:
        raise InsufficientLiquidity("quote_out exceeds quote_reserve")

    platform_fee = compute_platform_fee(amount=quote_out, fee_bps=fee_bps)
    quote_to_seller = checked_sub(quote_out, platform_fee, what="quote_to_seller")
    if quote_to_seller < min_quote_out:
        raise SlippageExceeded(f"quote_to_seller {quote_to_seller} < min_quote_out {min_quote_out}")

    k_after = new_quote_reserve * new_asset_reserve
    _check_k(k_before, k_after, new_asset_reserve, fee_timing)

    return SellResult(
        quote_out=quote_out,
        platform_fee=platform_fee,
        quote_to_seller=quote_to_seller,
        asset_in=asset_amount,
        new_quote_reserve=new_quote_reserve,
        new_asset_reserve=new_asset_reserve,
        k_before=k_before,
        k_after=k_after,
    )
