"""
Platform fee model (deterministic, integer-only).

Two fees exist:
- a trade fee in basis points, taken from the quote-side notional of every
  buy (input) and sell (output), floor rounding;
- a fixed creation fee paid once by the initializer of a pool.

Both go to the platform account. Nothing is retained by the curve.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..kernels.python.curve_swap_v1 import BPS_DENOM
from ..kernels.python.curve_swap_v1 import compute_platform_fee as _kernel_compute_platform_fee
from ..kernels.python.u64 import U64_MAX, checked_sub
from ..state.balances import Amount


PLATFORM_FEE_BPS = 25  # 0.25%
CREATION_FEE = 20_000_000


@dataclass(frozen=True)
class FeeSchedule:
    trade_fee_bps: int = PLATFORM_FEE_BPS
    creation_fee: Amount = CREATION_FEE

    def __post_init__(self) -> None:
        for name, v in (("trade_fee_bps", self.trade_fee_bps), ("creation_fee", self.creation_fee)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if not (0 <= self.trade_fee_bps <= BPS_DENOM):
            raise ValueError(f"trade_fee_bps must be in [0, {BPS_DENOM}]: {self.trade_fee_bps}")
        if not (0 <= self.creation_fee <= U64_MAX):
            raise ValueError(f"creation_fee must be a u64: {self.creation_fee}")


@dataclass(frozen=True)
class FeeSplit:
    gross: Amount
    fee: Amount
    net: Amount

    def __post_init__(self) -> None:
        if self.fee + self.net != self.gross:
            raise AssertionError("fee split does not conserve the gross amount")


def compute_platform_fee(notional: Amount, fee_bps: int = PLATFORM_FEE_BPS) -> Amount:
    """
    Deterministic fee computation (floor rounding).

        fee = floor(notional * fee_bps / 10_000)

    Raises MathOverflow when the intermediate product leaves the u64 domain.
    """
    return _kernel_compute_platform_fee(amount=notional, fee_bps=fee_bps)


def split_notional(notional: Amount, fee_bps: int = PLATFORM_FEE_BPS) -> FeeSplit:
    """Split a quote notional into (fee, net) with `fee + net == notional`."""
    fee = compute_platform_fee(notional, fee_bps)
    return FeeSplit(gross=notional, fee=fee, net=checked_sub(notional, fee, what="net"))
