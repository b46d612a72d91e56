"""
Liquidity provisioning against a pool's reserves.

`plan_add_liquidity` and `plan_remove_liquidity` are pure: they read the two
pool records and return the post-state records together with the transfer
amounts, leaving the caller to request the transfers and commit.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from ..errors import InvalidPriceRatio
from ..kernels.python.lp_share_v1 import deposit, ratio_deviation_ok, withdraw
from ..state.balances import Amount
from ..state.liquidity import LiquidityLedger
from ..state.reserves import ReserveState


@dataclass(frozen=True)
class AddLiquidityPlan:
    quote_amount: Amount
    asset_amount: Amount
    units_minted: Amount
    reserve: ReserveState
    ledger: LiquidityLedger


@dataclass(frozen=True)
class RemoveLiquidityPlan:
    lp_share: Amount
    quote_share: Amount
    asset_share: Amount
    reserve: ReserveState
    ledger: LiquidityLedger


def plan_add_liquidity(
    reserve: ReserveState,
    ledger: LiquidityLedger,
    quote_amount: Amount,
    asset_amount: Amount,
    *,
    now: int,
    max_ratio_deviation_bps: Optional[int] = None,
) -> AddLiquidityPlan:
    """
    Plan a two-sided deposit.

    Any ratio is accepted unless `max_ratio_deviation_bps` is given, in which
    case a deposit whose quote/asset ratio strays further from the pool ratio
    raises InvalidPriceRatio.

    Raises:
        InvalidAmount: If either amount is not positive
        MathOverflow: If a reserve or the unit total leaves u64
        InvalidPriceRatio: If the ratio tolerance is set and exceeded
    """
    res = deposit(
        quote_reserve=reserve.quote_reserve,
        asset_reserve=reserve.asset_reserve,
        total_liquidity_units=ledger.total_liquidity_units,
        quote_amount=quote_amount,
        asset_amount=asset_amount,
    )
    if max_ratio_deviation_bps is not None and not ratio_deviation_ok(
        quote_reserve=reserve.quote_reserve,
        asset_reserve=reserve.asset_reserve,
        quote_amount=quote_amount,
        asset_amount=asset_amount,
        max_deviation_bps=max_ratio_deviation_bps,
    ):
        raise InvalidPriceRatio(
            f"deposit ratio {quote_amount}:{asset_amount} deviates more than "
            f"{max_ratio_deviation_bps} bps from pool ratio "
            f"{reserve.quote_reserve}:{reserve.asset_reserve}"
        )

    return AddLiquidityPlan(
        quote_amount=quote_amount,
        asset_amount=asset_amount,
        units_minted=res.units_minted,
        reserve=replace(
            reserve,
            quote_reserve=res.new_quote_reserve,
            asset_reserve=res.new_asset_reserve,
        ),
        ledger=replace(
            ledger,
            total_liquidity_units=res.new_total_liquidity_units,
            updated_at=now,
        ),
    )


def plan_remove_liquidity(
    reserve: ReserveState,
    ledger: LiquidityLedger,
    lp_share: Amount,
    *,
    now: int,
) -> RemoveLiquidityPlan:
    """
    Plan a proportional withdrawal of `lp_share` units.

    Raises:
        InvalidAmount: If lp_share is not positive
        InsufficientLiquidity: If lp_share exceeds the outstanding units
        MathOverflow: If reserve * lp_share leaves u64
    """
    res = withdraw(
        quote_reserve=reserve.quote_reserve,
        asset_reserve=reserve.asset_reserve,
        total_liquidity_units=ledger.total_liquidity_units,
        lp_share=lp_share,
    )
    return RemoveLiquidityPlan(
        lp_share=lp_share,
        quote_share=res.quote_share,
        asset_share=res.asset_share,
        reserve=replace(
            reserve,
            quote_reserve=res.new_quote_reserve,
            asset_reserve=res.new_asset_reserve,
        ),
        ledger=replace(
            ledger,
            total_liquidity_units=res.new_total_liquidity_units,
            updated_at=now,
        ),
    )
