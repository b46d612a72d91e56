# [TESTER] v1

from __future__ import annotations

import pytest

from curvelaunch.core.liquidity import plan_add_liquidity, plan_remove_liquidity
from curvelaunch.errors import InsufficientLiquidity, InvalidAmount, InvalidPriceRatio
from curvelaunch.state.liquidity import LiquidityLedger
from curvelaunch.state.reserves import ReserveState


ASSET = "0x" + "22" * 32


def _records(quote_reserve: int = 20_000_000, asset_reserve: int = 50_000_000_000, units: int = 10_000_000):
    reserve = ReserveState(
        asset_id=ASSET,
        creator="creator",
        name="n",
        symbol="s",
        metadata_uri="u",
        total_supply=1_000_000_000_000,
        initial_reserve=100_000_000_000,
        quote_reserve=quote_reserve,
        asset_reserve=asset_reserve,
        created_at=100,
    )
    return reserve, LiquidityLedger(asset_id=ASSET, total_liquidity_units=units, updated_at=100)


def test_add_accepts_any_ratio_by_default() -> None:
    reserve, ledger = _records()
    plan = plan_add_liquidity(reserve, ledger, 4_000_000, 20_000_000_000, now=200)
    assert plan.units_minted == 4_000_000
    assert (plan.reserve.quote_reserve, plan.reserve.asset_reserve) == (24_000_000, 70_000_000_000)
    assert plan.ledger.total_liquidity_units == 14_000_000
    assert plan.ledger.updated_at == 200
    # Inputs are never mutated.
    assert reserve.quote_reserve == 20_000_000
    assert ledger.total_liquidity_units == 10_000_000


def test_add_enforces_tolerance_when_configured() -> None:
    reserve, ledger = _records()
    with pytest.raises(InvalidPriceRatio):
        plan_add_liquidity(reserve, ledger, 4_000_000, 20_000_000_000, now=200, max_ratio_deviation_bps=100)
    plan = plan_add_liquidity(reserve, ledger, 4_000_000, 10_000_000_000, now=200, max_ratio_deviation_bps=100)
    assert plan.reserve.asset_reserve == 60_000_000_000


def test_add_checks_amounts_before_ratio() -> None:
    reserve, ledger = _records()
    with pytest.raises(InvalidAmount):
        plan_add_liquidity(reserve, ledger, 0, 1, now=200, max_ratio_deviation_bps=0)


def test_remove_plan_is_proportional() -> None:
    reserve, ledger = _records(quote_reserve=24_000_000, asset_reserve=60_000_000_000, units=14_000_000)
    plan = plan_remove_liquidity(reserve, ledger, 7_000_000, now=300)
    assert (plan.quote_share, plan.asset_share) == (12_000_000, 30_000_000_000)
    assert (plan.reserve.quote_reserve, plan.reserve.asset_reserve) == (12_000_000, 30_000_000_000)
    assert plan.ledger.total_liquidity_units == 7_000_000
    assert plan.ledger.updated_at == 300


def test_remove_more_than_outstanding_units() -> None:
    reserve, ledger = _records()
    with pytest.raises(InsufficientLiquidity):
        plan_remove_liquidity(reserve, ledger, 10_000_001, now=300)
