"""Invariant checkers for a pool's two records.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass). The lifecycle runs
`check_all()` on every post-state before requesting any transfer.

Note: these are per-pool record invariants. The k invariant is a transition
property and is enforced by the swap kernel, not here.
"""

from __future__ import annotations

from typing import Callable

from ..kernels.python.u64 import U64_MAX
from ..state.liquidity import LiquidityLedger
from ..state.reserves import (
    MAX_METADATA_URI_LEN,
    MAX_NAME_LEN,
    MAX_SYMBOL_LEN,
    ReserveState,
    encoded_len,
)


def inv_reserves_in_u64(r: ReserveState, lp: LiquidityLedger) -> bool:
    values = (
        r.total_supply,
        r.initial_reserve,
        r.quote_reserve,
        r.asset_reserve,
        r.units_traded,
        r.cumulative_quote_volume,
        lp.total_liquidity_units,
    )
    return all(0 <= v <= U64_MAX for v in values)


def inv_initial_reserve_within_supply(r: ReserveState, lp: LiquidityLedger) -> bool:
    return 0 <= r.initial_reserve <= r.total_supply


def inv_asset_reserve_within_minted(r: ReserveState, lp: LiquidityLedger) -> bool:
    return r.asset_reserve <= r.initial_reserve


def inv_display_fields_bounded(r: ReserveState, lp: LiquidityLedger) -> bool:
    return (
        encoded_len(r.name) <= MAX_NAME_LEN
        and encoded_len(r.symbol) <= MAX_SYMBOL_LEN
        and encoded_len(r.metadata_uri) <= MAX_METADATA_URI_LEN
    )


def inv_ledger_matches_pool(r: ReserveState, lp: LiquidityLedger) -> bool:
    return r.asset_id == lp.asset_id


def inv_updated_not_before_created(r: ReserveState, lp: LiquidityLedger) -> bool:
    return lp.updated_at >= r.created_at


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[ReserveState, LiquidityLedger], bool]] = {
    "inv_reserves_in_u64": inv_reserves_in_u64,
    "inv_initial_reserve_within_supply": inv_initial_reserve_within_supply,
    "inv_asset_reserve_within_minted": inv_asset_reserve_within_minted,
    "inv_display_fields_bounded": inv_display_fields_bounded,
    "inv_ledger_matches_pool": inv_ledger_matches_pool,
    "inv_updated_not_before_created": inv_updated_not_before_created,
}


def check_all(reserve: ReserveState, ledger: LiquidityLedger) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(reserve, ledger)
    ]
