"""
Core bonding-curve algorithms
"""

from .fees import CREATION_FEE, PLATFORM_FEE_BPS, FeeSchedule, FeeSplit, compute_platform_fee, split_notional
from .pricing import BuyQuote, SellQuote, quote_buy, quote_sell, spot_price_e9
from .liquidity import AddLiquidityPlan, RemoveLiquidityPlan, plan_add_liquidity, plan_remove_liquidity
from .invariants import check_all
from .journal import TransferJournal

__all__ = [
    "CREATION_FEE",
    "PLATFORM_FEE_BPS",
    "FeeSchedule",
    "FeeSplit",
    "compute_platform_fee",
    "split_notional",
    "BuyQuote",
    "SellQuote",
    "quote_buy",
    "quote_sell",
    "spot_price_e9",
    "AddLiquidityPlan",
    "RemoveLiquidityPlan",
    "plan_add_liquidity",
    "plan_remove_liquidity",
    "check_all",
    "TransferJournal",
]
