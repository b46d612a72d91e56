"""
Record types and bookkeeping tables for curvelaunch pools
"""

from .accounts import AccountStore, PoolAuthority, RecordRole, derive_record_key
from .balances import QUOTE_ASSET, BalanceTable
from .liquidity import LiquidityLedger
from .reserves import ReserveState

__all__ = [
    "AccountStore",
    "PoolAuthority",
    "RecordRole",
    "derive_record_key",
    "QUOTE_ASSET",
    "BalanceTable",
    "LiquidityLedger",
    "ReserveState",
]
