"""
Per-pool reserve record.

One `ReserveState` exists per traded asset. It is created once at pool
initialization and replaced (never mutated in place) by every swap and
liquidity operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import InvalidInput
from .balances import AccountId, Amount, AssetId


MAX_NAME_LEN = 32
MAX_SYMBOL_LEN = 10
MAX_METADATA_URI_LEN = 200

SEED_QUOTE_RESERVE = 10_000_000  # virtual quote side, 0.01 at 9 decimals
INITIAL_RESERVE_PERCENT = 10
ASSET_DECIMALS = 9

_INT_FIELDS = (
    "total_supply",
    "initial_reserve",
    "quote_reserve",
    "asset_reserve",
    "units_traded",
    "cumulative_quote_volume",
    "created_at",
)
_STR_FIELDS = ("asset_id", "creator", "name", "symbol", "metadata_uri")


def encoded_len(value: str) -> int:
    """Length in UTF-8 bytes, the unit the ledger program bounds strings by."""
    return len(value.encode("utf-8"))


def validate_display_fields(
    name: str,
    symbol: str,
    metadata_uri: str,
    *,
    max_name_len: int = MAX_NAME_LEN,
    max_symbol_len: int = MAX_SYMBOL_LEN,
    max_uri_len: int = MAX_METADATA_URI_LEN,
) -> None:
    """
    Validate the immutable display strings of a new pool.

    Raises:
        InvalidInput: If a field is not a string or exceeds its byte bound
    """
    for field_name, value, bound in (
        ("name", name, max_name_len),
        ("symbol", symbol, max_symbol_len),
        ("metadata_uri", metadata_uri, max_uri_len),
    ):
        if not isinstance(value, str):
            raise InvalidInput(f"{field_name} must be a string")
        try:
            size = encoded_len(value)
        except UnicodeEncodeError as exc:
            raise InvalidInput(f"{field_name} is not valid UTF-8 text") from exc
        if size > bound:
            raise InvalidInput(f"{field_name} is {size} bytes, max {bound}")


@dataclass(frozen=True)
class ReserveState:
    """
    Two-sided reserve balances and cumulative statistics of one pool.

    Attributes:
        asset_id: Identity of the traded asset (pool key)
        creator: Account that initialized the pool
        name, symbol, metadata_uri: Display strings, fixed at creation
        total_supply: Nominal total supply fixed at creation
        initial_reserve: Asset-side reserve minted at creation
        quote_reserve: Current quote-side reserve
        asset_reserve: Current asset-side reserve
        units_traded: Net asset units bought out of the curve (floored at zero)
        cumulative_quote_volume: Quote notional across all trades
        created_at: Unix timestamp of creation
    """

    asset_id: AssetId
    creator: AccountId
    name: str
    symbol: str
    metadata_uri: str
    total_supply: Amount
    initial_reserve: Amount
    quote_reserve: Amount
    asset_reserve: Amount
    units_traded: Amount = 0
    cumulative_quote_volume: Amount = 0
    created_at: int = 0

    def __post_init__(self) -> None:
        for field_name in _STR_FIELDS:
            if not isinstance(getattr(self, field_name), str):
                raise TypeError(f"{field_name} must be a str")
        for field_name in _INT_FIELDS:
            v = getattr(self, field_name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{field_name} must be an int")
            if v < 0:
                raise ValueError(f"{field_name} must be non-negative: {v}")

    def get_constant_product(self) -> int:
        """k = quote_reserve * asset_reserve (unbounded; the kernels check u64)."""
        return self.quote_reserve * self.asset_reserve

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in _STR_FIELDS + _INT_FIELDS}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ReserveState":
        """Raises KeyError on missing fields and TypeError on mistyped ones."""
        kwargs: dict[str, Any] = {}
        for name in _STR_FIELDS:
            kwargs[name] = d[name]
        for name in _INT_FIELDS:
            val = d[name]
            if not isinstance(val, int) or isinstance(val, bool):
                raise TypeError(f"{name} must be an int, got {type(val).__name__}")
            kwargs[name] = int(val)
        return cls(**kwargs)

    def __repr__(self) -> str:
        return (
            f"ReserveState(asset_id={self.asset_id[:10]}..., symbol={self.symbol!r}, "
            f"reserves=(quote={self.quote_reserve}, asset={self.asset_reserve}), "
            f"units_traded={self.units_traded})"
        )
