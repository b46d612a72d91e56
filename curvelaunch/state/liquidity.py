"""
Per-pool liquidity-provision record.

Liquidity units are measured directly in quote-side units contributed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .balances import Amount, AssetId


@dataclass(frozen=True)
class LiquidityLedger:
    asset_id: AssetId
    total_liquidity_units: Amount
    updated_at: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.asset_id, str):
            raise TypeError("asset_id must be a str")
        for name in ("total_liquidity_units", "updated_at"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "total_liquidity_units": self.total_liquidity_units,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LiquidityLedger":
        return cls(
            asset_id=d["asset_id"],
            total_liquidity_units=d["total_liquidity_units"],
            updated_at=d["updated_at"],
        )
