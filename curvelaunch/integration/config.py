"""
Protocol configuration.

`ProtocolConfig` carries every protocol constant (seed reserve, fees, display
bounds) plus the deployment-specific settings: the platform account receiving
fees, the quote asset id, the buy-side fee timing and the optional deposit
ratio tolerance. Defaults equal the deployed ledger program's constants.

A YAML file is a flat mapping of field names to values, for example::

    platform_account: treasury
    fee_timing: strict
    max_ratio_deviation_bps: 100
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.fees import BPS_DENOM, CREATION_FEE, PLATFORM_FEE_BPS, FeeSchedule
from ..kernels.python.curve_swap_v1 import FeeTiming
from ..kernels.python.u64 import U64_MAX
from ..state.balances import QUOTE_ASSET, AccountId, Amount, AssetId
from ..state.reserves import (
    ASSET_DECIMALS,
    INITIAL_RESERVE_PERCENT,
    MAX_METADATA_URI_LEN,
    MAX_NAME_LEN,
    MAX_SYMBOL_LEN,
    SEED_QUOTE_RESERVE,
)


logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_ACCOUNT = "platform"


@dataclass(frozen=True)
class ProtocolConfig:
    platform_account: AccountId = DEFAULT_PLATFORM_ACCOUNT
    quote_asset: AssetId = QUOTE_ASSET
    fee_timing: FeeTiming = FeeTiming.COMPAT
    max_ratio_deviation_bps: Optional[int] = None
    trade_fee_bps: int = PLATFORM_FEE_BPS
    creation_fee: Amount = CREATION_FEE
    seed_quote_reserve: Amount = SEED_QUOTE_RESERVE
    initial_reserve_percent: int = INITIAL_RESERVE_PERCENT
    asset_decimals: int = ASSET_DECIMALS
    max_name_len: int = MAX_NAME_LEN
    max_symbol_len: int = MAX_SYMBOL_LEN
    max_uri_len: int = MAX_METADATA_URI_LEN

    def __post_init__(self) -> None:
        if not isinstance(self.platform_account, str) or not self.platform_account:
            raise ValueError("platform_account must be a non-empty string")
        if not isinstance(self.quote_asset, str) or not self.quote_asset:
            raise ValueError("quote_asset must be a non-empty string")
        if not isinstance(self.fee_timing, FeeTiming):
            raise TypeError("fee_timing must be a FeeTiming")
        for name in (
            "trade_fee_bps",
            "creation_fee",
            "seed_quote_reserve",
            "initial_reserve_percent",
            "asset_decimals",
            "max_name_len",
            "max_symbol_len",
            "max_uri_len",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0 or v > U64_MAX:
                raise ValueError(f"{name} out of range: {v}")
        if self.trade_fee_bps > BPS_DENOM:
            raise ValueError(f"trade_fee_bps must be <= {BPS_DENOM}")
        for name, bound in (
            ("max_name_len", MAX_NAME_LEN),
            ("max_symbol_len", MAX_SYMBOL_LEN),
            ("max_uri_len", MAX_METADATA_URI_LEN),
        ):
            if getattr(self, name) > bound:
                raise ValueError(f"{name} cannot exceed the record bound {bound}")
        if self.seed_quote_reserve == 0:
            raise ValueError("seed_quote_reserve must be positive")
        if not (0 < self.initial_reserve_percent <= 100):
            raise ValueError("initial_reserve_percent must be in (0, 100]")
        if self.max_ratio_deviation_bps is not None:
            v = self.max_ratio_deviation_bps
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError("max_ratio_deviation_bps must be an int or None")
            if v < 0:
                raise ValueError("max_ratio_deviation_bps must be non-negative")

    @property
    def fees(self) -> FeeSchedule:
        return FeeSchedule(trade_fee_bps=self.trade_fee_bps, creation_fee=self.creation_fee)


_FIELDS = frozenset(ProtocolConfig.__dataclass_fields__)


def config_from_mapping(data: Mapping[str, Any]) -> ProtocolConfig:
    """
    Build a config from a plain mapping (parsed YAML / JSON).

    Raises:
        ValueError: On unknown keys or an unknown fee timing name
        TypeError: On mistyped values
    """
    if not isinstance(data, Mapping):
        raise TypeError("config must be a mapping")
    unknown = sorted(set(data) - _FIELDS)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    kwargs = dict(data)
    if "fee_timing" in kwargs and not isinstance(kwargs["fee_timing"], FeeTiming):
        raw = kwargs["fee_timing"]
        try:
            kwargs["fee_timing"] = FeeTiming(str(raw).lower())
        except ValueError as exc:
            raise ValueError(f"unknown fee_timing: {raw!r}") from exc
    return ProtocolConfig(**kwargs)


def config_to_dict(config: ProtocolConfig) -> dict[str, Any]:
    out = asdict(config)
    out["fee_timing"] = config.fee_timing.value
    return out


def load_config(path: Union[str, Path]) -> ProtocolConfig:
    """Load a `ProtocolConfig` from a YAML file. An empty file yields the defaults."""
    path = Path(path)
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    config = config_from_mapping(obj)
    logger.info(
        f"Loaded protocol config from {path} "
        f"(fee_timing={config.fee_timing.value}, platform={config.platform_account})"
    )
    return config
