# [TESTER] v1

from __future__ import annotations

from typing import Callable, Optional

import pytest

from curvelaunch.core.fees import CREATION_FEE
from curvelaunch.core.lifecycle import PoolLifecycle
from curvelaunch.integration.collaborators import InMemoryLedger, InMemoryMetadataRegistry
from curvelaunch.integration.config import ProtocolConfig
from curvelaunch.kernels.python.curve_swap_v1 import FeeTiming
from curvelaunch.state.accounts import AccountStore
from curvelaunch.state.balances import QUOTE_ASSET


ASSET_ID = "0x" + "ab" * 32
CREATOR = "creator"
PLATFORM = "platform-treasury"
TOTAL_SUPPLY = 1_000_000_000_000
NOW = 1_700_000_000


@pytest.fixture
def asset_id() -> str:
    return ASSET_ID


@pytest.fixture
def ledger() -> InMemoryLedger:
    ledger = InMemoryLedger()
    ledger.credit(CREATOR, QUOTE_ASSET, CREATION_FEE)
    return ledger


@pytest.fixture
def make_lifecycle(ledger: InMemoryLedger) -> Callable[..., PoolLifecycle]:
    def _make(
        *,
        config: Optional[ProtocolConfig] = None,
        store: Optional[AccountStore] = None,
        registry: Optional[InMemoryMetadataRegistry] = None,
    ) -> PoolLifecycle:
        return PoolLifecycle(
            store if store is not None else AccountStore(),
            ledger,
            registry if registry is not None else InMemoryMetadataRegistry(),
            config if config is not None else ProtocolConfig(platform_account=PLATFORM),
            clock=lambda: NOW,
        )

    return _make


def _launch(lc: PoolLifecycle) -> PoolLifecycle:
    lc.initialize(ASSET_ID, CREATOR, "Night Drive", "NDRV", "https://example.org/ndrv.json", TOTAL_SUPPLY)
    return lc


@pytest.fixture
def pool(make_lifecycle: Callable[..., PoolLifecycle]) -> PoolLifecycle:
    """A launched pool with the deployed (compat) fee timing."""
    return _launch(make_lifecycle())


@pytest.fixture
def strict_pool(make_lifecycle: Callable[..., PoolLifecycle]) -> PoolLifecycle:
    """A launched pool with fee-before-curve pricing."""
    return _launch(
        make_lifecycle(config=ProtocolConfig(platform_account=PLATFORM, fee_timing=FeeTiming.STRICT))
    )
