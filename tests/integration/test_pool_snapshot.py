# [TESTER] v1

from __future__ import annotations

import json

import pytest

from curvelaunch.core.lifecycle import PoolLifecycle
from curvelaunch.errors import AuthorityMismatch, PoolAlreadyExists
from curvelaunch.integration.collaborators import InMemoryLedger, InMemoryMetadataRegistry
from curvelaunch.integration.snapshot import (
    POOL_SNAPSHOT_VERSION,
    balances_from_snapshot,
    snapshot_from_store,
    store_from_snapshot,
)
from curvelaunch.state.balances import QUOTE_ASSET


BUYER = "buyer"


def _traded(pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str) -> None:
    ledger.credit("buyer", QUOTE_ASSET, 1_000_000)
    pool.buy(asset_id, "buyer", 1_000_000, 0)


def test_snapshot_round_trips_records_and_balances(
    pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str
) -> None:
    _traded(pool, ledger, asset_id)
    snap = snapshot_from_store(pool.store, balances=ledger.balances)
    assert snap.data["version"] == POOL_SNAPSHOT_VERSION

    # Survives a trip through plain JSON.
    data = json.loads(snap.canonical_bytes())
    store = store_from_snapshot(data)
    assert store.load(asset_id) == pool.store.load(asset_id)
    assert store.authority_for(asset_id).custody_account == pool.store.authority_for(asset_id).custody_account

    balances = balances_from_snapshot(data)
    assert balances.get_all_balances() == ledger.balances.get_all_balances()


def test_commitment_is_deterministic(pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str) -> None:
    first = snapshot_from_store(pool.store, balances=ledger.balances)
    again = snapshot_from_store(pool.store, balances=ledger.balances)
    assert first.commitment_hex() == again.commitment_hex()
    assert first.commitment_hex() == "0x" + first.commitment_bytes().hex()

    _traded(pool, ledger, asset_id)
    after = snapshot_from_store(pool.store, balances=ledger.balances)
    assert after.commitment_hex() != first.commitment_hex()


def test_snapshot_without_balances(pool: PoolLifecycle) -> None:
    snap = snapshot_from_store(pool.store)
    assert snap.data["balances"] == []
    assert len(snap.data["pools"]) == 1


def test_rejects_unsupported_versions(pool: PoolLifecycle) -> None:
    with pytest.raises(ValueError):
        snapshot_from_store(pool.store, version=0)
    data = dict(snapshot_from_store(pool.store).data)
    data["version"] = POOL_SNAPSHOT_VERSION + 1
    with pytest.raises(ValueError, match="unsupported snapshot version"):
        store_from_snapshot(data)


def test_rejects_malformed_entries(pool: PoolLifecycle) -> None:
    data = snapshot_from_store(pool.store).data
    with pytest.raises(ValueError, match="too many pools"):
        store_from_snapshot(data, max_pools=0)
    with pytest.raises(TypeError):
        store_from_snapshot({"version": 1, "pools": {"a": 1}})
    with pytest.raises(ValueError, match="duplicate balance entry"):
        balances_from_snapshot(
            {
                "version": 1,
                "balances": [
                    {"account": "a", "asset": QUOTE_ASSET, "amount": 1},
                    {"account": "a", "asset": QUOTE_ASSET, "amount": 2},
                ],
            }
        )
    with pytest.raises(ValueError, match="amount"):
        balances_from_snapshot({"version": 1, "balances": [{"account": "a", "asset": "b", "amount": -1}]})


def test_duplicate_pools_are_rejected(pool: PoolLifecycle) -> None:
    data = snapshot_from_store(pool.store).data
    doubled = dict(data, pools=data["pools"] * 2)
    with pytest.raises(PoolAlreadyExists):
        store_from_snapshot(doubled)


def _on(store, ledger: InMemoryLedger, pool: PoolLifecycle) -> PoolLifecycle:
    return PoolLifecycle(store, ledger, InMemoryMetadataRegistry(), pool.config, clock=pool.clock)


def test_unbound_restore_rejects_before_any_transfer(
    pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str
) -> None:
    restored = store_from_snapshot(snapshot_from_store(pool.store).data)
    lc = _on(restored, ledger, pool)
    ledger.credit(BUYER, QUOTE_ASSET, 1_000_000)
    before = restored.load(asset_id)
    balances = ledger.balances.get_all_balances()

    with pytest.raises(AuthorityMismatch):
        lc.buy(asset_id, BUYER, 1_000_000, 0)
    assert restored.load(asset_id) == before
    assert ledger.balances.get_all_balances() == balances


def test_restore_rebinds_custody_on_the_same_ledger(
    pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str
) -> None:
    restored = store_from_snapshot(snapshot_from_store(pool.store).data, ledger=ledger)
    lc = _on(restored, ledger, pool)
    ledger.credit(BUYER, QUOTE_ASSET, 1_000_000)

    bought = lc.buy(asset_id, BUYER, 1_000_000, 0)
    assert bought.asset_out == 9_090_909_091
    sold = lc.sell(asset_id, BUYER, bought.asset_out // 2, 0)
    assert sold.quote_to_seller > 0
    reserve, _ = restored.load(asset_id)
    assert reserve.units_traded == bought.asset_out - bought.asset_out // 2

    # The pre-restore authority no longer moves custody.
    with pytest.raises(AuthorityMismatch):
        pool.buy(asset_id, BUYER, 1_000, 0)


def test_restore_into_fresh_ledger_guards_custody(
    pool: PoolLifecycle, ledger: InMemoryLedger, asset_id: str
) -> None:
    data = json.loads(snapshot_from_store(pool.store, balances=ledger.balances).canonical_bytes())
    fresh = InMemoryLedger(balances_from_snapshot(data))
    restored = store_from_snapshot(data, ledger=fresh)
    custody = restored.authority_for(asset_id).custody_account

    with pytest.raises(PermissionError):
        fresh.transfer(asset_id, custody, "thief", 1)
    assert fresh.balance_of("thief", asset_id) == 0

    lc = _on(restored, fresh, pool)
    fresh.credit(BUYER, QUOTE_ASSET, 1_000_000)
    bought = lc.buy(asset_id, BUYER, 1_000_000, 0)
    lc.sell(asset_id, BUYER, bought.asset_out // 2, 0)
    assert fresh.balance_of(BUYER, asset_id) == bought.asset_out - bought.asset_out // 2
