"""
Pool state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into an `AccountStore` (and, optionally, ledger balances).
- Explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..state.accounts import AccountStore
from ..state.balances import BalanceTable
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.liquidity import LiquidityLedger
from ..state.reserves import ReserveState
from .collaborators import TokenLedger


POOL_SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Deterministic, versioned snapshot of every pool's records.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("pool_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("pool_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_store(
    store: AccountStore,
    *,
    balances: Optional[BalanceTable] = None,
    version: int = POOL_SNAPSHOT_VERSION,
) -> PoolSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    pools_entries = [
        {"reserve": reserve.to_dict(), "liquidity": ledger.to_dict()}
        for reserve, ledger in store.items()
    ]

    balances_entries: List[Dict[str, Any]] = []
    if balances is not None:
        balances_entries = [
            {"account": account, "asset": asset, "amount": int(amount)}
            for (account, asset), amount in balances.get_all_balances().items()
        ]
        balances_entries.sort(key=lambda e: (e["account"], e["asset"]))

    data: Dict[str, Any] = {
        "version": int(version),
        "pools": pools_entries,
        "balances": balances_entries,
    }
    return PoolSnapshot(version=version, data=data)


def _check_version(snapshot: Mapping[str, Any]) -> None:
    version = snapshot.get("version", POOL_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != POOL_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")


def store_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    max_pools: int = 50_000,
    ledger: Optional[TokenLedger] = None,
) -> AccountStore:
    """
    Rebuild an `AccountStore`.

    Authorities are issued afresh, so the ledger still holds custody bindings
    for the old ones (or none at all). Pass `ledger` to rebind every pool
    custody to the new authorities; an unbound pool rejects every operation.
    """
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")
    _check_version(snapshot)

    pools_entries = snapshot.get("pools") or []
    if not isinstance(pools_entries, list):
        raise TypeError("snapshot.pools must be a list")
    if len(pools_entries) > max_pools:
        raise ValueError(f"too many pools entries: {len(pools_entries)} > {max_pools}")

    store = AccountStore()
    for entry in pools_entries:
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.pools entries must be objects")
        reserve = ReserveState.from_dict(entry["reserve"])
        liquidity = LiquidityLedger.from_dict(entry["liquidity"])
        store.create(reserve, liquidity)
    if ledger is not None:
        bind_custody(store, ledger)
    return store


def bind_custody(store: AccountStore, ledger: TokenLedger) -> None:
    """Bind each pool custody account on `ledger` to the authority `store` issued."""
    for asset_id in store.asset_ids():
        ledger.register_custody(store.authority_for(asset_id), rebind=True)


def balances_from_snapshot(snapshot: Mapping[str, Any]) -> BalanceTable:
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")
    _check_version(snapshot)

    entries = snapshot.get("balances") or []
    if not isinstance(entries, list):
        raise TypeError("snapshot.balances must be a list")
    balances = BalanceTable()
    seen: set[tuple[str, str]] = set()
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.balances entries must be objects")
        account = entry.get("account")
        asset = entry.get("asset")
        amount = entry.get("amount")
        if not isinstance(account, str) or not account or not isinstance(asset, str) or not asset:
            raise ValueError("invalid balance entry (account/asset)")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError("invalid balance entry (amount)")
        key = (account, asset)
        if key in seen:
            raise ValueError("duplicate balance entry (account, asset)")
        seen.add(key)
        balances.set(account, asset, amount)
    return balances
