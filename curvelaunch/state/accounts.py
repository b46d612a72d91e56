"""
Account storage for pool records.

Each pool owns exactly two records, a `ReserveState` and a `LiquidityLedger`,
stored under keys derived deterministically from a role tag and the asset id:

    key = H("curvelaunch:record:v1\\0" || role || 0x00 || asset_id_bytes)

so every pool's storage location is unique and recomputable without a
directory. Mutation is gated by a `PoolAuthority` capability issued once, at
creation, and scoped to that pool; its `custody_account` (the derived config
key) is the identity that holds the pool's reserves on the token ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Tuple

from ..errors import AuthorityMismatch, InvalidInput, PoolAlreadyExists, PoolNotFound
from .balances import AccountId, AssetId
from .canonical import canonical_hex_fixed_allow_0x, domain_sep_bytes, sha256_hex
from .liquidity import LiquidityLedger
from .reserves import ReserveState


class RecordRole(Enum):
    CONFIG = "token_config"
    LIQUIDITY = "lp_account"


def canonical_asset_id(asset_id: str) -> AssetId:
    """Canonicalize a 32-byte asset id; malformed ids are `InvalidInput`."""
    try:
        return canonical_hex_fixed_allow_0x(asset_id, nbytes=32, name="asset_id")
    except (TypeError, ValueError) as exc:
        raise InvalidInput(str(exc)) from exc


def derive_record_key(role: RecordRole, asset_id: AssetId) -> str:
    asset_hex = canonical_asset_id(asset_id)
    payload = (
        domain_sep_bytes("record")
        + role.value.encode("ascii")
        + b"\x00"
        + bytes.fromhex(asset_hex[2:])
    )
    return sha256_hex(payload)


@dataclass(frozen=True, eq=False)
class PoolAuthority:
    """
    Capability to mutate one pool's records and move its custody balances.

    Compared by identity: only the instance issued by the store is accepted.
    """

    asset_id: AssetId
    custody_account: AccountId


class AccountStore:
    """Keyed record table for all pools."""

    def __init__(self) -> None:
        self._records: Dict[str, object] = {}
        self._authorities: Dict[AssetId, PoolAuthority] = {}

    def create(self, reserve: ReserveState, ledger: LiquidityLedger) -> PoolAuthority:
        """
        Create both records of a new pool at once.

        Raises:
            PoolAlreadyExists: If either record key is already taken
            ValueError: If the two records do not belong to the same asset
        """
        if reserve.asset_id != ledger.asset_id:
            raise ValueError(
                f"record asset mismatch: {reserve.asset_id} != {ledger.asset_id}"
            )
        asset_id = canonical_asset_id(reserve.asset_id)
        if asset_id != reserve.asset_id:
            raise ValueError("records must carry the canonical asset id")

        config_key = derive_record_key(RecordRole.CONFIG, asset_id)
        lp_key = derive_record_key(RecordRole.LIQUIDITY, asset_id)
        if config_key in self._records or lp_key in self._records:
            raise PoolAlreadyExists(f"pool already exists for asset {asset_id}")

        self._records[config_key] = reserve
        self._records[lp_key] = ledger
        authority = PoolAuthority(asset_id=asset_id, custody_account=config_key)
        self._authorities[asset_id] = authority
        return authority

    def exists(self, asset_id: AssetId) -> bool:
        return derive_record_key(RecordRole.CONFIG, asset_id) in self._records

    def load(self, asset_id: AssetId) -> Tuple[ReserveState, LiquidityLedger]:
        """Load both records of a pool. Raises PoolNotFound."""
        asset_id = canonical_asset_id(asset_id)
        reserve = self._records.get(derive_record_key(RecordRole.CONFIG, asset_id))
        ledger = self._records.get(derive_record_key(RecordRole.LIQUIDITY, asset_id))
        if reserve is None or ledger is None:
            raise PoolNotFound(f"no pool for asset {asset_id}")
        assert isinstance(reserve, ReserveState) and isinstance(ledger, LiquidityLedger)
        return reserve, ledger

    def authority_for(self, asset_id: AssetId) -> PoolAuthority:
        """The pool's own capability (the program-derived identity)."""
        asset_id = canonical_asset_id(asset_id)
        authority = self._authorities.get(asset_id)
        if authority is None:
            raise PoolNotFound(f"no pool for asset {asset_id}")
        return authority

    def commit(self, authority: PoolAuthority, reserve: ReserveState, ledger: LiquidityLedger) -> None:
        """
        Replace both records of an existing pool.

        Raises:
            AuthorityMismatch: If `authority` was not issued for this pool
            PoolNotFound: If the pool does not exist
        """
        if reserve.asset_id != ledger.asset_id:
            raise ValueError(
                f"record asset mismatch: {reserve.asset_id} != {ledger.asset_id}"
            )
        issued = self._authorities.get(reserve.asset_id)
        if issued is None:
            raise PoolNotFound(f"no pool for asset {reserve.asset_id}")
        if authority is not issued:
            raise AuthorityMismatch(f"authority does not control pool {reserve.asset_id}")

        self._records[derive_record_key(RecordRole.CONFIG, reserve.asset_id)] = reserve
        self._records[derive_record_key(RecordRole.LIQUIDITY, reserve.asset_id)] = ledger

    def discard(self, authority: PoolAuthority) -> None:
        """
        Remove both records of a pool created in the current invocation.

        Only used to compensate a creation whose collaborator requests failed.
        """
        issued = self._authorities.get(authority.asset_id)
        if issued is None:
            raise PoolNotFound(f"no pool for asset {authority.asset_id}")
        if authority is not issued:
            raise AuthorityMismatch(f"authority does not control pool {authority.asset_id}")
        del self._records[derive_record_key(RecordRole.CONFIG, authority.asset_id)]
        del self._records[derive_record_key(RecordRole.LIQUIDITY, authority.asset_id)]
        del self._authorities[authority.asset_id]

    def asset_ids(self) -> List[AssetId]:
        return sorted(self._authorities)

    def items(self) -> Iterator[Tuple[ReserveState, LiquidityLedger]]:
        for asset_id in self.asset_ids():
            yield self.load(asset_id)

    def __len__(self) -> int:
        return len(self._authorities)

    def __repr__(self) -> str:
        return f"AccountStore({len(self)} pools)"
