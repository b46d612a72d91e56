"""
External collaborators of the pool lifecycle.

The lifecycle talks to two systems it does not own:

- a token ledger that holds every balance (the quote currency included, under
  the reserved asset id `QUOTE_ASSET`) and performs mint / burn / transfer;
- a metadata registry that attaches display name, symbol and URI to an asset.

Both are defined as Protocols so a host can plug in its own implementation.
The in-memory implementations below back the tests and local simulation.

Custody rule: an account registered as a pool's custody can only be debited
(or minted into for that pool's asset) with the exact `PoolAuthority` the
account store issued for that pool. Debits from any other account are assumed
to be already authorized by the host.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable

from ..state.accounts import PoolAuthority
from ..state.balances import QUOTE_ASSET, AccountId, Amount, AssetId, BalanceTable


@runtime_checkable
class TokenLedger(Protocol):
    """Asset sub-ledger: balances, mint, burn and transfer."""

    def register_custody(self, authority: PoolAuthority, *, rebind: bool = False) -> None:
        """
        Bind `authority.custody_account` to the pool that owns it.

        `rebind` replaces a stale binding of the same pool, as after a restore.
        """
        ...

    def controls_custody(self, authority: PoolAuthority) -> bool:
        """True if custody debits are accepted under `authority`."""
        ...

    def release_custody(self, authority: PoolAuthority) -> None:
        ...

    def mint(self, asset_id: AssetId, destination: AccountId, amount: Amount, authority: PoolAuthority) -> None:
        """Create `amount` new units of `asset_id` in `destination`."""
        ...

    def burn(self, asset_id: AssetId, source: AccountId, amount: Amount, authority: PoolAuthority) -> None:
        """Destroy `amount` units held by `source` (the inverse of mint)."""
        ...

    def transfer(
        self,
        asset_id: AssetId,
        source: AccountId,
        destination: AccountId,
        amount: Amount,
        authority: Optional[PoolAuthority] = None,
    ) -> None:
        """Move `amount` units; debiting a custody account requires its authority."""
        ...

    def balance_of(self, account: AccountId, asset_id: AssetId) -> Amount:
        ...


@dataclass(frozen=True)
class AssetMetadata:
    asset_id: AssetId
    name: str
    symbol: str
    uri: str


@runtime_checkable
class MetadataRegistry(Protocol):
    """Display metadata attached to an asset once, at pool creation."""

    def register(self, asset_id: AssetId, name: str, symbol: str, uri: str) -> None:
        ...

    def unregister(self, asset_id: AssetId) -> None:
        """Remove a registration (used only to compensate a failed creation)."""
        ...

    def get(self, asset_id: AssetId) -> Optional[AssetMetadata]:
        ...


class InMemoryLedger:
    """
    `TokenLedger` over a `BalanceTable`.

    Raises ValueError on insufficient balance or a non-positive amount and
    PermissionError on a custody debit without the matching authority.
    """

    def __init__(self, balances: Optional[BalanceTable] = None) -> None:
        self.balances = balances if balances is not None else BalanceTable()
        self._custody: Dict[AccountId, PoolAuthority] = {}

    def register_custody(self, authority: PoolAuthority, *, rebind: bool = False) -> None:
        """Declare `authority.custody_account` as pool custody."""
        existing = self._custody.get(authority.custody_account)
        if existing is not None and existing is not authority:
            if not rebind:
                raise PermissionError(f"custody {authority.custody_account} already registered")
            if existing.asset_id != authority.asset_id:
                raise PermissionError(f"custody {authority.custody_account} belongs to {existing.asset_id}")
        self._custody[authority.custody_account] = authority

    def controls_custody(self, authority: PoolAuthority) -> bool:
        return self._custody.get(authority.custody_account) is authority

    def release_custody(self, authority: PoolAuthority) -> None:
        if self._custody.get(authority.custody_account) is not authority:
            raise PermissionError(f"custody {authority.custody_account} is not bound to this authority")
        del self._custody[authority.custody_account]

    def credit(self, account: AccountId, asset_id: AssetId, amount: Amount) -> None:
        """Fund an account from outside the system (deposits, faucets, tests)."""
        self._require_amount(amount)
        self.balances.add(account, asset_id, amount)

    def mint(self, asset_id: AssetId, destination: AccountId, amount: Amount, authority: PoolAuthority) -> None:
        self._require_amount(amount)
        if asset_id == QUOTE_ASSET or authority.asset_id != asset_id:
            raise PermissionError(f"authority for {authority.asset_id} cannot mint {asset_id}")
        self.balances.add(destination, asset_id, amount)

    def burn(self, asset_id: AssetId, source: AccountId, amount: Amount, authority: PoolAuthority) -> None:
        self._require_amount(amount)
        if authority.asset_id != asset_id:
            raise PermissionError(f"authority for {authority.asset_id} cannot burn {asset_id}")
        self._require_debit_authority(source, authority)
        self.balances.subtract(source, asset_id, amount)

    def transfer(
        self,
        asset_id: AssetId,
        source: AccountId,
        destination: AccountId,
        amount: Amount,
        authority: Optional[PoolAuthority] = None,
    ) -> None:
        self._require_amount(amount)
        self._require_debit_authority(source, authority)
        self.balances.subtract(source, asset_id, amount)
        self.balances.add(destination, asset_id, amount)

    def balance_of(self, account: AccountId, asset_id: AssetId) -> Amount:
        return self.balances.get(account, asset_id)

    def supply_of(self, asset_id: AssetId) -> Amount:
        return self.balances.total_supply(asset_id)

    def _require_debit_authority(self, source: AccountId, authority: Optional[PoolAuthority]) -> None:
        required = self._custody.get(source)
        if required is not None and authority is not required:
            raise PermissionError(f"debit of custody {source} requires its pool authority")

    @staticmethod
    def _require_amount(amount: Amount) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError("amount must be an int")
        if amount <= 0:
            raise ValueError(f"amount must be positive: {amount}")

    def __repr__(self) -> str:
        return f"InMemoryLedger({self.balances!r}, {len(self._custody)} custody accounts)"


class InMemoryMetadataRegistry:
    def __init__(self) -> None:
        self._entries: Dict[AssetId, AssetMetadata] = {}

    def register(self, asset_id: AssetId, name: str, symbol: str, uri: str) -> None:
        if asset_id in self._entries:
            raise ValueError(f"metadata already registered for {asset_id}")
        self._entries[asset_id] = AssetMetadata(asset_id=asset_id, name=name, symbol=symbol, uri=uri)

    def unregister(self, asset_id: AssetId) -> None:
        if self._entries.pop(asset_id, None) is None:
            raise KeyError(asset_id)

    def get(self, asset_id: AssetId) -> Optional[AssetMetadata]:
        return self._entries.get(asset_id)

    def __len__(self) -> int:
        return len(self._entries)
