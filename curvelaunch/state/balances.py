"""
Multi-asset custody balance tracking.

Implements BalanceTable[AccountId, AssetId] -> Amount
"""

from typing import Dict, Tuple


# Type aliases
AccountId = str  # wallet address, platform account, or a derived pool custody key
AssetId = str  # 32-byte hex string (0x...)
Amount = int  # Non-negative integer, bounded to u64 by the kernels

# The quote currency lives on the same ledger under a reserved asset id.
QUOTE_ASSET = "0x" + "00" * 32


class BalanceTable:
    """
    Balance table mapping (account, asset) -> amount.

    Note: this class stores balances in a plain dict. Callers that hash or
    serialize balances sort keys explicitly (see `curvelaunch/integration/snapshot.py`).
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[AccountId, AssetId], Amount] = {}

    def get(self, account: AccountId, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: AccountId, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: AccountId, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: AccountId, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def get_all_balances(self) -> Dict[Tuple[AccountId, AssetId], Amount]:
        """Return a copy of all balances."""
        return dict(self._balances)

    def total_supply(self, asset: AssetId) -> Amount:
        """Sum of all balances held in `asset`."""
        return sum(amount for (_, a), amount in self._balances.items() if a == asset)

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._balances.values())

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
