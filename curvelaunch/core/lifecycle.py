"""
Pool lifecycle: initialization and the four public pool operations.

Every operation is one run-to-completion unit:

1. load the pool records once (all arithmetic uses these values);
2. price / plan the operation with the pure kernels;
3. check the post-state invariants (`check_all`);
4. check that the ledger binds pool custody to the pool authority and that
   custody actually holds every payout;
5. perform the collaborator requests through a `TransferJournal`;
6. commit both records together.

A failure in steps 1-4 leaves nothing to undo. A failure in step 5 or 6
replays the journal backwards, so either the whole operation lands or
nothing does.

``execute(params)`` is a dispatch entry point over the same operations that
returns an ``OperationResult`` instead of raising ``PoolError``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Callable, Optional, Union

from ..errors import (
    AuthorityMismatch,
    CollaboratorError,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidInput,
    InvariantViolation,
    PoolAlreadyExists,
    PoolError,
)
from ..integration.collaborators import MetadataRegistry, TokenLedger
from ..integration.config import ProtocolConfig
from ..kernels.python.u64 import checked_add, checked_div, checked_mul, require_u64
from ..state.accounts import AccountStore, PoolAuthority, canonical_asset_id
from ..state.balances import AccountId, Amount, AssetId
from ..state.liquidity import LiquidityLedger
from ..state.reserves import ReserveState, validate_display_fields
from .invariants import check_all
from .journal import TransferJournal
from .liquidity import plan_add_liquidity, plan_remove_liquidity
from .pricing import BuyQuote, SellQuote, quote_buy, quote_sell, spot_price_e9


logger = logging.getLogger(__name__)


def _unix_now() -> int:
    return int(time.time())


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InitializeReceipt:
    asset_id: AssetId
    creator: AccountId
    custody_account: AccountId
    initial_reserve: Amount
    quote_reserve: Amount
    total_liquidity_units: Amount
    creation_fee: Amount
    created_at: int


@dataclass(frozen=True)
class BuyReceipt:
    asset_id: AssetId
    buyer: AccountId
    quote_amount: Amount
    asset_out: Amount
    platform_fee: Amount
    quote_to_curve: Amount
    quote_reserve: Amount
    asset_reserve: Amount


@dataclass(frozen=True)
class SellReceipt:
    asset_id: AssetId
    seller: AccountId
    asset_amount: Amount
    quote_out: Amount
    platform_fee: Amount
    quote_to_seller: Amount
    quote_reserve: Amount
    asset_reserve: Amount


@dataclass(frozen=True)
class AddLiquidityReceipt:
    asset_id: AssetId
    provider: AccountId
    quote_amount: Amount
    asset_amount: Amount
    units_minted: Amount
    total_liquidity_units: Amount


@dataclass(frozen=True)
class RemoveLiquidityReceipt:
    asset_id: AssetId
    provider: AccountId
    lp_share: Amount
    quote_share: Amount
    asset_share: Amount
    total_liquidity_units: Amount


Receipt = Union[InitializeReceipt, BuyReceipt, SellReceipt, AddLiquidityReceipt, RemoveLiquidityReceipt]


@dataclass(frozen=True)
class PoolStats:
    """Read-side view of one pool, including how far custody has drifted from the record."""

    asset_id: AssetId
    symbol: str
    quote_reserve: Amount
    asset_reserve: Amount
    k: int
    spot_price_e9: int
    total_liquidity_units: Amount
    units_traded: Amount
    cumulative_quote_volume: Amount
    custody_quote_balance: Amount
    custody_asset_balance: Amount
    custody_quote_drift: int


# ---------------------------------------------------------------------------
# Dispatch types
# ---------------------------------------------------------------------------


@unique
class Operation(Enum):
    INITIALIZE = "initialize"
    BUY = "buy"
    SELL = "sell"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


@dataclass(frozen=True)
class OperationParams:
    """Parameters for an operation. Unused fields default to 0/""."""

    operation: Operation
    asset_id: AssetId
    actor: AccountId              # creator / buyer / seller / provider
    name: str = ""                # initialize
    symbol: str = ""              # initialize
    metadata_uri: str = ""        # initialize
    total_supply: int = 0         # initialize
    quote_amount: int = 0         # buy / add_liquidity
    asset_amount: int = 0         # sell / add_liquidity
    min_out: int = 0              # buy (min_asset_out) / sell (min_quote_out)
    lp_share: int = 0             # remove_liquidity


@dataclass(frozen=True)
class OperationResult:
    accepted: bool
    operation: Operation
    receipt: Optional[Receipt] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class PoolLifecycle:
    """
    Orchestrates pool creation and trading against the host collaborators.

    Args:
        store: Account storage holding every pool's two records
        ledger: Token ledger holding all balances (quote included)
        registry: Metadata registry for display fields
        config: Protocol constants and deployment settings
        clock: Returns the current unix timestamp
    """

    def __init__(
        self,
        store: AccountStore,
        ledger: TokenLedger,
        registry: MetadataRegistry,
        config: Optional[ProtocolConfig] = None,
        clock: Callable[[], int] = _unix_now,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.registry = registry
        self.config = config if config is not None else ProtocolConfig()
        self.clock = clock

    # -- initialize ---------------------------------------------------------

    def initialize(
        self,
        asset_id: AssetId,
        creator: AccountId,
        name: str,
        symbol: str,
        metadata_uri: str,
        total_supply: Amount,
    ) -> InitializeReceipt:
        """
        Create a pool for a new asset.

        The quote side starts at the configured seed amount. It is a virtual
        reserve: no quote currency enters custody at creation.

        Raises:
            InvalidInput: Display field too long or malformed asset id
            InvalidAmount: total_supply is zero or not an integer
            MathOverflow: total_supply * percent leaves u64
            PoolAlreadyExists: The asset already has a pool
            CollaboratorError: A mint, fee transfer or registration failed
        """
        cfg = self.config
        validate_display_fields(
            name,
            symbol,
            metadata_uri,
            max_name_len=cfg.max_name_len,
            max_symbol_len=cfg.max_symbol_len,
            max_uri_len=cfg.max_uri_len,
        )
        if not isinstance(total_supply, int) or isinstance(total_supply, bool):
            raise InvalidAmount("total_supply must be an integer")
        if total_supply <= 0:
            raise InvalidAmount(f"total_supply must be positive: {total_supply}")
        require_u64("total_supply", total_supply)
        initial_reserve = checked_div(
            checked_mul(total_supply, cfg.initial_reserve_percent, what="initial_reserve"),
            100,
            what="initial_reserve",
        )

        asset_id = canonical_asset_id(asset_id)
        if asset_id == cfg.quote_asset:
            raise InvalidInput("asset_id collides with the quote asset")
        if self.store.exists(asset_id):
            raise PoolAlreadyExists(f"pool already exists for asset {asset_id}")

        now = self.clock()
        reserve = ReserveState(
            asset_id=asset_id,
            creator=creator,
            name=name,
            symbol=symbol,
            metadata_uri=metadata_uri,
            total_supply=total_supply,
            initial_reserve=initial_reserve,
            quote_reserve=cfg.seed_quote_reserve,
            asset_reserve=initial_reserve,
            units_traded=0,
            cumulative_quote_volume=0,
            created_at=now,
        )
        ledger = LiquidityLedger(
            asset_id=asset_id,
            total_liquidity_units=cfg.seed_quote_reserve,
            updated_at=now,
        )
        self._require_invariants(reserve, ledger)

        journal = TransferJournal(f"initialize:{asset_id[:10]}")
        try:
            authority = journal.run(
                "create pool records",
                lambda: self.store.create(reserve, ledger),
                lambda: self.store.discard(authority),
            )
            journal.run(
                "bind custody account",
                lambda: self.ledger.register_custody(authority),
                lambda: self.ledger.release_custody(authority),
            )
            if cfg.creation_fee > 0:
                self._transfer(
                    journal, authority, cfg.quote_asset, creator, cfg.platform_account, cfg.creation_fee
                )
            # Supplies below 10 units floor to an empty reserve; nothing is minted.
            if initial_reserve > 0:
                journal.run(
                    f"mint {initial_reserve} to custody",
                    lambda: self.ledger.mint(asset_id, authority.custody_account, initial_reserve, authority),
                    lambda: self.ledger.burn(asset_id, authority.custody_account, initial_reserve, authority),
                )
            journal.run(
                "register metadata",
                lambda: self.registry.register(asset_id, name, symbol, metadata_uri),
                lambda: self.registry.unregister(asset_id),
            )
        except Exception as e:
            self._abort(journal, "initialize", e)

        logger.info(f"Pool created: {asset_id} ({symbol})")
        logger.info(f"Initial quote reserve: {cfg.seed_quote_reserve}, initial asset reserve: {initial_reserve}")
        return InitializeReceipt(
            asset_id=asset_id,
            creator=creator,
            custody_account=authority.custody_account,
            initial_reserve=initial_reserve,
            quote_reserve=cfg.seed_quote_reserve,
            total_liquidity_units=cfg.seed_quote_reserve,
            creation_fee=cfg.creation_fee,
            created_at=now,
        )

    # -- swaps --------------------------------------------------------------

    def preview_buy(self, asset_id: AssetId, quote_amount: Amount, min_asset_out: Amount = 0) -> BuyQuote:
        reserve, _ = self.store.load(asset_id)
        return quote_buy(
            reserve,
            quote_amount,
            min_asset_out,
            fee_bps=self.config.trade_fee_bps,
            fee_timing=self.config.fee_timing,
        )

    def preview_sell(self, asset_id: AssetId, asset_amount: Amount, min_quote_out: Amount = 0) -> SellQuote:
        reserve, _ = self.store.load(asset_id)
        return quote_sell(
            reserve,
            asset_amount,
            min_quote_out,
            fee_bps=self.config.trade_fee_bps,
            fee_timing=self.config.fee_timing,
        )

    def buy(self, asset_id: AssetId, buyer: AccountId, quote_amount: Amount, min_asset_out: Amount = 0) -> BuyReceipt:
        """
        Buy asset from the curve with `quote_amount` quote units (fee included).

        Raises:
            InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded,
            PoolNotFound, CollaboratorError
        """
        cfg = self.config
        reserve, ledger = self.store.load(asset_id)
        authority = self.store.authority_for(asset_id)
        quote = quote_buy(
            reserve, quote_amount, min_asset_out, fee_bps=cfg.trade_fee_bps, fee_timing=cfg.fee_timing
        )
        new_reserve = replace(
            reserve,
            quote_reserve=quote.new_quote_reserve,
            asset_reserve=quote.new_asset_reserve,
            units_traded=checked_add(reserve.units_traded, quote.asset_out, what="units_traded"),
            cumulative_quote_volume=checked_add(
                reserve.cumulative_quote_volume, quote_amount, what="cumulative_quote_volume"
            ),
        )
        self._require_invariants(new_reserve, ledger)
        self._require_custody_binding(authority)
        self._require_custody(authority, reserve.asset_id, quote.asset_out)

        journal = TransferJournal(f"buy:{reserve.asset_id[:10]}")
        try:
            self._transfer(
                journal, authority, cfg.quote_asset, buyer, authority.custody_account, quote.quote_to_curve
            )
            self._transfer(journal, authority, cfg.quote_asset, buyer, cfg.platform_account, quote.platform_fee)
            self._transfer(
                journal, authority, reserve.asset_id, authority.custody_account, buyer, quote.asset_out
            )
            self.store.commit(authority, new_reserve, ledger)
        except Exception as e:
            self._abort(journal, "buy", e)

        logger.info(f"Bought {quote.asset_out} tokens for {quote_amount} quote units")
        return BuyReceipt(
            asset_id=reserve.asset_id,
            buyer=buyer,
            quote_amount=quote_amount,
            asset_out=quote.asset_out,
            platform_fee=quote.platform_fee,
            quote_to_curve=quote.quote_to_curve,
            quote_reserve=new_reserve.quote_reserve,
            asset_reserve=new_reserve.asset_reserve,
        )

    def sell(self, asset_id: AssetId, seller: AccountId, asset_amount: Amount, min_quote_out: Amount = 0) -> SellReceipt:
        """
        Sell `asset_amount` back to the curve. The fee comes out of the quote output.

        Raises:
            InvalidAmount, MathOverflow, InsufficientLiquidity, SlippageExceeded,
            PoolNotFound, CollaboratorError
        """
        cfg = self.config
        reserve, ledger = self.store.load(asset_id)
        authority = self.store.authority_for(asset_id)
        quote = quote_sell(
            reserve, asset_amount, min_quote_out, fee_bps=cfg.trade_fee_bps, fee_timing=cfg.fee_timing
        )
        # units_traded saturates at zero: liquidity deposits can bring in units never bought.
        units_traded = reserve.units_traded - asset_amount if reserve.units_traded > asset_amount else 0
        new_reserve = replace(
            reserve,
            quote_reserve=quote.new_quote_reserve,
            asset_reserve=quote.new_asset_reserve,
            units_traded=units_traded,
            cumulative_quote_volume=checked_add(
                reserve.cumulative_quote_volume, quote.quote_out, what="cumulative_quote_volume"
            ),
        )
        self._require_invariants(new_reserve, ledger)
        self._require_custody_binding(authority)
        self._require_custody(authority, cfg.quote_asset, quote.quote_out)

        journal = TransferJournal(f"sell:{reserve.asset_id[:10]}")
        try:
            self._transfer(
                journal, authority, reserve.asset_id, seller, authority.custody_account, asset_amount
            )
            self._transfer(
                journal, authority, cfg.quote_asset, authority.custody_account, seller, quote.quote_to_seller
            )
            self._transfer(
                journal, authority, cfg.quote_asset, authority.custody_account, cfg.platform_account, quote.platform_fee
            )
            self.store.commit(authority, new_reserve, ledger)
        except Exception as e:
            self._abort(journal, "sell", e)

        logger.info(f"Sold {asset_amount} tokens for {quote.quote_to_seller} quote units")
        return SellReceipt(
            asset_id=reserve.asset_id,
            seller=seller,
            asset_amount=asset_amount,
            quote_out=quote.quote_out,
            platform_fee=quote.platform_fee,
            quote_to_seller=quote.quote_to_seller,
            quote_reserve=new_reserve.quote_reserve,
            asset_reserve=new_reserve.asset_reserve,
        )

    # -- liquidity ----------------------------------------------------------

    def add_liquidity(
        self, asset_id: AssetId, provider: AccountId, quote_amount: Amount, asset_amount: Amount
    ) -> AddLiquidityReceipt:
        """
        Deposit both sides into the pool; mints `quote_amount` liquidity units.

        Raises:
            InvalidAmount, MathOverflow, InvalidPriceRatio, PoolNotFound, CollaboratorError
        """
        cfg = self.config
        reserve, ledger = self.store.load(asset_id)
        authority = self.store.authority_for(asset_id)
        plan = plan_add_liquidity(
            reserve,
            ledger,
            quote_amount,
            asset_amount,
            now=self.clock(),
            max_ratio_deviation_bps=cfg.max_ratio_deviation_bps,
        )
        self._require_invariants(plan.reserve, plan.ledger)
        self._require_custody_binding(authority)

        journal = TransferJournal(f"add_liquidity:{reserve.asset_id[:10]}")
        try:
            self._transfer(journal, authority, cfg.quote_asset, provider, authority.custody_account, quote_amount)
            self._transfer(journal, authority, reserve.asset_id, provider, authority.custody_account, asset_amount)
            self.store.commit(authority, plan.reserve, plan.ledger)
        except Exception as e:
            self._abort(journal, "add_liquidity", e)

        logger.info(f"Added liquidity: {quote_amount} quote + {asset_amount} tokens")
        return AddLiquidityReceipt(
            asset_id=reserve.asset_id,
            provider=provider,
            quote_amount=quote_amount,
            asset_amount=asset_amount,
            units_minted=plan.units_minted,
            total_liquidity_units=plan.ledger.total_liquidity_units,
        )

    def remove_liquidity(self, asset_id: AssetId, provider: AccountId, lp_share: Amount) -> RemoveLiquidityReceipt:
        """
        Withdraw the proportional slice of both reserves for `lp_share` units.

        Raises:
            InvalidAmount, InsufficientLiquidity, MathOverflow, PoolNotFound, CollaboratorError
        """
        cfg = self.config
        reserve, ledger = self.store.load(asset_id)
        authority = self.store.authority_for(asset_id)
        plan = plan_remove_liquidity(reserve, ledger, lp_share, now=self.clock())
        self._require_invariants(plan.reserve, plan.ledger)
        self._require_custody_binding(authority)
        self._require_custody(authority, cfg.quote_asset, plan.quote_share)
        self._require_custody(authority, reserve.asset_id, plan.asset_share)

        journal = TransferJournal(f"remove_liquidity:{reserve.asset_id[:10]}")
        try:
            self._transfer(
                journal, authority, cfg.quote_asset, authority.custody_account, provider, plan.quote_share
            )
            self._transfer(
                journal, authority, reserve.asset_id, authority.custody_account, provider, plan.asset_share
            )
            self.store.commit(authority, plan.reserve, plan.ledger)
        except Exception as e:
            self._abort(journal, "remove_liquidity", e)

        logger.info(f"Removed liquidity: {plan.quote_share} quote + {plan.asset_share} tokens")
        return RemoveLiquidityReceipt(
            asset_id=reserve.asset_id,
            provider=provider,
            lp_share=lp_share,
            quote_share=plan.quote_share,
            asset_share=plan.asset_share,
            total_liquidity_units=plan.ledger.total_liquidity_units,
        )

    # -- read side ----------------------------------------------------------

    def pool_stats(self, asset_id: AssetId) -> PoolStats:
        reserve, ledger = self.store.load(asset_id)
        authority = self.store.authority_for(asset_id)
        custody_quote = self.ledger.balance_of(authority.custody_account, self.config.quote_asset)
        custody_asset = self.ledger.balance_of(authority.custody_account, reserve.asset_id)
        return PoolStats(
            asset_id=reserve.asset_id,
            symbol=reserve.symbol,
            quote_reserve=reserve.quote_reserve,
            asset_reserve=reserve.asset_reserve,
            k=reserve.get_constant_product(),
            spot_price_e9=spot_price_e9(reserve.quote_reserve, reserve.asset_reserve),
            total_liquidity_units=ledger.total_liquidity_units,
            units_traded=reserve.units_traded,
            cumulative_quote_volume=reserve.cumulative_quote_volume,
            custody_quote_balance=custody_quote,
            custody_asset_balance=custody_asset,
            custody_quote_drift=reserve.quote_reserve - custody_quote,
        )

    # -- dispatch -----------------------------------------------------------

    def execute(self, params: OperationParams) -> OperationResult:
        """Run one operation; a `PoolError` becomes a rejected result, anything else propagates."""
        handler = _DISPATCH.get(params.operation)
        if handler is None:
            return OperationResult(
                accepted=False,
                operation=params.operation,
                error_code=InvalidInput.code,
                error=f"unknown operation: {params.operation}",
            )
        try:
            receipt = handler(self, params)
        except PoolError as e:
            logger.info(f"{params.operation.value} rejected: {e.code}: {e}")
            return OperationResult(
                accepted=False, operation=params.operation, error_code=e.code, error=str(e)
            )
        return OperationResult(accepted=True, operation=params.operation, receipt=receipt)

    # -- helpers ------------------------------------------------------------

    def _transfer(
        self,
        journal: TransferJournal,
        authority: PoolAuthority,
        asset_id: AssetId,
        source: AccountId,
        destination: AccountId,
        amount: Amount,
    ) -> None:
        if amount == 0:
            return
        custody = authority.custody_account
        forward_auth = authority if source == custody else None
        back_auth = authority if destination == custody else None
        journal.run(
            f"transfer {amount} of {asset_id[:10]} {source} -> {destination}",
            lambda: self.ledger.transfer(asset_id, source, destination, amount, forward_auth),
            lambda: self.ledger.transfer(asset_id, destination, source, amount, back_auth),
        )

    def _require_invariants(self, reserve: ReserveState, ledger: LiquidityLedger) -> None:
        violations = check_all(reserve, ledger)
        if violations:
            raise InvariantViolation(violations)

    def _require_custody_binding(self, authority: PoolAuthority) -> None:
        # Undoing a deposit debits custody, so every operation needs the binding.
        if not self.ledger.controls_custody(authority):
            raise AuthorityMismatch(
                f"ledger does not bind custody {authority.custody_account[:10]} to pool {authority.asset_id[:10]}"
            )

    def _require_custody(self, authority: PoolAuthority, asset_id: AssetId, payout: Amount) -> None:
        held = self.ledger.balance_of(authority.custody_account, asset_id)
        if payout > held:
            raise InsufficientLiquidity(
                f"custody holds {held} of {asset_id[:10]}, payout needs {payout}"
            )

    @staticmethod
    def _abort(journal: TransferJournal, operation: str, cause: Exception) -> None:
        journal.rollback()
        if isinstance(cause, PoolError):
            raise cause
        raise CollaboratorError(f"{operation} failed: {cause}") from cause


def _run_initialize(lc: PoolLifecycle, p: OperationParams) -> Receipt:
    return lc.initialize(p.asset_id, p.actor, p.name, p.symbol, p.metadata_uri, p.total_supply)


def _run_buy(lc: PoolLifecycle, p: OperationParams) -> Receipt:
    return lc.buy(p.asset_id, p.actor, p.quote_amount, p.min_out)


def _run_sell(lc: PoolLifecycle, p: OperationParams) -> Receipt:
    return lc.sell(p.asset_id, p.actor, p.asset_amount, p.min_out)


def _run_add_liquidity(lc: PoolLifecycle, p: OperationParams) -> Receipt:
    return lc.add_liquidity(p.asset_id, p.actor, p.quote_amount, p.asset_amount)


def _run_remove_liquidity(lc: PoolLifecycle, p: OperationParams) -> Receipt:
    return lc.remove_liquidity(p.asset_id, p.actor, p.lp_share)


_DISPATCH: dict[Operation, Callable[[PoolLifecycle, OperationParams], Receipt]] = {
    Operation.INITIALIZE: _run_initialize,
    Operation.BUY: _run_buy,
    Operation.SELL: _run_sell,
    Operation.ADD_LIQUIDITY: _run_add_liquidity,
    Operation.REMOVE_LIQUIDITY: _run_remove_liquidity,
}
