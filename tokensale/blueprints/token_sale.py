import logging
from typing import NamedTuple, Optional

from tokensale import events
from tokensale.blueprint import Blueprint, public, view
from tokensale.blueprints import allowlist, reservations
from tokensale.blueprints.ledger import SaleLedger
from tokensale.blueprints.phase import (
    PHASE_RULES,
    Phase,
    has_ended,
    is_main_sale_running,
    is_pre_sale_running,
    is_private_sale_running,
    is_token_sale_running,
    next_phase,
)
from tokensale.blueprints.pricing import PricingEngine
from tokensale.blueprints.token import SaleToken
from tokensale.conf.asl import TOKEN_NAME, TOKEN_SYMBOL
from tokensale.conf.settings import SaleSettings
from tokensale.events import EventLog
from tokensale.exception import (
    AlreadyFinished,
    BelowMinimum,
    CapExceeded,
    GasPriceTooHigh,
    InvalidParameters,
    NotKyced,
    NotPaused,
    NotRunning,
    Paused,
    PendingReservations,
    PrematureFinish,
    ReservationsClosed,
    Unauthorized,
)
from tokensale.funds import FundsForwarder, NativeBalances
from tokensale.types import BASIS_POINTS, Address, Amount, Context, to_address
from tokensale.utils import safe_math

logger = logging.getLogger(__name__)


class SaleInfo(NamedTuple):
    """General sale information."""

    phase: int
    paused: bool
    tokens_sold: int
    tokens_reserved: int
    total_supply: int
    vault_wallet: str
    airdrop_wallet: Optional[str]
    kyc_wallet: str
    max_tx_gas_price: int


class TokenSale(Blueprint):
    """Token sale with KYC, bonus tiers, referrals and pre-sale reservations.

    State Variables:
        owner: Sale administrator
        vault_wallet: Receives every purchase and the company reserve
        airdrop_wallet: Receives the unsold main-sale tokens (vault when unset)
        kyc_wallet: Manager allowed to approve wallets
        max_tx_gas_price: Purchases declaring a higher gas price are rejected
        phase: Current phase of the sale
        paused: Purchases are rejected while set
        ledger: Sale totals and per-wallet records
        token: The token issued by the sale
    """

    # Access control
    owner: Address  # Sale administrator
    vault_wallet: Address  # Collects purchases and the company reserve
    airdrop_wallet: Optional[Address]  # Collects the airdrop pool
    kyc_wallet: Address  # KYC manager
    max_tx_gas_price: int  # Highest gas price accepted on a purchase

    # Sale state
    phase: Phase
    paused: bool

    # Accounting
    ledger: SaleLedger  # Totals and per-wallet records
    token: SaleToken  # Token minted by the sale

    _owned = ("token",)

    def __init__(
        self,
        ctx: Context,
        settings: SaleSettings,
        *,
        funds: Optional[FundsForwarder] = None,
        event_log: Optional[EventLog] = None,
        address: Optional[Address] = None,
        token_address: Optional[Address] = None,
    ) -> None:
        if not isinstance(settings, SaleSettings):
            raise InvalidParameters("settings must be a SaleSettings instance")
        super().__init__(event_log=event_log, address=address)

        self.settings = settings
        self.pricing = PricingEngine(settings)
        self.funds = funds if funds is not None else NativeBalances()

        self.owner = to_address(ctx.caller_id)
        self.vault_wallet = settings.vault_wallet
        self.airdrop_wallet = settings.airdrop_wallet
        self.kyc_wallet = settings.kyc_wallet
        self.max_tx_gas_price = settings.max_tx_gas_price

        self.phase = Phase.PRIVATE
        self.paused = False
        self.ledger = SaleLedger()

        self.token = SaleToken(
            self.address,
            name=TOKEN_NAME,
            symbol=TOKEN_SYMBOL,
            event_log=self.event_log,
            address=token_address,
        )

    # Access control

    def _only_owner(self, ctx: Context) -> None:
        if ctx.caller_id != self.owner:
            raise Unauthorized("Only owner can call this method")

    def _only_kyc_manager(self, ctx: Context) -> None:
        if ctx.caller_id != self.kyc_wallet:
            raise Unauthorized("Only the KYC manager can call this method")

    def _token_ctx(self, ctx: Context) -> Context:
        return Context(caller_id=self.address, timestamp=ctx.timestamp)

    def _mint(self, ctx: Context, to: Address, amount: int) -> None:
        self.token.mint(self._token_ctx(ctx), to, amount)

    # Purchases

    @public(allow_value=True)
    def buy_tokens(self, ctx: Context, referrer: Optional[Address] = None) -> Amount:
        """Buy tokens with the value attached to the call.

        `referrer` is only used when the buyer has no referrer yet. It is
        bound when it is an approved wallet other than the buyer.

        Returns:
            The amount of tokens credited to the buyer.
        """
        return self._buy(ctx, referrer)

    @public(allow_value=True)
    def receive(self, ctx: Context) -> Amount:
        """Plain value transfer to the sale. Same as `buy_tokens` without a referrer."""
        return self._buy(ctx, None)

    def _min_tx(self) -> int:
        if self.phase == Phase.PRE_SALE:
            return self.settings.pre_sale_min_tx
        return self.settings.main_sale_min_tx

    def _phase_cap(self) -> int:
        if self.phase == Phase.PRE_SALE:
            return self.settings.pre_sale_token_cap
        return self.settings.main_sale_token_cap

    def _bind_referrer_hint(self, buyer: Address, hint: Address) -> None:
        if hint == buyer or not allowlist.user_has_kyc(self.ledger, hint):
            logger.debug("ignoring referrer hint %s for %s", hint, buyer)
            return
        allowlist.set_referrer(self.ledger, buyer, hint)

    def _buy(self, ctx: Context, referrer: Optional[Address]) -> Amount:
        if self.paused:
            raise Paused("Sale is paused")
        if ctx.gas_price > self.max_tx_gas_price:
            raise GasPriceTooHigh(f"Gas price above {self.max_tx_gas_price}")
        if not is_token_sale_running(self.phase):
            raise NotRunning(f"Purchases are not accepted during {self.phase.name}")

        buyer = ctx.caller_id
        if not allowlist.user_has_kyc(self.ledger, buyer):
            raise NotKyced(f"Wallet {buyer} is not approved")
        if ctx.value < self._min_tx():
            raise BelowMinimum(f"Purchase below minimum of {self._min_tx()} wei")

        record = self.ledger.record(buyer)
        rate = self.pricing.get_rate(self.phase, record.wei_contributed, ctx.value)
        base_tokens = PricingEngine.calculate_tokens(ctx.value, rate)

        if referrer is not None and record.referrer is None:
            self._bind_referrer_hint(buyer, to_address(referrer))

        buyer_tokens = base_tokens
        referrer_tokens = 0
        if record.referrer is not None:
            referrer_tokens = safe_math.mul_div(base_tokens, self.settings.referrer_bonus_rate, BASIS_POINTS)
            referred_bonus = safe_math.mul_div(base_tokens, self.settings.referred_bonus_rate, BASIS_POINTS)
            buyer_tokens = safe_math.add(base_tokens, referred_bonus)
        credited = safe_math.add(buyer_tokens, referrer_tokens)

        if safe_math.add(self.ledger.committed(), credited) > self._phase_cap():
            raise CapExceeded(f"Purchase exceeds the {self.phase.name} cap")

        self._mint(ctx, buyer, buyer_tokens)
        if referrer_tokens > 0:
            self._mint(ctx, record.referrer, referrer_tokens)

        self.ledger.tokens_sold = Amount(safe_math.add(self.ledger.tokens_sold, credited))
        self.ledger.total_supply = Amount(safe_math.add(self.ledger.total_supply, credited))
        record.wei_contributed = Amount(safe_math.add(record.wei_contributed, ctx.value))

        self.emit(events.TokenPurchase(buyer, ctx.value, buyer_tokens), ctx.timestamp)

        # Value leaves the sale only after the ledger is up to date
        self.funds.forward(buyer, self.vault_wallet, ctx.value)
        return Amount(buyer_tokens)

    # KYC

    @public
    def approve_user_kyc(self, ctx: Context, wallet: Address) -> None:
        """Allow a wallet to buy (KYC manager only)."""
        self._only_kyc_manager(ctx)
        wallet = allowlist.approve(self.ledger, wallet)
        self.emit(events.KYCChanged(wallet, True), ctx.timestamp)

    @public
    def disapprove_user_kyc(self, ctx: Context, wallet: Address) -> None:
        """Revoke a wallet's approval (KYC manager only)."""
        self._only_kyc_manager(ctx)
        wallet = allowlist.disapprove(self.ledger, wallet)
        self.emit(events.KYCChanged(wallet, False), ctx.timestamp)

    @public
    def approve_user_kyc_and_set_referrer(self, ctx: Context, wallet: Address, referrer: Address) -> None:
        """Approve a wallet and bind its referrer in one step (KYC manager only)."""
        self._only_kyc_manager(ctx)
        wallet = allowlist.approve_and_set_referrer(
            self.ledger, wallet, referrer, immutable=self.settings.referrer_immutable
        )
        self.emit(events.KYCChanged(wallet, True), ctx.timestamp)

    # Reservations

    @public
    def reserve_tokens(self, ctx: Context, wallet: Address, amount: int) -> None:
        """Set tokens aside for a wallet before the main sale (owner only).

        Reserved tokens count against the pre-sale cap until they are
        confirmed or cancelled.
        """
        self._only_owner(ctx)
        if not PHASE_RULES[self.phase].reservations:
            raise ReservationsClosed(f"Reservations are closed during {self.phase.name}")
        wallet = reservations.reserve(self.ledger, wallet, amount, self.settings.pre_sale_token_cap)
        self.emit(events.TokenReservation(wallet, amount), ctx.timestamp)

    @public
    def cancel_reservation(self, ctx: Context, wallet: Address, amount: int) -> None:
        """Give back reserved tokens without handing them out (owner only)."""
        self._only_owner(ctx)
        if has_ended(self.phase):
            raise AlreadyFinished("Sale is finished")
        wallet = reservations.release(self.ledger, wallet, amount)
        self.emit(events.ReservationCancelled(wallet, amount), ctx.timestamp)

    @public
    def confirm_reservation(self, ctx: Context, wallet: Address, amount: int) -> None:
        """Hand reserved tokens to the wallet. They count as sold from now on."""
        self._only_owner(ctx)
        if has_ended(self.phase):
            raise AlreadyFinished("Sale is finished")
        wallet = reservations.release(self.ledger, wallet, amount)
        self._mint(ctx, wallet, amount)
        self.ledger.tokens_sold = Amount(safe_math.add(self.ledger.tokens_sold, amount))
        self.ledger.total_supply = Amount(safe_math.add(self.ledger.total_supply, amount))
        self.emit(events.ReservationConfirmed(wallet, amount), ctx.timestamp)

    # Phases

    def _transition(self, ctx: Context, transition: str) -> None:
        self._only_owner(ctx)
        previous = self.phase
        self.phase = next_phase(previous, transition)
        self.emit(events.PhaseChanged(previous, self.phase), ctx.timestamp)
        logger.info("sale phase changed from %s to %s", previous.name, self.phase.name)

    @public
    def start_pre_sale(self, ctx: Context) -> None:
        """Open the pre-sale (owner only)."""
        self._transition(ctx, "start_pre_sale")

    @public
    def start_main_sale(self, ctx: Context) -> None:
        """Move from the pre-sale to the main sale (owner only)."""
        self._transition(ctx, "start_main_sale")

    @public
    def go_back_to_private_sale(self, ctx: Context) -> None:
        """Return from the pre-sale to the private sale (owner only)."""
        self._transition(ctx, "go_back_to_private_sale")

    @public
    def go_back_to_pre_sale(self, ctx: Context) -> None:
        """Return from the main sale to the pre-sale (owner only)."""
        self._transition(ctx, "go_back_to_pre_sale")

    @public
    def finish_contract(self, ctx: Context) -> None:
        """Close the sale.

        The main-sale tokens left unsold go to the airdrop wallet and the
        remaining supply goes to the vault. Minting is then finished for good,
        token ownership moves to the vault and holder transfers are unlocked.
        """
        self._only_owner(ctx)
        if self.phase == Phase.FINISHED:
            raise AlreadyFinished("Sale is already finished")
        if self.phase != Phase.MAIN_SALE:
            raise PrematureFinish(f"Cannot finish the sale during {self.phase.name}")
        if self.ledger.tokens_reserved != 0:
            raise PendingReservations(f"{self.ledger.tokens_reserved} tokens are still reserved")

        airdrop_pool = safe_math.sub(self.settings.main_sale_token_cap, self.ledger.tokens_sold)
        company_reserve = safe_math.sub(self.settings.total_token_supply, self.settings.main_sale_token_cap)
        pool_wallet = self.airdrop_wallet if self.airdrop_wallet is not None else self.vault_wallet

        if airdrop_pool > 0:
            self._mint(ctx, pool_wallet, airdrop_pool)
        if company_reserve > 0:
            self._mint(ctx, self.vault_wallet, company_reserve)
        self.ledger.total_supply = Amount(
            safe_math.add(self.ledger.total_supply, safe_math.add(airdrop_pool, company_reserve))
        )

        token_ctx = self._token_ctx(ctx)
        self.token.finish_minting(token_ctx)
        self.token.transfer_ownership(token_ctx, self.vault_wallet)

        previous = self.phase
        self.phase = Phase.FINISHED
        self.emit(events.PhaseChanged(previous, self.phase), ctx.timestamp)
        self.emit(events.SaleFinalized(self.ledger.tokens_sold, airdrop_pool, company_reserve), ctx.timestamp)
        logger.info(
            "sale finished: sold=%d airdrop_pool=%d company_reserve=%d",
            self.ledger.tokens_sold, airdrop_pool, company_reserve,
        )

    # Administration

    @public
    def pause(self, ctx: Context) -> None:
        """Stop accepting purchases (owner only)."""
        self._only_owner(ctx)
        if self.paused:
            raise Paused("Sale is already paused")
        self.paused = True
        self.emit(events.Paused(), ctx.timestamp)
        logger.info("sale paused")

    @public
    def unpause(self, ctx: Context) -> None:
        """Accept purchases again (owner only)."""
        self._only_owner(ctx)
        if not self.paused:
            raise NotPaused("Sale is not paused")
        self.paused = False
        self.emit(events.Unpaused(), ctx.timestamp)
        logger.info("sale unpaused")

    @public
    def update_max_tx_gas_price(self, ctx: Context, max_tx_gas_price: int) -> None:
        """Change the highest gas price accepted on a purchase (owner only)."""
        self._only_owner(ctx)
        if max_tx_gas_price <= 0:
            raise InvalidParameters("Max gas price must be positive")
        self.max_tx_gas_price = max_tx_gas_price

    @public
    def update_vault_wallet(self, ctx: Context, vault_wallet: Address) -> None:
        """Send future purchases to another vault (owner only)."""
        self._only_owner(ctx)
        self.vault_wallet = to_address(vault_wallet)

    @public
    def set_kyc_manager(self, ctx: Context, kyc_wallet: Address) -> None:
        """Replace the KYC manager (owner only)."""
        self._only_owner(ctx)
        self.kyc_wallet = to_address(kyc_wallet)

    # Views

    @view
    def is_private_sale_running(self) -> bool:
        return is_private_sale_running(self.phase)

    @view
    def is_pre_sale_running(self) -> bool:
        return is_pre_sale_running(self.phase)

    @view
    def is_main_sale_running(self) -> bool:
        return is_main_sale_running(self.phase)

    @view
    def is_token_sale_running(self) -> bool:
        return is_token_sale_running(self.phase)

    @view
    def has_ended(self) -> bool:
        return has_ended(self.phase)

    @view
    def user_has_kyc(self, wallet: Address) -> bool:
        return allowlist.user_has_kyc(self.ledger, wallet)

    @view
    def get_referrer(self, wallet: Address) -> Optional[Address]:
        return allowlist.get_referrer(self.ledger, wallet)

    @view
    def get_reserved_amount(self, wallet: Address) -> Amount:
        return reservations.get_reserved_amount(self.ledger, wallet)

    @view
    def user_wei_spent(self, wallet: Address) -> Amount:
        """Get the cumulative wei a wallet spent on purchases."""
        return self.ledger.get(wallet).wei_contributed

    @view
    def tokens_sold(self) -> Amount:
        return self.ledger.tokens_sold

    @view
    def tokens_reserved(self) -> Amount:
        return self.ledger.tokens_reserved

    @view
    def get_sale_info(self) -> SaleInfo:
        """Get general sale information."""
        return SaleInfo(
            phase=int(self.phase),
            paused=self.paused,
            tokens_sold=self.ledger.tokens_sold,
            tokens_reserved=self.ledger.tokens_reserved,
            total_supply=self.ledger.total_supply,
            vault_wallet=self.vault_wallet,
            airdrop_wallet=self.airdrop_wallet,
            kyc_wallet=self.kyc_wallet,
            max_tx_gas_price=self.max_tx_gas_price,
        )
