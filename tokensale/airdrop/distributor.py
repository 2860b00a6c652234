import logging
import threading
from typing import Callable, Iterable, NamedTuple, Optional

from tokensale.airdrop.checkpoint import AirdropAmount, AirdropPlan, PlanCheckpoint
from tokensale.blueprints.token_sale import TokenSale
from tokensale.events import DEFAULT_PAGE_SIZE, Transfer
from tokensale.exception import AirdropOversubscribed, NoAirdropFunds
from tokensale.types import Address, Context

logger = logging.getLogger(__name__)

TransferFn = Callable[[Address, int], None]
NotifyFn = Callable[[AirdropPlan], None]


class ApplyResult(NamedTuple):
    transferred: int  # holders paid during this run
    skipped: int  # holders already paid before this run
    completed: bool  # False when the run was stopped before the end


class AirdropDistributor:
    """Proportional distribution of the airdrop wallet balance to the sale's token holders.

    Planning takes a snapshot of every holder reached by a token transfer
    and assigns each one `balance * pool // tokens_sold`. Applying sends
    what is still missing to each holder, one transfer at a time, so that a
    run interrupted at any point can be resumed from its checkpoint without
    paying anybody twice.
    """

    def __init__(
        self,
        sale: TokenSale,
        *,
        signers: Iterable[Address],
        page_size: int = DEFAULT_PAGE_SIZE,
        transfer: Optional[TransferFn] = None,
    ) -> None:
        self.sale = sale
        self.token = sale.token
        self.signers = frozenset(signers)
        self.page_size = page_size
        self._transfer = transfer if transfer is not None else self._token_transfer

    def _token_transfer(self, wallet: Address, amount: int) -> None:
        airdrop_wallet = self.sale.airdrop_wallet
        if airdrop_wallet is None:
            raise NoAirdropFunds('The sale has no airdrop wallet')
        self.token.transfer(Context(caller_id=airdrop_wallet), wallet, amount)

    def check_wallet(self) -> Address:
        """Make sure the airdrop wallet can pay. Returns the airdrop wallet."""
        wallet = self.sale.airdrop_wallet
        if wallet is None:
            raise NoAirdropFunds('The sale has no airdrop wallet')
        if wallet not in self.signers:
            raise NoAirdropFunds('The airdrop wallet must be one of the signing wallets')
        if self.token.balance_of(wallet) == 0:
            raise NoAirdropFunds('No tokens to distribute, airdrop wallet balance is 0')
        return wallet

    def collect_recipients(self) -> list[Address]:
        """Every address that ever received tokens, in order of first receipt.

        The vault and the airdrop wallet are left out.
        """
        excluded = {self.sale.vault_wallet, self.sale.airdrop_wallet}
        seen: set[Address] = set()
        recipients: list[Address] = []
        for event in self.sale.event_log.iter_events(Transfer, page_size=self.page_size):
            recipient = event.recipient
            if recipient in seen or recipient in excluded:
                continue
            seen.add(recipient)
            recipients.append(recipient)
        return recipients

    def read_balances(self, recipients: Iterable[Address]) -> dict[Address, int]:
        balances: dict[Address, int] = {}
        for wallet in recipients:
            balance = self.token.balance_of(wallet)
            if balance > 0:
                balances[wallet] = balance
        return balances

    def compute_plan(self, balances: dict[Address, int]) -> AirdropPlan:
        pool = self.token.balance_of(self.check_wallet())
        tokens_sold = self.sale.tokens_sold()
        if tokens_sold == 0:
            raise NoAirdropFunds('No tokens were sold')

        logger.info('tokens sold: %d, airdrop wallet balance: %d', tokens_sold, pool)

        amounts = {
            wallet: AirdropAmount(target=balance * pool // tokens_sold, actual=0)
            for wallet, balance in balances.items()
        }
        plan = AirdropPlan(amounts)

        planned = plan.total_target()
        if planned > pool:
            raise AirdropOversubscribed(f'Planned {planned} tokens but the pool holds {pool}')
        logger.info('airdrop planned for %d holders, %d tokens left undistributed', len(plan), pool - planned)
        return plan

    def build_plan(self) -> AirdropPlan:
        """Snapshot the holders and compute how much each one gets."""
        self.check_wallet()
        recipients = self.collect_recipients()
        balances = self.read_balances(recipients)
        return self.compute_plan(balances)

    def apply(
        self,
        plan: AirdropPlan,
        notify: Optional[NotifyFn] = None,
        stop: Optional[threading.Event] = None,
    ) -> ApplyResult:
        """Send each holder the part of its target not sent yet.

        `notify` is called with the whole plan after every transfer. The first
        failing transfer stops the run and its error is raised; the holder it
        was meant for keeps its previous `actual`.
        """
        if plan.is_complete():
            return ApplyResult(transferred=0, skipped=len(plan), completed=True)

        self.check_wallet()

        transferred = 0
        skipped = 0
        for wallet, amount in plan.items():
            if stop is not None and stop.is_set():
                logger.info('airdrop stopped after %d transfers', transferred)
                return ApplyResult(transferred, skipped, completed=False)

            if amount.is_done:
                skipped += 1
                continue

            remaining = amount.remaining
            logger.info('transferring %d tokens to %s', remaining, wallet)
            try:
                self._transfer(Address(wallet), remaining)
            except Exception:
                logger.exception('airdrop transfer of %d tokens to %s failed', remaining, wallet)
                raise

            amount.actual = amount.target
            transferred += 1
            if notify is not None:
                notify(plan)

        logger.info('airdrop distribution done: %d transferred, %d skipped', transferred, skipped)
        return ApplyResult(transferred, skipped, completed=True)

    def apply_from_checkpoint(
        self,
        source: PlanCheckpoint,
        destination: Optional[PlanCheckpoint] = None,
        stop: Optional[threading.Event] = None,
    ) -> ApplyResult:
        """Load a plan and apply it, saving progress after every transfer.

        Progress goes to `destination`, which defaults to `source`. When
        `destination` already holds progress from an earlier run, the plan is
        resumed from it and `source` is not read. Its previous content is
        backed up first.
        """
        if destination is None:
            destination = source
        if destination.exists():
            destination.backup()
            plan = destination.load()
            logger.info('resuming airdrop from %s, %d holders pending', destination.path, len(plan.pending()))
        else:
            plan = source.load()
        return self.apply(plan, notify=destination, stop=stop)
