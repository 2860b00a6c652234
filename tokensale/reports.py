"""Read-only reports for sale operators."""

import logging
from typing import NamedTuple

from tokensale.blueprints.token_sale import TokenSale
from tokensale.events import DEFAULT_PAGE_SIZE, TokenReservation, Transfer
from tokensale.types import Address

logger = logging.getLogger(__name__)


class PendingReservation(NamedTuple):
    wallet: Address
    amount: int


def pending_reservations(sale: TokenSale, page_size: int = DEFAULT_PAGE_SIZE) -> list[PendingReservation]:
    """Wallets that still have reserved tokens, in order of their first reservation."""
    if sale.tokens_reserved() == 0:
        return []

    pending: list[PendingReservation] = []
    seen: set[Address] = set()
    for event in sale.event_log.iter_events(TokenReservation, page_size=page_size):
        if event.wallet in seen:
            continue
        seen.add(event.wallet)
        amount = sale.get_reserved_amount(event.wallet)
        if amount > 0:
            pending.append(PendingReservation(event.wallet, amount))

    logger.info('%d tokens reserved across %d wallets', sale.tokens_reserved(), len(pending))
    return pending


def holder_balances(sale: TokenSale, page_size: int = DEFAULT_PAGE_SIZE) -> dict[Address, int]:
    """Current token balance of every address that ever received tokens."""
    balances: dict[Address, int] = {}
    for event in sale.event_log.iter_events(Transfer, page_size=page_size):
        if event.recipient not in balances:
            balances[event.recipient] = sale.token.balance_of(event.recipient)
    return balances
