"""Pre-sale reservations: tokens promised to a wallet and counted against the pre-sale cap."""

from tokensale.blueprints.ledger import SaleLedger
from tokensale.exception import CapExceeded, InsufficientReservation, InvalidParameters
from tokensale.types import Address, Amount, to_address
from tokensale.utils import safe_math


def _validate(wallet: Address, amount: int) -> Address:
    if amount <= 0:
        raise InvalidParameters("Amount must be positive")
    return to_address(wallet)


def reserve(ledger: SaleLedger, wallet: Address, amount: int, cap: int) -> Address:
    wallet = _validate(wallet, amount)
    tokens_reserved = safe_math.add(ledger.tokens_reserved, amount)
    if safe_math.add(tokens_reserved, ledger.tokens_sold) > cap:
        raise CapExceeded("Reservation exceeds the pre-sale cap")

    record = ledger.record(wallet)
    record.reserved = Amount(record.reserved + amount)
    ledger.tokens_reserved = Amount(tokens_reserved)
    return wallet


def release(ledger: SaleLedger, wallet: Address, amount: int) -> Address:
    """Take `amount` out of the reservation of `wallet`.

    Both cancelling and confirming release the reservation; confirming then
    hands the tokens to the wallet.
    """
    wallet = _validate(wallet, amount)
    record = ledger.get(wallet)
    if amount > record.reserved:
        raise InsufficientReservation(f"Only {record.reserved} tokens reserved for {wallet}")

    record = ledger.record(wallet)
    record.reserved = Amount(record.reserved - amount)
    ledger.tokens_reserved = Amount(ledger.tokens_reserved - amount)
    return wallet


def get_reserved_amount(ledger: SaleLedger, wallet: Address) -> Amount:
    return ledger.get(wallet).reserved
