"""KYC approvals and referrer bindings, stored in the sale ledger."""

from typing import Optional

from tokensale.blueprints.ledger import SaleLedger
from tokensale.exception import InvalidAddress, ReferrerAlreadySet
from tokensale.types import Address, to_address


def approve(ledger: SaleLedger, wallet: Address) -> Address:
    wallet = to_address(wallet)
    ledger.record(wallet).kyc_approved = True
    return wallet


def disapprove(ledger: SaleLedger, wallet: Address) -> Address:
    wallet = to_address(wallet)
    ledger.record(wallet).kyc_approved = False
    return wallet


def set_referrer(ledger: SaleLedger, wallet: Address, referrer: Address, *, immutable: bool = False) -> None:
    """Bind `referrer` to `wallet`.

    With `immutable` set, a wallet that already has a different referrer
    keeps it and the call fails.
    """
    if referrer == wallet:
        raise InvalidAddress("A wallet cannot refer itself")
    record = ledger.record(wallet)
    if immutable and record.referrer is not None and record.referrer != referrer:
        raise ReferrerAlreadySet(f"Referrer of {wallet} is already set")
    record.referrer = referrer


def approve_and_set_referrer(
    ledger: SaleLedger,
    wallet: Address,
    referrer: Address,
    *,
    immutable: bool = False,
) -> Address:
    wallet = to_address(wallet)
    referrer = to_address(referrer)
    set_referrer(ledger, wallet, referrer, immutable=immutable)
    ledger.record(wallet).kyc_approved = True
    return wallet


def user_has_kyc(ledger: SaleLedger, wallet: Address) -> bool:
    return ledger.get(wallet).kyc_approved


def get_referrer(ledger: SaleLedger, wallet: Address) -> Optional[Address]:
    return ledger.get(wallet).referrer
