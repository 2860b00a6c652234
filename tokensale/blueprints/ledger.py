from dataclasses import dataclass, field, replace
from typing import Any, Optional

from tokensale.blueprint import StateDict
from tokensale.types import Address, Amount


@dataclass
class InvestorRecord:
    kyc_approved: bool = False
    referrer: Optional[Address] = None
    reserved: Amount = Amount(0)
    wei_contributed: Amount = Amount(0)


@dataclass
class SaleLedger:
    """Totals of the sale and the per-wallet records they are made of.

    Records handed out by `record()` during a step are private copies, so
    a failed step only has to put the previous objects back.
    """

    tokens_sold: Amount = Amount(0)
    tokens_reserved: Amount = Amount(0)
    total_supply: Amount = Amount(0)
    investors: StateDict = field(default_factory=StateDict)

    def get(self, wallet: Address) -> InvestorRecord:
        """Return the record of `wallet` without creating it."""
        return self.investors.get(wallet) or InvestorRecord()

    def record(self, wallet: Address) -> InvestorRecord:
        """Return the record of `wallet` for writing, creating it on first use."""
        record = self.investors.get(wallet)
        if record is None:
            record = InvestorRecord()
        elif self.investors.journaling and not self.investors.written_in_step(wallet):
            record = replace(record)
        else:
            return record
        self.investors[wallet] = record
        return record

    def committed(self) -> int:
        """Tokens either sold or promised through a reservation."""
        return self.tokens_sold + self.tokens_reserved

    def _journal_mark(self) -> tuple[Any, ...]:
        return (self.tokens_sold, self.tokens_reserved, self.total_supply, self.investors._journal_mark())

    def _journal_rollback(self, mark: tuple[Any, ...]) -> None:
        self.tokens_sold, self.tokens_reserved, self.total_supply, investors_mark = mark
        self.investors._journal_rollback(investors_mark)

    def _journal_release(self, mark: tuple[Any, ...]) -> None:
        self.investors._journal_release(mark[3])
