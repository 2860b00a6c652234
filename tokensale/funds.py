import logging
from typing import Callable, Optional, Protocol

from tokensale.exception import InsufficientBalance
from tokensale.types import Address

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[Address, int], None]


class FundsForwarder(Protocol):
    """Moves native value out of the sale."""

    def forward(self, sender: Address, to: Address, amount: int) -> None:
        ...


class NativeBalances:
    """In-memory native coin balances.

    A receive hook can be registered for a wallet to run code when it is
    credited, like a contract fallback. If the hook raises, the transfer is
    undone and the error propagates to the sender.
    """

    def __init__(self) -> None:
        self.balances: dict[Address, int] = {}
        self._hooks: dict[Address, ReceiveHook] = {}

    def balance_of(self, wallet: Address) -> int:
        return self.balances.get(wallet, 0)

    def deposit(self, wallet: Address, amount: int) -> None:
        self.balances[wallet] = self.balance_of(wallet) + amount

    def set_receive_hook(self, wallet: Address, hook: Optional[ReceiveHook]) -> None:
        if hook is None:
            self._hooks.pop(wallet, None)
        else:
            self._hooks[wallet] = hook

    def forward(self, sender: Address, to: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError('amount must not be negative')
        if self.balance_of(sender) < amount:
            raise InsufficientBalance(f'Insufficient native balance: {sender}')

        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount

        hook = self._hooks.get(to)
        if hook is None:
            return
        try:
            hook(sender, amount)
        except Exception:
            logger.warning('receive hook of %s failed, reverting transfer of %d', to, amount)
            self.balances[to] -= amount
            self.balances[sender] += amount
            raise
