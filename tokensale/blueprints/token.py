from typing import Optional

from tokensale.blueprint import Blueprint, StateDict, public, view
from tokensale.events import Approval, EventLog, MintFinished, OwnershipTransferred, Transfer
from tokensale.exception import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAddress,
    InvalidParameters,
    MintingFinished,
    TransfersLocked,
    Unauthorized,
)
from tokensale.types import ZERO_ADDRESS, Address, Amount, Context, to_address
from tokensale.utils import safe_math


class SaleToken(Blueprint):
    """Mintable token issued by the sale.

    Holder transfers stay locked until minting is finished, which happens
    once when the sale is finalized. From then on the supply is fixed.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int

    # Supply
    owner: Address  # Only the owner can mint
    total_supply: Amount  # Tokens minted so far
    minting_finished: bool  # No more minting, transfers unlocked

    # Holders
    balances: dict[Address, Amount]  # Token balance per wallet
    allowances: dict[tuple[Address, Address], Amount]  # (owner, spender) -> allowance

    def __init__(
        self,
        owner: Address,
        *,
        name: str,
        symbol: str,
        decimals: int = 18,
        event_log: Optional[EventLog] = None,
        address: Optional[Address] = None,
    ) -> None:
        super().__init__(event_log=event_log, address=address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = owner
        self.total_supply = Amount(0)
        self.minting_finished = False
        self.balances = StateDict()
        self.allowances = StateDict()

    def _only_owner(self, ctx: Context) -> None:
        if ctx.caller_id != self.owner:
            raise Unauthorized("Only the token owner can call this method")

    def _validate_recipient(self, to: Address) -> Address:
        to = to_address(to)
        if to == self.address:
            raise InvalidAddress("Cannot transfer to the token itself")
        return to

    def _move(self, ctx: Context, sender: Address, to: Address, amount: int) -> None:
        if not self.minting_finished:
            raise TransfersLocked("Transfers are locked until the sale is finished")
        if amount < 0:
            raise InvalidParameters("Amount must not be negative")
        to = self._validate_recipient(to)

        balance = self.balances.get(sender, Amount(0))
        if amount > balance:
            raise InsufficientBalance(f"Insufficient balance: {balance} < {amount}")

        self.balances[sender] = Amount(balance - amount)
        self.balances[to] = Amount(safe_math.add(self.balances.get(to, Amount(0)), amount))
        self.emit(Transfer(sender, to, amount), ctx.timestamp)

    @public
    def mint(self, ctx: Context, to: Address, amount: int) -> None:
        """Create `amount` new tokens for `to`."""
        self._only_owner(ctx)
        if self.minting_finished:
            raise MintingFinished("Minting is finished")
        if amount <= 0:
            raise InvalidParameters("Amount must be positive")
        to = to_address(to)

        self.total_supply = Amount(safe_math.add(self.total_supply, amount))
        self.balances[to] = Amount(safe_math.add(self.balances.get(to, Amount(0)), amount))
        self.emit(Transfer(ZERO_ADDRESS, to, amount), ctx.timestamp)

    @public
    def finish_minting(self, ctx: Context) -> None:
        """Stop minting for good and unlock holder transfers (owner only)."""
        self._only_owner(ctx)
        if self.minting_finished:
            raise MintingFinished("Minting is already finished")
        self.minting_finished = True
        self.emit(MintFinished(), ctx.timestamp)

    @public
    def transfer_ownership(self, ctx: Context, new_owner: Address) -> None:
        """Hand the token to a new owner (owner only)."""
        self._only_owner(ctx)
        new_owner = to_address(new_owner)
        previous = self.owner
        self.owner = new_owner
        self.emit(OwnershipTransferred(previous, new_owner), ctx.timestamp)

    @public
    def transfer(self, ctx: Context, to: Address, amount: int) -> None:
        """Move tokens from the caller to `to`."""
        self._move(ctx, ctx.caller_id, to, amount)

    @public
    def transfer_from(self, ctx: Context, sender: Address, to: Address, amount: int) -> None:
        """Move tokens out of `sender` using the allowance it gave to the caller."""
        key = (sender, ctx.caller_id)
        allowed = self.allowances.get(key, Amount(0))
        if amount > allowed:
            raise InsufficientAllowance(f"Insufficient allowance: {allowed} < {amount}")
        self._move(ctx, sender, to, amount)
        self.allowances[key] = Amount(allowed - amount)

    @public
    def approve(self, ctx: Context, spender: Address, amount: int) -> None:
        """Set the allowance of `spender` over the caller's tokens."""
        if amount < 0:
            raise InvalidParameters("Amount must not be negative")
        spender = to_address(spender)
        self.allowances[(ctx.caller_id, spender)] = Amount(amount)
        self.emit(Approval(ctx.caller_id, spender, amount), ctx.timestamp)

    @public
    def increase_approval(self, ctx: Context, spender: Address, added: int) -> None:
        """Raise the allowance of `spender` by `added`."""
        if added < 0:
            raise InvalidParameters("Amount must not be negative")
        spender = to_address(spender)
        key = (ctx.caller_id, spender)
        allowed = Amount(safe_math.add(self.allowances.get(key, Amount(0)), added))
        self.allowances[key] = allowed
        self.emit(Approval(ctx.caller_id, spender, allowed), ctx.timestamp)

    @public
    def decrease_approval(self, ctx: Context, spender: Address, subtracted: int) -> None:
        """Lower an allowance. Subtracting more than what is allowed sets it to zero."""
        if subtracted < 0:
            raise InvalidParameters("Amount must not be negative")
        spender = to_address(spender)
        key = (ctx.caller_id, spender)
        allowed = self.allowances.get(key, Amount(0))
        allowed = Amount(0) if subtracted > allowed else Amount(allowed - subtracted)
        self.allowances[key] = allowed
        self.emit(Approval(ctx.caller_id, spender, allowed), ctx.timestamp)

    @view
    def balance_of(self, wallet: Address) -> Amount:
        """Get the token balance of a wallet."""
        return self.balances.get(wallet, Amount(0))

    @view
    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self.allowances.get((owner, spender), Amount(0))
