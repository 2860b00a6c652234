from tokensale.blueprints.token import SaleToken
from tokensale.events import Approval, MintFinished, OwnershipTransferred, Transfer
from tokensale.exception import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAddress,
    MintingFinished,
    TransfersLocked,
    Unauthorized,
    ValueNotAccepted,
)
from tokensale.types import ZERO_ADDRESS

from tests.blueprints.unittest import SaleTestCase


class SaleTokenTestCase(SaleTestCase):
    """Test suite for the token issued by the sale."""

    def setUp(self):
        super().setUp()
        self.token = SaleToken(self.owner_address, name='ASL Token', symbol='ASL')
        self.alice = self._get_any_address()
        self.bob = self._get_any_address()

    def _mint(self, to, amount):
        self.token.mint(self.create_context(), to, amount)

    def _unlock(self):
        self.token.finish_minting(self.create_context())

    def test_mint(self):
        self._mint(self.alice, 100)
        self.assertEqual(self.token.balance_of(self.alice), 100)
        self.assertEqual(self.token.total_supply, 100)

        entry = self.token.event_log.get_page(Transfer).entries[-1]
        self.assertEqual(entry.event, Transfer(ZERO_ADDRESS, self.alice, 100))

    def test_mint_only_owner(self):
        with self.assertRaises(Unauthorized):
            self.token.mint(self.create_context(self.alice), self.alice, 100)

    def test_mint_rejects_value(self):
        with self.assertRaises(ValueNotAccepted):
            self.token.mint(self.create_context(value=1), self.alice, 100)

    def test_mint_after_finish(self):
        self._unlock()
        with self.assertRaises(MintingFinished):
            self._mint(self.alice, 1)
        with self.assertRaises(MintingFinished):
            self._unlock()

    def test_transfers_locked_while_minting(self):
        self._mint(self.alice, 100)
        with self.assertRaises(TransfersLocked):
            self.token.transfer(self.create_context(self.alice), self.bob, 10)

    def test_transfer(self):
        self._mint(self.alice, 100)
        self._unlock()
        self.token.transfer(self.create_context(self.alice), self.bob, 40)

        self.assertEqual(self.token.balance_of(self.alice), 60)
        self.assertEqual(self.token.balance_of(self.bob), 40)
        self.assertEqual(self.token.total_supply, 100)

    def test_transfer_rejects_zero_and_self_address(self):
        self._mint(self.alice, 100)
        self._unlock()
        ctx = self.create_context(self.alice)
        with self.assertRaises(InvalidAddress):
            self.token.transfer(ctx, ZERO_ADDRESS, 1)
        with self.assertRaises(InvalidAddress):
            self.token.transfer(ctx, self.token.address, 1)
        self.assertEqual(self.token.balance_of(self.alice), 100)

    def test_transfer_insufficient_balance(self):
        self._mint(self.alice, 100)
        self._unlock()
        before = len(self.token.event_log)
        with self.assertRaises(InsufficientBalance):
            self.token.transfer(self.create_context(self.alice), self.bob, 101)
        self.assertEqual(len(self.token.event_log), before)

    def test_approve_and_transfer_from(self):
        self._mint(self.alice, 100)
        self._unlock()
        self.token.approve(self.create_context(self.alice), self.bob, 30)
        self.assertEqual(self.token.allowance(self.alice, self.bob), 30)

        carol = self._get_any_address()
        self.token.transfer_from(self.create_context(self.bob), self.alice, carol, 20)
        self.assertEqual(self.token.balance_of(carol), 20)
        self.assertEqual(self.token.allowance(self.alice, self.bob), 10)

        with self.assertRaises(InsufficientAllowance):
            self.token.transfer_from(self.create_context(self.bob), self.alice, carol, 11)

    def test_increase_and_decrease_approval(self):
        ctx = self.create_context(self.alice)
        self.token.increase_approval(ctx, self.bob, 50)
        self.token.increase_approval(ctx, self.bob, 25)
        self.assertEqual(self.token.allowance(self.alice, self.bob), 75)

        self.token.decrease_approval(ctx, self.bob, 70)
        self.assertEqual(self.token.allowance(self.alice, self.bob), 5)

        # Subtracting more than allowed floors at zero
        self.token.decrease_approval(ctx, self.bob, 100)
        self.assertEqual(self.token.allowance(self.alice, self.bob), 0)

        last = self.token.event_log.get_page(Approval).entries[-1].event
        self.assertEqual(last, Approval(self.alice, self.bob, 0))

    def test_transfer_ownership(self):
        self.token.transfer_ownership(self.create_context(), self.alice)
        self.assertEqual(self.token.owner, self.alice)
        events = list(self.token.event_log.iter_events(OwnershipTransferred))
        self.assertEqual(events, [OwnershipTransferred(self.owner_address, self.alice)])

        with self.assertRaises(Unauthorized):
            self._mint(self.bob, 1)

    def test_finish_minting_emits_event(self):
        self._unlock()
        self.assertTrue(self.token.minting_finished)
        self.assertEqual(len(list(self.token.event_log.iter_events(MintFinished))), 1)
