from tokensale.blueprints.phase import Phase
from tokensale.events import SaleFinalized
from tokensale.exception import (
    AlreadyFinished,
    InvalidAddress,
    MintingFinished,
    PrematureFinish,
    Unauthorized,
)
from tokensale.types import ZERO_ADDRESS, Context

from tests.blueprints.unittest import ONE_ETH, SaleTestCase


class FinalizationTestCase(SaleTestCase):
    def setUp(self):
        super().setUp()
        self._create_sale()
        self.investor_1 = self._new_investor()
        self.investor_2 = self._new_investor()

        self._start_pre_sale()
        self._buy(self.investor_1, 10 * ONE_ETH)
        self._buy(self.investor_2, 60 * ONE_ETH)
        self.sale.start_main_sale(self.create_context())
        self._buy(self.investor_1, ONE_ETH)

    def test_finish(self):
        settings = self.sale.settings
        sold = self.sale.tokens_sold()
        self._finish()

        self.assertEqual(self.sale.phase, Phase.FINISHED)
        self.assertTrue(self.sale.has_ended())
        self.assertEqual(self.token.total_supply, settings.total_token_supply)
        self.assertEqual(self.sale.ledger.total_supply, settings.total_token_supply)

        airdrop_pool = settings.main_sale_token_cap - sold
        company_reserve = settings.total_token_supply - settings.main_sale_token_cap
        self.assertEqual(self.token.balance_of(self.airdrop_address), airdrop_pool)
        self.assertEqual(self.token.balance_of(self.vault_address), company_reserve)

        finalized = list(self.sale.event_log.iter_events(SaleFinalized))
        self.assertEqual(finalized, [SaleFinalized(sold, airdrop_pool, company_reserve)])

    def test_finish_without_airdrop_wallet(self):
        self._create_sale(airdrop_wallet=None)
        self._start_main_sale()
        self._finish()
        settings = self.sale.settings
        self.assertEqual(self.token.balance_of(self.vault_address), settings.total_token_supply)
        self.assertEqual(self.token.balance_of(self.airdrop_address), 0)

    def test_finish_only_owner(self):
        with self.assertRaises(Unauthorized):
            self.sale.finish_contract(self.create_context(self.investor_1))
        self.assertEqual(self.sale.phase, Phase.MAIN_SALE)

    def test_finish_from_pre_sale(self):
        self.sale.go_back_to_pre_sale(self.create_context())
        before = self._ledger_state()
        with self.assertRaises(PrematureFinish):
            self._finish()
        self.assertEqual(self._ledger_state(), before)

    def test_finish_twice(self):
        self._finish()
        with self.assertRaises(AlreadyFinished):
            self._finish()

    def test_token_ownership_moves_to_vault(self):
        self._finish()
        self.assertEqual(self.token.owner, self.vault_address)
        self.assertTrue(self.token.minting_finished)

        with self.assertRaises(MintingFinished):
            self.token.mint(Context(caller_id=self.vault_address), self.investor_1, 1)
        with self.assertRaises(Unauthorized):
            self.token.mint(Context(caller_id=self.sale.address), self.investor_1, 1)

    def test_transfers_after_finish(self):
        self._finish()
        balance_1 = self.token.balance_of(self.investor_1)
        balance_2 = self.token.balance_of(self.investor_2)

        self.token.transfer(self.create_context(self.investor_1), self.investor_2, 1000)
        self.assertEqual(self.token.balance_of(self.investor_1), balance_1 - 1000)
        self.assertEqual(self.token.balance_of(self.investor_2), balance_2 + 1000)

        self.token.approve(self.create_context(self.investor_2), self.investor_1, 500)
        self.token.increase_approval(self.create_context(self.investor_2), self.investor_1, 500)
        self.token.decrease_approval(self.create_context(self.investor_2), self.investor_1, 200)
        self.token.transfer_from(self.create_context(self.investor_1), self.investor_2, self.investor_1, 800)
        self.assertEqual(self.token.balance_of(self.investor_1), balance_1 - 200)
        self.assertEqual(self.token.allowance(self.investor_2, self.investor_1), 0)

        with self.assertRaises(InvalidAddress):
            self.token.transfer(self.create_context(self.investor_1), ZERO_ADDRESS, 1)
        with self.assertRaises(InvalidAddress):
            self.token.transfer(self.create_context(self.investor_1), self.token.address, 1)

    def test_no_purchases_after_finish(self):
        self._finish()
        self.assertFalse(self.sale.is_token_sale_running())
        self.assertEqual(self.sale.get_sale_info().phase, Phase.FINISHED)
