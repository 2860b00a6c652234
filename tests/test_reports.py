from tokensale.reports import PendingReservation, holder_balances, pending_reservations

from tests.blueprints.unittest import ONE_ETH, SaleTestCase


class ReportsTestCase(SaleTestCase):
    def setUp(self):
        super().setUp()
        self._create_sale()
        self.supporters = [self._get_any_address() for _ in range(3)]

    def _reserve(self, wallet, amount):
        self.sale.reserve_tokens(self.create_context(), wallet, amount)

    def test_no_reservations(self):
        self.assertEqual(pending_reservations(self.sale), [])

    def test_pending_reservations(self):
        a, b, c = self.supporters
        self._reserve(a, 100)
        self._reserve(b, 200)
        self._reserve(a, 50)
        self._reserve(c, 300)
        self.sale.confirm_reservation(self.create_context(), b, 200)
        self.sale.cancel_reservation(self.create_context(), c, 100)

        pending = pending_reservations(self.sale, page_size=1)
        self.assertEqual(pending, [PendingReservation(a, 150), PendingReservation(c, 200)])
        self.assertEqual(sum(p.amount for p in pending), self.sale.tokens_reserved())

    def test_holder_balances(self):
        investor = self._new_investor()
        self._reserve(self.supporters[0], 1000)
        self.sale.confirm_reservation(self.create_context(), self.supporters[0], 1000)
        self._start_pre_sale()
        tokens = self._buy(investor, ONE_ETH)

        self.assertEqual(holder_balances(self.sale), {self.supporters[0]: 1000, investor: tokens})
