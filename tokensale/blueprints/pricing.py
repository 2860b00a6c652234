from typing import NamedTuple

from tokensale.blueprints.phase import Phase
from tokensale.conf.settings import SaleSettings
from tokensale.exception import ZeroRate
from tokensale.types import BASIS_POINTS
from tokensale.utils import safe_math


class BonusTier(NamedTuple):
    threshold: int  # cumulative contribution in wei
    bonus: int  # basis points


class PricingEngine:
    """Token rate lookup for a purchase.

    Rates are returned scaled by `BASIS_POINTS` so fractional bonus rates stay
    exact: a 10% bonus on a base rate of 10625 is 116875000, and `value` wei
    buy `value * rate // BASIS_POINTS` tokens.
    """

    def __init__(self, settings: SaleSettings) -> None:
        self.base_rate = settings.token_base_rate
        self.tiers: dict[Phase, list[BonusTier]] = {
            Phase.PRE_SALE: [BonusTier(*tier) for tier in settings.pre_sale_bonus_tiers],
            Phase.MAIN_SALE: [BonusTier(*tier) for tier in settings.main_sale_bonus_tiers],
        }

    def get_bonus(self, phase: Phase, contributed: int, value: int) -> int:
        """Bonus in basis points for a purchase of `value` by a wallet that already contributed `contributed`.

        The tier is picked by the wallet's total after the purchase. A total
        equal to a threshold gets that threshold's tier.
        """
        if phase not in self.tiers:
            raise ZeroRate(f"No pricing during {phase.name}")

        total = contributed + value
        bonus = 0
        for tier in self.tiers[phase]:
            if total < tier.threshold:
                break
            bonus = tier.bonus
        return bonus

    def get_rate(self, phase: Phase, contributed: int, value: int) -> int:
        bonus = self.get_bonus(phase, contributed, value)
        rate = safe_math.mul(self.base_rate, BASIS_POINTS + bonus)
        if rate == 0:
            raise ZeroRate("Token rate is zero")
        return rate

    @staticmethod
    def calculate_tokens(value: int, rate: int) -> int:
        return safe_math.mul_div(value, rate, BASIS_POINTS)
