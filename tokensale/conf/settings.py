# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

from tokensale.types import WEI_PER_ETHER, Address, to_address

TOKEN_DECIMALS = 18
TOKEN_UNIT = 10**TOKEN_DECIMALS

# (cumulative contribution threshold in wei, bonus in basis points)
BonusTable = tuple[tuple[int, int], ...]

DEFAULT_PRE_SALE_BONUS_TIERS: BonusTable = (
    (1 * WEI_PER_ETHER, 1000),
    (50 * WEI_PER_ETHER, 1500),
    (300 * WEI_PER_ETHER, 2000),
    (1200 * WEI_PER_ETHER, 3000),
)


class SaleSettings(BaseModel):
    """Configuration of a token sale. Immutable once the sale is created."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    # Wallets
    vault_wallet: Address
    airdrop_wallet: Optional[Address] = None
    kyc_wallet: Address

    # Rates, in tokens per wei and basis points
    token_base_rate: int = Field(gt=0)
    referrer_bonus_rate: int = Field(gt=0)
    referred_bonus_rate: int = Field(gt=0)

    max_tx_gas_price: int = Field(gt=0)

    # Supply and caps, in token units
    total_token_supply: int = Field(default=1_200_000_000 * TOKEN_UNIT, gt=0)
    pre_sale_token_cap: int = Field(default=384_000_000 * TOKEN_UNIT, gt=0)
    main_sale_token_cap: int = Field(default=492_000_000 * TOKEN_UNIT, gt=0)

    # Minimum purchase per transaction, in wei
    pre_sale_min_tx: int = Field(default=1 * WEI_PER_ETHER, gt=0)
    main_sale_min_tx: int = Field(default=WEI_PER_ETHER // 10, gt=0)

    pre_sale_bonus_tiers: BonusTable = DEFAULT_PRE_SALE_BONUS_TIERS
    main_sale_bonus_tiers: BonusTable = ()

    # When set, a wallet's referrer can't be replaced once recorded
    referrer_immutable: bool = False

    @field_validator('vault_wallet', 'kyc_wallet', mode='before')
    @classmethod
    def _validate_wallet(cls, value: Any) -> Address:
        return to_address(value)

    @field_validator('airdrop_wallet', mode='before')
    @classmethod
    def _validate_optional_wallet(cls, value: Any) -> Optional[Address]:
        if value is None:
            return None
        return to_address(value)

    @field_validator('pre_sale_bonus_tiers', 'main_sale_bonus_tiers')
    @classmethod
    def _validate_tiers(cls, tiers: BonusTable) -> BonusTable:
        previous = 0
        for threshold, bonus in tiers:
            if threshold <= previous:
                raise ValueError('bonus tier thresholds must be positive and strictly ascending')
            if bonus < 0:
                raise ValueError('bonus must not be negative')
            previous = threshold
        return tiers

    @model_validator(mode='after')
    def _validate_caps(self) -> Self:
        if self.pre_sale_token_cap > self.main_sale_token_cap:
            raise ValueError('pre_sale_token_cap must not exceed main_sale_token_cap')
        if self.main_sale_token_cap > self.total_token_supply:
            raise ValueError('main_sale_token_cap must not exceed total_token_supply')
        return self
