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

from tokensale.conf.settings import DEFAULT_PRE_SALE_BONUS_TIERS, TOKEN_UNIT, SaleSettings
from tokensale.types import WEI_PER_ETHER

TOKEN_NAME = 'ASL Token'
TOKEN_SYMBOL = 'ASL'

# Gas price ceiling for purchase transactions (50 gwei)
MAX_TX_GAS_PRICE = 50 * 10**9


def make_settings(vault_wallet: str, kyc_wallet: str, airdrop_wallet: str | None = None) -> SaleSettings:
    """Production parameters of the ASL sale for the given wallets."""
    return SaleSettings(
        vault_wallet=vault_wallet,
        airdrop_wallet=airdrop_wallet,
        kyc_wallet=kyc_wallet,
        token_base_rate=10625,
        referrer_bonus_rate=500,  # 5%
        referred_bonus_rate=500,  # 5%
        max_tx_gas_price=MAX_TX_GAS_PRICE,
        total_token_supply=1_200_000_000 * TOKEN_UNIT,
        pre_sale_token_cap=384_000_000 * TOKEN_UNIT,
        main_sale_token_cap=492_000_000 * TOKEN_UNIT,
        pre_sale_min_tx=1 * WEI_PER_ETHER,
        main_sale_min_tx=WEI_PER_ETHER // 10,
        pre_sale_bonus_tiers=DEFAULT_PRE_SALE_BONUS_TIERS,
        main_sale_bonus_tiers=(),
    )
