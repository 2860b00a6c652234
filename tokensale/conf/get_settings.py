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

import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from tokensale.conf.settings import SaleSettings
from tokensale.exception import SettingsError

logger = logging.getLogger(__name__)

# environment variable -> settings field
REQUIRED_VARIABLES = {
    'VAULT_ADDRESS': 'vault_wallet',
    'KYC_ADDRESS': 'kyc_wallet',
    'TOKEN_BASE_RATE': 'token_base_rate',
    'REFERRER_BONUS_RATE': 'referrer_bonus_rate',
    'REFERRED_BONUS_RATE': 'referred_bonus_rate',
    'MAX_TX_GAS_PRICE': 'max_tx_gas_price',
}

OPTIONAL_VARIABLES = {
    'AIRDROP_ADDRESS': 'airdrop_wallet',
}

INTEGER_FIELDS = {'token_base_rate', 'referrer_bonus_rate', 'referred_bonus_rate', 'max_tx_gas_price'}


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return None
    return value.strip()


def load_settings_from_env(dotenv_path: Optional[str] = None) -> SaleSettings:
    """Build the sale settings from environment variables.

    A `.env` file is read first when present; variables already set in the
    environment take precedence over it.
    """
    load_dotenv(dotenv_path)

    missing = [name for name in REQUIRED_VARIABLES if _env(name) is None]
    if missing:
        raise SettingsError(f'Missing required environment variables: {", ".join(missing)}')

    values: dict[str, object] = {}
    for name, field in {**REQUIRED_VARIABLES, **OPTIONAL_VARIABLES}.items():
        raw = _env(name)
        if raw is None:
            continue
        if field in INTEGER_FIELDS:
            try:
                values[field] = int(raw)
            except ValueError:
                raise SettingsError(f'{name} must be an integer, got {raw!r}') from None
        else:
            values[field] = raw

    settings = SaleSettings(**values)
    logger.info('sale settings loaded from environment (vault=%s)', settings.vault_wallet)
    return settings


@lru_cache
def get_settings() -> SaleSettings:
    """Return the settings of the current process, loading them on first use."""
    return load_settings_from_env()
