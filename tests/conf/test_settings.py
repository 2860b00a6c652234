import unittest
from unittest.mock import patch

from pydantic import ValidationError

from tokensale.conf import asl
from tokensale.conf.get_settings import get_settings, load_settings_from_env
from tokensale.conf.settings import TOKEN_UNIT, SaleSettings
from tokensale.exception import InvalidAddress, SettingsError
from tokensale.types import WEI_PER_ETHER, ZERO_ADDRESS

VAULT = '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
KYC = '0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359'
AIRDROP = '0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB'

ENV = {
    'VAULT_ADDRESS': VAULT.lower(),
    'KYC_ADDRESS': KYC,
    'TOKEN_BASE_RATE': '10625',
    'REFERRER_BONUS_RATE': '500',
    'REFERRED_BONUS_RATE': '250',
    'MAX_TX_GAS_PRICE': str(50 * 10**9),
}


class SaleSettingsTestCase(unittest.TestCase):
    def _params(self, **overrides):
        params = dict(
            vault_wallet=VAULT,
            kyc_wallet=KYC,
            token_base_rate=10625,
            referrer_bonus_rate=500,
            referred_bonus_rate=250,
            max_tx_gas_price=50 * 10**9,
        )
        params.update(overrides)
        return params

    def test_defaults(self):
        settings = SaleSettings(**self._params())
        self.assertIsNone(settings.airdrop_wallet)
        self.assertEqual(settings.total_token_supply, 1_200_000_000 * TOKEN_UNIT)
        self.assertEqual(settings.pre_sale_token_cap, 384_000_000 * TOKEN_UNIT)
        self.assertEqual(settings.main_sale_token_cap, 492_000_000 * TOKEN_UNIT)
        self.assertEqual(settings.pre_sale_min_tx, WEI_PER_ETHER)
        self.assertEqual(settings.main_sale_min_tx, WEI_PER_ETHER // 10)
        self.assertFalse(settings.referrer_immutable)

    def test_frozen(self):
        settings = SaleSettings(**self._params())
        with self.assertRaises(ValidationError):
            settings.token_base_rate = 1

    def test_invalid_wallets(self):
        with self.assertRaises(InvalidAddress):
            SaleSettings(**self._params(vault_wallet=ZERO_ADDRESS))
        with self.assertRaises(InvalidAddress):
            SaleSettings(**self._params(kyc_wallet='not an address'))
        with self.assertRaises(InvalidAddress):
            SaleSettings(**self._params(airdrop_wallet=''))

    def test_missing_wallet(self):
        params = self._params()
        del params['vault_wallet']
        with self.assertRaises(ValidationError):
            SaleSettings(**params)

    def test_non_positive_values(self):
        for field in ('token_base_rate', 'referrer_bonus_rate', 'referred_bonus_rate', 'max_tx_gas_price',
                      'pre_sale_token_cap', 'pre_sale_min_tx'):
            with self.assertRaises(ValidationError, msg=field):
                SaleSettings(**self._params(**{field: 0}))

    def test_cap_ordering(self):
        with self.assertRaises(ValidationError):
            SaleSettings(**self._params(pre_sale_token_cap=500_000_000 * TOKEN_UNIT))
        with self.assertRaises(ValidationError):
            SaleSettings(**self._params(main_sale_token_cap=1_300_000_000 * TOKEN_UNIT))

    def test_tiers_must_ascend(self):
        with self.assertRaises(ValidationError):
            SaleSettings(**self._params(pre_sale_bonus_tiers=((10, 1000), (10, 1500))))
        with self.assertRaises(ValidationError):
            SaleSettings(**self._params(pre_sale_bonus_tiers=((0, 1000),)))

    def test_asl_profile(self):
        settings = asl.make_settings(VAULT, KYC, AIRDROP)
        self.assertEqual(settings.token_base_rate, 10625)
        self.assertEqual(settings.max_tx_gas_price, 50 * 10**9)
        self.assertEqual(settings.airdrop_wallet, AIRDROP)


class SettingsFromEnvTestCase(unittest.TestCase):
    def setUp(self):
        super().setUp()
        get_settings.cache_clear()
        # Keep a developer's .env out of the tests
        patcher = patch('tokensale.conf.get_settings.load_dotenv')
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(get_settings.cache_clear)

    def test_load(self):
        with patch.dict('os.environ', ENV, clear=True):
            settings = load_settings_from_env()
        self.assertEqual(settings.vault_wallet, VAULT)
        self.assertEqual(settings.kyc_wallet, KYC)
        self.assertIsNone(settings.airdrop_wallet)
        self.assertEqual(settings.token_base_rate, 10625)
        self.assertEqual(settings.referred_bonus_rate, 250)

    def test_optional_airdrop_address(self):
        with patch.dict('os.environ', {**ENV, 'AIRDROP_ADDRESS': AIRDROP}, clear=True):
            settings = load_settings_from_env()
        self.assertEqual(settings.airdrop_wallet, AIRDROP)

    def test_missing_variables(self):
        env = {k: v for k, v in ENV.items() if k not in ('VAULT_ADDRESS', 'MAX_TX_GAS_PRICE')}
        with patch.dict('os.environ', env, clear=True):
            with self.assertRaises(SettingsError) as cm:
                load_settings_from_env()
        self.assertIn('VAULT_ADDRESS', str(cm.exception))
        self.assertIn('MAX_TX_GAS_PRICE', str(cm.exception))

    def test_blank_variable_is_missing(self):
        with patch.dict('os.environ', {**ENV, 'KYC_ADDRESS': '  '}, clear=True):
            with self.assertRaises(SettingsError):
                load_settings_from_env()

    def test_non_integer_rate(self):
        with patch.dict('os.environ', {**ENV, 'TOKEN_BASE_RATE': '10.5'}, clear=True):
            with self.assertRaises(SettingsError):
                load_settings_from_env()

    def test_get_settings_is_cached(self):
        with patch.dict('os.environ', ENV, clear=True):
            first = get_settings()
            second = get_settings()
        self.assertIs(first, second)
