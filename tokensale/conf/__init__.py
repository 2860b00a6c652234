from tokensale.conf.get_settings import load_settings_from_env
from tokensale.conf.settings import SaleSettings

__all__ = [
    'SaleSettings',
    'load_settings_from_env',
]
