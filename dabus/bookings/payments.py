from decimal import Decimal
from typing import Optional, Union

from dabus.config import Settings, settings as default_settings

WAVE_TIER_2500 = Decimal("2500")

def select_payment_link(price: Union[Decimal, float, int], settings: Optional[Settings] = None) -> str:
    """Wave checkout link for a trip price: the 2500 tier or the 3000 tier"""
    settings = settings or default_settings
    if Decimal(str(price)) == WAVE_TIER_2500:
        return settings.WAVE_LINK_2500
    return settings.WAVE_LINK_3000
