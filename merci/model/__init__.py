# ------ merci/model/__init__.py ------

from .types import GUID
from .store import Store
from .campaign import Campaign
from .template import CampaignTemplate
from .checkout import CheckoutDiscount
from .redemption import Redemption

__all__ = [
    "GUID",
    "Store",
    "Campaign",
    "CampaignTemplate",
    "CheckoutDiscount",
    "Redemption",
]
