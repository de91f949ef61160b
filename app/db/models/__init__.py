from app.db.models.app_settings import AppSetting
from app.db.models.partner_ads import PartnerAd
from app.db.models.partner_bookings import PartnerBooking
from app.db.models.shop_deliveries import ShopDelivery
from app.db.models.shop_orders import ShopOrder
from app.db.models.shop_products import ShopProduct

__all__ = [
    "AppSetting",
    "PartnerAd",
    "PartnerBooking",
    "ShopDelivery",
    "ShopOrder",
    "ShopProduct",
]
