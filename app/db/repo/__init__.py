from app.db.repo.app_settings_repo import AppSettingsRepo
from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.db.repo.shop_deliveries_repo import ShopDeliveriesRepo
from app.db.repo.shop_orders_repo import ShopOrdersRepo
from app.db.repo.shop_products_repo import ShopProductsRepo

__all__ = [
    "AppSettingsRepo",
    "PartnerAdsRepo",
    "PartnerBookingsRepo",
    "ShopDeliveriesRepo",
    "ShopOrdersRepo",
    "ShopProductsRepo",
]
