from __future__ import annotations

from .capture import apply_stripe_checkout_session, capture_paypal_order, confirm_stripe_order
from .checkout import resolve_buyer, start_paypal_order, start_stripe_order
from .orders import admin_mark_paid, cancel_order


class ShopService:
    resolve_buyer = staticmethod(resolve_buyer)
    start_stripe_order = staticmethod(start_stripe_order)
    start_paypal_order = staticmethod(start_paypal_order)
    confirm_stripe_order = staticmethod(confirm_stripe_order)
    apply_stripe_checkout_session = staticmethod(apply_stripe_checkout_session)
    capture_paypal_order = staticmethod(capture_paypal_order)
    cancel_order = staticmethod(cancel_order)
    admin_mark_paid = staticmethod(admin_mark_paid)


__all__ = ["ShopService"]
