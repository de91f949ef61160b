from __future__ import annotations

from .ads import normalize_ad_draft, upsert_ad_for_user
from .cancel import cancel_booking
from .capture import apply_stripe_checkout_session, capture_paypal_payment, confirm_stripe_payment
from .checkout import start_paypal_checkout, start_stripe_checkout
from .queries import (
    get_user_overview,
    list_active_placements,
    list_ads,
    list_bookings,
    list_slot_availability,
)
from .reservations import request_free_slot, reserve_paid_slot
from .review import REVIEW_DECISIONS, review_ad
from .sweep import sweep_bookings


class PartnerService:
    normalize_ad_draft = staticmethod(normalize_ad_draft)
    upsert_ad_for_user = staticmethod(upsert_ad_for_user)
    sweep_bookings = staticmethod(sweep_bookings)
    reserve_paid_slot = staticmethod(reserve_paid_slot)
    request_free_slot = staticmethod(request_free_slot)
    start_stripe_checkout = staticmethod(start_stripe_checkout)
    start_paypal_checkout = staticmethod(start_paypal_checkout)
    confirm_stripe_payment = staticmethod(confirm_stripe_payment)
    capture_paypal_payment = staticmethod(capture_paypal_payment)
    apply_stripe_checkout_session = staticmethod(apply_stripe_checkout_session)
    cancel_booking = staticmethod(cancel_booking)
    review_ad = staticmethod(review_ad)
    list_slot_availability = staticmethod(list_slot_availability)
    list_active_placements = staticmethod(list_active_placements)
    get_user_overview = staticmethod(get_user_overview)
    list_ads = staticmethod(list_ads)
    list_bookings = staticmethod(list_bookings)


__all__ = [
    "REVIEW_DECISIONS",
    "PartnerService",
]
