from __future__ import annotations

from decimal import Decimal

PARTNER_SLOTS = 10
PARTNER_MAX_DAYS = 30
PARTNER_PAID_MAX_SLOT = 5
PARTNER_VIP_SLOT = 0
MONTHLY_DAYS = 30

PARTNER_DURATION_KINDS = frozenset({"CUSTOM", "MONTHLY"})
PARTNER_PAYMENT_PROVIDERS = frozenset({"STRIPE", "PAYPAL"})
# Stripe refuses checkout sessions that expire sooner than 30 minutes
CHECKOUT_SESSION_TTL_MINUTES = 30
STALE_UNPAID_BOOKING_MINUTES = 35

FREE_REQUEST_NOTE_MIN_LENGTH = 20
FREE_REQUEST_NOTE_MAX_LENGTH = 300
REJECTION_REASON_MAX_LENGTH = 300
USER_BOOKINGS_LIMIT = 20

DEFAULT_SLOT_DAILY_PRICES: tuple[Decimal, ...] = (
    Decimal("5.0"),
    Decimal("4.0"),
    Decimal("3.0"),
    Decimal("2.5"),
    Decimal("2.0"),
    Decimal("1.5"),
    Decimal("1.2"),
    Decimal("1.0"),
    Decimal("0.8"),
    Decimal("0.6"),
)

PRICING_SETTINGS_KEY = "partner_pricing"
SLOT_OVERRIDES_SETTINGS_KEY = "partner_slot_overrides"


def slot_active_key(slot: int) -> str:
    return f"SLOT#{slot}"


def is_vip_slot(slot: int) -> bool:
    return slot == PARTNER_VIP_SLOT


def is_paid_slot(slot: int) -> bool:
    return slot == PARTNER_VIP_SLOT or 1 <= slot <= PARTNER_PAID_MAX_SLOT


def is_free_slot(slot: int) -> bool:
    return PARTNER_PAID_MAX_SLOT < slot <= PARTNER_SLOTS


def slot_label(slot: int) -> str:
    return "VIP" if is_vip_slot(slot) else f"#{slot}"
