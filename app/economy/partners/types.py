from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class PartnerAdDraft:
    server_name: str
    address: str
    description: str
    version: str = ""
    website: str = ""
    discord: str = ""
    banner: str = ""


@dataclass(frozen=True, slots=True)
class PartnerQuote:
    slot: int
    kind: str
    days: int
    daily_price: Decimal
    discount_pct: int
    total: Decimal


@dataclass(frozen=True, slots=True)
class PartnerPricingConfig:
    slot_totals: tuple[tuple[Decimal, ...], ...]
    vip_totals: tuple[Decimal, ...]


@dataclass(frozen=True, slots=True)
class PartnerSlotOverrides:
    slots: tuple[UUID | None, ...]
    vip_ad_id: UUID | None = None

    def ad_id_for_slot(self, slot: int) -> UUID | None:
        if slot == 0:
            return self.vip_ad_id
        if 1 <= slot <= len(self.slots):
            return self.slots[slot - 1]
        return None


@dataclass(slots=True)
class PartnerSweepResult:
    expired: int
    canceled: int


@dataclass(slots=True)
class PartnerReservation:
    booking_id: UUID
    ad_id: UUID
    ad_status: str
    quote: PartnerQuote
    currency: str


@dataclass(slots=True)
class PartnerCheckoutStart:
    booking_id: UUID
    provider: str
    provider_reference: str
    checkout_url: str
    total: Decimal
    currency: str


@dataclass(slots=True)
class PartnerCaptureResult:
    booking_id: UUID
    status: str
    pending_review: bool
    starts_at: datetime | None
    ends_at: datetime | None
    idempotent_replay: bool
    payment_completed: bool = True
    provider_status: str = ""


@dataclass(slots=True)
class PartnerCancelResult:
    booking_id: UUID
    canceled: bool


@dataclass(slots=True)
class PartnerReviewResult:
    ad_id: UUID
    status: str
    activated_booking_id: UUID | None
    canceled_bookings: int


@dataclass(frozen=True, slots=True)
class PartnerSlotAvailability:
    slot: int
    is_vip: bool
    is_paid: bool
    available: bool
    overridden: bool
    quote: PartnerQuote | None
    held_until: datetime | None


@dataclass(frozen=True, slots=True)
class PartnerPlacement:
    slot: int
    ad_id: UUID
    server_name: str
    address: str
    version: str
    description: str
    website: str
    discord: str
    banner: str
    source: str
    ends_at: datetime | None


@dataclass(frozen=True, slots=True)
class PartnerBookingView:
    booking_id: UUID
    slot: int
    kind: str
    days: int
    status: str
    provider: str
    total: Decimal
    currency: str
    paid: bool
    starts_at: datetime | None
    ends_at: datetime | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class PartnerAdView:
    ad_id: UUID
    server_name: str
    address: str
    version: str
    description: str
    website: str
    discord: str
    banner: str
    status: str
    rejection_reason: str


@dataclass(frozen=True, slots=True)
class PartnerUserOverview:
    ad: PartnerAdView | None
    bookings: tuple[PartnerBookingView, ...]
