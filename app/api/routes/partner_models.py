from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

DurationKind = Literal["CUSTOM", "MONTHLY"]


class PartnerAdPayload(BaseModel):
    server_name: str = Field(max_length=200)
    address: str = Field(max_length=200)
    description: str = Field(max_length=2000)
    version: str = Field(default="", max_length=200)
    website: str = Field(default="", max_length=500)
    discord: str = Field(default="", max_length=500)
    banner: str = Field(default="", max_length=1000)


class PartnerCheckoutCreateRequest(BaseModel):
    slot: int = Field(ge=0, le=10)
    kind: DurationKind = "CUSTOM"
    days: int | None = Field(default=None, ge=1, le=30)
    ad: PartnerAdPayload


class PartnerCheckoutStartResponse(BaseModel):
    booking_id: UUID
    provider: str
    provider_reference: str
    checkout_url: str
    total: float
    currency: str


class PartnerStripeConfirmRequest(BaseModel):
    booking_id: UUID
    session_id: str = Field(min_length=1, max_length=255)


class PartnerPayPalCaptureRequest(BaseModel):
    booking_id: UUID
    order_id: str = Field(min_length=1, max_length=64)


class PartnerCaptureResponse(BaseModel):
    booking_id: UUID
    status: str
    pending_review: bool
    starts_at: datetime | None
    ends_at: datetime | None
    idempotent_replay: bool


class PartnerCancelRequest(BaseModel):
    booking_id: UUID


class PartnerCancelResponse(BaseModel):
    ok: bool = True
    booking_id: UUID
    canceled: bool


class PartnerFreeSlotRequest(BaseModel):
    slot: int = Field(ge=6, le=10)
    kind: DurationKind = "CUSTOM"
    days: int | None = Field(default=None, ge=1, le=30)
    note: str = Field(max_length=1000)
    ad: PartnerAdPayload


class PartnerFreeSlotResponse(BaseModel):
    booking_id: UUID
    status: str
    ad_status: str
    days: int


class PartnerQuoteResponse(BaseModel):
    days: int
    daily_price: float
    discount_pct: int
    total: float


class PartnerSlotResponse(BaseModel):
    slot: int
    is_vip: bool
    is_paid: bool
    available: bool
    overridden: bool
    quote: PartnerQuoteResponse | None
    held_until: datetime | None


class PartnerSlotsResponse(BaseModel):
    currency: str
    kind: DurationKind
    slots: list[PartnerSlotResponse]


class PartnerPlacementResponse(BaseModel):
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


class PartnerActiveResponse(BaseModel):
    placements: list[PartnerPlacementResponse]


class PartnerAdResponse(BaseModel):
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


class PartnerBookingResponse(BaseModel):
    booking_id: UUID
    slot: int
    kind: str
    days: int
    status: str
    provider: str
    total: float
    currency: str
    paid: bool
    starts_at: datetime | None
    ends_at: datetime | None
    created_at: datetime


class PartnerMyAdResponse(BaseModel):
    ad: PartnerAdResponse | None
    bookings: list[PartnerBookingResponse]


class PartnerReviewRequest(BaseModel):
    decision: Literal["APPROVE", "REJECT"]
    reason: str | None = Field(default=None, max_length=1000)


class PartnerReviewResponse(BaseModel):
    ad_id: UUID
    status: str
    activated_booking_id: UUID | None
    canceled_bookings: int


class PartnerAdsListResponse(BaseModel):
    items: list[PartnerAdResponse]


class PartnerBookingsListResponse(BaseModel):
    items: list[PartnerBookingResponse]


class PartnerPricingResponse(BaseModel):
    slot_totals: list[list[float]]
    vip_totals: list[float]


class PartnerPricingUpdateRequest(BaseModel):
    slot_totals: list[list[float]] | None = None
    vip_totals: list[float] | None = None
    slot_daily_prices: list[float] | None = None


class PartnerSlotOverridesPayload(BaseModel):
    slots: list[UUID | None] = Field(default_factory=list, max_length=10)
    vip_ad_id: UUID | None = None
