from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.partner_ads import PartnerAd
from app.db.models.partner_bookings import PartnerBooking

HOLDING_STATUSES = ("PENDING", "ACTIVE")
PAYMENT_PROVIDERS = ("STRIPE", "PAYPAL")


class PartnerBookingsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, booking_id: UUID) -> PartnerBooking | None:
        return await session.get(PartnerBooking, booking_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, booking_id: UUID) -> PartnerBooking | None:
        stmt = (
            select(PartnerBooking)
            .where(PartnerBooking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def refresh(session: AsyncSession, booking_id: UUID) -> PartnerBooking | None:
        return await session.get(PartnerBooking, booking_id, populate_existing=True)

    @staticmethod
    async def get_by_stripe_session_id(session: AsyncSession, session_id: str) -> PartnerBooking | None:
        stmt = select(PartnerBooking).where(PartnerBooking.stripe_checkout_session_id == session_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_paypal_order_id(session: AsyncSession, order_id: str) -> PartnerBooking | None:
        stmt = select(PartnerBooking).where(PartnerBooking.paypal_order_id == order_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_holding_for_slot(session: AsyncSession, *, slot: int) -> PartnerBooking | None:
        stmt = (
            select(PartnerBooking)
            .where(
                PartnerBooking.slot == slot,
                PartnerBooking.status.in_(HOLDING_STATUSES),
            )
            .order_by(PartnerBooking.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_holding(session: AsyncSession) -> list[PartnerBooking]:
        stmt = select(PartnerBooking).where(PartnerBooking.status.in_(HOLDING_STATUSES))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def expire_finished(session: AsyncSession, *, now_utc: datetime) -> int:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.status == "ACTIVE",
                PartnerBooking.ends_at.is_not(None),
                PartnerBooking.ends_at < now_utc,
            )
            .values(status="EXPIRED", slot_active_key=None, updated_at=now_utc)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars()))

    @staticmethod
    async def cancel_stale_unpaid(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.status == "PENDING",
                PartnerBooking.provider.in_(PAYMENT_PROVIDERS),
                PartnerBooking.paid_at.is_(None),
                PartnerBooking.created_at < older_than_utc,
            )
            .values(status="CANCELED", slot_active_key=None, updated_at=now_utc)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars()))

    @staticmethod
    async def try_mark_paid(
        session: AsyncSession,
        *,
        booking_id: UUID,
        now_utc: datetime,
        active_until: datetime | None,
        provider_values: dict[str, object],
    ) -> PartnerBooking | None:
        values: dict[str, object] = dict(provider_values)
        values["paid_at"] = now_utc
        values["updated_at"] = now_utc
        if active_until is not None:
            values["status"] = "ACTIVE"
            values["starts_at"] = now_utc
            values["ends_at"] = active_until

        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.id == booking_id,
                PartnerBooking.status == "PENDING",
                PartnerBooking.paid_at.is_(None),
            )
            .values(**values)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await PartnerBookingsRepo.refresh(session, updated_id)

    @staticmethod
    async def record_provider_status(
        session: AsyncSession,
        *,
        booking_id: UUID,
        now_utc: datetime,
        provider_values: dict[str, object],
    ) -> bool:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.id == booking_id,
                PartnerBooking.status == "PENDING",
                PartnerBooking.paid_at.is_(None),
            )
            .values(updated_at=now_utc, **provider_values)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def try_rehold_canceled(
        session: AsyncSession,
        *,
        booking_id: UUID,
        slot_active_key: str,
        now_utc: datetime,
    ) -> PartnerBooking | None:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.id == booking_id,
                PartnerBooking.status == "CANCELED",
                PartnerBooking.paid_at.is_(None),
            )
            .values(status="PENDING", slot_active_key=slot_active_key, updated_at=now_utc)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await PartnerBookingsRepo.refresh(session, updated_id)

    @staticmethod
    async def cancel_unpaid_pending(
        session: AsyncSession,
        *,
        booking_id: UUID,
        user_id: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.id == booking_id,
                PartnerBooking.user_id == user_id,
                PartnerBooking.status == "PENDING",
                PartnerBooking.paid_at.is_(None),
            )
            .values(status="CANCELED", slot_active_key=None, updated_at=now_utc)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_latest_activatable_for_ad_for_update(
        session: AsyncSession,
        *,
        ad_id: UUID,
    ) -> PartnerBooking | None:
        stmt = (
            select(PartnerBooking)
            .where(
                PartnerBooking.ad_id == ad_id,
                PartnerBooking.status == "PENDING",
                PartnerBooking.starts_at.is_(None),
                or_(
                    PartnerBooking.paid_at.is_not(None),
                    PartnerBooking.provider == "FREE",
                ),
            )
            .order_by(PartnerBooking.created_at.desc())
            .limit(1)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def cancel_holding_for_ad(
        session: AsyncSession,
        *,
        ad_id: UUID,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(PartnerBooking)
            .where(
                PartnerBooking.ad_id == ad_id,
                PartnerBooking.status.in_(HOLDING_STATUSES),
            )
            .values(status="CANCELED", slot_active_key=None, updated_at=now_utc)
            .returning(PartnerBooking.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars()))

    @staticmethod
    async def list_live_placements(
        session: AsyncSession,
        *,
        now_utc: datetime,
    ) -> list[tuple[PartnerBooking, PartnerAd]]:
        stmt = (
            select(PartnerBooking, PartnerAd)
            .join(PartnerAd, PartnerAd.id == PartnerBooking.ad_id)
            .where(
                PartnerBooking.status == "ACTIVE",
                PartnerAd.status == "APPROVED",
                and_(
                    PartnerBooking.starts_at.is_not(None),
                    PartnerBooking.starts_at <= now_utc,
                ),
                PartnerBooking.ends_at > now_utc,
            )
            .order_by(PartnerBooking.slot.asc(), PartnerBooking.starts_at.asc())
        )
        result = await session.execute(stmt)
        return [(booking, ad) for booking, ad in result.all()]

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: str,
        limit: int = 20,
    ) -> list[PartnerBooking]:
        stmt = (
            select(PartnerBooking)
            .where(PartnerBooking.user_id == user_id)
            .order_by(PartnerBooking.created_at.desc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_statuses(
        session: AsyncSession,
        *,
        statuses: Iterable[str],
        limit: int = 200,
    ) -> list[PartnerBooking]:
        stmt = (
            select(PartnerBooking)
            .where(PartnerBooking.status.in_(tuple(statuses)))
            .order_by(PartnerBooking.created_at.desc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_stale_unpaid(session: AsyncSession, *, older_than_utc: datetime) -> int:
        stmt = select(func.count(PartnerBooking.id)).where(
            PartnerBooking.status == "PENDING",
            PartnerBooking.provider.in_(PAYMENT_PROVIDERS),
            PartnerBooking.paid_at.is_(None),
            PartnerBooking.created_at < older_than_utc,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        booking: PartnerBooking,
        created_at: datetime,
    ) -> PartnerBooking:
        booking.created_at = created_at
        booking.updated_at = created_at
        session.add(booking)
        await session.flush()
        return booking

