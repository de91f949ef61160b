from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_deliveries import ShopDelivery
from app.db.repo.shop_deliveries_repo import ShopDeliveriesRepo
from app.db.repo.shop_orders_repo import ShopOrdersRepo
from app.db.repo.shop_products_repo import ShopProductsRepo
from app.economy.deliveries.commands import build_order_commands
from app.economy.deliveries.errors import DeliveryLeaseLostError, DeliveryNotFoundError
from app.economy.deliveries.types import (
    ClaimedDelivery,
    DeliveryCompleteResult,
    DeliveryEnsureResult,
    DeliveryFailResult,
    DeliveryQueueSummary,
)

logger = structlog.get_logger(__name__)

LOCKED_BY_MAX_LENGTH = 80
LAST_ERROR_MAX_LENGTH = 500
DEFAULT_EXECUTOR_NAME = "server"


def _parse_product_id(raw: object) -> UUID | None:
    try:
        return UUID(str(raw))
    except ValueError:
        return None


def _executor_name(locked_by: str | None) -> str:
    return (locked_by or "").strip()[:LOCKED_BY_MAX_LENGTH] or DEFAULT_EXECUTOR_NAME


def _assert_lease_owner(delivery: ShopDelivery, *, executor: str) -> None:
    # a reclaimed lease belongs to the new executor; reports from the old one are refused
    if delivery.status == "PROCESSING" and delivery.locked_by != executor:
        logger.warning(
            "delivery_lease_lost",
            delivery_id=str(delivery.id),
            locked_by=delivery.locked_by,
            reported_by=executor,
        )
        raise DeliveryLeaseLostError(delivery.locked_by)


def _as_claimed(delivery: ShopDelivery) -> ClaimedDelivery:
    return ClaimedDelivery(
        delivery_id=delivery.id,
        order_id=delivery.order_id,
        minecraft_username=delivery.minecraft_username,
        minecraft_uuid=delivery.minecraft_uuid,
        commands=tuple(str(command) for command in delivery.commands or []),
        attempts=delivery.attempts,
        locked_at=delivery.locked_at or delivery.updated_at,
    )


class DeliveryService:
    @staticmethod
    async def ensure_delivery_for_order(
        session: AsyncSession,
        *,
        order_id: UUID,
        now_utc: datetime,
    ) -> DeliveryEnsureResult:
        """Create the command batch for a paid order, at most once.

        Orders whose products carry no commands are marked DELIVERED right away.
        """
        existing = await ShopDeliveriesRepo.get_by_order_id(session, order_id)
        if existing is not None:
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=existing.id, reason="exists")

        order = await ShopOrdersRepo.get_by_id(session, order_id)
        if order is None:
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=None, reason="order_missing")
        if order.status != "PAID":
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=None, reason="not_paid")

        player = (order.minecraft_username or "").strip()
        player_uuid = (order.minecraft_uuid or "").strip()
        if not player or not player_uuid:
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=None, reason="no_identity")

        items = [item for item in order.items or [] if isinstance(item, dict)]
        product_ids = [pid for pid in (_parse_product_id(item.get("product_id")) for item in items) if pid]
        products = await ShopProductsRepo.get_by_ids(session, product_ids)
        commands = build_order_commands(
            items=items,
            templates_by_product={str(pid): product.delivery_commands or [] for pid, product in products.items()},
            names_by_product={str(pid): product.name for pid, product in products.items()},
            player=player,
            uuid=player_uuid,
            order_id=str(order.id),
        )

        if not commands:
            await ShopOrdersRepo.mark_delivered_if_paid(session, order_id=order.id, now_utc=now_utc)
            logger.info("shop_order_delivered_without_commands", order_id=str(order.id))
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=None, reason="no_commands")

        delivery_id = await ShopDeliveriesRepo.try_create(
            session,
            order_id=order.id,
            user_id=order.user_id,
            minecraft_username=player,
            minecraft_uuid=player_uuid,
            commands=commands,
            now_utc=now_utc,
        )
        if delivery_id is None:
            return DeliveryEnsureResult(order_id=order_id, created=False, delivery_id=None, reason="race")

        logger.info(
            "shop_delivery_created",
            order_id=str(order.id),
            delivery_id=str(delivery_id),
            commands_total=len(commands),
        )
        return DeliveryEnsureResult(order_id=order_id, created=True, delivery_id=delivery_id, reason="created")

    @staticmethod
    async def claim_next(
        session: AsyncSession,
        *,
        locked_by: str,
        now_utc: datetime,
        lease_seconds: int,
        max_attempts: int,
    ) -> ClaimedDelivery | None:
        executor = _executor_name(locked_by)
        delivery = await ShopDeliveriesRepo.claim_next(
            session,
            locked_by=executor,
            now_utc=now_utc,
            lease_expired_before=now_utc - timedelta(seconds=lease_seconds),
            max_attempts=max_attempts,
        )
        if delivery is None:
            return None

        logger.info(
            "delivery_claimed",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            locked_by=executor,
            attempts=delivery.attempts,
        )
        return _as_claimed(delivery)

    @staticmethod
    async def complete(
        session: AsyncSession,
        *,
        delivery_id: UUID,
        locked_by: str | None,
        now_utc: datetime,
    ) -> DeliveryCompleteResult:
        delivery = await ShopDeliveriesRepo.get_by_id_for_update(session, delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError
        if delivery.status == "COMPLETED":
            return DeliveryCompleteResult(
                delivery_id=delivery.id,
                status=delivery.status,
                order_delivered=False,
                idempotent_replay=True,
            )
        _assert_lease_owner(delivery, executor=_executor_name(locked_by))

        delivery.status = "COMPLETED"
        delivery.completed_at = now_utc
        delivery.last_error = ""
        delivery.locked_at = None
        delivery.locked_by = ""
        delivery.updated_at = now_utc

        order_delivered = await ShopOrdersRepo.mark_delivered_if_paid(
            session,
            order_id=delivery.order_id,
            now_utc=now_utc,
        )
        logger.info(
            "delivery_completed",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            attempts=delivery.attempts,
        )
        return DeliveryCompleteResult(
            delivery_id=delivery.id,
            status=delivery.status,
            order_delivered=order_delivered,
            idempotent_replay=False,
        )

    @staticmethod
    async def fail(
        session: AsyncSession,
        *,
        delivery_id: UUID,
        locked_by: str | None,
        error: str | None,
        max_attempts: int,
        now_utc: datetime,
    ) -> DeliveryFailResult:
        delivery = await ShopDeliveriesRepo.get_by_id_for_update(session, delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError
        # a late failure report must not undo a completion or a terminal failure
        if delivery.status in {"COMPLETED", "FAILED"}:
            return DeliveryFailResult(
                delivery_id=delivery.id,
                status=delivery.status,
                attempts=delivery.attempts,
                terminal=False,
                idempotent_replay=True,
            )
        _assert_lease_owner(delivery, executor=_executor_name(locked_by))

        terminal = delivery.attempts >= max_attempts
        delivery.status = "FAILED" if terminal else "PENDING"
        delivery.last_error = (error or "")[:LAST_ERROR_MAX_LENGTH]
        delivery.locked_at = None
        delivery.locked_by = ""
        delivery.updated_at = now_utc

        log = logger.warning if terminal else logger.info
        log(
            "delivery_failed_terminal" if terminal else "delivery_failed_retry",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            attempts=delivery.attempts,
            max_attempts=max_attempts,
        )
        return DeliveryFailResult(
            delivery_id=delivery.id,
            status=delivery.status,
            attempts=delivery.attempts,
            terminal=terminal,
            idempotent_replay=False,
        )

    @staticmethod
    async def fail_expired_leases(
        session: AsyncSession,
        *,
        now_utc: datetime,
        lease_seconds: int,
        max_attempts: int,
        batch_size: int = 100,
    ) -> list[UUID]:
        expired = await ShopDeliveriesRepo.list_expired_leases_for_update(
            session,
            lease_expired_before=now_utc - timedelta(seconds=lease_seconds),
            max_attempts=max_attempts,
            limit=batch_size,
        )
        failed_ids: list[UUID] = []
        for delivery in expired:
            delivery.status = "FAILED"
            delivery.last_error = (delivery.last_error or "lease expired")[:LAST_ERROR_MAX_LENGTH]
            delivery.locked_at = None
            delivery.locked_by = ""
            delivery.updated_at = now_utc
            failed_ids.append(delivery.id)

        if failed_ids:
            logger.warning("delivery_leases_expired_terminal", failed_total=len(failed_ids))
        return failed_ids

    @staticmethod
    async def get_summary(session: AsyncSession, *, now_utc: datetime) -> DeliveryQueueSummary:
        return DeliveryQueueSummary(
            by_status=await ShopDeliveriesRepo.count_by_status(session),
            oldest_pending_age_seconds=await ShopDeliveriesRepo.get_oldest_pending_age_seconds(
                session,
                now_utc=now_utc,
            ),
        )
