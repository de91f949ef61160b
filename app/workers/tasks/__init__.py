from app.workers.tasks.deliveries_maintenance import fail_expired_delivery_leases
from app.workers.tasks.partner_bookings import sweep_partner_bookings
from app.workers.tasks.payments_reliability import (
    expire_stale_pending_orders,
    recover_paid_orders_without_delivery,
)

__all__ = [
    "expire_stale_pending_orders",
    "fail_expired_delivery_leases",
    "recover_paid_orders_without_delivery",
    "sweep_partner_bookings",
]
