from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

from app.workers.tasks import deliveries_maintenance
from tests.api.route_fakes import FakeSessionLocal


def _settings() -> SimpleNamespace:
    return SimpleNamespace(resolved_delivery_lease_seconds=120, resolved_delivery_max_attempts=5)


def test_fail_expired_leases_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, int]:
        return {"failed_deliveries": batch_size}

    monkeypatch.setattr(deliveries_maintenance, "fail_expired_delivery_leases_async", fake_async)

    assert deliveries_maintenance.fail_expired_delivery_leases(batch_size=3) == {"failed_deliveries": 3}


async def test_expired_leases_raise_ops_alert(monkeypatch) -> None:
    failed_ids = [uuid4(), uuid4()]
    alerts: list[tuple[str, dict[str, object]]] = []
    captured: dict[str, object] = {}

    async def fake_fail_expired(session, *, now_utc, lease_seconds, max_attempts, batch_size):
        captured.update(lease_seconds=lease_seconds, max_attempts=max_attempts, batch_size=batch_size)
        return failed_ids

    async def fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append((event, payload))
        return True

    monkeypatch.setattr(deliveries_maintenance, "get_settings", _settings)
    monkeypatch.setattr(deliveries_maintenance, "SessionLocal", FakeSessionLocal())
    monkeypatch.setattr(
        deliveries_maintenance.DeliveryService,
        "fail_expired_leases",
        staticmethod(fake_fail_expired),
    )
    monkeypatch.setattr(deliveries_maintenance, "send_ops_alert", fake_alert)

    result = await deliveries_maintenance.fail_expired_delivery_leases_async(batch_size=50)

    assert result == {"failed_deliveries": 2}
    assert captured == {"lease_seconds": 120, "max_attempts": 5, "batch_size": 50}
    assert alerts == [
        (
            "delivery_failed_terminal",
            {"failed_deliveries": 2, "delivery_ids": [str(delivery_id) for delivery_id in failed_ids]},
        )
    ]


async def test_no_expired_leases_sends_no_alert(monkeypatch) -> None:
    alerts: list[str] = []

    async def fake_fail_expired(session, **kwargs):
        return []

    async def fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append(event)
        return True

    monkeypatch.setattr(deliveries_maintenance, "get_settings", _settings)
    monkeypatch.setattr(deliveries_maintenance, "SessionLocal", FakeSessionLocal())
    monkeypatch.setattr(
        deliveries_maintenance.DeliveryService,
        "fail_expired_leases",
        staticmethod(fake_fail_expired),
    )
    monkeypatch.setattr(deliveries_maintenance, "send_ops_alert", fake_alert)

    result = await deliveries_maintenance.fail_expired_delivery_leases_async()

    assert result == {"failed_deliveries": 0}
    assert alerts == []
