from __future__ import annotations

from app.economy.partners.types import PartnerSweepResult
from app.workers.tasks import partner_bookings
from tests.api.route_fakes import FakeSessionLocal


def test_sweep_partner_bookings_task_wrapper(monkeypatch) -> None:
    async def fake_async() -> dict[str, int]:
        return {"expired_bookings": 2, "canceled_bookings": 1}

    monkeypatch.setattr(partner_bookings, "sweep_partner_bookings_async", fake_async)

    assert partner_bookings.sweep_partner_bookings() == {"expired_bookings": 2, "canceled_bookings": 1}


async def test_sweep_reports_counts(monkeypatch) -> None:
    session_local = FakeSessionLocal()

    async def fake_sweep(session, *, now_utc):
        assert session is session_local.session
        return PartnerSweepResult(expired=3, canceled=4)

    monkeypatch.setattr(partner_bookings, "SessionLocal", session_local)
    monkeypatch.setattr(partner_bookings.PartnerService, "sweep_bookings", staticmethod(fake_sweep))

    result = await partner_bookings.sweep_partner_bookings_async()

    assert result == {"expired_bookings": 3, "canceled_bookings": 4}
    assert session_local.begin_calls == 1


def test_sweep_is_scheduled_on_normal_queue() -> None:
    entry = partner_bookings.celery_app.conf.beat_schedule["sweep-partner-bookings-every-5-minutes"]

    assert entry["task"] == "app.workers.tasks.partner_bookings.sweep_partner_bookings"
    assert entry["options"] == {"queue": "q_normal"}
