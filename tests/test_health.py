from __future__ import annotations

from fastapi.testclient import TestClient

from app.api.routes import health as health_routes
from app.economy.deliveries.types import DeliveryQueueSummary
from app.main import app


async def _ok_check() -> dict[str, str]:
    return {"status": "ok"}


def _patch_dependencies(monkeypatch, **overrides) -> None:
    checks = {
        "_check_database": _ok_check,
        "_check_redis": _ok_check,
        "_check_celery_worker": _ok_check,
        "_check_delivery_backlog": _ok_check,
    }
    checks.update(overrides)
    for name, check in checks.items():
        monkeypatch.setattr(health_routes, name, check)


def test_health_reports_every_dependency(monkeypatch) -> None:
    _patch_dependencies(monkeypatch)

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
            "celery": {"status": "ok"},
            "deliveries": {"status": "ok"},
        },
    }


def test_live_needs_no_dependencies() -> None:
    response = TestClient(app).get("/live")

    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_health_degrades_when_database_is_down(monkeypatch) -> None:
    async def _failed_database() -> dict[str, str]:
        return {"status": "failed", "error": "database_unavailable"}

    _patch_dependencies(monkeypatch, _check_database=_failed_database)

    response = TestClient(app).get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_ready_ignores_workers_and_queue(monkeypatch) -> None:
    async def _failed() -> dict[str, str]:
        return {"status": "failed", "error": "down"}

    _patch_dependencies(monkeypatch, _check_celery_worker=_failed, _check_delivery_backlog=_failed)

    response = TestClient(app).get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
        },
    }


def test_ready_is_503_without_redis(monkeypatch) -> None:
    async def _failed_redis() -> dict[str, str]:
        return {"status": "failed", "error": "redis_unavailable"}

    _patch_dependencies(monkeypatch, _check_redis=_failed_redis)

    response = TestClient(app).get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


class _Session:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


async def test_delivery_backlog_check_flags_failed_deliveries(monkeypatch) -> None:
    async def fake_summary(session, *, now_utc):
        return DeliveryQueueSummary(by_status={"PENDING": 4, "FAILED": 1}, oldest_pending_age_seconds=30)

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _Session())
    monkeypatch.setattr(health_routes.DeliveryService, "get_summary", staticmethod(fake_summary))

    result = await health_routes._check_delivery_backlog()

    assert result == {"status": "ok", "backlog": "DEGRADED", "pending": 4}


async def test_delivery_backlog_check_hides_connection_details(monkeypatch) -> None:
    async def broken_summary(session, *, now_utc):
        raise RuntimeError("password=secret")

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _Session())
    monkeypatch.setattr(health_routes.DeliveryService, "get_summary", staticmethod(broken_summary))

    result = await health_routes._check_delivery_backlog()

    assert result == {"status": "failed", "error": "delivery_backlog_unavailable"}


async def test_database_check_sanitizes_exception(monkeypatch) -> None:
    class _BrokenSession:
        async def __aenter__(self):
            raise RuntimeError("password=secret")

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _BrokenSession())

    result = await health_routes._check_database()
    assert result == {"status": "failed", "error": "database_unavailable"}


def test_celery_check_sanitizes_exception(monkeypatch) -> None:
    class _BrokenControl:
        def inspect(self, timeout: float):
            raise RuntimeError("broker-url=redis://secret")

    monkeypatch.setattr(health_routes.celery_app, "control", _BrokenControl())

    result = health_routes._check_celery_worker_sync()
    assert result == {"status": "failed", "error": "celery_unavailable"}
