from __future__ import annotations

DELIVERY_BACKLOG_MAX_PENDING_AGE_SECONDS = 900


def recovery_needs_review(summary: dict[str, int]) -> bool:
    return summary.get("errors", 0) > 0 or summary.get("not_recovered", 0) > 0


def delivery_backlog_status(
    *,
    failed_count: int,
    oldest_pending_age_seconds: int,
    max_pending_age_seconds: int = DELIVERY_BACKLOG_MAX_PENDING_AGE_SECONDS,
) -> str:
    if failed_count > 0 or oldest_pending_age_seconds > max_pending_age_seconds:
        return "DEGRADED"
    return "OK"
