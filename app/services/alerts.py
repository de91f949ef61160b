from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
VALID_SEVERITIES = {"critical", "error", "warning", "info"}
SEVERITY_COLOR = {
    "critical": 0xB42318,
    "error": 0xF04438,
    "warning": 0xF79009,
    "info": 0x1570EF,
}
DISCORD_FIELD_LIMIT = 1000


@dataclass(frozen=True)
class AlertRoute:
    channels: tuple[str, ...]
    severity: str


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


DEFAULT_ALERT_ROUTE = AlertRoute(channels=("generic",), severity="warning")
EVENT_ALERT_ROUTES = {
    "payments_recovery_review_required": AlertRoute(
        channels=("discord", "generic"),
        severity="error",
    ),
    "delivery_failed_terminal": AlertRoute(
        channels=("discord", "generic"),
        severity="error",
    ),
    "partner_booking_paid_pending_review": AlertRoute(
        channels=("discord",),
        severity="info",
    ),
    "partner_booking_paid_after_release": AlertRoute(
        channels=("discord", "generic"),
        severity="error",
    ),
}


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(*, route: AlertRoute, settings: object) -> list[AlertTarget]:
    generic_webhook_url = _setting_str(settings, "ops_alert_webhook_url")
    channel_to_url: dict[str, str] = {
        "generic": generic_webhook_url,
        "discord": _setting_str(settings, "ops_alert_discord_webhook_url"),
    }

    targets: list[AlertTarget] = []
    for channel in route.channels:
        url = channel_to_url.get(channel, "")
        if url:
            targets.append(AlertTarget(channel=channel, url=url))

    if not targets and generic_webhook_url:
        targets.append(AlertTarget(channel="generic", url=generic_webhook_url))

    return targets


def _payload_text(payload: dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def _build_generic_payload(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
) -> dict[str, object]:
    return {
        "event": event,
        "payload": payload,
        "sent_at": sent_at.isoformat(),
        "severity": route.severity,
    }


def _build_discord_payload(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
    app_env: str,
) -> dict[str, object]:
    return {
        "content": f"[{route.severity.upper()}] {event}",
        "embeds": [
            {
                "title": event,
                "color": SEVERITY_COLOR.get(route.severity, SEVERITY_COLOR["warning"]),
                "timestamp": sent_at.isoformat(),
                "fields": [
                    {"name": "Environment", "value": app_env, "inline": True},
                    {"name": "Severity", "value": route.severity, "inline": True},
                    {
                        "name": "Payload",
                        "value": _payload_text(payload)[:DISCORD_FIELD_LIMIT],
                        "inline": False,
                    },
                ],
            }
        ],
    }


def _build_channel_payload(
    *,
    channel: str,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
    app_env: str,
) -> dict[str, Any]:
    if channel == "generic":
        return _build_generic_payload(event=event, payload=payload, sent_at=sent_at, route=route)
    if channel == "discord":
        return _build_discord_payload(
            event=event,
            payload=payload,
            sent_at=sent_at,
            route=route,
            app_env=app_env,
        )
    raise ValueError(f"Unsupported alert channel: {channel}")


async def _post_json(
    *,
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    event: str,
    channel: str,
) -> bool:
    try:
        response = await client.post(url, json=body)
        response.raise_for_status()
        return True
    except httpx.HTTPError:
        logger.exception(
            "ops_alert_delivery_failed",
            alert_event=event,
            provider=channel,
        )
        return False


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    settings = get_settings()
    route = EVENT_ALERT_ROUTES.get(event, DEFAULT_ALERT_ROUTE)
    targets = _resolve_targets(route=route, settings=settings)
    if not targets:
        return False

    sent_at = datetime.now(timezone.utc)
    app_env = _setting_str(settings, "app_env") or "dev"

    delivered_to: list[str] = []
    failed_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            body = _build_channel_payload(
                channel=target.channel,
                event=event,
                payload=payload,
                sent_at=sent_at,
                route=route,
                app_env=app_env,
            )
            delivered = await _post_json(
                client=client,
                url=target.url,
                body=body,
                event=event,
                channel=target.channel,
            )
            if delivered:
                delivered_to.append(target.channel)
            else:
                failed_to.append(target.channel)

    if not delivered_to:
        logger.error(
            "ops_alert_delivery_exhausted",
            alert_event=event,
            severity=route.severity,
            failed_to=failed_to,
        )
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=route.severity,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return True
