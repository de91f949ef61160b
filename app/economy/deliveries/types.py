from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class DeliveryEnsureResult:
    order_id: UUID
    created: bool
    delivery_id: UUID | None
    reason: str


@dataclass(frozen=True, slots=True)
class ClaimedDelivery:
    delivery_id: UUID
    order_id: UUID
    minecraft_username: str
    minecraft_uuid: str
    commands: tuple[str, ...]
    attempts: int
    locked_at: datetime


@dataclass(slots=True)
class DeliveryCompleteResult:
    delivery_id: UUID
    status: str
    order_delivered: bool
    idempotent_replay: bool


@dataclass(slots=True)
class DeliveryFailResult:
    delivery_id: UUID
    status: str
    attempts: int
    terminal: bool
    idempotent_replay: bool


@dataclass(frozen=True, slots=True)
class DeliveryQueueSummary:
    by_status: dict[str, int]
    oldest_pending_age_seconds: int
