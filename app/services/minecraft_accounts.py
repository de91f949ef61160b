from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from uuid import UUID

import httpx
import structlog

logger = structlog.get_logger(__name__)

MOJANG_PROFILE_URL = "https://api.mojang.com/users/profiles/minecraft/{username}"
MINECRAFT_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,16}$")


@dataclass(frozen=True, slots=True)
class MinecraftAccount:
    username: str
    uuid: str
    source: str


def is_valid_minecraft_username(username: str) -> bool:
    return MINECRAFT_USERNAME_RE.fullmatch(username) is not None


def offline_uuid_for_username(username: str) -> str:
    """Same value as Java's UUID.nameUUIDFromBytes("OfflinePlayer:" + name)."""
    digest = bytearray(hashlib.md5(f"OfflinePlayer:{username}".encode("utf-8")).digest())
    digest[6] = (digest[6] & 0x0F) | 0x30
    digest[8] = (digest[8] & 0x3F) | 0x80
    return str(UUID(bytes=bytes(digest)))


def _dashed_uuid(raw_id: object) -> str | None:
    if not isinstance(raw_id, str):
        return None
    try:
        return str(UUID(hex=raw_id.replace("-", "")))
    except ValueError:
        return None


async def resolve_minecraft_account(
    username_raw: str,
    *,
    online_mode: bool,
    timeout_seconds: float = 5.0,
) -> MinecraftAccount | None:
    username = (username_raw or "").strip()
    if not is_valid_minecraft_username(username):
        return None

    if not online_mode:
        return MinecraftAccount(
            username=username,
            uuid=offline_uuid_for_username(username),
            source="offline",
        )

    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(
                MOJANG_PROFILE_URL.format(username=username),
                headers={"Accept": "application/json"},
            )
    except httpx.HTTPError as exc:
        logger.warning("mojang_profile_lookup_failed", username=username, error=str(exc))
        return None

    if response.status_code in {204, 404} or response.is_error:
        return None

    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    uuid = _dashed_uuid(payload.get("id"))
    if uuid is None:
        return None
    name = payload.get("name")
    return MinecraftAccount(
        username=name if isinstance(name, str) and name else username,
        uuid=uuid,
        source="mojang",
    )
