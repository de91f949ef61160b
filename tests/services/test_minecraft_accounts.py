from __future__ import annotations

from uuid import UUID

import httpx
import pytest

from app.services import minecraft_accounts
from app.services.minecraft_accounts import (
    is_valid_minecraft_username,
    offline_uuid_for_username,
    resolve_minecraft_account,
)

_REAL_ASYNC_CLIENT = httpx.AsyncClient


def _patch_transport(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    def factory(timeout: float) -> httpx.AsyncClient:
        return _REAL_ASYNC_CLIENT(timeout=timeout, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(minecraft_accounts.httpx, "AsyncClient", factory)


@pytest.mark.parametrize("username", ["Steve", "alex_01", "abc", "A" * 16])
def test_valid_usernames(username: str) -> None:
    assert is_valid_minecraft_username(username) is True


@pytest.mark.parametrize("username", ["", "ab", "A" * 17, "bad-name", "space name", "ümlaut"])
def test_invalid_usernames(username: str) -> None:
    assert is_valid_minecraft_username(username) is False


def test_offline_uuid_is_name_based_version_3() -> None:
    value = UUID(offline_uuid_for_username("Steve"))

    assert value.version == 3
    assert offline_uuid_for_username("Steve") == str(value)
    assert offline_uuid_for_username("steve") != str(value)


@pytest.mark.asyncio
async def test_offline_mode_never_calls_mojang(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no network in offline mode")

    _patch_transport(monkeypatch, handler)

    account = await resolve_minecraft_account(" Steve ", online_mode=False)

    assert account is not None
    assert account.username == "Steve"
    assert account.source == "offline"
    assert account.uuid == offline_uuid_for_username("Steve")


@pytest.mark.asyncio
async def test_online_mode_uses_canonical_name_and_dashed_uuid(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/users/profiles/minecraft/notch"
        return httpx.Response(200, json={"id": "069a79f444e94726a5befca90e38aaf5", "name": "Notch"})

    _patch_transport(monkeypatch, handler)

    account = await resolve_minecraft_account("notch", online_mode=True)

    assert account is not None
    assert account.username == "Notch"
    assert account.uuid == "069a79f4-44e9-4726-a5be-fca90e38aaf5"
    assert account.source == "mojang"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [204, 404, 500])
async def test_online_mode_unknown_player_returns_none(monkeypatch, status_code: int) -> None:
    _patch_transport(monkeypatch, lambda request: httpx.Response(status_code))

    assert await resolve_minecraft_account("Nobody", online_mode=True) is None


@pytest.mark.asyncio
async def test_invalid_username_short_circuits() -> None:
    assert await resolve_minecraft_account("no!", online_mode=True) is None
