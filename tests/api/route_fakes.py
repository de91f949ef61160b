from __future__ import annotations

from types import SimpleNamespace


class FakeSession:
    pass


class _Begin:
    def __init__(self, owner: FakeSessionLocal) -> None:
        self._owner = owner

    async def __aenter__(self) -> FakeSession:
        return self._owner.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self._owner.commits += 1
        return False


class FakeSessionLocal:
    """Stands in for the async sessionmaker so routes never open a connection."""

    def __init__(self) -> None:
        self.session = FakeSession()
        self.begin_calls = 0
        self.commits = 0

    def begin(self) -> _Begin:
        self.begin_calls += 1
        return _Begin(self)


def internal_settings(**overrides: object) -> SimpleNamespace:
    base = {
        "internal_api_token": "internal-secret",
        "internal_api_allowlist": "127.0.0.1/32",
        "internal_api_trusted_proxies": "",
    }
    base.update(overrides)
    return SimpleNamespace(**base)
