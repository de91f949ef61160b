from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request

USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"
USER_EMAIL_HEADER = "X-User-Email"


@dataclass(frozen=True, slots=True)
class RequestUser:
    user_id: str
    username: str
    email: str | None


@dataclass(frozen=True, slots=True)
class RequestMeta:
    ip: str
    user_agent: str


def _header(request: Request, name: str) -> str:
    return (request.headers.get(name) or "").strip()


def optional_user(request: Request) -> RequestUser | None:
    user_id = _header(request, USER_ID_HEADER)[:64]
    if not user_id:
        return None
    return RequestUser(
        user_id=user_id,
        username=_header(request, USER_NAME_HEADER)[:64] or user_id,
        email=_header(request, USER_EMAIL_HEADER) or None,
    )


def require_user(request: Request) -> RequestUser:
    user = optional_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})
    return user


def request_meta(request: Request) -> RequestMeta:
    forwarded_for = _header(request, "X-Forwarded-For")
    ip = forwarded_for.split(",", maxsplit=1)[0].strip() if forwarded_for else ""
    if not ip:
        ip = _header(request, "X-Real-Ip") or (request.client.host if request.client is not None else "")
    return RequestMeta(ip=ip[:64], user_agent=_header(request, "User-Agent")[:300])
