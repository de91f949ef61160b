from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.app_settings import AppSetting


class AppSettingsRepo:
    @staticmethod
    async def get_value(session: AsyncSession, *, key: str) -> dict[str, object] | None:
        stmt = select(AppSetting.value).where(AppSetting.key == key)
        result = await session.execute(stmt)
        value = result.scalar_one_or_none()
        return value if isinstance(value, dict) else None

    @staticmethod
    async def upsert_value(
        session: AsyncSession,
        *,
        key: str,
        value: dict[str, object],
        now_utc: datetime,
    ) -> None:
        stmt = (
            postgresql_insert(AppSetting)
            .values(key=key, value=value, updated_at=now_utc)
            .on_conflict_do_update(
                index_elements=[AppSetting.key],
                set_={"value": value, "updated_at": now_utc},
            )
        )
        await session.execute(stmt)
