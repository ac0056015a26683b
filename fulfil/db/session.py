# fulfil/db/session.py
# 进程级异步引擎 / 会话工厂
from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from fulfil.core.config import get_settings
from fulfil.db.engine import create_async_engine_safe


@lru_cache
def get_async_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine_safe(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        lock_timeout_ms=settings.LOCK_TIMEOUT_MS,
    )


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_engines() -> None:
    """关闭引擎（测试 / 生命周期结束）。"""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
    get_sessionmaker.cache_clear()
    get_async_engine.cache_clear()
