# fulfil/db/base.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("fulfil.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


def init_models() -> None:
    """
    显式导入全部模型并固化关系映射（字符串关系目标必须先注册）。
    """
    import fulfil.models.order  # noqa: F401
    import fulfil.models.order_allocation  # noqa: F401
    import fulfil.models.warehouse  # noqa: F401

    configure_mappers()
    log.debug("ORM models initialized (%d tables)", len(Base.metadata.tables))


async def init_db(engine: AsyncEngine, *, drop: bool = False) -> None:
    """本地 SQLite / 测试用：直接按 metadata 建表（生产走 Alembic）。"""
    init_models()
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
