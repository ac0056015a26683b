# fulfil/services/uow.py
"""
Unit of Work（UoW）：下单链路的事务边界。

    async with UnitOfWork(session_maker) as uow:
        rows = await repo.lock_and_read(uow.session)
        ...

- 无异常 -> commit；有异常 -> rollback，异常继续向外抛
- 传入 session 工厂：UoW 自建 session 并负责 close
- 传入现成 AsyncSession：只管事务，不负责关闭

编排层把 uow.session 交给仓储（WarehouseRepo / OrderRepo）；
分配 / 定价引擎完全不接触事务。
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

AsyncSessionFactory = Callable[[], AsyncSession]
SessionOrFactory = Union[AsyncSession, AsyncSessionFactory]


class UnitOfWork(AbstractAsyncContextManager):
    def __init__(self, session_or_factory: SessionOrFactory) -> None:
        self._session_or_factory = session_or_factory
        self.session: Optional[AsyncSession] = None
        self._owns_session = False

    async def __aenter__(self) -> "UnitOfWork":
        if isinstance(self._session_or_factory, AsyncSession):
            self.session = self._session_or_factory
            self._owns_session = False
        else:
            factory = self._session_or_factory
            if not callable(factory):
                raise TypeError("UnitOfWork 期望传入 AsyncSession 或 async_sessionmaker。")
            self.session = factory()
            self._owns_session = True

        if not isinstance(self.session, AsyncSession):
            raise TypeError("UnitOfWork 需要 AsyncSession。")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self.session is None:
            return False

        try:
            if exc_type:
                await self.session.rollback()
            else:
                await self.session.commit()
        finally:
            if self._owns_session:
                try:
                    await self.session.close()
                finally:
                    self.session = None
        # False -> 异常继续向外抛
        return False
