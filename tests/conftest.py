# tests/conftest.py
from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable, Dict, List, Sequence

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from fulfil.api.deps import get_order_service
from fulfil.core.config import OrderingConfig, normalize_async_dsn
from fulfil.db.base import init_db
from fulfil.db.engine import create_async_engine_safe
from fulfil.main import app
from fulfil.models.warehouse import Warehouse
from fulfil.seed import seed_warehouses
from fulfil.services.order_service import OrderService

# ==========================
# 数据库 DSN：显式指定则用之（PG），否则每用例一个临时 SQLite 文件
# ==========================
TEST_DATABASE_URL = os.getenv("FULFIL_TEST_DATABASE_URL")

LOCK_TIMEOUT_MS = 5000

WarehouseRow = Dict[str, object]
SeedFn = Callable[[Sequence[WarehouseRow]], Awaitable[List[int]]]


@pytest.fixture(scope="function")
def database_url(tmp_path: Path) -> str:
    if TEST_DATABASE_URL:
        return normalize_async_dsn(TEST_DATABASE_URL)
    return f"sqlite+aiosqlite:///{tmp_path / 'fulfil_test.db'}"


# =========================================
# 每用例独立 Engine（NullPool，避免跨 loop）+ 重建表
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine_safe(
        database_url,
        lock_timeout_ms=LOCK_TIMEOUT_MS,
        poolclass=NullPool,
    )
    await init_db(engine, drop=True)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """断言用的独立 Session（只读为主）。"""
    async with async_session_maker() as sess:
        yield sess


@pytest.fixture
def seed(async_session_maker) -> SeedFn:
    """
    写入自定义仓库，返回 id 列表（与入参顺序一致）：

        ids = await seed([{"name": "A", "latitude": 0, "longitude": 0, "stock": 5}])
    """

    async def _seed(rows: Sequence[WarehouseRow]) -> List[int]:
        async with async_session_maker() as s:
            objs = [Warehouse(**dict(r)) for r in rows]
            s.add_all(objs)
            await s.commit()
            return [int(w.id) for w in objs]

    return _seed


@pytest_asyncio.fixture
async def reference_warehouses(async_session_maker) -> Dict[str, int]:
    """六个参考仓库；返回 name -> id。"""
    async with async_session_maker() as s:
        rows = await seed_warehouses(s)
        await s.commit()
        return {w.name: int(w.id) for w in rows}


@pytest.fixture
def ordering_config() -> OrderingConfig:
    return OrderingConfig()


@pytest.fixture
def order_service(async_session_maker, ordering_config: OrderingConfig) -> OrderService:
    return OrderService(async_session_maker, ordering_config, lock_timeout_ms=LOCK_TIMEOUT_MS)


# =========================================
# FastAPI / httpx AsyncClient（OrderService 指向测试库）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(order_service: OrderService) -> AsyncGenerator[httpx.AsyncClient, None]:
    app.dependency_overrides[get_order_service] = lambda: order_service
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_order_service, None)
