# fulfil/seed.py
# 参考仓库数据：python -m fulfil.seed [--db URL] [--keep-stock]
from __future__ import annotations

import argparse
import asyncio
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fulfil.core.config import get_settings, normalize_async_dsn
from fulfil.core.logging import get_logger, setup_logging
from fulfil.db.base import init_db
from fulfil.db.engine import create_async_engine_safe
from fulfil.models.warehouse import Warehouse

log = get_logger("seed")

WAREHOUSES: List[Dict] = [
    {"name": "Los Angeles", "latitude": 33.9425, "longitude": -118.408056, "stock": 355},
    {"name": "New York", "latitude": 40.639722, "longitude": -73.778889, "stock": 578},
    {"name": "São Paulo", "latitude": -23.435556, "longitude": -46.473056, "stock": 265},
    {"name": "Paris", "latitude": 49.009722, "longitude": 2.547778, "stock": 694},
    {"name": "Warsaw", "latitude": 52.165833, "longitude": 20.967222, "stock": 245},
    {"name": "Hong Kong", "latitude": 22.308889, "longitude": 113.914444, "stock": 419},
]


async def seed_warehouses(session: AsyncSession, *, reset_stock: bool = True) -> List[Warehouse]:
    """
    按 name upsert 参考仓库；不 commit，由调用方控事务。

    reset_stock=False 时已有仓库只更新坐标，保留当前库存。
    """
    existing = {
        w.name: w for w in (await session.execute(select(Warehouse))).scalars().all()
    }
    out: List[Warehouse] = []
    for row in WAREHOUSES:
        w = existing.get(row["name"])
        if w is None:
            w = Warehouse(**row)
            session.add(w)
        else:
            w.latitude = row["latitude"]
            w.longitude = row["longitude"]
            if reset_stock:
                w.stock = row["stock"]
        out.append(w)
    await session.flush()
    return out


async def _run(db_url: str, reset_stock: bool) -> None:
    engine = create_async_engine_safe(db_url)
    try:
        await init_db(engine)
        maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with maker() as s:
            rows = await seed_warehouses(s, reset_stock=reset_stock)
            await s.commit()
        for w in rows:
            log.info("seeded %-12s stock=%d (%.6f, %.6f)", w.name, w.stock, w.latitude, w.longitude)
        log.info("seed done: %d warehouses", len(rows))
    finally:
        await engine.dispose()


def main(argv: List[str] | None = None) -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Create tables and seed reference warehouses")
    ap.add_argument("--db", default=settings.DATABASE_URL)
    ap.add_argument("--keep-stock", action="store_true", help="保留已有仓库的库存")
    a = ap.parse_args(argv)

    setup_logging(settings.LOG_LEVEL)
    asyncio.run(_run(normalize_async_dsn(a.db), reset_stock=not a.keep_stock))


if __name__ == "__main__":
    main()
