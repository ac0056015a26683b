# fulfil/db/engine.py
# 统一引擎工厂：PG 走 psycopg3 + FOR UPDATE 行锁；SQLite 每个事务 BEGIN IMMEDIATE（库级写锁）
from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe", "is_sqlite"]


def is_sqlite(url_str: str) -> bool:
    return make_url(url_str).get_backend_name().startswith("sqlite")


def _connect_args_for(url_str: str, lock_timeout_ms: int) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - SQLite: busy timeout（秒），等待其它连接释放写锁
    - PostgreSQL: 锁等待由事务内 SET LOCAL lock_timeout 控制，这里不传
    """
    if is_sqlite(url_str):
        return {"timeout": max(lock_timeout_ms, 1) / 1000.0}
    return {}


def _install_sqlite_immediate_begin(engine: AsyncEngine) -> None:
    """
    pysqlite / aiosqlite 默认延迟 BEGIN，且 SELECT ... FOR UPDATE 在 SQLite 上被忽略。
    接管 BEGIN 并改为 BEGIN IMMEDIATE：事务一开始就拿写锁，
    并发提交因此串行化（后到者在 busy timeout 内等待，超时报 database is locked）。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):  # pragma: no cover - driver hook
        # 关闭驱动自带的 BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_async_engine_safe(
    url_str: str,
    *,
    echo: bool = False,
    lock_timeout_ms: int = 5000,
    **kwargs: Any,
) -> AsyncEngine:
    """Async 引擎（'postgresql+psycopg' 或 'sqlite+aiosqlite'）。"""
    connect_args = _connect_args_for(url_str, lock_timeout_ms)

    opts: dict[str, Any] = {"echo": echo}
    if not is_sqlite(url_str):
        opts["pool_pre_ping"] = True
    if connect_args:
        opts["connect_args"] = connect_args
    opts.update(kwargs)

    engine = create_async_engine(url_str, **opts)
    if is_sqlite(url_str):
        _install_sqlite_immediate_begin(engine)
    return engine
