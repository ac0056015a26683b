# fulfil/api/deps.py
from __future__ import annotations

from fulfil.core.config import get_settings
from fulfil.db.session import get_sessionmaker
from fulfil.services.order_service import OrderService

_service: OrderService | None = None


def get_order_service() -> OrderService:
    """
    OrderService 只持有只读配置与会话工厂，进程内复用一个实例。
    测试通过 app.dependency_overrides 替换。
    """
    global _service
    if _service is None:
        settings = get_settings()
        _service = OrderService(
            get_sessionmaker(),
            settings.ordering_config(),
            lock_timeout_ms=settings.LOCK_TIMEOUT_MS,
        )
    return _service


def reset_order_service() -> None:
    global _service
    _service = None


__all__ = ("get_order_service", "reset_order_service")
