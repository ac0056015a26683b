# fulfil/services/order_number.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

OrderNumberFactory = Callable[[], str]

ORDER_NUMBER_PREFIX = "ORD"


def generate_order_number(now: Optional[datetime] = None) -> str:
    """
    ORD-<UTC yyyymmddHHMMSS>-<8 位 hex>

    同一秒内 32 bit 随机段撞号概率可忽略；真撞了由唯一约束兜底重试。
    """
    ts = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    return f"{ORDER_NUMBER_PREFIX}-{ts}-{uuid.uuid4().hex[:8].upper()}"
