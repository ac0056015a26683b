# fulfil/core/logging.py
from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER = "fulfil"

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(area: str) -> logging.Logger:
    """按业务域取 logger：get_logger("orders") -> fulfil.orders"""
    return logging.getLogger(f"{ROOT_LOGGER}.{area}")


def setup_logging(level: str = "INFO", *, sql_echo: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    进程级日志初始化（只在入口调用一次）：
    - 根 logger 设级别，单一 handler（默认 stdout）
    - sqlalchemy.engine 仅在 DEBUG 或 sql_echo 时输出 SQL
    """
    lvl = level.upper()
    root = logging.getLogger()
    root.setLevel(lvl)

    # 重复调用（测试 / reload）时先摘掉旧 handler
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)

    logging.getLogger(ROOT_LOGGER).setLevel(lvl)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if (sql_echo or lvl == "DEBUG") else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
