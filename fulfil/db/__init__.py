# fulfil/db/__init__.py
"""
数据库层：
- base    : DeclarativeBase / init_models / init_db
- engine  : create_async_engine_safe（PG / SQLite 差异在此收口）
- session : 进程级引擎与会话工厂
"""
