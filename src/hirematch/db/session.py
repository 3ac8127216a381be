"""
异步引擎与会话工厂。

不做进程级单例：由调用方（API lifespan、脚本、测试）创建并负责关闭。
"""
from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from hirematch.core.config import get_database_url

from .base import Base


def create_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """按连接串创建引擎；SQLite 文件库会先建好父目录。"""
    url = url or get_database_url()
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """建表（已存在则跳过）。"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
