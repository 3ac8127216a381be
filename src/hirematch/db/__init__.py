# SQLAlchemy 异步 ORM：模型 + 引擎/会话工厂

from .base import Base
from .models import Job, Resume
from .session import create_engine, create_session_factory, init_db

__all__ = [
    "Base",
    "Job",
    "Resume",
    "create_engine",
    "create_session_factory",
    "init_db",
]
