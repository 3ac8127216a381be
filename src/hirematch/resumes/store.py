"""
简历持久化：读写都按 user_id 过滤，用户只能看到自己的简历。
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from hirematch.db.models import Resume

from .schemas import ResumeRecord, ResumeType


class SqlResumeStore:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create_resume(
        self,
        user_id: str,
        content: dict[str, Any],
        title: str = "My Resume",
        raw_text: Optional[str] = None,
        type: ResumeType = "UPLOADED",
    ) -> ResumeRecord:
        resume = Resume(user_id=user_id, title=title, content=content, raw_text=raw_text, type=type)
        async with self._session_factory() as session:
            session.add(resume)
            await session.commit()
            return ResumeRecord.model_validate(resume)

    async def get_for_user(self, resume_id: str, user_id: str) -> Optional[ResumeRecord]:
        """不存在或不属于该用户时返回 None（两种情况对外都是 404）。"""
        stmt = select(Resume).where(Resume.id == resume_id, Resume.user_id == user_id)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return ResumeRecord.model_validate(row) if row else None

    async def latest_for_user(self, user_id: str) -> Optional[ResumeRecord]:
        stmt = (
            select(Resume)
            .where(Resume.user_id == user_id)
            .order_by(Resume.created_at.desc(), Resume.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return ResumeRecord.model_validate(row) if row else None
